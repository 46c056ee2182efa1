"""Scheduler API - manual trigger for the due-reminder scan."""

from fastapi import APIRouter, Query

from maint_reminders.api.deps import ConfigDep, SessionFactoryDep, TransportDep
from maint_reminders.schemas.reminder import ScanResponse
from maint_reminders.tasks.reminder_scheduler import run_reminders_now

router = APIRouter()


@router.post("/run", response_model=ScanResponse)
async def run_scheduler(
    session_factory: SessionFactoryDep,
    transport: TransportDep,
    config: ConfigDep,
    simulate: bool = Query(False, description="Log reminders instead of sending them"),
):
    """Run a due-reminder scan now and return how many reminders went out."""
    summary = await run_reminders_now(
        simulate,
        session_factory=session_factory,
        transport=transport,
        config=config,
    )
    return summary.to_response()
