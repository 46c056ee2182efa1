"""Due-Reminder Scheduler - periodic scan that notifies vehicles due for service.

Each run walks every vehicle that has a contact phone:
1. Recomputes its schedule from the service history (self-healing)
2. Skips it if next_reminder is absent or still in the future
3. Sends the reminder (or only logs it in simulate mode)
4. Advances next_reminder one interval past today, only after a confirmed send

A failure on one vehicle is recorded in its result and never aborts the run.
Runs daily on the REMINDER_CRON schedule (09:00 by default).
"""

import asyncio
import enum
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Callable, List, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from maint_reminders.config import settings
from maint_reminders.database import async_session_maker
from maint_reminders.exceptions import NotFoundError, StorageError, TransportError
from maint_reminders.middleware.correlation import correlation_id_ctx, generate_id
from maint_reminders.models import Client, Vehicle
from maint_reminders.schemas.reminder import ReminderPayload, ScanResponse
from maint_reminders.services.reminder_service import (
    ReminderConfig,
    ReminderService,
    ScheduleSnapshot,
    get_reminder_config,
)
from maint_reminders.services.twilio_service import NotificationTransport, TwilioService, mask_phone

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], AsyncSession]

# Global scheduler instance
scheduler: Optional[AsyncIOScheduler] = None


class VehicleOutcome(str, enum.Enum):
    NOT_DUE = "not_due"
    SENT = "sent"
    FAILED = "failed"


@dataclass(frozen=True)
class VehicleScanResult:
    plate: str
    outcome: VehicleOutcome
    next_reminder: Optional[date] = None
    error: Optional[str] = None


@dataclass
class ScanSummary:
    results: List[VehicleScanResult] = field(default_factory=list)

    @property
    def sent(self) -> int:
        return sum(1 for r in self.results if r.outcome == VehicleOutcome.SENT)

    @property
    def errors(self) -> int:
        return sum(1 for r in self.results if r.outcome == VehicleOutcome.FAILED)

    def to_response(self) -> ScanResponse:
        return ScanResponse(sent=self.sent, errors=self.errors)


@dataclass
class ScanOptions:
    simulate: bool = False
    concurrency: int = field(default_factory=lambda: settings.SCAN_CONCURRENCY)
    cancel_event: Optional[asyncio.Event] = None
    date_format: str = field(default_factory=lambda: settings.REMINDER_DATE_FORMAT)
    message_template: str = field(default_factory=lambda: settings.REMINDER_MESSAGE_TEMPLATE)


def build_payload(vehicle: Vehicle, snapshot: ScheduleSnapshot, options: ScanOptions) -> ReminderPayload:
    """Render the reminder for a due vehicle."""
    client = vehicle.client
    display_name = (client.name or "").strip() or "customer"
    formatted_date = snapshot.next_reminder.strftime(options.date_format)
    return ReminderPayload(
        plate=vehicle.plate,
        destination=client.phone,
        display_name=display_name,
        next_reminder=formatted_date,
        body=options.message_template.format(
            name=display_name,
            plate=vehicle.plate,
            date=formatted_date,
        ),
    )


async def list_contactable_plates(session_factory: SessionFactory) -> List[str]:
    """Plates of vehicles whose client has a phone to notify."""
    async with session_factory() as db:
        result = await db.execute(
            select(Vehicle.plate)
            .join(Client, Vehicle.client_id == Client.id)
            .where(Client.phone.is_not(None), Client.phone != "")
            .order_by(Vehicle.plate)
        )
        return list(result.scalars().all())


async def process_vehicle(
    plate: str,
    *,
    session_factory: SessionFactory,
    transport: NotificationTransport,
    options: ScanOptions,
    today: date,
    config: ReminderConfig,
) -> VehicleScanResult:
    """Recompute, due-check, dispatch and advance for one vehicle, in that order."""
    async with session_factory() as db:
        service = ReminderService(db, config)

        try:
            snapshot = await service.recompute(plate)
        except (NotFoundError, StorageError) as e:
            logger.error("Recompute failed for vehicle %s: %s", plate, e.detail)
            return VehicleScanResult(plate, VehicleOutcome.FAILED, error=e.detail)

        if snapshot is None or snapshot.next_reminder > today:
            return VehicleScanResult(
                plate,
                VehicleOutcome.NOT_DUE,
                next_reminder=snapshot.next_reminder if snapshot else None,
            )

        vehicle = await service.read_vehicle(plate)
        if vehicle.client is None or not vehicle.client.phone:
            logger.warning("Vehicle %s is due but has no contact phone", plate)
            return VehicleScanResult(
                plate, VehicleOutcome.FAILED, next_reminder=snapshot.next_reminder, error="no contact phone"
            )

        payload = build_payload(vehicle, snapshot, options)

        if options.simulate:
            logger.info(
                "[simulated] Reminder for %s to %s (due %s)",
                plate,
                mask_phone(payload.destination),
                payload.next_reminder,
            )
        else:
            try:
                await transport.send(payload.destination, payload)
            except TransportError as e:
                logger.error("Failed to send reminder for vehicle %s: %s", plate, e.detail)
                return VehicleScanResult(
                    plate, VehicleOutcome.FAILED, next_reminder=snapshot.next_reminder, error=e.detail
                )

        try:
            advanced = await service.advance_reminder(
                plate, today, snapshot.interval_days, expected=snapshot.next_reminder
            )
        except StorageError as e:
            # Notification already went out; it will be repeated next scan
            logger.error("Reminder sent for %s but not advanced: %s", plate, e.detail)
            advanced = None

        return VehicleScanResult(plate, VehicleOutcome.SENT, next_reminder=advanced or snapshot.next_reminder)


async def run_scan(
    options: Optional[ScanOptions] = None,
    *,
    session_factory: Optional[SessionFactory] = None,
    transport: Optional[NotificationTransport] = None,
    today: Optional[date] = None,
    config: Optional[ReminderConfig] = None,
) -> ScanSummary:
    """
    Evaluate every contactable vehicle and notify the due ones.

    Vehicles are processed independently with at most ``options.concurrency``
    in flight. Once started, a vehicle's sequence runs to completion even if
    the scan is cancelled; vehicles not yet started when ``cancel_event`` is
    set are left untouched and do not appear in the summary.
    """
    options = options or ScanOptions()
    session_factory = session_factory or async_session_maker
    config = config or get_reminder_config()
    today = today or date.today()
    if transport is None and not options.simulate:
        transport = TwilioService()

    token = correlation_id_ctx.set(f"scan-{generate_id()}")
    try:
        logger.info("Starting reminder scan for %s (simulate=%s)", today, options.simulate)
        if not options.simulate and not transport.is_configured:
            logger.warning("Notification transport is not configured, due reminders will fail")

        plates = await list_contactable_plates(session_factory)
        logger.info("Found %d vehicles with a contact to check", len(plates))

        semaphore = asyncio.Semaphore(max(1, options.concurrency))

        async def evaluate(plate: str) -> VehicleScanResult:
            try:
                return await process_vehicle(
                    plate,
                    session_factory=session_factory,
                    transport=transport,
                    options=options,
                    today=today,
                    config=config,
                )
            except Exception as e:
                logger.error("Error processing vehicle %s: %s", plate, e, exc_info=True)
                return VehicleScanResult(plate, VehicleOutcome.FAILED, error=str(e))

        async def worker(plate: str) -> Optional[VehicleScanResult]:
            async with semaphore:
                if options.cancel_event is not None and options.cancel_event.is_set():
                    return None
                return await asyncio.shield(evaluate(plate))

        outcomes = await asyncio.gather(*(worker(plate) for plate in plates))
        summary = ScanSummary(results=[r for r in outcomes if r is not None])

        skipped = len(plates) - len(summary.results)
        if skipped:
            logger.warning("Reminder scan cancelled, %d vehicles not evaluated", skipped)
        logger.info("Reminder scan complete. Sent: %d, Errors: %d", summary.sent, summary.errors)
        return summary
    finally:
        correlation_id_ctx.reset(token)


def get_scheduler() -> AsyncIOScheduler:
    """Get or create the scheduler instance."""
    global scheduler
    if scheduler is None:
        scheduler = AsyncIOScheduler()
    return scheduler


async def scheduled_scan():
    """Cron job entry point; a failed run is logged and retried at the next tick."""
    try:
        summary = await run_scan()
        logger.info("[CRON] sent=%d errors=%d", summary.sent, summary.errors)
    except Exception as e:
        logger.error("Fatal error in reminder scan: %s", e, exc_info=True)


async def run_reminders_now(simulate: bool = False, **kwargs) -> ScanSummary:
    """Manual trigger; keyword arguments are passed through to run_scan."""
    logger.info("Manual reminder scan requested (simulate=%s)", simulate)
    return await run_scan(ScanOptions(simulate=simulate), **kwargs)


def start_reminder_scheduler():
    """Start the reminder scheduler with the configured cron schedule."""
    global scheduler

    scheduler = get_scheduler()

    scheduler.add_job(
        scheduled_scan,
        CronTrigger.from_crontab(settings.REMINDER_CRON),
        id="maintenance_reminders",
        name="Send maintenance reminders",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )

    if not scheduler.running:
        scheduler.start()
        logger.info("Maintenance reminder scheduler started")
        for job in scheduler.get_jobs():
            logger.info("  - %s: %s", job.name, job.trigger)


def stop_reminder_scheduler():
    """Stop the reminder scheduler."""
    global scheduler

    if scheduler and scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Maintenance reminder scheduler stopped")
