"""
FastAPI Dependencies

Provides dependency injection for database sessions, the reminder service
and the notification transport.
"""

from typing import Annotated
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from maint_reminders.database import get_db, get_session_factory
from maint_reminders.services.reminder_service import ReminderConfig, ReminderService, get_reminder_config
from maint_reminders.services.twilio_service import NotificationTransport, TwilioService


def get_config() -> ReminderConfig:
    """Classifier and calendar built from settings."""
    return get_reminder_config()


def get_transport() -> NotificationTransport:
    """Outbound reminder transport."""
    return TwilioService()


async def get_reminder_service(
    db: AsyncSession = Depends(get_db),
    config: ReminderConfig = Depends(get_config),
) -> ReminderService:
    return ReminderService(db, config)


DbSession = Annotated[AsyncSession, Depends(get_db)]
SessionFactoryDep = Annotated[async_sessionmaker, Depends(get_session_factory)]
ReminderServiceDep = Annotated[ReminderService, Depends(get_reminder_service)]
TransportDep = Annotated[NotificationTransport, Depends(get_transport)]
ConfigDep = Annotated[ReminderConfig, Depends(get_config)]
