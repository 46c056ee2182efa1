"""Reminder recomputation for a single vehicle.

Derives (last_service, interval_days, next_reminder) from the vehicle's
service history and persists them with one UPDATE statement, so a
service-created trigger racing with a scan can never interleave a partial
write.
"""

import logging
import re
from dataclasses import dataclass
from datetime import date, timedelta
from typing import List, Optional

from sqlalchemy import Date, and_, case, literal, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from maint_reminders.config import Settings, settings as default_settings
from maint_reminders.exceptions import NotFoundError, StorageError
from maint_reminders.models import Service, Vehicle
from maint_reminders.services.business_calendar import BusinessCalendar
from maint_reminders.services.interval_classifier import IntervalClassifier, distinct_days_desc

logger = logging.getLogger(__name__)

_PLATE_STRIP = re.compile(r"[^A-Z0-9]")


def normalize_plate(plate: Optional[str]) -> str:
    """Uppercase, remove whitespace and punctuation. Empty string if nothing is left."""
    if not plate:
        return ""
    return _PLATE_STRIP.sub("", str(plate).upper())


@dataclass(frozen=True)
class ReminderConfig:
    """Classifier and calendar built once at startup and injected where needed."""

    classifier: IntervalClassifier
    calendar: BusinessCalendar


def get_reminder_config(settings: Optional[Settings] = None) -> ReminderConfig:
    settings = settings or default_settings
    return ReminderConfig(
        classifier=IntervalClassifier(settings.INTERVAL_TIERS, settings.DEFAULT_INTERVAL_DAYS),
        calendar=BusinessCalendar(settings.holiday_set),
    )


@dataclass(frozen=True)
class ScheduleSnapshot:
    last_service: date
    next_reminder: date
    interval_days: int
    usage_category: Optional[str] = None


def compute_schedule(service_dates: List[date], config: ReminderConfig) -> Optional[ScheduleSnapshot]:
    """Pure schedule computation; None when there is no service history."""
    days = distinct_days_desc(service_dates)
    if not days:
        return None

    tier = config.classifier.tier_for(days)
    last_service = days[0]
    tentative = last_service + timedelta(days=tier.interval_days)
    return ScheduleSnapshot(
        last_service=last_service,
        next_reminder=config.calendar.next_business_day(tentative),
        interval_days=tier.interval_days,
        usage_category=tier.label or None,
    )


class ReminderService:
    """Read and write access to a vehicle's reminder schedule."""

    def __init__(self, db: AsyncSession, config: Optional[ReminderConfig] = None):
        self.db = db
        self.config = config or get_reminder_config()

    async def read_vehicle(self, plate: str) -> Vehicle:
        """Fresh copy of the vehicle with its client loaded."""
        plate = normalize_plate(plate)
        result = await self.db.execute(
            select(Vehicle)
            .options(selectinload(Vehicle.client))
            .where(Vehicle.plate == plate)
            .execution_options(populate_existing=True)
        )
        vehicle = result.scalar_one_or_none()
        if vehicle is None:
            raise NotFoundError("Vehicle", plate)
        return vehicle

    async def fetch_service_dates(self, plate: str) -> List[date]:
        """All service dates for the plate, most recent first."""
        result = await self.db.execute(
            select(Service.date)
            .where(Service.vehicle_plate == normalize_plate(plate))
            .order_by(Service.date.desc())
        )
        return list(result.scalars().all())

    async def write_vehicle_schedule(
        self, plate: str, snapshot: Optional[ScheduleSnapshot]
    ) -> Optional[ScheduleSnapshot]:
        """Persist the schedule in a single UPDATE and commit.

        A reminder already advanced past the computed date by a scan is kept
        as long as neither the last service nor the interval has changed
        since. Returns the schedule as stored.
        """
        if snapshot is None:
            values = {
                "last_service": None,
                "next_reminder": None,
                "interval_days": None,
                "usage_category": None,
            }
        else:
            computed = literal(snapshot.next_reminder, type_=Date)
            values = {
                "last_service": snapshot.last_service,
                "next_reminder": case(
                    (
                        and_(
                            Vehicle.last_service == snapshot.last_service,
                            Vehicle.interval_days == snapshot.interval_days,
                            Vehicle.next_reminder > computed,
                        ),
                        Vehicle.next_reminder,
                    ),
                    else_=computed,
                ),
                "interval_days": snapshot.interval_days,
                "usage_category": snapshot.usage_category,
            }

        try:
            result = await self.db.execute(
                update(Vehicle)
                .where(Vehicle.plate == plate)
                .values(**values)
                .returning(Vehicle.plate, Vehicle.next_reminder)
                .execution_options(synchronize_session=False)
            )
            row = result.first()
            if row is None:
                await self.db.rollback()
                raise NotFoundError("Vehicle", plate)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("Failed to write schedule for %s: %s", plate, e)
            raise StorageError(f"could not update vehicle {plate}") from e

        if snapshot is None:
            return None
        if row.next_reminder != snapshot.next_reminder:
            return ScheduleSnapshot(
                last_service=snapshot.last_service,
                next_reminder=row.next_reminder,
                interval_days=snapshot.interval_days,
                usage_category=snapshot.usage_category,
            )
        return snapshot

    async def recompute(self, plate: str) -> Optional[ScheduleSnapshot]:
        """Recompute and persist the reminder schedule for one vehicle.

        Raises NotFoundError if the vehicle does not exist and StorageError
        if the update fails; in both cases nothing is written.
        """
        plate = normalize_plate(plate)
        try:
            service_dates = await self.fetch_service_dates(plate)
        except SQLAlchemyError as e:
            raise StorageError(f"could not read services for {plate}") from e

        snapshot = compute_schedule(service_dates, self.config)
        stored = await self.write_vehicle_schedule(plate, snapshot)

        if stored is None:
            logger.debug("Vehicle %s has no service history, schedule cleared", plate)
        else:
            logger.debug(
                "Vehicle %s: last=%s interval=%sd next=%s",
                plate,
                stored.last_service,
                stored.interval_days,
                stored.next_reminder,
            )
        return stored

    async def on_service_created(self, plate: str) -> Optional[ScheduleSnapshot]:
        """Trigger for new service records (API or import pipeline)."""
        return await self.recompute(plate)

    async def advance_reminder(
        self, plate: str, today: date, interval_days: int, expected: date
    ) -> Optional[date]:
        """Move next_reminder one interval past today after a confirmed send.

        Compare-and-set on ``expected``: if another writer changed the
        reminder meanwhile, nothing is written and None is returned.
        """
        plate = normalize_plate(plate)
        new_reminder = self.config.calendar.next_business_day(today + timedelta(days=interval_days))
        try:
            result = await self.db.execute(
                update(Vehicle)
                .where(Vehicle.plate == plate, Vehicle.next_reminder == expected)
                .values(next_reminder=new_reminder)
                .returning(Vehicle.plate)
                .execution_options(synchronize_session=False)
            )
            advanced = result.first() is not None
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("Failed to advance reminder for %s: %s", plate, e)
            raise StorageError(f"could not advance reminder for {plate}") from e

        if not advanced:
            logger.info("Reminder for %s changed concurrently, not advancing", plate)
            return None
        return new_reminder
