"""
Tests for reminder recomputation.

Covers schedule derivation from service history, persistence, idempotency,
preservation of advanced reminders and failure semantics.
"""

from datetime import date
from unittest.mock import AsyncMock, patch

import pytest
import pytest_asyncio
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from maint_reminders.exceptions import NotFoundError, StorageError
from maint_reminders.services.reminder_service import (
    ReminderService,
    ScheduleSnapshot,
    compute_schedule,
    normalize_plate,
)
from tests.factories import ClientFactory, ServiceFactory, VehicleFactory


async def add_vehicle(db: AsyncSession, plate: str, *service_dates: date, **fields):
    client = ClientFactory()
    db.add(client)
    db.add(VehicleFactory(plate=plate, client_id=client.id, **fields))
    for d in service_dates:
        db.add(ServiceFactory(vehicle_plate=plate, date=d))
    await db.commit()


class TestNormalizePlate:

    def test_uppercases_and_strips(self):
        assert normalize_plate(" ab 123 cd ") == "AB123CD"

    def test_drops_punctuation(self):
        assert normalize_plate("ab-123.cd") == "AB123CD"

    def test_empty(self):
        assert normalize_plate("") == ""
        assert normalize_plate(None) == ""
        assert normalize_plate(" - ") == ""


class TestComputeSchedule:
    """Pure schedule computation."""

    def test_frequent_use_gets_short_interval(self, reminder_config):
        """Gap of 25 days -> 30 day interval; 2026-03-01 is a Sunday."""
        snapshot = compute_schedule([date(2026, 1, 30), date(2026, 1, 5)], reminder_config)
        assert snapshot == ScheduleSnapshot(
            last_service=date(2026, 1, 30),
            next_reminder=date(2026, 3, 2),
            interval_days=30,
            usage_category="high",
        )

    def test_single_service_gets_longest_interval(self, reminder_config):
        snapshot = compute_schedule([date(2026, 4, 1)], reminder_config)
        assert snapshot.interval_days == 180
        assert snapshot.next_reminder == date(2026, 9, 28)

    def test_no_services(self, reminder_config):
        assert compute_schedule([], reminder_config) is None


class TestRecompute:
    """Tests for ReminderService.recompute"""

    @pytest_asyncio.fixture
    async def service(self, test_db: AsyncSession, reminder_config) -> ReminderService:
        return ReminderService(test_db, reminder_config)

    @pytest.mark.asyncio
    async def test_two_services_25_days_apart(self, test_db, service):
        await add_vehicle(test_db, "AA001AA", date(2026, 1, 5), date(2026, 1, 30))

        snapshot = await service.recompute("AA001AA")

        assert snapshot.last_service == date(2026, 1, 30)
        assert snapshot.interval_days == 30
        assert snapshot.next_reminder == date(2026, 3, 2)

        vehicle = await service.read_vehicle("AA001AA")
        assert vehicle.last_service == date(2026, 1, 30)
        assert vehicle.next_reminder == date(2026, 3, 2)
        assert vehicle.interval_days == 30
        assert vehicle.usage_category == "high"

    @pytest.mark.asyncio
    async def test_single_service(self, test_db, service):
        await add_vehicle(test_db, "AA002AA", date(2026, 4, 1))

        snapshot = await service.recompute("AA002AA")

        assert snapshot.interval_days == 180
        assert snapshot.next_reminder == date(2026, 9, 28)

    @pytest.mark.asyncio
    async def test_no_services_clears_schedule(self, test_db, service):
        await add_vehicle(
            test_db,
            "AA003AA",
            last_service=date(2025, 1, 1),
            next_reminder=date(2025, 2, 1),
            interval_days=30,
            usage_category="high",
        )

        assert await service.recompute("AA003AA") is None

        vehicle = await service.read_vehicle("AA003AA")
        assert vehicle.last_service is None
        assert vehicle.next_reminder is None
        assert vehicle.interval_days is None
        assert vehicle.usage_category is None

    @pytest.mark.asyncio
    async def test_plate_is_normalized(self, test_db, service):
        await add_vehicle(test_db, "AA004AA", date(2026, 4, 1))
        snapshot = await service.recompute(" aa 004 aa ")
        assert snapshot.last_service == date(2026, 4, 1)

    @pytest.mark.asyncio
    async def test_missing_vehicle_raises_not_found(self, service):
        with pytest.raises(NotFoundError):
            await service.recompute("ZZ999ZZ")

    @pytest.mark.asyncio
    async def test_idempotent(self, test_db, service):
        await add_vehicle(test_db, "AA005AA", date(2026, 1, 5), date(2026, 1, 30))

        first = await service.recompute("AA005AA")
        second = await service.recompute("AA005AA")

        assert first == second
        vehicle = await service.read_vehicle("AA005AA")
        assert (vehicle.last_service, vehicle.next_reminder, vehicle.interval_days) == (
            first.last_service,
            first.next_reminder,
            first.interval_days,
        )

    @pytest.mark.asyncio
    async def test_on_service_created_picks_up_new_service(self, test_db, service):
        await add_vehicle(test_db, "AA006AA", date(2026, 4, 1))
        await service.recompute("AA006AA")

        test_db.add(ServiceFactory(vehicle_plate="AA006AA", date=date(2026, 5, 11)))
        await test_db.commit()
        snapshot = await service.on_service_created("AA006AA")

        # Gap of 40 days -> medium tier
        assert snapshot.last_service == date(2026, 5, 11)
        assert snapshot.interval_days == 90
        assert snapshot.usage_category == "medium"

    @pytest.mark.asyncio
    async def test_storage_failure_leaves_state_untouched(self, test_db, service, session_maker):
        await add_vehicle(test_db, "AA007AA", date(2026, 4, 1))
        before = await service.recompute("AA007AA")

        test_db.add(ServiceFactory(vehicle_plate="AA007AA", date=date(2026, 4, 20)))
        await test_db.commit()

        error = OperationalError("UPDATE vehicles", {}, Exception("disk I/O error"))
        with patch.object(
            service, "fetch_service_dates", AsyncMock(return_value=[date(2026, 4, 20), date(2026, 4, 1)])
        ), patch.object(test_db, "execute", AsyncMock(side_effect=error)):
            with pytest.raises(StorageError):
                await service.recompute("AA007AA")

        async with session_maker() as other:
            vehicle = await ReminderService(other, service.config).read_vehicle("AA007AA")
            assert vehicle.last_service == before.last_service
            assert vehicle.next_reminder == before.next_reminder
            assert vehicle.interval_days == before.interval_days


class TestAdvanceReminder:
    """Tests for advancing the reminder after a confirmed send."""

    @pytest_asyncio.fixture
    async def service(self, test_db: AsyncSession, reminder_config) -> ReminderService:
        return ReminderService(test_db, reminder_config)

    @pytest.mark.asyncio
    async def test_advance_moves_to_business_day_after_interval(self, test_db, service):
        await add_vehicle(test_db, "BB001BB", date(2026, 4, 1))
        snapshot = await service.recompute("BB001BB")

        # 2026-10-19 + 30 days = 2026-11-18, a Wednesday
        advanced = await service.advance_reminder(
            "BB001BB", date(2026, 10, 19), 30, expected=snapshot.next_reminder
        )

        assert advanced == date(2026, 11, 18)
        vehicle = await service.read_vehicle("BB001BB")
        assert vehicle.next_reminder == date(2026, 11, 18)

    @pytest.mark.asyncio
    async def test_advance_rolls_off_weekend(self, test_db, service):
        await add_vehicle(test_db, "BB002BB", date(2026, 4, 1))
        snapshot = await service.recompute("BB002BB")

        # 2026-10-19 + 180 days = 2027-04-17, a Saturday
        advanced = await service.advance_reminder(
            "BB002BB", date(2026, 10, 19), 180, expected=snapshot.next_reminder
        )
        assert advanced == date(2027, 4, 19)

    @pytest.mark.asyncio
    async def test_advance_is_compare_and_set(self, test_db, service):
        await add_vehicle(test_db, "BB003BB", date(2026, 4, 1))
        snapshot = await service.recompute("BB003BB")

        result = await service.advance_reminder(
            "BB003BB", date(2026, 10, 19), 30, expected=date(2020, 1, 1)
        )

        assert result is None
        vehicle = await service.read_vehicle("BB003BB")
        assert vehicle.next_reminder == snapshot.next_reminder

    @pytest.mark.asyncio
    async def test_recompute_keeps_advanced_reminder(self, test_db, service):
        await add_vehicle(test_db, "BB004BB", date(2026, 4, 1))
        snapshot = await service.recompute("BB004BB")
        await service.advance_reminder("BB004BB", date(2026, 10, 19), 180, expected=snapshot.next_reminder)

        refreshed = await service.recompute("BB004BB")

        assert refreshed.next_reminder == date(2027, 4, 19)
        assert refreshed.last_service == date(2026, 4, 1)

    @pytest.mark.asyncio
    async def test_backdated_service_changing_interval_resets_reminder(self, test_db, service):
        await add_vehicle(test_db, "BB006BB", date(2026, 1, 5))
        first = await service.recompute("BB006BB")
        assert first.interval_days == 180

        # Older than the latest service: last_service stays, the gap shrinks to 16 days
        test_db.add(ServiceFactory(vehicle_plate="BB006BB", date=date(2025, 12, 20)))
        await test_db.commit()
        refreshed = await service.on_service_created("BB006BB")

        assert refreshed.last_service == date(2026, 1, 5)
        assert refreshed.interval_days == 30
        assert refreshed.next_reminder == date(2026, 2, 4)

        vehicle = await service.read_vehicle("BB006BB")
        assert vehicle.interval_days == 30
        assert vehicle.next_reminder == date(2026, 2, 4)

    @pytest.mark.asyncio
    async def test_new_service_replaces_advanced_reminder(self, test_db, service):
        await add_vehicle(test_db, "BB005BB", date(2026, 4, 1))
        snapshot = await service.recompute("BB005BB")
        await service.advance_reminder("BB005BB", date(2026, 10, 19), 180, expected=snapshot.next_reminder)

        test_db.add(ServiceFactory(vehicle_plate="BB005BB", date=date(2026, 9, 10)))
        await test_db.commit()
        refreshed = await service.on_service_created("BB005BB")

        # Gap > 90 -> 180 days from 2026-09-10 = 2027-03-09
        assert refreshed.last_service == date(2026, 9, 10)
        assert refreshed.next_reminder == date(2027, 3, 9)
