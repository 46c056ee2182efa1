"""Vehicles API - registration, service history and reminder schedule."""

import logging
from datetime import date
from typing import List

from fastapi import APIRouter
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload

from maint_reminders.api.deps import DbSession, ReminderServiceDep
from maint_reminders.exceptions import ConflictError, NotFoundError, ValidationError
from maint_reminders.models import Client, Service, Vehicle
from maint_reminders.schemas.vehicle import (
    ScheduleResponse,
    ServiceCreate,
    ServiceResponse,
    VehicleCreate,
    VehicleDetailResponse,
    VehicleResponse,
)
from maint_reminders.services.reminder_service import normalize_plate

logger = logging.getLogger(__name__)

router = APIRouter()


def _require_plate(raw: str) -> str:
    plate = normalize_plate(raw)
    if not plate:
        raise ValidationError("Invalid plate")
    return plate


@router.get("/", response_model=List[VehicleResponse])
async def list_vehicles(db: DbSession):
    """List vehicles ordered by plate."""
    result = await db.execute(
        select(Vehicle).options(selectinload(Vehicle.client)).order_by(Vehicle.plate)
    )
    return result.scalars().all()


@router.get("/{plate}", response_model=VehicleDetailResponse)
async def get_vehicle(plate: str, db: DbSession):
    """Vehicle detail with its service history."""
    plate = _require_plate(plate)
    result = await db.execute(
        select(Vehicle)
        .options(selectinload(Vehicle.client), selectinload(Vehicle.services))
        .where(Vehicle.plate == plate)
        .execution_options(populate_existing=True)
    )
    vehicle = result.scalar_one_or_none()
    if vehicle is None:
        raise NotFoundError("Vehicle", plate)
    return vehicle


@router.post("/", response_model=VehicleResponse, status_code=201)
async def create_vehicle(vehicle_data: VehicleCreate, db: DbSession, reminders: ReminderServiceDep):
    """Register a vehicle. The client is optional."""
    plate = _require_plate(vehicle_data.plate)

    if vehicle_data.client_id is not None:
        client = await db.get(Client, vehicle_data.client_id)
        if client is None:
            raise ValidationError(f"Invalid client_id {vehicle_data.client_id}")

    if await db.get(Vehicle, plate) is not None:
        raise ConflictError(f"A vehicle with plate {plate} already exists")

    vehicle = Vehicle(
        plate=plate,
        client_id=vehicle_data.client_id,
        brand=vehicle_data.brand,
        model=vehicle_data.model,
        year=vehicle_data.year,
    )
    db.add(vehicle)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError(f"A vehicle with plate {plate} already exists")

    logger.info("Registered vehicle %s", plate)
    return await reminders.read_vehicle(plate)


@router.get("/{plate}/services", response_model=List[ServiceResponse])
async def list_services(plate: str, db: DbSession):
    """Service history for a vehicle, most recent first."""
    plate = _require_plate(plate)
    if await db.get(Vehicle, plate) is None:
        raise NotFoundError("Vehicle", plate)

    result = await db.execute(
        select(Service).where(Service.vehicle_plate == plate).order_by(Service.date.desc())
    )
    return result.scalars().all()


@router.post("/{plate}/services", response_model=ServiceResponse, status_code=201)
async def create_service(
    plate: str,
    service_data: ServiceCreate,
    db: DbSession,
    reminders: ReminderServiceDep,
):
    """Record a service and recompute the vehicle's reminder schedule."""
    plate = _require_plate(plate)
    if await db.get(Vehicle, plate) is None:
        raise NotFoundError("Vehicle", plate)

    service = Service(
        vehicle_plate=plate,
        date=service_data.date or date.today(),
        odometer=service_data.odometer,
        summary=service_data.summary,
    )
    db.add(service)
    await db.commit()
    await db.refresh(service)

    await reminders.on_service_created(plate)
    return service


@router.post("/{plate}/recompute", response_model=ScheduleResponse)
async def recompute_schedule(plate: str, reminders: ReminderServiceDep):
    """Recompute the reminder schedule from the current service history."""
    plate = _require_plate(plate)
    snapshot = await reminders.recompute(plate)
    if snapshot is None:
        return ScheduleResponse(plate=plate)
    return ScheduleResponse(
        plate=plate,
        last_service=snapshot.last_service,
        next_reminder=snapshot.next_reminder,
        interval_days=snapshot.interval_days,
        usage_category=snapshot.usage_category,
    )
