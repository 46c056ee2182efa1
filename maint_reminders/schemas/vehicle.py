from pydantic import BaseModel, Field
import datetime as dt
from typing import List, Optional
from uuid import UUID


class ClientSummary(BaseModel):
    """Contact details shown alongside a vehicle."""
    id: UUID
    name: str
    phone: Optional[str] = None

    class Config:
        from_attributes = True


class VehicleCreate(BaseModel):
    """Schema for registering a vehicle."""
    plate: str = Field(..., min_length=1, max_length=20)
    client_id: Optional[UUID] = None
    brand: Optional[str] = Field(None, max_length=100)
    model: Optional[str] = Field(None, max_length=100)
    year: Optional[int] = Field(None, ge=1900, le=2100)


class VehicleResponse(BaseModel):
    """Schema for vehicle response."""
    plate: str
    client_id: Optional[UUID] = None
    brand: Optional[str] = None
    model: Optional[str] = None
    year: Optional[int] = None
    last_service: Optional[dt.date] = None
    next_reminder: Optional[dt.date] = None
    interval_days: Optional[int] = None
    usage_category: Optional[str] = None
    client: Optional[ClientSummary] = None
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None

    class Config:
        from_attributes = True


class ServiceCreate(BaseModel):
    """Schema for recording a service on a vehicle. Date defaults to today."""
    date: Optional[dt.date] = None
    odometer: Optional[int] = Field(None, ge=0, le=3_000_000)
    summary: Optional[str] = None


class ServiceResponse(BaseModel):
    id: UUID
    vehicle_plate: str
    date: dt.date
    odometer: Optional[int] = None
    summary: Optional[str] = None
    created_at: Optional[dt.datetime] = None

    class Config:
        from_attributes = True


class VehicleDetailResponse(VehicleResponse):
    """Vehicle with its service history, most recent first."""
    services: List[ServiceResponse] = []


class ScheduleResponse(BaseModel):
    """Result of recomputing a vehicle's reminder schedule."""
    plate: str
    last_service: Optional[dt.date] = None
    next_reminder: Optional[dt.date] = None
    interval_days: Optional[int] = None
    usage_category: Optional[str] = None
