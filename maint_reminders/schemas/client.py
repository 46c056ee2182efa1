from pydantic import BaseModel, Field, field_validator
from datetime import date, datetime
from typing import List, Optional
from uuid import UUID


def normalize_phone(value: Optional[str]) -> Optional[str]:
    """Keep digits only; a number with no digits is treated as missing."""
    if value is None:
        return None
    digits = "".join(ch for ch in str(value) if ch.isdigit())
    return digits or None


class ClientCreate(BaseModel):
    """Schema for creating a client. Phone is stored as digits only."""
    name: str = Field(..., min_length=1, max_length=255)
    phone: Optional[str] = Field(None, max_length=32)
    email: Optional[str] = Field(None, max_length=255)
    notes: Optional[str] = None

    @field_validator("phone")
    @classmethod
    def digits_only(cls, v: Optional[str]) -> Optional[str]:
        return normalize_phone(v)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name must not be blank")
        return v


class ClientResponse(BaseModel):
    id: UUID
    name: str
    phone: Optional[str] = None
    email: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ClientVehicle(BaseModel):
    """Vehicle row shown on the client detail."""
    plate: str
    brand: Optional[str] = None
    model: Optional[str] = None
    last_service: Optional[date] = None
    next_reminder: Optional[date] = None
    usage_category: Optional[str] = None

    class Config:
        from_attributes = True


class ClientDetailResponse(ClientResponse):
    vehicles: List[ClientVehicle] = []
