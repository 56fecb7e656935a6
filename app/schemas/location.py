from typing import Optional
from datetime import datetime
from pydantic import BaseModel, Field, field_validator


def _strip_required(value):
    if isinstance(value, str):
        value = value.strip()
        if not value:
            raise ValueError("El campo no puede estar vacío")
    return value


class LocationBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    address: str = Field(..., min_length=1)
    capacity: int = Field(..., ge=1)

    strip_fields = field_validator("name", "address", mode="before")(_strip_required)


class LocationCreate(LocationBase):
    pass


class LocationUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    address: Optional[str] = Field(None, min_length=1)
    capacity: Optional[int] = Field(None, ge=1)
    is_active: Optional[bool] = None

    strip_fields = field_validator("name", "address", mode="before")(_strip_required)


class LocationBrief(BaseModel):
    id: int
    name: str

    class Config:
        from_attributes = True


class Location(LocationBase):
    id: int
    is_active: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class LocationDeleteResponse(BaseModel):
    message: str
    cancelled_classes: int
    refunded_bookings: int
    deactivated_schedules: int
