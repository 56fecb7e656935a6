from typing import Optional, List, Literal
from pydantic import BaseModel, Field, field_validator, model_validator
from datetime import datetime, date
import re

from app.schemas.location import LocationBrief
from app.schemas.user import UserBrief

HHMM_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def _validate_hhmm(value):
    if value is not None and not HHMM_PATTERN.match(value):
        raise ValueError("start_time debe tener formato HH:MM (24h)")
    return value


# ClassType schemas
class ClassTypeCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    duration_minutes: int = Field(..., ge=1, le=600)

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v):
        return v.strip() if isinstance(v, str) else v


class ClassType(ClassTypeCreate):
    id: int

    class Config:
        from_attributes = True


class ClassTypeBrief(BaseModel):
    id: int
    name: str
    duration_minutes: int

    class Config:
        from_attributes = True


# ClassSchedule schemas (plantillas semanales)
class ScheduleBase(BaseModel):
    class_type_id: int
    coach_id: int
    location_id: int
    day_of_week: int = Field(..., ge=0, le=6, description="0=domingo ... 6=sábado")
    start_time: str = Field(..., description="Hora local del club en formato HH:MM")
    capacity: int = Field(..., ge=1)
    is_active: bool = True
    is_override: bool = False
    override_start_date: Optional[date] = None
    override_end_date: Optional[date] = None
    base_schedule_id: Optional[int] = None

    check_start_time = field_validator("start_time")(_validate_hhmm)


class ScheduleCreate(ScheduleBase):
    @model_validator(mode='after')
    def check_override_dates(self):
        if self.is_override:
            if self.override_start_date is None or self.override_end_date is None:
                raise ValueError("Los horarios temporales requieren override_start_date y override_end_date")
            if self.override_start_date > self.override_end_date:
                raise ValueError("override_start_date debe ser anterior o igual a override_end_date")
        return self


class ScheduleUpdate(BaseModel):
    class_type_id: Optional[int] = None
    coach_id: Optional[int] = None
    location_id: Optional[int] = None
    day_of_week: Optional[int] = Field(None, ge=0, le=6)
    start_time: Optional[str] = None
    capacity: Optional[int] = Field(None, ge=1)
    is_active: Optional[bool] = None
    is_override: Optional[bool] = None
    override_start_date: Optional[date] = None
    override_end_date: Optional[date] = None
    base_schedule_id: Optional[int] = None
    apply_to_current_month: bool = False

    check_start_time = field_validator("start_time")(_validate_hhmm)


class Schedule(ScheduleBase):
    id: int
    day_name: str
    instance_count: int = 0
    class_type: Optional[ClassTypeBrief] = None
    coach: Optional[UserBrief] = None
    location: Optional[LocationBrief] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class GenerateRequest(BaseModel):
    months_ahead: int = Field(2, ge=1, le=12)


class GenerationResult(BaseModel):
    created: int
    updated: int


class ScheduleMutationResponse(BaseModel):
    message: str
    schedule: Schedule
    generated: GenerationResult
    deleted_instances: int = 0


class LocationSchedules(BaseModel):
    location: LocationBrief
    schedules: List[Schedule]


# ClassInstance schemas
class RecurringRule(BaseModel):
    frequency: Literal["daily", "weekly", "biweekly", "monthly"]
    count: Optional[int] = Field(None, ge=1, le=52)
    end_date: Optional[date] = None

    @model_validator(mode='after')
    def check_limit(self):
        if self.count is None and self.end_date is None:
            raise ValueError("La recurrencia requiere count o end_date")
        return self


class ClassInstanceCreate(BaseModel):
    class_type_id: int
    coach_id: int
    location_id: int
    start_time: datetime = Field(..., description="Naive = hora local del club; aware se convierte a UTC")
    capacity: int = Field(..., ge=1)
    recurring: Optional[RecurringRule] = None


class ClassInstanceUpdate(BaseModel):
    class_type_id: Optional[int] = None
    coach_id: Optional[int] = None
    location_id: Optional[int] = None
    start_time: Optional[datetime] = None
    capacity: Optional[int] = Field(None, ge=1)
    is_cancelled: Optional[bool] = None


class ClassInstanceBrief(BaseModel):
    id: int
    start_time: datetime
    end_time: datetime
    is_cancelled: bool = False
    class_type: Optional[ClassTypeBrief] = None
    coach: Optional[UserBrief] = None
    location: Optional[LocationBrief] = None

    class Config:
        from_attributes = True


class ClassInstance(ClassInstanceBrief):
    schedule_id: Optional[int] = None
    capacity: int
    booked_count: int = 0
    available_spots: int = 0
    is_full: bool = False
    is_booked: bool = False
    booking_id: Optional[int] = None


class ClassInstanceCreateResponse(BaseModel):
    message: str
    classes: List[ClassInstance]


class ClassAvailability(BaseModel):
    class_instance_id: int
    capacity: int
    booked_count: int
    available_spots: int
    is_full: bool
    is_cancelled: bool
    start_time: datetime


class ClassDeleteResponse(BaseModel):
    message: str
    refunded_bookings: int
