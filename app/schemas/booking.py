from typing import Optional, List, Literal
from datetime import datetime
from pydantic import BaseModel, Field, field_validator

from app.models.booking import BookingStatus
from app.schemas.package import DashboardPackage, MemberPackage
from app.schemas.schedule import ClassInstanceBrief
from app.schemas.user import UserBrief


class BookingCreate(BaseModel):
    class_instance_id: int
    child_id: Optional[int] = None


class AdminBookingCreate(BookingCreate):
    user_id: int


class Booking(BaseModel):
    id: int
    class_instance_id: int
    user_id: int
    child_id: Optional[int] = None
    member_package_id: int
    status: BookingStatus
    booked_for: str
    booked_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    attendance_marked_at: Optional[datetime] = None
    class_instance: Optional[ClassInstanceBrief] = None

    class Config:
        from_attributes = True


class AdminBooking(Booking):
    user: Optional[UserBrief] = None


class BookingCreateResponse(BaseModel):
    message: str
    booking: Booking
    credits_remaining: int


class BookingCancelResponse(BaseModel):
    message: str
    booking_id: int
    credits_refunded: int
    credits_remaining: int


class ManualRefund(BaseModel):
    user_id: int
    credits: int = Field(..., ge=1, le=100)
    reason: str = Field(..., min_length=1, max_length=500)

    @field_validator("reason", mode="before")
    @classmethod
    def strip_reason(cls, v):
        return v.strip() if isinstance(v, str) else v


class ManualRefundResponse(BaseModel):
    message: str
    member_package_id: int
    credits_refunded: int
    balance_after: int
    reactivated: bool


# Asistencia y notas del entrenador
class AttendanceUpdate(BaseModel):
    status: Literal["attended", "no_show"]


class ClassNoteUpsert(BaseModel):
    rating: Optional[int] = Field(None, ge=1, le=5)
    notes: Optional[str] = Field(None, max_length=2000)


class ClassNote(BaseModel):
    id: int
    booking_id: int
    coach_id: int
    rating: Optional[int] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class RosterEntry(BaseModel):
    booking_id: int
    user_id: int
    member_name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    child_id: Optional[int] = None
    child_name: Optional[str] = None
    booked_for: str
    status: BookingStatus
    attendance_marked_at: Optional[datetime] = None
    has_note: bool = False


class ClassRoster(BaseModel):
    class_instance: ClassInstanceBrief
    capacity: int
    booked_count: int
    bookings: List[RosterEntry]


class MemberDashboard(BaseModel):
    total_credits: int
    active_packages: List[DashboardPackage]
    expired_packages: List[MemberPackage]
    upcoming_bookings: List[Booking]
    past_bookings: List[Booking]
