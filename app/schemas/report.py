from typing import List, Optional
from datetime import date, datetime
from decimal import Decimal
from pydantic import BaseModel


class AttendanceClassRow(BaseModel):
    class_instance_id: int
    class_name: str
    location: str
    coach: str
    start_time: datetime
    total_attendees: int
    attended: int
    no_shows: int
    no_show_rate: float


class AttendanceDetailRow(BaseModel):
    booking_id: int
    member_name: str
    booked_for: str
    class_name: str
    location: str
    coach: str
    start_time: datetime
    status: str


class AttendanceReport(BaseModel):
    start_date: date
    end_date: date
    total_bookings: int
    total_attended: int
    total_no_shows: int
    no_show_rate: float
    by_class: List[AttendanceClassRow]
    top_classes: List[AttendanceClassRow]
    details: List[AttendanceDetailRow]


class RevenuePackageRow(BaseModel):
    package_id: int
    package_name: str
    session_count: int
    sales_count: int
    total_revenue: Decimal


class RevenueLocationRow(BaseModel):
    location_id: Optional[int] = None
    location_name: str
    sales_count: int
    total_revenue: Decimal


class RevenueReport(BaseModel):
    start_date: date
    end_date: date
    total_revenue: Decimal
    total_vat: Decimal
    approved_count: int
    pending_count: int
    pending_amount: Decimal
    by_package: List[RevenuePackageRow]
    by_location: List[RevenueLocationRow]


class DashboardStats(BaseModel):
    total_members: int
    total_coaches: int
    pending_payments: int
    total_bookings: int
    today_bookings: int
    week_bookings: int
    upcoming_classes: int
    today_classes: int
    total_revenue: Decimal
    month_revenue: Decimal
