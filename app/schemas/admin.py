from typing import List, Optional
from datetime import datetime
from pydantic import BaseModel

from app.models.credit import CreditTransactionType
from app.schemas.booking import Booking
from app.schemas.package import MemberPackage
from app.schemas.payment import Payment
from app.schemas.schedule import ClassInstance
from app.schemas.user import Child, User


class CreditTransaction(BaseModel):
    id: int
    member_package_id: int
    booking_id: Optional[int] = None
    transaction_type: CreditTransactionType
    credits_change: int
    balance_after: int
    notes: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class MemberDetails(User):
    total_credits: int = 0
    children: List[Child] = []
    packages: List[MemberPackage] = []
    bookings: List[Booking] = []
    payments: List[Payment] = []
    credit_history: List[CreditTransaction] = []


class CoachSummary(User):
    upcoming_classes: int = 0


class CoachDetails(User):
    total_classes: int = 0
    upcoming_classes: List[ClassInstance] = []
    recent_classes: List[ClassInstance] = []


class MemberProfile(BaseModel):
    """Ficha de un miembro vista por un entrenador"""
    id: int
    first_name: str
    last_name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    children: List[Child] = []
    attendance_history: List[Booking] = []
    total_attended: int = 0
    total_no_shows: int = 0


class UserActionResponse(BaseModel):
    message: str
    user: User
