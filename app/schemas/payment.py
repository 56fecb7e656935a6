from typing import Optional
from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel, Field, field_validator

from app.models.payment import PaymentStatus
from app.schemas.location import LocationBrief
from app.schemas.package import MemberPackage, PackageBrief
from app.schemas.user import UserBrief


class Payment(BaseModel):
    id: int
    user_id: int
    package_id: int
    location_id: Optional[int] = None
    amount: Decimal
    vat_amount: Decimal
    vat_included: bool
    total_amount: Decimal
    screenshot_path: str
    status: PaymentStatus
    rejection_reason: Optional[str] = None
    reviewed_by: Optional[int] = None
    reviewed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    package: Optional[PackageBrief] = None
    location: Optional[LocationBrief] = None

    class Config:
        from_attributes = True


class PaymentWithUser(Payment):
    user: Optional[UserBrief] = None


class PaymentReject(BaseModel):
    rejection_reason: str = Field(..., min_length=1, max_length=1000)

    @field_validator("rejection_reason", mode="before")
    @classmethod
    def strip_reason(cls, v):
        return v.strip() if isinstance(v, str) else v


class PurchaseResponse(BaseModel):
    message: str
    payment: Payment


class PaymentApprovalResponse(BaseModel):
    message: str
    payment: Payment
    member_package: MemberPackage


class PaymentRejectionResponse(BaseModel):
    message: str
    payment: Payment
