from typing import Optional, List, Literal
from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel, Field, field_validator


class PackageBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    session_count: int = Field(..., ge=1)
    price: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    expiry_days: int = Field(..., ge=1)
    include_vat: bool = False

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v):
        return v.strip() if isinstance(v, str) else v


class PackageCreate(PackageBase):
    is_active: bool = True


class PackageUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    session_count: Optional[int] = Field(None, ge=1)
    price: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    expiry_days: Optional[int] = Field(None, ge=1)
    include_vat: Optional[bool] = None
    is_active: Optional[bool] = None


class PackageBrief(BaseModel):
    id: int
    name: str
    session_count: int

    class Config:
        from_attributes = True


class Package(PackageBase):
    id: int
    is_active: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# Precios por sede
class LocationPriceSet(BaseModel):
    price: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    include_vat: bool = False
    is_active: bool = True


class LocationPrice(BaseModel):
    id: int
    location_id: int
    package_id: int
    location_name: Optional[str] = None
    price: Decimal
    include_vat: bool
    is_active: bool

    class Config:
        from_attributes = True


# Precios especiales de renovación por miembro
class MemberPriceSet(BaseModel):
    price: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    is_active: bool = True


class MemberPrice(BaseModel):
    id: int
    user_id: int
    package_id: int
    package_name: Optional[str] = None
    price: Decimal
    is_active: bool

    class Config:
        from_attributes = True


# Paquetes comprados
class MemberPackage(BaseModel):
    id: int
    package_id: int
    package: Optional[PackageBrief] = None
    sessions_remaining: int
    sessions_total: int
    purchase_date: Optional[datetime] = None
    expiry_date: datetime
    is_expired: bool

    class Config:
        from_attributes = True


class DashboardPackage(MemberPackage):
    days_until_expiry: int = 0
    is_expiring_soon: bool = False


# Catálogo visto por el miembro, con precio resuelto
class PackageOffer(BaseModel):
    id: int
    name: str
    session_count: int
    expiry_days: int
    price: Decimal
    price_type: Literal["member", "location", "default"]
    default_price: Decimal
    member_price: Optional[Decimal] = None
    location_prices: List[LocationPrice] = []
    include_vat: bool
    vat_amount: Decimal
    total_price: Decimal


class PackageOfferList(BaseModel):
    packages: List[PackageOffer]
    is_renewal: bool
    has_special_renewal_prices: bool
