from typing import Optional, List
from datetime import datetime
from pydantic import BaseModel, EmailStr, Field, field_validator
from app.models.user import UserRole


def _normalize_email(value):
    if isinstance(value, str):
        return value.strip().lower()
    return value


def _strip_name(value):
    if isinstance(value, str):
        value = value.strip()
        if not value:
            raise ValueError("El nombre no puede estar vacío")
    return value


# Propiedades compartidas
class UserBase(BaseModel):
    email: EmailStr
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    phone: Optional[str] = Field(None, max_length=20)

    normalize_email = field_validator("email", mode="before")(_normalize_email)
    strip_names = field_validator("first_name", "last_name", mode="before")(_strip_name)


# Registro de miembros (signup) y alta de entrenadores por el admin
class UserCreate(UserBase):
    password: str = Field(..., min_length=8, max_length=128)


class CoachCreate(UserCreate):
    pass


# Actualización desde el panel de administración
class UserUpdate(BaseModel):
    email: Optional[EmailStr] = None
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    phone: Optional[str] = Field(None, max_length=20)

    normalize_email = field_validator("email", mode="before")(_normalize_email)
    strip_names = field_validator("first_name", "last_name", mode="before")(_strip_name)


class UserBrief(BaseModel):
    id: int
    first_name: str
    last_name: str
    email: Optional[EmailStr] = None

    class Config:
        from_attributes = True


# Propiedades para retornar a través de API
class User(BaseModel):
    id: int
    email: EmailStr
    first_name: str
    last_name: str
    phone: Optional[str] = None
    role: UserRole
    is_paused: bool = False
    is_frozen: bool = False
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class MemberSummary(User):
    active_credits: int = 0
    children_count: int = 0


# Hijos de miembros
class ChildBase(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    age: int = Field(..., ge=1, le=100)

    strip_names = field_validator("first_name", "last_name", mode="before")(_strip_name)


class ChildCreate(ChildBase):
    pass


class ChildUpdate(BaseModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    age: Optional[int] = Field(None, ge=1, le=100)

    strip_names = field_validator("first_name", "last_name", mode="before")(_strip_name)


class Child(ChildBase):
    id: int
    parent_id: int
    created_at: Optional[datetime] = None
    upcoming_bookings_count: int = 0

    class Config:
        from_attributes = True


class ChildDeleteResponse(BaseModel):
    message: str
    refunded_bookings: int


class UserWithChildren(User):
    children: List[Child] = []
