from sqlalchemy import Boolean, Column, Integer, String, Enum, ForeignKey, CheckConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import enum

from app.db.base_class import Base
from app.db.types import UTCDateTime


class UserRole(str, enum.Enum):
    MEMBER = "member"  # Miembro regular, compra paquetes y reserva clases
    COACH = "coach"    # Entrenador asignado a clases
    ADMIN = "admin"    # Administrador del club


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=True)  # Null para cuentas sin contraseña
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    phone = Column(String(20), nullable=True)
    role = Column(Enum(UserRole), default=UserRole.MEMBER, nullable=False, index=True)

    # Estado de la cuenta
    is_paused = Column(Boolean, default=False, nullable=False)
    is_frozen = Column(Boolean, default=False, nullable=False)
    deleted_at = Column(UTCDateTime, nullable=True)  # Borrado lógico

    created_at = Column(UTCDateTime, server_default=func.now())
    updated_at = Column(UTCDateTime, onupdate=func.now())

    children = relationship("Child", back_populates="parent", cascade="all, delete-orphan")
    member_packages = relationship("MemberPackage", back_populates="user")
    payments = relationship("Payment", back_populates="user", foreign_keys="Payment.user_id")
    bookings = relationship("Booking", back_populates="user")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None


class Child(Base):
    """Hijo de un miembro; se puede reservar en su nombre con los créditos del padre"""
    __tablename__ = "children"

    id = Column(Integer, primary_key=True, index=True)
    parent_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    age = Column(Integer, nullable=False)

    created_at = Column(UTCDateTime, server_default=func.now())
    updated_at = Column(UTCDateTime, onupdate=func.now())

    parent = relationship("User", back_populates="children")
    # Las reservas que queden se borran con el hijo
    bookings = relationship("Booking", back_populates="child", cascade="all, delete-orphan")

    __table_args__ = (
        CheckConstraint("age >= 1 AND age <= 100", name="ck_children_age_range"),
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
