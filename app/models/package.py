from sqlalchemy import Boolean, Column, Integer, String, Numeric, ForeignKey, UniqueConstraint, Index
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from app.db.base_class import Base
from app.db.types import UTCDateTime


class SessionPackage(Base):
    """Paquete de créditos que se puede comprar"""
    __tablename__ = "session_packages"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    session_count = Column(Integer, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)  # Precio por defecto
    expiry_days = Column(Integer, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    include_vat = Column(Boolean, default=False, nullable=False)

    created_at = Column(UTCDateTime, server_default=func.now())
    updated_at = Column(UTCDateTime, onupdate=func.now())

    member_packages = relationship("MemberPackage", back_populates="package")
    location_prices = relationship("LocationPackagePrice", back_populates="package", cascade="all, delete-orphan")
    member_prices = relationship("MemberPackagePrice", back_populates="package", cascade="all, delete-orphan")


class MemberPackage(Base):
    """Paquete comprado por un miembro: saldo de créditos con fecha de caducidad"""
    __tablename__ = "member_packages"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    package_id = Column(Integer, ForeignKey("session_packages.id"), nullable=False)
    sessions_remaining = Column(Integer, nullable=False)
    sessions_total = Column(Integer, nullable=False)
    purchase_date = Column(UTCDateTime, server_default=func.now())
    expiry_date = Column(UTCDateTime, nullable=False)
    is_expired = Column(Boolean, default=False, nullable=False)

    created_at = Column(UTCDateTime, server_default=func.now())

    user = relationship("User", back_populates="member_packages")
    package = relationship("SessionPackage", back_populates="member_packages")
    bookings = relationship("Booking", back_populates="member_package")
    transactions = relationship("CreditTransaction", back_populates="member_package")

    __table_args__ = (
        Index("ix_member_packages_user_expired_expiry", "user_id", "is_expired", "expiry_date"),
    )


class LocationPackagePrice(Base):
    """Precio específico de un paquete en una sede"""
    __tablename__ = "location_package_prices"

    id = Column(Integer, primary_key=True, index=True)
    location_id = Column(Integer, ForeignKey("locations.id", ondelete="CASCADE"), nullable=False)
    package_id = Column(Integer, ForeignKey("session_packages.id", ondelete="CASCADE"), nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    include_vat = Column(Boolean, default=False, nullable=False)

    created_at = Column(UTCDateTime, server_default=func.now())
    updated_at = Column(UTCDateTime, onupdate=func.now())

    location = relationship("Location", back_populates="package_prices")
    package = relationship("SessionPackage", back_populates="location_prices")

    __table_args__ = (
        UniqueConstraint("location_id", "package_id", name="uq_location_package_price"),
    )

    @property
    def location_name(self) -> str:
        return self.location.name if self.location else None


class MemberPackagePrice(Base):
    """Precio especial de renovación de un paquete para un miembro concreto"""
    __tablename__ = "member_package_prices"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    package_id = Column(Integer, ForeignKey("session_packages.id", ondelete="CASCADE"), nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(UTCDateTime, server_default=func.now())
    updated_at = Column(UTCDateTime, onupdate=func.now())

    user = relationship("User")
    package = relationship("SessionPackage", back_populates="member_prices")

    __table_args__ = (
        UniqueConstraint("user_id", "package_id", name="uq_member_package_price"),
    )

    @property
    def package_name(self) -> str:
        return self.package.name if self.package else None
