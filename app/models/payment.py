from sqlalchemy import Boolean, Column, Integer, String, Text, Numeric, Enum, ForeignKey
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import enum

from app.db.base_class import Base
from app.db.types import UTCDateTime


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class Payment(Base):
    """Comprobante de pago enviado por un miembro, pendiente de revisión"""
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    package_id = Column(Integer, ForeignKey("session_packages.id"), nullable=False)
    location_id = Column(Integer, ForeignKey("locations.id"), nullable=True)
    amount = Column(Numeric(10, 2), nullable=False)  # Precio sin IVA
    vat_amount = Column(Numeric(10, 2), nullable=False, default=0)
    vat_included = Column(Boolean, default=False, nullable=False)
    total_amount = Column(Numeric(10, 2), nullable=False)
    screenshot_path = Column(String(500), nullable=False)
    status = Column(Enum(PaymentStatus), default=PaymentStatus.PENDING, nullable=False, index=True)
    rejection_reason = Column(Text, nullable=True)
    reviewed_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    reviewed_at = Column(UTCDateTime, nullable=True)

    created_at = Column(UTCDateTime, server_default=func.now())
    updated_at = Column(UTCDateTime, onupdate=func.now())

    user = relationship("User", back_populates="payments", foreign_keys=[user_id])
    reviewer = relationship("User", foreign_keys=[reviewed_by])
    package = relationship("SessionPackage")
    location = relationship("Location")
