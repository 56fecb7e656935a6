from sqlalchemy import Column, Integer, Text, Enum, ForeignKey
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import enum

from app.db.base_class import Base
from app.db.types import UTCDateTime


class CreditTransactionType(str, enum.Enum):
    PURCHASE = "purchase"
    BOOKING = "booking"
    REFUND = "refund"
    EXPIRY = "expiry"


class CreditTransaction(Base):
    """Movimiento del libro de créditos; balance_after es el saldo del paquete tras el cambio"""
    __tablename__ = "credit_transactions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    member_package_id = Column(Integer, ForeignKey("member_packages.id", ondelete="CASCADE"), nullable=False)
    booking_id = Column(Integer, ForeignKey("bookings.id", ondelete="SET NULL"), nullable=True)
    transaction_type = Column(Enum(CreditTransactionType), nullable=False)
    credits_change = Column(Integer, nullable=False)
    balance_after = Column(Integer, nullable=False)
    notes = Column(Text, nullable=True)

    created_at = Column(UTCDateTime, server_default=func.now())

    user = relationship("User")
    member_package = relationship("MemberPackage", back_populates="transactions")
    booking = relationship("Booking")
