from sqlalchemy import Column, Integer, Text, Enum, ForeignKey, UniqueConstraint, CheckConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import enum

from app.db.base_class import Base
from app.db.types import UTCDateTime


class BookingStatus(str, enum.Enum):
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    ATTENDED = "attended"
    NO_SHOW = "no_show"


class Booking(Base):
    """Reserva de un miembro (o de su hijo) en una clase; consume un crédito"""
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    class_instance_id = Column(Integer, ForeignKey("class_instances.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    child_id = Column(Integer, ForeignKey("children.id", ondelete="CASCADE"), nullable=True)
    member_package_id = Column(Integer, ForeignKey("member_packages.id"), nullable=False)
    status = Column(Enum(BookingStatus), default=BookingStatus.CONFIRMED, nullable=False, index=True)
    booked_at = Column(UTCDateTime, server_default=func.now())
    cancelled_at = Column(UTCDateTime, nullable=True)
    attendance_marked_at = Column(UTCDateTime, nullable=True)

    class_instance = relationship("ClassInstance", back_populates="bookings")
    user = relationship("User", back_populates="bookings")
    child = relationship("Child", back_populates="bookings")
    member_package = relationship("MemberPackage", back_populates="bookings")
    note = relationship("ClassNote", back_populates="booking", uselist=False, cascade="all, delete-orphan")

    __table_args__ = (
        UniqueConstraint("class_instance_id", "user_id", "child_id", name="uq_booking_class_user_child"),
    )

    @property
    def booked_for(self) -> str:
        return self.child.full_name if self.child else "Self"


class ClassNote(Base):
    """Nota del entrenador sobre el desempeño en una reserva (una por reserva)"""
    __tablename__ = "class_notes"

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id", ondelete="CASCADE"), unique=True, nullable=False)
    coach_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    rating = Column(Integer, nullable=True)
    notes = Column(Text, nullable=True)

    created_at = Column(UTCDateTime, server_default=func.now())
    updated_at = Column(UTCDateTime, onupdate=func.now())

    booking = relationship("Booking", back_populates="note")
    coach = relationship("User")

    __table_args__ = (
        CheckConstraint("rating IS NULL OR (rating >= 1 AND rating <= 5)", name="ck_class_notes_rating"),
    )
