from sqlalchemy import Column, Integer, String, Boolean, ForeignKey, Text, Date, CheckConstraint, Index
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import enum
import sqlalchemy as sa

from app.db.base_class import Base
from app.db.types import UTCDateTime


class DayOfWeek(int, enum.Enum):
    SUNDAY = 0
    MONDAY = 1
    TUESDAY = 2
    WEDNESDAY = 3
    THURSDAY = 4
    FRIDAY = 5
    SATURDAY = 6


DAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]


class ClassType(Base):
    """Tipo de clase (Boxing, Kickboxing, Kids...) con su duración"""
    __tablename__ = "class_types"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), unique=True, nullable=False)
    description = Column(Text, nullable=True)
    duration_minutes = Column(Integer, nullable=False)

    created_at = Column(UTCDateTime, server_default=func.now())

    instances = relationship("ClassInstance", back_populates="class_type")
    schedules = relationship("ClassSchedule", back_populates="class_type")


class ClassSchedule(Base):
    """Plantilla semanal a partir de la cual se generan las clases de cada mes.

    day_of_week: 0=domingo ... 6=sábado. start_time: "HH:MM" en hora local del club.
    Un horario con is_override=True sustituye temporalmente a los horarios base
    con la misma sede, día y hora entre override_start_date y override_end_date.
    """
    __tablename__ = "class_schedules"

    id = Column(Integer, primary_key=True, index=True)
    class_type_id = Column(Integer, ForeignKey("class_types.id"), nullable=False)
    coach_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    location_id = Column(Integer, ForeignKey("locations.id"), nullable=False)
    day_of_week = Column(Integer, nullable=False)
    start_time = Column(String(5), nullable=False)
    capacity = Column(Integer, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    # Horarios temporales
    is_override = Column(Boolean, default=False, nullable=False)
    override_start_date = Column(Date, nullable=True)
    override_end_date = Column(Date, nullable=True)
    base_schedule_id = Column(Integer, ForeignKey("class_schedules.id"), nullable=True)

    created_at = Column(UTCDateTime, server_default=func.now())
    updated_at = Column(UTCDateTime, onupdate=func.now())

    class_type = relationship("ClassType", back_populates="schedules")
    coach = relationship("User")
    location = relationship("Location", back_populates="class_schedules")
    base_schedule = relationship("ClassSchedule", remote_side=[id])
    instances = relationship("ClassInstance", back_populates="schedule")

    __table_args__ = (
        CheckConstraint("day_of_week >= 0 AND day_of_week <= 6", name="ck_class_schedules_day"),
        CheckConstraint("capacity >= 1", name="ck_class_schedules_capacity"),
        Index(
            "uq_class_schedules_base_slot",
            "class_type_id", "coach_id", "location_id", "day_of_week", "start_time",
            unique=True,
            postgresql_where=sa.text("is_override = false"),
            sqlite_where=sa.text("is_override = 0"),
        ),
    )

    @property
    def day_name(self) -> str:
        return DAY_NAMES[self.day_of_week]


class ClassInstance(Base):
    """Clase concreta con fecha; start_time y end_time en UTC"""
    __tablename__ = "class_instances"

    id = Column(Integer, primary_key=True, index=True)
    class_type_id = Column(Integer, ForeignKey("class_types.id"), nullable=False)
    coach_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    location_id = Column(Integer, ForeignKey("locations.id"), nullable=False)
    schedule_id = Column(Integer, ForeignKey("class_schedules.id", ondelete="SET NULL"), nullable=True, index=True)
    start_time = Column(UTCDateTime, nullable=False, index=True)
    end_time = Column(UTCDateTime, nullable=False)
    capacity = Column(Integer, nullable=False)
    is_cancelled = Column(Boolean, default=False, nullable=False)

    created_at = Column(UTCDateTime, server_default=func.now())
    updated_at = Column(UTCDateTime, onupdate=func.now())

    class_type = relationship("ClassType", back_populates="instances")
    coach = relationship("User")
    location = relationship("Location", back_populates="class_instances")
    schedule = relationship("ClassSchedule", back_populates="instances")
    bookings = relationship("Booking", back_populates="class_instance", cascade="all, delete-orphan")

    __table_args__ = (
        Index("ix_class_instances_location_start", "location_id", "start_time"),
    )
