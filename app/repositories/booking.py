from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import case, func
from sqlalchemy.orm import Session, joinedload

from app.models.booking import Booking, BookingStatus, ClassNote
from app.models.schedule import ClassInstance
from app.repositories.base import BaseRepository
from app.schemas.booking import BookingCreate, ClassNoteUpsert


class BookingRepository(BaseRepository[Booking, BookingCreate, BookingCreate]):
    def _with_class(self, db: Session):
        return db.query(Booking).options(
            joinedload(Booking.child),
            joinedload(Booking.class_instance).joinedload(ClassInstance.class_type),
            joinedload(Booking.class_instance).joinedload(ClassInstance.coach),
            joinedload(Booking.class_instance).joinedload(ClassInstance.location),
        )

    def get_with_class(self, db: Session, id: int) -> Optional[Booking]:
        return self._with_class(db).filter(Booking.id == id).first()

    def get_by_triple(
        self, db: Session, *, class_instance_id: int, user_id: int, child_id: Optional[int]
    ) -> Optional[Booking]:
        """
        Reserva existente para (clase, miembro, hijo); child_id None = el propio miembro.

        Si hay varias, la no cancelada va primero.
        """
        query = db.query(Booking).filter(
            Booking.class_instance_id == class_instance_id,
            Booking.user_id == user_id,
        )
        if child_id is None:
            query = query.filter(Booking.child_id.is_(None))
        else:
            query = query.filter(Booking.child_id == child_id)
        return query.order_by(
            case((Booking.status == BookingStatus.CANCELLED, 1), else_=0),
            Booking.id.desc(),
        ).first()

    def count_confirmed(self, db: Session, *, class_instance_id: int) -> int:
        return (
            db.query(func.count(Booking.id))
            .filter(Booking.class_instance_id == class_instance_id, Booking.status == BookingStatus.CONFIRMED)
            .scalar()
            or 0
        )

    def get_confirmed_for_class(self, db: Session, *, class_instance_id: int) -> List[Booking]:
        return (
            db.query(Booking)
            .filter(Booking.class_instance_id == class_instance_id, Booking.status == BookingStatus.CONFIRMED)
            .all()
        )

    def get_roster(self, db: Session, *, class_instance_id: int) -> List[Booking]:
        """Reservas no canceladas de una clase con miembro, hijo y nota"""
        return (
            db.query(Booking)
            .options(joinedload(Booking.user), joinedload(Booking.child), joinedload(Booking.note))
            .filter(Booking.class_instance_id == class_instance_id, Booking.status != BookingStatus.CANCELLED)
            .order_by(Booking.booked_at, Booking.id)
            .all()
        )

    def get_confirmed_ids_for_classes(
        self, db: Session, *, user_id: int, class_instance_ids: List[int]
    ) -> Dict[int, int]:
        """{class_instance_id: booking_id} de las reservas confirmadas del propio miembro (sin hijo)"""
        if not class_instance_ids:
            return {}
        rows = (
            db.query(Booking.class_instance_id, Booking.id)
            .filter(
                Booking.user_id == user_id,
                Booking.child_id.is_(None),
                Booking.status == BookingStatus.CONFIRMED,
                Booking.class_instance_id.in_(class_instance_ids),
            )
            .all()
        )
        return {class_instance_id: booking_id for class_instance_id, booking_id in rows}

    def get_upcoming_for_user(self, db: Session, *, user_id: int, now: datetime) -> List[Booking]:
        return (
            self._with_class(db)
            .join(Booking.class_instance)
            .filter(
                Booking.user_id == user_id,
                Booking.status == BookingStatus.CONFIRMED,
                ClassInstance.start_time > now,
                ClassInstance.is_cancelled.is_(False),
            )
            .order_by(ClassInstance.start_time.asc())
            .all()
        )

    def get_past_for_user(self, db: Session, *, user_id: int, now: datetime, limit: int = 10) -> List[Booking]:
        return (
            self._with_class(db)
            .join(Booking.class_instance)
            .filter(
                Booking.user_id == user_id,
                (Booking.status.in_([BookingStatus.ATTENDED, BookingStatus.NO_SHOW]))
                | ((Booking.status == BookingStatus.CONFIRMED) & (ClassInstance.start_time <= now)),
            )
            .order_by(ClassInstance.start_time.desc())
            .limit(limit)
            .all()
        )

    def get_for_user(
        self, db: Session, *, user_id: int, coach_id: Optional[int] = None, limit: int = 50
    ) -> List[Booking]:
        """Historial de reservas de un miembro; con coach_id solo las clases de ese entrenador"""
        query = self._with_class(db).join(Booking.class_instance).filter(Booking.user_id == user_id)
        if coach_id is not None:
            query = query.filter(ClassInstance.coach_id == coach_id)
        return (
            query
            .order_by(ClassInstance.start_time.desc())
            .limit(limit)
            .all()
        )

    def get_future_confirmed_for_child(self, db: Session, *, child_id: int, now: datetime) -> List[Booking]:
        return (
            db.query(Booking)
            .join(Booking.class_instance)
            .filter(
                Booking.child_id == child_id,
                Booking.status == BookingStatus.CONFIRMED,
                ClassInstance.start_time > now,
            )
            .all()
        )

    def count_upcoming_for_child(self, db: Session, *, child_id: int, now: datetime) -> int:
        return (
            db.query(func.count(Booking.id))
            .join(Booking.class_instance)
            .filter(
                Booking.child_id == child_id,
                Booking.status == BookingStatus.CONFIRMED,
                ClassInstance.start_time > now,
                ClassInstance.is_cancelled.is_(False),
            )
            .scalar()
            or 0
        )

    def search(
        self,
        db: Session,
        *,
        class_instance_id: Optional[int] = None,
        user_id: Optional[int] = None,
        status: Optional[BookingStatus] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        skip: int = 0,
        limit: int = 200
    ) -> List[Booking]:
        """
        Listado de reservas para administración, la clase más reciente primero.

        Args:
            start/end: Rango UTC [start, end) sobre el inicio de la clase
        """
        query = self._with_class(db).options(joinedload(Booking.user)).join(Booking.class_instance)
        if class_instance_id is not None:
            query = query.filter(Booking.class_instance_id == class_instance_id)
        if user_id is not None:
            query = query.filter(Booking.user_id == user_id)
        if status is not None:
            query = query.filter(Booking.status == status)
        if start is not None:
            query = query.filter(ClassInstance.start_time >= start)
        if end is not None:
            query = query.filter(ClassInstance.start_time < end)
        return query.order_by(ClassInstance.start_time.desc(), Booking.id.desc()).offset(skip).limit(limit).all()

    def get_attendance_between(self, db: Session, *, start: datetime, end: datetime) -> List[Booking]:
        """Reservas con asistencia marcada (attended / no_show) de clases en [start, end)"""
        return (
            self._with_class(db)
            .options(joinedload(Booking.user))
            .join(Booking.class_instance)
            .filter(
                Booking.status.in_([BookingStatus.ATTENDED, BookingStatus.NO_SHOW]),
                ClassInstance.start_time >= start,
                ClassInstance.start_time < end,
            )
            .order_by(ClassInstance.start_time)
            .all()
        )

    def count_not_cancelled(self, db: Session, *, start: Optional[datetime] = None, end: Optional[datetime] = None) -> int:
        query = db.query(func.count(Booking.id)).join(Booking.class_instance).filter(
            Booking.status != BookingStatus.CANCELLED
        )
        if start is not None:
            query = query.filter(ClassInstance.start_time >= start)
        if end is not None:
            query = query.filter(ClassInstance.start_time < end)
        return query.scalar() or 0


class ClassNoteRepository(BaseRepository[ClassNote, ClassNoteUpsert, ClassNoteUpsert]):
    def get_by_booking(self, db: Session, *, booking_id: int) -> Optional[ClassNote]:
        return db.query(ClassNote).filter(ClassNote.booking_id == booking_id).first()

    def get_for_class(self, db: Session, *, class_instance_id: int) -> List[ClassNote]:
        return (
            db.query(ClassNote)
            .join(ClassNote.booking)
            .filter(Booking.class_instance_id == class_instance_id)
            .order_by(ClassNote.id)
            .all()
        )


booking_repository = BookingRepository(Booking)
class_note_repository = ClassNoteRepository(ClassNote)
