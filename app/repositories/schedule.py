from typing import List, Optional, Dict
from datetime import datetime, timezone
from sqlalchemy.orm import Session, joinedload
from sqlalchemy import func

from app.repositories.base import BaseRepository
from app.models.booking import Booking, BookingStatus
from app.models.schedule import ClassType, ClassSchedule, ClassInstance
from app.schemas.schedule import (
    ClassTypeCreate,
    ScheduleCreate,
    ScheduleUpdate,
    ClassInstanceCreate,
    ClassInstanceUpdate,
)


class ClassTypeRepository(BaseRepository[ClassType, ClassTypeCreate, ClassTypeCreate]):
    def get_by_name(self, db: Session, *, name: str) -> Optional[ClassType]:
        return db.query(ClassType).filter(func.lower(ClassType.name) == name.strip().lower()).first()

    def get_all(self, db: Session) -> List[ClassType]:
        return db.query(ClassType).order_by(ClassType.name).all()


class ClassScheduleRepository(BaseRepository[ClassSchedule, ScheduleCreate, ScheduleUpdate]):
    def _with_relations(self, db: Session):
        return db.query(ClassSchedule).options(
            joinedload(ClassSchedule.class_type),
            joinedload(ClassSchedule.coach),
            joinedload(ClassSchedule.location),
        )

    def get_filtered(
        self,
        db: Session,
        *,
        location_id: Optional[int] = None,
        include_inactive: bool = False,
        include_overrides: bool = True
    ) -> List[ClassSchedule]:
        """
        Horarios ordenados por sede, día y hora.

        Args:
            location_id: Filtrar por sede
            include_inactive: Incluir horarios desactivados
            include_overrides: Incluir horarios temporales
        """
        query = self._with_relations(db)
        if location_id is not None:
            query = query.filter(ClassSchedule.location_id == location_id)
        if not include_inactive:
            query = query.filter(ClassSchedule.is_active.is_(True))
        if not include_overrides:
            query = query.filter(ClassSchedule.is_override.is_(False))
        return query.order_by(
            ClassSchedule.location_id, ClassSchedule.day_of_week, ClassSchedule.start_time
        ).all()

    def find_duplicate(
        self,
        db: Session,
        *,
        class_type_id: int,
        coach_id: int,
        location_id: int,
        day_of_week: int,
        start_time: str,
        exclude_id: Optional[int] = None
    ) -> Optional[ClassSchedule]:
        """Horario base (no temporal) con la misma combinación de tipo, entrenador, sede, día y hora"""
        query = db.query(ClassSchedule).filter(
            ClassSchedule.class_type_id == class_type_id,
            ClassSchedule.coach_id == coach_id,
            ClassSchedule.location_id == location_id,
            ClassSchedule.day_of_week == day_of_week,
            ClassSchedule.start_time == start_time,
            ClassSchedule.is_override.is_(False),
        )
        if exclude_id is not None:
            query = query.filter(ClassSchedule.id != exclude_id)
        return query.first()

    def get_active_for_generation(self, db: Session) -> List[ClassSchedule]:
        return (
            db.query(ClassSchedule)
            .options(joinedload(ClassSchedule.class_type))
            .filter(ClassSchedule.is_active.is_(True))
            .filter(ClassSchedule.location.has(is_active=True))
            .order_by(ClassSchedule.id)
            .all()
        )

    def get_active_by_location(self, db: Session, *, location_id: int) -> List[ClassSchedule]:
        return (
            db.query(ClassSchedule)
            .filter(ClassSchedule.location_id == location_id, ClassSchedule.is_active.is_(True))
            .all()
        )

    def count_instances(self, db: Session, schedule_ids: List[int]) -> Dict[int, int]:
        if not schedule_ids:
            return {}
        rows = (
            db.query(ClassInstance.schedule_id, func.count(ClassInstance.id))
            .filter(ClassInstance.schedule_id.in_(schedule_ids))
            .group_by(ClassInstance.schedule_id)
            .all()
        )
        return {schedule_id: count for schedule_id, count in rows}


class ClassInstanceRepository(BaseRepository[ClassInstance, ClassInstanceCreate, ClassInstanceUpdate]):
    def _with_relations(self, db: Session):
        return db.query(ClassInstance).options(
            joinedload(ClassInstance.class_type),
            joinedload(ClassInstance.coach),
            joinedload(ClassInstance.location),
        )

    def get_with_relations(self, db: Session, id: int) -> Optional[ClassInstance]:
        return self._with_relations(db).filter(ClassInstance.id == id).first()

    def lock(self, db: Session, id: int) -> Optional[ClassInstance]:
        """Bloquea la fila de la clase hasta el fin de la transacción; sin joins, que FOR UPDATE no admite"""
        return db.query(ClassInstance).filter(ClassInstance.id == id).with_for_update().first()

    def get_by_date_range(
        self,
        db: Session,
        *,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        location_id: Optional[int] = None,
        coach_id: Optional[int] = None,
        include_cancelled: bool = False,
        skip: int = 0,
        limit: int = 500
    ) -> List[ClassInstance]:
        """
        Obtener clases cuyo inicio cae en [start_date, end_date).

        Args:
            db: Sesión de base de datos
            start_date: Inicio del rango en UTC (opcional)
            end_date: Fin exclusivo del rango en UTC (opcional)
            location_id: Filtrar por sede
            coach_id: Filtrar por entrenador
            include_cancelled: Incluir clases canceladas
        """
        query = self._with_relations(db)

        # Asegurar datetimes aware en UTC para comparaciones coherentes
        if start_date is not None:
            if start_date.tzinfo is None:
                start_date = start_date.replace(tzinfo=timezone.utc)
            query = query.filter(ClassInstance.start_time >= start_date)
        if end_date is not None:
            if end_date.tzinfo is None:
                end_date = end_date.replace(tzinfo=timezone.utc)
            query = query.filter(ClassInstance.start_time < end_date)
        if location_id is not None:
            query = query.filter(ClassInstance.location_id == location_id)
        if coach_id is not None:
            query = query.filter(ClassInstance.coach_id == coach_id)
        if not include_cancelled:
            query = query.filter(ClassInstance.is_cancelled.is_(False))

        return query.order_by(ClassInstance.start_time, ClassInstance.id).offset(skip).limit(limit).all()

    def get_in_window(self, db: Session, *, start: datetime, end: datetime) -> List[ClassInstance]:
        """Todas las clases (incluidas canceladas) con inicio en [start, end), sin relaciones"""
        return (
            db.query(ClassInstance)
            .filter(ClassInstance.start_time >= start, ClassInstance.start_time < end)
            .all()
        )

    def get_future_by_location(self, db: Session, *, location_id: int, now: datetime) -> List[ClassInstance]:
        return (
            db.query(ClassInstance)
            .filter(
                ClassInstance.location_id == location_id,
                ClassInstance.start_time > now,
                ClassInstance.is_cancelled.is_(False),
            )
            .all()
        )

    def get_for_schedule_from(self, db: Session, *, schedule_id: int, cutoff: datetime) -> List[ClassInstance]:
        return (
            db.query(ClassInstance)
            .filter(ClassInstance.schedule_id == schedule_id, ClassInstance.start_time >= cutoff)
            .all()
        )

    def count_bookings(self, db: Session, instance_ids: List[int]) -> Dict[int, Dict[str, int]]:
        """
        Conteo de reservas por clase y estado.

        Returns:
            {class_instance_id: {"confirmed": n, "attended": n, "no_show": n, "cancelled": n}}
        """
        counts: Dict[int, Dict[str, int]] = {
            instance_id: {status.value: 0 for status in BookingStatus} for instance_id in instance_ids
        }
        if not instance_ids:
            return counts
        rows = (
            db.query(Booking.class_instance_id, Booking.status, func.count(Booking.id))
            .filter(Booking.class_instance_id.in_(instance_ids))
            .group_by(Booking.class_instance_id, Booking.status)
            .all()
        )
        for instance_id, status, count in rows:
            key = status.value if isinstance(status, BookingStatus) else str(status)
            counts[instance_id][key] = count
        return counts

    def count_upcoming_by_coach(self, db: Session, *, coach_ids: List[int], now: datetime) -> Dict[int, int]:
        if not coach_ids:
            return {}
        rows = (
            db.query(ClassInstance.coach_id, func.count(ClassInstance.id))
            .filter(
                ClassInstance.coach_id.in_(coach_ids),
                ClassInstance.start_time > now,
                ClassInstance.is_cancelled.is_(False),
            )
            .group_by(ClassInstance.coach_id)
            .all()
        )
        return {coach_id: count for coach_id, count in rows}

    def count_upcoming(self, db: Session, *, start: datetime, end: Optional[datetime] = None) -> int:
        query = db.query(func.count(ClassInstance.id)).filter(
            ClassInstance.start_time >= start, ClassInstance.is_cancelled.is_(False)
        )
        if end is not None:
            query = query.filter(ClassInstance.start_time < end)
        return query.scalar() or 0


class_type_repository = ClassTypeRepository(ClassType)
class_schedule_repository = ClassScheduleRepository(ClassSchedule)
class_instance_repository = ClassInstanceRepository(ClassInstance)
