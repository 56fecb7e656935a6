import logging
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional

from dateutil.relativedelta import relativedelta
from sqlalchemy.orm import Session

from app.core.exceptions import ConflictException, ForbiddenException, NotFoundException, ValidationException
from app.core.timezone_utils import club_today, local_day_bounds_utc, normalize_to_utc
from app.db.types import utcnow
from app.models.booking import BookingStatus
from app.models.schedule import ClassInstance, ClassType
from app.models.user import User, UserRole
from app.repositories.booking import booking_repository
from app.repositories.location import location_repository
from app.repositories.schedule import class_instance_repository, class_type_repository
from app.repositories.user import user_repository
from app.schemas.schedule import ClassInstanceCreate, ClassInstanceUpdate, ClassTypeCreate, RecurringRule
from app.services.booking import booking_service

logger = logging.getLogger(__name__)

MAX_OCCURRENCES = 52
DEFAULT_WINDOW_DAYS = 14


def _next_occurrence(start: datetime, frequency: str) -> datetime:
    if frequency == "daily":
        return start + timedelta(days=1)
    if frequency == "weekly":
        return start + timedelta(weeks=1)
    if frequency == "biweekly":
        return start + timedelta(weeks=2)
    return start + relativedelta(months=1)


def expand_recurrence(first_start: datetime, rule: Optional[RecurringRule]) -> List[datetime]:
    """
    Fechas de inicio de una clase con recurrencia opcional.

    Se generan como máximo count ocurrencias (o 52 si solo hay end_date) y se
    detiene al superar end_date.
    """
    if rule is None:
        return [first_start]

    limit = min(rule.count or MAX_OCCURRENCES, MAX_OCCURRENCES)
    starts: List[datetime] = []
    current = first_start
    while len(starts) < limit:
        if rule.end_date is not None and current.date() > rule.end_date:
            break
        starts.append(current)
        current = _next_occurrence(current, rule.frequency)
    return starts


class ClassService:
    # Tipos de clase

    def list_class_types(self, db: Session) -> List[ClassType]:
        return class_type_repository.get_all(db)

    def create_class_type(self, db: Session, *, class_type_in: ClassTypeCreate) -> ClassType:
        if class_type_repository.get_by_name(db, name=class_type_in.name):
            raise ConflictException("A class type with this name already exists", code="CLASS_TYPE_EXISTS")
        class_type = class_type_repository.create(db, obj_in=class_type_in)
        logger.info(f"Tipo de clase {class_type.id} creado: {class_type.name}")
        return class_type

    # Serialización con contadores

    def _with_counts(
        self, db: Session, instances: List[ClassInstance], *, user: Optional[User] = None
    ) -> List[Dict[str, Any]]:
        counts = class_instance_repository.count_bookings(db, [i.id for i in instances])

        own_bookings: Dict[int, int] = {}
        if user is not None:
            own_bookings = booking_repository.get_confirmed_ids_for_classes(
                db, user_id=user.id, class_instance_ids=[i.id for i in instances]
            )

        result = []
        for instance in instances:
            by_status = counts.get(instance.id, {})
            booked = by_status.get(BookingStatus.CONFIRMED.value, 0) + by_status.get(BookingStatus.ATTENDED.value, 0)
            result.append({
                "id": instance.id,
                "schedule_id": instance.schedule_id,
                "start_time": instance.start_time,
                "end_time": instance.end_time,
                "is_cancelled": instance.is_cancelled,
                "capacity": instance.capacity,
                "class_type": instance.class_type,
                "coach": instance.coach,
                "location": instance.location,
                "booked_count": booked,
                "available_spots": max(instance.capacity - booked, 0),
                "is_full": booked >= instance.capacity,
                "is_booked": instance.id in own_bookings,
                "booking_id": own_bookings.get(instance.id),
            })
        return result

    # Calendario público

    def get_schedule(
        self,
        db: Session,
        *,
        user: User,
        location_id: Optional[int] = None,
        coach_id: Optional[int] = None,
        day: Optional[date] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None
    ) -> List[Dict[str, Any]]:
        """
        Clases no canceladas ordenadas por inicio.

        Con `day` se devuelve ese día local; si no, el rango start_date..end_date
        (por defecto hoy + 14 días, ambos incluidos).
        """
        if day is not None:
            start, end = local_day_bounds_utc(day)
        else:
            first = start_date or club_today()
            last = end_date or first + timedelta(days=DEFAULT_WINDOW_DAYS)
            if last < first:
                raise ValidationException("end_date must be on or after start_date", code="INVALID_DATE_RANGE")
            start, _ = local_day_bounds_utc(first)
            _, end = local_day_bounds_utc(last)

        instances = class_instance_repository.get_by_date_range(
            db, start_date=start, end_date=end, location_id=location_id, coach_id=coach_id
        )
        return self._with_counts(db, instances, user=user)

    def get_availability(self, db: Session, *, class_instance_id: int) -> Dict[str, Any]:
        instance = class_instance_repository.get(db, class_instance_id)
        if not instance:
            raise NotFoundException("Class not found", code="CLASS_NOT_FOUND")
        counts = class_instance_repository.count_bookings(db, [instance.id])[instance.id]
        booked = counts[BookingStatus.CONFIRMED.value] + counts[BookingStatus.ATTENDED.value]
        return {
            "class_instance_id": instance.id,
            "capacity": instance.capacity,
            "booked_count": booked,
            "available_spots": max(instance.capacity - booked, 0),
            "is_full": booked >= instance.capacity,
            "is_cancelled": instance.is_cancelled,
            "start_time": instance.start_time,
        }

    # Administración de clases

    def list_classes(
        self,
        db: Session,
        *,
        location_id: Optional[int] = None,
        coach_id: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        include_cancelled: bool = False,
        upcoming_only: bool = False
    ) -> List[Dict[str, Any]]:
        start = end = None
        if start_date is not None:
            start, _ = local_day_bounds_utc(start_date)
        if end_date is not None:
            _, end = local_day_bounds_utc(end_date)
        if upcoming_only:
            now = utcnow()
            start = max(start, now) if start else now
        instances = class_instance_repository.get_by_date_range(
            db,
            start_date=start,
            end_date=end,
            location_id=location_id,
            coach_id=coach_id,
            include_cancelled=include_cancelled,
        )
        return self._with_counts(db, instances)

    def _check_refs(self, db: Session, *, class_type_id=None, coach_id=None, location_id=None) -> Optional[ClassType]:
        class_type = None
        if class_type_id is not None:
            class_type = class_type_repository.get(db, class_type_id)
            if not class_type:
                raise NotFoundException("Class type not found", code="CLASS_TYPE_NOT_FOUND")
        if coach_id is not None and not user_repository.get_active(db, coach_id, role=UserRole.COACH):
            raise NotFoundException("Coach not found or user is not a coach", code="COACH_NOT_FOUND")
        if location_id is not None and not location_repository.get_active_by_id(db, location_id):
            raise NotFoundException("Location not found or is inactive", code="LOCATION_NOT_FOUND")
        return class_type

    def create_classes(self, db: Session, *, class_in: ClassInstanceCreate) -> Dict[str, Any]:
        """
        Crea una clase suelta o una serie recurrente (máximo 52 ocurrencias).

        Un start_time naive se interpreta en hora local del club.
        """
        class_type = self._check_refs(
            db,
            class_type_id=class_in.class_type_id,
            coach_id=class_in.coach_id,
            location_id=class_in.location_id,
        )
        first_start = normalize_to_utc(class_in.start_time)
        duration = timedelta(minutes=class_type.duration_minutes)

        instances = []
        try:
            for start in expand_recurrence(first_start, class_in.recurring):
                instance = ClassInstance(
                    class_type_id=class_in.class_type_id,
                    coach_id=class_in.coach_id,
                    location_id=class_in.location_id,
                    start_time=start,
                    end_time=start + duration,
                    capacity=class_in.capacity,
                    is_cancelled=False,
                )
                db.add(instance)
                instances.append(instance)
            db.commit()
        except Exception:
            db.rollback()
            raise

        created = [class_instance_repository.get_with_relations(db, i.id) for i in instances]
        logger.info(f"{len(created)} clase(s) creadas manualmente en la sede {class_in.location_id}")
        message = (
            f"Successfully created {len(created)} recurring class instances"
            if class_in.recurring
            else "Class created successfully"
        )
        return {"message": message, "classes": self._with_counts(db, created)}

    def update_class(self, db: Session, *, class_instance_id: int, class_in: ClassInstanceUpdate) -> Dict[str, Any]:
        """
        Modifica una clase concreta.

        Raises:
            ValidationException: CAPACITY_TOO_LOW si la capacidad queda por debajo
                de las reservas confirmadas
        """
        instance = class_instance_repository.get_with_relations(db, class_instance_id)
        if not instance:
            raise NotFoundException("Class not found", code="CLASS_NOT_FOUND")

        changes = class_in.model_dump(exclude_unset=True)
        class_type = self._check_refs(
            db,
            class_type_id=changes.get("class_type_id"),
            coach_id=changes.get("coach_id"),
            location_id=changes.get("location_id"),
        ) or instance.class_type

        confirmed = booking_repository.count_confirmed(db, class_instance_id=instance.id)
        if "capacity" in changes and changes["capacity"] < confirmed:
            raise ValidationException(
                f"Cannot reduce capacity below current booking count ({confirmed})",
                code="CAPACITY_TOO_LOW",
                details={"current_bookings": confirmed, "requested_capacity": changes["capacity"]},
            )

        if "start_time" in changes:
            changes["start_time"] = normalize_to_utc(changes["start_time"])
        start = changes.get("start_time", instance.start_time)
        changes["end_time"] = start + timedelta(minutes=class_type.duration_minutes)

        cancelling = changes.get("is_cancelled") is True and not instance.is_cancelled
        refunded = 0
        try:
            for field, value in changes.items():
                setattr(instance, field, value)
            db.add(instance)
            if cancelling:
                refunded = booking_service.refund_confirmed_for_class(
                    db, instance=instance, reason="Class cancelled refund"
                )
            db.commit()
        except Exception:
            db.rollback()
            raise

        logger.info(f"Clase {instance.id} actualizada (cancelada={instance.is_cancelled}, reembolsos={refunded})")
        instance = class_instance_repository.get_with_relations(db, instance.id)
        return self._with_counts(db, [instance])[0]

    def delete_class(self, db: Session, *, class_instance_id: int) -> Dict[str, Any]:
        """Reembolsa las reservas confirmadas y elimina la clase con sus reservas"""
        instance = class_instance_repository.get_with_relations(db, class_instance_id)
        if not instance:
            raise NotFoundException("Class not found", code="CLASS_NOT_FOUND")

        try:
            refunded = booking_service.refund_confirmed_for_class(
                db, instance=instance, reason="Class deleted refund"
            )
            db.delete(instance)
            db.commit()
        except Exception:
            db.rollback()
            raise

        logger.info(f"Clase {class_instance_id} eliminada; reservas reembolsadas: {refunded}")
        return {
            "message": f"Class deleted successfully. {refunded} booking(s) refunded.",
            "refunded_bookings": refunded,
        }

    # Lista de asistentes

    def get_roster(self, db: Session, *, class_instance_id: int, requester: User) -> Dict[str, Any]:
        """
        Reservas no canceladas de una clase.

        Raises:
            NotFoundException: CLASS_NOT_FOUND
            ForbiddenException: el entrenador no tiene asignada la clase
        """
        instance = class_instance_repository.get_with_relations(db, class_instance_id)
        if not instance:
            raise NotFoundException("Class not found", code="CLASS_NOT_FOUND")
        if requester.role != UserRole.ADMIN and instance.coach_id != requester.id:
            raise ForbiddenException("You are not assigned to this class")

        entries = []
        for booking in booking_repository.get_roster(db, class_instance_id=instance.id):
            entries.append({
                "booking_id": booking.id,
                "user_id": booking.user_id,
                "member_name": booking.user.full_name,
                "email": booking.user.email,
                "phone": booking.user.phone,
                "child_id": booking.child_id,
                "child_name": booking.child.full_name if booking.child else None,
                "booked_for": booking.booked_for,
                "status": booking.status,
                "attendance_marked_at": booking.attendance_marked_at,
                "has_note": booking.note is not None,
            })

        return {
            "class_instance": instance,
            "capacity": instance.capacity,
            "booked_count": len(entries),
            "bookings": entries,
        }


class_service = ClassService()
