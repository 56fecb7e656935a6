import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.core.exceptions import ConflictException, NotFoundException, ValidationException
from app.core.timezone_utils import club_today, start_of_month_utc
from app.models.schedule import ClassSchedule
from app.models.user import UserRole
from app.repositories.location import location_repository
from app.repositories.schedule import (
    class_instance_repository,
    class_schedule_repository,
    class_type_repository,
)
from app.repositories.user import user_repository
from app.schemas.schedule import Schedule, ScheduleCreate, ScheduleUpdate
from app.services.schedule_generator import generate_classes_from_schedules

logger = logging.getLogger(__name__)


class ScheduleService:
    """Gestión de los horarios semanales (plantillas) del club."""

    def _validate(self, db: Session, data: Dict[str, Any], *, exclude_id: Optional[int] = None) -> None:
        if not class_type_repository.get(db, data["class_type_id"]):
            raise NotFoundException("Class type not found", code="CLASS_TYPE_NOT_FOUND")
        if not user_repository.get_active(db, data["coach_id"], role=UserRole.COACH):
            raise ValidationException("Selected user is not an active coach", code="INVALID_COACH")
        if not location_repository.get_active_by_id(db, data["location_id"]):
            raise NotFoundException("Location not found or inactive", code="LOCATION_NOT_FOUND")

        if data.get("is_override"):
            start, end = data.get("override_start_date"), data.get("override_end_date")
            if start is None or end is None:
                raise ValidationException(
                    "Temporary schedules require override_start_date and override_end_date",
                    code="INVALID_OVERRIDE_DATES",
                )
            if start > end:
                raise ValidationException(
                    "override_start_date must be on or before override_end_date",
                    code="INVALID_OVERRIDE_DATES",
                )
            if data.get("base_schedule_id") and not class_schedule_repository.get(db, data["base_schedule_id"]):
                raise NotFoundException("Base schedule not found", code="SCHEDULE_NOT_FOUND")
        else:
            duplicate = class_schedule_repository.find_duplicate(
                db,
                class_type_id=data["class_type_id"],
                coach_id=data["coach_id"],
                location_id=data["location_id"],
                day_of_week=data["day_of_week"],
                start_time=data["start_time"],
                exclude_id=exclude_id,
            )
            if duplicate:
                raise ConflictException(
                    "A schedule with the same class type, coach, location, day and time already exists",
                    code="SCHEDULE_EXISTS",
                    details={"schedule_id": duplicate.id},
                )

    def _serialize(self, db: Session, schedules: List[ClassSchedule]) -> List[Schedule]:
        counts = class_schedule_repository.count_instances(db, [s.id for s in schedules])
        return [
            Schedule.model_validate(s).model_copy(update={"instance_count": counts.get(s.id, 0)})
            for s in schedules
        ]

    def list_schedules(
        self, db: Session, *, location_id: Optional[int] = None, include_inactive: bool = False
    ) -> List[Schedule]:
        schedules = class_schedule_repository.get_filtered(
            db, location_id=location_id, include_inactive=include_inactive
        )
        return self._serialize(db, schedules)

    def get_default_schedule(self, db: Session) -> List[Dict[str, Any]]:
        """Sedes activas con sus horarios base activos"""
        result = []
        for location in location_repository.get_active(db):
            schedules = class_schedule_repository.get_filtered(
                db, location_id=location.id, include_overrides=False
            )
            result.append({"location": location, "schedules": self._serialize(db, schedules)})
        return result

    def create_schedule(self, db: Session, *, schedule_in: ScheduleCreate) -> Dict[str, Any]:
        """
        Crea un horario y genera sus clases para SCHEDULE_MONTHS_AHEAD meses.

        Raises:
            NotFoundException / ValidationException / ConflictException (SCHEDULE_EXISTS)
        """
        data = schedule_in.model_dump()
        self._validate(db, data)

        schedule = class_schedule_repository.create(db, obj_in=data)
        logger.info(
            f"Horario {schedule.id} creado: día {schedule.day_of_week} {schedule.start_time} "
            f"sede {schedule.location_id} (override={schedule.is_override})"
        )

        generated = generate_classes_from_schedules(
            db, months_ahead=get_settings().SCHEDULE_MONTHS_AHEAD, schedule_ids=[schedule.id]
        )
        schedule = class_schedule_repository.get(db, schedule.id)
        return {
            "message": "Schedule created successfully",
            "schedule": self._serialize(db, [schedule])[0],
            "generated": generated,
            "deleted_instances": 0,
        }

    def update_schedule(self, db: Session, *, schedule_id: int, schedule_in: ScheduleUpdate) -> Dict[str, Any]:
        """
        Actualiza un horario y regenera sus clases.

        Las clases del horario sin reservas a partir del corte se eliminan y se
        vuelven a generar desde hoy. El corte es el inicio del mes actual si
        apply_to_current_month es True, si no el inicio del mes siguiente (hora local).
        """
        schedule = class_schedule_repository.get(db, schedule_id)
        if not schedule:
            raise NotFoundException("Schedule not found", code="SCHEDULE_NOT_FOUND")

        changes = schedule_in.model_dump(exclude_unset=True)
        apply_to_current_month = changes.pop("apply_to_current_month", False)

        merged = {
            field: changes.get(field, getattr(schedule, field))
            for field in (
                "class_type_id", "coach_id", "location_id", "day_of_week", "start_time", "capacity",
                "is_active", "is_override", "override_start_date", "override_end_date", "base_schedule_id",
            )
        }
        self._validate(db, merged, exclude_id=schedule.id)

        today = club_today()
        months_offset = 0 if apply_to_current_month else 1
        cutoff = start_of_month_utc(today, months_offset)

        deleted = 0
        try:
            for field, value in changes.items():
                setattr(schedule, field, value)
            db.add(schedule)

            instances = class_instance_repository.get_for_schedule_from(db, schedule_id=schedule.id, cutoff=cutoff)
            counts = class_instance_repository.count_bookings(db, [i.id for i in instances])
            for instance in instances:
                # Las clases con reservas (de cualquier estado) se conservan
                if sum(counts[instance.id].values()) == 0:
                    db.delete(instance)
                    deleted += 1
            db.commit()
        except Exception:
            db.rollback()
            raise

        logger.info(f"Horario {schedule.id} actualizado; {deleted} clases eliminadas desde {cutoff.isoformat()}")

        generated = {"created": 0, "updated": 0}
        if schedule.is_active:
            # El corte solo limita el borrado; la generación empieza hoy
            generated = generate_classes_from_schedules(
                db, months_ahead=get_settings().SCHEDULE_MONTHS_AHEAD, from_date=today
            )

        schedule = class_schedule_repository.get(db, schedule_id)
        return {
            "message": "Schedule updated successfully",
            "schedule": self._serialize(db, [schedule])[0],
            "generated": generated,
            "deleted_instances": deleted,
        }

    def deactivate_schedule(self, db: Session, *, schedule_id: int) -> ClassSchedule:
        """Desactiva un horario; las clases ya generadas se conservan"""
        schedule = class_schedule_repository.get(db, schedule_id)
        if not schedule:
            raise NotFoundException("Schedule not found", code="SCHEDULE_NOT_FOUND")
        schedule = class_schedule_repository.update(db, db_obj=schedule, obj_in={"is_active": False})
        logger.info(f"Horario {schedule.id} desactivado")
        return schedule

    def generate(self, db: Session, *, months_ahead: int) -> Dict[str, int]:
        return generate_classes_from_schedules(db, months_ahead=months_ahead)


schedule_service = ScheduleService()
