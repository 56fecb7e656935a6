import logging
from datetime import timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from app.core.exceptions import ForbiddenException, NotFoundException, ValidationException
from app.core.timezone_utils import club_today, convert_utc_to_local
from app.db.types import utcnow
from app.models.booking import Booking, BookingStatus, ClassNote
from app.models.user import User, UserRole
from app.repositories.booking import booking_repository, class_note_repository
from app.repositories.schedule import class_instance_repository
from app.schemas.booking import ClassNoteUpsert
from app.services.class_instance import class_service

logger = logging.getLogger(__name__)


class CoachService:
    def _check_assigned(self, coach: User, coach_id: int) -> None:
        if coach.role != UserRole.ADMIN and coach_id != coach.id:
            raise ForbiddenException("You are not assigned to this class")

    def _get_booking(self, db: Session, booking_id: int) -> Booking:
        booking = booking_repository.get_with_class(db, booking_id)
        if not booking:
            raise NotFoundException("Booking not found", code="BOOKING_NOT_FOUND")
        return booking

    def get_classes(
        self, db: Session, *, coach: User, period: Optional[str] = None, upcoming: bool = True
    ) -> List[Dict[str, Any]]:
        """
        Clases del entrenador (un administrador ve todas).

        Args:
            period: "today" (día local) o "week" (hoy + 7 días); si no, todas
            upcoming: Solo clases que aún no han empezado
        """
        start_date = end_date = None
        if period == "today":
            start_date = end_date = club_today()
        elif period == "week":
            start_date = club_today()
            end_date = start_date + timedelta(days=7)

        return class_service.list_classes(
            db,
            coach_id=None if coach.role == UserRole.ADMIN else coach.id,
            start_date=start_date,
            end_date=end_date,
            upcoming_only=upcoming,
        )

    def get_roster(self, db: Session, *, coach: User, class_instance_id: int) -> Dict[str, Any]:
        return class_service.get_roster(db, class_instance_id=class_instance_id, requester=coach)

    def mark_attendance(self, db: Session, *, coach: User, booking_id: int, status: str) -> Booking:
        """
        Marca asistencia (attended / no_show) el mismo día local de la clase.

        Raises:
            NotFoundException: BOOKING_NOT_FOUND
            ForbiddenException: el entrenador no tiene asignada la clase
            ValidationException: BOOKING_CANCELLED o INVALID_DATE
        """
        booking = self._get_booking(db, booking_id)
        instance = booking.class_instance
        self._check_assigned(coach, instance.coach_id)

        if booking.status == BookingStatus.CANCELLED:
            raise ValidationException("Cannot mark attendance for a cancelled booking", code="BOOKING_CANCELLED")

        class_day = convert_utc_to_local(instance.start_time).date()
        today = club_today()
        if class_day != today:
            raise ValidationException(
                "Attendance can only be marked on the day of the class",
                code="INVALID_DATE",
                details={"class_date": class_day.isoformat(), "today": today.isoformat()},
            )

        booking.status = BookingStatus(status)
        booking.attendance_marked_at = utcnow()
        db.add(booking)
        db.commit()
        db.refresh(booking)
        logger.info(f"Asistencia de la reserva {booking.id}: {booking.status.value} (por {coach.id})")
        return booking

    # Notas

    def upsert_note(self, db: Session, *, coach: User, booking_id: int, note_in: ClassNoteUpsert) -> ClassNote:
        """Crea o actualiza la nota de una reserva (una por reserva)"""
        booking = self._get_booking(db, booking_id)
        self._check_assigned(coach, booking.class_instance.coach_id)

        note = class_note_repository.get_by_booking(db, booking_id=booking.id)
        if note:
            return class_note_repository.update(
                db, db_obj=note, obj_in={**note_in.model_dump(exclude_unset=True), "coach_id": coach.id}
            )
        return class_note_repository.create(
            db, obj_in={**note_in.model_dump(), "booking_id": booking.id, "coach_id": coach.id}
        )

    def get_note(self, db: Session, *, coach: User, booking_id: int) -> ClassNote:
        booking = self._get_booking(db, booking_id)
        self._check_assigned(coach, booking.class_instance.coach_id)
        note = class_note_repository.get_by_booking(db, booking_id=booking.id)
        if not note:
            raise NotFoundException("Note not found", code="NOTE_NOT_FOUND")
        return note

    def get_class_notes(self, db: Session, *, coach: User, class_instance_id: int) -> List[ClassNote]:
        instance = class_instance_repository.get(db, class_instance_id)
        if not instance:
            raise NotFoundException("Class not found", code="CLASS_NOT_FOUND")
        self._check_assigned(coach, instance.coach_id)
        return class_note_repository.get_for_class(db, class_instance_id=instance.id)


coach_service = CoachService()
