import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from app.core.exceptions import ConflictException, NotFoundException
from app.db.types import utcnow
from app.models.location import Location
from app.repositories.location import location_repository
from app.repositories.schedule import class_instance_repository, class_schedule_repository
from app.schemas.location import LocationCreate, LocationUpdate
from app.services.booking import booking_service

logger = logging.getLogger(__name__)


class LocationService:
    def get_active_locations(self, db: Session) -> List[Location]:
        return location_repository.get_active(db)

    def get_locations(self, db: Session, *, include_inactive: bool = True) -> List[Location]:
        return location_repository.get_all(db, include_inactive=include_inactive)

    def _ensure_unique_name(self, db: Session, name: str, exclude_id: Optional[int] = None) -> None:
        existing = location_repository.get_by_name(db, name=name)
        if existing and existing.id != exclude_id:
            raise ConflictException("A location with this name already exists", code="LOCATION_EXISTS")

    def create_location(self, db: Session, *, location_in: LocationCreate) -> Location:
        self._ensure_unique_name(db, location_in.name)
        location = location_repository.create(db, obj_in=location_in)
        logger.info(f"Sede {location.id} creada: {location.name}")
        return location

    def update_location(self, db: Session, *, location_id: int, location_in: LocationUpdate) -> Location:
        location = location_repository.get(db, location_id)
        if not location:
            raise NotFoundException("Location not found", code="LOCATION_NOT_FOUND")
        if location_in.name is not None:
            self._ensure_unique_name(db, location_in.name, exclude_id=location.id)
        return location_repository.update(db, db_obj=location, obj_in=location_in)

    def delete_location(self, db: Session, *, location_id: int) -> Dict[str, Any]:
        """
        Borrado lógico de una sede.

        En una sola transacción: cancela las clases futuras de la sede, reembolsa
        sus reservas confirmadas, desactiva sus horarios y la propia sede.
        """
        location = location_repository.get(db, location_id)
        if not location:
            raise NotFoundException("Location not found", code="LOCATION_NOT_FOUND")

        cancelled_classes = 0
        refunded = 0
        deactivated_schedules = 0
        try:
            for instance in class_instance_repository.get_future_by_location(db, location_id=location.id, now=utcnow()):
                refunded += booking_service.refund_confirmed_for_class(
                    db, instance=instance, reason="Location closed refund"
                )
                instance.is_cancelled = True
                db.add(instance)
                cancelled_classes += 1

            for schedule in class_schedule_repository.get_active_by_location(db, location_id=location.id):
                schedule.is_active = False
                db.add(schedule)
                deactivated_schedules += 1

            location.is_active = False
            db.add(location)
            db.commit()
        except Exception:
            db.rollback()
            raise

        logger.info(
            f"Sede {location.id} desactivada: {cancelled_classes} clases canceladas, "
            f"{refunded} reservas reembolsadas, {deactivated_schedules} horarios desactivados"
        )
        return {
            "message": "Location deactivated successfully",
            "cancelled_classes": cancelled_classes,
            "refunded_bookings": refunded,
            "deactivated_schedules": deactivated_schedules,
        }


location_service = LocationService()
