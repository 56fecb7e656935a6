import logging
import math
from typing import Any, Dict, List

from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.core.exceptions import NotFoundException
from app.db.types import utcnow
from app.models.booking import BookingStatus
from app.models.user import Child, User
from app.repositories.booking import booking_repository
from app.repositories.package import member_package_repository
from app.repositories.user import child_repository
from app.schemas.user import ChildCreate, ChildUpdate
from app.services.credit import credit_service

logger = logging.getLogger(__name__)


class MemberService:
    def get_dashboard(self, db: Session, *, user: User) -> Dict[str, Any]:
        """
        Resumen del miembro: créditos activos, paquetes y reservas.

        Returns:
            Dict con total_credits, active_packages (expiry ascendente con
            days_until_expiry e is_expiring_soon), expired_packages (últimos 5),
            upcoming_bookings y past_bookings (últimas 10)
        """
        now = utcnow()
        warning_days = get_settings().EXPIRY_WARNING_DAYS

        active_packages = []
        total_credits = 0
        for member_package in member_package_repository.get_active_for_user(db, user_id=user.id, now=now):
            days_until_expiry = math.ceil((member_package.expiry_date - now).total_seconds() / 86400)
            total_credits += member_package.sessions_remaining
            active_packages.append({
                "id": member_package.id,
                "package_id": member_package.package_id,
                "package": member_package.package,
                "sessions_remaining": member_package.sessions_remaining,
                "sessions_total": member_package.sessions_total,
                "purchase_date": member_package.purchase_date,
                "expiry_date": member_package.expiry_date,
                "is_expired": member_package.is_expired,
                "days_until_expiry": days_until_expiry,
                "is_expiring_soon": days_until_expiry <= warning_days,
            })

        return {
            "total_credits": total_credits,
            "active_packages": active_packages,
            "expired_packages": member_package_repository.get_expired_for_user(db, user_id=user.id, now=now, limit=5),
            "upcoming_bookings": booking_repository.get_upcoming_for_user(db, user_id=user.id, now=now),
            "past_bookings": booking_repository.get_past_for_user(db, user_id=user.id, now=now, limit=10),
        }

    # Hijos

    def list_children(self, db: Session, *, user: User) -> List[Dict[str, Any]]:
        now = utcnow()
        result = []
        for child in child_repository.get_by_parent(db, parent_id=user.id):
            result.append({
                "id": child.id,
                "parent_id": child.parent_id,
                "first_name": child.first_name,
                "last_name": child.last_name,
                "age": child.age,
                "created_at": child.created_at,
                "upcoming_bookings_count": booking_repository.count_upcoming_for_child(db, child_id=child.id, now=now),
            })
        return result

    def _get_own_child(self, db: Session, *, user: User, child_id: int) -> Child:
        child = child_repository.get_for_parent(db, child_id=child_id, parent_id=user.id)
        if not child:
            raise NotFoundException("Child not found", code="CHILD_NOT_FOUND")
        return child

    def add_child(self, db: Session, *, user: User, child_in: ChildCreate) -> Child:
        child = child_repository.create(db, obj_in={**child_in.model_dump(), "parent_id": user.id})
        logger.info(f"Hijo {child.id} registrado por el miembro {user.id}")
        return child

    def update_child(self, db: Session, *, user: User, child_id: int, child_in: ChildUpdate) -> Child:
        child = self._get_own_child(db, user=user, child_id=child_id)
        return child_repository.update(db, db_obj=child, obj_in=child_in)

    def delete_child(self, db: Session, *, user: User, child_id: int) -> Dict[str, Any]:
        """
        Elimina un hijo cancelando y reembolsando antes sus reservas futuras.
        """
        child = self._get_own_child(db, user=user, child_id=child_id)
        now = utcnow()

        refunded = 0
        try:
            for booking in booking_repository.get_future_confirmed_for_child(db, child_id=child.id, now=now):
                booking.status = BookingStatus.CANCELLED
                booking.cancelled_at = now
                db.add(booking)
                credit_service.refund_booking(
                    db, booking=booking, notes=f"Refund: child {child.full_name} removed"
                )
                refunded += 1
            db.delete(child)
            db.commit()
        except Exception:
            db.rollback()
            raise

        logger.info(f"Hijo {child_id} eliminado por el miembro {user.id}; reservas reembolsadas: {refunded}")
        return {"message": "Child removed successfully", "refunded_bookings": refunded}


member_service = MemberService()
