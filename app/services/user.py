from typing import Any, Dict, List, Optional
import logging

from sqlalchemy.orm import Session

from app.core.exceptions import ConflictException, NotFoundException
from app.db.types import utcnow
from app.models.booking import BookingStatus
from app.models.user import User as UserModel, UserRole
from app.repositories.booking import booking_repository
from app.repositories.credit import credit_transaction_repository
from app.repositories.package import member_package_repository
from app.repositories.payment import payment_repository
from app.repositories.schedule import class_instance_repository
from app.repositories.user import child_repository, user_repository
from app.schemas.user import CoachCreate, UserUpdate
from app.services.auth import auth_service
from app.services.class_instance import class_service

logger = logging.getLogger(__name__)

ROLE_LABELS = {UserRole.MEMBER: "Member", UserRole.COACH: "Coach", UserRole.ADMIN: "Admin"}


class UserService:
    """Administración de cuentas de miembros y entrenadores."""

    def get_user(self, db: Session, user_id: int, *, role: UserRole) -> UserModel:
        """
        Obtener un usuario no eliminado con el rol indicado.

        Raises:
            NotFoundException: USER_NOT_FOUND
        """
        user = user_repository.get_active(db, user_id, role=role)
        if not user:
            raise NotFoundException(f"{ROLE_LABELS[role]} not found", code="USER_NOT_FOUND")
        return user

    # Listados

    def list_members(
        self,
        db: Session,
        *,
        search: Optional[str] = None,
        status: Optional[str] = None,
        skip: int = 0,
        limit: int = 100
    ) -> List[Dict[str, Any]]:
        members = user_repository.search(
            db, role=UserRole.MEMBER, search=search, status=status, skip=skip, limit=limit
        )
        ids = [m.id for m in members]
        credits = member_package_repository.active_credits_by_user(db, user_ids=ids, now=utcnow())
        children = child_repository.count_by_parent(db, parent_ids=ids)
        return [
            {
                "id": m.id,
                "email": m.email,
                "first_name": m.first_name,
                "last_name": m.last_name,
                "phone": m.phone,
                "role": m.role,
                "is_paused": m.is_paused,
                "is_frozen": m.is_frozen,
                "created_at": m.created_at,
                "active_credits": credits.get(m.id, 0),
                "children_count": children.get(m.id, 0),
            }
            for m in members
        ]

    def list_coaches(
        self,
        db: Session,
        *,
        search: Optional[str] = None,
        status: Optional[str] = None,
        skip: int = 0,
        limit: int = 100
    ) -> List[Dict[str, Any]]:
        coaches = user_repository.search(
            db, role=UserRole.COACH, search=search, status=status, skip=skip, limit=limit
        )
        upcoming = class_instance_repository.count_upcoming_by_coach(
            db, coach_ids=[c.id for c in coaches], now=utcnow()
        )
        return [
            {
                "id": c.id,
                "email": c.email,
                "first_name": c.first_name,
                "last_name": c.last_name,
                "phone": c.phone,
                "role": c.role,
                "is_paused": c.is_paused,
                "is_frozen": c.is_frozen,
                "created_at": c.created_at,
                "upcoming_classes": upcoming.get(c.id, 0),
            }
            for c in coaches
        ]

    def get_active_coaches(self, db: Session) -> List[UserModel]:
        """Entrenadores disponibles para asignar a clases y horarios"""
        return user_repository.get_by_role(db, role=UserRole.COACH, limit=500)

    # Detalle

    def get_member_details(self, db: Session, *, user_id: int) -> Dict[str, Any]:
        member = self.get_user(db, user_id, role=UserRole.MEMBER)
        now = utcnow()
        packages = member_package_repository.get_all_for_user(db, user_id=member.id)
        total_credits = sum(
            p.sessions_remaining for p in packages if not p.is_expired and p.expiry_date > now
        )
        return {
            "id": member.id,
            "email": member.email,
            "first_name": member.first_name,
            "last_name": member.last_name,
            "phone": member.phone,
            "role": member.role,
            "is_paused": member.is_paused,
            "is_frozen": member.is_frozen,
            "created_at": member.created_at,
            "total_credits": total_credits,
            "children": child_repository.get_by_parent(db, parent_id=member.id),
            "packages": packages,
            "bookings": booking_repository.get_for_user(db, user_id=member.id),
            "payments": payment_repository.get_by_user(db, user_id=member.id),
            "credit_history": credit_transaction_repository.get_by_user(db, user_id=member.id),
        }

    def get_coach_details(self, db: Session, *, user_id: int) -> Dict[str, Any]:
        coach = self.get_user(db, user_id, role=UserRole.COACH)
        now = utcnow()
        classes = class_service.list_classes(db, coach_id=coach.id, include_cancelled=True)
        return {
            "id": coach.id,
            "email": coach.email,
            "first_name": coach.first_name,
            "last_name": coach.last_name,
            "phone": coach.phone,
            "role": coach.role,
            "is_paused": coach.is_paused,
            "is_frozen": coach.is_frozen,
            "created_at": coach.created_at,
            "total_classes": len(classes),
            "upcoming_classes": [c for c in classes if c["start_time"] > now and not c["is_cancelled"]],
            "recent_classes": [c for c in reversed(classes) if c["start_time"] <= now][:20],
        }

    def get_member_profile(self, db: Session, *, user_id: int, coach: UserModel) -> Dict[str, Any]:
        """
        Ficha de un miembro para un entrenador.

        El historial de asistencia se limita a las clases del entrenador; los
        administradores ven todas.
        """
        member = self.get_user(db, user_id, role=UserRole.MEMBER)
        coach_id = None if coach.role == UserRole.ADMIN else coach.id
        history = booking_repository.get_for_user(db, user_id=member.id, coach_id=coach_id)
        return {
            "id": member.id,
            "first_name": member.first_name,
            "last_name": member.last_name,
            "email": member.email,
            "phone": member.phone,
            "children": child_repository.get_by_parent(db, parent_id=member.id),
            "attendance_history": history,
            "total_attended": sum(1 for b in history if b.status == BookingStatus.ATTENDED),
            "total_no_shows": sum(1 for b in history if b.status == BookingStatus.NO_SHOW),
        }

    # Altas y modificaciones

    def create_coach(self, db: Session, *, coach_in: CoachCreate) -> UserModel:
        return auth_service.create_user(db, user_in=coach_in, role=UserRole.COACH)

    def update_user(self, db: Session, *, user_id: int, role: UserRole, user_in: UserUpdate) -> UserModel:
        """
        Raises:
            NotFoundException: USER_NOT_FOUND
            ConflictException: USER_EXISTS si el nuevo email pertenece a otra cuenta
        """
        user = self.get_user(db, user_id, role=role)
        if user_in.email is not None:
            existing = user_repository.get_by_email(db, email=user_in.email)
            if existing and existing.id != user.id:
                raise ConflictException("A user with this email already exists", code="USER_EXISTS")
        return user_repository.update(db, db_obj=user, obj_in=user_in)

    def set_status(
        self,
        db: Session,
        *,
        user_id: int,
        role: UserRole,
        paused: Optional[bool] = None,
        frozen: Optional[bool] = None
    ) -> UserModel:
        """Pausar / congelar una cuenta. Una cuenta pausada o congelada no puede reservar."""
        user = self.get_user(db, user_id, role=role)
        changes = {}
        if paused is not None:
            changes["is_paused"] = paused
        if frozen is not None:
            changes["is_frozen"] = frozen
        user = user_repository.update(db, db_obj=user, obj_in=changes)
        logger.info(f"Usuario {user.id}: pausado={user.is_paused}, congelado={user.is_frozen}")
        return user

    def delete_user(self, db: Session, *, user_id: int, role: UserRole) -> UserModel:
        """Borrado lógico: deleted_at impide el login y oculta la cuenta en los listados"""
        user = self.get_user(db, user_id, role=role)
        user = user_repository.update(db, db_obj=user, obj_in={"deleted_at": utcnow()})
        logger.info(f"Usuario {user.id} ({role.value}) eliminado")
        return user


user_service = UserService()
