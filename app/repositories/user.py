from typing import Dict, List, Optional

from sqlalchemy import or_, func
from sqlalchemy.orm import Session

from app.models.user import User, UserRole, Child
from app.repositories.base import BaseRepository
from app.schemas.user import UserCreate, UserUpdate, ChildCreate, ChildUpdate


class UserRepository(BaseRepository[User, UserCreate, UserUpdate]):
    def get_by_email(self, db: Session, *, email: str) -> Optional[User]:
        """
        Obtener un usuario por email (sin distinguir mayúsculas).
        """
        return db.query(User).filter(func.lower(User.email) == email.strip().lower()).first()

    def get_active(self, db: Session, id: int, *, role: Optional[UserRole] = None) -> Optional[User]:
        """
        Obtener un usuario no eliminado, opcionalmente restringido a un rol.
        """
        query = db.query(User).filter(User.id == id, User.deleted_at.is_(None))
        if role is not None:
            query = query.filter(User.role == role)
        return query.first()

    def get_by_role(self, db: Session, *, role: UserRole, skip: int = 0, limit: int = 100) -> List[User]:
        return (
            db.query(User)
            .filter(User.role == role, User.deleted_at.is_(None))
            .order_by(User.first_name, User.last_name)
            .offset(skip)
            .limit(limit)
            .all()
        )

    def search(
        self,
        db: Session,
        *,
        role: UserRole,
        search: Optional[str] = None,
        status: Optional[str] = None,
        skip: int = 0,
        limit: int = 100
    ) -> List[User]:
        """
        Buscar usuarios de un rol por nombre o email, excluyendo eliminados.

        Args:
            role: Rol a listar
            search: Texto parcial en nombre, apellido o email
            status: active | paused | frozen
        """
        query = db.query(User).filter(User.role == role, User.deleted_at.is_(None))

        if search:
            pattern = f"%{search.strip().lower()}%"
            query = query.filter(
                or_(
                    func.lower(User.first_name).like(pattern),
                    func.lower(User.last_name).like(pattern),
                    func.lower(User.email).like(pattern),
                )
            )

        if status == "paused":
            query = query.filter(User.is_paused.is_(True))
        elif status == "frozen":
            query = query.filter(User.is_frozen.is_(True))
        elif status == "active":
            query = query.filter(User.is_paused.is_(False), User.is_frozen.is_(False))

        return query.order_by(User.created_at.desc(), User.id.desc()).offset(skip).limit(limit).all()

    def count_by_role(self, db: Session, *, role: UserRole) -> int:
        return db.query(func.count(User.id)).filter(User.role == role, User.deleted_at.is_(None)).scalar() or 0


class ChildRepository(BaseRepository[Child, ChildCreate, ChildUpdate]):
    def get_by_parent(self, db: Session, *, parent_id: int) -> List[Child]:
        return (
            db.query(Child)
            .filter(Child.parent_id == parent_id)
            .order_by(Child.first_name, Child.last_name)
            .all()
        )

    def get_for_parent(self, db: Session, *, child_id: int, parent_id: int) -> Optional[Child]:
        """Hijo solo si pertenece al miembro indicado"""
        return db.query(Child).filter(Child.id == child_id, Child.parent_id == parent_id).first()

    def count_by_parent(self, db: Session, *, parent_ids: List[int]) -> Dict[int, int]:
        if not parent_ids:
            return {}
        rows = (
            db.query(Child.parent_id, func.count(Child.id))
            .filter(Child.parent_id.in_(parent_ids))
            .group_by(Child.parent_id)
            .all()
        )
        return {parent_id: count for parent_id, count in rows}


user_repository = UserRepository(User)
child_repository = ChildRepository(Child)
