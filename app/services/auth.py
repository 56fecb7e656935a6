import logging
from typing import Any, Dict, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.core.exceptions import AuthenticationException, ConflictException
from app.core.security import create_access_token, get_password_hash, verify_password
from app.models.user import User, UserRole
from app.repositories.user import user_repository
from app.schemas.user import UserCreate

logger = logging.getLogger(__name__)


class AuthService:
    def _token_response(self, user: User) -> Dict[str, Any]:
        return {
            "access_token": create_access_token(user.id, user.role.value),
            "token_type": "bearer",
            "user": user,
        }

    def create_user(self, db: Session, *, user_in: UserCreate, role: UserRole) -> User:
        """
        Crea una cuenta con contraseña.

        Raises:
            ConflictException: USER_EXISTS si el email ya está registrado
        """
        if user_repository.get_by_email(db, email=user_in.email):
            raise ConflictException("A user with this email already exists", code="USER_EXISTS")

        user = User(
            email=user_in.email,
            password_hash=get_password_hash(user_in.password),
            first_name=user_in.first_name,
            last_name=user_in.last_name,
            phone=user_in.phone,
            role=role,
        )
        db.add(user)
        try:
            db.commit()
        except IntegrityError:
            # Alta concurrente con el mismo email
            db.rollback()
            raise ConflictException("A user with this email already exists", code="USER_EXISTS")
        db.refresh(user)
        logger.info(f"Usuario creado: {user.id} ({role.value})")
        return user

    def signup(self, db: Session, *, user_in: UserCreate) -> Dict[str, Any]:
        user = self.create_user(db, user_in=user_in, role=UserRole.MEMBER)
        return self._token_response(user)

    def login(self, db: Session, *, email: str, password: str) -> Dict[str, Any]:
        """
        Autentica por email y contraseña.

        Raises:
            AuthenticationException: INVALID_CREDENTIALS u OAUTH_ONLY
        """
        user = user_repository.get_by_email(db, email=email)
        if not user or user.is_deleted:
            raise AuthenticationException("Invalid email or password", code="INVALID_CREDENTIALS")

        if not user.password_hash:
            raise AuthenticationException(
                "This account has no password. Use the sign-in method it was created with.",
                code="OAUTH_ONLY",
            )

        if not verify_password(password, user.password_hash):
            logger.info(f"Login fallido para usuario {user.id}")
            raise AuthenticationException("Invalid email or password", code="INVALID_CREDENTIALS")

        return self._token_response(user)

    def ensure_first_admin(self, db: Session) -> Optional[User]:
        """
        Crea el administrador inicial si FIRST_ADMIN_EMAIL/PASSWORD están configurados
        y aún no existe ningún usuario con ese email.
        """
        settings = get_settings()
        if not settings.FIRST_ADMIN_EMAIL or not settings.FIRST_ADMIN_PASSWORD:
            return None

        email = str(settings.FIRST_ADMIN_EMAIL).lower()
        existing = user_repository.get_by_email(db, email=email)
        if existing:
            return existing

        admin = User(
            email=email,
            password_hash=get_password_hash(settings.FIRST_ADMIN_PASSWORD),
            first_name="Admin",
            last_name="JabClub",
            role=UserRole.ADMIN,
        )
        db.add(admin)
        db.commit()
        db.refresh(admin)
        logger.info(f"Administrador inicial creado: {admin.id}")
        return admin


auth_service = AuthService()
