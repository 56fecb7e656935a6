import logging
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.core.exceptions import AuthenticationException, ForbiddenException
from app.core.security import JWTError, decode_access_token
from app.db.session import get_db
from app.models.user import User, UserRole

logger = logging.getLogger(__name__)

# auto_error=False para devolver nuestro propio 401 con código de error
bearer_scheme = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    """
    Obtiene el usuario autenticado a partir del token Bearer.

    Raises:
        AuthenticationException: Sin token, token inválido o usuario inexistente/eliminado
    """
    if credentials is None or not credentials.credentials:
        raise AuthenticationException("Authentication required", code="NOT_AUTHENTICATED")

    try:
        payload = decode_access_token(credentials.credentials)
    except JWTError as e:
        logger.info(f"Token rechazado: {e}")
        raise AuthenticationException("Invalid or expired token", code="INVALID_TOKEN")

    subject = payload.get("sub")
    try:
        user_id = int(subject)
    except (TypeError, ValueError):
        raise AuthenticationException("Invalid or expired token", code="INVALID_TOKEN")

    user = db.get(User, user_id)
    if not user or user.is_deleted:
        raise AuthenticationException("User not found", code="USER_NOT_FOUND")

    return user


def get_current_member(current_user: User = Depends(get_current_user)) -> User:
    if current_user.role != UserRole.MEMBER:
        raise ForbiddenException("Member access required")
    return current_user


def get_current_coach(current_user: User = Depends(get_current_user)) -> User:
    # Los administradores también pueden actuar como entrenadores
    if current_user.role not in (UserRole.COACH, UserRole.ADMIN):
        raise ForbiddenException("Coach access required")
    return current_user


def get_current_admin(current_user: User = Depends(get_current_user)) -> User:
    if current_user.role != UserRole.ADMIN:
        raise ForbiddenException("Admin access required")
    return current_user
