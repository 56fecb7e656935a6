from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
import logging

from jose import JWTError, jwt
from passlib.context import CryptContext

from app.core.config import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.BCRYPT_ROUNDS,
)


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    """
    Verifica una contraseña en texto plano contra su hash bcrypt.

    Args:
        plain_password: Contraseña en texto plano
        hashed_password: Hash almacenado (puede ser None en cuentas sin contraseña)

    Returns:
        bool: True si coincide
    """
    if not hashed_password:
        return False
    try:
        return bool(pwd_context.verify(plain_password, hashed_password))
    except ValueError as e:
        logger.error(f"Hash de contraseña inválido: {e}")
        return False


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def create_access_token(
    subject: Any,
    role: str,
    expires_delta: Optional[timedelta] = None
) -> str:
    """
    Crea un JWT firmado con SECRET_KEY.

    Args:
        subject: ID del usuario (se guarda como string en "sub")
        role: Rol del usuario, incluido como claim informativo
        expires_delta: Duración opcional; por defecto ACCESS_TOKEN_EXPIRE_MINUTES

    Returns:
        str: Token codificado
    """
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode = {"sub": str(subject), "role": role, "exp": expire}
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> Dict[str, Any]:
    """
    Decodifica y valida un JWT (firma y expiración).

    Raises:
        JWTError: Si el token es inválido o ha expirado
    """
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])


__all__ = [
    "JWTError",
    "verify_password",
    "get_password_hash",
    "create_access_token",
    "decode_access_token",
]
