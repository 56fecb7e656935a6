import secrets
import os
from typing import List, Optional, Union
from functools import lru_cache
import logging

import pytz
from pydantic import AnyHttpUrl, EmailStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Configurar el logger
logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"  # Permitir campos extra en .env
    )

    # Configuración básica
    API_V1_STR: str = "/api/v1"
    # Si no se define, se genera una clave aleatoria (los tokens no sobreviven a un reinicio)
    SECRET_KEY: str = secrets.token_urlsafe(32)
    # 60 minutos * 24 horas = 1 día
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24
    JWT_ALGORITHM: str = "HS256"
    BCRYPT_ROUNDS: int = 12

    # URLs de la aplicación
    FRONTEND_URL: str = os.getenv("FRONTEND_URL", "http://localhost:3000")

    # Información del proyecto
    PROJECT_NAME: str = "JabClubAPI"
    PROJECT_DESCRIPTION: str = "API con FastAPI para reservas, créditos y horarios del club"
    VERSION: str = "1.0.0"

    # Debug mode
    DEBUG_MODE: bool = os.getenv("DEBUG_MODE", "True").lower() in ("true", "1", "t")
    # Trust proxy headers for client IP derivation (rate limiting, logs)
    TRUST_PROXY_HEADERS: bool = os.getenv("TRUST_PROXY_HEADERS", "False").lower() in ("true", "1", "t")

    # CORS
    BACKEND_CORS_ORIGINS: List[AnyHttpUrl] = []

    @field_validator("BACKEND_CORS_ORIGINS", mode='before')
    def assemble_cors_origins(cls, v: Union[str, List[str]]) -> List[str]:
        if isinstance(v, str) and not v.startswith("["):
            return [i.strip() for i in v.split(",") if i.strip()]
        elif isinstance(v, (list, str)):
            return v
        raise ValueError(v)

    DATABASE_URL: str = "sqlite:///./jabclub.db"

    @field_validator("DATABASE_URL", mode="before")
    def ensure_proper_url_format(cls, v: Optional[str]) -> str:
        """Asegura que DATABASE_URL esté en el formato que espera SQLAlchemy."""
        # No loguear el valor completo por seguridad
        if not v:
            logger.warning("DATABASE_URL vacía, usando SQLite local")
            return "sqlite:///./jabclub.db"
        if v.startswith('postgres://'):
            logger.info("Corrigiendo formato de postgres:// a postgresql://")
            return 'postgresql://' + v[len('postgres://'):]
        return v

    # Zona horaria del club: los horarios "HH:MM" se introducen en hora local
    CLUB_TIMEZONE: str = "Africa/Cairo"

    # Reglas de negocio
    VAT_RATE: float = 0.14
    CANCELLATION_WINDOW_HOURS: int = 1
    EXPIRY_WARNING_DAYS: int = 7
    RENEWAL_REMINDER_DAYS: int = 3
    SCHEDULE_MONTHS_AHEAD: int = 2
    REFUND_REACTIVATION_DAYS: int = 30

    # Check-in por QR
    QR_SECRET: str = secrets.token_urlsafe(32)
    QR_MAX_AGE_MINUTES: int = 180
    QR_CHECKIN_EARLY_MINUTES: int = 60
    QR_CHECKIN_LATE_MINUTES: int = 60

    # Comprobantes de pago
    UPLOAD_DIR: str = "uploads"
    MAX_UPLOAD_SIZE: int = 5 * 1024 * 1024

    # Email
    SMTP_TLS: bool = True
    SMTP_PORT: Optional[int] = 587
    SMTP_HOST: Optional[str] = None
    SMTP_USER: Optional[str] = None
    SMTP_PASSWORD: Optional[str] = None
    EMAILS_FROM_EMAIL: Optional[EmailStr] = None
    EMAILS_FROM_NAME: Optional[str] = "JabClub"

    # Administrador inicial (opcional)
    FIRST_ADMIN_EMAIL: Optional[EmailStr] = None
    FIRST_ADMIN_PASSWORD: Optional[str] = None

    # Rate limiting y tareas programadas
    RATE_LIMIT_ENABLED: bool = True
    SCHEDULER_ENABLED: bool = True

    @field_validator("CLUB_TIMEZONE")
    def validate_timezone(cls, v: str) -> str:
        if v not in pytz.all_timezones_set:
            raise ValueError(f"Zona horaria desconocida: {v}")
        return v

    @property
    def emails_enabled(self) -> bool:
        return bool(self.SMTP_HOST and self.EMAILS_FROM_EMAIL)


# Usar una función con caché para obtener la configuración
@lru_cache()
def get_settings() -> Settings:
    settings = Settings()
    logger.info("Configuración cargada correctamente")
    return settings


settings = get_settings()
