"""
Rate limiting con slowapi.

Los límites se aplican con el decorador `@limiter.limit(...)` en los endpoints
sensibles (alta y login). El almacenamiento es en memoria del proceso.
"""

import logging
from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded

from app.core.config import get_settings

logger = logging.getLogger(__name__)

# Límites por tipo de endpoint
RATE_LIMITS = {
    "signup": "5/15minutes",
    "login": "5/15minutes",
}


def get_client_identifier(request: Request) -> str:
    """Obtener identificador del cliente para rate limiting.

    - Por defecto usa la IP del socket (ASGI client).
    - Si TRUST_PROXY_HEADERS=True, usa el primer IP de X-Forwarded-For cuando existe.
    """
    if get_settings().TRUST_PROXY_HEADERS:
        # X-Forwarded-For: client, proxy1, proxy2 ... -> tomar el primero
        fwd = request.headers.get("X-Forwarded-For")
        if fwd:
            return fwd.split(",")[0].strip()
        real_ip = request.headers.get("X-Real-IP")
        if real_ip:
            return real_ip
    return get_remote_address(request)


limiter = Limiter(key_func=get_client_identifier, enabled=get_settings().RATE_LIMIT_ENABLED)


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Respuesta 429 con el mismo formato de error que el resto de la API"""
    logger.warning(
        f"Rate limit exceeded para {get_client_identifier(request)} "
        f"en {request.url.path} - Límite: {exc.detail}"
    )
    return JSONResponse(
        status_code=429,
        content={
            "detail": {
                "code": "RATE_LIMITED",
                "message": "Too many requests, please try again later",
                "details": {"limit": str(exc.detail)},
            }
        },
    )


__all__ = ["limiter", "rate_limit_exceeded_handler", "RATE_LIMITS"]
