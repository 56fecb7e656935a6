"""
Excepciones de negocio de la API.

Todas heredan de HTTPException para que FastAPI las convierta en respuestas
sin handlers adicionales. El cuerpo de error tiene la forma:

    {"detail": {"code": "CLASS_FULL", "message": "...", "details": {...}}}
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status


class ClubException(HTTPException):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_code: str = "SERVER_ERROR"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        status_code: Optional[int] = None,
    ):
        self.code = code or self.default_code
        self.message = message
        self.details = details
        detail: Dict[str, Any] = {"code": self.code, "message": message}
        if details:
            detail["details"] = details
        super().__init__(status_code=status_code or self.status_code, detail=detail)


class ValidationException(ClubException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_code = "VALIDATION_ERROR"


class AuthenticationException(ClubException):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_code = "NOT_AUTHENTICATED"

    def __init__(self, message: str, code: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code=code, details=details)
        self.headers = {"WWW-Authenticate": "Bearer"}


class ForbiddenException(ClubException):
    status_code = status.HTTP_403_FORBIDDEN
    default_code = "FORBIDDEN"


class NotFoundException(ClubException):
    status_code = status.HTTP_404_NOT_FOUND
    default_code = "NOT_FOUND"


class ConflictException(ClubException):
    status_code = status.HTTP_409_CONFLICT
    default_code = "CONFLICT"


class InsufficientCreditsException(ClubException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_code = "INSUFFICIENT_CREDITS"


class ClassFullException(ClubException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_code = "CLASS_FULL"


class CancellationWindowException(ClubException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_code = "CANCELLATION_WINDOW_PASSED"


class FileUploadException(ClubException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_code = "FILE_UPLOAD_ERROR"
