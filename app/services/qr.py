"""
Check-in por código QR.

El miembro genera un QR firmado para una reserva confirmada; el entrenador lo
escanea y la reserva queda marcada como asistida. La firma es
HMAC-SHA256(QR_SECRET, "{booking_id}:{user_id}:{timestamp}") en hexadecimal,
con timestamp en milisegundos desde epoch.
"""
import base64
import hashlib
import hmac
import io
import json
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Union

import qrcode
from pydantic import ValidationError
from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.core.exceptions import (
    ConflictException,
    ForbiddenException,
    NotFoundException,
    ValidationException,
)
from app.db.types import utcnow
from app.models.booking import Booking, BookingStatus
from app.models.user import User, UserRole
from app.repositories.booking import booking_repository
from app.schemas.qr import QRPayload

logger = logging.getLogger(__name__)


def sign_payload(booking_id: int, user_id: int, timestamp: int, secret: Optional[str] = None) -> str:
    key = (secret or get_settings().QR_SECRET).encode("utf-8")
    message = f"{booking_id}:{user_id}:{timestamp}".encode("utf-8")
    return hmac.new(key, message, hashlib.sha256).hexdigest()


def verify_signature(payload: QRPayload, secret: Optional[str] = None) -> bool:
    expected = sign_payload(payload.booking_id, payload.user_id, payload.timestamp, secret)
    return hmac.compare_digest(expected, payload.signature)


def render_qr_data_url(data: str, box_size: int = 8, border: int = 2) -> str:
    """PNG del QR codificado como data URL"""
    qr = qrcode.QRCode(
        version=None,
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=box_size,
        border=border,
    )
    qr.add_data(data)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return "data:image/png;base64," + base64.b64encode(buf.getvalue()).decode("ascii")


def _to_millis(dt: datetime) -> int:
    return int(dt.timestamp() * 1000)


class QRService:
    def _get_own_booking(self, db: Session, *, user: User, booking_id: int) -> Booking:
        booking = booking_repository.get_with_class(db, booking_id)
        if not booking:
            raise NotFoundException("Booking not found", code="BOOKING_NOT_FOUND")
        if booking.user_id != user.id:
            raise ForbiddenException("Access denied")
        return booking

    def _hours_until_class(self, booking: Booking, now: datetime) -> float:
        return (booking.class_instance.start_time - now).total_seconds() / 3600

    def get_status(self, db: Session, *, user: User, booking_id: int) -> Dict[str, Any]:
        booking = self._get_own_booking(db, user=user, booking_id=booking_id)
        hours = self._hours_until_class(booking, utcnow())
        return {
            "booking_id": booking.id,
            "status": booking.status,
            "can_generate_qr": booking.status == BookingStatus.CONFIRMED and hours >= -1,
            "hours_until_class": round(hours, 1),
            "class_start": booking.class_instance.start_time,
        }

    def generate(self, db: Session, *, user: User, booking_id: int) -> Dict[str, Any]:
        """
        Genera el QR de una reserva confirmada del miembro.

        Raises:
            ValidationException: QR_NOT_AVAILABLE si la reserva no está confirmada
                o la clase empezó hace más de una hora
        """
        booking = self._get_own_booking(db, user=user, booking_id=booking_id)
        if booking.status != BookingStatus.CONFIRMED:
            raise ValidationException(
                f"Cannot generate QR code for {booking.status.value} booking", code="QR_NOT_AVAILABLE"
            )
        now = utcnow()
        if self._hours_until_class(booking, now) < -1:
            raise ValidationException("Cannot generate QR code for past classes", code="QR_NOT_AVAILABLE")

        timestamp = _to_millis(now)
        payload = QRPayload(
            booking_id=booking.id,
            user_id=booking.user_id,
            child_id=booking.child_id,
            timestamp=timestamp,
            signature=sign_payload(booking.id, booking.user_id, timestamp),
        )
        qr_string = json.dumps(payload.model_dump(), separators=(",", ":"))
        return {
            "qr_data": payload,
            "qr_string": qr_string,
            "qr_image": render_qr_data_url(qr_string),
        }

    def _parse(self, qr_data: Union[str, Dict[str, Any]]) -> QRPayload:
        try:
            raw = json.loads(qr_data) if isinstance(qr_data, str) else qr_data
            return QRPayload.model_validate(raw)
        except (ValueError, TypeError, ValidationError):
            raise ValidationException("Invalid QR code format", code="INVALID_QR")

    def validate(self, db: Session, *, coach: User, qr_data: Union[str, Dict[str, Any]]) -> Dict[str, Any]:
        """
        Valida un QR escaneado y marca la reserva como asistida.

        Raises:
            ValidationException: INVALID_QR, INVALID_SIGNATURE, QR_EXPIRED, QR_MISMATCH,
                BOOKING_CANCELLED, TOO_EARLY, TOO_LATE
            NotFoundException: BOOKING_NOT_FOUND
            ForbiddenException: el entrenador no tiene asignada la clase
            ConflictException: ALREADY_CHECKED_IN
        """
        settings = get_settings()
        payload = self._parse(qr_data)
        if not verify_signature(payload):
            raise ValidationException("Invalid QR code signature", code="INVALID_SIGNATURE")

        now = utcnow()
        issued_at = datetime.fromtimestamp(payload.timestamp / 1000, tz=timezone.utc)
        age_minutes = (now - issued_at).total_seconds() / 60
        if age_minutes > settings.QR_MAX_AGE_MINUTES:
            raise ValidationException(
                "QR code has expired", code="QR_EXPIRED", details={"age_minutes": round(age_minutes)}
            )

        booking = booking_repository.get_with_class(db, payload.booking_id)
        if not booking:
            raise NotFoundException("Booking not found", code="BOOKING_NOT_FOUND")
        if booking.user_id != payload.user_id or booking.child_id != payload.child_id:
            raise ValidationException("QR code does not match the booking", code="QR_MISMATCH")

        instance = booking.class_instance
        if coach.role != UserRole.ADMIN and instance.coach_id != coach.id:
            raise ForbiddenException("You are not assigned to this class")

        if booking.status == BookingStatus.ATTENDED:
            raise ConflictException(
                "Attendance already marked",
                code="ALREADY_CHECKED_IN",
                details={"attendance_time": booking.attendance_marked_at.isoformat() if booking.attendance_marked_at else None},
            )
        if booking.status == BookingStatus.CANCELLED:
            raise ValidationException("Booking has been cancelled", code="BOOKING_CANCELLED")

        if now < instance.start_time - timedelta(minutes=settings.QR_CHECKIN_EARLY_MINUTES):
            minutes = round((instance.start_time - now).total_seconds() / 60)
            raise ValidationException(
                f"Too early to mark attendance. Class starts in {minutes} minutes", code="TOO_EARLY"
            )
        if now > instance.end_time + timedelta(minutes=settings.QR_CHECKIN_LATE_MINUTES):
            minutes = round((now - instance.end_time).total_seconds() / 60)
            raise ValidationException(
                f"Too late to mark attendance. Class ended {minutes} minutes ago", code="TOO_LATE"
            )

        booking.status = BookingStatus.ATTENDED
        booking.attendance_marked_at = now
        db.add(booking)
        db.commit()
        db.refresh(booking)
        logger.info(f"Check-in: reserva {booking.id} marcada por {coach.id}")

        return {
            "message": "Attendance marked successfully",
            "booking_id": booking.id,
            "status": booking.status,
            "member_name": booking.user.full_name,
            "booked_for": booking.booked_for,
            "checked_in_at": now,
            "class_instance": instance,
        }


qr_service = QRService()
