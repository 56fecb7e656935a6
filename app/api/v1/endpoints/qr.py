from typing import Any

from fastapi import APIRouter, Depends, Path
from sqlalchemy.orm import Session

from app.core.auth import get_current_coach, get_current_member
from app.db.session import get_db
from app.models.user import User as UserModel
from app.schemas.qr import QRGenerateResponse, QRStatus, QRValidateRequest, QRValidateResponse
from app.services.qr import qr_service

router = APIRouter()


@router.post("/generate/{booking_id}", response_model=QRGenerateResponse)
def generate_qr(
    booking_id: int = Path(...),
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_member),
) -> Any:
    """
    Generate Check-in QR

    Builds a signed check-in payload for one of the caller's confirmed
    bookings and renders it as a PNG data URL.

    Returns:
        QRGenerateResponse: The payload, its compact JSON string and the image.

    Raises:
        HTTPException 400: QR_NOT_AVAILABLE when the booking is not confirmed or the class is over.
        HTTPException 403: The booking belongs to someone else.
        HTTPException 404: BOOKING_NOT_FOUND.
    """
    return qr_service.generate(db, user=current_user, booking_id=booking_id)


@router.post("/validate", response_model=QRValidateResponse)
def validate_qr(
    validate_in: QRValidateRequest,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_coach),
) -> Any:
    """
    Validate Check-in QR

    Verifies a scanned QR and marks the booking as attended. The check-in
    window opens 60 minutes before the class and closes 60 minutes after it ends.

    Request Body (QRValidateRequest):
        {
          "qr_data": "JSON string or object"
        }

    Permissions:
        - Coach assigned to the class, or admin.

    Raises:
        HTTPException 400: INVALID_QR, INVALID_SIGNATURE, QR_EXPIRED, QR_MISMATCH,
            BOOKING_CANCELLED, TOO_EARLY or TOO_LATE.
        HTTPException 403: The caller is not assigned to the class.
        HTTPException 404: BOOKING_NOT_FOUND.
        HTTPException 409: ALREADY_CHECKED_IN.
    """
    return qr_service.validate(db, coach=current_user, qr_data=validate_in.qr_data)


@router.get("/status/{booking_id}", response_model=QRStatus)
def get_qr_status(
    booking_id: int = Path(...),
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_member),
) -> Any:
    """Whether the caller can generate a QR for the booking right now."""
    return qr_service.get_status(db, user=current_user, booking_id=booking_id)
