from typing import Any, Dict, Optional, Union
from datetime import datetime
from pydantic import BaseModel

from app.models.booking import BookingStatus
from app.schemas.schedule import ClassInstanceBrief


class QRPayload(BaseModel):
    booking_id: int
    user_id: int
    child_id: Optional[int] = None
    timestamp: int  # milisegundos desde epoch
    signature: str


class QRGenerateResponse(BaseModel):
    qr_data: QRPayload
    qr_string: str
    qr_image: str  # data URL image/png;base64


class QRValidateRequest(BaseModel):
    # Texto escaneado (JSON) o el objeto ya decodificado
    qr_data: Union[str, Dict[str, Any]]


class QRValidateResponse(BaseModel):
    message: str
    booking_id: int
    status: BookingStatus
    member_name: str
    booked_for: str
    checked_in_at: datetime
    class_instance: ClassInstanceBrief


class QRStatus(BaseModel):
    booking_id: int
    status: BookingStatus
    can_generate_qr: bool
    hours_until_class: float
    class_start: datetime
