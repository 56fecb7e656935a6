from app.api.v1.endpoints.admin.common import *
from app.schemas.booking import (
    AdminBooking,
    AdminBookingCreate,
    BookingCancelResponse,
    BookingCreateResponse,
    ManualRefund,
    ManualRefundResponse,
)
from app.services.booking import booking_service
from app.services.credit import credit_service

router = APIRouter()


@router.get("/bookings", response_model=List[AdminBooking])
def list_bookings(
    class_instance_id: Optional[int] = Query(None),
    user_id: Optional[int] = Query(None),
    day: Optional[date] = Query(None, alias="date", description="Club-local day of the class"),
    status: Optional[BookingStatus] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(200, ge=1, le=500),
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_admin),
) -> Any:
    """Bookings matching the filters, most recent class first."""
    return booking_service.list_bookings(
        db,
        class_instance_id=class_instance_id,
        user_id=user_id,
        day=day,
        status=status,
        skip=skip,
        limit=limit,
    )


@router.post("/bookings", response_model=BookingCreateResponse, status_code=201)
def create_booking(
    booking_in: AdminBookingCreate,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_admin),
) -> Any:
    """
    Manual Booking

    Books a class on behalf of a member. Same rules as a member booking
    except that paused or frozen accounts are allowed.

    Raises:
        HTTPException 400: CLASS_CANCELLED, CLASS_IN_PAST, CLASS_FULL, CREDITS_EXPIRED or INSUFFICIENT_CREDITS.
        HTTPException 404: USER_NOT_FOUND or CLASS_NOT_FOUND.
        HTTPException 409: ALREADY_BOOKED.
    """
    return booking_service.admin_create_booking(
        db,
        user_id=booking_in.user_id,
        class_instance_id=booking_in.class_instance_id,
        child_id=booking_in.child_id,
    )


@router.delete("/bookings/{booking_id}", response_model=BookingCancelResponse)
def cancel_booking(
    booking_id: int = Path(...),
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_admin),
) -> Any:
    """Cancels a booking without the cancellation window and refunds its credit."""
    return booking_service.admin_cancel_booking(db, booking_id=booking_id)


@router.post("/refund", response_model=ManualRefundResponse)
def manual_refund(
    refund_in: ManualRefund,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_admin),
) -> Any:
    """
    Manual Credit Refund

    Adds credits to the member's active package with the latest expiry, or to
    the most recently purchased one, which is reactivated if it had expired.

    Request Body (ManualRefund):
        {
          "user_id": integer,
          "credits": integer (>= 1),
          "reason": "string"
        }

    Raises:
        HTTPException 404: USER_NOT_FOUND or NO_PACKAGE_FOUND.
    """
    logger.info(f"Devolución manual solicitada por admin {current_user.id} para usuario {refund_in.user_id}")
    return credit_service.manual_refund(
        db, user_id=refund_in.user_id, credits=refund_in.credits, reason=refund_in.reason
    )
