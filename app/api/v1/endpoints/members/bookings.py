from app.api.v1.endpoints.members.common import *

router = APIRouter()


@router.post("/bookings", response_model=BookingCreateResponse, status_code=status.HTTP_201_CREATED)
def create_booking(
    booking_in: BookingCreate,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_member),
) -> Any:
    """
    Book a Class

    Books a class for the caller, or for one of the caller's children, using
    one credit from the active package that expires first.

    Request Body (BookingCreate):
        {
          "class_instance_id": integer,
          "child_id": integer (optional)
        }

    Returns:
        BookingCreateResponse: The booking and the credits left in the package used.

    Raises:
        HTTPException 400: CLASS_CANCELLED, CLASS_IN_PAST, CLASS_FULL, CREDITS_EXPIRED or INSUFFICIENT_CREDITS.
        HTTPException 403: ACCOUNT_PAUSED, ACCOUNT_FROZEN or INVALID_CHILD.
        HTTPException 404: CLASS_NOT_FOUND.
        HTTPException 409: ALREADY_BOOKED.
    """
    return booking_service.create_booking(
        db,
        user=current_user,
        class_instance_id=booking_in.class_instance_id,
        child_id=booking_in.child_id,
    )


@router.delete("/bookings/{booking_id}", response_model=BookingCancelResponse)
def cancel_booking(
    booking_id: int = Path(..., description="Booking to cancel"),
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_member),
) -> Any:
    """
    Cancel a Booking

    Cancels one of the caller's bookings and refunds its credit. Not allowed
    once the class has started or inside the cancellation window.

    Raises:
        HTTPException 400: ALREADY_CANCELLED, CLASS_IN_PAST or CANCELLATION_WINDOW_PASSED.
        HTTPException 403: The booking belongs to someone else.
        HTTPException 404: BOOKING_NOT_FOUND.
    """
    return booking_service.cancel_booking(db, user=current_user, booking_id=booking_id)
