from app.api.v1.endpoints.admin.common import *
from app.schemas.payment import (
    PaymentApprovalResponse,
    PaymentReject,
    PaymentRejectionResponse,
    PaymentWithUser,
)
from app.services.payment import payment_service

router = APIRouter()


@router.get("/payments/pending", response_model=List[PaymentWithUser])
def get_pending_payments(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_admin),
) -> Any:
    """Pending payments, oldest first."""
    return payment_service.get_pending(db, skip=skip, limit=limit)


@router.put("/payments/{payment_id}/approve", response_model=PaymentApprovalResponse)
def approve_payment(
    payment_id: int = Path(...),
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_admin),
) -> Any:
    """
    Approve Payment

    Creates the member package (full session count, expiry from the package's
    expiry_days), marks the payment approved and records the purchase in the
    credit ledger. A receipt is emailed to the member.

    Raises:
        HTTPException 404: PAYMENT_NOT_FOUND.
        HTTPException 409: PAYMENT_ALREADY_PROCESSED.
    """
    return payment_service.approve_payment(db, payment_id=payment_id, admin=current_user)


@router.put("/payments/{payment_id}/reject", response_model=PaymentRejectionResponse)
def reject_payment(
    reject_in: PaymentReject,
    payment_id: int = Path(...),
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_admin),
) -> Any:
    """
    Reject Payment

    Request Body (PaymentReject):
        {
          "rejection_reason": "string (required)"
        }

    Raises:
        HTTPException 404: PAYMENT_NOT_FOUND.
        HTTPException 409: PAYMENT_ALREADY_PROCESSED.
    """
    return payment_service.reject_payment(
        db, payment_id=payment_id, admin=current_user, reason=reject_in.rejection_reason
    )
