from app.api.v1.endpoints.members.common import *

router = APIRouter()


@router.get("/locations", response_model=List[Location])
def get_locations(
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_member),
) -> Any:
    """Active locations sorted by name."""
    return location_service.get_active_locations(db)


@router.get("/packages", response_model=PackageOfferList)
def get_packages(
    location_id: Optional[int] = Query(None, description="Resolve location prices for this location"),
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_member),
) -> Any:
    """
    Package Catalog

    Lists active packages with the price that applies to the caller.

    Price resolution, first match wins:
        1. Member-specific price (only for renewals, i.e. the member already owns a package)
        2. Location price (when location_id is given and the price is active)
        3. Package default price

    Returns:
        PackageOfferList: Packages plus the is_renewal and has_special_renewal_prices flags.
    """
    return pricing_service.get_offers(db, user=current_user, location_id=location_id)


@router.post("/purchase", response_model=PurchaseResponse, status_code=status.HTTP_201_CREATED)
async def purchase_package(
    package_id: int = Form(...),
    location_id: Optional[int] = Form(None),
    screenshot: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_member),
) -> Any:
    """
    Purchase Package

    Submits a payment screenshot for a package. The payment stays pending
    until an administrator approves it, which is when credits are granted.

    Args:
        package_id (int): Package to buy (multipart form field).
        location_id (int, optional): Location whose price applies.
        screenshot (UploadFile): jpg, jpeg, png, heic or heif, at most MAX_UPLOAD_SIZE bytes.

    Returns:
        PurchaseResponse: Confirmation message and the pending payment.

    Raises:
        HTTPException 400: FILE_REQUIRED, INVALID_FILE_TYPE or FILE_TOO_LARGE.
        HTTPException 404: PACKAGE_NOT_FOUND or LOCATION_NOT_FOUND.
    """
    return await payment_service.submit_purchase(
        db,
        user=current_user,
        package_id=package_id,
        location_id=location_id,
        screenshot=screenshot,
    )


@router.get("/payments", response_model=List[Payment])
def get_my_payments(
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_member),
) -> Any:
    """The caller's payments, newest first."""
    return payment_service.get_member_payments(db, user_id=current_user.id)
