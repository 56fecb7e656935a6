from app.api.v1.endpoints.admin.common import *
from app.schemas.package import (
    LocationPrice,
    LocationPriceSet,
    MemberPrice,
    MemberPriceSet,
    Package,
    PackageCreate,
    PackageUpdate,
)
from app.schemas.token import MessageResponse
from app.services.package import package_service

router = APIRouter()


@router.get("/packages", response_model=List[Package])
def list_packages(
    include_inactive: bool = Query(True),
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_admin),
) -> Any:
    return package_service.list_packages(db, include_inactive=include_inactive)


@router.post("/packages", response_model=Package, status_code=status.HTTP_201_CREATED)
def create_package(
    package_in: PackageCreate,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_admin),
) -> Any:
    return package_service.create_package(db, package_in=package_in)


@router.put("/packages/{package_id}", response_model=Package)
def update_package(
    package_in: PackageUpdate,
    package_id: int = Path(...),
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_admin),
) -> Any:
    return package_service.update_package(db, package_id=package_id, package_in=package_in)


@router.delete("/packages/{package_id}", response_model=Package)
def delete_package(
    package_id: int = Path(...),
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_admin),
) -> Any:
    """
    Deactivates the package. Packages already bought keep their credits.

    Raises:
        HTTPException 404: PACKAGE_NOT_FOUND.
    """
    return package_service.deactivate_package(db, package_id=package_id)


# Location prices

@router.get("/packages/{package_id}/location-prices", response_model=List[LocationPrice])
def get_location_prices(
    package_id: int = Path(...),
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_admin),
) -> Any:
    return package_service.get_location_prices(db, package_id=package_id)


@router.put("/packages/{package_id}/location-prices/{location_id}", response_model=LocationPrice)
def set_location_price(
    price_in: LocationPriceSet,
    package_id: int = Path(...),
    location_id: int = Path(...),
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_admin),
) -> Any:
    """
    Set Location Price

    Creates or replaces the package's price at a location.

    Request Body (LocationPriceSet):
        {
          "price": decimal (>= 0),
          "include_vat": boolean,
          "is_active": boolean
        }

    Raises:
        HTTPException 404: PACKAGE_NOT_FOUND or LOCATION_NOT_FOUND.
    """
    return package_service.set_location_price(
        db, package_id=package_id, location_id=location_id, price_in=price_in
    )


@router.delete("/packages/{package_id}/location-prices/{location_id}", response_model=MessageResponse)
def delete_location_price(
    package_id: int = Path(...),
    location_id: int = Path(...),
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_admin),
) -> Any:
    package_service.delete_location_price(db, package_id=package_id, location_id=location_id)
    return {"message": "Location price removed"}


# Member prices

@router.get("/members/{member_id}/package-prices", response_model=List[MemberPrice])
def get_member_prices(
    member_id: int = Path(...),
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_admin),
) -> Any:
    return package_service.get_member_prices(db, user_id=member_id)


@router.put("/members/{member_id}/package-prices/{package_id}", response_model=MemberPrice)
def set_member_price(
    price_in: MemberPriceSet,
    member_id: int = Path(...),
    package_id: int = Path(...),
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_admin),
) -> Any:
    """
    Set Member Price

    Special renewal price for one member. It only applies once the member
    already owns a package.

    Raises:
        HTTPException 404: USER_NOT_FOUND or PACKAGE_NOT_FOUND.
    """
    return package_service.set_member_price(db, user_id=member_id, package_id=package_id, price_in=price_in)


@router.delete("/members/{member_id}/package-prices/{package_id}", response_model=MessageResponse)
def delete_member_price(
    member_id: int = Path(...),
    package_id: int = Path(...),
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_admin),
) -> Any:
    package_service.delete_member_price(db, user_id=member_id, package_id=package_id)
    return {"message": "Member price removed"}
