from app.api.v1.endpoints.admin.common import *
from app.schemas.location import Location, LocationCreate, LocationDeleteResponse, LocationUpdate
from app.services.location import location_service

router = APIRouter()


@router.get("/locations", response_model=List[Location])
def list_locations(
    include_inactive: bool = Query(True),
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_admin),
) -> Any:
    return location_service.get_locations(db, include_inactive=include_inactive)


@router.post("/locations", response_model=Location, status_code=status.HTTP_201_CREATED)
def create_location(
    location_in: LocationCreate,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_admin),
) -> Any:
    """
    Raises:
        HTTPException 409: LOCATION_EXISTS.
    """
    return location_service.create_location(db, location_in=location_in)


@router.put("/locations/{location_id}", response_model=Location)
def update_location(
    location_in: LocationUpdate,
    location_id: int = Path(...),
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_admin),
) -> Any:
    return location_service.update_location(db, location_id=location_id, location_in=location_in)


@router.delete("/locations/{location_id}", response_model=LocationDeleteResponse)
def delete_location(
    location_id: int = Path(...),
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_admin),
) -> Any:
    """
    Close Location

    Soft delete. Future classes at the location are cancelled and their
    confirmed bookings refunded, then the location's schedules and the
    location itself are deactivated.

    Returns:
        LocationDeleteResponse: Counts of cancelled classes, refunded bookings and deactivated schedules.

    Raises:
        HTTPException 404: LOCATION_NOT_FOUND.
    """
    return location_service.delete_location(db, location_id=location_id)
