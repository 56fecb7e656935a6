from app.api.v1.endpoints.admin.common import *
from app.schemas.booking import ClassRoster
from app.schemas.schedule import (
    ClassDeleteResponse,
    ClassInstance,
    ClassInstanceCreate,
    ClassInstanceCreateResponse,
    ClassInstanceUpdate,
    ClassType,
    ClassTypeCreate,
)
from app.services.class_instance import class_service

router = APIRouter()


@router.get("/classes", response_model=List[ClassInstance])
def list_classes(
    location_id: Optional[int] = Query(None),
    coach_id: Optional[int] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    include_cancelled: bool = Query(False),
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_admin),
) -> Any:
    return class_service.list_classes(
        db,
        location_id=location_id,
        coach_id=coach_id,
        start_date=start_date,
        end_date=end_date,
        include_cancelled=include_cancelled,
    )


@router.get("/classes/{class_instance_id}/roster", response_model=ClassRoster)
def get_class_roster(
    class_instance_id: int = Path(...),
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_admin),
) -> Any:
    return class_service.get_roster(db, class_instance_id=class_instance_id, requester=current_user)


@router.post("/classes", response_model=ClassInstanceCreateResponse, status_code=status.HTTP_201_CREATED)
def create_class(
    class_in: ClassInstanceCreate,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_admin),
) -> Any:
    """
    Create Class

    Creates a single class, or a recurring series when `recurring` is given.
    A naive start_time is read as club-local time.

    Request Body (ClassInstanceCreate):
        {
          "class_type_id": integer,
          "coach_id": integer,
          "location_id": integer,
          "start_time": "datetime",
          "capacity": integer (>= 1),
          "recurring": {
            "frequency": "daily | weekly | biweekly | monthly",
            "count": integer (optional, max 52),
            "end_date": "date (optional)"
          } (optional)
        }

    Returns:
        ClassInstanceCreateResponse: Message and the created classes.

    Raises:
        HTTPException 400: Inactive location or invalid recurrence.
        HTTPException 404: CLASS_TYPE_NOT_FOUND, COACH_NOT_FOUND or LOCATION_NOT_FOUND.
    """
    return class_service.create_classes(db, class_in=class_in)


@router.put("/classes/{class_instance_id}", response_model=ClassInstance)
def update_class(
    class_in: ClassInstanceUpdate,
    class_instance_id: int = Path(...),
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_admin),
) -> Any:
    """
    Update Class

    The end time is recomputed from the class type duration. Setting
    is_cancelled refunds every confirmed booking.

    Raises:
        HTTPException 400: CAPACITY_TOO_LOW when capacity is below the confirmed bookings.
        HTTPException 404: CLASS_NOT_FOUND.
    """
    return class_service.update_class(db, class_instance_id=class_instance_id, class_in=class_in)


@router.delete("/classes/{class_instance_id}", response_model=ClassDeleteResponse)
def delete_class(
    class_instance_id: int = Path(...),
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_admin),
) -> Any:
    """Refunds confirmed bookings, then deletes the class and its bookings."""
    return class_service.delete_class(db, class_instance_id=class_instance_id)


@router.get("/class-types", response_model=List[ClassType])
def list_class_types(
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_admin),
) -> Any:
    return class_service.list_class_types(db)


@router.post("/class-types", response_model=ClassType, status_code=status.HTTP_201_CREATED)
def create_class_type(
    class_type_in: ClassTypeCreate,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_admin),
) -> Any:
    """
    Raises:
        HTTPException 409: CLASS_TYPE_EXISTS.
    """
    return class_service.create_class_type(db, class_type_in=class_type_in)
