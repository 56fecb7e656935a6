from app.api.v1.endpoints.admin.common import *
from app.schemas.schedule import (
    GenerateRequest,
    GenerationResult,
    LocationSchedules,
    Schedule,
    ScheduleCreate,
    ScheduleMutationResponse,
    ScheduleUpdate,
)
from app.services.schedule import schedule_service

router = APIRouter()


@router.get("/schedules", response_model=List[Schedule])
def list_schedules(
    location_id: Optional[int] = Query(None),
    include_inactive: bool = Query(False),
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_admin),
) -> Any:
    """Recurring schedules with day_name and the number of generated classes."""
    return schedule_service.list_schedules(db, location_id=location_id, include_inactive=include_inactive)


@router.get("/schedules/default", response_model=List[LocationSchedules])
def get_default_schedule(
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_admin),
) -> Any:
    """Active locations, each with its active base schedules."""
    return schedule_service.get_default_schedule(db)


@router.post("/schedules", response_model=ScheduleMutationResponse, status_code=status.HTTP_201_CREATED)
def create_schedule(
    schedule_in: ScheduleCreate,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_admin),
) -> Any:
    """
    Create Schedule

    Creates a weekly slot and generates its classes for SCHEDULE_MONTHS_AHEAD
    months. Override schedules replace base classes at the same location,
    weekday and time between their two dates.

    Request Body (ScheduleCreate):
        {
          "class_type_id": integer,
          "coach_id": integer,
          "location_id": integer,
          "day_of_week": integer (0 = Sunday ... 6 = Saturday),
          "start_time": "HH:MM (club-local, 24h)",
          "capacity": integer (>= 1),
          "is_override": boolean (optional),
          "override_start_date": "date (required for overrides)",
          "override_end_date": "date (required for overrides)"
        }

    Raises:
        HTTPException 400: Invalid time, inactive location, coach without the coach role or bad override dates.
        HTTPException 409: SCHEDULE_EXISTS for a duplicate base slot.
    """
    return schedule_service.create_schedule(db, schedule_in=schedule_in)


@router.put("/schedules/{schedule_id}", response_model=ScheduleMutationResponse)
def update_schedule(
    schedule_in: ScheduleUpdate,
    schedule_id: int = Path(...),
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_admin),
) -> Any:
    """
    Update Schedule

    Classes of this schedule without bookings are removed from the cutoff on
    and classes are regenerated from today on. The cutoff is the start of the current month when
    apply_to_current_month is true, otherwise the start of next month.
    Classes that already have bookings are kept as they are.
    """
    return schedule_service.update_schedule(db, schedule_id=schedule_id, schedule_in=schedule_in)


@router.delete("/schedules/{schedule_id}", response_model=Schedule)
def delete_schedule(
    schedule_id: int = Path(...),
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_admin),
) -> Any:
    """Deactivates the schedule. Classes already generated are kept."""
    return schedule_service.deactivate_schedule(db, schedule_id=schedule_id)


@router.post("/schedules/generate", response_model=GenerationResult)
def generate_classes(
    generate_in: GenerateRequest = Body(GenerateRequest()),
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_admin),
) -> Any:
    """Generates classes from every active schedule. Existing classes are not duplicated."""
    return schedule_service.generate(db, months_ahead=generate_in.months_ahead)
