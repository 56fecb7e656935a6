from datetime import date
from typing import Any, List, Optional

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.orm import Session

from app.core.auth import get_current_user
from app.db.session import get_db
from app.models.user import User as UserModel
from app.schemas.schedule import ClassAvailability, ClassInstance
from app.services.class_instance import class_service

router = APIRouter()


@router.get("/schedule", response_model=List[ClassInstance])
def get_class_schedule(
    location_id: Optional[int] = Query(None),
    day: Optional[date] = Query(None, alias="date", description="Single club-local day"),
    coach_id: Optional[int] = Query(None),
    start_date: Optional[date] = Query(None, description="Window start (default today)"),
    end_date: Optional[date] = Query(None, description="Window end (default today + 14 days)"),
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
) -> Any:
    """
    Class Schedule

    Lists classes that are not cancelled, ordered by start time. When `date`
    is given only that club-local day is returned; otherwise the window
    start_date..end_date is used.

    Each class carries capacity, booked_count (confirmed plus attended),
    available_spots, is_full, and is_booked / booking_id for the caller's
    own confirmed booking.

    Raises:
        HTTPException 400: INVALID_DATE_RANGE when end_date is before start_date.
        HTTPException 401: Missing or invalid token.
    """
    return class_service.get_schedule(
        db,
        user=current_user,
        location_id=location_id,
        coach_id=coach_id,
        day=day,
        start_date=start_date,
        end_date=end_date,
    )


@router.get("/{class_instance_id}/availability", response_model=ClassAvailability)
def get_class_availability(
    class_instance_id: int = Path(...),
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
) -> Any:
    """
    Raises:
        HTTPException 404: CLASS_NOT_FOUND.
    """
    return class_service.get_availability(db, class_instance_id=class_instance_id)
