from typing import Any, List, Literal, Optional

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.orm import Session

from app.core.auth import get_current_coach
from app.db.session import get_db
from app.models.user import User as UserModel
from app.schemas.admin import MemberProfile
from app.schemas.booking import AttendanceUpdate, Booking, ClassNote, ClassNoteUpsert, ClassRoster
from app.schemas.schedule import ClassInstance
from app.services.coach import coach_service
from app.services.user import user_service

router = APIRouter()


@router.get("/classes", response_model=List[ClassInstance])
def get_my_classes(
    upcoming: bool = Query(True, description="Only classes that have not started"),
    period: Optional[Literal["today", "week"]] = Query(None),
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_coach),
) -> Any:
    """
    Coach Classes

    The caller's classes with booking counts. Administrators see every class.

    Args:
        upcoming (bool): Only classes that have not started yet.
        period (str, optional): "today" for the current club-local day, "week" for the next 7 days.

    Permissions:
        - Coach or admin role.
    """
    return coach_service.get_classes(db, coach=current_user, period=period, upcoming=upcoming)


@router.get("/classes/{class_instance_id}/roster", response_model=ClassRoster)
def get_class_roster(
    class_instance_id: int = Path(...),
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_coach),
) -> Any:
    """
    Class Roster

    Bookings of the class that are not cancelled, with member and child names.

    Raises:
        HTTPException 403: The caller is not assigned to the class.
        HTTPException 404: CLASS_NOT_FOUND.
    """
    return coach_service.get_roster(db, coach=current_user, class_instance_id=class_instance_id)


@router.get("/classes/{class_instance_id}/notes", response_model=List[ClassNote])
def get_class_notes(
    class_instance_id: int = Path(...),
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_coach),
) -> Any:
    return coach_service.get_class_notes(db, coach=current_user, class_instance_id=class_instance_id)


@router.put("/attendance/{booking_id}", response_model=Booking)
def mark_attendance(
    attendance_in: AttendanceUpdate,
    booking_id: int = Path(...),
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_coach),
) -> Any:
    """
    Mark Attendance

    Marks a booking as attended or no_show. Only allowed on the club-local
    day of the class.

    Request Body (AttendanceUpdate):
        {
          "status": "attended | no_show"
        }

    Raises:
        HTTPException 400: INVALID_DATE or BOOKING_CANCELLED.
        HTTPException 403: The caller is not assigned to the class.
        HTTPException 404: BOOKING_NOT_FOUND.
    """
    return coach_service.mark_attendance(
        db, coach=current_user, booking_id=booking_id, status=attendance_in.status
    )


@router.post("/notes/{booking_id}", response_model=ClassNote)
def upsert_note(
    note_in: ClassNoteUpsert,
    booking_id: int = Path(...),
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_coach),
) -> Any:
    """
    Creates the performance note of a booking, or updates it if one exists.

    Raises:
        HTTPException 403: The caller is not assigned to the class.
        HTTPException 404: BOOKING_NOT_FOUND.
    """
    return coach_service.upsert_note(db, coach=current_user, booking_id=booking_id, note_in=note_in)


@router.get("/notes/{booking_id}", response_model=ClassNote)
def get_note(
    booking_id: int = Path(...),
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_coach),
) -> Any:
    return coach_service.get_note(db, coach=current_user, booking_id=booking_id)


@router.get("/members/{member_id}", response_model=MemberProfile)
def get_member_profile(
    member_id: int = Path(...),
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_coach),
) -> Any:
    """
    Member Profile

    Contact details, children and attendance history. For coaches the history
    is limited to their own classes.

    Raises:
        HTTPException 404: USER_NOT_FOUND.
    """
    return user_service.get_member_profile(db, user_id=member_id, coach=current_user)
