from app.api.v1.endpoints.admin.common import *
from app.schemas.admin import CoachDetails, CoachSummary, MemberDetails, UserActionResponse
from app.schemas.user import CoachCreate, MemberSummary, User, UserBrief, UserUpdate
from app.services.user import user_service

router = APIRouter()

StatusFilter = Optional[Literal["active", "paused", "frozen"]]


def _action(user: UserModel, message: str) -> dict:
    return {"message": message, "user": user}


# Members

@router.get("/members", response_model=List[MemberSummary])
def list_members(
    search: Optional[str] = Query(None, description="Matches name or email"),
    status: StatusFilter = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_admin),
) -> Any:
    """Members that are not deleted, with active credits and children count."""
    return user_service.list_members(db, search=search, status=status, skip=skip, limit=limit)


@router.get("/members/{member_id}", response_model=MemberDetails)
def get_member(
    member_id: int = Path(...),
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_admin),
) -> Any:
    """
    Member Details

    Profile with children, packages, bookings, payments and credit history.

    Raises:
        HTTPException 404: USER_NOT_FOUND.
    """
    return user_service.get_member_details(db, user_id=member_id)


@router.put("/members/{member_id}", response_model=User)
def update_member(
    user_in: UserUpdate,
    member_id: int = Path(...),
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_admin),
) -> Any:
    """
    Raises:
        HTTPException 404: USER_NOT_FOUND.
        HTTPException 409: USER_EXISTS when the email belongs to another account.
    """
    return user_service.update_user(db, user_id=member_id, role=UserRole.MEMBER, user_in=user_in)


@router.put("/members/{member_id}/pause", response_model=UserActionResponse)
def pause_member(
    member_id: int = Path(...),
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_admin),
) -> Any:
    user = user_service.set_status(db, user_id=member_id, role=UserRole.MEMBER, paused=True)
    return _action(user, "Member paused")


@router.put("/members/{member_id}/unpause", response_model=UserActionResponse)
def unpause_member(
    member_id: int = Path(...),
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_admin),
) -> Any:
    user = user_service.set_status(db, user_id=member_id, role=UserRole.MEMBER, paused=False)
    return _action(user, "Member unpaused")


@router.put("/members/{member_id}/freeze", response_model=UserActionResponse)
def freeze_member(
    member_id: int = Path(...),
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_admin),
) -> Any:
    user = user_service.set_status(db, user_id=member_id, role=UserRole.MEMBER, frozen=True)
    return _action(user, "Member frozen")


@router.put("/members/{member_id}/unfreeze", response_model=UserActionResponse)
def unfreeze_member(
    member_id: int = Path(...),
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_admin),
) -> Any:
    user = user_service.set_status(db, user_id=member_id, role=UserRole.MEMBER, frozen=False)
    return _action(user, "Member unfrozen")


@router.delete("/members/{member_id}", response_model=UserActionResponse)
def delete_member(
    member_id: int = Path(...),
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_admin),
) -> Any:
    """Soft delete: the account can no longer log in and is hidden from listings."""
    user = user_service.delete_user(db, user_id=member_id, role=UserRole.MEMBER)
    return _action(user, "Member deleted")


# Coaches

@router.get("/coaches", response_model=List[UserBrief])
def get_active_coaches(
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_admin),
) -> Any:
    """Coaches available for class and schedule pickers."""
    return user_service.get_active_coaches(db)


@router.get("/coaches/list", response_model=List[CoachSummary])
def list_coaches(
    search: Optional[str] = Query(None, description="Matches name or email"),
    status: StatusFilter = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_admin),
) -> Any:
    """Coach management list with each coach's upcoming class count."""
    return user_service.list_coaches(db, search=search, status=status, skip=skip, limit=limit)


@router.get("/coaches/{coach_id}", response_model=CoachDetails)
def get_coach(
    coach_id: int = Path(...),
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_admin),
) -> Any:
    return user_service.get_coach_details(db, user_id=coach_id)


@router.post("/coaches", response_model=User, status_code=201)
def create_coach(
    coach_in: CoachCreate,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_admin),
) -> Any:
    """
    Create Coach

    Request Body (CoachCreate):
        {
          "email": "string",
          "password": "string (min 8)",
          "first_name": "string",
          "last_name": "string",
          "phone": "string (optional)"
        }

    Raises:
        HTTPException 409: USER_EXISTS.
    """
    return user_service.create_coach(db, coach_in=coach_in)


@router.put("/coaches/{coach_id}", response_model=User)
def update_coach(
    user_in: UserUpdate,
    coach_id: int = Path(...),
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_admin),
) -> Any:
    return user_service.update_user(db, user_id=coach_id, role=UserRole.COACH, user_in=user_in)


@router.put("/coaches/{coach_id}/pause", response_model=UserActionResponse)
def pause_coach(
    coach_id: int = Path(...),
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_admin),
) -> Any:
    user = user_service.set_status(db, user_id=coach_id, role=UserRole.COACH, paused=True)
    return _action(user, "Coach paused")


@router.put("/coaches/{coach_id}/unpause", response_model=UserActionResponse)
def unpause_coach(
    coach_id: int = Path(...),
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_admin),
) -> Any:
    user = user_service.set_status(db, user_id=coach_id, role=UserRole.COACH, paused=False)
    return _action(user, "Coach unpaused")


@router.put("/coaches/{coach_id}/freeze", response_model=UserActionResponse)
def freeze_coach(
    coach_id: int = Path(...),
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_admin),
) -> Any:
    user = user_service.set_status(db, user_id=coach_id, role=UserRole.COACH, frozen=True)
    return _action(user, "Coach frozen")


@router.put("/coaches/{coach_id}/unfreeze", response_model=UserActionResponse)
def unfreeze_coach(
    coach_id: int = Path(...),
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_admin),
) -> Any:
    user = user_service.set_status(db, user_id=coach_id, role=UserRole.COACH, frozen=False)
    return _action(user, "Coach unfrozen")


@router.delete("/coaches/{coach_id}", response_model=UserActionResponse)
def delete_coach(
    coach_id: int = Path(...),
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_admin),
) -> Any:
    user = user_service.delete_user(db, user_id=coach_id, role=UserRole.COACH)
    return _action(user, "Coach deleted")
