from app.api.v1.endpoints.members.common import *

router = APIRouter()


@router.get("/children", response_model=List[Child])
def list_children(
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_member),
) -> Any:
    """The caller's children with their upcoming_bookings_count."""
    return member_service.list_children(db, user=current_user)


@router.post("/children", response_model=Child, status_code=status.HTTP_201_CREATED)
def add_child(
    child_in: ChildCreate,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_member),
) -> Any:
    return member_service.add_child(db, user=current_user, child_in=child_in)


@router.put("/children/{child_id}", response_model=Child)
def update_child(
    child_in: ChildUpdate,
    child_id: int = Path(...),
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_member),
) -> Any:
    """
    Raises:
        HTTPException 404: CHILD_NOT_FOUND when the child does not belong to the caller.
    """
    return member_service.update_child(db, user=current_user, child_id=child_id, child_in=child_in)


@router.delete("/children/{child_id}", response_model=ChildDeleteResponse)
def delete_child(
    child_id: int = Path(...),
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_member),
) -> Any:
    """
    Delete Child

    Cancels and refunds the child's future confirmed bookings, then deletes
    the child.

    Returns:
        ChildDeleteResponse: Message and the number of refunded bookings.

    Raises:
        HTTPException 404: CHILD_NOT_FOUND.
    """
    return member_service.delete_child(db, user=current_user, child_id=child_id)
