from app.api.v1.endpoints.members.common import *

router = APIRouter()


@router.get("/dashboard", response_model=MemberDashboard)
def get_dashboard(
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_member),
) -> Any:
    """
    Member Dashboard

    Returns:
        MemberDashboard:
            - total_credits: remaining credits across active packages
            - active_packages: ordered by expiry, with days_until_expiry and is_expiring_soon
            - expired_packages: the last five
            - upcoming_bookings / past_bookings
    """
    return member_service.get_dashboard(db, user=current_user)
