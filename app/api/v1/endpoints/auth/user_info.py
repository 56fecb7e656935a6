from app.api.v1.endpoints.auth.common import *

router = APIRouter()


@router.get("/me", response_model=User)
def read_users_me(current_user: UserModel = Depends(get_current_user)) -> Any:
    """
    Returns the profile of the currently authenticated user.

    Raises:
        HTTPException 401: Missing, invalid or expired token.
    """
    return current_user
