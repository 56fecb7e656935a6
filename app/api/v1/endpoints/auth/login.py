from app.api.v1.endpoints.auth.common import *

router = APIRouter()


@router.post("/signup", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(RATE_LIMITS["signup"])
def signup(
    request: Request,
    user_in: UserCreate,
    db: Session = Depends(get_db),
) -> Any:
    """
    Member Signup

    Creates a member account and returns an access token so the client is
    signed in straight away. The email is trimmed and lowercased.

    Request Body (UserCreate):
        {
          "email": "string",
          "password": "string (min 8)",
          "first_name": "string",
          "last_name": "string",
          "phone": "string (optional)"
        }

    Returns:
        AuthResponse: Bearer token and the new user.

    Raises:
        HTTPException 409: USER_EXISTS when the email is already registered.
        HTTPException 429: Too many signup attempts from this client.
    """
    return auth_service.signup(db, user_in=user_in)


@router.post("/login", response_model=AuthResponse)
@limiter.limit(RATE_LIMITS["login"])
def login(
    request: Request,
    credentials: LoginRequest,
    db: Session = Depends(get_db),
) -> Any:
    """
    Login

    Exchanges email and password for a bearer token.

    Returns:
        AuthResponse: Bearer token and the authenticated user.

    Raises:
        HTTPException 401: INVALID_CREDENTIALS, or OAUTH_ONLY for accounts without a password.
        HTTPException 429: Too many login attempts from this client.
    """
    return auth_service.login(db, email=credentials.email, password=credentials.password)


@router.post("/logout", response_model=MessageResponse)
def logout(current_user: UserModel = Depends(get_current_user)) -> Any:
    """
    Logout

    Tokens are stateless, so the client just discards its token. The call is
    kept so clients have a single place to end the session.
    """
    logger.info(f"Logout del usuario {current_user.id}")
    return {"message": "Logged out successfully"}
