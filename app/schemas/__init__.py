from app.schemas.user import User, UserCreate, UserUpdate, Child, ChildCreate, ChildUpdate
from app.schemas.token import Token, AuthResponse, LoginRequest, MessageResponse
from app.schemas.booking import Booking, BookingCreate, BookingCreateResponse, BookingCancelResponse
