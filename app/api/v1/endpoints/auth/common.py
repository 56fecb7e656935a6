"""
Common imports and dependencies for the auth module.
"""
import logging
from typing import Any

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from app.core.auth import get_current_user
from app.db.session import get_db
from app.middleware.rate_limit import RATE_LIMITS, limiter
from app.models.user import User as UserModel
from app.schemas.token import AuthResponse, LoginRequest, MessageResponse
from app.schemas.user import User, UserCreate
from app.services.auth import auth_service

logger = logging.getLogger("auth")
