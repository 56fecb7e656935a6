"""
Common imports and dependencies for the admin module.

Every route requires the admin role through get_current_admin.
"""
import logging
from datetime import date
from typing import Any, List, Literal, Optional

from fastapi import APIRouter, Body, Depends, Path, Query, status
from fastapi.responses import Response
from sqlalchemy.orm import Session

from app.core.auth import get_current_admin
from app.db.session import get_db
from app.models.booking import BookingStatus
from app.models.user import User as UserModel, UserRole

logger = logging.getLogger(__name__)
