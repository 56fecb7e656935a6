"""
Common imports and dependencies for the members module.

Every route here requires the member role; the dependency is applied
per route so the generated docs show it.
"""
import logging
from typing import Any, List, Optional

from fastapi import APIRouter, Depends, File, Form, Path, Query, UploadFile, status
from sqlalchemy.orm import Session

from app.core.auth import get_current_member
from app.db.session import get_db
from app.models.user import User as UserModel
from app.schemas.booking import (
    BookingCancelResponse,
    BookingCreate,
    BookingCreateResponse,
    MemberDashboard,
)
from app.schemas.location import Location
from app.schemas.package import PackageOfferList
from app.schemas.payment import Payment, PurchaseResponse
from app.schemas.user import Child, ChildCreate, ChildDeleteResponse, ChildUpdate
from app.services.booking import booking_service
from app.services.location import location_service
from app.services.member import member_service
from app.services.payment import payment_service
from app.services.pricing import pricing_service

logger = logging.getLogger(__name__)
