"""
Members Module - API Endpoints

Self-service routes for members: catalog and purchases, dashboard,
bookings and children.
"""

from fastapi import APIRouter

from app.api.v1.endpoints.members import bookings, catalog, children, dashboard

router = APIRouter()

router.include_router(catalog.router, tags=["members"])
router.include_router(dashboard.router, tags=["members"])
router.include_router(bookings.router, tags=["members-bookings"])
router.include_router(children.router, tags=["members-children"])
