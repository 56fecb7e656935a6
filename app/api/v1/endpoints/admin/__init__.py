"""
Admin Module - API Endpoints

Back-office routes: payments review, bookings and refunds, locations,
classes and class types, packages and prices, reports, member and coach
accounts, and recurring schedules.
"""

from fastapi import APIRouter

from app.api.v1.endpoints.admin import (
    bookings,
    classes,
    locations,
    packages,
    payments,
    reports,
    schedules,
    users,
)

router = APIRouter()

router.include_router(payments.router, tags=["admin-payments"])
router.include_router(bookings.router, tags=["admin-bookings"])
router.include_router(locations.router, tags=["admin-locations"])
router.include_router(classes.router, tags=["admin-classes"])
router.include_router(packages.router, tags=["admin-packages"])
router.include_router(reports.router, tags=["admin-reports"])
router.include_router(users.router, tags=["admin-users"])
router.include_router(schedules.router, tags=["admin-schedules"])
