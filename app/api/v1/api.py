from fastapi import APIRouter

# Import routers from modules
from app.api.v1.endpoints import classes, coach, qr

# Import modular packages directly
from app.api.v1.endpoints.auth import router as auth_router
from app.api.v1.endpoints.members import router as members_router
from app.api.v1.endpoints.admin import router as admin_router

api_router = APIRouter()

# Authentication module
api_router.include_router(auth_router, prefix="/auth")

# Members module (self-service)
api_router.include_router(members_router, prefix="/members")

# Public class schedule
api_router.include_router(classes.router, prefix="/classes", tags=["classes"])

# Coach module
api_router.include_router(coach.router, prefix="/coach", tags=["coach"])

# QR check-in
api_router.include_router(qr.router, prefix="/qr", tags=["qr"])

# Admin module
api_router.include_router(admin_router, prefix="/admin")
