"""
API v1 routes.
"""

from fastapi import APIRouter

from eduscope.api.v1 import admin, auth, research, users

router = APIRouter()

router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
router.include_router(research.router, prefix="/research", tags=["Research Papers"])
router.include_router(users.router, prefix="/user", tags=["Profile Requests"])
router.include_router(admin.router, prefix="/admin", tags=["Admin"])
