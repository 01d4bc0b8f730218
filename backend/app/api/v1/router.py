"""API v1 router aggregator.

All v1 endpoint routers are included here, mounted under /api/v1.
"""

from fastapi import APIRouter

from app.api.v1 import auth_otp, notifications

router = APIRouter()

# =============================================================================
# Authentication (one-time codes)
# =============================================================================

router.include_router(auth_otp.router, prefix="/auth", tags=["auth"])

# =============================================================================
# Notifications
# =============================================================================

router.include_router(
    notifications.router, prefix="/notifications", tags=["notifications"]
)
