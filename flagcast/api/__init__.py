"""
API routers for Flagcast.
"""

from fastapi import APIRouter

from .flags import router as flags_router
from .health import router as health_router
from .notifications import router as notifications_router
from .status import router as status_router
from .websocket import router as websocket_router

# Main router that aggregates all sub-routers
router = APIRouter()

router.include_router(health_router)
router.include_router(notifications_router)
router.include_router(flags_router)
router.include_router(status_router)
router.include_router(websocket_router)
