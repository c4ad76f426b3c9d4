"""
Combined status endpoint.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException

from ..exceptions import StoreUnavailable
from ..service import FlagcastService
from .dependencies import get_flagcast

logger = logging.getLogger("flagcast.api.status")

router = APIRouter(tags=["status"])


@router.get("/status")
async def get_status(service: FlagcastService = Depends(get_flagcast)):
    """Backlog size, connected clients and every flag value."""
    try:
        flags = await service.list_flags()
    except StoreUnavailable as e:
        logger.error("Failed to list flags for status: %s", e)
        raise HTTPException(503, "Flag store unavailable")

    return {
        "notifications": {
            "backlog_size": service.current_backlog_size(),
            "connected_clients": service.connected_count(),
        },
        "flags": {
            "count": len(flags),
            "values": flags,
        },
    }
