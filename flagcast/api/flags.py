"""
Feature flag endpoints.
"""

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from ..exceptions import BusUnavailable, InvalidKey, StoreUnavailable
from ..service import FlagcastService
from .dependencies import get_flagcast

logger = logging.getLogger("flagcast.api.flags")

router = APIRouter(prefix="/flags", tags=["flags"])


class FlagUpdateRequest(BaseModel):
    """Request body for setting a flag."""

    key: Any = Field(default=None, description="Flag key matching [A-Za-z0-9_.-]+")
    value: Any = Field(default=None, description="true, \"true\", 1 or \"1\" enable; anything else disables")


@router.get("")
async def list_flags(service: FlagcastService = Depends(get_flagcast)):
    """Get the current value of every flag."""
    try:
        return await service.list_flags()
    except StoreUnavailable as e:
        logger.error("Failed to list flags: %s", e)
        raise HTTPException(503, "Flag store unavailable")


@router.post("", status_code=202)
async def set_flag(
    req: FlagUpdateRequest,
    service: FlagcastService = Depends(get_flagcast),
):
    """
    Set a flag and broadcast the change.

    Returns 202 with the published flag change event.
    """
    try:
        event = await service.mutate_flag(req.key, req.value)
    except InvalidKey as e:
        raise HTTPException(400, str(e))
    except (StoreUnavailable, BusUnavailable) as e:
        logger.error("Failed to update flag: %s", e)
        raise HTTPException(503, "Failed to update flag")

    return {"updated": True, "event": event.to_dict()}
