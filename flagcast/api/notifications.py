"""
Notification publishing endpoint.
"""

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field

from ..exceptions import BusUnavailable, InvalidInput
from ..service import FlagcastService
from .dependencies import get_flagcast

logger = logging.getLogger("flagcast.api.notifications")

router = APIRouter(tags=["notifications"])


class NotifyRequest(BaseModel):
    """Request body for publishing a notification."""

    model_config = ConfigDict(populate_by_name=True)

    # Accepted loosely so the validation layer owns the error messages
    kind: Any = Field(default=None, alias="type", description="info, success, warning or error")
    message: Any = Field(default=None, description="Notification text")


@router.post("/notify", status_code=202)
async def notify(
    req: NotifyRequest,
    service: FlagcastService = Depends(get_flagcast),
):
    """
    Publish a notification to every connected client.

    Returns 202 once the event is on the coordination bus.
    """
    try:
        event = await service.publish_notification(req.kind, req.message, source="api")
    except InvalidInput as e:
        raise HTTPException(400, str(e))
    except BusUnavailable as e:
        logger.error("Failed to publish notification: %s", e)
        raise HTTPException(503, "Failed to publish notification")

    return {"accepted": True, "event": event.to_dict()}
