"""
FastAPI dependencies for service injection.

Raises an HTTP 503 if the service has not been started.
"""

from fastapi import HTTPException, status

from ..service import FlagcastService, get_service


def get_flagcast() -> FlagcastService:
    """
    FastAPI dependency that provides the running Flagcast service.

    Raises:
        HTTPException: 503 if the service is not running
    """
    service = get_service()
    if service is None or not service.is_running:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Flagcast service is not running.",
        )
    return service
