"""
Health check endpoints.
"""

from fastapi import APIRouter

from ..service import get_service

router = APIRouter(tags=["Health"])


@router.get("/ping")
async def ping():
    """Simple endpoint to verify server is running."""
    return {"status": "ok", "message": "pong"}


@router.get("/health")
async def health():
    """Health check with backend status."""
    service = get_service()
    if service is None:
        return {"ok": False, "status": "starting", "services": {}}

    return {
        "ok": service.is_running,
        "status": "ok" if service.is_running else "stopped",
        "services": {
            "bus": {"backend": service.bus.backend},
            "store": {"backend": service.store.backend},
            "fanout": {
                "running": service.engine.is_running,
                "connections": len(service.registry),
                "live_connections": service.registry.live_count,
                "discarded_payloads": service.engine.discarded,
            },
        },
    }
