"""
Flagcast - Real-time notification and feature flag server

The main FastAPI application entry point.
"""

# Load .env file FIRST, before any other imports
# .env.local overrides .env for machine-specific settings
from pathlib import Path
from dotenv import load_dotenv
_env_root = Path(__file__).parent.parent
load_dotenv(_env_root / ".env", override=True)
load_dotenv(_env_root / ".env.local", override=True)

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api import router as api_router
from .config import Settings, settings
from .service import FlagcastService, set_service

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("flagcast.main")


def create_app(
    app_settings: Optional[Settings] = None,
    service: Optional[FlagcastService] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        app_settings: Settings to use (defaults to the environment).
        service: Prebuilt service; built from settings when omitted.
    """
    app_settings = app_settings or settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Application lifespan handler.

        Starts the fan-out engine on startup and closes every client
        connection and backend on shutdown.
        """
        # --- Startup ---
        logger.info("Flagcast starting up...")
        flagcast = service or FlagcastService.from_settings(app_settings)
        await flagcast.start()
        set_service(flagcast)
        logger.info("Listening for notifications and flag updates")

        yield

        # --- Shutdown ---
        logger.info("Flagcast shutting down...")
        set_service(None)
        try:
            await flagcast.stop()
        except Exception as e:
            logger.error("Error stopping Flagcast service: %s", e)
        logger.info("Flagcast shutdown complete")

    app = FastAPI(
        title="Flagcast",
        description="Real-time notifications and feature flags over WebSocket.",
        version="0.1.0",
        debug=app_settings.debug,
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(api_router)
    return app


# Create the FastAPI application
app = create_app()


def run() -> None:
    """Run the server with uvicorn."""
    import uvicorn

    logger.info("Server listening on port %d", settings.port)
    logger.info("Notifications: http://localhost:%d/notify", settings.port)
    logger.info("Feature flags: http://localhost:%d/flags", settings.port)
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
