"""FastAPI application factory and lifespan for the SFO stratus service."""

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import settings
from .api.router import api_router
from .api import stratus as stratus_api
from .services.refresh import StratusRefresher

# Configure logging for our app (uvicorn only configures its own loggers)
logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s:     %(name)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: start/stop the optional refresh scheduler."""
    refresher = StratusRefresher()
    stratus_api.set_refresher(refresher)

    refresher_task = None
    if settings.auto_refresh_enabled:
        refresher_task = asyncio.create_task(refresher.run())
        logger.info("Auto refresh started (%d min interval)", settings.refresh_interval_min)

    yield

    logger.info("Shutting down...")
    refresher.stop()
    if refresher_task:
        refresher_task.cancel()
        try:
            await refresher_task
        except asyncio.CancelledError:
            pass
    logger.info("Application shutdown complete")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="SFO Stratus Forecast",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router)
    return app


# Application instance
app = create_app()

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.host, port=settings.port)
