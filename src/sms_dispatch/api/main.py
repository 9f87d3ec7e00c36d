"""FastAPI application for the SMS dispatch service."""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from sms_dispatch.config import get_settings
from sms_dispatch.logging import configure_logging
from sms_dispatch.service import DispatchService

from .routes.dispatch import router as dispatch_router
from .routes.health import router as health_router

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the shared service (one limiter, one gateway pool) for the process lifetime."""
    settings = get_settings()
    configure_logging()

    logger.info(
        "lifespan.startup",
        gateway_base_url=settings.GATEWAY_BASE_URL,
        rate_limiting_enabled=settings.RATE_LIMITING_ENABLED,
    )
    service = DispatchService.from_settings(settings)
    app.state.service = service

    logger.info("lifespan.ready")
    yield

    logger.info("lifespan.shutdown")
    service.close()


app = FastAPI(
    title="sms-dispatch",
    description="Batch SMS dispatch with shared gateway rate limiting",
    lifespan=lifespan,
)

app.include_router(health_router)
app.include_router(dispatch_router)
