"""
Main FastAPI application entry point.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from offplan_xirr.config import get_settings
from offplan_xirr.api import router as api_router
from offplan_xirr.services.rates import get_rate_service

settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Load exchange rates on startup and stop background fetches on shutdown."""
    if settings.rates_cache_backend == "database":
        from offplan_xirr.db.database import init_db

        init_db()

    rate_service = get_rate_service()
    await rate_service.initialize()
    logger.info(f"Exchange rates ready ({rate_service.provenance.value})")
    yield
    await rate_service.close()


# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Annualized return (XIRR) calculator for off-plan property investments",
    version="0.1.0",
    debug=settings.debug,
    lifespan=lifespan,
)

# Include API routes
app.include_router(api_router, prefix="/api")


@app.get("/health")
async def health_check():
    """Health check endpoint for monitoring."""
    return {"status": "healthy", "version": "0.1.0"}
