"""
Commission Engine - real-estate commission calculation service

Main FastAPI application with:
- Stateless tier calculation and group totals
- Updates to stored commission breakdown rows
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from commission_engine import __version__
from commission_engine.api import api_router
from commission_engine.config import settings
from commission_engine.db import engine

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Shutdown:
    - Disposes the database engine
    """
    logger.info(
        f"Starting Commission Engine (debounce {settings.recompute_debounce_seconds}s, "
        f"vat deduction mode '{settings.vat_deduction_mode}')"
    )

    yield

    # Shutdown
    logger.info("Shutting down Commission Engine...")
    await engine.dispose()


# Create FastAPI application
app = FastAPI(
    title="Commission Engine",
    description="Real-estate sales commission calculation and report aggregation",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs" if not settings.is_production else None,
    redoc_url="/redoc" if not settings.is_production else None,
)

# Include routers
app.include_router(api_router)  # /api/* endpoints
