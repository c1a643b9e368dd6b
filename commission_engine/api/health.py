"""
Health check endpoints.
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from commission_engine import __version__
from commission_engine.config import settings
from commission_engine.db import get_db
from commission_engine.models import CommissionReport

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["Health"])


@router.get("")
async def health_check():
    """Liveness: the process is up."""
    return {"status": "healthy", "service": "commission-engine"}


@router.get("/ready")
async def readiness_check(db: AsyncSession = Depends(get_db)):
    """
    Readiness: the commission tables can be queried.

    Also reports the calculation settings in effect so a deployment can be
    checked without reading its environment.
    """
    try:
        report_count = (await db.execute(select(func.count()).select_from(CommissionReport))).scalar_one()
    except Exception as e:
        logger.warning(f"Readiness check failed: {e}")
        return {
            "status": "not_ready",
            "database": f"error: {e}",
        }

    return {
        "status": "ready",
        "database": "connected",
        "version": __version__,
        "reports": report_count,
        "recompute_debounce_seconds": settings.recompute_debounce_seconds,
        "vat_deduction_mode": settings.vat_deduction_mode,
    }
