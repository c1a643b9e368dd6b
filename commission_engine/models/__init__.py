"""
Database models.

All models are exported here for convenient imports:
    from commission_engine.models import CommissionReport, CommissionBreakdown
"""

from commission_engine.models.base import Base, TimestampMixin
from commission_engine.models.commission import CommissionBreakdown, CommissionReport

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    # Commission
    "CommissionReport",
    "CommissionBreakdown",
]
