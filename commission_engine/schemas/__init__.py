"""Pydantic schemas for request/response validation."""

from commission_engine.schemas.commission import (
    BreakdownUpdateRequest,
    CalculateTierRequest,
    GroupPayload,
    GroupTotalsResponse,
    RecordPayload,
    RecordSnapshot,
    SearchCandidate,
    TierConfigPayload,
    TierResultResponse,
    TierSnapshot,
    TierTotalsResponse,
)

__all__ = [
    # Engine boundary
    "RecordSnapshot",
    "SearchCandidate",
    "TierSnapshot",
    # API
    "BreakdownUpdateRequest",
    "CalculateTierRequest",
    "GroupPayload",
    "GroupTotalsResponse",
    "RecordPayload",
    "TierConfigPayload",
    "TierResultResponse",
    "TierTotalsResponse",
]
