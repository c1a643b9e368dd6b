"""Commission calculation API endpoints."""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from commission_engine.config import settings
from commission_engine.db import get_db
from commission_engine.schemas.commission import (
    BreakdownUpdateRequest,
    CalculateTierRequest,
    GroupPayload,
    GroupTotalsResponse,
    RecordSnapshot,
    TierConfigPayload,
    TierResultResponse,
    TierTotalsResponse,
)
from commission_engine.services.aggregator import Group, GroupKey, TierTotals, UnknownRecordError
from commission_engine.services.calculator import RATE_CONFIG_FIELDS, RateConfig, Tier, calculate_tier
from commission_engine.services.persistence import RecordSaveError, apply_breakdown_update
from commission_engine.services.record import CommissionRecord, UnknownFieldError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/commissions", tags=["Commissions"])


def _rate_config(payload: TierConfigPayload) -> RateConfig:
    config = RateConfig()
    for field_name in RATE_CONFIG_FIELDS:
        config = config.with_field(field_name, getattr(payload, field_name))
    return config


def _tier_totals(totals: TierTotals) -> TierTotalsResponse:
    return TierTotalsResponse(
        rate=totals.rate,
        amount=totals.amount,
        vat=totals.vat,
        ewt=totals.ewt,
        net_commission=totals.net_commission,
    )


@router.post("/calculate", response_model=TierResultResponse)
async def calculate(request: CalculateTierRequest):
    """Compute one tier's amounts from raw form values."""
    result = calculate_tier(
        request.base_commission,
        _rate_config(request),
        tier=request.tier,
        vat_deduction_mode=settings.vat_deduction_mode,
    )
    return TierResultResponse.from_result(result)


@router.post("/totals", response_model=GroupTotalsResponse)
async def group_totals(payload: GroupPayload):
    """Totals row for a developer invoice, computed from raw record inputs."""
    group = Group(GroupKey(payload.developer_name, payload.invoice_number))

    for record_payload in payload.records:
        record = CommissionRecord(payload.developer_name, "", invoice_number=payload.invoice_number)
        for tier in Tier:
            tier_payload = getattr(record_payload, tier.value)
            for field_name in RATE_CONFIG_FIELDS:
                record.update_rate_config(tier, field_name, getattr(tier_payload, field_name))
        record.update_base_commission(record_payload.base_commission)
        group.add_record(record)

    totals = group.totals()
    return GroupTotalsResponse(
        developer_name=totals.key.developer_name,
        invoice_number=totals.key.invoice_number,
        record_count=totals.record_count,
        base_commission=totals.base_commission,
        net_of_vat=totals.net_of_vat,
        agent=_tier_totals(totals.agent),
        unit_manager=_tier_totals(totals.unit_manager),
        team_leader=_tier_totals(totals.team_leader),
    )


@router.patch("/breakdown/{record_uuid}", response_model=RecordSnapshot)
async def update_breakdown(
    record_uuid: str,
    update: BreakdownUpdateRequest,
    db: AsyncSession = Depends(get_db),
):
    """Apply edits to a stored commission record, recompute and save it."""
    try:
        return await apply_breakdown_update(db, record_uuid, update)
    except UnknownRecordError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Commission record not found",
        )
    except UnknownFieldError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown field: {e.args[0]}",
        )
    except RecordSaveError as e:
        logger.error(f"Breakdown update failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Failed to update agent commission",
        )
