"""
Storage of commission records in commission_agent_breakdown.

Saving is a plain sequential loop, one commit per record: when a write
fails the loop stops, earlier records stay saved and the failure is
raised to the caller as RecordSaveError.
"""

import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from commission_engine.models import CommissionBreakdown, CommissionReport
from commission_engine.schemas.commission import (
    BreakdownUpdateRequest,
    RecordSnapshot,
    TierSnapshot,
)
from commission_engine.services.aggregator import CommissionReportDraft, UnknownRecordError
from commission_engine.services.calculator import (
    CalculationTreatment,
    Tier,
    WithholdingRate,
)
from commission_engine.services.recompute_scheduler import RecomputeScheduler
from commission_engine.services.record import CommissionRecord, UnknownFieldError
from commission_engine.utils.numbers import quantize_money

logger = logging.getLogger(__name__)

# Snapshot field -> column, per tier
TIER_COLUMNS: Dict[Tier, Dict[str, str]] = {
    Tier.AGENT: {
        "calc_type": "calculation_type",
        "rate": "agents_rate",
        "developers_rate": "developers_rate",
        "ewt_rate": "agent_ewt_rate",
        "amount": "agent_amount",
        "vat": "agent_vat",
        "ewt": "agent_ewt",
        "net_commission": "agent_net_comm",
    },
    Tier.UNIT_MANAGER: {
        "calc_type": "um_calculation_type",
        "rate": "um_rate",
        "developers_rate": "um_developers_rate",
        "ewt_rate": "um_ewt_rate",
        "amount": "um_amount",
        "vat": "um_vat",
        "ewt": "um_ewt",
        "net_commission": "um_net_comm",
        "name": "um_name",
        "bdo_account": "um_bdo_account",
    },
    Tier.TEAM_LEADER: {
        "calc_type": "tl_calculation_type",
        "rate": "tl_rate",
        "developers_rate": "tl_developers_rate",
        "ewt_rate": "tl_ewt_rate",
        "amount": "tl_amount",
        "vat": "tl_vat",
        "ewt": "tl_ewt",
        "net_commission": "tl_net_comm",
        "name": "tl_name",
        "bdo_account": "tl_bdo_account",
    },
}

_AMOUNT_FIELDS = ("amount", "vat", "ewt", "net_commission")


class RecordSaveError(Exception):
    """
    A record could not be written.

    Attributes:
        record_id: The record whose write failed
        saved_ids: Records written before the failure (left in place)
    """

    def __init__(self, record_id: str, saved_ids: List[str], cause: Exception):
        self.record_id = record_id
        self.saved_ids = saved_ids
        self.cause = cause
        super().__init__(f"Failed to save commission record {record_id}: {cause}")


def snapshot_to_columns(snapshot: RecordSnapshot) -> Dict[str, Any]:
    """Map a snapshot to column values. Amounts are rounded to centavos."""
    values: Dict[str, Any] = {
        "sequence_no": snapshot.sequence_no,
        "entry_date": snapshot.entry_date,
        "developer": snapshot.developer_name,
        "invoice_number": snapshot.invoice_number,
        "agent_name": snapshot.agent_name,
        "client": snapshot.client_name or None,
        "reservation_date": snapshot.reservation_date,
        "lrsalesid": str(snapshot.sale_id) if snapshot.sale_id is not None else None,
        "memberid": str(snapshot.member_id) if snapshot.member_id is not None else None,
        "comm": quantize_money(snapshot.base_commission),
        "comm_type": snapshot.commission_kind,
        "net_of_vat": quantize_money(snapshot.net_of_vat),
        "status": snapshot.status or None,
        "bdo_account": snapshot.bdo_account or None,
        "secretary_remarks": snapshot.remarks or None,
    }

    for tier, columns in TIER_COLUMNS.items():
        tier_snapshot = snapshot.tier(tier)
        values[columns["calc_type"]] = tier_snapshot.calc_type.value if tier_snapshot.calc_type else None
        values[columns["rate"]] = tier_snapshot.rate
        values[columns["developers_rate"]] = tier_snapshot.developers_rate
        values[columns["ewt_rate"]] = tier_snapshot.ewt_rate.value
        for field_name in _AMOUNT_FIELDS:
            values[columns[field_name]] = quantize_money(getattr(tier_snapshot, field_name))
        if "name" in columns:
            values[columns["name"]] = tier_snapshot.name or None
            values[columns["bdo_account"]] = tier_snapshot.bdo_account or None

    return values


def row_to_snapshot(row: CommissionBreakdown) -> RecordSnapshot:
    """Map a stored row back to a snapshot. Missing rates get the form defaults."""
    tiers: Dict[str, TierSnapshot] = {}
    for tier, columns in TIER_COLUMNS.items():
        rate = getattr(row, columns["rate"])
        developers_rate = getattr(row, columns["developers_rate"])
        tiers[tier.value] = TierSnapshot(
            calc_type=CalculationTreatment.parse(
                getattr(row, columns["calc_type"]) or CalculationTreatment.NON_VAT_WITH_INVOICE.value
            ),
            rate=rate if rate is not None else Decimal("4.0"),
            developers_rate=developers_rate if developers_rate is not None else Decimal("5.0"),
            ewt_rate=WithholdingRate.parse(getattr(row, columns["ewt_rate"]) or "5"),
            net_of_vat=row.net_of_vat if tier == Tier.AGENT else None,
            amount=getattr(row, columns["amount"]),
            vat=getattr(row, columns["vat"]),
            ewt=getattr(row, columns["ewt"]),
            net_commission=getattr(row, columns["net_commission"]),
            name=row.agent_name if tier == Tier.AGENT else getattr(row, columns["name"]),
            bdo_account=row.bdo_account if tier == Tier.AGENT else getattr(row, columns["bdo_account"]),
        )

    return RecordSnapshot(
        id=row.uuid,
        sequence_no=row.sequence_no,
        entry_date=row.entry_date or row.created_at.date(),
        developer_name=row.developer,
        invoice_number=row.invoice_number,
        agent_name=row.agent_name,
        client_name=row.client or "",
        reservation_date=row.reservation_date,
        sale_id=int(row.lrsalesid) if row.lrsalesid else None,
        member_id=int(row.memberid) if row.memberid else None,
        base_commission=row.comm,
        net_of_vat=row.net_of_vat,
        commission_kind=row.comm_type or "COMM",
        status=row.status or "",
        bdo_account=row.bdo_account or "",
        remarks=row.secretary_remarks or "",
        **tiers,
    )


async def save_records(
    db: AsyncSession,
    report: CommissionReport,
    records: Sequence[CommissionRecord],
) -> List[str]:
    """
    Insert or update each record, in order, committing one at a time.

    Pending COMM recomputes are flushed first so the typed value is what
    gets stored.

    Returns:
        Ids of the saved records

    Raises:
        RecordSaveError: on the first failed write; later records are not attempted
    """
    saved: List[str] = []

    for record in records:
        if record.scheduler is not None:
            record.scheduler.flush(record.id)

        try:
            values = snapshot_to_columns(record.snapshot())
            row = await db.get(CommissionBreakdown, record.id)
            if row is None:
                row = CommissionBreakdown(
                    uuid=record.id,
                    commission_report_uuid=report.uuid,
                    commission_report_number=report.report_number,
                )
                db.add(row)
            for column, value in values.items():
                setattr(row, column, value)
            await db.commit()
        except Exception as e:
            await db.rollback()
            logger.error(f"Error saving commission record {record.id}: {e}", exc_info=True)
            raise RecordSaveError(record.id, saved, e) from e

        saved.append(record.id)

    logger.info(f"Saved {len(saved)} commission records to report #{report.report_number}")
    return saved


async def load_records(
    db: AsyncSession,
    report_uuid: str,
    scheduler: Optional[RecomputeScheduler] = None,
) -> List[CommissionRecord]:
    """Load a report's records in their stored order, results as stored."""
    result = await db.execute(
        select(CommissionBreakdown)
        .where(CommissionBreakdown.commission_report_uuid == report_uuid)
        .order_by(CommissionBreakdown.sequence_no, CommissionBreakdown.created_at)
    )
    return [
        CommissionRecord.from_snapshot(row_to_snapshot(row), scheduler=scheduler)
        for row in result.scalars().all()
    ]


async def load_report_draft(
    db: AsyncSession,
    report: CommissionReport,
    scheduler: Optional[RecomputeScheduler] = None,
) -> CommissionReportDraft:
    """Open an existing report for editing, grouped by developer invoice."""
    draft = CommissionReportDraft(report_number=report.report_number, scheduler=scheduler)
    for record in await load_records(db, report.uuid):
        draft.group(record.developer_name, record.invoice_number).add_record(record)
    return draft


async def apply_breakdown_update(
    db: AsyncSession,
    record_uuid: str,
    update: BreakdownUpdateRequest,
) -> RecordSnapshot:
    """
    Apply form edits to one stored record, recompute and save it.

    Raises:
        UnknownRecordError: no such row
        UnknownFieldError: a rate or descriptive field name is not recognised
        RecordSaveError: the write failed
    """
    row = await db.get(CommissionBreakdown, record_uuid)
    if row is None:
        raise UnknownRecordError(record_uuid)
    report = await db.get(CommissionReport, row.commission_report_uuid)

    # No scheduler: every edit recomputes synchronously
    record = CommissionRecord.from_snapshot(row_to_snapshot(row))

    if "base_commission" in update.model_fields_set:
        record.update_base_commission(update.base_commission)

    for key, value in update.rates.items():
        tier_name, _, field_name = key.partition(".")
        try:
            tier = Tier(tier_name)
        except ValueError:
            raise UnknownFieldError(key) from None
        record.update_rate_config(tier, field_name, value)

    for field_name, value in update.descriptive.items():
        record.update_descriptive(field_name, value)

    await save_records(db, report, [record])
    return record.snapshot()
