"""
Plain-data commission report sheet.

Builds the header, one row per record and the totals row of a
"Sale Record Details" block. Turning this into a workbook is the
spreadsheet collaborator's job; nothing here knows about file formats.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, List, Optional

from commission_engine.services.aggregator import Group, GroupTotals, TierTotals
from commission_engine.services.calculator import Tier
from commission_engine.services.record import CommissionRecord, TierState
from commission_engine.utils.numbers import quantize_money

HEADER = [
    "RESERVATION DATE",
    "DEVELOPER",
    "AGENT NAME",
    "CLIENT",
    "TYPE",
    "BDO ACCOUNT #",
    "COMM",
    "NET OF VAT",
    "STATUS",
    "AGENT CALC TYPE",
    "AGENT'S RATE",
    "AGENT",
    "VAT",
    "EWT",
    "NET COMM",
    "UM NAME",
    "UM BDO ACCOUNT #",
    "UM CALC TYPE",
    "UM RATE",
    "UM AMOUNT",
    "UM VAT",
    "UM EWT",
    "UM NET COMM",
    "TL NAME",
    "TL BDO ACCOUNT #",
    "TL CALC TYPE",
    "TL RATE",
    "TL AMOUNT",
    "TL VAT",
    "TL EWT",
    "TL NET COMM",
    "REMARKS",
]

EMPTY_GROUP_MESSAGE = "No commission records added yet."


@dataclass
class ExportSheet:
    """One invoice block of the report, ready to be written out."""
    title: str
    header: List[str] = field(default_factory=lambda: list(HEADER))
    rows: List[List[Any]] = field(default_factory=list)
    totals_row: Optional[List[Any]] = None


def _cell(amount: Optional[Decimal]) -> Decimal:
    """Amount cell: 2 fraction digits, unset written as 0."""
    return quantize_money(amount) if amount is not None else Decimal("0.00")


def _date_cell(value: Optional[date]) -> str:
    return value.strftime("%b %d, %Y") if value else ""


def _tier_cells(state: TierState) -> List[Any]:
    config, result = state.config, state.result
    return [
        config.calc_type.value if config.calc_type else "",
        config.rate,
        _cell(result.amount),
        _cell(result.vat),
        _cell(result.ewt),
        _cell(result.net_commission),
    ]


def record_row(record: CommissionRecord) -> List[Any]:
    agent, um, tl = record.agent, record.unit_manager, record.team_leader
    return [
        _date_cell(record.reservation_date),
        record.developer_name,
        record.agent_name,
        record.client_name,
        record.commission_kind.value,
        record.bdo_account,
        _cell(record.base_commission),
        _cell(record.net_of_vat),
        record.status,
        *_tier_cells(agent),
        um.name,
        um.bdo_account,
        *_tier_cells(um),
        tl.name,
        tl.bdo_account,
        *_tier_cells(tl),
        record.remarks,
    ]


def _tier_total_cells(totals: TierTotals, with_rate: bool) -> List[Any]:
    return [
        "",
        _cell(totals.rate) if with_rate else "",
        _cell(totals.amount),
        _cell(totals.vat),
        _cell(totals.ewt),
        _cell(totals.net_commission),
    ]


def totals_row(totals: GroupTotals) -> List[Any]:
    """Totals row aligned with HEADER. UM and TL rates are summed, the agent's is not."""
    return [
        "",
        "",
        "",
        "Totals:",
        "",
        "",
        _cell(totals.base_commission),
        _cell(totals.net_of_vat),
        "",
        *_tier_total_cells(totals.tier(Tier.AGENT), with_rate=False),
        "",
        "",
        *_tier_total_cells(totals.tier(Tier.UNIT_MANAGER), with_rate=True),
        "",
        "",
        *_tier_total_cells(totals.tier(Tier.TEAM_LEADER), with_rate=True),
        "",
    ]


def build_export_sheet(group: Group) -> ExportSheet:
    """Rows and totals for one developer invoice."""
    sheet = ExportSheet(title=f"Sale Record Details - Invoice # {group.key.invoice_number or 'N/A'}")
    records = group.records
    if not records:
        sheet.rows.append([EMPTY_GROUP_MESSAGE])
        return sheet

    sheet.rows.extend(record_row(record) for record in records)
    sheet.totals_row = totals_row(group.totals())
    return sheet
