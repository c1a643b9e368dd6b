"""
Commission record: one sale's commission split across Agent, UM and TL.

A record is owned by a single editing session and mutated only through
its update_* methods. Tier results always derive from the committed base
commission and the tier's RateConfig:

- update_base_commission(): stores the raw text, recompute is debounced
- update_rate_config():     recomputes the edited tier immediately
- update_descriptive():     metadata only, no recompute
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Dict, Optional

from pydantic import TypeAdapter, ValidationError

from commission_engine.config import settings
from commission_engine.schemas.commission import RecordSnapshot, SearchCandidate, TierSnapshot
from commission_engine.services.calculator import (
    EMPTY_RESULT,
    RATE_CONFIG_FIELDS,
    CalculationTreatment,
    RateConfig,
    Tier,
    TierResult,
    WithholdingRate,
    calculate_tier,
)
from commission_engine.utils.numbers import NumberLike, format_money, parse_decimal

if TYPE_CHECKING:
    from commission_engine.services.recompute_scheduler import RecomputeScheduler

logger = logging.getLogger(__name__)


class CommissionKind(str, Enum):
    """What the payout covers."""
    COMM = "COMM"
    INCENTIVES = "INCENTIVES"
    COMM_AND_INCENTIVES = "COMM & INCENTIVES"

    @classmethod
    def parse(cls, value) -> "CommissionKind":
        try:
            return cls(value)
        except ValueError:
            return cls.COMM


class UnknownFieldError(KeyError):
    """Raised when an update names a field the record does not accept."""


DESCRIPTIVE_FIELDS = (
    "agent_name",
    "client_name",
    "reservation_date",
    "status",
    "remarks",
    "bdo_account",
    "commission_kind",
    "um_name",
    "um_bdo_account",
    "tl_name",
    "tl_bdo_account",
)

# Descriptive fields stored on a tier rather than on the record
_TIER_DESCRIPTIVE_FIELDS = {
    "um_name": (Tier.UNIT_MANAGER, "name"),
    "um_bdo_account": (Tier.UNIT_MANAGER, "bdo_account"),
    "tl_name": (Tier.TEAM_LEADER, "name"),
    "tl_bdo_account": (Tier.TEAM_LEADER, "bdo_account"),
}


_DATE_ADAPTER = TypeAdapter(date)


def parse_reservation_date(value) -> Optional[date]:
    """
    Accept a date or ISO text ("2026-04-01"). Empty or unparsable input is unset.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return _DATE_ADAPTER.validate_python(value.strip() if isinstance(value, str) else value)
    except ValidationError:
        logger.debug(f"Unparsable reservation date {value!r} left unset")
        return None


def default_rate_config() -> RateConfig:
    """Rates given to every tier of a freshly attached record."""
    return RateConfig(
        rate=settings.default_agent_rate,
        developers_rate=settings.default_developers_rate,
        ewt_rate=WithholdingRate(settings.default_ewt_rate),
        calc_type=CalculationTreatment.NON_VAT_WITH_INVOICE,
    )


@dataclass
class TierState:
    """A tier's inputs, its latest result, and who receives it."""
    config: RateConfig = field(default_factory=default_rate_config)
    result: TierResult = EMPTY_RESULT
    name: str = ""
    bdo_account: str = ""


class CommissionRecord:
    """
    One row of a commission report.

    Args:
        developer_name: Developer the sale belongs to (part of the group key)
        agent_name: Selling agent
        invoice_number: Invoice the commission is billed under (part of the group key)
        scheduler: Times recomputes; without one every edit recomputes synchronously
    """

    def __init__(
        self,
        developer_name: str,
        agent_name: str,
        client_name: str = "",
        *,
        invoice_number: Optional[str] = None,
        reservation_date: Optional[date] = None,
        sequence_no: int = 1,
        entry_date: Optional[date] = None,
        sale_id: Optional[int] = None,
        member_id: Optional[int] = None,
        record_id: Optional[str] = None,
        scheduler: Optional["RecomputeScheduler"] = None,
    ):
        self.id = record_id or str(uuid.uuid4())
        self.sequence_no = sequence_no
        self.entry_date = entry_date or date.today()
        self.developer_name = developer_name
        self.invoice_number = invoice_number
        self.agent_name = agent_name
        self.client_name = client_name
        self.reservation_date = reservation_date
        self.sale_id = sale_id
        self.member_id = member_id
        self.commission_kind = CommissionKind.COMM
        self.status = ""
        self.bdo_account = ""
        self.remarks = ""

        self.raw_base_commission = ""
        self.base_commission: Optional[Decimal] = None
        self.tiers: Dict[Tier, TierState] = {tier: TierState() for tier in Tier}
        self.scheduler = scheduler

    @classmethod
    def from_candidate(
        cls,
        candidate: SearchCandidate,
        *,
        invoice_number: Optional[str] = None,
        sequence_no: int = 1,
        scheduler: Optional["RecomputeScheduler"] = None,
    ) -> "CommissionRecord":
        """
        Create a record for a sale picked from the search results.

        The base commission starts empty: the amount hint is informational
        and the user types the actual COMM.
        """
        return cls(
            developer_name=candidate.developer_name,
            agent_name=candidate.agent_name,
            client_name=candidate.client_name,
            invoice_number=invoice_number,
            reservation_date=candidate.reservation_date,
            sequence_no=sequence_no,
            sale_id=candidate.sale_id,
            member_id=candidate.member_id,
            scheduler=scheduler,
        )

    @classmethod
    def from_snapshot(
        cls,
        snapshot: RecordSnapshot,
        scheduler: Optional["RecomputeScheduler"] = None,
    ) -> "CommissionRecord":
        """Rebuild a record, keeping its stored results as they are."""
        record = cls(
            developer_name=snapshot.developer_name,
            agent_name=snapshot.agent_name,
            client_name=snapshot.client_name,
            invoice_number=snapshot.invoice_number,
            reservation_date=snapshot.reservation_date,
            sequence_no=snapshot.sequence_no,
            entry_date=snapshot.entry_date,
            sale_id=snapshot.sale_id,
            member_id=snapshot.member_id,
            record_id=snapshot.id,
            scheduler=scheduler,
        )
        record.commission_kind = CommissionKind.parse(snapshot.commission_kind)
        record.status = snapshot.status
        record.bdo_account = snapshot.bdo_account
        record.remarks = snapshot.remarks
        record.base_commission = snapshot.base_commission
        record.raw_base_commission = "" if snapshot.base_commission is None else str(snapshot.base_commission)

        for tier in Tier:
            stored = snapshot.tier(tier)
            record.tiers[tier] = TierState(
                config=RateConfig(
                    rate=stored.rate,
                    developers_rate=stored.developers_rate,
                    ewt_rate=stored.ewt_rate,
                    calc_type=stored.calc_type,
                ),
                result=stored.to_result(),
                name=stored.name or "",
                bdo_account=stored.bdo_account or "",
            )
        return record

    # ── accessors ─────────────────────────────────────────

    def tier(self, tier: Tier) -> TierState:
        return self.tiers[tier]

    @property
    def agent(self) -> TierState:
        return self.tiers[Tier.AGENT]

    @property
    def unit_manager(self) -> TierState:
        return self.tiers[Tier.UNIT_MANAGER]

    @property
    def team_leader(self) -> TierState:
        return self.tiers[Tier.TEAM_LEADER]

    @property
    def net_of_vat(self) -> Optional[Decimal]:
        """Record-level net of VAT, as shown in the COMM columns (Agent tier's value)."""
        return self.agent.result.net_of_vat

    @property
    def recompute_pending(self) -> bool:
        return self.scheduler is not None and self.scheduler.is_pending(self.id)

    # ── mutators ──────────────────────────────────────────

    def update_base_commission(self, value: NumberLike) -> None:
        """Store the typed COMM; all tiers are recomputed once typing settles."""
        self.raw_base_commission = "" if value is None else str(value)
        if self.scheduler is None:
            self.recompute_all()
        else:
            self.scheduler.schedule_debounced(self)

    def update_rate_config(self, tier: Tier, field_name: str, value) -> None:
        """Change one of a tier's rates or its treatment and recompute that tier now."""
        if field_name not in RATE_CONFIG_FIELDS:
            raise UnknownFieldError(field_name)

        state = self.tiers[tier]
        state.config = state.config.with_field(field_name, value)
        if self.scheduler is None:
            self.recompute_tier(tier)
        else:
            self.scheduler.run_immediate(self, tier)

    def update_descriptive(self, field_name: str, value) -> None:
        """Store metadata. Never triggers a recompute."""
        if field_name not in DESCRIPTIVE_FIELDS:
            raise UnknownFieldError(field_name)

        if field_name in _TIER_DESCRIPTIVE_FIELDS:
            tier, attr = _TIER_DESCRIPTIVE_FIELDS[field_name]
            setattr(self.tiers[tier], attr, value or "")
        elif field_name == "commission_kind":
            self.commission_kind = CommissionKind.parse(value)
        elif field_name == "reservation_date":
            self.reservation_date = parse_reservation_date(value)
        else:
            setattr(self, field_name, value or "")

    # ── recomputation ─────────────────────────────────────

    def recompute_all(self) -> None:
        """Commit the latest typed COMM and recompute every tier from it."""
        self.base_commission = parse_decimal(self.raw_base_commission)
        for tier in Tier:
            self.recompute_tier(tier)
        logger.debug(f"Record {self.id}: recomputed all tiers from COMM {format_money(self.base_commission) or '(empty)'}")

    def recompute_tier(self, tier: Tier) -> None:
        """Recompute one tier from the committed COMM."""
        state = self.tiers[tier]
        state.result = calculate_tier(
            self.base_commission,
            state.config,
            tier=tier,
            previous=state.result,
            vat_deduction_mode=settings.vat_deduction_mode,
        )

    # ── export ────────────────────────────────────────────

    def snapshot(self) -> RecordSnapshot:
        """Full state as of the latest completed recompute."""
        return RecordSnapshot(
            id=self.id,
            sequence_no=self.sequence_no,
            entry_date=self.entry_date,
            developer_name=self.developer_name,
            invoice_number=self.invoice_number,
            agent_name=self.agent_name,
            client_name=self.client_name,
            reservation_date=self.reservation_date,
            sale_id=self.sale_id,
            member_id=self.member_id,
            base_commission=self.base_commission,
            net_of_vat=self.net_of_vat,
            commission_kind=self.commission_kind.value,
            status=self.status,
            bdo_account=self.bdo_account,
            remarks=self.remarks,
            agent=self._tier_snapshot(Tier.AGENT),
            unit_manager=self._tier_snapshot(Tier.UNIT_MANAGER),
            team_leader=self._tier_snapshot(Tier.TEAM_LEADER),
            recompute_pending=self.recompute_pending,
        )

    def _tier_snapshot(self, tier: Tier) -> TierSnapshot:
        state = self.tiers[tier]
        # Agent name/account live on the record
        if tier == Tier.AGENT:
            name, bdo_account = self.agent_name, self.bdo_account
        else:
            name, bdo_account = state.name, state.bdo_account
        return TierSnapshot(
            calc_type=state.config.calc_type,
            rate=state.config.rate,
            developers_rate=state.config.developers_rate,
            ewt_rate=state.config.ewt_rate,
            net_of_vat=state.result.net_of_vat,
            amount=state.result.amount,
            vat=state.result.vat,
            ewt=state.result.ewt,
            net_commission=state.result.net_commission,
            name=name,
            bdo_account=bdo_account,
        )

    def __repr__(self) -> str:
        return f"<CommissionRecord {self.sequence_no} {self.agent_name!r} comm={format_money(self.base_commission)!r}>"
