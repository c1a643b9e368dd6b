"""
Commission schemas.

Snapshots carry full-precision Decimals; response models used by the API
round to 2 fraction digits.
"""

from datetime import date
from decimal import Decimal
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from commission_engine.services.calculator import (
    CalculationTreatment,
    Tier,
    TierResult,
    WithholdingRate,
)
from commission_engine.utils.numbers import quantize_money

RawNumber = Union[str, Decimal, None]


class SearchCandidate(BaseModel):
    """A sale returned by the external sales search, ready to be attached to a group."""

    model_config = ConfigDict(frozen=True)

    agent_name: str
    developer_name: str
    client_name: str = ""
    reservation_date: Optional[date] = None
    base_amount_hint: Optional[Decimal] = None
    sale_id: Optional[int] = None
    member_id: Optional[int] = None


class TierSnapshot(BaseModel):
    """One tier's inputs and latest computed amounts."""

    model_config = ConfigDict(frozen=True)

    calc_type: Optional[CalculationTreatment]
    rate: Decimal
    developers_rate: Decimal
    ewt_rate: WithholdingRate
    net_of_vat: Optional[Decimal] = None
    amount: Optional[Decimal] = None
    vat: Optional[Decimal] = None
    ewt: Optional[Decimal] = None
    net_commission: Optional[Decimal] = None
    name: Optional[str] = None
    bdo_account: Optional[str] = None

    def to_result(self) -> TierResult:
        return TierResult(
            net_of_vat=self.net_of_vat,
            amount=self.amount,
            vat=self.vat,
            ewt=self.ewt,
            net_commission=self.net_commission,
        )


class RecordSnapshot(BaseModel):
    """
    Complete state of a commission record after its latest completed recompute.

    base_commission is the committed value the tiers were computed from; an
    edit still waiting for its debounced recompute is not visible here
    (recompute_pending tells whether one exists).
    """

    model_config = ConfigDict(frozen=True)

    id: str
    sequence_no: int
    entry_date: date
    developer_name: str
    invoice_number: Optional[str] = None
    agent_name: str
    client_name: str = ""
    reservation_date: Optional[date] = None
    sale_id: Optional[int] = None
    member_id: Optional[int] = None
    base_commission: Optional[Decimal] = None
    net_of_vat: Optional[Decimal] = None
    commission_kind: str = "COMM"
    status: str = ""
    bdo_account: str = ""
    remarks: str = ""
    agent: TierSnapshot
    unit_manager: TierSnapshot
    team_leader: TierSnapshot
    recompute_pending: bool = False

    def tier(self, tier: Tier) -> TierSnapshot:
        return getattr(self, tier.value)


# ── API request/response ──────────────────────────────────


class TierConfigPayload(BaseModel):
    """Raw per-tier inputs as typed in the form."""

    calc_type: str = CalculationTreatment.NON_VAT_WITH_INVOICE.value
    rate: RawNumber = "4.0"
    developers_rate: RawNumber = "5.0"
    ewt_rate: RawNumber = WithholdingRate.FIVE_PERCENT.value


class CalculateTierRequest(TierConfigPayload):
    """Stateless single-tier calculation."""

    base_commission: RawNumber = None
    tier: Tier = Tier.AGENT


class TierResultResponse(BaseModel):
    net_of_vat: Optional[Decimal] = None
    amount: Optional[Decimal] = None
    vat: Optional[Decimal] = None
    ewt: Optional[Decimal] = None
    net_commission: Optional[Decimal] = None

    @field_serializer("net_of_vat", "amount", "vat", "ewt", "net_commission")
    def round_money(self, value: Optional[Decimal]) -> Optional[Decimal]:
        return quantize_money(value)

    @classmethod
    def from_result(cls, result: TierResult) -> "TierResultResponse":
        return cls(
            net_of_vat=result.net_of_vat,
            amount=result.amount,
            vat=result.vat,
            ewt=result.ewt,
            net_commission=result.net_commission,
        )


class RecordPayload(BaseModel):
    """A record's raw inputs, used for stateless group totals."""

    base_commission: RawNumber = None
    agent: TierConfigPayload = Field(default_factory=TierConfigPayload)
    unit_manager: TierConfigPayload = Field(default_factory=TierConfigPayload)
    team_leader: TierConfigPayload = Field(default_factory=TierConfigPayload)


class GroupPayload(BaseModel):
    developer_name: str
    invoice_number: Optional[str] = None
    records: List[RecordPayload] = Field(default_factory=list)


class TierTotalsResponse(BaseModel):
    rate: Decimal
    amount: Decimal
    vat: Decimal
    ewt: Decimal
    net_commission: Decimal

    @field_serializer("rate", "amount", "vat", "ewt", "net_commission")
    def round_money(self, value: Decimal) -> Decimal:
        return quantize_money(value)


class GroupTotalsResponse(BaseModel):
    developer_name: str
    invoice_number: Optional[str] = None
    record_count: int
    base_commission: Decimal
    net_of_vat: Decimal
    agent: TierTotalsResponse
    unit_manager: TierTotalsResponse
    team_leader: TierTotalsResponse

    @field_serializer("base_commission", "net_of_vat")
    def round_money(self, value: Decimal) -> Decimal:
        return quantize_money(value)


class BreakdownUpdateRequest(BaseModel):
    """
    Partial update of a stored commission breakdown row.

    Keys of `rates` are "<tier>.<field>", e.g. "unit_manager.rate".
    """

    base_commission: RawNumber = None
    rates: dict[str, Union[str, Decimal]] = Field(default_factory=dict)
    descriptive: dict[str, str] = Field(default_factory=dict)
