"""
Per-tier commission calculation.

A tier (Agent, Unit Manager, Team Leader) gets its share of a sale's
commission according to a calculation treatment:

- nonvat with invoice:    net of VAT = comm / 1.02; amount = net of VAT x rate / developer's rate;
                          EWT = amount x EWT rate; net comm = amount - EWT
- nonvat without invoice: net comm = comm x rate / developer's rate (no VAT, no EWT);
                          the Agent tier leaves `amount` unset, UM/TL tiers fill it
- vat with invoice:       as "nonvat with invoice" plus VAT = amount x 12%;
                          net comm = amount + VAT - EWT
- vat deduction:          no calculation rule; previous values are kept
                          (see VAT_DEDUCTION_MODES)

calculate_tier() is pure and never raises: bad configuration produces
unset (None) fields instead of errors.
"""

import logging
from dataclasses import dataclass, replace
from decimal import Decimal
from enum import Enum
from typing import Optional

from commission_engine.utils.numbers import NumberLike, is_set, parse_amount

logger = logging.getLogger(__name__)

VAT_INCLUSIVE_DIVISOR = Decimal("1.02")
VAT_RATE = Decimal("0.12")
VAT_GROSS_UP_DIVISOR = Decimal("1.12")

VAT_DEDUCTION_STALE = "stale"
VAT_DEDUCTION_GROSS_UP = "gross_up"
VAT_DEDUCTION_MODES = (VAT_DEDUCTION_STALE, VAT_DEDUCTION_GROSS_UP)


class Tier(str, Enum):
    """Commission beneficiary."""
    AGENT = "agent"
    UNIT_MANAGER = "unit_manager"
    TEAM_LEADER = "team_leader"


class CalculationTreatment(str, Enum):
    """How a tier's commission is derived. Values are the stored wire strings."""
    NON_VAT_WITH_INVOICE = "nonvat with invoice"
    NON_VAT_WITHOUT_INVOICE = "nonvat without invoice"
    VAT_WITH_INVOICE = "vat with invoice"
    VAT_DEDUCTION = "vat deduction"

    @classmethod
    def parse(cls, value) -> Optional["CalculationTreatment"]:
        """Convert a wire string; unknown treatments return None."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            logger.debug(f"Unsupported calculation treatment {value!r}")
            return None


class WithholdingRate(str, Enum):
    """Expanded withholding tax rate, in percent."""
    FIVE_PERCENT = "5"
    TEN_PERCENT = "10"

    @property
    def fraction(self) -> Decimal:
        return Decimal(self.value) / 100

    @classmethod
    def parse(cls, value) -> "WithholdingRate":
        """Convert "5" / "10" (or 5, 10.0); anything else falls back to 5%."""
        if isinstance(value, cls):
            return value
        amount = parse_amount(value)
        if amount == 10:
            return cls.TEN_PERCENT
        return cls.FIVE_PERCENT


@dataclass(frozen=True)
class RateConfig:
    """Inputs of one tier. Rates are percentages (4.0 means 4%)."""
    rate: Decimal = Decimal("4.0")
    developers_rate: Decimal = Decimal("5.0")
    ewt_rate: WithholdingRate = WithholdingRate.FIVE_PERCENT
    calc_type: Optional[CalculationTreatment] = CalculationTreatment.NON_VAT_WITH_INVOICE

    def with_field(self, field: str, value) -> "RateConfig":
        """Return a copy with one field replaced, parsing the raw value."""
        if field == "rate":
            return replace(self, rate=parse_amount(value))
        if field == "developers_rate":
            return replace(self, developers_rate=parse_amount(value))
        if field == "ewt_rate":
            return replace(self, ewt_rate=WithholdingRate.parse(value))
        if field == "calc_type":
            return replace(self, calc_type=CalculationTreatment.parse(value))
        raise KeyError(field)


RATE_CONFIG_FIELDS = ("rate", "developers_rate", "ewt_rate", "calc_type")


@dataclass(frozen=True)
class TierResult:
    """Derived amounts of one tier. None means "not applicable", not zero."""
    net_of_vat: Optional[Decimal] = None
    amount: Optional[Decimal] = None
    vat: Optional[Decimal] = None
    ewt: Optional[Decimal] = None
    net_commission: Optional[Decimal] = None


EMPTY_RESULT = TierResult()


def calculate_tier(
    base_commission: NumberLike,
    config: RateConfig,
    tier: Tier = Tier.AGENT,
    previous: Optional[TierResult] = None,
    vat_deduction_mode: str = VAT_DEDUCTION_STALE,
) -> TierResult:
    """
    Compute one tier's amounts.

    Args:
        base_commission: The sale's raw commission (COMM); text is parsed permissively
        config: The tier's rates and treatment
        tier: Which beneficiary; only matters for "nonvat without invoice"
        previous: The tier's current result, returned as-is for "vat deduction"
        vat_deduction_mode: "stale" (default) or "gross_up"

    Returns:
        TierResult with None for every field that does not apply
    """
    treatment = config.calc_type
    if treatment is None:
        return EMPTY_RESULT

    base = parse_amount(base_commission)
    has_base = is_set(base)

    net_of_vat = None
    if has_base and treatment in (
        CalculationTreatment.NON_VAT_WITH_INVOICE,
        CalculationTreatment.VAT_WITH_INVOICE,
    ):
        net_of_vat = base / VAT_INCLUSIVE_DIVISOR

    # Zero rate wins over every treatment, "vat deduction" included
    if config.rate <= 0:
        return TierResult(net_of_vat=net_of_vat)

    if treatment == CalculationTreatment.VAT_DEDUCTION and vat_deduction_mode != VAT_DEDUCTION_GROSS_UP:
        logger.warning(f"No calculation rule for 'vat deduction' ({tier.value}); keeping previous values")
        return previous if previous is not None else EMPTY_RESULT

    if config.developers_rate <= 0:
        logger.warning(f"Developer's rate must be positive ({tier.value}); amounts left unset")
        return TierResult(net_of_vat=net_of_vat)

    if not has_base:
        return EMPTY_RESULT

    share = config.rate / config.developers_rate

    if treatment == CalculationTreatment.NON_VAT_WITH_INVOICE:
        amount = net_of_vat * share
        ewt = amount * config.ewt_rate.fraction
        return TierResult(
            net_of_vat=net_of_vat,
            amount=amount,
            ewt=ewt,
            net_commission=amount - ewt,
        )

    if treatment == CalculationTreatment.NON_VAT_WITHOUT_INVOICE:
        direct = base * share
        return TierResult(
            amount=None if tier == Tier.AGENT else direct,
            net_commission=direct,
        )

    if treatment == CalculationTreatment.VAT_WITH_INVOICE:
        amount = net_of_vat * share
        vat = amount * VAT_RATE
        ewt = amount * config.ewt_rate.fraction
        return TierResult(
            net_of_vat=net_of_vat,
            amount=amount,
            vat=vat,
            ewt=ewt,
            net_commission=amount + vat - ewt,
        )

    # vat deduction, gross-up mode
    amount = base * share
    net_commission = amount / VAT_GROSS_UP_DIVISOR
    return TierResult(
        amount=amount,
        vat=net_commission * VAT_RATE,
        net_commission=net_commission,
    )
