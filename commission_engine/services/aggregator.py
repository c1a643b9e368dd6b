"""
Groups of commission records and their report totals.

Records are grouped by (developer, invoice): one group becomes one
"Sale Record Details - Invoice #" block of the commission report, closed
by a totals row. Totals are recomputed every time they are read.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Iterator, List, NamedTuple, Optional

from commission_engine.schemas.commission import SearchCandidate
from commission_engine.services.calculator import Tier
from commission_engine.services.recompute_scheduler import RecomputeScheduler
from commission_engine.services.record import CommissionRecord

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


class UnknownRecordError(LookupError):
    """Raised when a record id is not part of the group or draft."""


class GroupKey(NamedTuple):
    developer_name: str
    invoice_number: Optional[str]


@dataclass(frozen=True)
class TierTotals:
    rate: Decimal = ZERO
    amount: Decimal = ZERO
    vat: Decimal = ZERO
    ewt: Decimal = ZERO
    net_commission: Decimal = ZERO


@dataclass(frozen=True)
class GroupTotals:
    """Field-wise sums over a group. Unset amounts count as zero."""
    key: GroupKey
    record_count: int = 0
    base_commission: Decimal = ZERO
    net_of_vat: Decimal = ZERO
    agent: TierTotals = field(default_factory=TierTotals)
    unit_manager: TierTotals = field(default_factory=TierTotals)
    team_leader: TierTotals = field(default_factory=TierTotals)

    def tier(self, tier: Tier) -> TierTotals:
        return getattr(self, tier.value)


def _value(amount: Optional[Decimal]) -> Decimal:
    return ZERO if amount is None else amount


class Group:
    """
    The records billed under one developer invoice.

    The group owns its records; they are added and removed only here.
    """

    def __init__(self, key: GroupKey, scheduler: Optional[RecomputeScheduler] = None):
        self.key = key
        self.scheduler = scheduler
        self._records: List[CommissionRecord] = []

    @property
    def records(self) -> List[CommissionRecord]:
        return list(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[CommissionRecord]:
        return iter(list(self._records))

    def get(self, record_id: str) -> CommissionRecord:
        for record in self._records:
            if record.id == record_id:
                return record
        raise UnknownRecordError(record_id)

    def attach_candidate(self, candidate: SearchCandidate) -> CommissionRecord:
        """Add a record for a search result, with default rates and an empty COMM."""
        record = CommissionRecord.from_candidate(
            candidate,
            invoice_number=self.key.invoice_number,
            sequence_no=len(self._records) + 1,
            scheduler=self.scheduler,
        )
        self._records.append(record)
        logger.info(
            f"Attached {candidate.agent_name!r} ({candidate.client_name!r}) "
            f"to {self.key.developer_name} / {self.key.invoice_number}"
        )
        return record

    def add_record(self, record: CommissionRecord) -> None:
        """Adopt an existing record (e.g. loaded from storage)."""
        record.scheduler = self.scheduler
        record.sequence_no = len(self._records) + 1
        self._records.append(record)

    def remove_record(self, record_id: str) -> CommissionRecord:
        """Remove a record and renumber the rest."""
        record = self.get(record_id)
        self._records.remove(record)
        if self.scheduler is not None:
            self.scheduler.cancel(record_id)
        for index, remaining in enumerate(self._records, start=1):
            remaining.sequence_no = index
        return record

    def totals(self) -> GroupTotals:
        return GroupAggregator(self).totals()


class GroupAggregator:
    """Sums a group's records for the report totals row."""

    def __init__(self, group: Group):
        self.group = group

    def totals(self) -> GroupTotals:
        records = self.group.records
        return GroupTotals(
            key=self.group.key,
            record_count=len(records),
            base_commission=sum((_value(r.base_commission) for r in records), ZERO),
            net_of_vat=sum((_value(r.net_of_vat) for r in records), ZERO),
            agent=self._tier_totals(records, Tier.AGENT),
            unit_manager=self._tier_totals(records, Tier.UNIT_MANAGER),
            team_leader=self._tier_totals(records, Tier.TEAM_LEADER),
        )

    @staticmethod
    def _tier_totals(records: List[CommissionRecord], tier: Tier) -> TierTotals:
        rate = amount = vat = ewt = net_commission = ZERO
        for record in records:
            state = record.tier(tier)
            rate += state.config.rate
            amount += _value(state.result.amount)
            vat += _value(state.result.vat)
            ewt += _value(state.result.ewt)
            net_commission += _value(state.result.net_commission)
        return TierTotals(
            rate=rate,
            amount=amount,
            vat=vat,
            ewt=ewt,
            net_commission=net_commission,
        )


class CommissionReportDraft:
    """
    An open commission report being edited by one user.

    Holds one Group per (developer, invoice) and a shared scheduler for
    debounced COMM recomputes.
    """

    def __init__(
        self,
        report_number: Optional[int] = None,
        scheduler: Optional[RecomputeScheduler] = None,
    ):
        self.report_number = report_number
        self.scheduler = scheduler
        self._groups: Dict[GroupKey, Group] = {}

    @property
    def groups(self) -> List[Group]:
        return list(self._groups.values())

    def group(self, developer_name: str, invoice_number: Optional[str] = None) -> Group:
        """Get or create the group for a developer invoice."""
        key = GroupKey(developer_name, invoice_number)
        if key not in self._groups:
            self._groups[key] = Group(key, scheduler=self.scheduler)
        return self._groups[key]

    def attach_candidate(
        self,
        candidate: SearchCandidate,
        invoice_number: Optional[str] = None,
    ) -> CommissionRecord:
        return self.group(candidate.developer_name, invoice_number).attach_candidate(candidate)

    def find(self, record_id: str) -> CommissionRecord:
        for group in self._groups.values():
            for record in group:
                if record.id == record_id:
                    return record
        raise UnknownRecordError(record_id)

    def remove_record(self, record_id: str) -> CommissionRecord:
        """Remove a record; a group left empty is dropped."""
        for key, group in list(self._groups.items()):
            try:
                record = group.remove_record(record_id)
            except UnknownRecordError:
                continue
            if not len(group):
                del self._groups[key]
            return record
        raise UnknownRecordError(record_id)

    def records(self) -> List[CommissionRecord]:
        return [record for group in self._groups.values() for record in group]

    def flush_pending(self) -> int:
        """Finish pending COMM recomputes so snapshots show every typed value."""
        if self.scheduler is None:
            return 0
        return self.scheduler.flush_all()
