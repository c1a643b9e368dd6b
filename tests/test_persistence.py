"""
Tests for saving and loading commission records.
"""

import uuid
from datetime import date
from decimal import Decimal

import pytest
import pytest_asyncio
from sqlalchemy import func, select

from commission_engine.models import CommissionBreakdown, CommissionReport
from commission_engine.schemas.commission import BreakdownUpdateRequest
from commission_engine.services.aggregator import Group, GroupKey, UnknownRecordError
from commission_engine.services.calculator import CalculationTreatment, Tier, WithholdingRate
from commission_engine.services.persistence import (
    RecordSaveError,
    apply_breakdown_update,
    load_records,
    load_report_draft,
    save_records,
    snapshot_to_columns,
)
from commission_engine.services.recompute_scheduler import RecomputeScheduler
from commission_engine.services.record import UnknownFieldError


@pytest_asyncio.fixture
async def report(db_session):
    report = CommissionReport(uuid=str(uuid.uuid4()), report_number=101)
    db_session.add(report)
    await db_session.commit()
    return report


@pytest.fixture
def group(candidate):
    group = Group(GroupKey("Ayala Land", "INV-001"))
    first = group.attach_candidate(candidate)
    first.update_base_commission("10200")
    first.update_descriptive("um_name", "Jose Reyes")
    second = group.attach_candidate(candidate)
    second.update_base_commission("12345.67")
    second.update_rate_config(Tier.TEAM_LEADER, "calc_type", "vat with invoice")
    second.update_rate_config(Tier.TEAM_LEADER, "ewt_rate", "10")
    return group


async def _row_count(db_session) -> int:
    result = await db_session.execute(select(func.count()).select_from(CommissionBreakdown))
    return result.scalar_one()


# ── column mapping ────────────────────────────────────────


class TestSnapshotToColumns:
    def test_amounts_rounded_and_wire_strings(self, group):
        values = snapshot_to_columns(group.records[1].snapshot())

        assert values["comm"] == Decimal("12345.67")
        assert values["net_of_vat"] == Decimal("12103.60")
        assert values["tl_calculation_type"] == "vat with invoice"
        assert values["tl_ewt_rate"] == "10"
        assert values["agent_ewt_rate"] == "5"
        assert values["agent_vat"] is None
        assert values["comm_type"] == "COMM"
        assert values["sequence_no"] == 2
        assert values["lrsalesid"] == "1042"


# ── save / load ───────────────────────────────────────────


class TestSaveRecords:
    @pytest.mark.asyncio
    async def test_insert_and_load(self, db_session, report, group):
        saved = await save_records(db_session, report, group.records)

        assert saved == [r.id for r in group.records]
        assert await _row_count(db_session) == 2

        loaded = await load_records(db_session, report.uuid)
        assert [r.id for r in loaded] == saved
        first, second = loaded
        assert first.base_commission == Decimal("10200")
        assert first.agent.result.net_commission == Decimal("7600")
        assert first.unit_manager.name == "Jose Reyes"
        assert second.team_leader.config.calc_type == CalculationTreatment.VAT_WITH_INVOICE
        assert second.team_leader.config.ewt_rate == WithholdingRate.TEN_PERCENT
        assert second.net_of_vat == Decimal("12103.60")

    @pytest.mark.asyncio
    async def test_resave_updates_in_place(self, db_session, report, group):
        await save_records(db_session, report, group.records)

        record = group.records[0]
        record.update_base_commission("20400")
        await save_records(db_session, report, [record])

        assert await _row_count(db_session) == 2
        row = await db_session.get(CommissionBreakdown, record.id)
        assert row.comm == Decimal("20400")
        assert row.agent_net_comm == Decimal("15200")

    @pytest.mark.asyncio
    async def test_stops_on_first_failure(self, db_session, report, candidate, monkeypatch):
        group = Group(GroupKey("Ayala Land", "INV-001"))
        records = [group.attach_candidate(candidate) for _ in range(3)]
        for r in records:
            r.update_base_commission("10200")

        original_commit = db_session.commit
        calls = []

        async def failing_commit():
            calls.append(1)
            if len(calls) == 2:
                raise RuntimeError("disk full")
            await original_commit()

        monkeypatch.setattr(db_session, "commit", failing_commit)

        with pytest.raises(RecordSaveError) as exc_info:
            await save_records(db_session, report, records)

        assert exc_info.value.record_id == records[1].id
        assert exc_info.value.saved_ids == [records[0].id]
        assert len(calls) == 2
        assert await _row_count(db_session) == 1

    @pytest.mark.asyncio
    async def test_pending_recompute_flushed_before_save(self, db_session, report, candidate):
        scheduler = RecomputeScheduler(delay=10)
        group = Group(GroupKey("Ayala Land", "INV-001"), scheduler=scheduler)
        record = group.attach_candidate(candidate)
        record.update_base_commission("10200")

        await save_records(db_session, report, [record])

        row = await db_session.get(CommissionBreakdown, record.id)
        assert row.comm == Decimal("10200")
        assert row.agent_net_comm == Decimal("7600")
        assert not scheduler.is_pending(record.id)

    @pytest.mark.asyncio
    async def test_load_report_draft(self, db_session, report, group, candidate):
        other = Group(GroupKey("Ayala Land", "INV-002"))
        other.attach_candidate(candidate).update_base_commission("5100")
        await save_records(db_session, report, group.records + other.records)

        draft = await load_report_draft(db_session, report)

        assert draft.report_number == 101
        groups = {g.key.invoice_number: g for g in draft.groups}
        assert {key: len(g) for key, g in groups.items()} == {"INV-001": 2, "INV-002": 1}
        assert [r.sequence_no for r in groups["INV-001"]] == [1, 2]
        # Stored amounts are per-record centavos
        assert groups["INV-001"].totals().agent.net_commission == Decimal("16798.73")


# ── breakdown updates ─────────────────────────────────────


class TestApplyBreakdownUpdate:
    @pytest.mark.asyncio
    async def test_base_and_rate_edit(self, db_session, report, group):
        record = group.records[0]
        await save_records(db_session, report, group.records)

        update = BreakdownUpdateRequest(base_commission="20,400", rates={"agent.ewt_rate": "10"})
        snapshot = await apply_breakdown_update(db_session, record.id, update)

        assert snapshot.base_commission == Decimal("20400")
        assert snapshot.agent.amount == Decimal("16000")
        assert snapshot.agent.ewt == Decimal("1600")
        assert snapshot.agent.net_commission == Decimal("14400")

        row = await db_session.get(CommissionBreakdown, record.id)
        assert row.agent_ewt_rate == "10"
        assert row.agent_net_comm == Decimal("14400")
        assert row.um_name == "Jose Reyes"

    @pytest.mark.asyncio
    async def test_descriptive_only_keeps_amounts(self, db_session, report, group):
        record = group.records[0]
        await save_records(db_session, report, group.records)

        update = BreakdownUpdateRequest(descriptive={"status": "Released"})
        snapshot = await apply_breakdown_update(db_session, record.id, update)

        assert snapshot.status == "Released"
        assert snapshot.base_commission == Decimal("10200")
        assert snapshot.agent.net_commission == Decimal("7600")

    @pytest.mark.asyncio
    async def test_reservation_date_text(self, db_session, report, group):
        record = group.records[0]
        await save_records(db_session, report, [record])

        update = BreakdownUpdateRequest(descriptive={"reservation_date": "2026-04-01"})
        snapshot = await apply_breakdown_update(db_session, record.id, update)
        assert snapshot.reservation_date == date(2026, 4, 1)

        update = BreakdownUpdateRequest(descriptive={"reservation_date": "not a date"})
        snapshot = await apply_breakdown_update(db_session, record.id, update)
        assert snapshot.reservation_date is None
        row = await db_session.get(CommissionBreakdown, record.id)
        assert row.reservation_date is None

    @pytest.mark.asyncio
    async def test_unknown_record(self, db_session, report):
        with pytest.raises(UnknownRecordError):
            await apply_breakdown_update(db_session, "missing", BreakdownUpdateRequest())

    @pytest.mark.asyncio
    @pytest.mark.parametrize("key", ["manager.rate", "agent.bonus", "rate"])
    async def test_unknown_rate_key(self, db_session, report, group, key):
        record = group.records[0]
        await save_records(db_session, report, [record])

        with pytest.raises(UnknownFieldError):
            await apply_breakdown_update(db_session, record.id, BreakdownUpdateRequest(rates={key: "1"}))
