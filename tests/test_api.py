"""
API endpoint tests.
"""

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient

from commission_engine.db import get_db
from commission_engine.main import app
from commission_engine.services.aggregator import Group, GroupKey
from commission_engine.services.persistence import save_records
from commission_engine.models import CommissionReport


@pytest.fixture
def client():
    return TestClient(app)


# ── health ────────────────────────────────────────────────


def test_health_endpoint(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "service": "commission-engine"}


# ── calculate ─────────────────────────────────────────────


class TestCalculate:
    def test_nonvat_with_invoice(self, client):
        response = client.post("/api/commissions/calculate", json={
            "base_commission": "10,200.00",
            "calc_type": "nonvat with invoice",
            "rate": "4.0",
            "developers_rate": "5.0",
            "ewt_rate": "5",
        })
        assert response.status_code == 200
        body = response.json()
        assert body["net_of_vat"] == "10000.00"
        assert body["amount"] == "8000.00"
        assert body["ewt"] == "400.00"
        assert body["net_commission"] == "7600.00"
        assert body["vat"] is None

    def test_agent_without_invoice(self, client):
        response = client.post("/api/commissions/calculate", json={
            "base_commission": "10000",
            "calc_type": "nonvat without invoice",
            "tier": "agent",
        })
        body = response.json()
        assert body["amount"] is None
        assert body["net_commission"] == "8000.00"

    def test_unknown_treatment_is_unset(self, client):
        response = client.post("/api/commissions/calculate", json={
            "base_commission": "10200",
            "calc_type": "gross",
        })
        assert response.status_code == 200
        assert all(value is None for value in response.json().values())

    def test_bad_tier_rejected(self, client):
        response = client.post("/api/commissions/calculate", json={"tier": "director"})
        assert response.status_code == 422


# ── totals ────────────────────────────────────────────────


class TestTotals:
    def test_group_totals(self, client):
        response = client.post("/api/commissions/totals", json={
            "developer_name": "Ayala Land",
            "invoice_number": "INV-001",
            "records": [
                {"base_commission": "10200"},
                {"base_commission": "5100"},
                {"base_commission": ""},
            ],
        })
        assert response.status_code == 200
        body = response.json()
        assert body["record_count"] == 3
        assert body["base_commission"] == "15300.00"
        assert body["net_of_vat"] == "15000.00"
        assert body["agent"]["net_commission"] == "11400.00"
        assert body["unit_manager"]["rate"] == "12.00"
        assert body["team_leader"]["vat"] == "0.00"


# ── breakdown update ──────────────────────────────────────


@pytest.fixture
def override_db(db_session):
    async def _get_db():
        yield db_session

    app.dependency_overrides[get_db] = _get_db
    yield
    app.dependency_overrides.pop(get_db, None)


class TestBreakdownUpdate:
    @pytest.mark.asyncio
    async def test_update_and_errors(self, db_session, override_db, candidate):
        report = CommissionReport(uuid="11111111-2222-3333-4444-555555555555", report_number=7)
        db_session.add(report)
        await db_session.commit()

        record = Group(GroupKey("Ayala Land", "INV-001")).attach_candidate(candidate)
        record.update_base_commission("10200")
        await save_records(db_session, report, [record])

        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            response = await ac.patch(
                f"/api/commissions/breakdown/{record.id}",
                json={"base_commission": "20,400", "rates": {"agent.ewt_rate": "10"}},
            )
            assert response.status_code == 200
            body = response.json()
            assert Decimal(body["agent"]["net_commission"]) == Decimal("14400")
            assert body["recompute_pending"] is False

            response = await ac.patch("/api/commissions/breakdown/missing", json={})
            assert response.status_code == 404

            response = await ac.patch(
                f"/api/commissions/breakdown/{record.id}",
                json={"rates": {"director.rate": "1"}},
            )
            assert response.status_code == 400
            assert "director.rate" in response.json()["detail"]


class TestReadiness:
    @pytest.mark.asyncio
    async def test_ready(self, override_db):
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            response = await ac.get("/api/health/ready")

        body = response.json()
        assert body["status"] == "ready"
        assert body["reports"] == 0
        assert body["vat_deduction_mode"] == "stale"
