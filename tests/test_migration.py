"""
Tests for the initial schema migration.

Runs the migration against an in-memory SQLite database and checks that
it creates the same columns as the models.
"""

import importlib.util
from pathlib import Path

import pytest
from alembic.runtime.migration import MigrationContext
from alembic.operations import Operations
from sqlalchemy import create_engine, inspect as sa_inspect

from commission_engine.models import Base

MIGRATION = Path(__file__).resolve().parent.parent / "alembic" / "versions" / "000_initial_schema.py"


def _load_migration():
    spec = importlib.util.spec_from_file_location("initial_schema", MIGRATION)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture
def migration():
    return _load_migration()


@pytest.fixture
def connection():
    engine = create_engine("sqlite://")
    with engine.connect() as conn:
        yield conn
    engine.dispose()


def _upgrade(migration, conn):
    ctx = MigrationContext.configure(conn)
    with Operations.context(ctx):
        migration.upgrade()


def _downgrade(migration, conn):
    ctx = MigrationContext.configure(conn)
    with Operations.context(ctx):
        migration.downgrade()


# ── structure ──────────────────────────────────────────────


class TestMigrationStructure:
    def test_revision_ids(self, migration):
        assert migration.revision == "000_initial_schema"
        assert migration.down_revision is None

    def test_has_upgrade_and_downgrade(self, migration):
        assert callable(migration.upgrade)
        assert callable(migration.downgrade)


# ── applied schema ─────────────────────────────────────────


class TestMigrationMatchesModels:
    @pytest.mark.parametrize("table", ["commission_reports", "commission_agent_breakdown"])
    def test_columns(self, migration, connection, table):
        _upgrade(migration, connection)

        migrated = {c["name"] for c in sa_inspect(connection).get_columns(table)}
        modelled = {c.name for c in Base.metadata.tables[table].columns}
        assert migrated == modelled

    def test_indexes(self, migration, connection):
        _upgrade(migration, connection)

        indexes = {
            i["name"] for i in sa_inspect(connection).get_indexes("commission_agent_breakdown")
        }
        assert "ix_commission_agent_breakdown_commission_report_uuid" in indexes
        assert "ix_commission_agent_breakdown_invoice_number" in indexes

    def test_downgrade_drops_tables(self, migration, connection):
        _upgrade(migration, connection)
        _downgrade(migration, connection)

        assert sa_inspect(connection).get_table_names() == []
