"""Initial database schema

Revision ID: 000_initial_schema
Revises:
Create Date: 2026-10-19

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "000_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _money(name: str) -> sa.Column:
    return sa.Column(name, sa.Numeric(14, 2), nullable=True)


def _rate(name: str) -> sa.Column:
    return sa.Column(name, sa.Numeric(6, 2), nullable=True)


def _tier_columns(prefix: str, rate: str, developers_rate: str, calc_type: str, ewt_rate: str) -> list:
    return [
        sa.Column(calc_type, sa.String(32), nullable=True),
        _rate(rate),
        _rate(developers_rate),
        sa.Column(ewt_rate, sa.String(3), nullable=True),
        _money(f"{prefix}_amount"),
        _money(f"{prefix}_vat"),
        _money(f"{prefix}_ewt"),
        _money(f"{prefix}_net_comm"),
    ]


def upgrade() -> None:
    """Create commission report tables."""

    # Commission reports
    op.create_table(
        "commission_reports",
        sa.Column("uuid", sa.String(36), primary_key=True),
        sa.Column("report_number", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(30), nullable=False),
        sa.Column("created_by", sa.String(255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_commission_reports_report_number", "commission_reports", ["report_number"], unique=True)

    # Agent breakdown rows
    op.create_table(
        "commission_agent_breakdown",
        sa.Column("uuid", sa.String(36), primary_key=True),
        sa.Column("commission_report_uuid", sa.String(36), sa.ForeignKey("commission_reports.uuid"), nullable=False),
        sa.Column("commission_report_number", sa.Integer(), nullable=True),
        sa.Column("sequence_no", sa.Integer(), nullable=False),
        sa.Column("entry_date", sa.Date(), nullable=True),
        sa.Column("developer", sa.String(255), nullable=False),
        sa.Column("invoice_number", sa.String(100), nullable=True),
        sa.Column("agent_name", sa.String(255), nullable=False),
        sa.Column("client", sa.String(255), nullable=True),
        sa.Column("reservation_date", sa.Date(), nullable=True),
        sa.Column("lrsalesid", sa.String(50), nullable=True),
        sa.Column("memberid", sa.String(50), nullable=True),
        _money("comm"),
        sa.Column("comm_type", sa.String(30), nullable=False),
        _money("net_of_vat"),
        sa.Column("status", sa.String(50), nullable=True),
        sa.Column("bdo_account", sa.String(50), nullable=True),
        sa.Column("secretary_remarks", sa.Text(), nullable=True),
        # Agent
        *_tier_columns("agent", "agents_rate", "developers_rate", "calculation_type", "agent_ewt_rate"),
        # Unit manager
        sa.Column("um_name", sa.String(255), nullable=True),
        sa.Column("um_bdo_account", sa.String(50), nullable=True),
        *_tier_columns("um", "um_rate", "um_developers_rate", "um_calculation_type", "um_ewt_rate"),
        # Team leader
        sa.Column("tl_name", sa.String(255), nullable=True),
        sa.Column("tl_bdo_account", sa.String(50), nullable=True),
        *_tier_columns("tl", "tl_rate", "tl_developers_rate", "tl_calculation_type", "tl_ewt_rate"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index(
        "ix_commission_agent_breakdown_commission_report_uuid",
        "commission_agent_breakdown",
        ["commission_report_uuid"],
    )
    op.create_index(
        "ix_commission_agent_breakdown_invoice_number",
        "commission_agent_breakdown",
        ["invoice_number"],
    )


def downgrade() -> None:
    """Drop commission report tables."""
    op.drop_index("ix_commission_agent_breakdown_invoice_number", table_name="commission_agent_breakdown")
    op.drop_index("ix_commission_agent_breakdown_commission_report_uuid", table_name="commission_agent_breakdown")
    op.drop_table("commission_agent_breakdown")
    op.drop_index("ix_commission_reports_report_number", table_name="commission_reports")
    op.drop_table("commission_reports")
