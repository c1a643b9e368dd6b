"""
Commission report and agent breakdown models.
"""

from datetime import date
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import Date, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from commission_engine.models.base import Base, TimestampMixin, uuid_primary_key


class CommissionReport(Base, TimestampMixin):
    """
    A numbered commission report.

    Its rows live in commission_agent_breakdown, one per agent/sale.
    """

    __tablename__ = "commission_reports"

    uuid: Mapped[str] = uuid_primary_key()
    report_number: Mapped[int] = mapped_column(
        Integer,
        unique=True,
        nullable=False,
        index=True,
    )
    status: Mapped[str] = mapped_column(
        String(30),
        default="draft",
        nullable=False,
    )
    created_by: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
    )

    breakdown: Mapped[List["CommissionBreakdown"]] = relationship(
        "CommissionBreakdown",
        back_populates="report",
        order_by="CommissionBreakdown.sequence_no",
    )


def _money() -> Mapped[Optional[Decimal]]:
    return mapped_column(Numeric(14, 2), nullable=True)


def _rate() -> Mapped[Optional[Decimal]]:
    return mapped_column(Numeric(6, 2), nullable=True)


class CommissionBreakdown(Base, TimestampMixin):
    """
    One commission record as stored.

    Treatments and EWT rates are kept as their wire strings
    ("nonvat with invoice", "5"); amounts are rounded to centavos.
    """

    __tablename__ = "commission_agent_breakdown"

    uuid: Mapped[str] = uuid_primary_key()
    commission_report_uuid: Mapped[str] = mapped_column(
        ForeignKey("commission_reports.uuid"),
        nullable=False,
        index=True,
    )
    commission_report_number: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    sequence_no: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    entry_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    # Sale
    developer: Mapped[str] = mapped_column(String(255), nullable=False)
    invoice_number: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, index=True)
    agent_name: Mapped[str] = mapped_column(String(255), nullable=False)
    client: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    reservation_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    lrsalesid: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    memberid: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    comm: Mapped[Optional[Decimal]] = _money()
    comm_type: Mapped[str] = mapped_column(String(30), default="COMM", nullable=False)
    net_of_vat: Mapped[Optional[Decimal]] = _money()
    status: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    bdo_account: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    secretary_remarks: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Agent
    calculation_type: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    agents_rate: Mapped[Optional[Decimal]] = _rate()
    developers_rate: Mapped[Optional[Decimal]] = _rate()
    agent_ewt_rate: Mapped[Optional[str]] = mapped_column(String(3), nullable=True)
    agent_amount: Mapped[Optional[Decimal]] = _money()
    agent_vat: Mapped[Optional[Decimal]] = _money()
    agent_ewt: Mapped[Optional[Decimal]] = _money()
    agent_net_comm: Mapped[Optional[Decimal]] = _money()

    # Unit manager
    um_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    um_bdo_account: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    um_calculation_type: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    um_rate: Mapped[Optional[Decimal]] = _rate()
    um_developers_rate: Mapped[Optional[Decimal]] = _rate()
    um_ewt_rate: Mapped[Optional[str]] = mapped_column(String(3), nullable=True)
    um_amount: Mapped[Optional[Decimal]] = _money()
    um_vat: Mapped[Optional[Decimal]] = _money()
    um_ewt: Mapped[Optional[Decimal]] = _money()
    um_net_comm: Mapped[Optional[Decimal]] = _money()

    # Team leader
    tl_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    tl_bdo_account: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    tl_calculation_type: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    tl_rate: Mapped[Optional[Decimal]] = _rate()
    tl_developers_rate: Mapped[Optional[Decimal]] = _rate()
    tl_ewt_rate: Mapped[Optional[str]] = mapped_column(String(3), nullable=True)
    tl_amount: Mapped[Optional[Decimal]] = _money()
    tl_vat: Mapped[Optional[Decimal]] = _money()
    tl_ewt: Mapped[Optional[Decimal]] = _money()
    tl_net_comm: Mapped[Optional[Decimal]] = _money()

    # Relationships
    report: Mapped["CommissionReport"] = relationship(
        "CommissionReport",
        back_populates="breakdown",
    )
