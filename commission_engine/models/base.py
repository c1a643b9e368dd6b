"""
Declarative base, timestamp columns and the uuid primary key shared by
the commission tables.
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


def new_uuid() -> str:
    return str(uuid.uuid4())


def uuid_primary_key() -> Mapped[str]:
    """String uuid key; records pick their own id before the row exists."""
    return mapped_column(String(36), primary_key=True, default=new_uuid)


class TimestampMixin:
    """created_at set by the database, updated_at on every ORM update."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        onupdate=func.now(),
        nullable=True,
    )
