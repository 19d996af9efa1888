"""Declarative base and shared column mixins."""
from datetime import UTC, datetime

from sqlalchemy import DateTime, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(UTC)


class Base(DeclarativeBase):
    """Base class for all models."""


class CreatedAtMixin:
    """
    Adds an immutable ``created_at`` column.

    The value is assigned in Python at insert time (microsecond precision, so
    rows created in the same second still order correctly) with a server
    default as fallback for raw SQL inserts. Nothing updates it afterwards.
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        server_default=func.now(),
        index=True,
    )


class TimestampMixin(CreatedAtMixin):
    """Adds ``created_at`` and an ``updated_at`` column refreshed on every UPDATE."""

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        onupdate=utc_now,
        server_default=func.now(),
    )
