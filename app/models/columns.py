"""Column helpers shared by the SQLModel tables."""
# ruff: noqa: UP017

from __future__ import annotations

from datetime import datetime, timezone

import sqlalchemy as sa
from sqlalchemy import Column, DateTime
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.compiler import compiles
from sqlalchemy.sql import expression


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive timestamps read back from SQLite."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


JSON_BACKING_TYPE = sa.JSON().with_variant(JSONB(astext_type=sa.Text()), "postgresql")


class UtcNow(expression.FunctionElement):
    """Dialect-aware server default that pins timestamps to UTC."""

    type = DateTime(timezone=True)
    inherit_cache = True


@compiles(UtcNow)
def _utc_now_default(
    element, compiler, **kwargs
) -> str:  # pragma: no cover - trivial sql generator
    return "CURRENT_TIMESTAMP"


@compiles(UtcNow, "postgresql")
def _utc_now_default_postgres(
    element, compiler, **kwargs
) -> str:  # pragma: no cover - trivial sql generator
    return "timezone('utc', now())"


def created_at_column() -> Column:
    return Column(DateTime(timezone=True), nullable=False, server_default=UtcNow())


def updated_at_column() -> Column:
    return Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=UtcNow(),
        onupdate=UtcNow(),
    )


def json_column(*, nullable: bool = True) -> Column:
    return Column(JSON_BACKING_TYPE, nullable=nullable)
