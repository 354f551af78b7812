"""SQLModel mappings for saved search scouts and their discoveries."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any
from uuid import UUID, uuid4

import sqlalchemy as sa
from sqlalchemy import Boolean, Column, DateTime, String, Text, Uuid
from sqlmodel import Field, SQLModel

from app.models.columns import (
    JSON_BACKING_TYPE,
    as_utc,
    created_at_column,
    json_column,
    updated_at_column,
    utcnow,
)

SCHEDULE_INTERVALS: dict[str, timedelta | None] = {
    "manual": None,
    "daily": timedelta(days=1),
    "weekly": timedelta(days=7),
}


def next_run_after(schedule: str, ran_at: datetime) -> datetime | None:
    """Return when a scout on ``schedule`` becomes due again."""
    interval = SCHEDULE_INTERVALS.get(schedule)
    return ran_at + interval if interval else None


class Scout(SQLModel, table=True):
    """Saved search that is re-run on a schedule."""

    __tablename__ = "scouts"

    id: UUID = Field(
        default_factory=uuid4,
        sa_column=Column(Uuid(as_uuid=True), primary_key=True, nullable=False),
    )
    name: str = Field(sa_column=Column(String(length=255), nullable=False))
    search_query: str = Field(sa_column=Column(Text, nullable=False))
    schedule: str = Field(default="manual", sa_column=Column(String(length=16), nullable=False))
    is_active: bool = Field(
        default=True, sa_column=Column(Boolean, nullable=False, server_default=sa.true())
    )
    last_run_at: datetime | None = Field(
        default=None, sa_column=Column(DateTime(timezone=True), nullable=True)
    )
    next_run_at: datetime | None = Field(
        default=None, sa_column=Column(DateTime(timezone=True), nullable=True)
    )
    notification_email: str | None = Field(
        default=None, sa_column=Column(String(length=255), nullable=True)
    )
    seen_urls: list[str] = Field(default_factory=list, sa_column=json_column(nullable=False))
    created_at: datetime = Field(default_factory=utcnow, sa_column=created_at_column())
    updated_at: datetime = Field(default_factory=utcnow, sa_column=updated_at_column())

    def to_payload(self, **extra: Any) -> dict[str, Any]:
        payload = self.model_dump(mode="json")
        for key in ("last_run_at", "next_run_at", "created_at", "updated_at"):
            value = as_utc(getattr(self, key))
            payload[key] = value.isoformat() if value else None
        payload.update(extra)
        return payload


class ScoutResult(SQLModel, table=True):
    """One URL discovered by a scout run."""

    __tablename__ = "scout_results"
    __table_args__ = (sa.Index("ix_scout_results_scout_seen", "scout_id", "first_seen_at"),)

    id: UUID = Field(
        default_factory=uuid4,
        sa_column=Column(Uuid(as_uuid=True), primary_key=True, nullable=False),
    )
    scout_id: UUID = Field(
        sa_column=Column(
            Uuid(as_uuid=True),
            sa.ForeignKey("scouts.id", ondelete="CASCADE"),
            nullable=False,
        )
    )
    url: str = Field(sa_column=Column(Text, nullable=False))
    title: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    snippet: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    source: str | None = Field(default=None, sa_column=Column(String(length=32), nullable=True))
    first_seen_at: datetime = Field(default_factory=utcnow, sa_column=created_at_column())
    result_metadata: dict[str, Any] | None = Field(
        default=None, sa_column=Column("metadata", JSON_BACKING_TYPE, nullable=True)
    )

    def to_payload(self) -> dict[str, Any]:
        payload = self.model_dump(mode="json", exclude={"result_metadata"})
        payload["metadata"] = self.result_metadata
        payload["first_seen_at"] = as_utc(self.first_seen_at).isoformat()
        return payload
