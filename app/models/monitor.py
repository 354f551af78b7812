"""SQLModel mappings for watched URLs and detected content changes."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any
from uuid import UUID, uuid4

import sqlalchemy as sa
from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text, Uuid
from sqlmodel import Field, SQLModel

from app.models.columns import as_utc, created_at_column, updated_at_column, utcnow

DEFAULT_CHECK_INTERVAL_SECONDS = 86400


class Monitor(SQLModel, table=True):
    """Watched URL."""

    __tablename__ = "monitors"

    id: UUID = Field(
        default_factory=uuid4,
        sa_column=Column(Uuid(as_uuid=True), primary_key=True, nullable=False),
    )
    name: str = Field(sa_column=Column(String(length=255), nullable=False))
    url: str = Field(sa_column=Column(Text, nullable=False))
    check_interval_seconds: int = Field(
        default=DEFAULT_CHECK_INTERVAL_SECONDS,
        sa_column=Column(Integer, nullable=False, server_default=str(DEFAULT_CHECK_INTERVAL_SECONDS)),
    )
    is_active: bool = Field(
        default=True, sa_column=Column(Boolean, nullable=False, server_default=sa.true())
    )
    last_checked_at: datetime | None = Field(
        default=None, sa_column=Column(DateTime(timezone=True), nullable=True)
    )
    last_content_hash: str | None = Field(
        default=None, sa_column=Column(String(length=32), nullable=True)
    )
    last_excerpt: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    notification_email: str | None = Field(
        default=None, sa_column=Column(String(length=255), nullable=True)
    )
    created_at: datetime = Field(default_factory=utcnow, sa_column=created_at_column())
    updated_at: datetime = Field(default_factory=utcnow, sa_column=updated_at_column())

    def is_due(self, now: datetime) -> bool:
        if not self.is_active:
            return False
        last_checked = as_utc(self.last_checked_at)
        if last_checked is None:
            return True
        return last_checked + timedelta(seconds=self.check_interval_seconds) <= now

    def to_payload(self, **extra: Any) -> dict[str, Any]:
        payload = self.model_dump(mode="json")
        for key in ("last_checked_at", "created_at", "updated_at"):
            value = as_utc(getattr(self, key))
            payload[key] = value.isoformat() if value else None
        payload.update(extra)
        return payload


class MonitorChange(SQLModel, table=True):
    """Content change detected between two monitor checks."""

    __tablename__ = "monitor_changes"
    __table_args__ = (sa.Index("ix_monitor_changes_monitor_created", "monitor_id", "created_at"),)

    id: UUID = Field(
        default_factory=uuid4,
        sa_column=Column(Uuid(as_uuid=True), primary_key=True, nullable=False),
    )
    monitor_id: UUID = Field(
        sa_column=Column(
            Uuid(as_uuid=True),
            sa.ForeignKey("monitors.id", ondelete="CASCADE"),
            nullable=False,
        )
    )
    old_hash: str | None = Field(default=None, sa_column=Column(String(length=32), nullable=True))
    new_hash: str | None = Field(default=None, sa_column=Column(String(length=32), nullable=True))
    old_excerpt: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    new_excerpt: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    ai_summary: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    created_at: datetime = Field(default_factory=utcnow, sa_column=created_at_column())

    def to_payload(self) -> dict[str, Any]:
        payload = self.model_dump(mode="json")
        payload["created_at"] = as_utc(self.created_at).isoformat()
        return payload
