"""SQLModel mapping for brand identity extractions."""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

import sqlalchemy as sa
from sqlalchemy import Column, String, Text, Uuid
from sqlmodel import Field, SQLModel

from app.models.columns import as_utc, created_at_column, json_column, updated_at_column, utcnow
from app.models.provider import ScrapePayload


class BrandExtraction(SQLModel, table=True):
    """Visual identity captured for one target."""

    __tablename__ = "brand_extractions"
    __table_args__ = (sa.Index("ix_brand_extractions_domain_created", "domain", "created_at"),)

    id: UUID = Field(
        default_factory=uuid4,
        sa_column=Column(Uuid(as_uuid=True), primary_key=True, nullable=False),
    )
    input_url: str = Field(sa_column=Column(Text, nullable=False))
    normalized_url: str = Field(sa_column=Column(Text, nullable=False))
    domain: str = Field(sa_column=Column(String(length=255), nullable=False))
    color_scheme: str | None = Field(default=None, sa_column=Column(String(length=16), nullable=True))
    logo_url: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    colors: dict[str, Any] | None = Field(default=None, sa_column=json_column())
    fonts: list[dict[str, Any]] | None = Field(default=None, sa_column=json_column())
    typography: dict[str, Any] | None = Field(default=None, sa_column=json_column())
    spacing: dict[str, Any] | None = Field(default=None, sa_column=json_column())
    components: dict[str, Any] | None = Field(default=None, sa_column=json_column())
    images: dict[str, Any] | None = Field(default=None, sa_column=json_column())
    animations: dict[str, Any] | None = Field(default=None, sa_column=json_column())
    layout: dict[str, Any] | None = Field(default=None, sa_column=json_column())
    personality: dict[str, Any] | None = Field(default=None, sa_column=json_column())
    site_title: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    site_description: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    screenshot_url: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    raw_response: dict[str, Any] | None = Field(default=None, sa_column=json_column())
    status: str = Field(default="pending", sa_column=Column(String(length=32), nullable=False))
    error_message: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    created_at: datetime = Field(default_factory=utcnow, sa_column=created_at_column())
    updated_at: datetime = Field(default_factory=utcnow, sa_column=updated_at_column())

    @classmethod
    def from_scrape(
        cls,
        payload: ScrapePayload,
        *,
        input_url: str,
        normalized_url: str,
        domain: str,
    ) -> BrandExtraction:
        branding = payload.branding or {}
        images = _as_dict(branding.get("images"))
        metadata = payload.metadata
        return cls(
            input_url=input_url,
            normalized_url=normalized_url,
            domain=domain,
            color_scheme=branding.get("colorScheme"),
            logo_url=branding.get("logo") or (images or {}).get("logo"),
            colors=_as_dict(branding.get("colors")),
            fonts=branding.get("fonts") if isinstance(branding.get("fonts"), list) else None,
            typography=_as_dict(branding.get("typography")),
            spacing=_as_dict(branding.get("spacing")),
            components=_as_dict(branding.get("components")),
            images=images,
            animations=_as_dict(branding.get("animations")),
            layout=_as_dict(branding.get("layout")),
            personality=_as_dict(branding.get("personality")),
            site_title=metadata.title if metadata else None,
            site_description=metadata.description if metadata else None,
            screenshot_url=payload.screenshot,
            raw_response=payload.model_dump(mode="json", exclude_none=True, by_alias=True),
            status="completed",
        )

    def to_payload(self) -> dict[str, Any]:
        payload = self.model_dump(mode="json")
        payload["created_at"] = as_utc(self.created_at).isoformat()
        payload["updated_at"] = as_utc(self.updated_at).isoformat()
        return payload


def _as_dict(value: Any) -> dict[str, Any] | None:
    return value if isinstance(value, dict) else None
