"""SQLModel mappings for enrichment jobs, batches, and usage events."""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

import sqlalchemy as sa
from sqlalchemy import Column, DateTime, Integer, String, Text, Uuid
from sqlmodel import Field, SQLModel

from app.models.columns import (
    JSON_BACKING_TYPE,
    as_utc,
    created_at_column,
    json_column,
    updated_at_column,
    utcnow,
)
from app.models.provider import CompanyEnrichmentData

ENRICHED_FIELDS = (
    "company_name",
    "company_description",
    "company_industry",
    "company_size",
    "company_website",
    "company_logo",
    "linkedin_url",
    "twitter_url",
    "contact_emails",
    "contact_phones",
    "tech_stack",
    "funding_total",
    "key_people",
)


class EnrichmentRecord(SQLModel, table=True):
    """One completed or failed enrichment attempt."""

    __tablename__ = "enrichment_jobs"
    __table_args__ = (
        sa.Index("ix_enrichment_jobs_domain_created", "domain", "created_at"),
        sa.Index("ix_enrichment_jobs_batch_id", "batch_id"),
    )

    id: UUID = Field(
        default_factory=uuid4,
        sa_column=Column(Uuid(as_uuid=True), primary_key=True, nullable=False),
    )
    input_type: str = Field(sa_column=Column(String(length=32), nullable=False))
    input_value: str = Field(sa_column=Column(Text, nullable=False))
    normalized_url: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    domain: str | None = Field(default=None, sa_column=Column(String(length=255), nullable=True))

    company_name: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    company_description: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    company_logo: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    company_industry: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    company_size: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    company_founded: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    company_headquarters: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    company_website: str | None = Field(default=None, sa_column=Column(Text, nullable=True))

    linkedin_url: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    twitter_url: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    facebook_url: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    crunchbase_url: str | None = Field(default=None, sa_column=Column(Text, nullable=True))

    contact_emails: list[str] | None = Field(default=None, sa_column=json_column())
    contact_phones: list[str] | None = Field(default=None, sa_column=json_column())
    tech_stack: list[str] | None = Field(default=None, sa_column=json_column())
    funding_total: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    investors: list[str] | None = Field(default=None, sa_column=json_column())
    key_people: list[dict[str, Any]] | None = Field(default=None, sa_column=json_column())

    raw_response: dict[str, Any] | None = Field(default=None, sa_column=json_column())
    status: str = Field(default="pending", sa_column=Column(String(length=32), nullable=False))
    error_message: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    batch_id: UUID | None = Field(
        default=None, sa_column=Column(Uuid(as_uuid=True), nullable=True)
    )
    created_at: datetime = Field(default_factory=utcnow, sa_column=created_at_column())
    updated_at: datetime = Field(default_factory=utcnow, sa_column=updated_at_column())

    @classmethod
    def from_extraction(
        cls,
        data: CompanyEnrichmentData,
        *,
        input_type: str,
        input_value: str,
        normalized_url: str,
        domain: str,
        logo: str | None = None,
        batch_id: UUID | None = None,
    ) -> EnrichmentRecord:
        """Flatten an extraction payload into a completed record."""
        social = data.social
        contact = data.contact
        funding = data.funding
        return cls(
            input_type=input_type,
            input_value=input_value,
            normalized_url=normalized_url,
            domain=domain,
            company_name=data.company.name,
            company_description=data.company.description,
            company_logo=logo,
            company_industry=data.company.industry,
            company_size=data.company.size,
            company_founded=data.company.founded,
            company_headquarters=data.company.headquarters,
            company_website=data.company.website,
            linkedin_url=social.linkedin if social else None,
            twitter_url=social.twitter if social else None,
            facebook_url=social.facebook if social else None,
            crunchbase_url=social.crunchbase if social else None,
            contact_emails=contact.emails if contact else None,
            contact_phones=contact.phones if contact else None,
            tech_stack=data.technology,
            funding_total=funding.total if funding else None,
            investors=funding.investors if funding else None,
            key_people=(
                [leader.model_dump(exclude_none=True) for leader in data.leadership]
                if data.leadership is not None
                else None
            ),
            raw_response=data.model_dump(mode="json", exclude_none=True, by_alias=True),
            status="completed",
            batch_id=batch_id,
        )

    def enriched_fields(self) -> dict[str, Any]:
        """Subset of columns returned for batch rows."""
        return {name: getattr(self, name) for name in ENRICHED_FIELDS}

    def to_payload(self) -> dict[str, Any]:
        payload = self.model_dump(mode="json")
        payload["created_at"] = as_utc(self.created_at).isoformat()
        payload["updated_at"] = as_utc(self.updated_at).isoformat()
        return payload


class EnrichmentBatch(SQLModel, table=True):
    """Header row grouping a bulk enrichment upload."""

    __tablename__ = "enrichment_batches"

    id: UUID = Field(
        default_factory=uuid4,
        sa_column=Column(Uuid(as_uuid=True), primary_key=True, nullable=False),
    )
    total_rows: int = Field(sa_column=Column(Integer, nullable=False))
    status: str = Field(default="processing", sa_column=Column(String(length=32), nullable=False))
    column_mapping: dict[str, Any] | None = Field(default=None, sa_column=json_column())
    created_at: datetime = Field(default_factory=utcnow, sa_column=created_at_column())


class UsageEvent(SQLModel, table=True):
    """Telemetry row describing one module invocation."""

    __tablename__ = "usage_events"
    __table_args__ = (sa.Index("ix_usage_events_module", "module"),)

    id: UUID = Field(
        default_factory=uuid4,
        sa_column=Column(Uuid(as_uuid=True), primary_key=True, nullable=False),
    )
    event_type: str = Field(sa_column=Column(String(length=64), nullable=False))
    module: str = Field(sa_column=Column(String(length=64), nullable=False))
    input_value: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    status: str = Field(sa_column=Column(String(length=32), nullable=False))
    duration_ms: int = Field(default=0, sa_column=Column(Integer, nullable=False))
    event_metadata: dict[str, Any] | None = Field(
        default=None, sa_column=Column("metadata", JSON_BACKING_TYPE, nullable=True)
    )
    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
