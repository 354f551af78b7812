"""Typed payloads exchanged with external providers."""

from __future__ import annotations

from typing import Any, Generic, Literal, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")

SearchProviderName = Literal["serper", "exa"]
ScrapeFormat = Literal["markdown", "html", "rawHtml", "links", "screenshot", "branding", "extract"]


class ProviderResult(BaseModel, Generic[T]):
    """Uniform success/error envelope returned by the provider gateway."""

    success: bool
    data: T | None = None
    error: str | None = None

    @classmethod
    def ok(cls, data: T) -> ProviderResult[T]:
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: str) -> ProviderResult[T]:
        return cls(success=False, error=error)


class _Lenient(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)


class CompanyIdentity(_Lenient):
    name: str | None = None
    description: str | None = None
    industry: str | None = None
    founded: str | None = None
    headquarters: str | None = None
    size: str | None = None
    website: str | None = None


class SocialLinks(_Lenient):
    linkedin: str | None = None
    twitter: str | None = None
    facebook: str | None = None
    crunchbase: str | None = None


class ContactInfo(_Lenient):
    emails: list[str] | None = None
    phones: list[str] | None = None


class Leader(_Lenient):
    name: str | None = None
    title: str | None = None
    linkedin: str | None = None


class FundingInfo(_Lenient):
    total: str | None = None
    last_round: str | None = Field(default=None, alias="lastRound")
    investors: list[str] | None = None


class CompanyEnrichmentData(_Lenient):
    """Structured company payload requested from the extraction provider."""

    company: CompanyIdentity = Field(default_factory=CompanyIdentity)
    social: SocialLinks | None = None
    contact: ContactInfo | None = None
    leadership: list[Leader] | None = None
    technology: list[str] | None = None
    funding: FundingInfo | None = None


class PageMetadata(_Lenient):
    title: str | None = None
    description: str | None = None
    source_url: str | None = Field(default=None, alias="sourceURL")
    status_code: int | None = Field(default=None, alias="statusCode")


class ScrapePayload(_Lenient):
    """Subset of the scrape response the orchestration layer consumes."""

    markdown: str | None = None
    screenshot: str | None = None
    branding: dict[str, Any] | None = None
    metadata: PageMetadata | None = None
    extract: dict[str, Any] | None = None
    links: list[str] | None = None


class SearchResult(BaseModel):
    url: str
    title: str | None = None
    snippet: str | None = None
    source: SearchProviderName


class CrawlJob(_Lenient):
    id: str
    url: str | None = None


class CrawlStatus(_Lenient):
    status: str
    total: int = 0
    completed: int = 0
    data: list[dict[str, Any]] = Field(default_factory=list)


COMPANY_ENRICHMENT_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "company": {
            "type": "object",
            "properties": {
                "name": {"type": "string", "description": "Official company name"},
                "description": {"type": "string", "description": "Company description or tagline"},
                "industry": {"type": "string", "description": "Primary industry or sector"},
                "founded": {"type": "string", "description": "Year founded"},
                "headquarters": {"type": "string", "description": "Headquarters location"},
                "size": {"type": "string", "description": "Company size (e.g., '50-200 employees')"},
                "website": {"type": "string", "description": "Official website URL"},
            },
        },
        "social": {
            "type": "object",
            "properties": {
                "linkedin": {"type": "string", "description": "LinkedIn company page URL"},
                "twitter": {"type": "string", "description": "Twitter/X profile URL"},
                "facebook": {"type": "string", "description": "Facebook page URL"},
                "crunchbase": {"type": "string", "description": "Crunchbase profile URL"},
            },
        },
        "contact": {
            "type": "object",
            "properties": {
                "emails": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "Contact email addresses",
                },
                "phones": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "Contact phone numbers",
                },
            },
        },
        "leadership": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "name": {"type": "string"},
                    "title": {"type": "string"},
                    "linkedin": {"type": "string"},
                },
            },
            "description": "Key leadership/executives",
        },
        "technology": {
            "type": "array",
            "items": {"type": "string"},
            "description": "Technologies and tools used",
        },
        "funding": {
            "type": "object",
            "properties": {
                "total": {"type": "string", "description": "Total funding raised"},
                "lastRound": {"type": "string", "description": "Most recent funding round"},
                "investors": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "Notable investors",
                },
            },
        },
    },
    "required": ["company"],
}
