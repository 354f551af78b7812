"""Company enrichment orchestration: cache, extract, persist, record usage."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any
from uuid import UUID

from app.models.columns import utcnow
from app.models.enrichment import EnrichmentRecord, UsageEvent
from app.models.provider import COMPANY_ENRICHMENT_SCHEMA
from app.observability.metrics import metrics
from app.services.errors import (
    ExtractionError,
    PersistenceError,
    ProviderConfigurationError,
    ValidationError,
)
from app.services.normalizer import Target, classify_input, normalize
from app.services.persistence import attempt_write
from app.services.providers.gateway import ProviderGateway
from app.services.repositories import EnrichmentRepository, UsageRepository

logger = logging.getLogger(__name__)

SINGLE_EXTRACT_PROMPT = (
    "Extract comprehensive company information including name, description, industry, "
    "social links, contact info, leadership team, technology stack, and funding details."
)
BATCH_EXTRACT_PROMPT = "Extract comprehensive company information."

INVALID_INPUT_MESSAGE = "Invalid input: URL, email, or company name required"
UNPARSEABLE_INPUT_MESSAGE = "Could not parse input as valid URL or email"


@dataclass
class EnrichmentOutcome:
    """Result of one enrichment: the record plus how it was obtained."""

    record: EnrichmentRecord
    cached: bool
    persisted: bool = True
    screenshot: str | None = None
    raw: dict[str, Any] | None = field(default=None)

    def to_payload(self) -> dict[str, Any]:
        payload = self.record.to_payload()
        if not self.persisted:
            payload["id"] = None
        payload["cached"] = self.cached
        payload["screenshot"] = self.screenshot
        payload["raw"] = self.raw if self.raw is not None else self.record.raw_response
        return payload


class EnrichmentService:
    """Single-target enrichment and history lookups."""

    def __init__(
        self,
        *,
        gateway: ProviderGateway | None,
        records: EnrichmentRepository,
        usage: UsageRepository,
        cache_days: int = 7,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._gateway = gateway
        self._records = records
        self._usage = usage
        self._cache_window = timedelta(days=cache_days)
        self._clock = clock

    def enrich(self, raw_input: Any) -> EnrichmentOutcome:
        """Enrich a URL, domain, email or company name.

        Raises ValidationError for unusable input and ExtractionError when the
        provider cannot produce company data.
        """
        start = time.perf_counter()
        if not isinstance(raw_input, str) or not raw_input.strip():
            raise ValidationError(INVALID_INPUT_MESSAGE)
        trimmed = raw_input.strip()
        input_type = classify_input(trimmed)
        target = _normalize_or_raise(trimmed)

        try:
            outcome = self.enrich_target(
                target,
                input_type=input_type,
                include_brand=True,
                persist_failures=True,
                prompt=SINGLE_EXTRACT_PROMPT,
            )
        except ExtractionError:
            self._record_usage(trimmed, "failed", start, domain=target.domain)
            raise
        self._record_usage(trimmed, "success", start, domain=target.domain, cached=outcome.cached)
        metrics.timing("enrichment.latency_ms", (time.perf_counter() - start) * 1000)
        return outcome

    def enrich_target(
        self,
        target: Target,
        *,
        input_type: str,
        input_value: str | None = None,
        batch_id: UUID | None = None,
        include_brand: bool = False,
        persist_failures: bool = False,
        prompt: str = BATCH_EXTRACT_PROMPT,
    ) -> EnrichmentOutcome:
        """Cache check then extraction for an already normalized target."""
        input_value = input_value or target.raw_input
        cached = self.cached_record(target.domain)
        if cached is not None:
            metrics.increment("enrichment.cache_hit")
            logger.info("enrichment.cache.hit", extra={"domain": target.domain})
            return EnrichmentOutcome(record=cached, cached=True)
        metrics.increment("enrichment.cache_miss")

        gateway = self._require_gateway()
        result = gateway.extract(target.normalized_url, COMPANY_ENRICHMENT_SCHEMA, prompt)
        if not result.success or result.data is None:
            error = result.error or "Failed to extract company data"
            metrics.increment("enrichment.failures")
            logger.warning(
                "enrichment.extract.failed",
                extra={"domain": target.domain, "error": error},
            )
            if persist_failures:
                failed = EnrichmentRecord(
                    input_type=input_type,
                    input_value=input_value,
                    normalized_url=target.normalized_url,
                    domain=target.domain,
                    status="failed",
                    error_message=error,
                    batch_id=batch_id,
                )
                attempt_write(
                    "enrichment.save_failed",
                    lambda: self._records.save(failed),
                    domain=target.domain,
                )
            raise ExtractionError(error)

        screenshot: str | None = None
        logo: str | None = None
        if include_brand:
            brand = gateway.extract_brand(target.normalized_url)
            if brand.success and brand.data is not None:
                screenshot = brand.data.screenshot
                branding_logo = (brand.data.branding or {}).get("logo")
                logo = branding_logo if isinstance(branding_logo, str) else None
            else:
                logger.info(
                    "enrichment.brand.skipped",
                    extra={"domain": target.domain, "error": brand.error},
                )

        record = EnrichmentRecord.from_extraction(
            result.data,
            input_type=input_type,
            input_value=input_value,
            normalized_url=target.normalized_url,
            domain=target.domain,
            logo=logo,
            batch_id=batch_id,
        )
        written = attempt_write(
            "enrichment.save",
            lambda: self._records.save(record),
            domain=target.domain,
        )
        return EnrichmentOutcome(
            record=written.value or record,
            cached=False,
            persisted=written.ok,
            screenshot=screenshot,
            raw=record.raw_response,
        )

    def cached_record(self, domain: str) -> EnrichmentRecord | None:
        """Most recent completed record inside the freshness window, if any."""
        since = self._clock() - self._cache_window
        try:
            return self._records.latest_completed(domain, since=since)
        except PersistenceError:
            logger.warning("enrichment.cache.unavailable", extra={"domain": domain})
            return None

    def history(
        self, *, domain: str | None = None, limit: int = 20, offset: int = 0
    ) -> list[EnrichmentRecord]:
        return self._records.list(domain=domain, limit=limit, offset=offset)

    def _require_gateway(self) -> ProviderGateway:
        if self._gateway is None:
            raise ProviderConfigurationError("FIRECRAWL_API_KEY is not configured")
        return self._gateway

    def _record_usage(
        self,
        input_value: str,
        status: str,
        start: float,
        **metadata: Any,
    ) -> None:
        event = UsageEvent(
            event_type="enrichment",
            module="enrich",
            input_value=input_value,
            status=status,
            duration_ms=int((time.perf_counter() - start) * 1000),
            event_metadata=metadata,
        )
        attempt_write("usage.record", lambda: self._usage.record(event), event_type="enrichment")


def _normalize_or_raise(value: str) -> Target:
    try:
        target = normalize(value)
    except ValidationError as exc:
        raise ValidationError(UNPARSEABLE_INPUT_MESSAGE) from exc
    if not target.domain:
        raise ValidationError(UNPARSEABLE_INPUT_MESSAGE)
    return target
