"""Brand identity extraction and history."""

from __future__ import annotations

import logging
import time
from typing import Any

from app.models.brand import BrandExtraction
from app.models.enrichment import UsageEvent
from app.observability.metrics import metrics
from app.services.errors import ExtractionError, ProviderConfigurationError, ValidationError
from app.services.normalizer import normalize
from app.services.persistence import attempt_write
from app.services.providers.gateway import ProviderGateway
from app.services.repositories import BrandRepository, UsageRepository

logger = logging.getLogger(__name__)


class BrandReconService:
    def __init__(
        self,
        *,
        gateway: ProviderGateway | None,
        extractions: BrandRepository,
        usage: UsageRepository,
    ) -> None:
        self._gateway = gateway
        self._extractions = extractions
        self._usage = usage

    def extract(self, raw_input: Any) -> dict[str, Any]:
        """Extract branding for a URL or email domain.

        Returns ``{id, branding, metadata, screenshot, domain}``; ``id`` is None
        when the row could not be stored.
        """
        start = time.perf_counter()
        if not isinstance(raw_input, str) or not raw_input.strip():
            raise ValidationError("Invalid input: URL or email required")
        try:
            target = normalize(raw_input)
        except ValidationError as exc:
            raise ValidationError(f"Could not parse input: {exc}") from exc
        if not target.domain:
            raise ValidationError("Could not parse input as valid URL or email")
        if self._gateway is None:
            raise ProviderConfigurationError("FIRECRAWL_API_KEY is not configured")

        result = self._gateway.extract_brand(target.normalized_url)
        if not result.success or result.data is None or not result.data.branding:
            error = result.error or "Failed to extract brand identity"
            metrics.increment("brand.failures")
            logger.warning("brand.extract.failed", extra={"domain": target.domain, "error": error})
            failed = BrandExtraction(
                input_url=target.raw_input,
                normalized_url=target.normalized_url,
                domain=target.domain,
                status="failed",
                error_message=error,
            )
            attempt_write("brand.save_failed", lambda: self._extractions.save(failed), domain=target.domain)
            self._record_usage(target.raw_input, "failed", start, domain=target.domain)
            raise ExtractionError(error)

        payload = result.data
        extraction = BrandExtraction.from_scrape(
            payload,
            input_url=target.raw_input,
            normalized_url=target.normalized_url,
            domain=target.domain,
        )
        written = attempt_write(
            "brand.save", lambda: self._extractions.save(extraction), domain=target.domain
        )
        self._record_usage(target.raw_input, "success", start, domain=target.domain)
        metrics.timing("brand.latency_ms", (time.perf_counter() - start) * 1000)
        return {
            "id": str(written.value.id) if written.value is not None else None,
            "branding": payload.branding,
            "metadata": (
                payload.metadata.model_dump(mode="json", exclude_none=True, by_alias=True)
                if payload.metadata is not None
                else None
            ),
            "screenshot": payload.screenshot,
            "domain": target.domain,
        }

    def history(
        self, *, domain: str | None = None, limit: int = 20, offset: int = 0
    ) -> list[BrandExtraction]:
        return self._extractions.list(domain=domain, limit=limit, offset=offset)

    def _record_usage(self, input_value: str, status: str, start: float, **metadata: Any) -> None:
        event = UsageEvent(
            event_type="brand_extraction",
            module="brand-recon",
            input_value=input_value,
            status=status,
            duration_ms=int((time.perf_counter() - start) * 1000),
            event_metadata=metadata,
        )
        attempt_write("usage.record", lambda: self._usage.record(event), event_type="brand_extraction")
