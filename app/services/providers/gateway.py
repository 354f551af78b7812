"""Uniform gateway over the scrape/extract and search providers.

Every provider outcome is folded into a ``ProviderResult``; callers never see
client exceptions. Search providers degrade to an empty list when missing or
failing so one backend can never abort the other.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Sequence
from typing import Any, Protocol

from pydantic import ValidationError as PydanticValidationError

from app.clients.exa import ExaClient, ExaError
from app.clients.firecrawl import FirecrawlClient, FirecrawlError
from app.clients.serper import SerperClient, SerperError
from app.config import Settings
from app.models.provider import (
    CompanyEnrichmentData,
    CrawlJob,
    CrawlStatus,
    ProviderResult,
    ScrapePayload,
    SearchProviderName,
    SearchResult,
)
from app.observability.metrics import metrics
from app.services.errors import ProviderConfigurationError
from app.services.providers.rate_limit import RateLimitExceeded, TokenBucket

logger = logging.getLogger(__name__)

EXA_SNIPPET_CHARS = 300


class ScrapeClient(Protocol):
    """Contract implemented by FirecrawlClient and test doubles."""

    def scrape(
        self,
        url: str,
        *,
        formats: Sequence[str],
        extract: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        ...

    def map(self, url: str, *, search: str | None = None) -> dict[str, Any]:
        ...

    def crawl(self, url: str, *, limit: int | None = None) -> dict[str, Any]:
        ...

    def crawl_status(self, crawl_id: str) -> dict[str, Any]:
        ...

    def close(self) -> None:
        ...


class SearchClient(Protocol):
    def search(self, **kwargs: Any) -> list[dict[str, Any]]:
        ...

    def close(self) -> None:
        ...


class SearchGateway:
    """Dispatches queries to Serper or Exa and normalizes their results."""

    def __init__(
        self,
        *,
        serper: SearchClient | None = None,
        exa: SearchClient | None = None,
        num_results: int = 20,
    ) -> None:
        self._serper = serper
        self._exa = exa
        self._num_results = num_results

    @property
    def configured(self) -> list[SearchProviderName]:
        names: list[SearchProviderName] = []
        if self._serper is not None:
            names.append("serper")
        if self._exa is not None:
            names.append("exa")
        return names

    def search(self, provider: SearchProviderName, query: str) -> list[SearchResult]:
        """Return normalized results, or an empty list when the provider is unusable."""
        start = time.perf_counter()
        tags = {"provider": provider}
        try:
            if provider == "serper":
                results = self._search_serper(query)
            elif provider == "exa":
                results = self._search_exa(query)
            else:
                logger.warning("provider.search.unknown", extra={"provider": provider})
                return []
        except (SerperError, ExaError) as exc:
            metrics.increment("provider.search.errors", tags={**tags, "code": exc.code})
            logger.warning(
                "provider.search.failed",
                extra={"provider": provider, "code": exc.code, "error": str(exc)},
            )
            return []
        except PydanticValidationError as exc:
            metrics.increment("provider.search.errors", tags={**tags, "code": "SCHEMA"})
            logger.warning(
                "provider.search.invalid_payload",
                extra={"provider": provider, "error": str(exc)},
            )
            return []
        except Exception:
            metrics.increment("provider.search.errors", tags={**tags, "code": "UNEXPECTED"})
            logger.exception("provider.search.unexpected", extra=tags)
            return []
        finally:
            metrics.timing(
                "provider.search.latency_ms", (time.perf_counter() - start) * 1000, tags=tags
            )
        metrics.increment("provider.search.results", len(results), tags=tags)
        return results

    def _search_serper(self, query: str) -> list[SearchResult]:
        if self._serper is None:
            logger.info("provider.search.skipped", extra={"provider": "serper"})
            return []
        entries = self._serper.search(query=query, num=self._num_results)
        return [
            SearchResult(
                url=entry["link"],
                title=entry.get("title"),
                snippet=entry.get("snippet"),
                source="serper",
            )
            for entry in entries
            if entry.get("link")
        ]

    def _search_exa(self, query: str) -> list[SearchResult]:
        if self._exa is None:
            logger.info("provider.search.skipped", extra={"provider": "exa"})
            return []
        entries = self._exa.search(query=query, num_results=self._num_results)
        results: list[SearchResult] = []
        for entry in entries:
            if not entry.get("url"):
                continue
            text = entry.get("text")
            results.append(
                SearchResult(
                    url=entry["url"],
                    title=entry.get("title"),
                    snippet=text[:EXA_SNIPPET_CHARS] if isinstance(text, str) else None,
                    source="exa",
                )
            )
        return results

    def close(self) -> None:
        for client in (self._serper, self._exa):
            if client is not None:
                client.close()


class ProviderGateway:
    """Firecrawl-backed scrape/extract operations plus search dispatch."""

    def __init__(
        self,
        firecrawl: ScrapeClient,
        *,
        search: SearchGateway | None = None,
        limiter: TokenBucket | None = None,
        limiter_timeout: float | None = None,
    ) -> None:
        if firecrawl is None:
            raise ProviderConfigurationError("FIRECRAWL_API_KEY is not configured")
        self._firecrawl = firecrawl
        self._search = search or SearchGateway()
        self._limiter = limiter
        self._limiter_timeout = limiter_timeout

    def scrape(
        self,
        url: str,
        formats: Sequence[str],
        *,
        extract: dict[str, Any] | None = None,
    ) -> ProviderResult[ScrapePayload]:
        outcome = self._call(
            "scrape", lambda: self._firecrawl.scrape(url, formats=formats, extract=extract)
        )
        if not outcome.success:
            return ProviderResult[ScrapePayload].fail(outcome.error or "Unknown error")
        try:
            payload = ScrapePayload.model_validate(outcome.data or {})
        except PydanticValidationError as exc:
            logger.warning("provider.scrape.invalid_payload", extra={"url": url, "error": str(exc)})
            return ProviderResult[ScrapePayload].fail("Unexpected scrape response payload")
        return ProviderResult[ScrapePayload].ok(payload)

    def extract_brand(self, url: str) -> ProviderResult[ScrapePayload]:
        return self.scrape(url, ["branding", "screenshot"])

    def extract(
        self,
        url: str,
        schema: dict[str, Any],
        prompt: str | None = None,
    ) -> ProviderResult[CompanyEnrichmentData]:
        """Structured extraction; returns the extract object validated as company data."""
        options: dict[str, Any] = {"schema": schema}
        if prompt:
            options["prompt"] = prompt
        scraped = self.scrape(url, ["extract"], extract=options)
        if not scraped.success or scraped.data is None:
            return ProviderResult[CompanyEnrichmentData].fail(scraped.error or "Extraction failed")
        raw = scraped.data.extract
        if raw is None:
            raw = scraped.data.model_dump(exclude_none=True, by_alias=True)
        try:
            data = CompanyEnrichmentData.model_validate(raw)
        except PydanticValidationError as exc:
            logger.warning("provider.extract.invalid_payload", extra={"url": url, "error": str(exc)})
            return ProviderResult[CompanyEnrichmentData].fail("Extraction returned an unusable payload")
        return ProviderResult[CompanyEnrichmentData].ok(data)

    def map_site(self, url: str, *, search: str | None = None) -> ProviderResult[list[str]]:
        outcome = self._call("map", lambda: self._firecrawl.map(url, search=search))
        if not outcome.success:
            return ProviderResult[list[str]].fail(outcome.error or "Unknown error")
        links = (outcome.data or {}).get("links")
        if not isinstance(links, list):
            return ProviderResult[list[str]].fail("Unexpected map response payload")
        return ProviderResult[list[str]].ok([str(link) for link in links])

    def crawl(self, url: str, *, limit: int | None = None) -> ProviderResult[CrawlJob]:
        outcome = self._call("crawl", lambda: self._firecrawl.crawl(url, limit=limit))
        if not outcome.success:
            return ProviderResult[CrawlJob].fail(outcome.error or "Unknown error")
        try:
            return ProviderResult[CrawlJob].ok(CrawlJob.model_validate(outcome.data or {}))
        except PydanticValidationError:
            return ProviderResult[CrawlJob].fail("Unexpected crawl response payload")

    def crawl_status(self, crawl_id: str) -> ProviderResult[CrawlStatus]:
        outcome = self._call("crawl_status", lambda: self._firecrawl.crawl_status(crawl_id))
        if not outcome.success:
            return ProviderResult[CrawlStatus].fail(outcome.error or "Unknown error")
        try:
            return ProviderResult[CrawlStatus].ok(CrawlStatus.model_validate(outcome.data or {}))
        except PydanticValidationError:
            return ProviderResult[CrawlStatus].fail("Unexpected crawl status payload")

    def search(self, provider: SearchProviderName, query: str) -> list[SearchResult]:
        return self._search.search(provider, query)

    @property
    def search_gateway(self) -> SearchGateway:
        return self._search

    def close(self) -> None:
        self._firecrawl.close()
        self._search.close()

    def _call(self, operation: str, func) -> ProviderResult[dict[str, Any]]:
        tags = {"provider": "firecrawl", "operation": operation}
        start = time.perf_counter()
        try:
            if self._limiter is not None:
                self._limiter.acquire(timeout=self._limiter_timeout)
            data = func()
        except FirecrawlError as exc:
            metrics.increment("provider.errors", tags={**tags, "code": exc.code})
            logger.warning(
                "provider.request.failed",
                extra={**tags, "code": exc.code, "error": str(exc)},
            )
            return ProviderResult[dict[str, Any]].fail(str(exc))
        except RateLimitExceeded as exc:
            metrics.increment("provider.errors", tags={**tags, "code": exc.code})
            logger.warning("provider.request.throttled", extra=tags)
            return ProviderResult[dict[str, Any]].fail(str(exc))
        except Exception as exc:
            metrics.increment("provider.errors", tags={**tags, "code": "UNEXPECTED"})
            logger.exception("provider.request.unexpected", extra=tags)
            return ProviderResult[dict[str, Any]].fail(str(exc) or "Unknown error")
        finally:
            metrics.timing(
                "provider.latency_ms", (time.perf_counter() - start) * 1000, tags=tags
            )
        return ProviderResult[dict[str, Any]].ok(data)


def build_search_gateway(config: Settings) -> SearchGateway:
    """Create search clients for whichever providers have credentials."""
    serper = (
        SerperClient(config.serper_api_key, timeout=config.provider_timeout_seconds)
        if config.serper_api_key
        else None
    )
    exa = (
        ExaClient(config.exa_api_key, timeout=config.provider_timeout_seconds)
        if config.exa_api_key
        else None
    )
    if serper is None:
        logger.warning("provider.search.unconfigured", extra={"provider": "serper"})
    if exa is None:
        logger.warning("provider.search.unconfigured", extra={"provider": "exa"})
    return SearchGateway(
        serper=serper,
        exa=exa,
        num_results=config.search_results_per_provider,
    )


def build_provider_gateway(
    config: Settings,
    *,
    search: SearchGateway | None = None,
) -> ProviderGateway:
    """Create the Firecrawl-backed gateway; refuses to build without an API key."""
    if not config.firecrawl_api_key:
        raise ProviderConfigurationError("FIRECRAWL_API_KEY is not configured")
    firecrawl = FirecrawlClient(
        config.firecrawl_api_key,
        base_url=config.firecrawl_base_url,
        timeout=config.provider_timeout_seconds,
    )
    limiter = TokenBucket(rate=config.firecrawl_rate_per_second, capacity=config.firecrawl_burst)
    return ProviderGateway(
        firecrawl,
        search=search or build_search_gateway(config),
        limiter=limiter,
        limiter_timeout=config.firecrawl_rate_limit_timeout,
    )
