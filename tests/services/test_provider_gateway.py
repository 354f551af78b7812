from __future__ import annotations

import httpx
import pytest

from app.clients.exa import ExaRateLimitError
from app.clients.firecrawl import FirecrawlError
from app.clients.serper import SerperClient, SerperError
from app.config import Settings
from app.models.provider import COMPANY_ENRICHMENT_SCHEMA
from app.services.errors import ProviderConfigurationError
from app.services.providers import gateway as gateway_module
from app.services.providers.gateway import (
    ProviderGateway,
    SearchGateway,
    build_provider_gateway,
)
from app.services.providers.rate_limit import TokenBucket
from tests.helpers.fake_providers import FakeFirecrawl, FakeSearchClient, exa_entries, serper_entries
from tests.helpers.metrics_stub import StubMetrics


@pytest.fixture
def stub_metrics(monkeypatch) -> StubMetrics:
    stub = StubMetrics()
    monkeypatch.setattr(gateway_module, "metrics", stub)
    return stub


def test_extract_validates_company_payload(firecrawl):
    gateway = ProviderGateway(firecrawl)

    result = gateway.extract("https://stripe.com", COMPANY_ENRICHMENT_SCHEMA, "prompt")

    assert result.success
    assert result.data.company.name == "Stripe"
    assert result.data.contact.emails == ["sales@stripe.com", "support@stripe.com", "sales@stripe.com"]
    assert firecrawl.calls[0]["formats"] == ["extract"]
    assert firecrawl.calls[0]["extract"] == {"schema": COMPANY_ENRICHMENT_SCHEMA, "prompt": "prompt"}


def test_provider_errors_become_failed_results(firecrawl, stub_metrics):
    firecrawl.errors["extract"] = FirecrawlError("Payment required")
    gateway = ProviderGateway(firecrawl)

    result = gateway.extract("https://stripe.com", COMPANY_ENRICHMENT_SCHEMA)

    assert not result.success
    assert result.error == "Payment required"
    assert "provider.errors" in stub_metrics.names()


def test_unexpected_exceptions_never_escape(firecrawl):
    firecrawl.errors["markdown"] = KeyError("boom")
    gateway = ProviderGateway(firecrawl)

    result = gateway.scrape("https://stripe.com", ["markdown"])

    assert result.success is False
    assert result.error


def test_extract_brand_requests_branding_and_screenshot(firecrawl):
    result = ProviderGateway(firecrawl).extract_brand("https://stripe.com")

    assert result.success
    assert result.data.branding["colorScheme"] == "light"
    assert result.data.screenshot == "https://cdn.firecrawl.dev/shot.png"
    assert firecrawl.calls[0]["formats"] == ["branding", "screenshot"]


def test_map_and_crawl_helpers(firecrawl):
    gateway = ProviderGateway(firecrawl)

    links = gateway.map_site("https://stripe.com")
    job = gateway.crawl("https://stripe.com", limit=5)
    status = gateway.crawl_status("crawl-1")

    assert links.data == ["https://stripe.com/pricing", "https://stripe.com/docs"]
    assert job.data.id == "crawl-1"
    assert status.data.status == "completed"


def test_rate_limited_calls_fail_without_reaching_provider(firecrawl):
    limiter = TokenBucket(rate=0.001, capacity=1)
    gateway = ProviderGateway(firecrawl, limiter=limiter, limiter_timeout=0)

    assert gateway.scrape("https://stripe.com", ["markdown"]).success
    throttled = gateway.scrape("https://stripe.com", ["markdown"])

    assert not throttled.success
    assert "rate limit exceeded" in throttled.error.lower()
    assert len(firecrawl.calls) == 1


def test_search_normalizes_both_providers():
    search = SearchGateway(
        serper=FakeSearchClient(serper_entries("https://a.example")),
        exa=FakeSearchClient(exa_entries("https://b.example")),
    )

    serper_results = search.search("serper", "acme")
    exa_results = search.search("exa", "acme")

    assert [(r.url, r.source) for r in serper_results] == [("https://a.example", "serper")]
    assert exa_results[0].source == "exa"
    assert len(exa_results[0].snippet) == 300


def test_search_degrades_to_empty_list(stub_metrics):
    search = SearchGateway(
        serper=FakeSearchClient(error=SerperError("boom")),
        exa=FakeSearchClient(error=ExaRateLimitError()),
    )

    assert search.search("serper", "acme") == []
    assert search.search("exa", "acme") == []
    assert stub_metrics.names().count("provider.search.errors") == 2


def test_unexpected_client_errors_degrade_to_empty_list(stub_metrics):
    http_client = httpx.Client(base_url="https://google.serper.dev")
    http_client.close()
    search = SearchGateway(
        serper=SerperClient("serper-key", http_client=http_client),
        exa=FakeSearchClient(error=httpx.InvalidURL("bad")),
    )

    assert search.search("serper", "acme") == []
    assert search.search("exa", "acme") == []
    assert stub_metrics.names().count("provider.search.errors") == 2


def test_missing_search_credentials_return_empty_list():
    search = SearchGateway()

    assert search.configured == []
    assert search.search("serper", "acme") == []
    assert search.search("exa", "acme") == []


def test_building_gateway_requires_firecrawl_key():
    with pytest.raises(ProviderConfigurationError):
        build_provider_gateway(Settings(_env_file=None, firecrawl_api_key=None))


def test_close_closes_all_clients():
    firecrawl = FakeFirecrawl()
    serper = FakeSearchClient()
    gateway = ProviderGateway(firecrawl, search=SearchGateway(serper=serper))

    gateway.close()

    assert firecrawl.closed and serper.closed
