from __future__ import annotations

import json

import httpx
import pytest

from app.clients.firecrawl import (
    FirecrawlClient,
    FirecrawlError,
    FirecrawlRateLimitError,
    FirecrawlSchemaError,
)


def _client(handler) -> FirecrawlClient:
    http_client = httpx.Client(
        transport=httpx.MockTransport(handler),
        base_url="https://api.firecrawl.dev/v1",
    )
    return FirecrawlClient("fc-test", http_client=http_client)


def test_missing_api_key_raises_value_error():
    with pytest.raises(ValueError):
        FirecrawlClient("")


def test_scrape_posts_formats_and_returns_data():
    seen: dict[str, object] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"success": True, "data": {"markdown": "# Hello"}})

    client = _client(handler)
    data = client.scrape("https://stripe.com", formats=["markdown"])

    assert data == {"markdown": "# Hello"}
    assert seen["path"] == "/v1/scrape"
    assert seen["auth"] == "Bearer fc-test"
    assert seen["body"] == {"url": "https://stripe.com", "formats": ["markdown"]}


def test_error_field_is_preferred_over_status():
    client = _client(lambda request: httpx.Response(402, json={"success": False, "error": "Payment required"}))

    with pytest.raises(FirecrawlError) as exc:
        client.scrape("https://stripe.com", formats=["markdown"])

    assert str(exc.value) == "Payment required"


def test_non_json_error_reports_status():
    client = _client(lambda request: httpx.Response(500, text="<html>oops</html>"))

    with pytest.raises(FirecrawlError) as exc:
        client.scrape("https://stripe.com", formats=["markdown"])

    assert str(exc.value) == "API error: 500"


def test_non_json_success_is_schema_error():
    client = _client(lambda request: httpx.Response(200, text="not json"))

    with pytest.raises(FirecrawlSchemaError):
        client.scrape("https://stripe.com", formats=["markdown"])


def test_rate_limit_maps_to_typed_error():
    client = _client(lambda request: httpx.Response(429, json={"error": "slow down"}))

    with pytest.raises(FirecrawlRateLimitError) as exc:
        client.map("https://stripe.com")

    assert exc.value.code == "FIRECRAWL_429"


def test_crawl_status_uses_get():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.method == "GET"
        assert request.url.path == "/v1/crawl/abc"
        return httpx.Response(200, json={"status": "scraping", "total": 4, "completed": 1, "data": []})

    status = _client(handler).crawl_status("abc")

    assert status["status"] == "scraping"
