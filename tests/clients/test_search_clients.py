from __future__ import annotations

import json

import httpx
import pytest

from app.clients.exa import ExaClient, ExaSchemaError
from app.clients.serper import SerperClient, SerperError


def test_serper_sends_query_and_reads_organic():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.headers["X-API-KEY"] == "serper-key"
        assert json.loads(request.content) == {"q": "acme pricing", "num": 20}
        return httpx.Response(200, json={"organic": [{"link": "https://acme.com", "title": "Acme"}]})

    http_client = httpx.Client(transport=httpx.MockTransport(handler), base_url="https://google.serper.dev")
    client = SerperClient("serper-key", http_client=http_client)

    assert client.search(query="acme pricing") == [{"link": "https://acme.com", "title": "Acme"}]


def test_serper_error_status_raises():
    http_client = httpx.Client(
        transport=httpx.MockTransport(lambda request: httpx.Response(403, json={"message": "bad key"})),
        base_url="https://google.serper.dev",
    )

    with pytest.raises(SerperError) as exc:
        SerperClient("serper-key", http_client=http_client).search(query="acme")

    assert "bad key" in str(exc.value)


def test_exa_sends_autoprompt_payload():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.headers["x-api-key"] == "exa-key"
        assert json.loads(request.content) == {
            "query": "acme",
            "numResults": 20,
            "useAutoprompt": True,
        }
        return httpx.Response(200, json={"results": [{"url": "https://acme.com", "text": "hello"}]})

    http_client = httpx.Client(transport=httpx.MockTransport(handler), base_url="https://api.exa.ai")

    results = ExaClient("exa-key", http_client=http_client).search(query="acme")

    assert results == [{"url": "https://acme.com", "text": "hello"}]


def test_exa_missing_results_is_schema_error():
    http_client = httpx.Client(
        transport=httpx.MockTransport(lambda request: httpx.Response(200, json={"oops": []})),
        base_url="https://api.exa.ai",
    )

    with pytest.raises(ExaSchemaError):
        ExaClient("exa-key", http_client=http_client).search(query="acme")
