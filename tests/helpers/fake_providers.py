"""Hand-written provider doubles shared by service and API tests."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

STRIPE_EXTRACT: dict[str, Any] = {
    "company": {
        "name": "Stripe",
        "description": "Financial infrastructure for the internet.",
        "industry": "Financial Services",
        "founded": "2010",
        "headquarters": "South San Francisco, CA",
        "size": "5000+ employees",
        "website": "https://stripe.com",
    },
    "social": {
        "linkedin": "https://www.linkedin.com/company/stripe",
        "twitter": "https://twitter.com/stripe",
    },
    "contact": {
        "emails": ["sales@stripe.com", "support@stripe.com", "sales@stripe.com"],
        "phones": ["+1 888 926 2289"],
    },
    "leadership": [
        {"name": "Patrick Collison", "title": "CEO"},
        {"name": "John Collison", "title": "President"},
    ],
    "technology": ["Ruby", "Go", "React"],
    "funding": {"total": "$8.7B", "investors": ["Sequoia", "a16z"]},
}

STRIPE_BRANDING: dict[str, Any] = {
    "colorScheme": "light",
    "logo": "https://stripe.com/img/logo.svg",
    "colors": {"primary": "#635BFF", "background": "#FFFFFF"},
    "fonts": [{"family": "Sohne"}],
    "typography": {"fontFamilies": {"primary": "Sohne"}},
    "spacing": {"baseUnit": 8},
    "personality": {"tone": "professional"},
}


class FakeFirecrawl:
    """Scripted stand-in for FirecrawlClient.

    Responses are chosen by the requested format: ``extract`` requests return
    ``extract_data``, ``branding`` requests return ``branding``, everything
    else returns ``markdown``. Set ``errors[kind]`` to make a kind raise.
    """

    def __init__(self) -> None:
        self.calls: list[dict[str, Any]] = []
        self.extract_data: dict[str, Any] | None = STRIPE_EXTRACT
        self.branding: dict[str, Any] | None = STRIPE_BRANDING
        self.screenshot: str | None = "https://cdn.firecrawl.dev/shot.png"
        self.markdown: str = "# Pricing\n\nStarter plan $10/month."
        self.errors: dict[str, Exception] = {}
        self.closed = False

    def scrape(
        self,
        url: str,
        *,
        formats: Sequence[str],
        extract: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        formats = list(formats)
        kind = "extract" if "extract" in formats else "branding" if "branding" in formats else "markdown"
        self.calls.append({"url": url, "formats": formats, "extract": extract, "kind": kind})
        if kind in self.errors:
            raise self.errors[kind]
        metadata = {"title": "Stripe | Payments", "description": "Online payments", "sourceURL": url}
        if kind == "extract":
            return {"extract": self.extract_data, "metadata": metadata}
        if kind == "branding":
            return {"branding": self.branding, "screenshot": self.screenshot, "metadata": metadata}
        return {"markdown": self.markdown, "metadata": metadata}

    def map(self, url: str, *, search: str | None = None) -> dict[str, Any]:
        self.calls.append({"url": url, "kind": "map", "search": search})
        return {"success": True, "links": [f"{url}/pricing", f"{url}/docs"]}

    def crawl(self, url: str, *, limit: int | None = None) -> dict[str, Any]:
        self.calls.append({"url": url, "kind": "crawl", "limit": limit})
        return {"success": True, "id": "crawl-1", "url": f"https://api.firecrawl.dev/v1/crawl/crawl-1"}

    def crawl_status(self, crawl_id: str) -> dict[str, Any]:
        self.calls.append({"kind": "crawl_status", "id": crawl_id})
        return {"status": "completed", "total": 2, "completed": 2, "data": []}

    def kinds(self) -> list[str]:
        return [call["kind"] for call in self.calls]

    def close(self) -> None:
        self.closed = True


class FakeSearchClient:
    """Returns raw provider entries, or raises ``error`` when set."""

    def __init__(self, entries: list[dict[str, Any]] | None = None, error: Exception | None = None) -> None:
        self.entries = entries or []
        self.error = error
        self.queries: list[dict[str, Any]] = []
        self.closed = False

    def search(self, **kwargs: Any) -> list[dict[str, Any]]:
        self.queries.append(kwargs)
        if self.error is not None:
            raise self.error
        return list(self.entries)

    def close(self) -> None:
        self.closed = True


class StubSummarizer:
    def __init__(self, summary: str = "Pricing changed.", error: Exception | None = None) -> None:
        self.summary = summary
        self.error = error
        self.calls: list[dict[str, Any]] = []

    def summarize(self, *, old_excerpt: str | None, new_excerpt: str) -> str:
        self.calls.append({"old_excerpt": old_excerpt, "new_excerpt": new_excerpt})
        if self.error is not None:
            raise self.error
        return self.summary


def serper_entries(*urls: str) -> list[dict[str, Any]]:
    return [{"link": url, "title": f"Serper {url}", "snippet": "snippet"} for url in urls]


def exa_entries(*urls: str) -> list[dict[str, Any]]:
    return [{"url": url, "title": f"Exa {url}", "text": "x" * 400} for url in urls]
