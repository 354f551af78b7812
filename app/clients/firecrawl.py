"""Client for interacting with the Firecrawl scrape/extract API."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import httpx


class FirecrawlError(RuntimeError):
    """Base error for Firecrawl client failures."""

    def __init__(self, message: str, code: str = "FIRECRAWL_ERROR") -> None:
        super().__init__(message)
        self.code = code


class FirecrawlRateLimitError(FirecrawlError):
    """Raised when Firecrawl responds with HTTP 429."""

    def __init__(self, message: str = "Rate limited by Firecrawl") -> None:
        super().__init__(message, code="FIRECRAWL_429")


class FirecrawlTimeoutError(FirecrawlError):
    """Raised when Firecrawl request times out."""

    def __init__(self, message: str = "Firecrawl request timed out") -> None:
        super().__init__(message, code="FIRECRAWL_TIMEOUT")


class FirecrawlSchemaError(FirecrawlError):
    """Raised when the Firecrawl response cannot be decoded."""

    def __init__(self, message: str = "Unexpected Firecrawl response schema") -> None:
        super().__init__(message, code="FIRECRAWL_SCHEMA_ERR")


class FirecrawlClient:
    """Minimal Firecrawl v1 API client."""

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = "https://api.firecrawl.dev/v1",
        timeout: float = 30.0,
        http_client: httpx.Client | None = None,
    ) -> None:
        if not api_key:
            raise ValueError("FIRECRAWL_API_KEY is required to create a FirecrawlClient.")
        self._api_key = api_key
        self._owns_http_client = http_client is None
        self._http = http_client or httpx.Client(base_url=base_url.rstrip("/"), timeout=timeout)

    def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._owns_http_client:
            self._http.close()

    def scrape(
        self,
        url: str,
        *,
        formats: Sequence[str],
        extract: dict[str, Any] | None = None,
        only_main_content: bool | None = None,
        wait_for: int | None = None,
    ) -> dict[str, Any]:
        """Scrape a single URL in the requested formats."""
        payload: dict[str, Any] = {"url": url, "formats": list(formats)}
        if extract is not None:
            payload["extract"] = extract
        if only_main_content is not None:
            payload["onlyMainContent"] = only_main_content
        if wait_for is not None:
            payload["waitFor"] = wait_for
        return self._request("POST", "/scrape", json=payload)

    def map(
        self,
        url: str,
        *,
        search: str | None = None,
        include_subdomains: bool = False,
        limit: int | None = None,
    ) -> dict[str, Any]:
        """List the URLs of a site."""
        payload: dict[str, Any] = {"url": url, "includeSubdomains": include_subdomains}
        if search:
            payload["search"] = search
        if limit is not None:
            payload["limit"] = limit
        return self._request("POST", "/map", json=payload)

    def crawl(
        self,
        url: str,
        *,
        limit: int | None = None,
        max_depth: int | None = None,
        include_paths: Sequence[str] | None = None,
        exclude_paths: Sequence[str] | None = None,
        scrape_options: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Start an asynchronous crawl job."""
        payload: dict[str, Any] = {"url": url}
        if limit is not None:
            payload["limit"] = limit
        if max_depth is not None:
            payload["maxDepth"] = max_depth
        if include_paths:
            payload["includePaths"] = list(include_paths)
        if exclude_paths:
            payload["excludePaths"] = list(exclude_paths)
        if scrape_options:
            payload["scrapeOptions"] = scrape_options
        return self._request("POST", "/crawl", json=payload)

    def crawl_status(self, crawl_id: str) -> dict[str, Any]:
        """Fetch the progress of a crawl job."""
        return self._request("GET", f"/crawl/{crawl_id}")

    def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        headers = {"Authorization": f"Bearer {self._api_key}"}
        try:
            response = self._http.request(method, path, headers=headers, **kwargs)
        except httpx.TimeoutException as exc:
            raise FirecrawlTimeoutError() from exc
        except httpx.HTTPError as exc:
            raise FirecrawlError(f"HTTP error calling Firecrawl: {exc}") from exc

        try:
            body = response.json()
        except ValueError as exc:
            if response.status_code >= 400:
                raise FirecrawlError(f"API error: {response.status_code}") from exc
            raise FirecrawlSchemaError("Failed to decode Firecrawl response JSON.") from exc

        if response.status_code == 429:
            raise FirecrawlRateLimitError()
        if response.status_code in (408, 504):
            raise FirecrawlTimeoutError()
        if response.status_code >= 400:
            detail = body.get("error") if isinstance(body, dict) else None
            raise FirecrawlError(detail or f"API error: {response.status_code}")

        if not isinstance(body, dict):
            raise FirecrawlSchemaError("Firecrawl response must be a JSON object.")
        data = body.get("data")
        if isinstance(data, dict):
            return data
        return body
