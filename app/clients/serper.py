"""Client for interacting with the Serper Google search API."""

from __future__ import annotations

from typing import Any

import httpx


class SerperError(RuntimeError):
    """Base error for Serper client failures."""

    def __init__(self, message: str, code: str = "SERPER_ERROR") -> None:
        super().__init__(message)
        self.code = code


class SerperRateLimitError(SerperError):
    """Raised when Serper responds with HTTP 429."""

    def __init__(self, message: str = "Rate limited by Serper") -> None:
        super().__init__(message, code="SERPER_429")


class SerperTimeoutError(SerperError):
    """Raised when Serper request times out."""

    def __init__(self, message: str = "Serper request timed out") -> None:
        super().__init__(message, code="SERPER_TIMEOUT")


class SerperSchemaError(SerperError):
    """Raised when Serper response schema does not match expectations."""

    def __init__(self, message: str = "Unexpected Serper response schema") -> None:
        super().__init__(message, code="SERPER_SCHEMA_ERR")


class SerperClient:
    """Minimal Serper API client wrapper."""

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = "https://google.serper.dev",
        timeout: float = 10.0,
        http_client: httpx.Client | None = None,
    ) -> None:
        if not api_key:
            raise ValueError("SERPER_API_KEY is required to create a SerperClient.")
        self._api_key = api_key
        self._owns_http_client = http_client is None
        self._http = http_client or httpx.Client(base_url=base_url.rstrip("/"), timeout=timeout)

    def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._owns_http_client:
            self._http.close()

    def search(self, *, query: str, num: int = 20) -> list[dict[str, Any]]:
        """Execute a Google web search and return the organic results."""
        if num <= 0:
            raise ValueError("num must be a positive integer.")

        payload: dict[str, Any] = {"q": query, "num": num}
        headers = {"X-API-KEY": self._api_key}

        try:
            response = self._http.post("/search", json=payload, headers=headers)
        except httpx.TimeoutException as exc:  # pragma: no cover - network failures
            raise SerperTimeoutError() from exc
        except httpx.HTTPError as exc:  # pragma: no cover - network failures
            raise SerperError(f"HTTP error calling Serper: {exc}") from exc

        if response.status_code == 429:
            raise SerperRateLimitError()
        if response.status_code in (408, 504):
            raise SerperTimeoutError()
        if response.status_code >= 400:
            detail = response.text[:200]
            try:
                detail_json = response.json()
                detail = detail_json.get("message") or detail_json.get("detail") or detail
            except (ValueError, AttributeError):
                pass
            raise SerperError(f"Serper request failed: {response.status_code} - {detail}")

        try:
            data = response.json()
        except ValueError as exc:
            raise SerperSchemaError("Failed to decode Serper response JSON.") from exc

        if not isinstance(data, dict):
            raise SerperSchemaError("Serper response must be a JSON object.")
        organic = data.get("organic", [])
        if not isinstance(organic, list):
            raise SerperSchemaError("`organic` in Serper response must be a list.")
        if not all(isinstance(item, dict) for item in organic):
            raise SerperSchemaError("Entries in `organic` must be JSON objects.")
        return organic
