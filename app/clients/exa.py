"""Client for interacting with the Exa semantic search API."""

from __future__ import annotations

from typing import Any

import httpx


class ExaError(RuntimeError):
    """Base error for Exa client failures."""

    def __init__(self, message: str, code: str = "EXA_ERROR") -> None:
        super().__init__(message)
        self.code = code


class ExaRateLimitError(ExaError):
    """Raised when Exa responds with HTTP 429."""

    def __init__(self, message: str = "Rate limited by Exa") -> None:
        super().__init__(message, code="EXA_429")


class ExaTimeoutError(ExaError):
    """Raised when Exa request times out."""

    def __init__(self, message: str = "Exa request timed out") -> None:
        super().__init__(message, code="EXA_TIMEOUT")


class ExaSchemaError(ExaError):
    """Raised when Exa response schema is not as expected."""

    def __init__(self, message: str = "Unexpected Exa response schema") -> None:
        super().__init__(message, code="EXA_SCHEMA_ERR")


class ExaClient:
    """Minimal Exa API client."""

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = "https://api.exa.ai",
        timeout: float = 10.0,
        http_client: httpx.Client | None = None,
    ) -> None:
        if not api_key:
            raise ValueError("EXA_API_KEY is required to create an ExaClient.")
        self._api_key = api_key
        self._owns_http_client = http_client is None
        self._http = http_client or httpx.Client(base_url=base_url.rstrip("/"), timeout=timeout)

    def close(self) -> None:
        if self._owns_http_client:
            self._http.close()

    def search(
        self,
        *,
        query: str,
        num_results: int = 20,
        autoprompt: bool = True,
    ) -> list[dict[str, Any]]:
        """Run a neural search and return the raw result entries."""
        if num_results <= 0:
            raise ValueError("num_results must be a positive integer.")
        response = self._post(
            "/search",
            {"query": query, "numResults": num_results, "useAutoprompt": autoprompt},
        )
        return _result_entries(response)

    def _post(self, path: str, payload: dict[str, Any]) -> httpx.Response:
        try:
            response = self._http.post(path, json=payload, headers={"x-api-key": self._api_key})
        except httpx.TimeoutException as exc:  # pragma: no cover - network failures
            raise ExaTimeoutError() from exc
        except httpx.HTTPError as exc:  # pragma: no cover - network failures
            raise ExaError(f"HTTP error calling Exa: {exc}") from exc
        _raise_for_status(response)
        return response


def _raise_for_status(response: httpx.Response) -> None:
    status = response.status_code
    if status == 429:
        raise ExaRateLimitError()
    if status in (408, 504):
        raise ExaTimeoutError()
    if status < 400:
        return
    try:
        body = response.json()
        detail = body.get("message") or body.get("detail") or body.get("error")
    except (ValueError, AttributeError):
        detail = response.text[:200]
    message = f"Exa request failed: {status}" + (f" - {detail}" if detail else "")
    raise ExaError(message, code=response.headers.get("x-exa-error-code", "EXA_ERROR"))


def _result_entries(response: httpx.Response) -> list[dict[str, Any]]:
    try:
        data = response.json()
    except ValueError as exc:
        raise ExaSchemaError("Failed to decode Exa response JSON.") from exc
    results = data.get("results") if isinstance(data, dict) else None
    if not isinstance(results, list):
        raise ExaSchemaError("`results` missing from Exa response.")
    if not all(isinstance(entry, dict) for entry in results):
        raise ExaSchemaError("Entries in `results` must be JSON objects.")
    return results
