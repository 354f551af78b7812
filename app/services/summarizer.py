"""AI summaries of monitored page changes via the OpenAI Responses API."""

from __future__ import annotations

import logging
import time
from typing import Any, Protocol

from openai import OpenAI, OpenAIError

from app.config import Settings
from app.observability.metrics import metrics

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = "You summarize website content changes for a monitoring dashboard."
USER_PROMPT_TEMPLATE = (
    "Summarize what changed on this webpage. Be concise (2-3 sentences).\n\n"
    "Old excerpt: {old_excerpt}\n\n"
    "New excerpt: {new_excerpt}"
)


class SummaryError(RuntimeError):
    """Raised when the summary model fails or returns no text."""

    def __init__(self, message: str, code: str = "502_SUMMARY_UPSTREAM") -> None:
        super().__init__(message)
        self.code = code


class ChangeSummarizer(Protocol):
    """Contract used by the monitor checker; stubs implement it in tests."""

    def summarize(self, *, old_excerpt: str | None, new_excerpt: str) -> str:
        ...


class OpenAIChangeSummarizer:
    """Thin wrapper around the official OpenAI Responses API."""

    def __init__(
        self,
        api_key: str,
        *,
        model: str = "gpt-4o-mini",
        temperature: float = 0.2,
        timeout: float = 30.0,
        client: Any | None = None,
    ) -> None:
        if not api_key and client is None:
            raise ValueError("OPENAI_API_KEY is required to summarize changes.")
        self._client = client or OpenAI(api_key=api_key, timeout=timeout)
        self._model = model
        self._temperature = temperature

    @classmethod
    def from_settings(cls, config: Settings) -> OpenAIChangeSummarizer | None:
        if not config.openai_api_key:
            logger.warning("summarizer.unconfigured")
            return None
        return cls(
            config.openai_api_key,
            model=config.summary_model,
            temperature=config.summary_temperature,
            timeout=config.provider_timeout_seconds,
        )

    def summarize(self, *, old_excerpt: str | None, new_excerpt: str) -> str:
        prompt = USER_PROMPT_TEMPLATE.format(
            old_excerpt=old_excerpt or "N/A",
            new_excerpt=new_excerpt,
        )
        start = time.perf_counter()
        try:
            response = self._client.responses.create(
                model=self._model,
                temperature=self._temperature,
                input=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
            )
        except OpenAIError as exc:
            metrics.increment("summarizer.errors", tags={"model": self._model})
            raise SummaryError(f"OpenAI request failed: {exc}") from exc
        finally:
            metrics.timing(
                "summarizer.latency_ms",
                (time.perf_counter() - start) * 1000,
                tags={"model": self._model},
            )
        return _extract_response_text(response)

    def close(self) -> None:
        close = getattr(self._client, "close", None)
        if callable(close):
            close()


def _extract_response_text(response: Any) -> str:
    """Normalize OpenAI responses across SDK versions."""
    output_text = getattr(response, "output_text", None)
    if isinstance(output_text, str) and output_text.strip():
        return output_text.strip()

    chunks: list[str] = []
    for item in getattr(response, "output", None) or []:
        for content in getattr(item, "content", None) or []:
            if getattr(content, "type", None) == "output_text":
                chunks.append(getattr(content, "text", ""))
    if chunks:
        return "".join(chunks).strip()

    raise SummaryError("OpenAI response did not include text output.")
