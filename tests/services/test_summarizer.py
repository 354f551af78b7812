from __future__ import annotations

from types import SimpleNamespace

import pytest
from openai import OpenAIError

from app.config import Settings
from app.services.summarizer import OpenAIChangeSummarizer, SummaryError


class FakeResponses:
    def __init__(self, response=None, error: Exception | None = None) -> None:
        self.response = response
        self.error = error
        self.requests: list[dict] = []

    def create(self, **kwargs):
        self.requests.append(kwargs)
        if self.error is not None:
            raise self.error
        return self.response


def _summarizer(responses: FakeResponses) -> OpenAIChangeSummarizer:
    return OpenAIChangeSummarizer("sk-test", client=SimpleNamespace(responses=responses))


def test_summarize_builds_prompt_and_reads_output_text():
    responses = FakeResponses(SimpleNamespace(output_text="  Prices went up.  "))

    summary = _summarizer(responses).summarize(old_excerpt=None, new_excerpt="Starter $12")

    assert summary == "Prices went up."
    request = responses.requests[0]
    assert request["model"] == "gpt-4o-mini"
    user_prompt = request["input"][1]["content"]
    assert user_prompt.startswith("Summarize what changed on this webpage. Be concise (2-3 sentences).")
    assert "Old excerpt: N/A" in user_prompt
    assert user_prompt.endswith("New excerpt: Starter $12")


def test_summarize_falls_back_to_output_items():
    content = [SimpleNamespace(type="output_text", text="Plan renamed.")]
    responses = FakeResponses(SimpleNamespace(output_text=None, output=[SimpleNamespace(content=content)]))

    assert _summarizer(responses).summarize(old_excerpt="a", new_excerpt="b") == "Plan renamed."


def test_empty_response_is_an_error():
    responses = FakeResponses(SimpleNamespace(output_text="", output=[]))

    with pytest.raises(SummaryError):
        _summarizer(responses).summarize(old_excerpt="a", new_excerpt="b")


def test_openai_errors_are_wrapped():
    responses = FakeResponses(error=OpenAIError("quota exceeded"))

    with pytest.raises(SummaryError) as exc:
        _summarizer(responses).summarize(old_excerpt="a", new_excerpt="b")

    assert "quota exceeded" in str(exc.value)


def test_from_settings_without_key_returns_none():
    assert OpenAIChangeSummarizer.from_settings(Settings(_env_file=None, openai_api_key=None)) is None
