from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from app.clients.firecrawl import FirecrawlError
from app.services.errors import ExtractionError, NotFoundError, ProviderConfigurationError, ValidationError
from app.services.monitors import MonitorService, content_hash, excerpt
from tests.helpers.fake_providers import StubSummarizer

NOW = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)


class Clock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def clock() -> Clock:
    return Clock(NOW)


@pytest.fixture
def service(gateway, repositories, summarizer, clock) -> MonitorService:
    return MonitorService(
        gateway=gateway,
        monitors=repositories.monitors,
        summarizer=summarizer,
        clock=clock,
    )


@pytest.mark.parametrize(
    ("content", "expected"),
    [
        ("", "0"),
        ("a", "61"),
        ("ab", "c21"),
        ("\uffff" * 5, "-704d8fc1"),
        ("\U0001F600", "1b0d63"),
    ],
)
def test_content_hash(content, expected):
    assert content_hash(content) == expected


@pytest.mark.parametrize(
    ("content", "expected_length"),
    [
        ("x" * 600, 500),
        ("\U0001F600" * 300, 250),
        ("a" + "\U0001F600" * 300, 250),
    ],
)
def test_excerpt_counts_utf16_units(content, expected_length):
    cut = excerpt(content)

    assert len(cut) == expected_length
    assert content.startswith(cut)
    assert len(cut.encode("utf-16-le")) <= 1000


def test_create_validates_input(service):
    with pytest.raises(ValidationError) as exc:
        service.create(name="Pricing", url="")
    assert str(exc.value) == "Name and URL required"

    with pytest.raises(ValidationError):
        service.create(name="Pricing", url="https://acme.io", check_interval_seconds=-5)


def test_create_uses_default_interval(service):
    monitor = service.create(name="Pricing", url="https://acme.io/pricing")

    assert monitor.check_interval_seconds == 86400
    assert monitor.last_content_hash is None
    assert service.list()[0]["change_count"] == 0


def test_first_check_stores_baseline(service, firecrawl, summarizer):
    monitor = service.create(name="Pricing", url="https://acme.io/pricing")

    check = service.check(monitor.id)

    assert check.to_payload() == {
        "success": True,
        "changed": False,
        "new_hash": content_hash(firecrawl.markdown),
    }
    stored, changes = service.get(monitor.id)
    assert stored.last_content_hash == check.new_hash
    assert stored.last_excerpt == firecrawl.markdown
    assert changes == []
    assert summarizer.calls == []
    assert firecrawl.calls[0]["formats"] == ["markdown"]


def test_unchanged_content_records_no_change(service):
    monitor = service.create(name="Pricing", url="https://acme.io/pricing")
    service.check(monitor.id)

    assert service.check(monitor.id).changed is False
    assert service.get(monitor.id)[1] == []


def test_changed_content_records_summary(service, firecrawl, summarizer):
    monitor = service.create(name="Pricing", url="https://acme.io/pricing")
    original = firecrawl.markdown
    service.check(monitor.id)

    firecrawl.markdown = "# Pricing\n\nStarter plan $12/month. " + "x" * 600
    check = service.check(monitor.id)

    assert check.changed is True
    stored, changes = service.get(monitor.id)
    assert len(changes) == 1
    change = changes[0]
    assert change.old_hash == content_hash(original)
    assert change.new_hash == check.new_hash == stored.last_content_hash
    assert change.old_excerpt == original
    assert len(change.new_excerpt) == 500
    assert change.ai_summary == "Pricing changed."
    assert summarizer.calls == [{"old_excerpt": original, "new_excerpt": change.new_excerpt}]
    assert service.list()[0]["change_count"] == 1


def test_summary_failure_still_records_change(gateway, repositories, firecrawl, clock):
    service = MonitorService(
        gateway=gateway,
        monitors=repositories.monitors,
        summarizer=StubSummarizer(error=RuntimeError("openai down")),
        clock=clock,
    )
    monitor = service.create(name="Pricing", url="https://acme.io/pricing")
    service.check(monitor.id)
    firecrawl.markdown = "changed"

    assert service.check(monitor.id).changed is True
    assert service.get(monitor.id)[1][0].ai_summary is None


def test_missing_summarizer_leaves_summary_empty(gateway, repositories, firecrawl):
    service = MonitorService(gateway=gateway, monitors=repositories.monitors)
    monitor = service.create(name="Pricing", url="https://acme.io/pricing")
    service.check(monitor.id)
    firecrawl.markdown = "changed"
    service.check(monitor.id)

    assert service.get(monitor.id)[1][0].ai_summary is None


def test_scrape_failure_is_reported_as_bad_gateway(service, firecrawl):
    monitor = service.create(name="Pricing", url="https://acme.io/pricing")
    firecrawl.errors["markdown"] = FirecrawlError("timeout")

    with pytest.raises(ExtractionError) as exc:
        service.check(monitor.id)

    assert str(exc.value) == "Failed to scrape URL"
    assert exc.value.code == "502_SCRAPE_FAILED"
    assert service.get(monitor.id)[0].last_checked_at is None


def test_check_without_gateway(repositories):
    service = MonitorService(gateway=None, monitors=repositories.monitors)
    monitor = service.create(name="Pricing", url="https://acme.io/pricing")

    with pytest.raises(ProviderConfigurationError):
        service.check(monitor.id)


def test_due_and_check_due(service, clock, firecrawl):
    hourly = service.create(name="Hourly", url="https://acme.io/a", check_interval_seconds=3600)
    daily = service.create(name="Daily", url="https://acme.io/b")

    assert {monitor.id for monitor in service.due()} == {hourly.id, daily.id}
    first = service.check_due()
    assert [outcome["success"] for outcome in first] == [True, True]

    clock.now = NOW + timedelta(hours=2)
    assert [monitor.id for monitor in service.due()] == [hourly.id]

    firecrawl.errors["markdown"] = FirecrawlError("timeout")
    outcomes = service.check_due()
    assert outcomes == [{"id": str(hourly.id), "success": False, "error": "Failed to scrape URL"}]


def test_delete_and_unknown_ids(service):
    monitor = service.create(name="Pricing", url="https://acme.io/pricing")

    service.delete(monitor.id)
    service.delete(monitor.id)

    with pytest.raises(NotFoundError) as exc:
        service.get(monitor.id)
    assert str(exc.value) == "Monitor not found"
    with pytest.raises(NotFoundError):
        service.check("garbage")
