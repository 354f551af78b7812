from __future__ import annotations

from app.config import Settings
from app.observability.metrics import MetricsReporter


class FakeStatsClient:
    def __init__(self) -> None:
        self.sent: list[tuple] = []

    def incr(self, name, value, rate=1.0):
        self.sent.append(("incr", name, value, rate))

    def timing(self, name, value, rate=1.0):
        self.sent.append(("timing", name, value, rate))

    def gauge(self, name, value):
        self.sent.append(("gauge", name, value))


def _settings(**overrides) -> Settings:
    return Settings(_env_file=None, **overrides)


def test_samples_are_namespaced_and_forwarded():
    client = FakeStatsClient()
    reporter = MetricsReporter(_settings(), client=client)

    reporter.increment("scout.runs", tags={"provider": "serper"})
    reporter.timing("provider.latency_ms", 12.5)
    reporter.gauge("batch.rows", 3)
    reporter.increment("dmg.monitor.changes")

    assert client.sent == [
        ("incr", "dmg.scout.runs", 1.0, 1.0),
        ("timing", "dmg.provider.latency_ms", 12.5, 1.0),
        ("gauge", "dmg.batch.rows", 3),
        ("incr", "dmg.monitor.changes", 1.0, 1.0),
    ]


def test_disabled_reporter_sends_nothing():
    client = FakeStatsClient()
    reporter = MetricsReporter(_settings(metrics_disable=True), client=client)

    reporter.increment("scout.runs")
    reporter.gauge("batch.rows", 3)

    assert client.sent == []


def test_zero_sample_rate_still_sends_gauges():
    client = FakeStatsClient()
    reporter = MetricsReporter(_settings(metrics_sample_rate=0.0), client=client)

    reporter.increment("scout.runs")
    reporter.gauge("batch.rows", 3)

    assert client.sent == [("gauge", "dmg.batch.rows", 3)]


def test_backend_errors_are_logged_not_raised(caplog):
    class BrokenClient(FakeStatsClient):
        def incr(self, name, value, rate=1.0):
            raise OSError("socket closed")

    reporter = MetricsReporter(_settings(), client=BrokenClient())

    reporter.increment("scout.runs")

    assert "metrics.backend_error" in caplog.text


def test_stdout_backend_has_no_statsd_client():
    reporter = MetricsReporter(_settings(metrics_backend="stdout"))

    reporter.increment("scout.runs")

    assert reporter.qualified("") == "dmg"
