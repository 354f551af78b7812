"""Counters, gauges and timers for provider calls, batches, scouts and monitors.

Every sample is logged at debug level on ``app.metrics``; with
``METRICS_BACKEND=statsd`` it is also forwarded to a StatsD daemon. StatsD has
no tag support, so tags only travel with the log record.
"""

from __future__ import annotations

import logging
import secrets
from typing import Any

from statsd import StatsClient

from app.config import Settings, settings

logger = logging.getLogger("app.metrics")


class MetricsReporter:
    """Emits namespaced samples (``dmg.<metric>``) to logs and optionally StatsD."""

    def __init__(self, config: Settings | None = None, *, client: Any | None = None) -> None:
        config = config or settings
        self.enabled = not config.metrics_disable
        self.namespace = (config.metrics_namespace or "dmg").strip(".")
        self.sample_rate = max(0.0, min(config.metrics_sample_rate, 1.0))
        self._statsd = client
        if client is None and self.enabled and config.metrics_backend.lower() == "statsd":
            try:
                self._statsd = StatsClient(
                    host=config.metrics_statsd_host,
                    port=config.metrics_statsd_port,
                )
            except OSError as exc:
                logger.warning("metrics.statsd_unavailable", extra={"error": str(exc)})

    def increment(self, metric: str, value: float = 1.0, *, tags: dict[str, Any] | None = None) -> None:
        if self._record("counter", metric, value, tags):
            self._forward(lambda name, rate: self._statsd.incr(name, value, rate=rate), metric)

    def timing(self, metric: str, value_ms: float, *, tags: dict[str, Any] | None = None) -> None:
        if self._record("timing", metric, value_ms, tags):
            self._forward(lambda name, rate: self._statsd.timing(name, value_ms, rate=rate), metric)

    def gauge(self, metric: str, value: float, *, tags: dict[str, Any] | None = None) -> None:
        if self._record("gauge", metric, value, tags, sampled=False):
            self._forward(lambda name, rate: self._statsd.gauge(name, value), metric, sampled=False)

    def qualified(self, metric: str) -> str:
        metric = (metric or "").strip()
        if not metric:
            return self.namespace
        if metric.startswith(f"{self.namespace}."):
            return metric
        return f"{self.namespace}.{metric}"

    def _record(
        self,
        kind: str,
        metric: str,
        value: float | None,
        tags: dict[str, Any] | None,
        *,
        sampled: bool = True,
    ) -> bool:
        if not self.enabled or value is None:
            return False
        if sampled and self.sample_rate < 1.0:
            if secrets.randbelow(1_000_000) / 1_000_000 > self.sample_rate:
                return False
        logger.debug(
            "dmg.metric",
            extra={
                "metrics": {
                    "metric": self.qualified(metric),
                    "type": kind,
                    "value": round(float(value), 4),
                    "tags": tags or {},
                }
            },
        )
        return True

    def _forward(self, send, metric: str, *, sampled: bool = True) -> None:
        if self._statsd is None:
            return
        name = self.qualified(metric)
        try:
            send(name, self.sample_rate if sampled else 1.0)
        except Exception as exc:
            logger.warning("metrics.backend_error", extra={"metric": name, "error": type(exc).__name__})


metrics = MetricsReporter()
