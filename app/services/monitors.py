"""Website change monitors: CRUD, content hashing and change detection."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from app.models.columns import utcnow
from app.models.monitor import DEFAULT_CHECK_INTERVAL_SECONDS, Monitor, MonitorChange
from app.observability.metrics import metrics
from app.services.errors import (
    ExtractionError,
    NotFoundError,
    ProviderConfigurationError,
    ServiceError,
    ValidationError,
)
from app.services.providers.gateway import ProviderGateway
from app.services.repositories import MonitorRepository
from app.services.scouts import parse_id
from app.services.summarizer import ChangeSummarizer

logger = logging.getLogger(__name__)

EXCERPT_CHARS = 500
MONITOR_CHANGES_LIMIT = 50


def content_hash(content: str) -> str:
    """32-bit signed rolling hash (``h = h*31 + unit``) over UTF-16 code units.

    Rendered as signed hexadecimal, e.g. ``-1a2b``. Collisions are possible and
    would hide a change.
    """
    value = 0
    data = content.encode("utf-16-le", "surrogatepass")
    for index in range(0, len(data), 2):
        unit = data[index] | (data[index + 1] << 8)
        value = (value * 31 + unit) & 0xFFFFFFFF
    if value & 0x80000000:
        value -= 1 << 32
    return f"-{-value:x}" if value < 0 else f"{value:x}"


def excerpt(content: str, limit: int = EXCERPT_CHARS) -> str:
    """First ``limit`` UTF-16 code units of ``content``.

    A surrogate pair cut by the boundary is dropped rather than split.
    """
    data = content.encode("utf-16-le", "surrogatepass")[: limit * 2]
    return data.decode("utf-16-le", "ignore")


@dataclass(frozen=True)
class MonitorCheck:
    changed: bool
    new_hash: str
    change: MonitorChange | None = None

    def to_payload(self) -> dict[str, Any]:
        return {"success": True, "changed": self.changed, "new_hash": self.new_hash}


class MonitorService:
    def __init__(
        self,
        *,
        gateway: ProviderGateway | None,
        monitors: MonitorRepository,
        summarizer: ChangeSummarizer | None = None,
        default_interval_seconds: int = DEFAULT_CHECK_INTERVAL_SECONDS,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._gateway = gateway
        self._monitors = monitors
        self._summarizer = summarizer
        self._default_interval = default_interval_seconds
        self._clock = clock

    def create(
        self,
        *,
        name: Any,
        url: Any,
        check_interval_seconds: Any = None,
        notification_email: str | None = None,
    ) -> Monitor:
        if not name or not url or not isinstance(name, str) or not isinstance(url, str):
            raise ValidationError("Name and URL required")
        interval = check_interval_seconds or self._default_interval
        if isinstance(interval, bool) or not isinstance(interval, int) or interval <= 0:
            raise ValidationError("check_interval_seconds must be a positive integer")
        monitor = self._monitors.create(
            Monitor(
                name=name,
                url=url,
                check_interval_seconds=interval,
                notification_email=notification_email or None,
            )
        )
        logger.info("monitor.created", extra={"monitor_id": str(monitor.id), "interval": interval})
        return monitor

    def list(self) -> list[dict[str, Any]]:
        return [
            monitor.to_payload(change_count=count)
            for monitor, count in self._monitors.list_with_counts()
        ]

    def get(self, monitor_id: Any) -> tuple[Monitor, list[MonitorChange]]:
        monitor = self._load(monitor_id)
        return monitor, self._monitors.changes(monitor.id, limit=MONITOR_CHANGES_LIMIT)

    def delete(self, monitor_id: Any) -> None:
        try:
            parsed = parse_id(monitor_id, "Monitor")
        except NotFoundError:
            return
        if self._monitors.delete(parsed):
            logger.info("monitor.deleted", extra={"monitor_id": str(parsed)})

    def check(self, monitor_id: Any) -> MonitorCheck:
        """Scrape the page, compare hashes and record a change when one is found.

        The first check of a monitor only stores the baseline.
        """
        monitor = self._load(monitor_id)
        if self._gateway is None:
            raise ProviderConfigurationError("FIRECRAWL_API_KEY is not configured")

        result = self._gateway.scrape(monitor.url, ["markdown"])
        if not result.success or result.data is None:
            metrics.increment("monitor.scrape_failures")
            logger.warning(
                "monitor.scrape.failed",
                extra={"monitor_id": str(monitor.id), "error": result.error},
            )
            raise ExtractionError("Failed to scrape URL", code="502_SCRAPE_FAILED")

        content = result.data.markdown or ""
        new_hash = content_hash(content)
        new_excerpt = excerpt(content)
        previous_hash = monitor.last_content_hash
        changed = bool(previous_hash) and previous_hash != new_hash

        change: MonitorChange | None = None
        if changed:
            change = self._monitors.add_change(
                MonitorChange(
                    monitor_id=monitor.id,
                    old_hash=previous_hash,
                    new_hash=new_hash,
                    old_excerpt=monitor.last_excerpt or None,
                    new_excerpt=new_excerpt,
                    ai_summary=self._summarize(monitor, new_excerpt),
                )
            )
            metrics.increment("monitor.changes")

        self._monitors.record_check(
            monitor.id,
            content_hash=new_hash,
            excerpt=new_excerpt,
            checked_at=self._clock(),
        )
        logger.info(
            "monitor.checked",
            extra={"monitor_id": str(monitor.id), "changed": changed, "new_hash": new_hash},
        )
        return MonitorCheck(changed=changed, new_hash=new_hash, change=change)

    def due(self, now: datetime | None = None) -> list[Monitor]:
        moment = now or self._clock()
        return [monitor for monitor in self._monitors.list_active() if monitor.is_due(moment)]

    def check_due(self, now: datetime | None = None) -> list[dict[str, Any]]:
        """Check every due monitor once; failures are reported per monitor."""
        outcomes: list[dict[str, Any]] = []
        for monitor in self.due(now):
            try:
                check = self.check(monitor.id)
            except ServiceError as exc:
                logger.error(
                    "monitor.check.failed",
                    extra={"monitor_id": str(monitor.id), "code": exc.code, "error": str(exc)},
                )
                outcomes.append({"id": str(monitor.id), "success": False, "error": str(exc)})
                continue
            outcomes.append({"id": str(monitor.id), **check.to_payload()})
        return outcomes

    def _summarize(self, monitor: Monitor, new_excerpt: str) -> str | None:
        if self._summarizer is None:
            return None
        try:
            return self._summarizer.summarize(old_excerpt=monitor.last_excerpt, new_excerpt=new_excerpt)
        except Exception:
            metrics.increment("monitor.summary_failures")
            logger.exception("monitor.summary.failed", extra={"monitor_id": str(monitor.id)})
            return None

    def _load(self, monitor_id: Any) -> Monitor:
        monitor = self._monitors.get(parse_id(monitor_id, "Monitor"))
        if monitor is None:
            raise NotFoundError("Monitor not found")
        return monitor
