"""Saved search scouts: CRUD plus parallel Serper/Exa runs."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Any
from uuid import UUID

from app.models.columns import utcnow
from app.models.scout import SCHEDULE_INTERVALS, Scout, ScoutResult, next_run_after
from app.models.provider import SearchResult
from app.observability.metrics import metrics
from app.services.errors import NotFoundError, ServiceError, ValidationError
from app.services.providers.gateway import SearchGateway
from app.services.repositories import ScoutRepository

logger = logging.getLogger(__name__)

SCOUT_RESULTS_LIMIT = 100


@dataclass(frozen=True)
class ScoutRun:
    new_results: int
    total_searched: int

    def to_payload(self) -> dict[str, Any]:
        return {"success": True, "new_results": self.new_results, "total_searched": self.total_searched}


def parse_id(value: Any, label: str) -> UUID:
    """Coerce a path id; malformed ids are reported as missing."""
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError as exc:
        raise NotFoundError(f"{label} not found") from exc


class ScoutService:
    def __init__(
        self,
        *,
        search: SearchGateway,
        scouts: ScoutRepository,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._search = search
        self._scouts = scouts
        self._clock = clock

    def create(
        self,
        *,
        name: Any,
        search_query: Any,
        schedule: str | None = None,
        notification_email: str | None = None,
    ) -> Scout:
        if not name or not search_query or not isinstance(name, str) or not isinstance(search_query, str):
            raise ValidationError("Name and search query required")
        schedule = schedule or "manual"
        if schedule not in SCHEDULE_INTERVALS:
            raise ValidationError(f"Unsupported schedule: {schedule}")
        # scheduled scouts are due on the first trigger after creation
        next_run_at = self._clock() if SCHEDULE_INTERVALS[schedule] else None
        scout = self._scouts.create(
            Scout(
                name=name,
                search_query=search_query,
                schedule=schedule,
                notification_email=notification_email or None,
                next_run_at=next_run_at,
            )
        )
        logger.info("scout.created", extra={"scout_id": str(scout.id), "schedule": schedule})
        return scout

    def list(self) -> list[dict[str, Any]]:
        return [
            scout.to_payload(result_count=count) for scout, count in self._scouts.list_with_counts()
        ]

    def get(self, scout_id: Any) -> tuple[Scout, list[ScoutResult]]:
        scout = self._load(scout_id)
        return scout, self._scouts.results(scout.id, limit=SCOUT_RESULTS_LIMIT)

    def delete(self, scout_id: Any) -> None:
        try:
            parsed = parse_id(scout_id, "Scout")
        except NotFoundError:
            return
        if self._scouts.delete(parsed):
            logger.info("scout.deleted", extra={"scout_id": str(parsed)})

    async def run(self, scout_id: Any) -> ScoutRun:
        """Search both providers, store unseen URLs and advance the schedule.

        Repository calls run on worker threads, off the event loop.
        """
        scout = await asyncio.to_thread(self._load, scout_id)
        serper_results, exa_results = await asyncio.gather(
            asyncio.to_thread(self._search.search, "serper", scout.search_query),
            asyncio.to_thread(self._search.search, "exa", scout.search_query),
        )
        all_results: list[SearchResult] = [*serper_results, *exa_results]
        fresh = await asyncio.to_thread(self._record_run, scout, all_results)

        metrics.increment("scout.runs")
        metrics.increment("scout.results.new", len(fresh))
        logger.info(
            "scout.run.completed",
            extra={
                "scout_id": str(scout.id),
                "new_results": len(fresh),
                "total_searched": len(all_results),
            },
        )
        return ScoutRun(new_results=len(fresh), total_searched=len(all_results))

    def _record_run(self, scout: Scout, results: list[SearchResult]) -> list[SearchResult]:
        seen = set(scout.seen_urls or [])
        fresh = [result for result in results if result.url not in seen]
        for result in fresh:
            self._scouts.add_result(
                ScoutResult(
                    scout_id=scout.id,
                    url=result.url,
                    title=result.title,
                    snippet=result.snippet,
                    source=result.source,
                    result_metadata=result.model_dump(mode="json"),
                )
            )

        ran_at = self._clock()
        self._scouts.mark_run(
            scout.id,
            seen_urls=[*(scout.seen_urls or []), *(result.url for result in fresh)],
            ran_at=ran_at,
            next_run_at=next_run_after(scout.schedule, ran_at),
        )
        return fresh

    def due(self, now: datetime | None = None) -> list[Scout]:
        return self._scouts.due(now or self._clock())

    async def run_due(self, now: datetime | None = None) -> list[dict[str, Any]]:
        """Run every due scout once, one after another."""
        outcomes: list[dict[str, Any]] = []
        for scout in await asyncio.to_thread(self.due, now):
            try:
                run = await self.run(scout.id)
            except ServiceError as exc:
                logger.error(
                    "scout.run.failed",
                    extra={"scout_id": str(scout.id), "code": exc.code, "error": str(exc)},
                )
                outcomes.append({"id": str(scout.id), "success": False, "error": str(exc)})
                continue
            outcomes.append({"id": str(scout.id), **run.to_payload()})
        return outcomes

    def _load(self, scout_id: Any) -> Scout:
        scout = self._scouts.get(parse_id(scout_id, "Scout"))
        if scout is None:
            raise NotFoundError("Scout not found")
        return scout
