"""SQLModel-backed repositories for the row store."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from typing import Any, TypeVar
from uuid import UUID

from sqlalchemy import delete, func
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, SQLModel, select

from app.models.brand import BrandExtraction
from app.models.enrichment import EnrichmentBatch, EnrichmentRecord, UsageEvent
from app.models.monitor import Monitor, MonitorChange
from app.models.scout import Scout, ScoutResult
from app.observability.metrics import metrics
from app.services.errors import PersistenceError

logger = logging.getLogger(__name__)

_M = TypeVar("_M", bound=SQLModel)


class _SqlRepository:
    backend_tag = "database"

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    @contextmanager
    def _session(self) -> Iterator[Session]:
        with Session(self._engine) as session:
            yield session

    @contextmanager
    def _guard(self, operation: str, message: str, **context: Any) -> Iterator[None]:
        try:
            yield
        except SQLAlchemyError as exc:
            metrics.increment(
                "persistence.errors", tags={"operation": operation, "repository": self.backend_tag}
            )
            logger.exception("persistence.error", extra={"operation": operation, **context})
            raise PersistenceError(message) from exc

    def _insert(self, row: _M, operation: str, message: str) -> _M:
        with self._guard(operation, message, table=row.__tablename__):
            with self._session() as session:
                session.add(row)
                session.commit()
                session.refresh(row)
                return row


class EnrichmentRepository(_SqlRepository):
    """Enrichment jobs and batch headers."""

    backend_tag = "enrichment"

    def save(self, record: EnrichmentRecord) -> EnrichmentRecord:
        persisted = self._insert(record, "enrichment.save", "Failed to persist enrichment record.")
        logger.info(
            "enrichment.persistence.persisted",
            extra={"domain": persisted.domain, "status": persisted.status, "record_id": str(persisted.id)},
        )
        return persisted

    def latest_completed(self, domain: str, *, since: datetime) -> EnrichmentRecord | None:
        with self._guard("enrichment.cache_lookup", "Failed to load cached enrichment.", domain=domain):
            with self._session() as session:
                statement = (
                    select(EnrichmentRecord)
                    .where(
                        EnrichmentRecord.domain == domain,
                        EnrichmentRecord.status == "completed",
                        EnrichmentRecord.created_at > since,
                    )
                    .order_by(EnrichmentRecord.created_at.desc())
                    .limit(1)
                )
                return session.exec(statement).first()

    def list(
        self, *, domain: str | None = None, limit: int = 20, offset: int = 0
    ) -> list[EnrichmentRecord]:
        with self._guard("enrichment.list", "Failed to list enrichment history.", domain=domain):
            with self._session() as session:
                statement = select(EnrichmentRecord)
                if domain:
                    statement = statement.where(EnrichmentRecord.domain == domain)
                statement = (
                    statement.order_by(EnrichmentRecord.created_at.desc()).limit(limit).offset(offset)
                )
                return list(session.exec(statement).all())

    def list_for_batch(self, batch_id: UUID) -> list[EnrichmentRecord]:
        with self._guard("enrichment.list_batch", "Failed to list batch rows.", batch_id=str(batch_id)):
            with self._session() as session:
                statement = (
                    select(EnrichmentRecord)
                    .where(EnrichmentRecord.batch_id == batch_id)
                    .order_by(EnrichmentRecord.created_at.asc())
                )
                return list(session.exec(statement).all())

    def create_batch(self, batch: EnrichmentBatch) -> EnrichmentBatch:
        return self._insert(batch, "batch.create", "Failed to create enrichment batch.")

    def get_batch(self, batch_id: UUID) -> EnrichmentBatch | None:
        with self._guard("batch.get", "Failed to load enrichment batch.", batch_id=str(batch_id)):
            with self._session() as session:
                return session.get(EnrichmentBatch, batch_id)


class UsageRepository(_SqlRepository):
    backend_tag = "usage"

    def record(self, event: UsageEvent) -> UsageEvent:
        return self._insert(event, "usage.record", "Failed to record usage event.")


class BrandRepository(_SqlRepository):
    backend_tag = "brand"

    def save(self, extraction: BrandExtraction) -> BrandExtraction:
        return self._insert(extraction, "brand.save", "Failed to persist brand extraction.")

    def list(
        self, *, domain: str | None = None, limit: int = 20, offset: int = 0
    ) -> list[BrandExtraction]:
        with self._guard("brand.list", "Failed to list brand extractions.", domain=domain):
            with self._session() as session:
                statement = select(BrandExtraction)
                if domain:
                    statement = statement.where(BrandExtraction.domain == domain)
                statement = (
                    statement.order_by(BrandExtraction.created_at.desc()).limit(limit).offset(offset)
                )
                return list(session.exec(statement).all())


class ScoutRepository(_SqlRepository):
    backend_tag = "scouts"

    def create(self, scout: Scout) -> Scout:
        return self._insert(scout, "scout.create", "Failed to create scout.")

    def get(self, scout_id: UUID) -> Scout | None:
        with self._guard("scout.get", "Failed to load scout.", scout_id=str(scout_id)):
            with self._session() as session:
                return session.get(Scout, scout_id)

    def list_with_counts(self) -> list[tuple[Scout, int]]:
        with self._guard("scout.list", "Failed to fetch scouts."):
            with self._session() as session:
                counts = (
                    select(ScoutResult.scout_id, func.count().label("result_count"))
                    .group_by(ScoutResult.scout_id)
                    .subquery()
                )
                statement = (
                    select(Scout, func.coalesce(counts.c.result_count, 0))
                    .outerjoin(counts, counts.c.scout_id == Scout.id)
                    .order_by(Scout.created_at.desc())
                )
                return [(scout, int(count)) for scout, count in session.exec(statement).all()]

    def delete(self, scout_id: UUID) -> bool:
        with self._guard("scout.delete", "Failed to delete scout.", scout_id=str(scout_id)):
            with self._session() as session:
                session.exec(delete(ScoutResult).where(ScoutResult.scout_id == scout_id))
                result = session.exec(delete(Scout).where(Scout.id == scout_id))
                session.commit()
                return bool(result.rowcount)

    def results(self, scout_id: UUID, *, limit: int = 100) -> list[ScoutResult]:
        with self._guard("scout.results", "Failed to fetch scout results.", scout_id=str(scout_id)):
            with self._session() as session:
                statement = (
                    select(ScoutResult)
                    .where(ScoutResult.scout_id == scout_id)
                    .order_by(ScoutResult.first_seen_at.desc())
                    .limit(limit)
                )
                return list(session.exec(statement).all())

    def add_result(self, result: ScoutResult) -> ScoutResult:
        return self._insert(result, "scout.add_result", "Failed to save scout result.")

    def mark_run(
        self,
        scout_id: UUID,
        *,
        seen_urls: list[str],
        ran_at: datetime,
        next_run_at: datetime | None,
    ) -> Scout:
        with self._guard("scout.mark_run", "Failed to update scout.", scout_id=str(scout_id)):
            with self._session() as session:
                scout = session.get(Scout, scout_id)
                if scout is None:
                    raise PersistenceError("Scout disappeared during run.")
                scout.seen_urls = list(seen_urls)
                scout.last_run_at = ran_at
                scout.next_run_at = next_run_at
                scout.updated_at = ran_at
                session.add(scout)
                session.commit()
                session.refresh(scout)
                return scout

    def due(self, now: datetime) -> list[Scout]:
        with self._guard("scout.due", "Failed to load due scouts."):
            with self._session() as session:
                statement = (
                    select(Scout)
                    .where(
                        Scout.is_active.is_(True),
                        Scout.next_run_at.is_not(None),
                        Scout.next_run_at <= now,
                    )
                    .order_by(Scout.next_run_at.asc())
                )
                return list(session.exec(statement).all())


class MonitorRepository(_SqlRepository):
    backend_tag = "monitors"

    def create(self, monitor: Monitor) -> Monitor:
        return self._insert(monitor, "monitor.create", "Failed to create monitor.")

    def get(self, monitor_id: UUID) -> Monitor | None:
        with self._guard("monitor.get", "Failed to load monitor.", monitor_id=str(monitor_id)):
            with self._session() as session:
                return session.get(Monitor, monitor_id)

    def list_active(self) -> list[Monitor]:
        with self._guard("monitor.list_active", "Failed to fetch monitors."):
            with self._session() as session:
                statement = select(Monitor).where(Monitor.is_active.is_(True))
                return list(session.exec(statement).all())

    def list_with_counts(self) -> list[tuple[Monitor, int]]:
        with self._guard("monitor.list", "Failed to fetch monitors."):
            with self._session() as session:
                counts = (
                    select(MonitorChange.monitor_id, func.count().label("change_count"))
                    .group_by(MonitorChange.monitor_id)
                    .subquery()
                )
                statement = (
                    select(Monitor, func.coalesce(counts.c.change_count, 0))
                    .outerjoin(counts, counts.c.monitor_id == Monitor.id)
                    .order_by(Monitor.created_at.desc())
                )
                return [(monitor, int(count)) for monitor, count in session.exec(statement).all()]

    def delete(self, monitor_id: UUID) -> bool:
        with self._guard("monitor.delete", "Failed to delete monitor.", monitor_id=str(monitor_id)):
            with self._session() as session:
                session.exec(delete(MonitorChange).where(MonitorChange.monitor_id == monitor_id))
                result = session.exec(delete(Monitor).where(Monitor.id == monitor_id))
                session.commit()
                return bool(result.rowcount)

    def changes(self, monitor_id: UUID, *, limit: int = 50) -> list[MonitorChange]:
        with self._guard("monitor.changes", "Failed to fetch monitor changes.", monitor_id=str(monitor_id)):
            with self._session() as session:
                statement = (
                    select(MonitorChange)
                    .where(MonitorChange.monitor_id == monitor_id)
                    .order_by(MonitorChange.created_at.desc())
                    .limit(limit)
                )
                return list(session.exec(statement).all())

    def add_change(self, change: MonitorChange) -> MonitorChange:
        return self._insert(change, "monitor.add_change", "Failed to record monitor change.")

    def record_check(
        self,
        monitor_id: UUID,
        *,
        content_hash: str,
        excerpt: str,
        checked_at: datetime,
    ) -> Monitor:
        with self._guard("monitor.record_check", "Failed to update monitor.", monitor_id=str(monitor_id)):
            with self._session() as session:
                monitor = session.get(Monitor, monitor_id)
                if monitor is None:
                    raise PersistenceError("Monitor disappeared during check.")
                monitor.last_checked_at = checked_at
                monitor.last_content_hash = content_hash
                monitor.last_excerpt = excerpt
                monitor.updated_at = checked_at
                session.add(monitor)
                session.commit()
                session.refresh(monitor)
                return monitor


class Repositories:
    """Bundle of repositories sharing one engine."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        self.enrichment = EnrichmentRepository(engine)
        self.usage = UsageRepository(engine)
        self.brand = BrandRepository(engine)
        self.scouts = ScoutRepository(engine)
        self.monitors = MonitorRepository(engine)

    def dispose(self) -> None:
        """Close the underlying SQLAlchemy engine."""
        self.engine.dispose()
