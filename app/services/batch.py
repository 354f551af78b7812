"""Bulk enrichment: batch headers, per-row processing and the CLI worker pool."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

from app.models.enrichment import EnrichmentBatch, EnrichmentRecord
from app.observability.metrics import metrics
from app.services.enrichment import EnrichmentService
from app.services.errors import NotFoundError, ServiceError, ValidationError
from app.services.normalizer import normalize
from app.services.repositories import EnrichmentRepository

logger = logging.getLogger(__name__)

MAPPING_FIELDS: dict[str, str] = {
    "domain": "Domain / URL",
    "email": "Email",
    "company_name": "Company Name",
    "first_name": "First Name",
    "last_name": "Last Name",
    "title": "Job Title",
}


@dataclass
class RowResult:
    id: str
    status: str
    enriched: dict[str, Any] | None = None
    error: str | None = None
    cached: bool | None = None

    @property
    def ok(self) -> bool:
        return self.status == "completed"

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"id": self.id, "status": self.status}
        if self.enriched is not None:
            payload["enriched"] = self.enriched
        if self.error is not None:
            payload["error"] = self.error
        if self.cached:
            payload["cached"] = True
        return payload


@dataclass
class BatchTicket:
    batch_id: UUID
    total_rows: int
    row_ids: list[str] = field(default_factory=list)

    def to_payload(self) -> dict[str, Any]:
        return {
            "batchId": str(self.batch_id),
            "totalRows": self.total_rows,
            "rows": [{"id": row_id, "status": "pending"} for row_id in self.row_ids],
        }


@dataclass
class BatchSummary:
    batch: EnrichmentBatch
    records: list[EnrichmentRecord]

    @property
    def completed(self) -> int:
        return sum(1 for record in self.records if record.status == "completed")

    @property
    def failed(self) -> int:
        return sum(1 for record in self.records if record.status == "failed")

    def to_payload(self) -> dict[str, Any]:
        return {
            "batchId": str(self.batch.id),
            "totalRows": self.batch.total_rows,
            "status": self.batch.status,
            "mapping": self.batch.column_mapping,
            "completed": self.completed,
            "failed": self.failed,
            "records": [record.to_payload() for record in self.records],
        }


def _normalize_header(value: str) -> str:
    return "".join(ch for ch in value.lower() if ch not in "_- \t")


def suggest_mapping(headers: Sequence[str]) -> dict[str, str | None]:
    """Guess which CSV column feeds each mapping field."""
    mapping: dict[str, str | None] = {}
    for key, label in MAPPING_FIELDS.items():
        field_key = _normalize_header(key)
        field_label = _normalize_header(label)
        match = None
        for header in headers:
            normalized = _normalize_header(header)
            if not normalized:
                continue
            if (
                normalized in (field_key, field_label)
                or field_key in normalized
                or normalized in field_key
            ):
                match = header
                break
        mapping[key] = match
    return mapping


def map_row(row: Mapping[str, Any], mapping: Mapping[str, str | None]) -> dict[str, str | None]:
    """Project a raw CSV row onto the mapping fields."""
    mapped: dict[str, str | None] = {}
    for key in MAPPING_FIELDS:
        column = mapping.get(key)
        value = row.get(column) if column else None
        mapped[key] = str(value) if value not in (None, "") else None
    return mapped


class BatchCoordinator:
    """Creates batches and enriches their rows one at a time."""

    def __init__(
        self,
        *,
        enrichment: EnrichmentService,
        records: EnrichmentRepository,
        max_rows: int = 500,
    ) -> None:
        self._enrichment = enrichment
        self._records = records
        self._max_rows = max_rows

    def create_batch(
        self,
        rows: Any,
        mapping: Mapping[str, str | None] | None = None,
    ) -> BatchTicket:
        if not isinstance(rows, list) or not rows:
            raise ValidationError("No rows provided")
        if len(rows) > self._max_rows:
            raise ValidationError(f"Maximum {self._max_rows} rows per batch")

        batch = self._records.create_batch(
            EnrichmentBatch(
                total_rows=len(rows),
                status="processing",
                column_mapping=dict(mapping or {}),
            )
        )
        metrics.increment("batch.created")
        metrics.gauge("batch.rows", len(rows))
        logger.info("batch.created", extra={"batch_id": str(batch.id), "rows": len(rows)})
        return BatchTicket(
            batch_id=batch.id,
            total_rows=len(rows),
            row_ids=[f"{batch.id}-{index}" for index in range(len(rows))],
        )

    def process_row(
        self,
        batch_id: Any,
        row_id: str,
        *,
        domain: str | None = None,
        email: str | None = None,
        company_name: str | None = None,
    ) -> RowResult:
        """Enrich one row; every failure comes back as a failed RowResult."""
        value = (domain or email or "").strip()
        if not value:
            return self._failed(row_id, "No domain or email provided")
        if not domain and email and "@" in value:
            value = value.split("@", 1)[1] or value

        try:
            target = normalize(value)
        except ValidationError:
            return self._failed(row_id, "Invalid domain or email")
        if not target.domain:
            return self._failed(row_id, "Invalid domain or email")

        try:
            outcome = self._enrichment.enrich_target(
                target,
                input_type="domain",
                input_value=value,
                batch_id=_coerce_batch_id(batch_id),
            )
        except ServiceError as exc:
            return self._failed(row_id, str(exc))
        except Exception as exc:
            logger.exception(
                "batch.row.unexpected",
                extra={"row_id": row_id, "company_name": company_name},
            )
            return self._failed(row_id, str(exc) or "Unknown error")

        metrics.increment("batch.rows.completed", tags={"cached": outcome.cached})
        return RowResult(
            id=row_id,
            status="completed",
            enriched=outcome.record.enriched_fields(),
            cached=outcome.cached,
        )

    def process_rows(
        self,
        batch_id: UUID,
        rows: Sequence[Mapping[str, str | None]],
        *,
        max_workers: int = 4,
        delay_seconds: float = 0.0,
        on_result: Callable[[int, RowResult], None] | None = None,
    ) -> list[RowResult]:
        """Process mapped rows on a bounded worker pool, preserving input order."""

        def work(index: int, row: Mapping[str, str | None]) -> RowResult:
            # per-worker pacing; the gateway's token bucket bounds the global rate
            if delay_seconds and index >= max_workers:
                time.sleep(delay_seconds)
            result = self.process_row(
                batch_id,
                f"{batch_id}-{index}",
                domain=row.get("domain"),
                email=row.get("email"),
                company_name=row.get("company_name"),
            )
            if on_result is not None:
                on_result(index, result)
            return result

        with ThreadPoolExecutor(max_workers=max(max_workers, 1)) as pool:
            futures = [pool.submit(work, index, row) for index, row in enumerate(rows)]
            results = [future.result() for future in futures]
        logger.info(
            "batch.processed",
            extra={
                "batch_id": str(batch_id),
                "completed": sum(1 for r in results if r.ok),
                "failed": sum(1 for r in results if not r.ok),
            },
        )
        return results

    def get_batch(self, batch_id: Any) -> BatchSummary:
        parsed = _coerce_batch_id(batch_id)
        batch = self._records.get_batch(parsed) if parsed is not None else None
        if batch is None:
            raise NotFoundError("Batch not found")
        return BatchSummary(batch=batch, records=self._records.list_for_batch(batch.id))

    @staticmethod
    def _failed(row_id: str, error: str) -> RowResult:
        metrics.increment("batch.rows.failed")
        logger.info("batch.row.failed", extra={"row_id": row_id, "error": error})
        return RowResult(id=row_id, status="failed", error=error)


def _coerce_batch_id(value: Any) -> UUID | None:
    if value is None or isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError:
        logger.warning("batch.id.invalid", extra={"batch_id": str(value)})
        return None
