"""Company enrichment endpoints: single target, history and CSV batches."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, Field, model_validator

from app.api.dependencies import get_batch_coordinator, get_enrichment_service
from app.api.responses import envelope_error
from app.services.batch import BatchCoordinator
from app.services.enrichment import EnrichmentService

router = APIRouter()
logger = logging.getLogger(__name__)


class EnrichRequest(BaseModel):
    input: Any = None


class BatchCreateRequest(BaseModel):
    rows: Any = None
    mapping: dict[str, str | None] = Field(default_factory=dict)


class BatchRowRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    row_id: str = Field(default="unknown", alias="rowId")
    batch_id: str | None = Field(default=None, alias="batchId")
    domain: str | None = None
    email: str | None = None
    company_name: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _stringify_scalars(cls, values: object) -> object:
        # spreadsheet cells arrive as numbers too; rows must never fail validation
        if not isinstance(values, dict):
            return {}
        coerced = {
            key: value if value is None or isinstance(value, str) else str(value)
            for key, value in values.items()
        }
        if coerced.get("rowId") is None and coerced.get("row_id") is None:
            coerced.pop("rowId", None)
            coerced.pop("row_id", None)
        return coerced


@router.post("/enrich")
def enrich(
    payload: EnrichRequest,
    service: EnrichmentService = Depends(get_enrichment_service),
):
    """Enrich one URL, domain, email or company name."""
    try:
        outcome = service.enrich(payload.input)
    except Exception as exc:
        return envelope_error(exc, event="enrichment.api_error")
    return {"success": True, "data": outcome.to_payload()}


@router.get("/enrich")
def enrichment_history(
    domain: str | None = Query(None, description="Filter to one domain."),
    limit: int = Query(20, ge=1, le=200),
    offset: int = Query(0, ge=0),
    service: EnrichmentService = Depends(get_enrichment_service),
):
    try:
        records = service.history(domain=domain, limit=limit, offset=offset)
    except Exception as exc:
        return envelope_error(exc, event="enrichment.history_error")
    return {"success": True, "data": [record.to_payload() for record in records]}


@router.post("/enrich/batch")
def create_batch(
    payload: BatchCreateRequest,
    coordinator: BatchCoordinator = Depends(get_batch_coordinator),
):
    """Register a batch and hand back row ids for polling."""
    try:
        ticket = coordinator.create_batch(payload.rows, payload.mapping)
    except Exception as exc:
        return envelope_error(exc, event="batch.api_error")
    return {"success": True, "data": ticket.to_payload()}


@router.put("/enrich/batch")
def process_batch_row(
    payload: BatchRowRequest,
    coordinator: BatchCoordinator = Depends(get_batch_coordinator),
):
    """Enrich one batch row. Row failures are reported inside a 200 envelope."""
    result = coordinator.process_row(
        payload.batch_id,
        payload.row_id,
        domain=payload.domain,
        email=payload.email,
        company_name=payload.company_name,
    )
    return {"success": True, "data": result.to_payload()}


@router.get("/enrich/batch/{batch_id}")
def batch_summary(
    batch_id: str,
    coordinator: BatchCoordinator = Depends(get_batch_coordinator),
):
    try:
        summary = coordinator.get_batch(batch_id)
    except Exception as exc:
        return envelope_error(exc, event="batch.summary_error")
    return {"success": True, "data": summary.to_payload()}
