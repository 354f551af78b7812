"""Saved search scout endpoints."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from app.api.dependencies import get_scout_service
from app.api.responses import plain_error
from app.services.scouts import ScoutService

router = APIRouter()
logger = logging.getLogger(__name__)


class ScoutCreateRequest(BaseModel):
    name: Any = None
    search_query: Any = None
    schedule: str | None = None
    notification_email: str | None = None


@router.get("/scouts")
def list_scouts(service: ScoutService = Depends(get_scout_service)):
    try:
        return {"scouts": service.list()}
    except Exception as exc:
        return plain_error(exc, event="scout.api_error", fallback="Failed to fetch scouts")


@router.post("/scouts")
def create_scout(
    payload: ScoutCreateRequest,
    service: ScoutService = Depends(get_scout_service),
):
    try:
        scout = service.create(
            name=payload.name,
            search_query=payload.search_query,
            schedule=payload.schedule,
            notification_email=payload.notification_email,
        )
    except Exception as exc:
        return plain_error(exc, event="scout.api_error", fallback="Failed to create scout")
    return {"scout": scout.to_payload()}


@router.post("/scouts/run-due")
async def run_due_scouts(service: ScoutService = Depends(get_scout_service)):
    """Run every active scout whose next run time has passed."""
    try:
        outcomes = await service.run_due()
    except Exception as exc:
        return plain_error(exc, event="scout.api_error", fallback="Failed to run due scouts")
    return {"success": True, "runs": outcomes}


@router.get("/scouts/{scout_id}")
def get_scout(scout_id: str, service: ScoutService = Depends(get_scout_service)):
    try:
        scout, results = service.get(scout_id)
    except Exception as exc:
        return plain_error(exc, event="scout.api_error", fallback="Failed to fetch scout")
    return {"scout": scout.to_payload(), "results": [result.to_payload() for result in results]}


@router.delete("/scouts/{scout_id}")
def delete_scout(scout_id: str, service: ScoutService = Depends(get_scout_service)):
    try:
        service.delete(scout_id)
    except Exception as exc:
        return plain_error(exc, event="scout.api_error", fallback="Failed to delete scout")
    return {"success": True}


@router.post("/scouts/{scout_id}/run")
async def run_scout(scout_id: str, service: ScoutService = Depends(get_scout_service)):
    try:
        run = await service.run(scout_id)
    except Exception as exc:
        return plain_error(exc, event="scout.api_error", fallback="Failed to run scout")
    return run.to_payload()
