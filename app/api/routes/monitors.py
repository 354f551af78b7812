"""Website change monitor endpoints."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from app.api.dependencies import get_monitor_service
from app.api.responses import plain_error
from app.services.monitors import MonitorService

router = APIRouter()
logger = logging.getLogger(__name__)


class MonitorCreateRequest(BaseModel):
    name: Any = None
    url: Any = None
    check_interval_seconds: int | None = None
    notification_email: str | None = None


@router.get("/monitors")
def list_monitors(service: MonitorService = Depends(get_monitor_service)):
    try:
        return {"monitors": service.list()}
    except Exception as exc:
        return plain_error(exc, event="monitor.api_error", fallback="Failed to fetch monitors")


@router.post("/monitors")
def create_monitor(
    payload: MonitorCreateRequest,
    service: MonitorService = Depends(get_monitor_service),
):
    try:
        monitor = service.create(
            name=payload.name,
            url=payload.url,
            check_interval_seconds=payload.check_interval_seconds,
            notification_email=payload.notification_email,
        )
    except Exception as exc:
        return plain_error(exc, event="monitor.api_error", fallback="Failed to create monitor")
    return {"monitor": monitor.to_payload()}


@router.post("/monitors/check-due")
def check_due_monitors(service: MonitorService = Depends(get_monitor_service)):
    """Check every active monitor whose interval has elapsed."""
    try:
        outcomes = service.check_due()
    except Exception as exc:
        return plain_error(exc, event="monitor.api_error", fallback="Failed to check due monitors")
    return {"success": True, "checks": outcomes}


@router.get("/monitors/{monitor_id}")
def get_monitor(monitor_id: str, service: MonitorService = Depends(get_monitor_service)):
    try:
        monitor, changes = service.get(monitor_id)
    except Exception as exc:
        return plain_error(exc, event="monitor.api_error", fallback="Failed to fetch monitor")
    return {"monitor": monitor.to_payload(), "changes": [change.to_payload() for change in changes]}


@router.delete("/monitors/{monitor_id}")
def delete_monitor(monitor_id: str, service: MonitorService = Depends(get_monitor_service)):
    try:
        service.delete(monitor_id)
    except Exception as exc:
        return plain_error(exc, event="monitor.api_error", fallback="Failed to delete monitor")
    return {"success": True}


@router.post("/monitors/{monitor_id}/check")
def check_monitor(monitor_id: str, service: MonitorService = Depends(get_monitor_service)):
    try:
        check = service.check(monitor_id)
    except Exception as exc:
        return plain_error(exc, event="monitor.api_error", fallback="Failed to check monitor")
    return check.to_payload()
