"""Brand identity extraction endpoints."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from app.api.dependencies import get_brand_service
from app.api.responses import envelope_error
from app.services.brand_recon import BrandReconService

router = APIRouter()
logger = logging.getLogger(__name__)


class BrandReconRequest(BaseModel):
    input: Any = None


@router.post("/brand-recon")
def extract_brand(
    payload: BrandReconRequest,
    service: BrandReconService = Depends(get_brand_service),
):
    try:
        data = service.extract(payload.input)
    except Exception as exc:
        return envelope_error(exc, event="brand.api_error")
    return {"success": True, "data": data}


@router.get("/brand-recon")
def brand_history(
    domain: str | None = Query(None),
    limit: int = Query(20, ge=1, le=200),
    offset: int = Query(0, ge=0),
    service: BrandReconService = Depends(get_brand_service),
):
    try:
        extractions = service.history(domain=domain, limit=limit, offset=offset)
    except Exception as exc:
        return envelope_error(exc, event="brand.history_error")
    return {"success": True, "data": [extraction.to_payload() for extraction in extractions]}
