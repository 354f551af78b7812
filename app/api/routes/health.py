from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.engine import Engine

from app.api.dependencies import get_engine
from app.config import settings
from app.core.database import check_database_health

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("")
def health_check():
    """Basic health check endpoint."""
    return {
        "status": "healthy",
        "version": settings.app_version,
        "environment": settings.environment,
    }


@router.get("/ready")
def readiness_check(engine: Engine = Depends(get_engine)):
    """Readiness check endpoint that includes database connectivity."""
    if not check_database_health(engine):
        raise HTTPException(status_code=503, detail="Database is not available")

    return {
        "status": "ready",
        "version": settings.app_version,
        "environment": settings.environment,
        "database": "connected" if settings.database_url else "in-memory",
        "providers": {
            "firecrawl": bool(settings.firecrawl_api_key),
            "search": settings.search_providers_configured,
        },
    }
