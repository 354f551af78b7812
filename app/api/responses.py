"""Error envelopes returned by the routers."""

from __future__ import annotations

import logging

from fastapi import status
from fastapi.responses import JSONResponse

from app.services.errors import PersistenceError, ServiceError, status_for

logger = logging.getLogger(__name__)


def envelope_error(exc: Exception, *, event: str) -> JSONResponse:
    """``{success: false, error}`` used by the enrichment and brand routes."""
    if isinstance(exc, ServiceError):
        logger.error(event, extra={"code": exc.code, "error": str(exc)})
        return JSONResponse(
            status_code=status_for(exc),
            content={"success": False, "error": str(exc)},
        )
    logger.exception(event)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"success": False, "error": str(exc) or "Unknown error"},
    )


def plain_error(exc: Exception, *, event: str, fallback: str) -> JSONResponse:
    """``{error}`` used by the scout and monitor routes.

    Caller mistakes keep their message; storage and unexpected failures are
    reported with ``fallback``.
    """
    if isinstance(exc, ServiceError):
        logger.error(event, extra={"code": exc.code, "error": str(exc)})
        code = status_for(exc)
        message = fallback if isinstance(exc, PersistenceError) else str(exc)
        return JSONResponse(status_code=code, content={"error": message})
    logger.exception(event)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": fallback},
    )
