"""Best-effort persistence helpers.

Writes that follow a successful provider call must never discard the provider
data. They go through ``attempt_write``, which returns a ``WriteResult`` the
caller inspects or deliberately ignores.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from app.observability.metrics import metrics
from app.services.errors import PersistenceError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class WriteResult(Generic[T]):
    """Outcome of a best-effort write: a value or the persistence error."""

    value: T | None = None
    error: PersistenceError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def attempt_write(
    operation: str,
    func: Callable[[], T],
    **context: Any,
) -> WriteResult[T]:
    """Run a repository write, logging and capturing PersistenceError."""
    try:
        return WriteResult(value=func())
    except PersistenceError as exc:
        metrics.increment("persistence.write_dropped", tags={"operation": operation})
        logger.error(
            "persistence.write_dropped",
            extra={"operation": operation, "code": exc.code, "error": str(exc), **context},
        )
        return WriteResult(error=exc)
