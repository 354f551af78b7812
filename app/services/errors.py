"""Shared error classes for the orchestration services and repositories."""

from __future__ import annotations


class ServiceError(RuntimeError):
    """Base exception raised by the orchestration layer."""

    def __init__(self, message: str, code: str = "500_UNKNOWN") -> None:
        super().__init__(message)
        self.code = code


class ValidationError(ServiceError):
    """Raised when caller input is missing or malformed."""

    def __init__(self, message: str, code: str = "400_INVALID_INPUT") -> None:
        super().__init__(message, code=code)


class ExtractionError(ServiceError):
    """Raised when an upstream provider fails or returns an unusable payload."""

    def __init__(self, message: str, code: str = "422_EXTRACTION_FAILED") -> None:
        super().__init__(message, code=code)


class NotFoundError(ServiceError):
    """Raised when a scout, monitor, or batch id is unknown."""

    def __init__(self, message: str, code: str = "404_NOT_FOUND") -> None:
        super().__init__(message, code=code)


class PersistenceError(ServiceError):
    """Raised when the row store fails to save or load records."""

    def __init__(self, message: str, code: str = "500_PERSISTENCE") -> None:
        super().__init__(message, code=code)


class ProviderConfigurationError(ServiceError):
    """Raised when a required provider credential is missing."""

    def __init__(self, message: str, code: str = "500_PROVIDER_NOT_CONFIGURED") -> None:
        super().__init__(message, code=code)


def status_for(exc: ServiceError) -> int:
    """Map an error code onto an HTTP status."""
    prefix = exc.code.split("_", 1)[0]
    if prefix.isdigit():
        return int(prefix)
    return 500
