from __future__ import annotations

from typing import Any, Dict, Optional


class ServiceError(Exception):
    """Base for failures surfaced to the caller as an error envelope."""

    error = "internal_error"
    status_code = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class NotFound(ServiceError):
    # zero physical records for the logical id, or a tombstone where a live entity is required
    error = "not_found"
    status_code = 404


class ValidationFailure(ServiceError):
    error = "validation_error"
    status_code = 422


class StoreFailure(ServiceError):
    # never classified further: no transient/permanent split, no retry
    error = "store_error"
    status_code = 500
