"""Application error types.

``AppError`` subclasses are turned into the JSON error envelope by the
handlers registered in the application factory. ``DataAnomaly`` is the
exception to that rule: it describes a malformed source record that was
skipped and is reported next to a result, never raised out of it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


class AppError(Exception):
    status_code = 400
    error_code = "BUSINESS_ERROR"

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_payload(self) -> dict[str, Any]:
        error: dict[str, Any] = {"msg": self.message, "code": self.error_code}
        if self.details:
            error["details"] = self.details
        return {"success": False, "errors": [error]}


class NotFound(AppError):
    status_code = 404
    error_code = "NOT_FOUND"


class ConfigurationError(AppError):
    """Master data needed for a calculation is missing."""

    status_code = 409
    error_code = "ENTITLEMENT_NOT_CONFIGURED"


class ValidationFailed(AppError):
    status_code = 400
    error_code = "VALIDATION_ERROR"


@dataclass(frozen=True)
class DataAnomaly:
    record_id: str
    reason: str

    def as_dict(self) -> dict[str, str]:
        return {"record_id": self.record_id, "reason": self.reason}
