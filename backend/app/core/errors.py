"""Error kinds raised by the attempt and star-economy workflows.

Every error carries a ``context`` dict with the figures a client needs to
render an actionable message (remaining attempts, required stars, cost...).
The HTTP layer turns them into the standard error envelope in ``app.main``.
"""

from __future__ import annotations

from typing import Any


class EngineError(Exception):
    status_code: int = 400
    error_code: str = "engine_error"
    retryable: bool = False

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context: dict[str, Any] = context

    def to_payload(self) -> dict[str, Any]:
        return {
            "ok": False,
            "error_code": self.error_code,
            "error_message": self.message,
            "context": self.context,
        }


class NotFound(EngineError):
    status_code = 404
    error_code = "not_found"


class Forbidden(EngineError):
    status_code = 403
    error_code = "forbidden"


class InvalidState(EngineError):
    status_code = 409
    error_code = "invalid_state"


class InsufficientFunds(EngineError):
    status_code = 402
    error_code = "insufficient_funds"


class ValidationFailed(EngineError):
    status_code = 422
    error_code = "validation_error"


class StorageUnavailable(EngineError):
    """Transaction could not complete; nothing was recorded, safe to retry."""

    status_code = 503
    error_code = "storage_unavailable"
    retryable = True
