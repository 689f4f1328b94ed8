"""Custom exceptions and typed rejections for centralized error handling."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


@dataclass
class AppError(Exception):
    """Base application error."""

    code: str
    message: str
    status_code: int
    details: Any | None = None


class NotFoundError(AppError):
    """Resource not found."""

    def __init__(self, message: str = "Not found", details: Any | None = None) -> None:
        super().__init__(code="not_found", message=message, status_code=404, details=details)


class ValidationError(AppError):
    """Input validation error."""

    def __init__(self, message: str = "Validation error", details: Any | None = None) -> None:
        super().__init__(code="validation_error", message=message, status_code=400, details=details)


class ConflictError(AppError):
    """Conflict (e.g., unique constraint)."""

    def __init__(self, message: str = "Conflict", details: Any | None = None) -> None:
        super().__init__(code="conflict", message=message, status_code=409, details=details)


class InvalidStateTransition(AppError):
    """Out-of-order draw lifecycle change (caller or ordering bug)."""

    def __init__(self, message: str = "Invalid state transition", details: Any | None = None) -> None:
        super().__init__(
            code="invalid_state_transition",
            message=message,
            status_code=409,
            details=details,
        )


class RejectionReason(str, Enum):
    DRAW_NOT_OPEN = "draw_not_open"
    DRAW_CLOSED = "draw_closed"
    LIMIT_EXCEEDED = "limit_exceeded"
    SOLD_OUT = "sold_out"
    EMPTY_TICKET = "empty_ticket"
    INVALID_BET_LINE = "invalid_bet_line"


_REJECTION_STATUS = {
    RejectionReason.EMPTY_TICKET: 400,
    RejectionReason.INVALID_BET_LINE: 400,
}


@dataclass(frozen=True)
class Rejection:
    """Normal, user-correctable refusal. Returned, never raised."""

    reason: RejectionReason
    message: str
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def status_code(self) -> int:
        return _REJECTION_STATUS.get(self.reason, 409)
