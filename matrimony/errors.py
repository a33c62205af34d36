"""Error kinds surfaced by the matrimony core.

Services raise these; the API layer renders them with ``status_code``. Nothing
in the core maps errors to HTTP on its own.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class MatrimonyError(Exception):
    """Base class for recoverable failures reported to the caller."""

    kind = "Internal"
    status_code = 500

    def __init__(self, message: str, *, payload: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.payload: Dict[str, Any] = dict(payload or {})

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "message": self.message, **self.payload}


class NotFoundError(MatrimonyError):
    """A person or connection request does not exist."""

    kind = "NotFound"
    status_code = 404


class InvalidArgumentError(MatrimonyError):
    """Malformed input: missing field, self-referential action, bad pagination."""

    kind = "InvalidArgument"
    status_code = 400


class ConflictError(MatrimonyError):
    """Duplicate request, non-pending response target or insufficient balance."""

    kind = "Conflict"
    status_code = 409


class ValidationFailedError(MatrimonyError):
    """A profile field violates a domain constraint (bounds, enum membership)."""

    kind = "ValidationFailed"
    status_code = 422


class StoreUnavailableError(MatrimonyError):
    """The document store could not be reached or timed out."""

    kind = "StoreUnavailable"
    status_code = 503


class AuthenticationError(MatrimonyError):
    kind = "Unauthenticated"
    status_code = 401


__all__ = [
    "AuthenticationError",
    "ConflictError",
    "InvalidArgumentError",
    "MatrimonyError",
    "NotFoundError",
    "StoreUnavailableError",
    "ValidationFailedError",
]
