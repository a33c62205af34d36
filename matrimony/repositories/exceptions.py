"""Exceptions raised by the person repository.

Store outages are not listed here: they surface directly as
``matrimony.errors.StoreUnavailableError``.
"""

from __future__ import annotations

from typing import Any, Optional


class RepositoryError(RuntimeError):
    """Base exception raised when a repository operation fails."""


class DuplicateKeyRepositoryError(RepositoryError):
    """A write collided with a unique index; ``key`` names the indexed field."""

    def __init__(self, message: str, *, key: Optional[str] = None) -> None:
        super().__init__(message)
        self.key = key


class NotFoundRepositoryError(RepositoryError):
    """The person targeted by a write no longer exists."""

    def __init__(self, message: str, *, person_id: Any = None) -> None:
        super().__init__(message)
        self.person_id = person_id


__all__ = [
    "DuplicateKeyRepositoryError",
    "NotFoundRepositoryError",
    "RepositoryError",
]
