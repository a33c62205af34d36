"""MongoDB collection names used by the matrimony service."""

from __future__ import annotations

PERSONS_COLLECTION = "persons"

__all__ = ["PERSONS_COLLECTION"]
