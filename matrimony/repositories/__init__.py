"""Repository layer to abstract MongoDB access patterns."""

from .person import PersonRepository

__all__ = ["PersonRepository"]
