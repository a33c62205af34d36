"""Identifier helpers shared by models and services.

Person documents are keyed by ``ObjectId``; every reference embedded in another
person (connection requests, unlocks, transactions) stores the 24-hex string.
"""

from __future__ import annotations

from typing import Annotated, Any

from bson import ObjectId
from bson.errors import InvalidId
from pydantic.functional_serializers import PlainSerializer
from pydantic.functional_validators import BeforeValidator

from ..errors import InvalidArgumentError


def _validate_object_id(value: Any) -> ObjectId:
    if isinstance(value, ObjectId):
        return value
    if isinstance(value, str):
        text = value.strip()
        if not text:
            raise ValueError("ObjectId string must not be empty")
        try:
            return ObjectId(text)
        except InvalidId as exc:
            raise ValueError("Invalid ObjectId hex string") from exc
    raise TypeError("ObjectId value must be str or ObjectId instance")


def _validate_person_ref(value: Any) -> str:
    return str(_validate_object_id(value))


PyObjectId = Annotated[
    ObjectId,
    BeforeValidator(_validate_object_id),
    PlainSerializer(lambda value: str(value), return_type=str),
]

# Embedded reference to another person, normalised to its hex string
PersonRef = Annotated[str, BeforeValidator(_validate_person_ref)]


def parse_person_id(value: Any, *, field: str = "userId") -> ObjectId:
    """Parse caller-supplied ids, reporting bad input as ``InvalidArgument``."""

    if value is None or (isinstance(value, str) and not value.strip()):
        raise InvalidArgumentError(f"{field} is required")
    try:
        return _validate_object_id(value)
    except (TypeError, ValueError):
        raise InvalidArgumentError(f"{field} is not a valid id") from None


__all__ = ["PersonRef", "PyObjectId", "parse_person_id"]
