"""Compatibility scoring between a candidate and a set of partner preferences.

Pure functions over plain mappings shaped like stored person documents
(``basicInfo``, ``culturalInfo``, ``careerInfo``) and ``partnerPreferences``.
An unset preference passes its criterion in full. A range preference that is
present but missing a bound (or holding 0) uses the default for that bound.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Optional

from ..models.person import INCOME_TIERS

AGE_WEIGHT = 20
RELIGION_WEIGHT = 20
CASTE_WEIGHT = 15
INCOME_WEIGHT = 15
EDUCATION_WEIGHT = 10
HEIGHT_WEIGHT = 10
LOCATION_WEIGHT = 10

TOTAL_WEIGHT = (
    AGE_WEIGHT
    + RELIGION_WEIGHT
    + CASTE_WEIGHT
    + INCOME_WEIGHT
    + EDUCATION_WEIGHT
    + HEIGHT_WEIGHT
    + LOCATION_WEIGHT
)

DEFAULT_AGE_RANGE = (18, 50)
DEFAULT_HEIGHT_RANGE = (100, 250)

_INCOME_LEVELS = {tier: level for level, tier in enumerate(INCOME_TIERS)}


def income_level(tier: Optional[str]) -> int:
    """Ordinal level of an income band; unknown or blank bands rank 0."""

    if not tier:
        return 0
    return _INCOME_LEVELS.get(tier, 0)


def _section(record: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = record.get(key)
    return value if isinstance(value, Mapping) else {}


def _bounds(preferences: Mapping[str, Any], key: str, default: tuple) -> tuple:
    raw = preferences[key]
    return (raw.get("min") or default[0], raw.get("max") or default[1])


def _listed(values: Any) -> list:
    if isinstance(values, (list, tuple, set)):
        return [value for value in values if value]
    return []


def _in_preference(value: Any, accepted: Iterable[Any]) -> bool:
    accepted = list(accepted)
    if not accepted:
        return True
    return bool(value) and value in accepted


def _age_points(basic: Mapping[str, Any], preferences: Mapping[str, Any]) -> int:
    if not isinstance(preferences.get("ageRange"), Mapping):
        return AGE_WEIGHT
    age = basic.get("age")
    if not age:
        return 0
    low, high = _bounds(preferences, "ageRange", DEFAULT_AGE_RANGE)
    return AGE_WEIGHT if low <= age <= high else 0


def _height_points(basic: Mapping[str, Any], preferences: Mapping[str, Any]) -> int:
    height = basic.get("height")
    if not height or not isinstance(preferences.get("heightRange"), Mapping):
        return HEIGHT_WEIGHT
    low, high = _bounds(preferences, "heightRange", DEFAULT_HEIGHT_RANGE)
    return HEIGHT_WEIGHT if low <= height <= high else 0


def _income_points(career: Mapping[str, Any], preferences: Mapping[str, Any]) -> int:
    minimum = preferences.get("minIncome")
    if not minimum or minimum == "not_specified":
        return INCOME_WEIGHT
    if income_level(career.get("annualIncome")) >= income_level(minimum):
        return INCOME_WEIGHT
    return 0


def _location_points(basic: Mapping[str, Any], preferences: Mapping[str, Any]) -> int:
    locations = [loc.strip().lower() for loc in _listed(preferences.get("locations")) if isinstance(loc, str)]
    if not locations:
        return LOCATION_WEIGHT
    for place in (basic.get("city"), basic.get("state")):
        if isinstance(place, str) and place.strip().lower() in locations:
            return LOCATION_WEIGHT
    return 0


def calculate_match_score(
    candidate: Mapping[str, Any],
    preferences: Optional[Mapping[str, Any]],
) -> int:
    """Return the 0-100 compatibility of ``candidate`` against ``preferences``."""

    preferences = preferences or {}
    basic = _section(candidate, "basicInfo")
    cultural = _section(candidate, "culturalInfo")
    career = _section(candidate, "careerInfo")

    earned = _age_points(basic, preferences)
    if _in_preference(cultural.get("religion"), _listed(preferences.get("religion"))):
        earned += RELIGION_WEIGHT
    if _in_preference(cultural.get("caste"), _listed(preferences.get("caste"))):
        earned += CASTE_WEIGHT
    earned += _income_points(career, preferences)
    if _in_preference(career.get("education"), _listed(preferences.get("education"))):
        earned += EDUCATION_WEIGHT
    earned += _height_points(basic, preferences)
    earned += _location_points(basic, preferences)

    return round(100 * earned / TOTAL_WEIGHT)


__all__ = [
    "AGE_WEIGHT",
    "CASTE_WEIGHT",
    "EDUCATION_WEIGHT",
    "HEIGHT_WEIGHT",
    "INCOME_WEIGHT",
    "LOCATION_WEIGHT",
    "RELIGION_WEIGHT",
    "TOTAL_WEIGHT",
    "calculate_match_score",
    "income_level",
]
