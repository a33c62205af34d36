"""Preference-driven candidate recommendations.

The store filters and paginates; scoring then ranks only the fetched page, so
ordering is correct within a page but not a global top-K.
"""

from __future__ import annotations

import logging
import math
import re
from typing import Any, Dict, List, Optional, Set

from bson import ObjectId

from ..config import get_settings
from ..db import get_db
from ..errors import InvalidArgumentError, NotFoundError
from ..models.identifiers import parse_person_id
from ..models.person import PersonDocument
from ..models.recommendation import (
    RecommendationFilters,
    RecommendationPage,
    RecommendedProfile,
)
from ..repositories.person import PersonRepository
from .scoring import DEFAULT_AGE_RANGE, calculate_match_score

LOGGER = logging.getLogger("uvicorn.error")

# Never leave the store for someone else's recommendation list
CANDIDATE_PROJECTION: Dict[str, int] = {
    "passwordHash": 0,
    "connectionRequests": 0,
    "wallet": 0,
    "email": 0,
    "phone": 0,
}

_OPPOSITE_GENDER = {"male": "female", "female": "male"}


def build_exclusion_ids(requester: PersonDocument) -> Set[str]:
    """The requester plus everyone they share any request record with."""

    excluded = {requester.person_id}
    excluded.update(request.counterparty_id for request in requester.connection_requests)
    return excluded


def build_candidate_query(
    requester: PersonDocument,
    filters: Optional[RecommendationFilters] = None,
) -> Dict[str, Any]:
    """Eligibility predicate for candidates, narrowed by caller filters."""

    preferences = requester.partner_preferences
    excluded = [ObjectId(value) for value in build_exclusion_ids(requester) if ObjectId.is_valid(value)]

    query: Dict[str, Any] = {
        "_id": {"$nin": excluded},
        "isActive": True,
        "isProfileComplete": True,
    }

    opposite = _OPPOSITE_GENDER.get(requester.basic_info.gender)
    if opposite:
        query["basicInfo.gender"] = opposite

    min_age = preferences.age_range.min or DEFAULT_AGE_RANGE[0]
    max_age = preferences.age_range.max or DEFAULT_AGE_RANGE[1]

    if preferences.religion:
        query["culturalInfo.religion"] = {"$in": list(preferences.religion)}

    if filters is not None:
        religion = (filters.religion or "").strip()
        if religion:
            query["culturalInfo.religion"] = religion
        if filters.min_age is not None:
            min_age = filters.min_age
        if filters.max_age is not None:
            max_age = filters.max_age
        city = (filters.city or "").strip()
        if city:
            query["basicInfo.city"] = {"$regex": re.escape(city), "$options": "i"}

    if min_age > max_age:
        raise InvalidArgumentError("minAge must not exceed maxAge")
    query["basicInfo.age"] = {"$gte": min_age, "$lte": max_age}
    return query


class RecommendationService:
    """Filters, pages and ranks candidates for a requester."""

    def __init__(self, repository: PersonRepository, *, max_page_size: int = 50) -> None:
        self._repository = repository
        self._max_page_size = max_page_size

    async def recommend(
        self,
        requester_id: Any,
        filters: Optional[RecommendationFilters] = None,
        page: int = 1,
        page_size: int = 10,
    ) -> RecommendationPage:
        if page < 1:
            raise InvalidArgumentError("page must be at least 1")
        if page_size < 1:
            raise InvalidArgumentError("pageSize must be at least 1")
        page_size = min(page_size, self._max_page_size)

        requester = await self._repository.get_by_id(parse_person_id(requester_id))
        if not requester:
            raise NotFoundError("user not found")

        query = build_candidate_query(requester, filters)
        total_count = await self._repository.count_candidates(query)
        rows = await self._repository.find_candidates(
            query,
            skip=(page - 1) * page_size,
            limit=page_size,
            projection=CANDIDATE_PROJECTION,
        )

        preferences = requester.partner_preferences.model_dump(by_alias=True)
        scored: List[RecommendedProfile] = [
            RecommendedProfile(**row, matchScore=calculate_match_score(row, preferences))
            for row in rows
        ]
        # sorted() is stable, so equal scores keep store order
        scored = sorted(scored, key=lambda profile: profile.match_score, reverse=True)

        total_pages = math.ceil(total_count / page_size)
        LOGGER.debug(
            "Recommendations for %s: page=%s fetched=%s total=%s",
            requester.person_id,
            page,
            len(scored),
            total_count,
        )
        return RecommendationPage(
            results=scored,
            totalCount=total_count,
            page=page,
            pageSize=page_size,
            totalPages=total_pages,
            hasMore=page < total_pages,
        )


def get_recommendation_service() -> RecommendationService:
    settings = get_settings()
    return RecommendationService(
        PersonRepository(get_db()),
        max_page_size=settings.recommendation_max_page_size,
    )


__all__ = [
    "CANDIDATE_PROJECTION",
    "RecommendationService",
    "build_candidate_query",
    "build_exclusion_ids",
    "get_recommendation_service",
]
