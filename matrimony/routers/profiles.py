from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Query

from ..config import get_settings
from ..models.person import PersonProfile, ProfileUpdate, PublicProfile
from ..models.recommendation import RecommendationFilters, RecommendationPage
from ..services.person_service import PersonService, get_person_service
from ..services.recommendation_service import (
    RecommendationService,
    get_recommendation_service,
)
from .auth import require_current_person_id

router = APIRouter(prefix="/user", tags=["profiles"])


@router.get("/profile", response_model=PersonProfile)
async def own_profile(
    person_id: str = Depends(require_current_person_id),
    service: PersonService = Depends(get_person_service),
):
    return await service.get_own_profile(person_id)


@router.put("/profile", response_model=PersonProfile)
async def update_profile(
    patch: ProfileUpdate,
    person_id: str = Depends(require_current_person_id),
    service: PersonService = Depends(get_person_service),
):
    return await service.update_profile(person_id, patch)


@router.put("/profile/step/{step}", response_model=PersonProfile)
async def update_step(
    step: str,
    data: Optional[Dict[str, Any]] = Body(default=None),
    person_id: str = Depends(require_current_person_id),
    service: PersonService = Depends(get_person_service),
):
    return await service.update_step(person_id, step, data)


@router.get("/recommendations", response_model=RecommendationPage)
async def recommendations(
    page: int = Query(default=1),
    limit: Optional[int] = Query(default=None),
    religion: Optional[str] = Query(default=None),
    min_age: Optional[int] = Query(default=None, alias="minAge"),
    max_age: Optional[int] = Query(default=None, alias="maxAge"),
    city: Optional[str] = Query(default=None),
    person_id: str = Depends(require_current_person_id),
    service: RecommendationService = Depends(get_recommendation_service),
):
    page_size = limit if limit is not None else get_settings().recommendation_default_page_size
    filters = RecommendationFilters(religion=religion, minAge=min_age, maxAge=max_age, city=city)
    return await service.recommend(person_id, filters, page=page, page_size=page_size)


@router.delete("/account")
async def delete_account(
    person_id: str = Depends(require_current_person_id),
    service: PersonService = Depends(get_person_service),
):
    stripped = await service.delete_account(person_id)
    return {"status": "ok", "strippedReferences": stripped}


@router.get("/{target_id}", response_model=PublicProfile)
async def public_profile(
    target_id: str,
    person_id: str = Depends(require_current_person_id),
    service: PersonService = Depends(get_person_service),
):
    return await service.get_public_profile(person_id, target_id)
