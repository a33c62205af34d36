from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .identifiers import PyObjectId
from .person import BasicInfo, CareerInfo, CulturalInfo, FamilyInfo


class RecommendationFilters(BaseModel):
    """Ad-hoc filters narrowing the preference-driven candidate query."""

    model_config = ConfigDict(populate_by_name=True)

    religion: Optional[str] = None
    min_age: Optional[int] = Field(default=None, alias="minAge")
    max_age: Optional[int] = Field(default=None, alias="maxAge")
    city: Optional[str] = None


class RecommendedProfile(BaseModel):
    model_config = ConfigDict(populate_by_name=True, arbitrary_types_allowed=True, extra="ignore")

    id: PyObjectId = Field(alias="_id")
    basic_info: BasicInfo = Field(default_factory=BasicInfo, alias="basicInfo")
    cultural_info: CulturalInfo = Field(default_factory=CulturalInfo, alias="culturalInfo")
    career_info: CareerInfo = Field(default_factory=CareerInfo, alias="careerInfo")
    family_info: FamilyInfo = Field(default_factory=FamilyInfo, alias="familyInfo")
    about: Optional[str] = None
    profile_photo: Optional[str] = Field(default=None, alias="profilePhoto")
    photos: List[str] = Field(default_factory=list)
    is_verified: bool = Field(default=False, alias="isVerified")
    last_active: Optional[int] = Field(default=None, alias="lastActive")
    match_score: int = Field(alias="matchScore")


class RecommendationPage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    results: List[RecommendedProfile] = Field(default_factory=list)
    total_count: int = Field(alias="totalCount")
    page: int
    page_size: int = Field(alias="pageSize")
    total_pages: int = Field(alias="totalPages")
    has_more: bool = Field(alias="hasMore")


__all__ = ["RecommendationFilters", "RecommendationPage", "RecommendedProfile"]
