from datetime import datetime
from typing import List, Literal, Optional, Tuple, get_args

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .identifiers import PersonRef, PyObjectId

Gender = Literal["male", "female", "other", ""]
MaritalStatus = Literal["never_married", "divorced", "widowed", "awaiting_divorce"]
Religion = Literal["hindu", "muslim", "christian", "sikh", "buddhist", "jain", "other"]
Education = Literal["high_school", "diploma", "bachelors", "masters", "doctorate", "other"]
IncomeTier = Literal[
    "not_specified",
    "below_3lpa",
    "3_to_5lpa",
    "5_to_10lpa",
    "10_to_15lpa",
    "15_to_25lpa",
    "25_to_50lpa",
    "above_50lpa",
]
ConnectionStatus = Literal["pending", "accepted", "rejected"]
ConnectionDirection = Literal["sent", "received"]
TransactionType = Literal["credit", "debit"]

# Ordinal order matters: index == income level used for preference comparison
INCOME_TIERS: Tuple[str, ...] = get_args(IncomeTier)

PHOTO_LIMIT = 4


def _strip(value):
    if isinstance(value, str):
        return value.strip()
    return value


class BasicInfo(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str = ""
    age: Optional[int] = Field(default=None, ge=18, le=100)
    gender: Gender = ""
    date_of_birth: Optional[datetime] = Field(default=None, alias="dateOfBirth")
    height: Optional[float] = None
    weight: Optional[float] = None
    marital_status: Literal[MaritalStatus, ""] = Field(default="", alias="maritalStatus")
    city: Optional[str] = None
    state: Optional[str] = None
    country: str = "India"

    @field_validator("name", "city", "state", "country", mode="before")
    @classmethod
    def strip_text(cls, value):
        return _strip(value)

    @field_validator("height")
    @classmethod
    def check_height(cls, value: Optional[float]) -> Optional[float]:
        # 0 is how clients clear the field
        if not value:
            return None
        if not 100 <= value <= 250:
            raise ValueError("Height must be between 100 and 250 cm")
        return value

    @field_validator("weight")
    @classmethod
    def check_weight(cls, value: Optional[float]) -> Optional[float]:
        if not value:
            return None
        if not 30 <= value <= 200:
            raise ValueError("Weight must be between 30 and 200 kg")
        return value


class Horoscope(BaseModel):
    rashi: Optional[str] = None
    nakshatra: Optional[str] = None
    manglik: Literal["yes", "no", "partial", "dont_know", ""] = ""


class CulturalInfo(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    religion: Literal[Religion, ""] = ""
    caste: Optional[str] = None
    sub_caste: Optional[str] = Field(default=None, alias="subCaste")
    mother_tongue: Optional[str] = Field(default=None, alias="motherTongue")
    horoscope: Horoscope = Field(default_factory=Horoscope)
    gothra: Optional[str] = None

    @field_validator("caste", "sub_caste", "mother_tongue", "gothra", mode="before")
    @classmethod
    def strip_text(cls, value):
        return _strip(value)


class CareerInfo(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    education: Literal[Education, ""] = ""
    education_detail: Optional[str] = Field(default=None, alias="educationDetail")
    college: Optional[str] = None
    profession: Optional[str] = None
    company: Optional[str] = None
    annual_income: Literal[IncomeTier, ""] = Field(default="", alias="annualIncome")
    work_location: Optional[str] = Field(default=None, alias="workLocation")

    @field_validator(
        "education_detail", "college", "profession", "company", "work_location", mode="before"
    )
    @classmethod
    def strip_text(cls, value):
        return _strip(value)


class Siblings(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    brothers: int = Field(default=0, ge=0)
    sisters: int = Field(default=0, ge=0)
    married_brothers: int = Field(default=0, ge=0, alias="marriedBrothers")
    married_sisters: int = Field(default=0, ge=0, alias="marriedSisters")


class FamilyInfo(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    father_name: Optional[str] = Field(default=None, alias="fatherName")
    father_occupation: Optional[str] = Field(default=None, alias="fatherOccupation")
    mother_name: Optional[str] = Field(default=None, alias="motherName")
    mother_occupation: Optional[str] = Field(default=None, alias="motherOccupation")
    siblings: Siblings = Field(default_factory=Siblings)
    family_type: Literal["joint", "nuclear", ""] = Field(default="", alias="familyType")
    family_status: Literal["middle_class", "upper_middle_class", "rich", "affluent", ""] = Field(
        default="", alias="familyStatus"
    )
    family_values: Literal["traditional", "moderate", "liberal", ""] = Field(
        default="", alias="familyValues"
    )


class PreferenceRange(BaseModel):
    """Inclusive bounds; subclasses supply the default for an omitted bound."""

    min: int
    max: int

    @model_validator(mode="after")
    def check_order(self) -> "PreferenceRange":
        if self.min > self.max:
            raise ValueError("range min must not exceed max")
        return self


class AgeRange(PreferenceRange):
    min: int = 18
    max: int = 50


class HeightRange(PreferenceRange):
    min: int = 100
    max: int = 250


class PartnerPreferences(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    age_range: AgeRange = Field(default_factory=AgeRange, alias="ageRange")
    height_range: HeightRange = Field(default_factory=HeightRange, alias="heightRange")
    marital_status: List[MaritalStatus] = Field(default_factory=list, alias="maritalStatus")
    religion: List[Religion] = Field(default_factory=list)
    caste: List[str] = Field(default_factory=list)
    mother_tongue: List[str] = Field(default_factory=list, alias="motherTongue")
    education: List[Education] = Field(default_factory=list)
    profession: List[str] = Field(default_factory=list)
    min_income: IncomeTier = Field(default="not_specified", alias="minIncome")
    locations: List[str] = Field(default_factory=list)
    manglik_preference: Literal["yes", "no", "doesnt_matter", ""] = Field(
        default="doesnt_matter", alias="manglikPreference"
    )


class ConnectionRequest(BaseModel):
    """One side of a mirrored connection request pair."""

    model_config = ConfigDict(populate_by_name=True)

    counterparty_id: PersonRef = Field(alias="counterpartyId")
    status: ConnectionStatus = "pending"
    direction: ConnectionDirection
    message: str = Field(default="", max_length=500)
    created_at: int = Field(alias="createdAt")
    responded_at: Optional[int] = Field(default=None, alias="respondedAt")


class WalletTransaction(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    type: TransactionType
    amount: int = Field(gt=0)
    description: str
    related_user_id: Optional[PersonRef] = Field(default=None, alias="relatedUserId")
    created_at: int = Field(alias="createdAt")


class ProfileUnlock(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    counterparty_id: PersonRef = Field(alias="counterpartyId")
    unlocked_at: int = Field(alias="unlockedAt")


class Wallet(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    balance: int = Field(default=0, ge=0)
    transactions: List[WalletTransaction] = Field(default_factory=list)
    profiles_unlocked: List[ProfileUnlock] = Field(default_factory=list, alias="profilesUnlocked")

    def has_unlocked(self, counterparty_id: str) -> bool:
        return any(entry.counterparty_id == counterparty_id for entry in self.profiles_unlocked)


class PersonDocument(BaseModel):
    """Canonical representation of a person document stored in MongoDB."""

    model_config = ConfigDict(populate_by_name=True, arbitrary_types_allowed=True)

    id: PyObjectId = Field(alias="_id")
    email: str
    phone: Optional[str] = None
    password_hash: str = Field(alias="passwordHash")
    basic_info: BasicInfo = Field(default_factory=BasicInfo, alias="basicInfo")
    cultural_info: CulturalInfo = Field(default_factory=CulturalInfo, alias="culturalInfo")
    career_info: CareerInfo = Field(default_factory=CareerInfo, alias="careerInfo")
    family_info: FamilyInfo = Field(default_factory=FamilyInfo, alias="familyInfo")
    partner_preferences: PartnerPreferences = Field(
        default_factory=PartnerPreferences, alias="partnerPreferences"
    )
    about: Optional[str] = Field(default=None, max_length=1000)
    profile_photo: Optional[str] = Field(default=None, alias="profilePhoto")
    photos: List[str] = Field(default_factory=list, max_length=PHOTO_LIMIT)
    connection_requests: List[ConnectionRequest] = Field(
        default_factory=list, alias="connectionRequests"
    )
    wallet: Wallet = Field(default_factory=Wallet)
    is_active: bool = Field(default=True, alias="isActive")
    is_verified: bool = Field(default=False, alias="isVerified")
    is_profile_complete: bool = Field(default=False, alias="isProfileComplete")
    last_active: Optional[int] = Field(default=None, alias="lastActive")
    created_at: int = Field(alias="createdAt")
    updated_at: int = Field(alias="updatedAt")

    @property
    def person_id(self) -> str:
        return str(self.id)

    def find_request(
        self,
        counterparty_id: str,
        direction: Optional[str] = None,
    ) -> Optional[ConnectionRequest]:
        for request in self.connection_requests:
            if request.counterparty_id != counterparty_id:
                continue
            if direction is not None and request.direction != direction:
                continue
            return request
        return None


class RegisterRequest(BaseModel):
    email: str = Field(min_length=3, max_length=254)
    password: str = Field(max_length=128)
    phone: Optional[str] = Field(default=None, max_length=20)
    name: Optional[str] = Field(default=None, max_length=120)


class LoginRequest(BaseModel):
    email: str
    password: str


class ChangePasswordRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    current_password: str = Field(alias="currentPassword")
    new_password: str = Field(alias="newPassword", max_length=128)


class ProfileUpdate(BaseModel):
    """Sections a person may replace through the full-profile update."""

    model_config = ConfigDict(populate_by_name=True)

    basic_info: Optional[BasicInfo] = Field(default=None, alias="basicInfo")
    cultural_info: Optional[CulturalInfo] = Field(default=None, alias="culturalInfo")
    career_info: Optional[CareerInfo] = Field(default=None, alias="careerInfo")
    family_info: Optional[FamilyInfo] = Field(default=None, alias="familyInfo")
    partner_preferences: Optional[PartnerPreferences] = Field(default=None, alias="partnerPreferences")
    about: Optional[str] = Field(default=None, max_length=1000)
    profile_photo: Optional[str] = Field(default=None, alias="profilePhoto")
    photos: Optional[List[str]] = Field(default=None, max_length=PHOTO_LIMIT)


class PersonProfile(BaseModel):
    """A person's own profile as returned to them (no credential)."""

    model_config = ConfigDict(populate_by_name=True, arbitrary_types_allowed=True)

    id: PyObjectId = Field(alias="_id")
    email: str
    phone: Optional[str] = None
    basic_info: BasicInfo = Field(alias="basicInfo")
    cultural_info: CulturalInfo = Field(alias="culturalInfo")
    career_info: CareerInfo = Field(alias="careerInfo")
    family_info: FamilyInfo = Field(alias="familyInfo")
    partner_preferences: PartnerPreferences = Field(alias="partnerPreferences")
    about: Optional[str] = None
    profile_photo: Optional[str] = Field(default=None, alias="profilePhoto")
    photos: List[str] = Field(default_factory=list)
    connection_requests: List[ConnectionRequest] = Field(default_factory=list, alias="connectionRequests")
    wallet: Wallet = Field(default_factory=Wallet)
    is_active: bool = Field(alias="isActive")
    is_verified: bool = Field(alias="isVerified")
    is_profile_complete: bool = Field(alias="isProfileComplete")
    last_active: Optional[int] = Field(default=None, alias="lastActive")
    created_at: int = Field(alias="createdAt")
    updated_at: int = Field(alias="updatedAt")


class PublicProfile(BaseModel):
    """Another person's profile; contact fields only once unlocked."""

    model_config = ConfigDict(populate_by_name=True, arbitrary_types_allowed=True)

    id: PyObjectId = Field(alias="_id")
    email: Optional[str] = None
    phone: Optional[str] = None
    basic_info: BasicInfo = Field(alias="basicInfo")
    cultural_info: CulturalInfo = Field(alias="culturalInfo")
    career_info: CareerInfo = Field(alias="careerInfo")
    family_info: FamilyInfo = Field(alias="familyInfo")
    partner_preferences: PartnerPreferences = Field(alias="partnerPreferences")
    about: Optional[str] = None
    profile_photo: Optional[str] = Field(default=None, alias="profilePhoto")
    photos: List[str] = Field(default_factory=list)
    is_verified: bool = Field(default=False, alias="isVerified")
    last_active: Optional[int] = Field(default=None, alias="lastActive")
    contact_unlocked: bool = Field(default=False, alias="contactUnlocked")


class PersonSummary(BaseModel):
    """Counterparty fields resolved into connection and wallet views."""

    model_config = ConfigDict(populate_by_name=True, arbitrary_types_allowed=True, extra="ignore")

    id: PyObjectId = Field(alias="_id")
    basic_info: BasicInfo = Field(default_factory=BasicInfo, alias="basicInfo")
    cultural_info: Optional[CulturalInfo] = Field(default=None, alias="culturalInfo")
    career_info: Optional[CareerInfo] = Field(default=None, alias="careerInfo")
    profile_photo: Optional[str] = Field(default=None, alias="profilePhoto")
    last_active: Optional[int] = Field(default=None, alias="lastActive")


class BanRequest(BaseModel):
    ban: bool = True


class AuthTokenResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    token: str
    profile: PersonProfile


__all__ = [
    "AgeRange",
    "AuthTokenResponse",
    "BanRequest",
    "BasicInfo",
    "CareerInfo",
    "ChangePasswordRequest",
    "ConnectionDirection",
    "ConnectionRequest",
    "ConnectionStatus",
    "CulturalInfo",
    "FamilyInfo",
    "HeightRange",
    "INCOME_TIERS",
    "LoginRequest",
    "PHOTO_LIMIT",
    "PartnerPreferences",
    "PersonDocument",
    "PersonProfile",
    "PersonSummary",
    "PreferenceRange",
    "ProfileUnlock",
    "ProfileUpdate",
    "PublicProfile",
    "RegisterRequest",
    "Wallet",
    "WalletTransaction",
]
