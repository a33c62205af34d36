from __future__ import annotations

import logging
import re
import time
from typing import Any, Dict, Mapping, Optional, Type

import bcrypt
import jwt
from pydantic import BaseModel, ValidationError

from ..config import get_settings
from ..db import get_db
from ..errors import (
    AuthenticationError,
    ConflictError,
    InvalidArgumentError,
    NotFoundError,
    ValidationFailedError,
)
from ..models.identifiers import parse_person_id
from ..models.person import (
    BasicInfo,
    CareerInfo,
    CulturalInfo,
    FamilyInfo,
    PartnerPreferences,
    PersonDocument,
    PersonProfile,
    ProfileUpdate,
    PublicProfile,
    RegisterRequest,
)
from ..repositories.exceptions import DuplicateKeyRepositoryError, NotFoundRepositoryError
from ..repositories.person import PersonRepository

LOGGER = logging.getLogger("uvicorn.error")

EMAIL_PATTERN = re.compile(r"^\S+@\S+\.\S+$")
MIN_PASSWORD_LENGTH = 6

# step name -> (stored section, section model); numeric aliases follow onboarding order
ONBOARDING_STEPS: Dict[str, tuple[str, Type[BaseModel]]] = {
    "basic": ("basicInfo", BasicInfo),
    "cultural": ("culturalInfo", CulturalInfo),
    "career": ("careerInfo", CareerInfo),
    "family": ("familyInfo", FamilyInfo),
    "preferences": ("partnerPreferences", PartnerPreferences),
}
_STEP_NUMBERS = {"1": "basic", "2": "cultural", "3": "career", "4": "family", "5": "preferences"}
FINAL_STEP = "preferences"

# Free-text fields a full update may reset with null; sections are only ever replaced
CLEARABLE_PROFILE_FIELDS = frozenset({"about", "profilePhoto"})


def is_profile_complete(document: Mapping[str, Any]) -> bool:
    """Minimum field set that makes a person eligible for matching."""

    basic = document.get("basicInfo") or {}
    cultural = document.get("culturalInfo") or {}
    career = document.get("careerInfo") or {}

    has_basic = bool(basic.get("name") and basic.get("age") and basic.get("gender"))
    has_cultural = bool(cultural.get("religion"))
    has_career = bool(career.get("education") or career.get("profession"))
    return has_basic and has_cultural and has_career


class RateLimiter:
    """Very small in-memory rate limiter for authentication flows."""

    def __init__(self, window_seconds: int, max_attempts: int) -> None:
        self._window = float(window_seconds)
        self._max_attempts = max_attempts
        self._state: Dict[str, Dict[str, float]] = {}

    def increment(self, key: str) -> bool:
        now = time.time()
        record = self._state.get(key)
        if not record or record.get("expires", 0) < now:
            record = {"count": 0.0, "expires": now + self._window}
        record["count"] = record.get("count", 0.0) + 1.0
        self._state[key] = record
        return record["count"] <= self._max_attempts


_RATE_LIMITER: Optional[RateLimiter] = None


def _shared_rate_limiter(window_seconds: int, max_attempts: int) -> RateLimiter:
    # One limiter per process; services are rebuilt per request
    global _RATE_LIMITER
    if _RATE_LIMITER is None:
        _RATE_LIMITER = RateLimiter(window_seconds, max_attempts)
    return _RATE_LIMITER


class PersonService:
    """Account and profile orchestration: registration, login, updates, deletion."""

    def __init__(
        self,
        repository: PersonRepository,
        *,
        jwt_secret: str,
        token_ttl_seconds: int,
        rate_limiter: Optional[RateLimiter] = None,
    ) -> None:
        self._repository = repository
        self._jwt_secret = jwt_secret
        self._token_ttl = token_ttl_seconds
        self._rate_limiter = rate_limiter

    @staticmethod
    def _now_ms() -> int:
        return int(time.time() * 1000)

    @staticmethod
    def hash_password(raw: str) -> str:
        salt = bcrypt.gensalt()
        return bcrypt.hashpw(raw.encode("utf-8"), salt).decode("utf-8")

    @staticmethod
    def verify_password(raw: str, hashed: str) -> bool:
        try:
            return bcrypt.checkpw(raw.encode("utf-8"), hashed.encode("utf-8"))
        except ValueError:
            return False

    def allow_rate(self, key: str) -> bool:
        if self._rate_limiter is None:
            return True
        return self._rate_limiter.increment(key)

    def issue_token(self, person: PersonDocument) -> str:
        now = int(time.time())
        payload = {
            "sub": person.person_id,
            "email": person.email,
            "iat": now,
            "exp": now + self._token_ttl,
        }
        return jwt.encode(payload, self._jwt_secret, algorithm="HS256")

    def decode_token(self, token: str) -> Optional[Dict[str, Any]]:
        try:
            return jwt.decode(token, self._jwt_secret, algorithms=["HS256"])
        except jwt.PyJWTError:
            return None

    def person_id_from_token(self, token: str) -> str:
        payload = self.decode_token(token) if token else None
        if not payload:
            raise AuthenticationError("invalid token")
        person_id = str(payload.get("sub") or "").strip()
        if not person_id:
            raise AuthenticationError("invalid token")
        return person_id

    async def _load(self, person_id: Any) -> PersonDocument:
        person = await self._repository.get_by_id(parse_person_id(person_id))
        if not person:
            raise NotFoundError("user not found")
        return person

    async def register(self, payload: RegisterRequest) -> PersonDocument:
        email = payload.email.strip().lower()
        if not email or not payload.password:
            raise InvalidArgumentError("email and password are required")
        if not EMAIL_PATTERN.match(email):
            raise InvalidArgumentError("please enter a valid email")
        if len(payload.password) < MIN_PASSWORD_LENGTH:
            raise InvalidArgumentError(f"password must be at least {MIN_PASSWORD_LENGTH} characters")
        if await self._repository.email_exists(email):
            raise ConflictError("user with this email already exists")

        try:
            person = await self._repository.create_person(
                email=email,
                password_hash=self.hash_password(payload.password),
                phone=(payload.phone or "").strip() or None,
                name=(payload.name or "").strip(),
                created_at=self._now_ms(),
            )
        except DuplicateKeyRepositoryError:
            raise ConflictError("user with this email already exists") from None

        LOGGER.info("Registered person %s", person.person_id)
        return person

    async def authenticate(self, email: str, password: str) -> PersonDocument:
        if not email or not password:
            raise InvalidArgumentError("email and password are required")
        person = await self._repository.get_by_email(email)
        if not person or not self.verify_password(password, person.password_hash):
            raise AuthenticationError("invalid email or password")
        return await self._repository.update_fields(person.id, {"lastActive": self._now_ms()})

    async def change_password(self, person_id: Any, current: str, new: str) -> None:
        if not current or not new:
            raise InvalidArgumentError("current password and new password are required")
        if len(new) < MIN_PASSWORD_LENGTH:
            raise InvalidArgumentError(f"new password must be at least {MIN_PASSWORD_LENGTH} characters")
        person = await self._load(person_id)
        if not self.verify_password(current, person.password_hash):
            raise AuthenticationError("current password is incorrect")
        await self._repository.update_fields(
            person.id,
            {"passwordHash": self.hash_password(new), "updatedAt": self._now_ms()},
        )

    async def get_own_profile(self, person_id: Any) -> PersonProfile:
        person = await self._load(person_id)
        return self.to_profile(person)

    async def get_public_profile(self, viewer_id: Any, target_id: Any) -> PublicProfile:
        """Another person's profile; email and phone only after an unlock."""

        viewer = await self._load(viewer_id)
        target = await self._repository.get_by_id(parse_person_id(target_id))
        if not target or not target.is_active:
            raise NotFoundError("this profile is no longer active")

        unlocked = viewer.id == target.id or viewer.wallet.has_unlocked(target.person_id)
        data = target.model_dump(
            by_alias=True,
            exclude={"password_hash", "connection_requests", "wallet", "email", "phone"},
        )
        if unlocked:
            data["email"] = target.email
            data["phone"] = target.phone
        data["contactUnlocked"] = unlocked
        return PublicProfile(**data)

    async def update_profile(self, person_id: Any, patch: ProfileUpdate) -> PersonProfile:
        """Replace the supplied sections; an explicit null clears ``about`` or ``profilePhoto``."""

        person = await self._load(person_id)
        updates = {
            key: value
            for key, value in patch.model_dump(by_alias=True, exclude_unset=True).items()
            if value is not None or key in CLEARABLE_PROFILE_FIELDS
        }
        if not updates:
            return self.to_profile(person)

        merged = person.model_dump(by_alias=True)
        merged.update(updates)
        updates["isProfileComplete"] = is_profile_complete(merged)
        updates["updatedAt"] = self._now_ms()
        updated = await self._save(person, updates)
        return self.to_profile(updated)

    async def update_step(self, person_id: Any, step: str, data: Any) -> PersonProfile:
        """Replace one onboarding section; the final step completes the profile."""

        step_key = _STEP_NUMBERS.get(str(step).strip(), str(step).strip().lower())
        if step_key not in ONBOARDING_STEPS:
            raise InvalidArgumentError("invalid step parameter")
        if not isinstance(data, Mapping):
            raise InvalidArgumentError("step data must be an object")

        field, model = ONBOARDING_STEPS[step_key]
        try:
            section = model.model_validate(data)
        except ValidationError as exc:
            raise ValidationFailedError(
                "validation error",
                payload={"errors": [err.get("msg") for err in exc.errors()]},
            ) from None

        person = await self._load(person_id)
        section_doc = section.model_dump(by_alias=True, exclude_none=True)
        merged = person.model_dump(by_alias=True)
        merged[field] = section_doc

        updates: Dict[str, Any] = {field: section_doc, "updatedAt": self._now_ms()}
        if step_key == FINAL_STEP:
            updates["isProfileComplete"] = True
        else:
            updates["isProfileComplete"] = is_profile_complete(merged)

        updated = await self._save(person, updates)
        return self.to_profile(updated)

    async def _save(self, person: PersonDocument, updates: Dict[str, Any]) -> PersonDocument:
        try:
            return await self._repository.update_fields(person.id, updates)
        except NotFoundRepositoryError as exc:
            LOGGER.warning("Person %s removed before update", exc.person_id)
            raise NotFoundError("user not found") from None

    async def delete_account(self, person_id: Any) -> int:
        """Hard delete, then strip references held by every other person."""

        person_oid = parse_person_id(person_id)
        if not await self._repository.delete_person(person_oid):
            raise NotFoundError("user not found")
        stripped = await self._repository.strip_connection_references(str(person_oid))
        LOGGER.info("Deleted person %s, stripped %s connection references", person_oid, stripped)
        return stripped

    async def set_banned(self, person_id: Any, banned: bool) -> PersonProfile:
        person = await self._load(person_id)
        updated = await self._save(person, {"isActive": not banned, "updatedAt": self._now_ms()})
        LOGGER.info("Person %s %s", person.person_id, "banned" if banned else "unbanned")
        return self.to_profile(updated)

    @staticmethod
    def to_profile(person: PersonDocument) -> PersonProfile:
        return PersonProfile(**person.model_dump(by_alias=True, exclude={"password_hash"}))


def get_person_service() -> PersonService:
    settings = get_settings()
    return PersonService(
        PersonRepository(get_db()),
        jwt_secret=settings.jwt_secret,
        token_ttl_seconds=settings.auth_token_ttl,
        rate_limiter=_shared_rate_limiter(
            settings.auth_rate_limit_window,
            settings.auth_rate_limit_max,
        ),
    )


__all__ = [
    "CLEARABLE_PROFILE_FIELDS",
    "ONBOARDING_STEPS",
    "PersonService",
    "RateLimiter",
    "get_person_service",
    "is_profile_complete",
]
