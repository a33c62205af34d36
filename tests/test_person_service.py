from __future__ import annotations

import pytest

from matrimony.errors import (
    AuthenticationError,
    ConflictError,
    InvalidArgumentError,
    NotFoundError,
    ValidationFailedError,
)
from matrimony.models.person import ProfileUpdate, RegisterRequest
from matrimony.services.connection_service import ConnectionService
from matrimony.services.person_service import PersonService, is_profile_complete
from matrimony.services.wallet_service import WalletService


def _service(person_repo) -> PersonService:
    return PersonService(person_repo, jwt_secret="test-secret", token_ttl_seconds=3600)


def test_profile_completion_predicate() -> None:
    complete = {
        "basicInfo": {"name": "Asha", "age": 26, "gender": "female"},
        "culturalInfo": {"religion": "hindu"},
        "careerInfo": {"profession": "Doctor"},
    }
    assert is_profile_complete(complete) is True
    assert is_profile_complete({**complete, "careerInfo": {"education": "masters"}}) is True
    assert is_profile_complete({**complete, "careerInfo": {}}) is False
    assert is_profile_complete({**complete, "culturalInfo": {"religion": ""}}) is False
    assert is_profile_complete({**complete, "basicInfo": {"name": "Asha", "age": 26}}) is False
    assert is_profile_complete({}) is False


@pytest.mark.asyncio
async def test_register_and_authenticate(person_repo) -> None:
    service = _service(person_repo)

    person = await service.register(RegisterRequest(email="  Asha@Example.com ", password="secret1", name="Asha"))
    assert person.email == "asha@example.com"
    assert person.wallet.balance == 0
    assert person.is_profile_complete is False
    assert person.password_hash != "secret1"

    with pytest.raises(ConflictError):
        await service.register(RegisterRequest(email="asha@example.com", password="another1"))
    with pytest.raises(InvalidArgumentError):
        await service.register(RegisterRequest(email="short@example.com", password="12345"))
    with pytest.raises(InvalidArgumentError):
        await service.register(RegisterRequest(email="not-an-email", password="secret1"))

    logged_in = await service.authenticate("ASHA@example.com", "secret1")
    assert logged_in.person_id == person.person_id
    with pytest.raises(AuthenticationError):
        await service.authenticate("asha@example.com", "wrong-pass")
    with pytest.raises(AuthenticationError):
        await service.authenticate("nobody@example.com", "secret1")


@pytest.mark.asyncio
async def test_token_round_trip(person_repo) -> None:
    service = _service(person_repo)
    person = await service.register(RegisterRequest(email="ravi@example.com", password="secret1"))

    token = service.issue_token(person)
    assert service.person_id_from_token(token) == person.person_id

    other = PersonService(person_repo, jwt_secret="different", token_ttl_seconds=3600)
    with pytest.raises(AuthenticationError):
        other.person_id_from_token(token)
    with pytest.raises(AuthenticationError):
        service.person_id_from_token("")


@pytest.mark.asyncio
async def test_change_password(person_repo) -> None:
    service = _service(person_repo)
    person = await service.register(RegisterRequest(email="meera@example.com", password="secret1"))

    with pytest.raises(AuthenticationError):
        await service.change_password(person.person_id, "wrong-pass", "newsecret")
    with pytest.raises(InvalidArgumentError):
        await service.change_password(person.person_id, "secret1", "123")

    await service.change_password(person.person_id, "secret1", "newsecret")
    await service.authenticate("meera@example.com", "newsecret")
    with pytest.raises(AuthenticationError):
        await service.authenticate("meera@example.com", "secret1")


@pytest.mark.asyncio
async def test_update_steps_recompute_completion(person_repo) -> None:
    service = _service(person_repo)
    person = await service.register(RegisterRequest(email="kiran@example.com", password="secret1"))

    profile = await service.update_step(person.person_id, "1", {"name": "Kiran", "age": 29, "gender": "male"})
    assert profile.basic_info.name == "Kiran"
    assert profile.is_profile_complete is False

    profile = await service.update_step(person.person_id, "cultural", {"religion": "hindu"})
    assert profile.is_profile_complete is False

    profile = await service.update_step(person.person_id, "career", {"education": "bachelors"})
    assert profile.is_profile_complete is True

    stored = await person_repo.get_by_id(person.id)
    assert stored.is_profile_complete is True


@pytest.mark.asyncio
async def test_preferences_step_forces_completion(person_repo) -> None:
    service = _service(person_repo)
    person = await service.register(RegisterRequest(email="devi@example.com", password="secret1"))

    profile = await service.update_step(
        person.person_id,
        "5",
        {"ageRange": {"min": 25, "max": 32}, "religion": ["hindu"]},
    )
    assert profile.is_profile_complete is True
    assert profile.partner_preferences.age_range.min == 25


@pytest.mark.asyncio
async def test_update_step_rejects_bad_input(person_repo) -> None:
    service = _service(person_repo)
    person = await service.register(RegisterRequest(email="anil@example.com", password="secret1"))

    with pytest.raises(InvalidArgumentError):
        await service.update_step(person.person_id, "horoscope", {})
    with pytest.raises(ValidationFailedError):
        await service.update_step(person.person_id, "basic", {"age": 17})
    with pytest.raises(ValidationFailedError):
        await service.update_step(person.person_id, "basic", {"height": 90})
    with pytest.raises(ValidationFailedError):
        await service.update_step(person.person_id, "preferences", {"ageRange": {"min": 40, "max": 30}})
    with pytest.raises(ValidationFailedError):
        await service.update_step(person.person_id, "preferences", {"ageRange": {"min": 60}})
    with pytest.raises(ValidationFailedError):
        await service.update_step(person.person_id, "cultural", {"religion": "zoroastrian"})
    with pytest.raises(ValidationFailedError):
        await service.update_step(person.person_id, "career", {"annualIncome": "above_100lpa"})

    unchanged = await person_repo.get_by_id(person.id)
    assert unchanged.basic_info.age is None


@pytest.mark.asyncio
async def test_update_profile_merges_sections(person_repo) -> None:
    service = _service(person_repo)
    person = await service.register(RegisterRequest(email="latha@example.com", password="secret1"))

    patch = ProfileUpdate.model_validate(
        {
            "basicInfo": {"name": "Latha", "age": 31, "gender": "female"},
            "culturalInfo": {"religion": "christian"},
            "careerInfo": {"profession": "Architect"},
            "about": "Loves trekking",
        }
    )
    profile = await service.update_profile(person.person_id, patch)
    assert profile.is_profile_complete is True
    assert profile.about == "Loves trekking"

    profile = await service.update_profile(
        person.person_id, ProfileUpdate.model_validate({"careerInfo": {}})
    )
    assert profile.is_profile_complete is False
    assert profile.basic_info.name == "Latha"


@pytest.mark.asyncio
async def test_update_profile_null_clears_free_text(person_repo) -> None:
    service = _service(person_repo)
    person = await service.register(RegisterRequest(email="meera@example.com", password="secret1"))

    await service.update_profile(
        person.person_id,
        ProfileUpdate.model_validate(
            {
                "basicInfo": {"name": "Meera", "age": 27, "gender": "female"},
                "about": "Classical dancer",
                "profilePhoto": "https://img.example.com/meera.jpg",
            }
        ),
    )
    profile = await service.update_profile(
        person.person_id, ProfileUpdate.model_validate({"about": None, "profilePhoto": None})
    )
    assert profile.about is None
    assert profile.profile_photo is None
    assert profile.basic_info.name == "Meera"

    profile = await service.update_profile(
        person.person_id, ProfileUpdate.model_validate({"basicInfo": None})
    )
    assert profile.basic_info.name == "Meera"


@pytest.mark.asyncio
async def test_preferences_step_fills_omitted_range_bounds(person_repo) -> None:
    service = _service(person_repo)
    person = await service.register(RegisterRequest(email="ravi@example.com", password="secret1"))

    profile = await service.update_step(
        person.person_id, "preferences", {"ageRange": {"min": 25}, "heightRange": {"max": 180}}
    )

    assert profile.partner_preferences.age_range.min == 25
    assert profile.partner_preferences.age_range.max == 50
    assert profile.partner_preferences.height_range.min == 100
    assert profile.partner_preferences.height_range.max == 180
    assert profile.is_profile_complete is True

    stored = await person_repo.get_by_id(person.id)
    assert stored.partner_preferences.age_range.max == 50


@pytest.mark.asyncio
async def test_public_profile_gates_contact(person_repo, person_factory) -> None:
    service = _service(person_repo)
    viewer = await person_factory(name="Viewer", gender="male", age=30, balance=20)
    target = await person_factory(name="Target", gender="female", age=27)

    hidden = await service.get_public_profile(viewer.person_id, target.person_id)
    assert hidden.email is None
    assert hidden.phone is None
    assert hidden.contact_unlocked is False

    await WalletService(person_repo, unlock_cost=10).unlock(viewer.person_id, target.person_id)

    shown = await service.get_public_profile(viewer.person_id, target.person_id)
    assert shown.email == target.email
    assert shown.contact_unlocked is True

    await service.set_banned(target.person_id, True)
    with pytest.raises(NotFoundError):
        await service.get_public_profile(viewer.person_id, target.person_id)


@pytest.mark.asyncio
async def test_delete_account_strips_connection_references(person_repo, person_factory) -> None:
    service = _service(person_repo)
    connections = ConnectionService(person_repo)
    leaving = await person_factory(name="Leaving", gender="male", age=30)
    first = await person_factory(name="First", gender="female", age=28)
    second = await person_factory(name="Second", gender="female", age=29)

    await connections.send(leaving.person_id, first.person_id, "hello")
    await connections.send(second.person_id, leaving.person_id)

    stripped = await service.delete_account(leaving.person_id)
    assert stripped == 2
    assert await person_repo.get_by_id(leaving.id) is None
    assert (await person_repo.get_by_id(first.id)).connection_requests == []
    assert (await person_repo.get_by_id(second.id)).connection_requests == []

    with pytest.raises(NotFoundError):
        await service.delete_account(leaving.person_id)


@pytest.mark.asyncio
async def test_ban_toggles_active_flag(person_repo, person_factory) -> None:
    service = _service(person_repo)
    person = await person_factory(name="Banned", gender="male", age=33)

    banned = await service.set_banned(person.person_id, True)
    assert banned.is_active is False
    restored = await service.set_banned(person.person_id, False)
    assert restored.is_active is True
