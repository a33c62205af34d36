from __future__ import annotations

from collections.abc import AsyncIterator
from pathlib import Path
import sys
import time
from typing import Any, Dict, Optional

import pytest
import pytest_asyncio
from bson import ObjectId
from httpx import ASGITransport, AsyncClient
from mongomock_motor import AsyncMongoMockClient

SERVICE_ROOT = Path(__file__).resolve().parents[1]
if str(SERVICE_ROOT) not in sys.path:
    sys.path.insert(0, str(SERVICE_ROOT))

from matrimony.main import app
from matrimony.db import close_mongo_connection, connect_to_mongo, get_db
from matrimony.config import get_settings
from matrimony.repositories.person import PersonRepository
from matrimony.services import person_service


@pytest.fixture(autouse=True)
def _env_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MONGO_URI", "mongodb://localhost:27017/test")
    monkeypatch.setenv("MONGO_DB_NAME", "matrimony-test")
    monkeypatch.setenv("JWT_SECRET", "test-secret")
    monkeypatch.setenv("ADMIN_API_TOKEN", "admin-secret")
    monkeypatch.setenv("WALLET_UNLOCK_COST", "10")
    monkeypatch.setenv("AUTH_RATE_LIMIT_MAX", "1000")
    get_settings.cache_clear()  # type: ignore[attr-defined]
    monkeypatch.setattr(person_service, "_RATE_LIMITER", None)


@pytest_asyncio.fixture
async def mongo_client(monkeypatch: pytest.MonkeyPatch) -> AsyncIterator[AsyncMongoMockClient]:
    client = AsyncMongoMockClient()

    def _client_factory(*_args, **_kwargs) -> AsyncMongoMockClient:
        return client

    monkeypatch.setattr("matrimony.db.AsyncIOMotorClient", _client_factory)
    yield client
    client.close()


@pytest_asyncio.fixture
async def database(mongo_client: AsyncMongoMockClient):
    await connect_to_mongo()
    yield get_db()
    await close_mongo_connection()


@pytest_asyncio.fixture
async def api_client(database) -> AsyncIterator[AsyncClient]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client


@pytest.fixture
def person_repo(database) -> PersonRepository:
    return PersonRepository(database)


def make_person(
    *,
    name: str,
    gender: str,
    age: int,
    religion: str = "hindu",
    email: Optional[str] = None,
    caste: Optional[str] = None,
    education: str = "bachelors",
    income: str = "5_to_10lpa",
    city: str = "Mumbai",
    state: str = "Maharashtra",
    height: Optional[float] = None,
    preferences: Optional[Dict[str, Any]] = None,
    complete: bool = True,
    active: bool = True,
    balance: int = 0,
    password_hash: str = "not-a-real-hash",
) -> Dict[str, Any]:
    """Build a stored person document with sensible defaults."""

    now_ms = int(time.time() * 1000)
    basic: Dict[str, Any] = {"name": name, "age": age, "gender": gender, "city": city, "state": state}
    if height is not None:
        basic["height"] = height
    return {
        "_id": ObjectId(),
        "email": email or f"{name.lower().replace(' ', '.')}.{ObjectId()}@example.com",
        "phone": "9000000000",
        "passwordHash": password_hash,
        "basicInfo": basic,
        "culturalInfo": {"religion": religion, "caste": caste},
        "careerInfo": {"education": education, "annualIncome": income, "profession": "Engineer"},
        "partnerPreferences": preferences or {},
        "connectionRequests": [],
        "wallet": {"balance": balance, "transactions": [], "profilesUnlocked": []},
        "isActive": active,
        "isVerified": False,
        "isProfileComplete": complete,
        "lastActive": now_ms,
        "createdAt": now_ms,
        "updatedAt": now_ms,
    }


@pytest.fixture
def person_factory(person_repo: PersonRepository):
    async def _create(**kwargs):
        return await person_repo.insert_document(make_person(**kwargs))

    return _create
