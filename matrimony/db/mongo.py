from typing import Final
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING

from .collections import PERSONS_COLLECTION

# Mirrors the recommendation query shape: active + complete + gender + age
RECOMMENDATION_INDEX: Final[str] = "persons_recommendation_idx"


async def ensure_person_indexes(db: AsyncIOMotorDatabase) -> None:
    collection = db[PERSONS_COLLECTION]
    await collection.create_index("email", name="persons_email_unique", unique=True)
    await collection.create_index("phone", name="persons_phone_idx")
    await collection.create_index(
        [
            ("isActive", ASCENDING),
            ("isProfileComplete", ASCENDING),
            ("basicInfo.gender", ASCENDING),
            ("basicInfo.age", ASCENDING),
        ],
        name=RECOMMENDATION_INDEX,
    )
    await collection.create_index(
        [
            ("isActive", ASCENDING),
            ("isProfileComplete", ASCENDING),
            ("culturalInfo.religion", ASCENDING),
        ],
        name="persons_religion_idx",
    )
    await collection.create_index("basicInfo.city", name="persons_city_idx")
    await collection.create_index("careerInfo.annualIncome", name="persons_income_idx")
    await collection.create_index([("lastActive", DESCENDING)], name="persons_last_active_idx")
    await collection.create_index(
        "connectionRequests.counterpartyId",
        name="persons_connection_counterparty_idx",
    )


__all__ = ["RECOMMENDATION_INDEX", "ensure_person_indexes"]
