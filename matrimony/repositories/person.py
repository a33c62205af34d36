"""Repository helpers for person documents."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorCollection, AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import ConnectionFailure, DuplicateKeyError, ExecutionTimeout

from ..db.collections import PERSONS_COLLECTION
from ..errors import StoreUnavailableError
from ..models.person import (
    ConnectionRequest,
    PersonDocument,
    PersonSummary,
    ProfileUnlock,
    WalletTransaction,
)
from .exceptions import DuplicateKeyRepositoryError, NotFoundRepositoryError

LOGGER = logging.getLogger("uvicorn.error")

SUMMARY_PROJECTION: Dict[str, int] = {
    "basicInfo": 1,
    "culturalInfo": 1,
    "careerInfo": 1,
    "profilePhoto": 1,
    "lastActive": 1,
    "isActive": 1,
}


@contextmanager
def _store_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except (ConnectionFailure, ExecutionTimeout) as exc:
        LOGGER.error("Person store unavailable during %s: %s", operation, exc)
        raise StoreUnavailableError(f"store unavailable during {operation}") from exc


def _object_ids(ids: Iterable[Any]) -> List[ObjectId]:
    result: List[ObjectId] = []
    for value in ids:
        if isinstance(value, ObjectId):
            result.append(value)
        elif isinstance(value, str) and ObjectId.is_valid(value):
            result.append(ObjectId(value))
    return result


class PersonRepository:
    """Thin abstraction over the persons MongoDB collection.

    Writes are read-modify-write at the document level with no version check,
    so concurrent writers to one person race and the last write wins.
    """

    def __init__(self, database: AsyncIOMotorDatabase) -> None:
        self._database = database
        self._collection: AsyncIOMotorCollection = database[PERSONS_COLLECTION]

    @property
    def collection(self) -> AsyncIOMotorCollection:
        return self._collection

    async def create_person(
        self,
        *,
        email: str,
        password_hash: str,
        created_at: int,
        phone: Optional[str] = None,
        name: Optional[str] = None,
    ) -> PersonDocument:
        """Insert a minimal person created at registration."""

        doc: Dict[str, Any] = {
            "_id": ObjectId(),
            "email": email.lower(),
            "phone": phone or None,
            "passwordHash": password_hash,
            "basicInfo": {"name": name or ""},
            "connectionRequests": [],
            "wallet": {"balance": 0, "transactions": [], "profilesUnlocked": []},
            "isActive": True,
            "isVerified": False,
            "isProfileComplete": False,
            "lastActive": created_at,
            "createdAt": created_at,
            "updatedAt": created_at,
        }
        try:
            with _store_errors("create person"):
                await self._collection.insert_one(doc)
        except DuplicateKeyError as exc:
            LOGGER.debug("Duplicate person insertion for email=%s", email)
            raise DuplicateKeyRepositoryError("email already registered", key="email") from exc
        return PersonDocument(**doc)

    async def insert_document(self, doc: Mapping[str, Any]) -> PersonDocument:
        """Insert a fully formed person document (seeding and tests)."""

        payload = dict(doc)
        payload.setdefault("_id", ObjectId())
        try:
            with _store_errors("insert person"):
                await self._collection.insert_one(payload)
        except DuplicateKeyError as exc:
            raise DuplicateKeyRepositoryError("email already registered", key="email") from exc
        return PersonDocument(**payload)

    async def get_by_id(self, person_id: ObjectId) -> Optional[PersonDocument]:
        with _store_errors("find person"):
            doc = await self._collection.find_one({"_id": person_id})
        return PersonDocument(**doc) if doc else None

    async def get_by_email(self, email: str) -> Optional[PersonDocument]:
        with _store_errors("find person by email"):
            doc = await self._collection.find_one({"email": email.strip().lower()})
        return PersonDocument(**doc) if doc else None

    async def email_exists(self, email: str) -> bool:
        with _store_errors("check email"):
            doc = await self._collection.find_one(
                {"email": email.strip().lower()}, projection={"_id": 1}
            )
        return doc is not None

    async def get_summaries(
        self,
        person_ids: Iterable[Any],
        *,
        active_only: bool = False,
    ) -> Dict[str, PersonSummary]:
        """Resolve counterparty display fields keyed by hex id."""

        object_ids = _object_ids(person_ids)
        if not object_ids:
            return {}
        query: Dict[str, Any] = {"_id": {"$in": object_ids}}
        if active_only:
            query["isActive"] = True
        with _store_errors("resolve summaries"):
            rows = await self._collection.find(query, projection=SUMMARY_PROJECTION).to_list(length=None)
        return {str(row["_id"]): PersonSummary(**row) for row in rows}

    async def update_fields(self, person_id: ObjectId, updates: Dict[str, Any]) -> PersonDocument:
        """``$set`` the given fields and return the updated person."""

        with _store_errors("update person"):
            result = await self._collection.find_one_and_update(
                {"_id": person_id},
                {"$set": updates},
                return_document=ReturnDocument.AFTER,
            )
        if not result:
            raise NotFoundRepositoryError("person not found", person_id=person_id)
        return PersonDocument(**result)

    async def save_connection_requests(
        self,
        person_id: ObjectId,
        requests: List[ConnectionRequest],
        *,
        updated_at: int,
    ) -> bool:
        """Write back a person's whole request list (last write wins)."""

        with _store_errors("save connection requests"):
            result = await self._collection.update_one(
                {"_id": person_id},
                {
                    "$set": {
                        "connectionRequests": [
                            request.model_dump(by_alias=True) for request in requests
                        ],
                        "updatedAt": updated_at,
                    }
                },
            )
        return bool(result.matched_count)

    async def count_candidates(self, query: Dict[str, Any]) -> int:
        with _store_errors("count candidates"):
            return await self._collection.count_documents(query)

    async def find_candidates(
        self,
        query: Dict[str, Any],
        *,
        skip: int,
        limit: int,
        projection: Dict[str, int],
    ) -> List[Dict[str, Any]]:
        """Fetch one page of raw candidate documents in natural order."""

        with _store_errors("find candidates"):
            cursor = self._collection.find(query, projection=projection).skip(skip).limit(limit)
            return await cursor.to_list(length=limit)

    async def apply_unlock(
        self,
        person_id: ObjectId,
        *,
        cost: int,
        transaction: WalletTransaction,
        unlock: ProfileUnlock,
        updated_at: int,
    ) -> bool:
        """Debit, log and record an unlock in one single-document update.

        Matches only while the balance covers ``cost`` and the counterparty is
        not yet unlocked; returns False when either guard fails.
        """

        with _store_errors("unlock profile"):
            result = await self._collection.update_one(
                {
                    "_id": person_id,
                    "wallet.balance": {"$gte": cost},
                    "wallet.profilesUnlocked.counterpartyId": {"$ne": unlock.counterparty_id},
                },
                {
                    "$inc": {"wallet.balance": -cost},
                    "$push": {
                        "wallet.transactions": transaction.model_dump(by_alias=True),
                        "wallet.profilesUnlocked": unlock.model_dump(by_alias=True),
                    },
                    "$set": {"updatedAt": updated_at},
                },
            )
        return bool(result.modified_count)

    async def apply_credit(
        self,
        person_id: ObjectId,
        *,
        transaction: WalletTransaction,
        updated_at: int,
    ) -> PersonDocument:
        with _store_errors("credit wallet"):
            result = await self._collection.find_one_and_update(
                {"_id": person_id},
                {
                    "$inc": {"wallet.balance": transaction.amount},
                    "$push": {"wallet.transactions": transaction.model_dump(by_alias=True)},
                    "$set": {"updatedAt": updated_at},
                },
                return_document=ReturnDocument.AFTER,
            )
        if not result:
            raise NotFoundRepositoryError("person not found", person_id=person_id)
        return PersonDocument(**result)

    async def delete_person(self, person_id: ObjectId) -> bool:
        with _store_errors("delete person"):
            result = await self._collection.delete_one({"_id": person_id})
        return bool(result.deleted_count)

    async def strip_connection_references(self, person_id: str) -> int:
        """Remove every other person's request records pointing at ``person_id``."""

        with _store_errors("strip connection references"):
            result = await self._collection.update_many(
                {"connectionRequests.counterpartyId": person_id},
                {"$pull": {"connectionRequests": {"counterpartyId": person_id}}},
            )
        return int(result.modified_count)


__all__ = ["PersonRepository", "SUMMARY_PROJECTION"]
