"""Coin wallet: balance, append-only transaction log and profile unlocks."""

from __future__ import annotations

import logging
import time
from typing import Any, Optional

from ..config import get_settings
from ..db import get_db
from ..errors import ConflictError, InvalidArgumentError, NotFoundError
from ..models.identifiers import parse_person_id
from ..models.person import PersonDocument, ProfileUnlock, WalletTransaction
from ..models.wallet import (
    CreditResult,
    TransactionView,
    TransactionsPage,
    UnlockResult,
    UnlockedProfileView,
    UnlockedProfilesResponse,
)
from ..repositories.exceptions import NotFoundRepositoryError
from ..repositories.person import PersonRepository

LOGGER = logging.getLogger("uvicorn.error")


class WalletService:
    """Wallet ledger for one store; ``unlock_cost`` is fixed per instance."""

    def __init__(self, repository: PersonRepository, *, unlock_cost: int = 10) -> None:
        if unlock_cost <= 0:
            raise ValueError("unlock_cost must be positive")
        self._repository = repository
        self._unlock_cost = unlock_cost

    @property
    def unlock_cost(self) -> int:
        return self._unlock_cost

    @staticmethod
    def _now_ms() -> int:
        return int(time.time() * 1000)

    async def _load(self, person_id: Any, *, field: str = "userId") -> PersonDocument:
        person = await self._repository.get_by_id(parse_person_id(person_id, field=field))
        if not person:
            raise NotFoundError("user not found")
        return person

    async def balance(self, person_id: Any) -> int:
        person = await self._load(person_id)
        return person.wallet.balance

    async def has_unlocked(self, person_id: Any, target_id: Any) -> bool:
        person = await self._load(person_id)
        return person.wallet.has_unlocked(str(parse_person_id(target_id, field="targetUserId")))

    async def unlock(self, person_id: Any, target_id: Any) -> UnlockResult:
        """Spend ``unlock_cost`` once per target; repeats are free no-ops."""

        person_oid = parse_person_id(person_id)
        target_oid = parse_person_id(target_id, field="targetUserId")
        if person_oid == target_oid:
            raise InvalidArgumentError("cannot unlock your own profile")

        person = await self._load(person_oid)
        target_key = str(target_oid)
        if person.wallet.has_unlocked(target_key):
            return UnlockResult(alreadyUnlocked=True, balance=person.wallet.balance)

        if not await self._repository.get_by_id(target_oid):
            raise NotFoundError("target user not found")

        current = person.wallet.balance
        if current < self._unlock_cost:
            raise ConflictError(
                "insufficient balance",
                payload={"currentBalance": current, "required": self._unlock_cost},
            )

        now_ms = self._now_ms()
        applied = await self._repository.apply_unlock(
            person.id,
            cost=self._unlock_cost,
            transaction=WalletTransaction(
                type="debit",
                amount=self._unlock_cost,
                description=f"Unlocked profile of user {target_key}",
                relatedUserId=target_key,
                createdAt=now_ms,
            ),
            unlock=ProfileUnlock(counterpartyId=target_key, unlockedAt=now_ms),
            updated_at=now_ms,
        )
        if not applied:
            # Another writer got there first; report what the store now holds
            LOGGER.warning("Unlock guard rejected %s -> %s, re-reading wallet", person.person_id, target_key)
            person = await self._load(person_oid)
            if person.wallet.has_unlocked(target_key):
                return UnlockResult(alreadyUnlocked=True, balance=person.wallet.balance)
            raise ConflictError(
                "insufficient balance",
                payload={"currentBalance": person.wallet.balance, "required": self._unlock_cost},
            )

        LOGGER.info("Person %s unlocked %s for %s coins", person.person_id, target_key, self._unlock_cost)
        return UnlockResult(coinsUsed=self._unlock_cost, balance=current - self._unlock_cost)

    async def credit(
        self,
        person_id: Any,
        amount: Any,
        description: Optional[str] = None,
    ) -> CreditResult:
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise InvalidArgumentError("valid amount is required")

        person_oid = parse_person_id(person_id)
        now_ms = self._now_ms()
        try:
            updated = await self._repository.apply_credit(
                person_oid,
                transaction=WalletTransaction(
                    type="credit",
                    amount=amount,
                    description=(description or "").strip() or "Credits added",
                    createdAt=now_ms,
                ),
                updated_at=now_ms,
            )
        except NotFoundRepositoryError:
            raise NotFoundError("user not found") from None

        LOGGER.info("Credited %s coins to %s", amount, updated.person_id)
        return CreditResult(creditsAdded=amount, balance=updated.wallet.balance)

    async def transactions(self, person_id: Any, limit: int = 20, skip: int = 0) -> TransactionsPage:
        if limit < 1:
            raise InvalidArgumentError("limit must be at least 1")
        if skip < 0:
            raise InvalidArgumentError("skip must not be negative")

        person = await self._load(person_id)
        # Newest first; entries sharing a timestamp keep latest-appended first
        ordered = list(reversed(person.wallet.transactions))
        ordered.sort(key=lambda t: t.created_at, reverse=True)
        window = ordered[skip : skip + limit]

        related = await self._repository.get_summaries(
            t.related_user_id for t in window if t.related_user_id
        )
        views = [
            TransactionView(
                **t.model_dump(by_alias=True),
                relatedUser=related.get(t.related_user_id) if t.related_user_id else None,
            )
            for t in window
        ]
        return TransactionsPage(transactions=views, total=len(person.wallet.transactions))

    async def unlocked_profiles(self, person_id: Any) -> UnlockedProfilesResponse:
        person = await self._load(person_id)
        entries = person.wallet.profiles_unlocked
        summaries = await self._repository.get_summaries(e.counterparty_id for e in entries)
        return UnlockedProfilesResponse(
            unlockedProfiles=[
                UnlockedProfileView(
                    counterpartyId=e.counterparty_id,
                    unlockedAt=e.unlocked_at,
                    user=summaries.get(e.counterparty_id),
                )
                for e in entries
            ]
        )


def get_wallet_service() -> WalletService:
    settings = get_settings()
    return WalletService(PersonRepository(get_db()), unlock_cost=settings.unlock_cost)


__all__ = ["WalletService", "get_wallet_service"]
