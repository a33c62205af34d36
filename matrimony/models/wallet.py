from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .person import PersonSummary, WalletTransaction


class BalanceResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    balance: int
    unlock_cost: int = Field(alias="unlockCost")


class UnlockRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    target_user_id: Optional[str] = Field(default=None, alias="targetUserId")


class UnlockResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    already_unlocked: bool = Field(default=False, alias="alreadyUnlocked")
    coins_used: int = Field(default=0, alias="coinsUsed")
    balance: int


class CreditRequest(BaseModel):
    amount: int
    description: Optional[str] = Field(default=None, max_length=200)


class CreditResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    credits_added: int = Field(alias="creditsAdded")
    balance: int


class TransactionView(WalletTransaction):
    related_user: Optional[PersonSummary] = Field(default=None, alias="relatedUser")


class TransactionsPage(BaseModel):
    transactions: List[TransactionView] = Field(default_factory=list)
    total: int = 0


class UnlockedProfileView(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    counterparty_id: str = Field(alias="counterpartyId")
    unlocked_at: int = Field(alias="unlockedAt")
    user: Optional[PersonSummary] = None


class UnlockedProfilesResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    unlocked_profiles: List[UnlockedProfileView] = Field(default_factory=list, alias="unlockedProfiles")


__all__ = [
    "BalanceResponse",
    "CreditRequest",
    "CreditResult",
    "TransactionView",
    "TransactionsPage",
    "UnlockRequest",
    "UnlockResult",
    "UnlockedProfileView",
    "UnlockedProfilesResponse",
]
