from fastapi import APIRouter, Depends, Query

from ..models.wallet import (
    BalanceResponse,
    TransactionsPage,
    UnlockRequest,
    UnlockResult,
    UnlockedProfilesResponse,
)
from ..services.wallet_service import WalletService, get_wallet_service
from .auth import require_current_person_id

router = APIRouter(prefix="/wallet", tags=["wallet"])


@router.get("/balance", response_model=BalanceResponse)
async def balance(
    person_id: str = Depends(require_current_person_id),
    service: WalletService = Depends(get_wallet_service),
):
    current = await service.balance(person_id)
    return BalanceResponse(balance=current, unlockCost=service.unlock_cost)


@router.get("/transactions", response_model=TransactionsPage)
async def transactions(
    limit: int = Query(default=20),
    skip: int = Query(default=0),
    person_id: str = Depends(require_current_person_id),
    service: WalletService = Depends(get_wallet_service),
):
    return await service.transactions(person_id, limit=limit, skip=skip)


@router.post("/unlock-profile", response_model=UnlockResult)
async def unlock_profile(
    payload: UnlockRequest,
    person_id: str = Depends(require_current_person_id),
    service: WalletService = Depends(get_wallet_service),
):
    return await service.unlock(person_id, payload.target_user_id)


@router.get("/profiles-unlocked", response_model=UnlockedProfilesResponse)
async def profiles_unlocked(
    person_id: str = Depends(require_current_person_id),
    service: WalletService = Depends(get_wallet_service),
):
    return await service.unlocked_profiles(person_id)
