import hmac
import logging

from fastapi import APIRouter, Depends, Header, HTTPException, status

from ..config import get_settings
from ..db import get_db
from ..db.mongo import ensure_person_indexes
from ..models.person import BanRequest, PersonProfile
from ..models.wallet import CreditRequest, CreditResult
from ..services.person_service import PersonService, get_person_service
from ..services.wallet_service import WalletService, get_wallet_service

LOGGER = logging.getLogger("uvicorn.error")

router = APIRouter(prefix="/admin", tags=["admin"])


async def require_admin(x_admin_token: str = Header(default="")) -> None:
    expected = get_settings().admin_api_token
    if not expected:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="admin endpoints disabled")
    if not hmac.compare_digest(x_admin_token.encode("utf-8"), expected.encode("utf-8")):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="invalid admin token")


@router.post("/ensure-indexes", dependencies=[Depends(require_admin)])
async def ensure_indexes():
    await ensure_person_indexes(get_db())
    return {"status": "ok"}


@router.put("/users/{person_id}/ban", response_model=PersonProfile, dependencies=[Depends(require_admin)])
async def ban_user(
    person_id: str,
    body: BanRequest,
    service: PersonService = Depends(get_person_service),
):
    return await service.set_banned(person_id, body.ban)


@router.delete("/users/{person_id}", dependencies=[Depends(require_admin)])
async def delete_user(
    person_id: str,
    service: PersonService = Depends(get_person_service),
):
    stripped = await service.delete_account(person_id)
    return {"status": "ok", "strippedReferences": stripped}


@router.post("/users/{person_id}/credits", response_model=CreditResult, dependencies=[Depends(require_admin)])
async def add_credits(
    person_id: str,
    body: CreditRequest,
    service: WalletService = Depends(get_wallet_service),
):
    LOGGER.info("Admin credit of %s coins requested for %s", body.amount, person_id)
    return await service.credit(person_id, body.amount, body.description)
