from fastapi import APIRouter, Depends, Header, HTTPException, Request, status

from ..models.person import (
    AuthTokenResponse,
    ChangePasswordRequest,
    LoginRequest,
    RegisterRequest,
)
from ..services.person_service import PersonService, get_person_service


router = APIRouter(prefix="/auth", tags=["auth"])


def _extract_token(authorization: str) -> str:
    if not authorization.lower().startswith("bearer "):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="missing bearer token")
    token = authorization.split(" ", 1)[1].strip()
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="missing bearer token")
    return token


async def require_current_person_id(
    authorization: str = Header(default=""),
    service: PersonService = Depends(get_person_service),
) -> str:
    if not authorization:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="authorization required")
    token = _extract_token(authorization)
    return service.person_id_from_token(token)


def _client_key(request: Request, action: str) -> str:
    ip = request.client.host if request.client else "unknown"
    return f"{action}:{ip}"


@router.post("/register", response_model=AuthTokenResponse, status_code=status.HTTP_201_CREATED)
async def register(
    body: RegisterRequest,
    request: Request,
    service: PersonService = Depends(get_person_service),
):
    if not service.allow_rate(_client_key(request, "register")):
        raise HTTPException(status_code=429, detail="rate limit exceeded")

    person = await service.register(body)
    return AuthTokenResponse(token=service.issue_token(person), profile=service.to_profile(person))


@router.post("/login", response_model=AuthTokenResponse)
async def login(
    body: LoginRequest,
    request: Request,
    service: PersonService = Depends(get_person_service),
):
    if not service.allow_rate(_client_key(request, "login")):
        raise HTTPException(status_code=429, detail="rate limit exceeded")

    person = await service.authenticate(body.email, body.password)
    return AuthTokenResponse(token=service.issue_token(person), profile=service.to_profile(person))


@router.put("/change-password")
async def change_password(
    body: ChangePasswordRequest,
    person_id: str = Depends(require_current_person_id),
    service: PersonService = Depends(get_person_service),
):
    await service.change_password(person_id, body.current_password, body.new_password)
    return {"status": "ok"}


__all__ = ["require_current_person_id", "router"]
