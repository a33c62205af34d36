from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from ..models.connection import (
    AllConnectionsResponse,
    ConnectionRemovalResponse,
    ConnectionRequestsResponse,
    ConnectionRespondRequest,
    ConnectionSendRequest,
    ConnectionStatusResponse,
    MatchesResponse,
)
from ..services.connection_service import ConnectionService, get_connection_service
from .auth import require_current_person_id

router = APIRouter(prefix="/connection", tags=["connections"])


@router.post("/send", response_model=ConnectionStatusResponse, status_code=status.HTTP_201_CREATED)
async def send_request(
    payload: ConnectionSendRequest,
    person_id: str = Depends(require_current_person_id),
    service: ConnectionService = Depends(get_connection_service),
):
    return await service.send(person_id, payload.receiver_id, payload.message)


@router.put("/respond", response_model=ConnectionStatusResponse)
async def respond(
    payload: ConnectionRespondRequest,
    person_id: str = Depends(require_current_person_id),
    service: ConnectionService = Depends(get_connection_service),
):
    return await service.respond(person_id, payload.requester_id, payload.action)


@router.get("/requests", response_model=ConnectionRequestsResponse)
async def list_requests(
    request_type: Optional[str] = Query(default=None, alias="type"),
    request_status: Optional[str] = Query(default=None, alias="status"),
    person_id: str = Depends(require_current_person_id),
    service: ConnectionService = Depends(get_connection_service),
):
    return await service.list_requests(person_id, request_type, request_status)


@router.get("/matches", response_model=MatchesResponse)
async def matches(
    person_id: str = Depends(require_current_person_id),
    service: ConnectionService = Depends(get_connection_service),
):
    return await service.list_matches(person_id)


@router.get("/all", response_model=AllConnectionsResponse)
async def all_connections(
    person_id: str = Depends(require_current_person_id),
    service: ConnectionService = Depends(get_connection_service),
):
    return await service.list_all(person_id)


@router.delete("/{counterparty_id}", response_model=ConnectionRemovalResponse)
async def remove_connection(
    counterparty_id: str,
    person_id: str = Depends(require_current_person_id),
    service: ConnectionService = Depends(get_connection_service),
):
    removed = await service.remove(person_id, counterparty_id)
    return ConnectionRemovalResponse(removed=removed)
