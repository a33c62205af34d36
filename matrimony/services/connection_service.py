"""Connection request workflow between two persons.

Each request lives twice: a ``sent`` record on the requester and a
``received`` record on the target, kept at the same status. The two writes
of every transition are separate document updates with no transaction, so a
failure between them leaves the pair out of step.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, List, Optional

from ..db import get_db
from ..errors import ConflictError, InvalidArgumentError, NotFoundError
from ..models.connection import (
    AllConnectionsResponse,
    ConnectionCounts,
    ConnectionRequestView,
    ConnectionRequestsResponse,
    ConnectionStatusResponse,
    MatchView,
    MatchesResponse,
    PendingView,
)
from ..models.identifiers import parse_person_id
from ..models.person import ConnectionRequest, PersonDocument
from ..repositories.person import PersonRepository

LOGGER = logging.getLogger("uvicorn.error")

RESPONSE_ACTIONS = {"accept": "accepted", "reject": "rejected"}
REQUEST_TYPES = ("sent", "received")
REQUEST_STATUSES = ("pending", "accepted", "rejected")


def _clean_message(value: Optional[str]) -> str:
    if not isinstance(value, str):
        return ""
    return value.strip()[:500]


class ConnectionService:
    """Send, answer, withdraw and list connection requests."""

    def __init__(self, repository: PersonRepository) -> None:
        self._repository = repository

    @staticmethod
    def _now_ms() -> int:
        return int(time.time() * 1000)

    async def _load(self, person_id: Any, *, field: str) -> PersonDocument:
        person = await self._repository.get_by_id(parse_person_id(person_id, field=field))
        if not person:
            raise NotFoundError("user not found")
        return person

    async def send(
        self,
        requester_id: Any,
        target_id: Any,
        message: Optional[str] = None,
    ) -> ConnectionStatusResponse:
        requester_oid = parse_person_id(requester_id)
        target_oid = parse_person_id(target_id, field="receiverId")
        if requester_oid == target_oid:
            raise InvalidArgumentError("cannot send request to yourself")

        requester = await self._load(requester_oid, field="userId")
        target = await self._load(target_oid, field="receiverId")
        if not target.is_active:
            raise InvalidArgumentError("this user is no longer active")

        existing = requester.find_request(target.person_id)
        if existing:
            raise ConflictError(
                f"connection request already {existing.status}",
                payload={"status": existing.status},
            )

        now_ms = self._now_ms()
        text = _clean_message(message)
        requester.connection_requests.append(
            ConnectionRequest(
                counterpartyId=target.person_id,
                status="pending",
                direction="sent",
                message=text,
                createdAt=now_ms,
            )
        )
        target.connection_requests.append(
            ConnectionRequest(
                counterpartyId=requester.person_id,
                status="pending",
                direction="received",
                message=text,
                createdAt=now_ms,
            )
        )

        await self._repository.save_connection_requests(
            requester.id, requester.connection_requests, updated_at=now_ms
        )
        await self._repository.save_connection_requests(
            target.id, target.connection_requests, updated_at=now_ms
        )
        LOGGER.info("Connection request %s -> %s sent", requester.person_id, target.person_id)
        return ConnectionStatusResponse(counterpartyId=target.person_id, status="pending")

    async def respond(
        self,
        responder_id: Any,
        requester_id: Any,
        action: Optional[str],
    ) -> ConnectionStatusResponse:
        new_status = RESPONSE_ACTIONS.get((action or "").strip().lower())
        if new_status is None:
            raise InvalidArgumentError('action must be either "accept" or "reject"')

        responder = await self._load(responder_id, field="userId")
        requester = await self._load(requester_id, field="requesterId")

        received = responder.find_request(requester.person_id, direction="received")
        if not received:
            raise NotFoundError("connection request not found")
        if received.status != "pending":
            raise ConflictError(
                f"request has already been {received.status}",
                payload={"status": received.status},
            )

        now_ms = self._now_ms()
        received.status = new_status
        received.responded_at = now_ms
        await self._repository.save_connection_requests(
            responder.id, responder.connection_requests, updated_at=now_ms
        )

        sent = requester.find_request(responder.person_id, direction="sent")
        if sent:
            sent.status = new_status
            sent.responded_at = now_ms
            await self._repository.save_connection_requests(
                requester.id, requester.connection_requests, updated_at=now_ms
            )
        else:
            # Responder's side stays updated; nothing to roll back
            LOGGER.warning(
                "Paired sent record missing on %s for responder %s",
                requester.person_id,
                responder.person_id,
            )

        LOGGER.info(
            "Connection request %s -> %s %s",
            requester.person_id,
            responder.person_id,
            new_status,
        )
        return ConnectionStatusResponse(
            counterpartyId=requester.person_id,
            status=new_status,
            respondedAt=now_ms,
        )

    async def remove(self, person_id: Any, counterparty_id: Any) -> bool:
        """Drop both records of a pair regardless of status."""

        person = await self._load(person_id, field="userId")
        counterparty_oid = parse_person_id(counterparty_id)
        counterparty_key = str(counterparty_oid)
        now_ms = self._now_ms()
        removed = False

        kept = [r for r in person.connection_requests if r.counterparty_id != counterparty_key]
        if len(kept) != len(person.connection_requests):
            await self._repository.save_connection_requests(person.id, kept, updated_at=now_ms)
            removed = True

        counterparty = await self._repository.get_by_id(counterparty_oid)
        if counterparty:
            kept = [
                r for r in counterparty.connection_requests if r.counterparty_id != person.person_id
            ]
            if len(kept) != len(counterparty.connection_requests):
                await self._repository.save_connection_requests(
                    counterparty.id, kept, updated_at=now_ms
                )
                removed = True

        if removed:
            LOGGER.info("Connection %s <-> %s removed", person.person_id, counterparty_key)
        return removed

    async def list_requests(
        self,
        person_id: Any,
        request_type: Optional[str] = None,
        status: Optional[str] = None,
    ) -> ConnectionRequestsResponse:
        person = await self._load(person_id, field="userId")
        everything = person.connection_requests
        requests = list(everything)

        if request_type in REQUEST_TYPES:
            requests = [r for r in requests if r.direction == request_type]
        if status in REQUEST_STATUSES:
            requests = [r for r in requests if r.status == status]
        requests.sort(key=lambda r: r.created_at, reverse=True)

        summaries = await self._repository.get_summaries(r.counterparty_id for r in requests)
        views = [
            ConnectionRequestView(
                counterpartyId=r.counterparty_id,
                user=summaries.get(r.counterparty_id),
                status=r.status,
                direction=r.direction,
                message=r.message,
                createdAt=r.created_at,
                respondedAt=r.responded_at,
            )
            for r in requests
        ]
        counts = ConnectionCounts(
            total=len(everything),
            pending=sum(1 for r in everything if r.status == "pending"),
            accepted=sum(1 for r in everything if r.status == "accepted"),
            rejected=sum(1 for r in everything if r.status == "rejected"),
        )
        return ConnectionRequestsResponse(requests=views, counts=counts)

    async def _accepted_views(self, person: PersonDocument) -> List[MatchView]:
        accepted = [r for r in person.connection_requests if r.status == "accepted"]
        summaries = await self._repository.get_summaries(
            (r.counterparty_id for r in accepted), active_only=True
        )
        matches = [
            MatchView(
                user=summaries[r.counterparty_id],
                connectedAt=r.responded_at or r.created_at,
                initiatedBy="me" if r.direction == "sent" else "them",
            )
            for r in accepted
            if r.counterparty_id in summaries
        ]
        matches.sort(key=lambda m: m.connected_at, reverse=True)
        return matches

    async def list_matches(self, person_id: Any) -> MatchesResponse:
        person = await self._load(person_id, field="userId")
        matches = await self._accepted_views(person)
        return MatchesResponse(matches=matches, totalMatches=len(matches))

    async def list_all(self, person_id: Any) -> AllConnectionsResponse:
        """Actionable pending-received requests next to accepted matches."""

        person = await self._load(person_id, field="userId")
        incoming = [
            r
            for r in person.connection_requests
            if r.status == "pending" and r.direction == "received"
        ]
        summaries = await self._repository.get_summaries(
            (r.counterparty_id for r in incoming), active_only=True
        )
        pending = [
            PendingView(user=summaries[r.counterparty_id], message=r.message, createdAt=r.created_at)
            for r in incoming
            if r.counterparty_id in summaries
        ]
        pending.sort(key=lambda p: p.created_at, reverse=True)
        accepted = await self._accepted_views(person)

        counts: Dict[str, int] = {"pending": len(pending), "accepted": len(accepted)}
        return AllConnectionsResponse(pending=pending, accepted=accepted, counts=counts)


def get_connection_service() -> ConnectionService:
    return ConnectionService(PersonRepository(get_db()))


__all__ = ["ConnectionService", "get_connection_service"]
