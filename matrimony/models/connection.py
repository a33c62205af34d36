from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from .person import ConnectionDirection, ConnectionStatus, PersonSummary


class ConnectionSendRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    receiver_id: Optional[str] = Field(default=None, alias="receiverId")
    message: Optional[str] = Field(default=None, max_length=500)


class ConnectionRespondRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    requester_id: Optional[str] = Field(default=None, alias="requesterId")
    # Checked by the service so a bad action reports InvalidArgument
    action: Optional[str] = None


class ConnectionStatusResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    counterparty_id: str = Field(alias="counterpartyId")
    status: ConnectionStatus
    responded_at: Optional[int] = Field(default=None, alias="respondedAt")


class ConnectionRequestView(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    counterparty_id: str = Field(alias="counterpartyId")
    user: Optional[PersonSummary] = None
    status: ConnectionStatus
    direction: ConnectionDirection
    message: str = ""
    created_at: int = Field(alias="createdAt")
    responded_at: Optional[int] = Field(default=None, alias="respondedAt")


class ConnectionCounts(BaseModel):
    total: int = 0
    pending: int = 0
    accepted: int = 0
    rejected: int = 0


class ConnectionRequestsResponse(BaseModel):
    requests: List[ConnectionRequestView] = Field(default_factory=list)
    counts: ConnectionCounts = Field(default_factory=ConnectionCounts)


class MatchView(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user: PersonSummary
    connected_at: int = Field(alias="connectedAt")
    initiated_by: Literal["me", "them"] = Field(alias="initiatedBy")


class MatchesResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    matches: List[MatchView] = Field(default_factory=list)
    total_matches: int = Field(default=0, alias="totalMatches")


class PendingView(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user: PersonSummary
    message: str = ""
    created_at: int = Field(alias="createdAt")


class AllConnectionsResponse(BaseModel):
    pending: List[PendingView] = Field(default_factory=list)
    accepted: List[MatchView] = Field(default_factory=list)
    counts: dict = Field(default_factory=dict)


class ConnectionRemovalResponse(BaseModel):
    status: Literal["ok"] = "ok"
    removed: bool = False


__all__ = [
    "AllConnectionsResponse",
    "ConnectionCounts",
    "ConnectionRemovalResponse",
    "ConnectionRequestView",
    "ConnectionRequestsResponse",
    "ConnectionRespondRequest",
    "ConnectionSendRequest",
    "ConnectionStatusResponse",
    "MatchView",
    "MatchesResponse",
    "PendingView",
]
