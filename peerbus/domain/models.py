"""Domain models for the coordination service."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field, field_validator


class PeerRole(StrEnum):
    SHOW = "show"
    HIDE = "hide"


class PeerState(StrEnum):
    ANNOUNCING = "announcing"
    DISCOVERED = "discovered"
    DEACTIVATED = "deactivated"


class TimelineEntryType(StrEnum):
    SCOPE_CREATED = "scope_created"
    PEER_ACTIVATED = "peer_activated"
    PEER_DISCOVERED = "peer_discovered"
    PEER_DEACTIVATED = "peer_deactivated"
    SCOPE_CLOSED = "scope_closed"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


# ---------------------------------------------------------------------------
# Core domain models
# ---------------------------------------------------------------------------


class Scope(BaseModel):
    id: str = Field(default_factory=_new_id)
    name: str | None = None
    created_at: datetime = Field(default_factory=_utcnow)


class PeerRecord(BaseModel):
    id: str = Field(default_factory=_new_id)
    scope_id: str
    role: PeerRole
    state: PeerState = PeerState.ANNOUNCING
    activated_at: datetime = Field(default_factory=_utcnow)
    discovered_at: datetime | None = None
    counterpart_id: str | None = None

    @property
    def discovered(self) -> bool:
        return self.discovered_at is not None


class TimelineEntry(BaseModel):
    id: str = Field(default_factory=_new_id)
    scope_id: str
    peer_id: str | None = None
    timestamp: datetime = Field(default_factory=_utcnow)
    type: TimelineEntryType
    payload: dict = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Request / Response DTOs
# ---------------------------------------------------------------------------


class CreateScopeRequest(BaseModel):
    name: str | None = None


class ActivatePeerRequest(BaseModel):
    role: PeerRole


class PeerView(BaseModel):
    id: str
    scope_id: str
    role: PeerRole
    state: PeerState
    discovered: bool
    counterpart_id: str | None = None
    delegates: bool


class EmitRequest(BaseModel):
    key: str
    data: Any = None

    @field_validator("key", mode="before")
    @classmethod
    def _key_is_string(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise ValueError("key must be a string")
        return value


class EmitResponse(BaseModel):
    key: str
    subscribers: int


class KeyInfo(BaseModel):
    key: str
    has_last_value: bool
    subscribers: int
