"""Payloads carried on the buses."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict

from peerbus.domain.models import PeerRole


class Announcement(BaseModel):
    """Presence announcement emitted by a discovery peer.

    *token* is opaque: it only has to compare equal between peers of the same
    scope. Element handles and other arbitrary objects are accepted.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    token: Any
    peer_id: str
    role: str


# ---------------------------------------------------------------------------
# Lifecycle events (emitted on the shared application bus)
# ---------------------------------------------------------------------------

PEER_ACTIVATED = "peer.activated"
PEER_DISCOVERED = "peer.discovered"
PEER_DEACTIVATED = "peer.deactivated"
SCOPE_CLOSED = "scope.closed"


class PeerActivated(BaseModel):
    """Fired when a peer has subscribed and announced itself in a scope."""

    scope_id: str
    peer_id: str
    role: PeerRole


class PeerDiscovered(BaseModel):
    """Fired once when a peer detects its counterpart."""

    scope_id: str
    peer_id: str
    counterpart_id: str
    discovered_at: datetime


class PeerDeactivated(BaseModel):
    """Fired when a peer's subscription is torn down."""

    scope_id: str
    peer_id: str


class ScopeClosed(BaseModel):
    """Fired when a scope is closed, after its peers were deactivated and before its bus is dropped."""

    scope_id: str
    peer_ids: list[str]
