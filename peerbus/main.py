"""FastAPI application — entry point for the peer coordination service."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, HTTPException

from peerbus.config import load_settings
from peerbus.domain.bus import EventBus
from peerbus.domain.events import (
    PEER_ACTIVATED,
    PEER_DEACTIVATED,
    PEER_DISCOVERED,
    SCOPE_CLOSED,
    Announcement,
    PeerActivated,
    PeerDeactivated,
    PeerDiscovered,
    ScopeClosed,
)
from peerbus.domain.handlers import HandlerRegistry
from peerbus.domain.models import (
    ActivatePeerRequest,
    CreateScopeRequest,
    EmitRequest,
    EmitResponse,
    KeyInfo,
    PeerRecord,
    PeerState,
    PeerView,
    Scope,
    TimelineEntry,
    TimelineEntryType,
)
from peerbus.logging_config import configure_logging
from peerbus.repos.memory import PeerRepository, ScopeRepository, TimelineRepository
from peerbus.services.connector import PEER_TYPES, HidePeer, ScopedBusFactory, ShowPeer
from peerbus.services.discovery import DiscoveryPeer

LOGGER = logging.getLogger(__name__)

settings = load_settings()


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    configure_logging(settings)
    yield


app = FastAPI(title=settings.app_title, lifespan=lifespan)


def _report_observer_error(error: BaseException, key: str) -> None:
    LOGGER.error("Observer on scope key %r failed: %s", key, error, exc_info=error)


# ── Singletons (created at import time for simplicity) ────────────────
event_bus = EventBus()
bus_factory = ScopedBusFactory(error_sink=_report_observer_error)
scope_repo = ScopeRepository()
peer_repo = PeerRepository()
timeline_repo = TimelineRepository()

handler_registry = HandlerRegistry(
    bus=event_bus,
    peer_repo=peer_repo,
    timeline_repo=timeline_repo,
)


# ── Helpers ───────────────────────────────────────────────────────────


def _get_scope_or_404(scope_id: str) -> Scope:
    scope = scope_repo.get(scope_id)
    if scope is None:
        raise HTTPException(status_code=404, detail="Scope not found")
    return scope


def _get_peer_or_404(scope_id: str, peer_id: str) -> tuple[PeerRecord, DiscoveryPeer]:
    record = peer_repo.get(peer_id)
    peer = peer_repo.live(peer_id)
    if record is None or peer is None or record.scope_id != scope_id:
        raise HTTPException(status_code=404, detail="Peer not found")
    return record, peer


def _view(record: PeerRecord, peer: DiscoveryPeer) -> PeerView:
    if isinstance(peer, ShowPeer):
        delegates = peer.delegates_to_hide()
    elif isinstance(peer, HidePeer):
        delegates = peer.delegates_to_show()
    else:
        delegates = False
    return PeerView(
        id=record.id,
        scope_id=record.scope_id,
        role=record.role,
        state=record.state,
        discovered=record.discovered,
        counterpart_id=record.counterpart_id,
        delegates=delegates,
    )


def _publish_discovery(peer: DiscoveryPeer, announcement: Announcement) -> None:
    event_bus.emit(
        PEER_DISCOVERED,
        PeerDiscovered(
            scope_id=str(peer.token),
            peer_id=peer.peer_id,
            counterpart_id=announcement.peer_id,
            discovered_at=datetime.now(timezone.utc),
        ),
    )


def _deactivate(record: PeerRecord, peer: DiscoveryPeer) -> None:
    peer.deactivate()
    event_bus.emit(
        PEER_DEACTIVATED,
        PeerDeactivated(scope_id=record.scope_id, peer_id=record.id),
    )


# ── Routes ────────────────────────────────────────────────────────────


@app.post("/scopes", response_model=Scope, status_code=201)
def create_scope(body: CreateScopeRequest | None = None) -> Scope:
    """Create a coordination scope backed by a fresh, private bus."""
    scope = Scope(name=body.name if body else None)
    scope_repo.add(scope, bus_factory.create())
    timeline_repo.add(
        TimelineEntry(scope_id=scope.id, type=TimelineEntryType.SCOPE_CREATED)
    )
    LOGGER.info("Created scope %s", scope.id)
    return scope


@app.get("/scopes", response_model=list[Scope])
def list_scopes() -> list[Scope]:
    return scope_repo.list_all()


@app.get("/scopes/{scope_id}", response_model=Scope)
def get_scope(scope_id: str) -> Scope:
    return _get_scope_or_404(scope_id)


@app.delete("/scopes/{scope_id}", status_code=200)
def close_scope(scope_id: str) -> dict:
    """Deactivate every live peer of the scope, then drop the scope and its bus.

    The timeline is kept and stays readable through ``GET /scopes/{id}/timeline``.
    """
    _get_scope_or_404(scope_id)

    peer_ids: list[str] = []
    for record in peer_repo.list_for_scope(scope_id):
        peer_ids.append(record.id)
        peer = peer_repo.live(record.id)
        if peer is not None and record.state != PeerState.DEACTIVATED:
            _deactivate(record, peer)

    event_bus.emit(SCOPE_CLOSED, ScopeClosed(scope_id=scope_id, peer_ids=peer_ids))
    peer_repo.delete_scope(scope_id)
    scope_repo.delete(scope_id)
    return {"status": "closed", "peer_ids": peer_ids}


@app.post("/scopes/{scope_id}/peers", response_model=PeerView, status_code=201)
def activate_peer(scope_id: str, body: ActivatePeerRequest) -> PeerView:
    """Activate a show or hide peer; it announces itself and looks for its counterpart."""
    _get_scope_or_404(scope_id)
    bus = scope_repo.bus_for(scope_id)

    record = PeerRecord(scope_id=scope_id, role=body.role)
    peer = PEER_TYPES[body.role](
        bus,
        token=scope_id,
        peer_id=record.id,
        on_discovered=_publish_discovery,
    )
    peer_repo.add(record, peer)

    event_bus.emit(
        PEER_ACTIVATED,
        PeerActivated(scope_id=scope_id, peer_id=record.id, role=record.role),
    )
    peer.activate()
    return _view(record, peer)


@app.get("/scopes/{scope_id}/peers", response_model=list[PeerView])
def list_peers(scope_id: str) -> list[PeerView]:
    _get_scope_or_404(scope_id)
    return [
        _view(record, peer_repo.live(record.id))
        for record in peer_repo.list_for_scope(scope_id)
    ]


@app.delete("/scopes/{scope_id}/peers/{peer_id}", response_model=PeerView)
def deactivate_peer(scope_id: str, peer_id: str) -> PeerView:
    _get_scope_or_404(scope_id)
    record, peer = _get_peer_or_404(scope_id, peer_id)
    if record.state == PeerState.DEACTIVATED:
        raise HTTPException(status_code=400, detail="Peer is already deactivated")
    _deactivate(record, peer)
    return _view(record, peer)


@app.post("/scopes/{scope_id}/emit", response_model=EmitResponse)
def emit(scope_id: str, body: EmitRequest) -> EmitResponse:
    """Emit a raw value into the scope bus.

    Only ``Announcement`` payloads are recognised by peers, so raw JSON on a
    connector key is cached but never triggers discovery.
    """
    _get_scope_or_404(scope_id)
    bus = scope_repo.bus_for(scope_id)
    bus.emit(body.key, body.data)
    return EmitResponse(key=body.key, subscribers=bus.subscriber_count(body.key))


@app.get("/scopes/{scope_id}/keys", response_model=list[KeyInfo])
def list_keys(scope_id: str) -> list[KeyInfo]:
    _get_scope_or_404(scope_id)
    bus = scope_repo.bus_for(scope_id)
    return [
        KeyInfo(
            key=key,
            has_last_value=bus.has_last_value(key),
            subscribers=bus.subscriber_count(key),
        )
        for key in bus.keys()
    ]


@app.get("/scopes/{scope_id}/timeline", response_model=list[TimelineEntry])
def get_timeline(scope_id: str) -> list[TimelineEntry]:
    """Return the lifecycle history of a scope.

    Entries outlive the scope itself, so a closed scope still answers here
    with its full history, ending in ``scope_closed``.
    """
    entries = timeline_repo.list_for_scope(scope_id)
    if not entries:
        _get_scope_or_404(scope_id)
    return entries
