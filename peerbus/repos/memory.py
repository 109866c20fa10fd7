"""In-memory repositories for scopes, peers and their timeline."""

from __future__ import annotations

from peerbus.domain.bus import EventBus
from peerbus.domain.models import PeerRecord, Scope, TimelineEntry
from peerbus.services.discovery import DiscoveryPeer


class ScopeRepository:
    """Dict-backed store of scopes, each owning its private bus."""

    def __init__(self) -> None:
        self._store: dict[str, Scope] = {}
        self._buses: dict[str, EventBus] = {}

    def add(self, scope: Scope, bus: EventBus) -> None:
        self._store[scope.id] = scope
        self._buses[scope.id] = bus

    def get(self, scope_id: str) -> Scope | None:
        return self._store.get(scope_id)

    def bus_for(self, scope_id: str) -> EventBus | None:
        return self._buses.get(scope_id)

    def list_all(self) -> list[Scope]:
        return list(self._store.values())

    def delete(self, scope_id: str) -> None:
        self._store.pop(scope_id, None)
        self._buses.pop(scope_id, None)


class PeerRepository:
    """Peer records keyed by id, alongside the live peer objects."""

    def __init__(self) -> None:
        self._store: dict[str, PeerRecord] = {}
        self._live: dict[str, DiscoveryPeer] = {}

    def add(self, record: PeerRecord, peer: DiscoveryPeer) -> None:
        self._store[record.id] = record
        self._live[record.id] = peer

    def get(self, peer_id: str) -> PeerRecord | None:
        return self._store.get(peer_id)

    def live(self, peer_id: str) -> DiscoveryPeer | None:
        return self._live.get(peer_id)

    def list_for_scope(self, scope_id: str) -> list[PeerRecord]:
        return [p for p in self._store.values() if p.scope_id == scope_id]

    def delete_scope(self, scope_id: str) -> None:
        to_remove = [pid for pid, p in self._store.items() if p.scope_id == scope_id]
        for pid in to_remove:
            del self._store[pid]
            self._live.pop(pid, None)


class TimelineRepository:
    """List-backed store for TimelineEntry instances."""

    def __init__(self) -> None:
        self._entries: list[TimelineEntry] = []

    def add(self, entry: TimelineEntry) -> None:
        self._entries.append(entry)

    def list_for_scope(self, scope_id: str) -> list[TimelineEntry]:
        return sorted(
            [e for e in self._entries if e.scope_id == scope_id],
            key=lambda e: e.timestamp,
        )
