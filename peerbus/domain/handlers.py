"""Lifecycle event handlers — wired up at application startup."""

from __future__ import annotations

import logging

from peerbus.domain.bus import EventBus
from peerbus.domain.events import (
    PEER_ACTIVATED,
    PEER_DEACTIVATED,
    PEER_DISCOVERED,
    SCOPE_CLOSED,
    PeerActivated,
    PeerDeactivated,
    PeerDiscovered,
    ScopeClosed,
)
from peerbus.domain.models import PeerState, TimelineEntry, TimelineEntryType
from peerbus.domain.observable import Subscription
from peerbus.repos.memory import PeerRepository, TimelineRepository

LOGGER = logging.getLogger(__name__)


class HandlerRegistry:
    """Wires lifecycle handlers to the shared bus with access to the repositories."""

    def __init__(
        self,
        bus: EventBus,
        peer_repo: PeerRepository,
        timeline_repo: TimelineRepository,
    ) -> None:
        self.bus = bus
        self.peer_repo = peer_repo
        self.timeline_repo = timeline_repo
        self._subscriptions: list[Subscription] = []
        self._register()

    def _register(self) -> None:
        # Live only: no replay of an earlier lifecycle event.
        for key, handler in (
            (PEER_ACTIVATED, self.on_peer_activated),
            (PEER_DISCOVERED, self.on_peer_discovered),
            (PEER_DEACTIVATED, self.on_peer_deactivated),
            (SCOPE_CLOSED, self.on_scope_closed),
        ):
            self._subscriptions.append(
                self.bus.observe(key, replay_last=False).subscribe(handler)
            )

    def close(self) -> None:
        for subscription in self._subscriptions:
            subscription.cancel()
        self._subscriptions.clear()

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def on_peer_activated(self, event: PeerActivated) -> None:
        self.timeline_repo.add(
            TimelineEntry(
                scope_id=event.scope_id,
                peer_id=event.peer_id,
                type=TimelineEntryType.PEER_ACTIVATED,
                payload={"role": event.role},
            )
        )

    def on_peer_discovered(self, event: PeerDiscovered) -> None:
        record = self.peer_repo.get(event.peer_id)
        if record is None:
            return

        record.discovered_at = event.discovered_at
        record.counterpart_id = event.counterpart_id
        if record.state == PeerState.ANNOUNCING:
            record.state = PeerState.DISCOVERED

        self.timeline_repo.add(
            TimelineEntry(
                scope_id=event.scope_id,
                peer_id=event.peer_id,
                type=TimelineEntryType.PEER_DISCOVERED,
                payload={"counterpart_id": event.counterpart_id},
            )
        )

    def on_peer_deactivated(self, event: PeerDeactivated) -> None:
        record = self.peer_repo.get(event.peer_id)
        if record is None:
            return

        record.state = PeerState.DEACTIVATED
        self.timeline_repo.add(
            TimelineEntry(
                scope_id=event.scope_id,
                peer_id=event.peer_id,
                type=TimelineEntryType.PEER_DEACTIVATED,
            )
        )

    def on_scope_closed(self, event: ScopeClosed) -> None:
        LOGGER.info("Scope %s closed (%d peers)", event.scope_id, len(event.peer_ids))
        self.timeline_repo.add(
            TimelineEntry(
                scope_id=event.scope_id,
                type=TimelineEntryType.SCOPE_CLOSED,
                payload={"peer_ids": event.peer_ids},
            )
        )
