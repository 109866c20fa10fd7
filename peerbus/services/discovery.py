"""One-shot presence discovery between two peers sharing a bus.

Each peer listens on an *incoming* key and announces itself on an *outgoing*
key. Because the bus replays the last value to new subscribers, the outcome
does not depend on which peer activates first: the second one finds the first
through replay, the first one hears the second live.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Callable

from peerbus.domain.bus import EventBus
from peerbus.domain.events import Announcement
from peerbus.domain.models import PeerState
from peerbus.domain.observable import Subscription

LOGGER = logging.getLogger(__name__)

DiscoveryCallback = Callable[["DiscoveryPeer", Announcement], None]


def same_scope(token: Any, own_peer_id: str | None = None) -> Callable[[Any], bool]:
    """Build a predicate matching announcements that carry *token*.

    A ``None`` token matches any announcement, which is what a peer on a
    private per-scope bus wants.
    """

    def _predicate(value: Any) -> bool:
        if not isinstance(value, Announcement):
            return False
        if own_peer_id is not None and value.peer_id == own_peer_id:
            return False
        return token is None or value.token == token

    return _predicate


class DiscoveryPeer:
    def __init__(
        self,
        bus: EventBus,
        outgoing_key: str,
        incoming_key: str,
        token: Any = None,
        *,
        role: str = "peer",
        peer_id: str | None = None,
        on_discovered: DiscoveryCallback | None = None,
    ) -> None:
        self.bus = bus
        self.outgoing_key = outgoing_key
        self.incoming_key = incoming_key
        self.token = token
        self.role = role
        self.peer_id = peer_id or str(uuid.uuid4())
        self._on_discovered = on_discovered
        self._watcher: Subscription | None = None
        self._active = False
        self.discovered = False
        self.counterpart: Announcement | None = None

    @property
    def state(self) -> PeerState:
        return PeerState.DISCOVERED if self.discovered else PeerState.ANNOUNCING

    @property
    def active(self) -> bool:
        return self._active

    def activate(self) -> None:
        """Listen for the counterpart, then announce this peer.

        Calling it again while active does nothing; after ``deactivate`` it
        subscribes again (unless already discovered) and re-announces.
        """
        if self._active:
            return
        self._active = True

        if not self.discovered:
            self._watcher = (
                self.bus.observe(self.incoming_key, replay_last=True)
                .filter(same_scope(self.token, self.peer_id))
                .first()
                .subscribe(self._handle_announcement)
            )

        self.bus.emit(
            self.outgoing_key,
            Announcement(token=self.token, peer_id=self.peer_id, role=self.role),
        )
        LOGGER.debug("Peer %s announced on %r", self.peer_id, self.outgoing_key)

    def deactivate(self) -> None:
        self._active = False
        if self._watcher is not None:
            self._watcher.cancel()
            self._watcher = None

    def _handle_announcement(self, announcement: Announcement) -> None:
        if self.discovered:
            return
        self.discovered = True
        self.counterpart = announcement
        LOGGER.info(
            "Peer %s (%s) discovered %s (%s)",
            self.peer_id,
            self.role,
            announcement.peer_id,
            announcement.role,
        )
        if self._on_discovered is not None:
            self._on_discovered(self, announcement)
