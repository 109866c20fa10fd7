"""Scoped buses and the show/hide peer pair that coordinates over them."""

from __future__ import annotations

from typing import Any

from peerbus.domain.bus import EventBus
from peerbus.domain.models import PeerRole
from peerbus.domain.stream import ErrorSink
from peerbus.services.discovery import DiscoveryCallback, DiscoveryPeer


class ConnectorEvents:
    ANNOUNCE_HAS_SHOW = "isUsingFxShow"
    ANNOUNCE_HAS_HIDE = "isUsingFxHide"


class ScopedBusFactory:
    """Hands out one fresh, empty ``EventBus`` per coordination scope."""

    def __init__(self, error_sink: ErrorSink | None = None) -> None:
        self._error_sink = error_sink

    def create(self) -> EventBus:
        return EventBus(error_sink=self._error_sink)


def make_show_hide_connector() -> EventBus:
    """Return a private bus for the show and hide peers of a single element."""
    return ScopedBusFactory().create()


class ShowPeer(DiscoveryPeer):
    """Announces ``ANNOUNCE_HAS_SHOW`` and watches for a hide peer."""

    def __init__(
        self,
        bus: EventBus,
        token: Any = None,
        *,
        peer_id: str | None = None,
        on_discovered: DiscoveryCallback | None = None,
    ) -> None:
        super().__init__(
            bus,
            outgoing_key=ConnectorEvents.ANNOUNCE_HAS_SHOW,
            incoming_key=ConnectorEvents.ANNOUNCE_HAS_HIDE,
            token=token,
            role=PeerRole.SHOW,
            peer_id=peer_id,
            on_discovered=on_discovered,
        )

    @property
    def has_hide(self) -> bool:
        return self.discovered

    def delegates_to_hide(self, has_own_value: bool = False) -> bool:
        """Leave visibility to the hide peer unless a responsive value of our own applies."""
        return self.has_hide and not has_own_value


class HidePeer(DiscoveryPeer):
    """Announces ``ANNOUNCE_HAS_HIDE`` and watches for a show peer."""

    def __init__(
        self,
        bus: EventBus,
        token: Any = None,
        *,
        peer_id: str | None = None,
        on_discovered: DiscoveryCallback | None = None,
    ) -> None:
        super().__init__(
            bus,
            outgoing_key=ConnectorEvents.ANNOUNCE_HAS_HIDE,
            incoming_key=ConnectorEvents.ANNOUNCE_HAS_SHOW,
            token=token,
            role=PeerRole.HIDE,
            peer_id=peer_id,
            on_discovered=on_discovered,
        )

    @property
    def has_show(self) -> bool:
        return self.discovered

    def delegates_to_show(self, has_own_value: bool = False) -> bool:
        return self.has_show and not has_own_value


PEER_TYPES: dict[PeerRole, type[DiscoveryPeer]] = {
    PeerRole.SHOW: ShowPeer,
    PeerRole.HIDE: HidePeer,
}
