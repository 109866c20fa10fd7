"""Tests for the one-shot discovery handshake."""

from __future__ import annotations

import pytest

from peerbus.domain.bus import EventBus
from peerbus.domain.events import Announcement
from peerbus.domain.models import PeerState
from peerbus.services.discovery import DiscoveryPeer, same_scope

K1 = "announce.a"
K2 = "announce.b"


def _pair(bus: EventBus, token="scope-1", **kwargs):
    a = DiscoveryPeer(bus, outgoing_key=K1, incoming_key=K2, token=token, role="a", **kwargs)
    b = DiscoveryPeer(bus, outgoing_key=K2, incoming_key=K1, token=token, role="b", **kwargs)
    return a, b


@pytest.mark.parametrize("order", ["a_first", "b_first"])
def test_activation_order_independent(order):
    bus = EventBus()
    a, b = _pair(bus)

    if order == "a_first":
        a.activate()
        b.activate()
    else:
        b.activate()
        a.activate()

    assert a.state == PeerState.DISCOVERED
    assert b.state == PeerState.DISCOVERED
    assert a.counterpart.peer_id == b.peer_id
    assert b.counterpart.peer_id == a.peer_id


def test_lone_peer_keeps_announcing():
    bus = EventBus()
    a, _ = _pair(bus)
    a.activate()

    assert a.state == PeerState.ANNOUNCING
    assert a.discovered is False
    assert bus.has_last_value(K1) is True


def test_discovery_fires_once_despite_repeated_announcements():
    bus = EventBus()
    hits = []
    a = DiscoveryPeer(
        bus, K1, K2, token="s", role="a", on_discovered=lambda peer, ann: hits.append(ann.peer_id)
    )
    a.activate()

    b = DiscoveryPeer(bus, K2, K1, token="s", role="b")
    b.activate()
    # Re-announce as a reactivated peer would.
    b.deactivate()
    b.activate()
    bus.emit(K2, Announcement(token="s", peer_id=b.peer_id, role="b"))

    assert hits == [b.peer_id]
    assert bus.subscriber_count(K2) == 0


def test_discovery_callback_fires_on_replay():
    bus = EventBus()
    hits = []
    b = DiscoveryPeer(bus, K2, K1, token="s")
    b.activate()

    a = DiscoveryPeer(bus, K1, K2, token="s", on_discovered=lambda peer, ann: hits.append(peer))
    a.activate()

    assert hits == [a]


def test_tokens_isolate_scopes_on_a_shared_bus():
    bus = EventBus()
    a1, b1 = _pair(bus, token="element-1")
    a2 = DiscoveryPeer(bus, K1, K2, token="element-2")

    a1.activate()
    b1.activate()
    a2.activate()

    assert a1.discovered is True
    assert b1.discovered is True
    assert a2.discovered is False


def test_shared_bus_replay_only_holds_the_latest_scope():
    """Another scope announcing on the same key replaces the cached announcement."""
    bus = EventBus()
    a1, b1 = _pair(bus, token="element-1")
    a2 = DiscoveryPeer(bus, K1, K2, token="element-2")

    a1.activate()
    a2.activate()
    b1.activate()

    # b1 replays a2's announcement, which its token filter rejects.
    assert b1.discovered is False
    assert a2.discovered is False
    # a1 is still listening, so it hears b1 live.
    assert a1.discovered is True


def test_private_buses_are_activation_order_independent():
    bus_one, bus_two = EventBus(), EventBus()
    a1, b1 = _pair(bus_one, token="element-1")
    a2, b2 = _pair(bus_two, token="element-2")

    a1.activate()
    a2.activate()
    b1.activate()
    b2.activate()

    assert all(p.discovered for p in (a1, b1, a2, b2))


def test_object_tokens_compare_by_identity():
    bus = EventBus()
    element, other = object(), object()
    a = DiscoveryPeer(bus, K1, K2, token=element)
    b = DiscoveryPeer(bus, K2, K1, token=other)

    a.activate()
    b.activate()

    assert a.discovered is False
    assert b.discovered is False


def test_none_token_accepts_any_announcement():
    bus = EventBus()
    a = DiscoveryPeer(bus, K1, K2)
    bus.emit(K2, Announcement(token="whatever", peer_id="x", role="b"))

    a.activate()

    assert a.discovered is True


def test_raw_values_do_not_trigger_discovery():
    bus = EventBus()
    a = DiscoveryPeer(bus, K1, K2, token="s")
    a.activate()

    bus.emit(K2, {"token": "s"})
    bus.emit(K2, "s")

    assert a.discovered is False
    assert bus.subscriber_count(K2) == 1


def test_deactivate_before_discovery_stops_listening():
    bus = EventBus()
    a, b = _pair(bus)
    a.activate()
    a.deactivate()

    b.activate()

    assert a.discovered is False
    # b still finds a's cached announcement.
    assert b.discovered is True


def test_activate_twice_is_noop():
    bus = EventBus()
    announcements = []
    bus.observe(K1, replay_last=False).subscribe(announcements.append)
    a = DiscoveryPeer(bus, K1, K2)

    a.activate()
    a.activate()

    assert len(announcements) == 1
    assert bus.subscriber_count(K2) == 1


def test_shared_key_ignores_own_announcement():
    bus = EventBus()
    a = DiscoveryPeer(bus, "presence", "presence", token="s")
    a.activate()
    assert a.discovered is False

    b = DiscoveryPeer(bus, "presence", "presence", token="s")
    b.activate()

    assert b.discovered is True
    assert a.discovered is True


def test_same_scope_predicate():
    predicate = same_scope("s", own_peer_id="me")
    assert predicate(Announcement(token="s", peer_id="you", role="r")) is True
    assert predicate(Announcement(token="s", peer_id="me", role="r")) is False
    assert predicate(Announcement(token="t", peer_id="you", role="r")) is False
    assert predicate("s") is False
