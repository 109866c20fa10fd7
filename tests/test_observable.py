"""Tests for the filter and first combinators."""

from __future__ import annotations

from peerbus.domain.bus import EventBus
from peerbus.domain.observable import Subscription, filtered, first


def test_filter_forwards_matching_values_in_order():
    bus = EventBus()
    received = []
    bus.observe("n").filter(lambda v: v % 2 == 0).subscribe(received.append)

    for v in range(6):
        bus.emit("n", v)

    assert received == [0, 2, 4]


def test_filter_applies_to_replayed_value():
    bus = EventBus()
    bus.emit("n", 3)
    received = []
    bus.observe("n").filter(lambda v: v > 5).subscribe(received.append)
    assert received == []

    bus.emit("n", 7)
    assert received == [7]


def test_filter_index_is_per_subscriber():
    bus = EventBus()
    handle = filtered(bus.observe("n"), lambda v, i: i % 2 == 0, with_index=True)

    early = []
    handle.subscribe(early.append)
    bus.emit("n", "a")
    bus.emit("n", "b")

    late = []
    # Replays "b" as index 0 for this subscriber.
    handle.subscribe(late.append)
    bus.emit("n", "c")

    assert early == ["a", "c"]
    assert late == ["b"]


def test_cancel_filtered_subscription_cancels_upstream():
    bus = EventBus()
    sub = bus.observe("n").filter(lambda v: True).subscribe(lambda v: None)
    assert bus.subscriber_count("n") == 1

    sub.cancel()
    assert bus.subscriber_count("n") == 0


def test_first_delivers_once_and_unsubscribes():
    bus = EventBus()
    received = []
    sub = first(bus.observe("n")).subscribe(received.append)

    bus.emit("n", 1)
    bus.emit("n", 2)

    assert received == [1]
    assert sub.active is False
    assert bus.subscriber_count("n") == 0


def test_first_with_replayed_value_cancels_during_subscribe():
    bus = EventBus()
    bus.emit("n", "cached")
    received = []

    sub = bus.observe("n").first().subscribe(received.append)
    bus.emit("n", "later")

    assert received == ["cached"]
    assert sub.active is False
    assert bus.subscriber_count("n") == 0


def test_filter_then_first_skips_non_matching():
    bus = EventBus()
    received = []
    bus.observe("n").filter(lambda v: v == "yes").first().subscribe(received.append)

    bus.emit("n", "no")
    bus.emit("n", "yes")
    bus.emit("n", "yes")

    assert received == ["yes"]


def test_subscription_teardown_runs_once():
    calls = []
    sub = Subscription(lambda: calls.append("torn down"))
    sub.cancel()
    sub.cancel()
    assert calls == ["torn down"]
    assert sub.active is False
