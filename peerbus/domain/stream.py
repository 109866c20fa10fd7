"""A single keyed multicast channel with last-value replay."""

from __future__ import annotations

import logging
import threading
from collections import deque
from typing import Any, Callable

from peerbus.domain.observable import Observer, Subscription

LOGGER = logging.getLogger(__name__)

ErrorSink = Callable[[BaseException, str], None]


class _Entry:
    """One registered observer; duplicates of the same callable are distinct entries."""

    __slots__ = ("observer", "active")

    def __init__(self, observer: Observer) -> None:
        self.observer = observer
        self.active = True


class KeyedStream:
    """Latest value for one key plus synchronous delivery to current subscribers.

    Deliveries happen under a re-entrant lock so that, per key, every
    subscriber sees values in the order ``emit`` was called, and so that a
    replay read and the registration that follows it are one step. An emit
    made by an observer of the same stream is queued and delivered after the
    current value has reached every subscriber.
    """

    def __init__(self, key: str, error_sink: ErrorSink | None = None) -> None:
        self.key = key
        self._error_sink = error_sink
        self._lock = threading.RLock()
        self._entries: list[_Entry] = []
        self._last_value: Any = None
        self._has_last_value = False
        self._pending: deque[tuple[Any, list[_Entry]]] = deque()
        self._emitting = False

    @property
    def has_last_value(self) -> bool:
        return self._has_last_value

    @property
    def last_value(self) -> Any:
        return self._last_value

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._entries)

    def emit(self, value: Any) -> None:
        with self._lock:
            self._last_value = value
            self._has_last_value = True
            # Subscribers added after this call only see the value through replay.
            self._pending.append((value, list(self._entries)))
            if self._emitting:
                # Re-entrant emit from an observer: the outer loop delivers it in order.
                return
            self._emitting = True
            try:
                while self._pending:
                    current, snapshot = self._pending.popleft()
                    for entry in snapshot:
                        # Cancelled mid-emit: skip, but keep iterating the snapshot.
                        if entry.active:
                            self._deliver(entry, current)
            finally:
                self._pending.clear()
                self._emitting = False

    def subscribe(self, observer: Observer, replay_last: bool = True) -> Subscription:
        entry = _Entry(observer)
        with self._lock:
            if replay_last and self._has_last_value:
                self._deliver(entry, self._last_value)
            self._entries.append(entry)
        LOGGER.debug("Subscribed to stream: %r (replay_last=%s)", self.key, replay_last)
        return Subscription(lambda: self._remove(entry))

    def _remove(self, entry: _Entry) -> None:
        with self._lock:
            entry.active = False
            try:
                self._entries.remove(entry)
            except ValueError:
                pass

    def _deliver(self, entry: _Entry, value: Any) -> None:
        try:
            entry.observer(value)
        except Exception as exc:
            self._report(exc)

    def _report(self, exc: Exception) -> None:
        if self._error_sink is None:
            LOGGER.error("Observer failed for stream %r: %s", self.key, exc, exc_info=exc)
            return
        try:
            self._error_sink(exc, self.key)
        except Exception:
            LOGGER.exception("Error sink failed for stream %r", self.key)
