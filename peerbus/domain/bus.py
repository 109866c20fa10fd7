"""Simple synchronous in-process event bus with per-key replay."""

from __future__ import annotations

import logging
import threading
from typing import Any

from peerbus.domain.observable import ObservableHandle, Observer, Subscription
from peerbus.domain.stream import ErrorSink, KeyedStream

LOGGER = logging.getLogger(__name__)


class EventBus:
    """Publish/subscribe bus keyed by string.

    One ``KeyedStream`` is created lazily per key and cached for the lifetime
    of the bus. Observers are called synchronously in subscription order.
    """

    def __init__(self, error_sink: ErrorSink | None = None) -> None:
        self._error_sink = error_sink
        self._registry: dict[str, KeyedStream] = {}
        self._lock = threading.Lock()

    def observe(self, key: str, replay_last: bool = True) -> ObservableHandle:
        """Return a cold handle on *key*; subscribing to it replays the last value first."""
        stream = self._find_stream(key)

        def _subscribe(observer: Observer) -> Subscription:
            return stream.subscribe(observer, replay_last)

        return ObservableHandle(_subscribe)

    def emit(self, key: str, data: Any) -> None:
        self._find_stream(key).emit(data)

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._registry)

    def has_last_value(self, key: str) -> bool:
        with self._lock:
            stream = self._registry.get(key)
        return stream is not None and stream.has_last_value

    def subscriber_count(self, key: str) -> int:
        with self._lock:
            stream = self._registry.get(key)
        return 0 if stream is None else stream.subscriber_count

    def _find_stream(self, key: str) -> KeyedStream:
        with self._lock:
            stream = self._registry.get(key)
            if stream is None:
                stream = KeyedStream(key, self._error_sink)
                self._registry[key] = stream
                LOGGER.debug("Created stream for key: %r", key)
            return stream
