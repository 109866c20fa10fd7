"""Cold observable handles, subscriptions and the combinators built on them."""

from __future__ import annotations

from typing import Any, Callable

Observer = Callable[[Any], None]
Predicate = Callable[..., bool]


class Subscription:
    """Handle returned by every ``subscribe`` call.

    ``cancel()`` is idempotent; once cancelled the handle never receives
    another delivery.
    """

    def __init__(self, teardown: Callable[[], None] | None = None) -> None:
        self._teardown = teardown
        self.active = True

    def cancel(self) -> None:
        if not self.active:
            return
        self.active = False
        teardown, self._teardown = self._teardown, None
        if teardown is not None:
            teardown()


class ObservableHandle:
    """A cold stream: nothing happens until ``subscribe`` is called.

    Every ``subscribe`` runs ``subscribe_fn`` again, so each subscription gets
    its own replay-then-live sequence.
    """

    def __init__(self, subscribe_fn: Callable[[Observer], Subscription]) -> None:
        self._subscribe_fn = subscribe_fn

    def subscribe(self, observer: Observer) -> Subscription:
        return self._subscribe_fn(observer)

    def filter(self, predicate: Predicate, *, with_index: bool = False) -> ObservableHandle:
        return filtered(self, predicate, with_index=with_index)

    def first(self) -> ObservableHandle:
        return first(self)


def filtered(
    source: ObservableHandle, predicate: Predicate, *, with_index: bool = False
) -> ObservableHandle:
    """Forward only the values of *source* that satisfy *predicate*.

    With ``with_index=True`` the predicate is called as ``predicate(value, index)``
    where *index* counts the source values seen by that one subscription.
    """

    def _subscribe(observer: Observer) -> Subscription:
        index = 0

        def _on_next(value: Any) -> None:
            nonlocal index
            current = index
            index += 1
            keep = predicate(value, current) if with_index else predicate(value)
            if keep:
                observer(value)

        upstream = source.subscribe(_on_next)
        return Subscription(upstream.cancel)

    return ObservableHandle(_subscribe)


def first(source: ObservableHandle) -> ObservableHandle:
    """Forward the first value of *source*, then cancel the upstream subscription."""

    def _subscribe(observer: Observer) -> Subscription:
        upstream: Subscription | None = None

        def _teardown() -> None:
            if upstream is not None:
                upstream.cancel()

        outer = Subscription(_teardown)

        def _on_next(value: Any) -> None:
            if not outer.active:
                return
            outer.cancel()
            observer(value)

        upstream = source.subscribe(_on_next)
        # The first value may have arrived as a replay inside subscribe().
        if not outer.active:
            upstream.cancel()
        return outer

    return ObservableHandle(_subscribe)
