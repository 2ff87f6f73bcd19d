"""watch() — explicit (new, old) observers.

A Watcher evaluates a source — a single state key or an expression — and
calls callback(new, old) after a write changes the source's value. Only the
source is tracked; reads inside the callback never subscribe anything.

Watchers registered on the same source fire in registration order. A
callback that writes the key it watches re-triggers itself; guarding against
that is up to the caller.
"""

from __future__ import annotations

from typing import Any, Callable

from refx._tracking import (
    Subscriber,
    SubscriberKind,
    current_subscriber,
    has_changed,
    untrack,
)

WatchCallback = Callable[[Any, Any], None]

_UNSET = object()


class Watcher(Subscriber):
    """Tracks source(); calls callback(new, old) when its value changes."""

    __slots__ = ("_source", "_callback", "_value")

    kind = SubscriberKind.WATCHER

    def __init__(self, source: Callable[[], Any], callback: WatchCallback) -> None:
        super().__init__()
        self._source = source
        self._callback = callback
        self._value: Any = _UNSET

    @property
    def value(self) -> Any:
        """Value seen by the latest evaluation (None before the first one)."""
        return None if self._value is _UNSET else self._value

    def _evaluate(self) -> Any:
        self._clear_dependencies()
        token = current_subscriber.set(self)
        try:
            return self._source()
        finally:
            current_subscriber.reset(token)

    def _prime(self, immediate: bool) -> None:
        """Establish dependencies; fire with old=None only if immediate."""
        self._value = self._evaluate()
        if immediate:
            value = self._value
            untrack(lambda: self._callback(value, None))

    def _run(self) -> None:
        if self._disposed:
            return

        new_value = self._evaluate()
        old_value = self._value
        if old_value is not _UNSET and not has_changed(old_value, new_value):
            return

        self._value = new_value
        if old_value is _UNSET:
            old_value = None
        untrack(lambda: self._callback(new_value, old_value))

    def stop(self) -> None:
        """Stop watching. Disconnects from the source."""
        self._disposed = True
        self._clear_dependencies()

    dispose = stop
    __call__ = stop

    def __repr__(self) -> str:
        state = "disposed" if self._disposed else "active"
        name = getattr(self._source, "__name__", "source")
        return f"Watcher({name}, {state})"


def watch(
    source: Callable[[], Any],
    callback: WatchCallback,
    *,
    immediate: bool = False,
) -> Watcher:
    """Track source's reads; call callback(new, old) when its result changes.

    Unlike effect(), the callback is not tracked, and only fires when the
    source's *value* changes, not on every dependency notification.

    Usage:
        user = reactive({"first": "Ada", "last": "Lovelace"})
        seen = []

        w = watch(lambda: f"{user.first} {user.last}", lambda new, old: seen.append((new, old)))
        # seen == [] — source ran to establish deps, callback doesn't fire yet

        user.first = "Grace"
        # seen == [("Grace Lovelace", "Ada Lovelace")]

        w.stop()
    """
    w = Watcher(source, callback)
    w._prime(immediate)
    return w
