"""Computed values — derived state with automatic dependency tracking.

A Computed wraps a function. When evaluated, it tracks which reactive keys
the function reads and caches the result. When any dependency changes, the
cached value is marked dirty and the Computed's own readers are notified.
On next read, it re-evaluates.

Computed values are lazy — they only recompute when read.
"""

from __future__ import annotations

import logging
from typing import Callable, Generic, TypeVar

from refx import _anchor
from refx._tracking import Subscriber, SubscriberKind, current_subscriber, track, trigger

logger = logging.getLogger("refx.computed")

T = TypeVar("T")

_UNSET = object()


class Computed(Subscriber, Generic[T]):
    """A derived value that auto-tracks dependencies and caches the result."""

    __slots__ = ("_fn", "_value", "_dirty", "_computing", "name")

    kind = SubscriberKind.COMPUTED

    def __init__(self, fn: Callable[[], T], name: str | None = None) -> None:
        super().__init__()
        self._fn = fn
        self._value = _UNSET
        self._dirty = True
        self._computing = False
        self.name = name or getattr(fn, "__name__", "computed")

    @property
    def dirty(self) -> bool:
        return self._dirty

    def get(self) -> T:
        """Read the computed value. Recomputes if dirty."""
        if self._computing:
            logger.warning("Circular read of computed %r; returning last value", self.name)
            return None if self._value is _UNSET else self._value

        track((self.id, _anchor.VALUE), self)

        if self._dirty:
            self._recompute()

        return self._value

    __call__ = get

    @property
    def value(self) -> T:
        return self.get()

    def _recompute(self) -> None:
        """Re-evaluate the function, tracking dependencies."""
        self._clear_dependencies()

        token = current_subscriber.set(self)
        self._computing = True
        try:
            value = self._fn()
        finally:
            self._computing = False
            current_subscriber.reset(token)

        self._value = value
        self._dirty = False

    def _invalidate(self) -> None:
        """Called by the scheduler when a dependency changed.

        Marks dirty and propagates to our own readers. We don't recompute
        eagerly — that happens on next .get().
        """
        if not self._dirty:
            self._dirty = True
            trigger((self.id, _anchor.VALUE))

    def _run(self) -> None:
        self._invalidate()

    def dispose(self) -> None:
        """Disconnect from all dependencies. The computed becomes inert until read again."""
        self._clear_dependencies()
        self._dirty = True
        self._value = _UNSET

    def __repr__(self) -> str:
        state = "dirty" if self._dirty else f"cached={self._value!r}"
        return f"Computed({self.name}, {state})"


def computed(fn: Callable[[], T]) -> Computed[T]:
    """Decorator/factory to create a Computed from a function.

    Usage:
        counter = reactive({"n": 0})

        @computed
        def doubled():
            return counter.n * 2

        doubled()  # 0
        counter.n = 5
        doubled()  # 10
    """
    return Computed(fn)
