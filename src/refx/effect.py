"""Effects — side effects triggered by reactive state changes.

Unlike Computed (which is lazy and only evaluates on read), an Effect
eagerly re-runs whenever its tracked dependencies change. Dependencies are
exact per run: everything read last time is dropped and re-tracked.

If the effect function returns a callable, it is kept as the cleanup and
invoked right before the next run, and on stop().
"""

from __future__ import annotations

import logging
from typing import Callable

from refx._tracking import Subscriber, SubscriberKind, current_subscriber, untrack

logger = logging.getLogger("refx.effect")

Cleanup = Callable[[], None]


class Effect(Subscriber):
    """A reactive side effect that re-runs when its dependencies change."""

    __slots__ = ("_fn", "_cleanup")

    kind = SubscriberKind.EFFECT

    def __init__(self, fn: Callable[[], Cleanup | None]) -> None:
        super().__init__()
        self._fn = fn
        self._cleanup: Cleanup | None = None

    def _run(self) -> None:
        """Re-evaluate the effect function, re-tracking dependencies."""
        if self._disposed:
            return

        self._run_cleanup()
        self._clear_dependencies()

        token = current_subscriber.set(self)
        try:
            result = self._fn()
        finally:
            current_subscriber.reset(token)

        if callable(result):
            self._cleanup = result
            if self._disposed:
                # stop() was called during this run; nothing will run it later
                self._run_cleanup()

    def _run_cleanup(self) -> None:
        cleanup, self._cleanup = self._cleanup, None
        if cleanup is None:
            return
        try:
            untrack(cleanup)
        except Exception:
            logger.exception("Cleanup of %r raised", self)

    def stop(self) -> None:
        """Stop this effect. Runs the pending cleanup and disconnects from all dependencies."""
        if self._disposed:
            return
        self._disposed = True
        self._run_cleanup()
        self._clear_dependencies()

    dispose = stop
    __call__ = stop

    def __repr__(self) -> str:
        state = "disposed" if self._disposed else "active"
        name = getattr(self._fn, "__name__", "effect")
        return f"Effect({name}, {state})"


def effect(fn: Callable[[], Cleanup | None]) -> Effect:
    """Run fn immediately, then re-run whenever any reactive key it read changes.

    Returns the Effect; call it (or .stop()) to stop.

    Usage:
        s = reactive({"count": 0})
        log = []

        stop = effect(lambda: log.append(s.count))
        # log == [0] — ran immediately

        s.count = 1
        # log == [0, 1] — re-ran because count changed

        stop()
        s.count = 2
        # log == [0, 1] — stopped
    """
    e = Effect(fn)
    e._run()  # Initial run to establish dependencies
    return e


def effects(*fns: Callable[[], Cleanup | None]) -> Cleanup:
    """Create one effect per function. Returns a single function stopping them all."""
    created = [effect(fn) for fn in fns]

    def stop_all() -> None:
        for e in created:
            e.stop()

    return stop_all
