"""Actions and transactions — batched state mutations.

Wrapping mutations in an @action, `with transaction()` or batch(fn) defers
all effect and watcher runs until the outermost scope exits. Each triggered
subscriber then runs once, however many of its dependencies changed.
"""

from __future__ import annotations

import functools
from contextlib import contextmanager
from typing import Callable, ParamSpec, TypeVar

from refx._tracking import begin_batch, end_batch

P = ParamSpec("P")
R = TypeVar("R")


def action(fn: Callable[P, R]) -> Callable[P, R]:
    """Decorator: batch all reactive writes inside fn.

    Effects only fire after fn returns, not during.

    Usage:
        s = reactive({"a": 0, "b": 0})

        @action
        def swap():
            s.a, s.b = s.b, s.a
            # effects see both changes at once, not one at a time
    """

    @functools.wraps(fn)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        begin_batch()
        try:
            return fn(*args, **kwargs)
        finally:
            end_batch()

    return wrapper


@contextmanager
def transaction():
    """Context manager for batching writes.

    Usage:
        with transaction():
            s.a = 1
            s.b = 2
            # effects fire here, after both are set
    """
    begin_batch()
    try:
        yield
    finally:
        end_batch()


def batch(fn: Callable[[], R]) -> R:
    """Call fn inside a batch frame and return its result."""
    begin_batch()
    try:
        return fn()
    finally:
        end_batch()


def pause() -> None:
    """Open a batch frame manually. Pair every call with resume()."""
    begin_batch()


def resume(flush: bool = True) -> None:
    """Close a frame opened by pause().

    With flush=False, pending subscribers stay queued until the next
    outermost frame closes.
    """
    end_batch(flush=flush)
