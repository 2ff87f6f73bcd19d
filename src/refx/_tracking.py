"""Dependency tracking engine — the heart of refx.

Uses contextvars to track which reactive keys are read while a subscriber
(effect, computed or watcher) runs, building the dependency graph automatically.
Setting the context var returns a token; resetting it pops back to the previous
subscriber, so nested runs and untracked scopes behave like a stack.

Batching: every write notifies inside a batch frame. Effects and watchers
reached during the frame accumulate in a pending set and are flushed once, in
registration order, when the outermost frame exits. Computed invalidation is
never deferred — a dirty flag must be visible before anything re-reads it.
"""

from __future__ import annotations

import contextvars
import enum
import logging
import math
from typing import Callable, Hashable, TypeVar

from refx import _anchor

logger = logging.getLogger("refx.tracking")

T = TypeVar("T")

# Flush rounds before a self-retriggering chain is considered runaway.
MAX_FLUSH_ROUNDS = 100


class SubscriberKind(enum.Enum):
    EFFECT = "effect"
    COMPUTED = "computed"
    WATCHER = "watcher"


class Subscriber:
    """Shared dependency bookkeeping for Effect, Computed and Watcher."""

    __slots__ = ("id", "_dependencies", "_disposed", "__weakref__")

    kind: SubscriberKind

    def __init__(self) -> None:
        self.id = _anchor.new_id()
        # dep key -> owner (proxy or computed), kept alive while subscribed
        self._dependencies: dict[_anchor.DepKey, object] = {}
        self._disposed = False

    @property
    def disposed(self) -> bool:
        return self._disposed

    @property
    def dependencies(self) -> frozenset:
        """Dependency keys recorded by the latest run."""
        return frozenset(self._dependencies)

    def _clear_dependencies(self) -> None:
        for dep_key in self._dependencies:
            _anchor.unsubscribe(dep_key, self)
        self._dependencies.clear()

    def _run(self) -> None:
        raise NotImplementedError


# The currently-running subscriber. When set, every tracked read registers
# itself as a dependency of it.
current_subscriber: contextvars.ContextVar[Subscriber | None] = contextvars.ContextVar(
    "current_subscriber", default=None
)

# Batch depth counter. When > 0, effect/watcher runs are deferred.
_batch_depth: int = 0

# Subscribers triggered during a batch, awaiting flush (dict as ordered set).
_pending: dict[Subscriber, None] = {}


def track(dep_key: _anchor.DepKey, owner: object) -> None:
    """Record a read of dep_key by the running subscriber, if any."""
    subscriber = current_subscriber.get()
    if subscriber is None or subscriber._disposed:
        return
    if dep_key not in subscriber._dependencies:
        subscriber._dependencies[dep_key] = owner
        _anchor.subscribe(dep_key, subscriber)


def trigger(*dep_keys: _anchor.DepKey) -> None:
    """Notify every subscriber of dep_keys inside a single batch frame."""
    targets: dict[Subscriber, None] = {}
    for dep_key in dep_keys:
        for subscriber in _anchor.subscribers_of(dep_key):
            targets[subscriber] = None
    if not targets:
        return
    begin_batch()
    try:
        for subscriber in sorted(targets, key=lambda s: s.id):
            schedule(subscriber)
    finally:
        end_batch()


def schedule(subscriber: Subscriber) -> None:
    """Invalidate a computed now, defer effects/watchers while batching."""
    if subscriber._disposed:
        logger.debug("Ignoring notification for disposed %r", subscriber)
        return
    match subscriber.kind:
        case SubscriberKind.COMPUTED:
            subscriber._invalidate()
        case _ if _batch_depth > 0:
            _pending[subscriber] = None
        case _:
            _run_safely(subscriber)


def begin_batch() -> None:
    """Enter a batching scope. Nested batches are supported."""
    global _batch_depth
    _batch_depth += 1


def end_batch(flush: bool = True) -> None:
    """Exit a batching scope. The outermost exit flushes pending subscribers."""
    global _batch_depth
    if _batch_depth == 0:
        logger.warning("end_batch() called with no open batch")
        return
    _batch_depth -= 1
    if _batch_depth == 0 and flush:
        _flush_pending()


def in_batch() -> bool:
    return _batch_depth > 0


def has_changed(old: object, new: object) -> bool:
    """Identity first, then equality. Incomparable values count as changed.

    NaN counts as equal to NaN, so rewriting it is a no-op.
    """
    if old is new:
        return False
    if isinstance(old, float) and isinstance(new, float) and math.isnan(old) and math.isnan(new):
        return False
    try:
        return bool(old != new)
    except Exception:
        return True


def _run_safely(subscriber: Subscriber) -> None:
    # A flush can happen inside another subscriber's run; start from a clean
    # context so nothing read here is attributed to it.
    token = current_subscriber.set(None)
    try:
        subscriber._run()
    except Exception:
        # One failing subscriber must not abort the rest of the flush.
        logger.exception("%r raised while re-running", subscriber)
    finally:
        current_subscriber.reset(token)


def _flush_pending() -> None:
    """Run pending subscribers in registration order until none remain.

    The flush holds a batch frame of its own, so writes made by flushed
    subscribers land back in _pending instead of recursing. A subscriber
    re-triggered before its turn still runs only once.
    """
    global _batch_depth
    _batch_depth += 1
    try:
        rounds = 0
        while _pending:
            rounds += 1
            if rounds > MAX_FLUSH_ROUNDS:
                logger.error(
                    "Aborting flush after %d rounds; dropping %d pending subscribers "
                    "(likely a write loop between effects)",
                    MAX_FLUSH_ROUNDS,
                    len(_pending),
                )
                _pending.clear()
                break
            for subscriber in sorted(_pending, key=lambda s: s.id):
                if subscriber not in _pending:
                    continue
                del _pending[subscriber]
                if not subscriber._disposed:
                    _run_safely(subscriber)
    finally:
        _batch_depth -= 1


def untrack(fn: Callable[[], T]) -> T:
    """Run fn with tracking disabled; reads inside register no dependencies."""
    token = current_subscriber.set(None)
    try:
        return fn()
    finally:
        current_subscriber.reset(token)


def get_pending_count() -> int:
    """Number of subscribers waiting to run. Useful for testing."""
    return len(_pending)
