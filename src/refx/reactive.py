"""Reactive proxies — plain dicts and lists that track their readers.

reactive(target) wraps a dict in a ReactiveDict and a list in a ReactiveList.
Reading a key inside an effect/computed/watcher registers (target, key) as a
dependency; writing a *different* value notifies everyone registered under it.
Writes of an equal value are no-ops. Nested dicts and lists are wrapped on read,
and the same target always comes back as the same proxy while it is alive.

ReactiveDict exposes keys as attributes as well as items. Framework methods
live in the underscore namespace (_watch, _update, _computed, ...), the same
way namedtuple keeps _replace/_asdict out of the way of field names.

Thread safety: call set_scheduler() once from the owning thread. After that,
any write from a background thread is handed to the scheduler. Owner-thread
writes remain synchronous.
"""

from __future__ import annotations

import logging
import threading
import types
from typing import Any, Callable, Hashable, Iterator

from refx import _anchor
from refx._anchor import ITERATE, VALUE
from refx._tracking import begin_batch, end_batch, has_changed, track, trigger
from refx.action import action, batch
from refx.computed import Computed
from refx.watch import Watcher, watch

logger = logging.getLogger("refx.reactive")

_MISSING = object()

# ─── Auto-marshal ────────────────────────────────────────────────────────────
_scheduler = None
_scheduler_thread = None


def set_scheduler(scheduler) -> None:
    """Set the global thread scheduler for cross-thread writes.

    Call once from the owning thread:
        refx.set_scheduler(app.call_from_thread)

    After this, any write from a background thread is marshaled through the
    scheduler. Owner-thread writes remain synchronous. Pass None to disable.
    """
    global _scheduler, _scheduler_thread
    _scheduler = scheduler
    _scheduler_thread = threading.current_thread() if scheduler is not None else None


def _dispatch(write: Callable[[], Any]) -> Any:
    """Run a write now, or hand it to the scheduler when off the owning thread.

    Marshaled writes return None.
    """
    if _scheduler is not None and threading.current_thread() is not _scheduler_thread:
        _scheduler(write)
        return None
    return write()


# ─── Proxies ─────────────────────────────────────────────────────────────────


class ReactiveBase:
    """Common plumbing: one proxy per raw target, dep keys built from its id."""

    __slots__ = ("_target", "__weakref__")

    def _track(self, key: Hashable) -> None:
        track((id(self._target), key), self)

    def _trigger(self, *keys: Hashable) -> None:
        target_id = id(self._target)
        trigger(*((target_id, key) for key in keys))

    @property
    def _raw(self):
        """The wrapped target. Reads through it are not tracked."""
        return self._target

    __hash__ = None  # mutable containers


class ReactiveDict(ReactiveBase):
    """A reactive dict with attribute and item access."""

    __slots__ = ("_computeds", "_actions")

    def __init__(self, target: dict) -> None:
        object.__setattr__(self, "_target", target)
        object.__setattr__(self, "_computeds", {})
        object.__setattr__(self, "_actions", {})

    # --- Read operations (track) ---

    def __getitem__(self, key: Hashable) -> Any:
        comp = self._computeds.get(key)
        if comp is not None:
            return comp.get()
        self._track(key)
        return reactive(self._target[key])

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        bound = self._actions.get(name)
        if bound is not None:
            return bound
        try:
            return self[name]
        except KeyError:
            raise AttributeError(
                f"{type(self).__name__} has no key or action {name!r}"
            ) from None

    def _get(self, key: Hashable, default: Any = None) -> Any:
        """Tracked read that falls back to default for missing keys."""
        comp = self._computeds.get(key)
        if comp is not None:
            return comp.get()
        self._track(key)
        return reactive(self._target.get(key, default))

    def __contains__(self, key: Hashable) -> bool:
        if key in self._computeds:
            return True
        self._track(key)
        return key in self._target

    def __iter__(self) -> Iterator[Hashable]:
        self._track(ITERATE)
        return iter(list(self._target))

    def __len__(self) -> int:
        self._track(ITERATE)
        return len(self._target)

    def __bool__(self) -> bool:
        self._track(ITERATE)
        return bool(self._target)

    def _keys(self) -> list:
        return list(self)

    def _values(self) -> list:
        return [self[key] for key in self]

    def _items(self) -> list[tuple]:
        return [(key, self[key]) for key in self]

    def _to_dict(self) -> dict:
        """Deep plain snapshot. Tracks every key it copies."""
        return {key: _plain(self[key]) for key in self}

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ReactiveDict):
            other = other._to_dict()
        if not isinstance(other, dict):
            return NotImplemented
        return self._to_dict() == other

    # --- Write operations (notify) ---

    def __setitem__(self, key: Hashable, value: Any) -> None:
        _dispatch(lambda: self._write(key, value))

    def __setattr__(self, name: str, value: Any) -> None:
        if name.startswith("_"):
            object.__setattr__(self, name, value)
        else:
            self[name] = value

    def _write(self, key: Hashable, value: Any) -> None:
        if key in self._computeds:
            logger.warning("Ignoring write to computed %r", key)
            return
        value = to_raw(value)
        target = self._target
        old = target.get(key, _MISSING)
        if old is not _MISSING and not has_changed(old, value):
            return
        target[key] = value
        if old is _MISSING:
            self._trigger(key, ITERATE)
        else:
            self._trigger(key)

    def __delitem__(self, key: Hashable) -> None:
        _dispatch(lambda: self._delete(key))

    def __delattr__(self, name: str) -> None:
        if name.startswith("_"):
            object.__delattr__(self, name)
            return
        try:
            del self[name]
        except KeyError:
            raise AttributeError(name) from None

    def _delete(self, key: Hashable) -> None:
        if key in self._computeds:
            logger.warning("Ignoring delete of computed %r", key)
            return
        del self._target[key]
        self._trigger(key, ITERATE)

    def _pop(self, key: Hashable, default: Any = _MISSING) -> Any:
        """Remove key and return its (raw) value, like dict.pop."""
        if key not in self._target:
            if default is _MISSING:
                raise KeyError(key)
            return default
        value = self._target[key]
        del self[key]
        return value

    def _clear(self) -> None:
        """Remove every key in one batch frame."""
        if not self._target:
            return
        begin_batch()
        try:
            for key in list(self._target):
                del self[key]
        finally:
            end_batch()

    # --- Framework API ---

    def _computed(self, name: str, fn: Callable[[ReactiveDict], Any]) -> ReactiveDict:
        """Expose fn(self) as a lazy, read-only, cached attribute called name."""
        if name in self._target:
            logger.warning("Computed %r shadows an existing key", name)
        self._computeds[name] = Computed(lambda: fn(self), name=name)
        return self

    def _action(self, name: str, fn: Callable[..., Any]) -> ReactiveDict:
        """Attach fn as a batched method: self.name(*args) calls fn(self, *args)."""
        self._actions[name] = action(types.MethodType(fn, self))
        return self

    def _watch(
        self,
        key_or_fn: Hashable | Callable[[ReactiveDict], Any],
        callback: Callable[[Any, Any], None],
        *,
        immediate: bool = False,
    ) -> Watcher:
        """Call callback(new, old) when a key (or fn(self)) changes value."""
        if callable(key_or_fn):
            fn = key_or_fn

            def source():
                return fn(self)

        else:
            key = key_or_fn

            def source():
                return self._get(key)

            source.__name__ = str(key)
        return watch(source, callback, immediate=immediate)

    def _batch(self, fn: Callable[[ReactiveDict], Any]) -> Any:
        return batch(lambda: fn(self))

    def _notify(self, key: Hashable | None = None) -> None:
        """Re-run subscribers of key (or of every key) without changing anything."""
        if key is None:
            keys = [*self._target, ITERATE]
            self._trigger(*keys)
            for comp in self._computeds.values():
                trigger((comp.id, VALUE))
            return
        comp = self._computeds.get(key)
        if comp is not None:
            trigger((comp.id, VALUE))
        else:
            self._trigger(key)

    def _update(self, updates: dict) -> ReactiveDict:
        from refx.update import update_mixed

        return update_mixed(self, updates)

    def _set(self, updates: dict) -> ReactiveDict:
        from refx.update import set_with_functions

        return set_with_functions(self, updates)

    def _dispose(self) -> None:
        """Disconnect every computed attached to this state."""
        for comp in self._computeds.values():
            comp.dispose()

    def __copy__(self) -> dict:
        return dict(self._target)

    def __deepcopy__(self, memo: dict) -> dict:
        import copy

        return copy.deepcopy(self._target, memo)

    def __repr__(self) -> str:
        return f"ReactiveDict({self._target!r})"


class ReactiveList(ReactiveBase):
    """A reactive list.

    Index reads track the index; iteration, len and membership track the
    structure. Index writes notify the index and the structure; structural
    mutations notify the structure plus every index whose item moved.
    """

    __slots__ = ()

    def __init__(self, target: list) -> None:
        self._target = target

    # --- Read operations (track) ---

    def __getitem__(self, index: int | slice) -> Any:
        if isinstance(index, slice):
            self._track(ITERATE)
            return [reactive(item) for item in self._target[index]]
        if index < 0:
            self._track(ITERATE)
        else:
            self._track(index)
        return reactive(self._target[index])

    def __len__(self) -> int:
        self._track(ITERATE)
        return len(self._target)

    def __iter__(self) -> Iterator[Any]:
        self._track(ITERATE)
        return (reactive(item) for item in list(self._target))

    def __contains__(self, item: Any) -> bool:
        self._track(ITERATE)
        return to_raw(item) in self._target

    def __bool__(self) -> bool:
        self._track(ITERATE)
        return bool(self._target)

    def index(self, item: Any, *args: int) -> int:
        self._track(ITERATE)
        return self._target.index(to_raw(item), *args)

    def count(self, item: Any) -> int:
        self._track(ITERATE)
        return self._target.count(to_raw(item))

    def _to_list(self) -> list:
        """Deep plain snapshot. Tracks the structure and nested items."""
        return [_plain(item) for item in self]

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ReactiveList):
            other = other._to_list()
        if not isinstance(other, list):
            return NotImplemented
        return self._to_list() == other

    # --- Write operations (notify) ---

    def _structural(self, start: int, old_len: int) -> None:
        end = max(old_len, len(self._target))
        self._trigger(ITERATE, *range(start, end))

    def __setitem__(self, index: int | slice, value: Any) -> None:
        _dispatch(lambda: self._write(index, value))

    def _write(self, index: int | slice, value: Any) -> None:
        target = self._target
        if isinstance(index, slice):
            old_len = len(target)
            affected = range(*index.indices(old_len))
            target[index] = [to_raw(item) for item in value]
            self._structural(min(affected) if affected else old_len, old_len)
            return
        if index < 0:
            index += len(target)
        old = target[index]
        value = to_raw(value)
        if not has_changed(old, value):
            return
        target[index] = value
        self._trigger(index, ITERATE)

    def __delitem__(self, index: int | slice) -> None:
        _dispatch(lambda: self._delete(index))

    def _delete(self, index: int | slice) -> None:
        target = self._target
        old_len = len(target)
        if isinstance(index, slice):
            affected = range(*index.indices(old_len))
            del target[index]
            if affected:
                self._structural(min(affected), old_len)
            return
        del target[index]
        self._structural(index + old_len if index < 0 else index, old_len)

    def append(self, item: Any) -> None:
        def write():
            old_len = len(self._target)
            self._target.append(to_raw(item))
            self._structural(old_len, old_len)

        _dispatch(write)

    def extend(self, items) -> None:
        raw_items = [to_raw(item) for item in items]
        if not raw_items:
            return

        def write():
            old_len = len(self._target)
            self._target.extend(raw_items)
            self._structural(old_len, old_len)

        _dispatch(write)

    def __iadd__(self, items) -> ReactiveList:
        self.extend(items)
        return self

    def insert(self, index: int, item: Any) -> None:
        def write():
            old_len = len(self._target)
            self._target.insert(index, to_raw(item))
            start = max(0, old_len + index) if index < 0 else min(index, old_len)
            self._structural(start, old_len)

        _dispatch(write)

    def pop(self, index: int = -1) -> Any:
        def write():
            old_len = len(self._target)
            result = self._target.pop(index)
            self._structural(index + old_len if index < 0 else index, old_len)
            return result

        return _dispatch(write)

    def remove(self, item: Any) -> None:
        def write():
            position = self._target.index(to_raw(item))
            old_len = len(self._target)
            del self._target[position]
            self._structural(position, old_len)

        _dispatch(write)

    def clear(self) -> None:
        def write():
            old_len = len(self._target)
            if not old_len:
                return
            self._target.clear()
            self._structural(0, old_len)

        _dispatch(write)

    def sort(self, *, key=None, reverse: bool = False) -> None:
        def write():
            before = list(self._target)
            self._target.sort(key=key, reverse=reverse)
            if self._target != before:
                self._structural(0, len(before))

        _dispatch(write)

    def reverse(self) -> None:
        def write():
            before = list(self._target)
            self._target.reverse()
            if self._target != before:
                self._structural(0, len(before))

        _dispatch(write)

    def __copy__(self) -> list:
        return list(self._target)

    def __deepcopy__(self, memo: dict) -> list:
        import copy

        return copy.deepcopy(self._target, memo)

    def __repr__(self) -> str:
        return f"ReactiveList({self._target!r})"


# ─── Factory & helpers ───────────────────────────────────────────────────────


def reactive(target: Any) -> Any:
    """Wrap a dict or list in its reactive proxy. Other values come back unchanged.

    Wrapping is identity-stable: the same target yields the same proxy while
    that proxy is alive, and wrapping a proxy returns it as is.

    Usage:
        s = reactive({"count": 0, "todos": []})
        effect(lambda: print(s.count, len(s.todos)))
        s.count += 1
        s.todos.append("write docs")
    """
    if isinstance(target, ReactiveBase):
        return target
    if isinstance(target, dict):
        cls = ReactiveDict
    elif isinstance(target, list):
        cls = ReactiveList
    else:
        return target

    proxy = _anchor.proxies.get(id(target))
    if proxy is not None and proxy._target is target:
        return proxy
    proxy = cls(target)
    _anchor.proxies[id(target)] = proxy
    return proxy


def is_reactive(value: Any) -> bool:
    return isinstance(value, ReactiveBase)


def to_raw(value: Any) -> Any:
    """The raw target behind a proxy; anything else is returned as is."""
    if isinstance(value, ReactiveBase):
        return value._target
    return value


def _plain(value: Any) -> Any:
    if isinstance(value, ReactiveDict):
        return value._to_dict()
    if isinstance(value, ReactiveList):
        return value._to_list()
    return value


def notify(state: Any, key: Hashable | None = None) -> None:
    """Manually re-run subscribers of state[key] (or of all its keys)."""
    if not isinstance(state, ReactiveDict):
        logger.warning("notify() called on non-reactive %r", type(state).__name__)
        return
    state._notify(key)


def ref(value: Any = None) -> ReactiveDict:
    """A reactive box: ref(0).value."""
    return reactive({"value": value})


def refs(values: dict) -> dict[str, ReactiveDict]:
    """One ref per entry of values."""
    return {name: ref(value) for name, value in values.items()}
