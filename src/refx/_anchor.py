"""Dependency registry — plain Python structures shared by every reactive object.

Maps a dependency key to the subscribers currently depending on it:

    (id(target), key)      -> reads of a dict key / list index
    (id(target), ITERATE)  -> structural reads (iteration, len, membership)
    (computed.id, VALUE)   -> reads of a Computed node

The registry is process-wide on purpose so cross-object computeds and effects
work. Entries are dropped as soon as their subscriber set empties.
"""

from __future__ import annotations

import itertools
import weakref
from typing import Hashable

ITERATE = "__iterate__"
VALUE = "__value__"

DepKey = tuple[int, Hashable]

# dep key -> insertion-ordered set of subscribers (dict used as ordered set)
observers: dict[DepKey, dict] = {}

# id(raw target) -> proxy. Subscribers hold the proxies they depend on, so a
# target id can't be recycled while anything is subscribed to it.
proxies: weakref.WeakValueDictionary = weakref.WeakValueDictionary()

# itertools.count is thread-safe (C-level GIL atomic).
# IDs double as registration order for the scheduler.
_id_counter = itertools.count(1)


def new_id() -> int:
    return next(_id_counter)


def subscribe(dep_key: DepKey, subscriber) -> None:
    subs = observers.get(dep_key)
    if subs is None:
        subs = observers[dep_key] = {}
    subs[subscriber] = None


def unsubscribe(dep_key: DepKey, subscriber) -> None:
    subs = observers.get(dep_key)
    if subs is None:
        return
    subs.pop(subscriber, None)
    if not subs:
        del observers[dep_key]


def subscribers_of(dep_key: DepKey) -> list:
    """Snapshot of subscribers for a key, in registration order."""
    subs = observers.get(dep_key)
    if not subs:
        return []
    return sorted(subs, key=lambda s: s.id)


def subscriber_count(dep_key: DepKey) -> int:
    return len(observers.get(dep_key, ()))
