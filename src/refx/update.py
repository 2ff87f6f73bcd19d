"""Mixed updates — one call that writes state and forwards UI updates.

state._update({...}) splits its keys in two:

    "count": 3                     -> written to state
    "user.name": "Ada"             -> written to the nested path
    "#total": {"text": "3 items"}  -> forwarded to the selector updater

All state writes share one batch frame, so effects depending on several of
the written keys run once. Selector keys are handed verbatim to whatever
updater was configured with set_selector_updater(); refx itself never touches
widgets.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Callable

from refx.action import batch
from refx.reactive import ReactiveDict, to_raw

logger = logging.getLogger("refx.update")

SelectorUpdater = Callable[[str, Any], None]

# Leading "#" or ".", an attribute selector "[", or a child combinator ">".
_SELECTOR_RE = re.compile(r"^[#.]|[\[>]")

_selector_updater: SelectorUpdater | None = None


def set_selector_updater(updater: SelectorUpdater | None) -> None:
    """Configure where selector-like _update() keys go. None disables forwarding."""
    global _selector_updater
    _selector_updater = updater


def get_selector_updater() -> SelectorUpdater | None:
    return _selector_updater


def is_selector(key: object) -> bool:
    return isinstance(key, str) and bool(_SELECTOR_RE.search(key))


def get_path(obj: Any, path: str, default: Any = None) -> Any:
    """Read a dotted path ("user.address.city"); default when any hop is missing."""
    current = obj
    for part in path.split("."):
        try:
            current = current[part]
        except (KeyError, IndexError, TypeError):
            return default
    return current


def set_path(obj: Any, path: str, value: Any) -> None:
    """Write a dotted path, creating intermediate dicts as needed."""
    *parents, last = path.split(".")
    current = obj
    for part in parents:
        child = current[part] if part in current else None
        if not isinstance(to_raw(child), dict):
            current[part] = {}
            child = current[part]
        current = child
    current[last] = value


def _write(state: ReactiveDict, key: str, value: Any) -> None:
    if "." in key:
        set_path(state, key, value)
    else:
        state[key] = value


def _forward(selector: str, value: Any) -> None:
    if _selector_updater is None:
        logger.warning("No selector updater configured; skipping %r", selector)
        return
    _selector_updater(selector, value)


def update_mixed(state: ReactiveDict, updates: dict) -> ReactiveDict:
    """Write plain keys to state and forward selector keys, in one batch frame."""

    def apply():
        for key, value in updates.items():
            if is_selector(key):
                _forward(key, value)
            else:
                _write(state, key, value)
        return state

    return batch(apply)


def set_with_functions(state: ReactiveDict, updates: dict) -> ReactiveDict:
    """Like update_mixed for state keys, but callables receive the previous value.

    Usage:
        s._set({"count": lambda n: n + 1, "user.name": str.upper})
    """

    def apply():
        for key, value in updates.items():
            if callable(value):
                previous = get_path(state, key) if "." in key else state._get(key)
                value = value(previous)
            _write(state, key, value)
        return state

    return batch(apply)
