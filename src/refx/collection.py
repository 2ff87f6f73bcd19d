"""collection() — a reactive list holder with management actions.

    todos = collection([{"text": "docs", "done": False}])
    effect(lambda: print(todos.length, "todos"))
    todos.add({"text": "tests", "done": False})
    todos.toggle(lambda t: t["text"] == "docs")
    todos.remove_where(lambda t, i: t["done"])

Every mutating action runs in one batch frame.
"""

from __future__ import annotations

from typing import Any, Callable

from refx.builder import builder
from refx.reactive import ReactiveDict, to_raw

Predicate = Callable[[Any], bool]


def _find_index(items, predicate: Predicate | Any) -> int:
    if callable(predicate):
        for i, item in enumerate(items):
            if predicate(item):
                return i
        return -1
    raw = to_raw(predicate)
    for i, item in enumerate(items):
        if to_raw(item) == raw:
            return i
    return -1


def _add(s: ReactiveDict, item: Any) -> ReactiveDict:
    s.items.append(item)
    return s


def _remove(s: ReactiveDict, predicate: Predicate | Any) -> ReactiveDict:
    i = _find_index(s.items, predicate)
    if i != -1:
        del s.items[i]
    return s


def _update(s: ReactiveDict, predicate: Predicate | Any, changes: dict) -> ReactiveDict:
    i = _find_index(s.items, predicate)
    if i != -1:
        item = s.items[i]
        for key, value in changes.items():
            item[key] = value
    return s


def _toggle(s: ReactiveDict, predicate: Predicate | Any, field: str = "done") -> ReactiveDict:
    i = _find_index(s.items, predicate)
    if i != -1:
        item = s.items[i]
        item[field] = not item._get(field)
    return s


def _remove_where(s: ReactiveDict, predicate: Callable[[Any, int], bool]) -> ReactiveDict:
    items = s.items
    for i in range(len(items) - 1, -1, -1):
        if predicate(items[i], i):
            del items[i]
    return s


def _update_where(s: ReactiveDict, predicate: Callable[[Any, int], bool], changes: dict) -> ReactiveDict:
    for i, item in enumerate(s.items):
        if predicate(item, i):
            for key, value in changes.items():
                item[key] = value
    return s


def _clear(s: ReactiveDict) -> ReactiveDict:
    s.items.clear()
    return s


def _reset(s: ReactiveDict, items: list | None = None) -> ReactiveDict:
    s.items[:] = list(items or [])
    return s


def _find(s: ReactiveDict, predicate: Predicate | Any) -> Any:
    i = _find_index(s.items, predicate)
    return s.items[i] if i != -1 else None


def _filter(s: ReactiveDict, predicate: Predicate) -> list:
    return [item for item in s.items if predicate(item)]


def _at(s: ReactiveDict, index: int) -> Any:
    try:
        return s.items[index]
    except IndexError:
        return None


def _to_list(s: ReactiveDict) -> list:
    return s.items._to_list()


def collection(items: list | None = None) -> ReactiveDict:
    """Wrap items in a reactive {"items": [...]} with list-management actions."""
    return (
        builder({"items": list(items or [])})
        .computed("length", lambda s: len(s.items))
        .computed("first", lambda s: s.items[0] if s.items else None)
        .computed("last", lambda s: s.items[-1] if s.items else None)
        .computed("is_empty", lambda s: not s.items)
        .actions(
            {
                "add": _add,
                "remove": _remove,
                "update": _update,
                "toggle": _toggle,
                "remove_where": _remove_where,
                "update_where": _update_where,
                "clear": _clear,
                "reset": _reset,
                "find": _find,
                "filter": _filter,
                "at": _at,
                "to_list": _to_list,
            }
        )
        .build()
    )
