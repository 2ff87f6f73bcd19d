"""Store façades — ready-made shapes built on Builder.

store()       state + computed getters + batched actions
component()   store plus watchers, effects and mounted/unmounted hooks
async_state() {data, loading, error} with an awaitable execute()
"""

from __future__ import annotations

import inspect
from typing import Any, Awaitable, Callable

from refx.builder import builder
from refx.reactive import ReactiveDict


def store(
    initial: dict,
    getters: dict[str, Callable[[ReactiveDict], Any]] | None = None,
    actions: dict[str, Callable[..., Any]] | None = None,
) -> ReactiveDict:
    """State with computed getters and actions called as fn(state, *args)."""
    b = builder(initial)
    if getters:
        b.computed(getters)
    if actions:
        b.actions(actions)
    return b.build()


def component(
    state: dict | None = None,
    computed: dict[str, Callable[[ReactiveDict], Any]] | None = None,
    watch: dict[Any, Callable[[Any, Any], None]] | None = None,
    effects: list[Callable[[ReactiveDict], Any]] | None = None,
    actions: dict[str, Callable[..., Any]] | None = None,
    mounted: Callable[[ReactiveDict], Any] | None = None,
    unmounted: Callable[[ReactiveDict], Any] | None = None,
) -> ReactiveDict:
    """A self-contained reactive unit with a lifecycle.

    mounted(instance) runs right after build; instance.destroy() stops its
    watchers and effects and then calls unmounted(instance).
    """
    b = builder(state or {})
    if computed:
        b.computed(computed)
    if watch:
        b.watch(watch)
    for fn in effects or ():
        b.effect(fn)
    if actions:
        b.actions(actions)
    if unmounted is not None:
        b.destroy(unmounted)
    instance = b.build()
    if mounted is not None:
        mounted(instance)
    return instance


def async_state(initial: Any = None) -> ReactiveDict:
    """Track one async operation's data, loading flag and error.

    Usage:
        user = async_state()
        await user.execute(lambda: fetch_user(42))
        user.data, user.is_success
    """

    async def execute(s: ReactiveDict, fn: Callable[[], Awaitable[Any] | Any]) -> Any:
        s._update({"loading": True, "error": None})
        try:
            result = fn()
            if inspect.isawaitable(result):
                result = await result
        except Exception as exc:
            s._update({"error": exc, "loading": False})
            raise
        s._update({"data": result, "loading": False})
        return result

    def reset(s: ReactiveDict) -> None:
        s._update({"data": initial, "loading": False, "error": None})

    return (
        builder({"data": initial, "loading": False, "error": None})
        .computed("is_success", lambda s: not s.loading and s.error is None and s.data is not None)
        .computed("is_error", lambda s: not s.loading and s.error is not None)
        .action("execute", execute)
        .action("reset", reset)
        .build()
    )
