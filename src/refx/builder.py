"""Builder — staged declarations materialized into live reactive instances.

A Builder only records what it is told. No proxy, computed, watcher or effect
exists until build(), and every build() produces a fresh, independent
instance from the same declarations:

    counter = (
        builder()
        .state({"n": 0})
        .computed("double", lambda s: s.n * 2)
        .action("inc", lambda s: setattr(s, "n", s.n + 1))
        .effect(lambda s: print("double is", s.double))
        .build()
    )
    counter.inc()
    counter.destroy()

Declarations made after the first build() are ignored with a warning; the
builder itself stays buildable.
"""

from __future__ import annotations

import copy
import enum
import logging
from typing import Any, Callable, NamedTuple

from refx.effect import effect
from refx.reactive import ReactiveDict, reactive, to_raw

logger = logging.getLogger("refx.builder")


class DeclarationKind(enum.Enum):
    STATE = "state"
    COMPUTED = "computed"
    ACTION = "action"
    WATCH = "watch"
    EFFECT = "effect"
    DESTROY = "destroy"


class Declaration(NamedTuple):
    kind: DeclarationKind
    name: Any
    payload: Any


# Order in which build() applies declaration groups.
_APPLY_ORDER = (
    DeclarationKind.COMPUTED,
    DeclarationKind.ACTION,
    DeclarationKind.WATCH,
    DeclarationKind.EFFECT,
    DeclarationKind.DESTROY,
)


class Builder:
    """Accumulates declarations; build() turns them into a reactive instance."""

    def __init__(self, initial: dict | None = None) -> None:
        self._declarations: list[Declaration] = []
        self._frozen: tuple[Declaration, ...] | None = None
        if initial is not None:
            self.state(initial)

    @property
    def built(self) -> bool:
        return self._frozen is not None

    @property
    def declarations(self) -> tuple[Declaration, ...]:
        return tuple(self._declarations) if self._frozen is None else self._frozen

    def _declare(self, kind: DeclarationKind, name: Any, payload: Any) -> Builder:
        if self._frozen is not None:
            logger.warning(
                "Ignoring %s(%r) declared after build(); it won't affect built instances",
                kind.value,
                name,
            )
            return self
        self._declarations.append(Declaration(kind, name, payload))
        return self

    def state(self, shape: dict) -> Builder:
        """Merge keys into the initial state shape. Each build() gets its own copy."""
        return self._declare(DeclarationKind.STATE, None, copy.deepcopy(to_raw(shape)))

    def computed(self, name_or_defs: str | dict, fn: Callable | None = None) -> Builder:
        for name, getter in _pairs(name_or_defs, fn):
            self._declare(DeclarationKind.COMPUTED, name, getter)
        return self

    def action(self, name: str, fn: Callable) -> Builder:
        return self._declare(DeclarationKind.ACTION, name, fn)

    def actions(self, defs: dict[str, Callable]) -> Builder:
        for name, fn in defs.items():
            self.action(name, fn)
        return self

    def watch(self, key_or_defs: Any, callback: Callable | None = None) -> Builder:
        for key, cb in _pairs(key_or_defs, callback):
            self._declare(DeclarationKind.WATCH, key, cb)
        return self

    def effect(self, fn: Callable[[ReactiveDict], Any]) -> Builder:
        return self._declare(DeclarationKind.EFFECT, getattr(fn, "__name__", None), fn)

    def destroy(self, fn: Callable[[ReactiveDict], Any]) -> Builder:
        """Register a hook run by instance.destroy()."""
        return self._declare(DeclarationKind.DESTROY, getattr(fn, "__name__", None), fn)

    def build(self) -> ReactiveDict:
        if self._frozen is None:
            self._frozen = tuple(self._declarations)
        declarations = self._frozen

        target: dict = {}
        for decl in declarations:
            if decl.kind is DeclarationKind.STATE:
                target.update(copy.deepcopy(decl.payload))
        instance = reactive(target)

        stoppers: list[Callable[[], None]] = []
        hooks: list[Callable[[ReactiveDict], Any]] = []
        for kind in _APPLY_ORDER:
            for decl in declarations:
                if decl.kind is not kind:
                    continue
                match kind:
                    case DeclarationKind.COMPUTED:
                        instance._computed(decl.name, decl.payload)
                    case DeclarationKind.ACTION:
                        instance._action(decl.name, decl.payload)
                    case DeclarationKind.WATCH:
                        stoppers.append(instance._watch(decl.name, decl.payload))
                    case DeclarationKind.EFFECT:
                        stoppers.append(effect(_bind(decl.payload, instance)))
                    case DeclarationKind.DESTROY:
                        hooks.append(decl.payload)

        destroyed = False

        def destroy(self) -> None:
            nonlocal destroyed
            if destroyed:
                return
            destroyed = True
            for stop in stoppers:
                stop()
            self._dispose()
            for hook in hooks:
                try:
                    hook(self)
                except Exception:
                    logger.exception("destroy hook %r raised", hook)

        instance._action("destroy", destroy)
        return instance


def _bind(fn: Callable[[ReactiveDict], Any], instance: ReactiveDict) -> Callable[[], Any]:
    def run():
        return fn(instance)

    run.__name__ = getattr(fn, "__name__", "effect")
    return run


def _pairs(name_or_defs: Any, fn: Callable | None) -> list[tuple[Any, Callable]]:
    if isinstance(name_or_defs, dict):
        return list(name_or_defs.items())
    if fn is None:
        raise TypeError(f"missing callable for {name_or_defs!r}")
    return [(name_or_defs, fn)]


def builder(initial: dict | None = None) -> Builder:
    """Start a new, inert Builder (optionally seeded with a state shape)."""
    return Builder(initial)
