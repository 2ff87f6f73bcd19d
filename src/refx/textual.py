"""Textual integration for refx. Opt-in — requires textual.

Guard, NoMatches handling and thread marshalling live here, not at callsites.
Core refx stays unaware of Textual; this module only consumes effect(),
watch() and set_selector_updater().

Sources are always evaluated, even while the app is unsafe, so a skipped
update never loses its dependencies. Only the part that touches widgets is
guarded.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Any, Callable

from textual.css.query import NoMatches

from refx.effect import Effect, effect
from refx.watch import Watcher, watch as _watch

# Module-owned pause state, keyed by id(app) so multiple apps work in tests.
_paused_apps: set[int] = set()


@contextmanager
def pause(app):
    """Suspend guarded updates during widget replacement."""
    key = id(app)
    _paused_apps.add(key)
    try:
        yield
    finally:
        _paused_apps.discard(key)


def is_safe(app) -> bool:
    """Is the widget tree in a queryable state?"""
    return app.is_running and id(app) not in _paused_apps


def _guard(app, fn: Callable[..., None]) -> Callable[..., None]:
    """Wrap fn: skip while unsafe, marshal off-thread calls, swallow NoMatches."""
    main = threading.get_ident()

    def safe(*args):
        try:
            fn(*args)
        except NoMatches:
            pass

    def guarded(*args):
        if not is_safe(app):
            return
        if threading.get_ident() != main:
            app.call_from_thread(safe, *args)
        else:
            safe(*args)

    return guarded


def watch(app, source: Callable[[], Any], callback: Callable[[Any, Any], None], *, immediate=False) -> Watcher:
    """watch() that safely bridges to Textual widgets.

    The source is tracked as usual; callback(new, old) is skipped while the
    app is paused or not running.
    """
    return _watch(source, _guard(app, callback), immediate=immediate)


def selector_updater(app) -> Callable[[str, Any], None]:
    """An updater for set_selector_updater() that writes to app.query(selector).

    A mapping value sets attributes on every matched widget; its "styles"
    entry goes to widget.styles and "classes" to widget.set_classes(). Any
    other value is passed to widget.update().

        refx.set_selector_updater(selector_updater(app))
        state._update({"#total": f"{n} items", ".row": {"disabled": True}})
    """

    def update(selector: str, value: Any) -> None:
        for widget in app.query(selector):
            if not isinstance(value, dict):
                widget.update(value)
                continue
            for name, item in value.items():
                if name == "styles":
                    for rule, setting in item.items():
                        setattr(widget.styles, rule, setting)
                elif name == "classes":
                    widget.set_classes(item)
                else:
                    setattr(widget, name, item)

    return update


def bind(app, selector: str, source: Callable[[], Any]) -> Effect:
    """Keep the widgets matching selector in sync with source().

    Returns the Effect; stop it to unbind.
    """
    push = _guard(app, selector_updater(app))

    def run():
        push(selector, source())

    run.__name__ = f"bind({selector})"
    return effect(run)
