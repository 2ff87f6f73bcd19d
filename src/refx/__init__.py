"""refx: Vue-style reactive state for Python.

Plain dicts and lists become reactive proxies; effects, computeds and
watchers re-run exactly when the keys they read change.
"""

from importlib.metadata import PackageNotFoundError, version as _version

try:
    __version__ = _version("refx")
except PackageNotFoundError:  # running from a source checkout
    __version__ = "0.0.0"

from refx._tracking import get_pending_count, untrack
from refx.reactive import (
    ReactiveDict,
    ReactiveList,
    is_reactive,
    notify,
    reactive,
    ref,
    refs,
    set_scheduler,
    to_raw,
)
from refx.computed import Computed, computed
from refx.effect import Effect, effect, effects
from refx.watch import Watcher, watch
from refx.action import action, batch, pause, resume, transaction
from refx.update import set_selector_updater
from refx.builder import Builder, builder
from refx.store import async_state, component, store
from refx.collection import collection
from refx.form import Form, FormStatus, SubmitResult, form
from refx import validators
# textual NOT auto-imported — opt-in only

state = reactive

__all__ = [
    "reactive",
    "state",
    "ReactiveDict",
    "ReactiveList",
    "is_reactive",
    "to_raw",
    "ref",
    "refs",
    "notify",
    "set_scheduler",
    "Computed",
    "computed",
    "Effect",
    "effect",
    "effects",
    "Watcher",
    "watch",
    "action",
    "transaction",
    "batch",
    "pause",
    "resume",
    "untrack",
    "get_pending_count",
    "set_selector_updater",
    "Builder",
    "builder",
    "store",
    "component",
    "async_state",
    "collection",
    "Form",
    "FormStatus",
    "SubmitResult",
    "form",
    "validators",
]
