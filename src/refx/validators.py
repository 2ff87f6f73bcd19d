"""Stock field validators for form().

A validator is called as validator(value, all_values, field) and returns
None (or True, or "") when the value is fine, or an error message string.
Every factory here ignores empty values except required(), so they compose
freely with combine().
"""

from __future__ import annotations

import inspect
import re
from typing import Any, Callable

Validator = Callable[[Any, dict, str], Any]

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def _is_empty(value: Any) -> bool:
    if value is None or value == "":
        return True
    return isinstance(value, str) and not value.strip()


def required(message: str = "This field is required") -> Validator:
    def validate(value, all_values=None, field=None):
        if _is_empty(value) or value is False:
            return message
        return None

    return validate


def email(message: str = "Invalid email address") -> Validator:
    def validate(value, all_values=None, field=None):
        if _is_empty(value):
            return None
        return None if _EMAIL_RE.match(str(value)) else message

    return validate


def min_length(minimum: int, message: str | None = None) -> Validator:
    msg = message or f"Must be at least {minimum} characters"

    def validate(value, all_values=None, field=None):
        if _is_empty(value):
            return None
        return None if len(value) >= minimum else msg

    return validate


def max_length(maximum: int, message: str | None = None) -> Validator:
    msg = message or f"Must be no more than {maximum} characters"

    def validate(value, all_values=None, field=None):
        if _is_empty(value):
            return None
        return None if len(value) <= maximum else msg

    return validate


def pattern(regex: str | re.Pattern[str], message: str = "Invalid format") -> Validator:
    compiled = re.compile(regex) if isinstance(regex, str) else regex

    def validate(value, all_values=None, field=None):
        if _is_empty(value):
            return None
        return None if compiled.search(str(value)) else message

    return validate


def min_value(minimum: float, message: str | None = None) -> Validator:
    msg = message or f"Must be at least {minimum}"

    def validate(value, all_values=None, field=None):
        if _is_empty(value):
            return None
        try:
            return None if float(value) >= minimum else msg
        except (TypeError, ValueError):
            return msg

    return validate


def max_value(maximum: float, message: str | None = None) -> Validator:
    msg = message or f"Must be no more than {maximum}"

    def validate(value, all_values=None, field=None):
        if _is_empty(value):
            return None
        try:
            return None if float(value) <= maximum else msg
        except (TypeError, ValueError):
            return msg

    return validate


def match(other_field: str, message: str | None = None) -> Validator:
    """Value must equal all_values[other_field] (password confirmation)."""
    msg = message or f"Must match {other_field}"

    def validate(value, all_values=None, field=None):
        other = (all_values or {}).get(other_field)
        return None if value == other else msg

    return validate


def custom(fn: Validator) -> Validator:
    return fn


def _failed(error: Any) -> bool:
    return error is not None and error is not True and error != ""


def combine(*validators: Validator) -> Validator:
    """Run validators in order; the first error wins.

    When one of them returns an awaitable, the combined validator returns a
    coroutine that awaits it and carries on with the rest of the chain.
    """

    def validate(value, all_values=None, field=None):
        for i, validator in enumerate(validators):
            error = validator(value, all_values, field)
            if inspect.isawaitable(error):
                return _continue(error, validators[i + 1 :], value, all_values, field)
            if _failed(error):
                return error
        return None

    return validate


async def _continue(pending, rest, value, all_values, field):
    error = await pending
    if _failed(error):
        return error
    for validator in rest:
        error = validator(value, all_values, field)
        if inspect.isawaitable(error):
            error = await error
        if _failed(error):
            return error
    return None
