"""Reactive forms — values, validation and submission state on top of reactive().

A Form keeps one reactive state holding values, errors, touched flags,
submit_count, is_submitting and status, plus computed is_valid, is_dirty,
has_errors, touched_fields and error_fields. Everything is readable inside
effects like any other reactive data.

Validators are called as validator(value, all_values, field). They pass by
returning None/True/"" and fail by returning a message (or False for a
generic one). A list of validators runs in order, first failure wins. A
validator that raises is logged and marks its field invalid; it never
aborts the rest of the form.

Submission is a small state machine:

    IDLE -> VALIDATING -> SUBMITTING -> IDLE
                 \\-> IDLE (invalid; handler not called)

submit() never raises for handler failures: the outcome comes back as a
SubmitResult.
"""

from __future__ import annotations

import copy
import enum
import inspect
import logging
from dataclasses import dataclass, field as dataclass_field
from typing import Any, Callable

from refx._tracking import untrack
from refx.action import transaction
from refx.reactive import ReactiveDict, reactive, to_raw
from refx.validators import Validator

logger = logging.getLogger("refx.form")

INVALID_MESSAGE = "Invalid value"
VALIDATION_FAILED_MESSAGE = "Validation failed"

SubmitHandler = Callable[[dict], Any]


class FormStatus(str, enum.Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    SUBMITTING = "submitting"


@dataclass(frozen=True)
class SubmitResult:
    success: bool
    result: Any = None
    error: BaseException | None = None
    errors: dict[str, str] = dataclass_field(default_factory=dict)


def _message(outcome: Any) -> str | None:
    """Normalize a validator outcome into an error message (None when valid)."""
    if outcome is None or outcome is True or outcome == "":
        return None
    if outcome is False:
        return INVALID_MESSAGE
    return str(outcome)


class Form:
    """Reactive form state with validators and an async submit()."""

    def __init__(
        self,
        initial_values: dict | None = None,
        validators: dict[str, Validator | list[Validator]] | None = None,
        on_submit: SubmitHandler | None = None,
    ) -> None:
        self.initial_values: dict = copy.deepcopy(to_raw(initial_values) or {})
        self._validators: dict[str, tuple[Validator, ...]] = {
            name: tuple(v) if isinstance(v, (list, tuple)) else (v,)
            for name, v in (validators or {}).items()
        }
        self._on_submit = on_submit

        state = reactive(
            {
                "values": copy.deepcopy(self.initial_values),
                "errors": {},
                "touched": {},
                "submit_count": 0,
                "is_submitting": False,
                "status": FormStatus.IDLE,
            }
        )
        state._computed("is_valid", lambda s: not any(s.errors._values()))
        state._computed("has_errors", lambda s: not s.is_valid)
        state._computed("is_dirty", lambda s: s.values._to_dict() != self.initial_values)
        state._computed("touched_fields", lambda s: [k for k, v in s.touched._items() if v])
        state._computed("error_fields", lambda s: [k for k, v in s.errors._items() if v])
        self._state: ReactiveDict = state

    # --- Reactive views ---

    @property
    def values(self) -> ReactiveDict:
        return self._state.values

    @property
    def errors(self) -> ReactiveDict:
        return self._state.errors

    @property
    def touched(self) -> ReactiveDict:
        return self._state.touched

    @property
    def submit_count(self) -> int:
        return self._state.submit_count

    @property
    def is_submitting(self) -> bool:
        return self._state.is_submitting

    @property
    def status(self) -> FormStatus:
        return self._state.status

    @property
    def is_valid(self) -> bool:
        return self._state.is_valid

    @property
    def has_errors(self) -> bool:
        return self._state.has_errors

    @property
    def is_dirty(self) -> bool:
        return self._state.is_dirty

    @property
    def touched_fields(self) -> list[str]:
        return self._state.touched_fields

    @property
    def error_fields(self) -> list[str]:
        return self._state.error_fields

    # --- Values ---

    def set_value(self, field: str, value: Any) -> Form:
        """Write a value, mark it touched and run its validator, in one batch."""
        with transaction():
            self.values[field] = value
            self.touched[field] = True
            if field in self._validators:
                self.validate_field(field)
        return self

    def set_values(self, values: dict) -> Form:
        with transaction():
            for name, value in values.items():
                self.set_value(name, value)
        return self

    def get_value(self, field: str) -> Any:
        return self.values._get(field)

    # --- Errors ---

    def set_error(self, field: str, error: str | None) -> Form:
        if error:
            self.errors[field] = error
        else:
            self.errors._pop(field, None)
        return self

    def set_errors(self, errors: dict[str, str | None]) -> Form:
        with transaction():
            for name, error in errors.items():
                self.set_error(name, error)
        return self

    def clear_error(self, field: str) -> Form:
        self.errors._pop(field, None)
        return self

    def clear_errors(self) -> Form:
        self.errors._clear()
        return self

    def has_error(self, field: str) -> bool:
        return bool(self.errors._get(field))

    def get_error(self, field: str) -> str | None:
        return self.errors._get(field) or None

    # --- Touched ---

    def set_touched(self, field: str, touched: bool = True) -> Form:
        if touched:
            self.touched[field] = True
        else:
            self.touched._pop(field, None)
        return self

    def set_touched_fields(self, fields) -> Form:
        with transaction():
            for name in fields:
                self.set_touched(name)
        return self

    def touch_all(self) -> Form:
        names = dict.fromkeys([*to_raw(self.values), *self._validators])
        with transaction():
            for name in names:
                self.touched[name] = True
        return self

    def is_touched(self, field: str) -> bool:
        return bool(self.touched._get(field))

    def should_show_error(self, field: str) -> bool:
        return self.is_touched(field) and self.has_error(field)

    # --- Validation ---

    def _snapshot(self) -> dict:
        return untrack(self.values._to_dict)

    def _call_validator(self, validator: Validator, field: str, value: Any, all_values: dict) -> Any:
        try:
            return validator(value, all_values, field)
        except Exception:
            logger.exception("Validator for %r raised", field)
            return VALIDATION_FAILED_MESSAGE

    def validate_field(self, field: str) -> bool:
        """Run one field's validators and store the first error. True when valid.

        Async validators are skipped here and only checked by submit().
        """
        if field not in self._validators:
            return True
        all_values = self._snapshot()
        value = all_values.get(field)
        for validator in self._validators[field]:
            outcome = self._call_validator(validator, field, value, all_values)
            if inspect.isawaitable(outcome):
                logger.warning("Async validator for %r only runs during submit(); skipped", field)
                if inspect.iscoroutine(outcome):
                    outcome.close()
                continue
            message = _message(outcome)
            if message is not None:
                self.set_error(field, message)
                return False
        self.set_error(field, None)
        return True

    def validate(self) -> bool:
        """Run every validator. Does not touch fields. True when all pass."""
        with transaction():
            results = [self.validate_field(name) for name in self._validators]
        return all(results)

    async def _field_message(self, field: str, value: Any, all_values: dict) -> str | None:
        for validator in self._validators[field]:
            outcome = self._call_validator(validator, field, value, all_values)
            if inspect.isawaitable(outcome):
                try:
                    outcome = await outcome
                except Exception:
                    logger.exception("Async validator for %r raised", field)
                    return VALIDATION_FAILED_MESSAGE
            message = _message(outcome)
            if message is not None:
                return message
        return None

    async def _validate_async(self) -> bool:
        all_values = self._snapshot()
        messages = {
            name: await self._field_message(name, all_values.get(name), all_values)
            for name in self._validators
        }
        self.set_errors(messages)
        return all(message is None for message in messages.values())

    # --- Submission ---

    async def submit(self, handler: SubmitHandler | None = None) -> SubmitResult:
        """Validate, then hand a plain snapshot of the values to the handler.

        Handler errors are logged and returned as SubmitResult(success=False,
        error=exc); values and errors are left as they are.
        """
        handler = handler or self._on_submit
        if handler is None:
            logger.warning("submit() called without a handler")
            return SubmitResult(success=False)

        state = self._state
        with transaction():
            state.submit_count += 1
            state.is_submitting = True
            state.status = FormStatus.VALIDATING
            self.touch_all()

        if not await self._validate_async():
            logger.debug("Form validation failed: %s", self.error_fields)
            self._finish()
            return SubmitResult(success=False, errors=untrack(self.errors._to_dict))

        state.status = FormStatus.SUBMITTING
        try:
            result = handler(self._snapshot())
            if inspect.isawaitable(result):
                result = await result
        except Exception as exc:
            logger.exception("Submit handler raised")
            return SubmitResult(success=False, error=exc)
        finally:
            self._finish()
        return SubmitResult(success=True, result=result)

    def _finish(self) -> None:
        with transaction():
            self._state.is_submitting = False
            self._state.status = FormStatus.IDLE

    # --- Reset ---

    def reset(self, values: dict | None = None) -> Form:
        """Restore values (initial ones by default); clear errors and touched.

        Validators are not re-run.
        """
        source = copy.deepcopy(to_raw(values) if values is not None else self.initial_values)
        with transaction():
            current = self.values
            for name in list(to_raw(current)):
                if name not in source:
                    del current[name]
            for name, value in source.items():
                current[name] = value
            self.errors._clear()
            self.touched._clear()
            self._state.is_submitting = False
            self._state.status = FormStatus.IDLE
        return self

    def reset_field(self, field: str) -> Form:
        with transaction():
            if field in self.initial_values:
                self.values[field] = copy.deepcopy(self.initial_values[field])
            elif field in to_raw(self.values):
                del self.values[field]
            self.errors._pop(field, None)
            self.touched._pop(field, None)
        return self

    # --- Snapshots ---

    def to_dict(self) -> dict:
        """Plain, non-reactive snapshot of the whole form."""
        return {
            "values": self.values._to_dict(),
            "errors": self.errors._to_dict(),
            "touched": self.touched._to_dict(),
            "is_valid": self.is_valid,
            "is_dirty": self.is_dirty,
            "is_submitting": self.is_submitting,
            "submit_count": self.submit_count,
            "status": self.status.value,
        }

    def __repr__(self) -> str:
        return f"Form(values={to_raw(self.values)!r}, errors={to_raw(self.errors)!r})"


def form(
    initial_values: dict | None = None,
    *,
    validators: dict[str, Validator | list[Validator]] | None = None,
    on_submit: SubmitHandler | None = None,
) -> Form:
    """Create a reactive Form.

    Usage:
        f = form(
            {"email": ""},
            validators={"email": [v.required(), v.email()]},
            on_submit=save_user,
        )
        f.set_value("email", "bad")   # f.errors.email == "Invalid email address"
        result = await f.submit()
    """
    return Form(initial_values, validators=validators, on_submit=on_submit)
