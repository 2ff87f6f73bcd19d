"""Tests for builder() and Builder.build()."""

import logging

import pytest

from refx import Builder, builder, effect
from refx.builder import DeclarationKind


def _inc(s, by=1):
    s.n += by


class TestDeclarations:
    def test_inert_until_build(self):
        calls = []
        b = builder({"n": 0}).effect(lambda s: calls.append(s.n))
        assert calls == []
        assert not b.built
        b.build()
        assert calls == [0]
        assert b.built

    def test_records_declarations_in_order(self):
        b = builder({"n": 0}).computed("double", lambda s: s.n * 2).action("inc", _inc)
        kinds = [d.kind for d in b.declarations]
        assert kinds == [DeclarationKind.STATE, DeclarationKind.COMPUTED, DeclarationKind.ACTION]

    def test_state_shapes_merge(self):
        inst = builder({"a": 1}).state({"b": 2}).state({"a": 3}).build()
        assert inst._to_dict() == {"a": 3, "b": 2}

    def test_state_shape_copied_at_declaration(self):
        shape = {"tags": ["x"]}
        b = builder(shape)
        shape["tags"].append("y")
        assert b.build().tags._to_list() == ["x"]

    def test_missing_callable_raises(self):
        with pytest.raises(TypeError):
            builder().computed("double")

    def test_dict_forms(self):
        seen = []
        inst = (
            builder({"n": 1})
            .computed({"double": lambda s: s.n * 2, "triple": lambda s: s.n * 3})
            .actions({"inc": _inc})
            .watch({"n": lambda new, old: seen.append((new, old))})
            .build()
        )
        inst.inc()
        assert (inst.double, inst.triple) == (4, 6)
        assert seen == [(2, 1)]


class TestBuild:
    def test_computed_and_actions(self):
        counter = (
            builder()
            .state({"n": 0})
            .computed("double", lambda s: s.n * 2)
            .action("inc", _inc)
            .build()
        )
        counter.inc()
        counter.inc(2)
        assert counter.n == 3
        assert counter.double == 6

    def test_actions_are_batched(self):
        def move(s, x, y):
            s.x = x
            s.y = y
            return (x, y)

        inst = builder({"x": 0, "y": 0}).action("move", move).build()
        log = []
        effect(lambda: log.append((inst.x, inst.y)))
        assert inst.move(3, 4) == (3, 4)
        assert log == [(0, 0), (3, 4)]

    def test_effects_see_computeds_and_actions(self):
        seen = []
        b = (
            builder({"n": 1})
            .effect(lambda s: seen.append((s.double, callable(s.inc))))
            .action("inc", _inc)
            .computed("double", lambda s: s.n * 2)
        )
        b.build()
        assert seen == [(2, True)]

    def test_watchers_fire_before_effects(self):
        log = []
        inst = (
            builder({"n": 0})
            .effect(lambda s: log.append(s.n))
            .watch("n", lambda new, old: log.append(("w", new)))
            .build()
        )
        inst.n = 1
        assert log == [0, ("w", 1), 1]

    def test_builds_are_independent(self):
        b = builder({"items": []}).computed("count", lambda s: len(s.items))
        x = b.build()
        y = b.build()
        x.items.append(1)
        assert x.count == 1
        assert y.count == 0
        assert y.items._to_list() == []

    def test_declaration_after_build_is_ignored(self, caplog):
        b = builder({"n": 0})
        b.build()
        with caplog.at_level(logging.WARNING, logger="refx.builder"):
            b.computed("late", lambda s: 1)
        assert "Ignoring computed('late') declared after build()" in caplog.text
        second = b.build()
        with pytest.raises(AttributeError):
            second.late


class TestDestroy:
    def test_stops_effects_and_watchers_and_runs_hooks(self):
        log = []
        hooks = []
        inst = (
            builder({"n": 0})
            .effect(lambda s: log.append(s.n))
            .watch("n", lambda new, old: log.append(("w", new)))
            .destroy(lambda s: hooks.append(s.n))
            .build()
        )
        inst.n = 1
        inst.destroy()
        inst.destroy()  # idempotent
        assert hooks == [1]
        inst.n = 2
        assert log == [0, ("w", 1), 1]

    def test_hook_error_is_logged(self, caplog):
        def boom(s):
            raise RuntimeError("teardown failed")

        after = []
        inst = builder({}).destroy(boom).destroy(lambda s: after.append(True)).build()
        with caplog.at_level(logging.ERROR, logger="refx.builder"):
            inst.destroy()
        assert "destroy hook" in caplog.text
        assert after == [True]

    def test_builder_class_is_exported(self):
        assert isinstance(builder(), Builder)
