"""Tests for Effect, effect and effects."""

import logging

import pytest

from refx import effect, effects, get_pending_count, reactive, transaction, untrack


class TestEffect:
    def test_runs_immediately(self):
        s = reactive({"n": 10})
        log = []
        effect(lambda: log.append(s.n))
        assert log == [10]

    def test_reruns_on_change(self):
        s = reactive({"n": 10})
        log = []
        effect(lambda: log.append(s.n))
        s.n = 20
        assert log == [10, 20]

    def test_stop(self):
        s = reactive({"n": 10})
        log = []
        e = effect(lambda: log.append(s.n))
        e.stop()
        s.n = 20
        assert log == [10]  # no additional run
        assert e.disposed

    def test_call_and_dispose_are_stop(self):
        s = reactive({"n": 0})
        log = []
        e = effect(lambda: log.append(s.n))
        e()
        e.dispose()  # idempotent
        s.n = 1
        assert log == [0]

    def test_dependencies_are_exact_per_run(self):
        """Only the branch actually taken is tracked."""
        s = reactive({"show_details": True, "details": "x"})
        runs = []
        effect(lambda: runs.append(s.details if s.show_details else None))
        s.show_details = False
        assert runs == ["x", None]
        s.details = "y"  # no longer read
        assert runs == ["x", None]
        s.show_details = True
        assert runs == ["x", None, "y"]

    def test_cleanup_before_rerun_and_on_stop(self):
        s = reactive({"n": 0})
        events = []

        def fx():
            n = s.n
            events.append(f"run {n}")
            return lambda: events.append(f"cleanup {n}")

        e = effect(fx)
        s.n = 1
        e.stop()
        assert events == ["run 0", "cleanup 0", "run 1", "cleanup 1"]

    def test_self_stop_runs_returned_cleanup(self):
        s = reactive({"n": 0})
        events = []
        handle = {}

        def fx():
            n = s.n
            events.append(f"run {n}")
            if n == 1:
                handle["effect"].stop()
            return lambda: events.append(f"cleanup {n}")

        handle["effect"] = effect(fx)
        s.n = 1
        assert events == ["run 0", "cleanup 0", "run 1", "cleanup 1"]
        s.n = 2
        assert events == ["run 0", "cleanup 0", "run 1", "cleanup 1"]

    def test_cleanup_error_is_logged(self, caplog):
        s = reactive({"n": 0})

        def fx():
            s.n

            def boom():
                raise RuntimeError("cleanup failed")

            return boom

        e = effect(fx)
        with caplog.at_level(logging.ERROR, logger="refx.effect"):
            e.stop()
        assert "Cleanup of" in caplog.text

    def test_initial_run_error_propagates(self):
        def fx():
            raise ValueError("boom")

        with pytest.raises(ValueError, match="boom"):
            effect(fx)

    def test_rerun_error_is_logged_and_flush_continues(self, caplog):
        s = reactive({"n": 0})
        log = []

        def fx():
            if s.n == 1:
                raise ValueError("boom")

        effect(fx)
        effect(lambda: log.append(s.n))
        with caplog.at_level(logging.ERROR, logger="refx.tracking"):
            s.n = 1
        assert log == [0, 1]
        assert "raised while re-running" in caplog.text
        assert get_pending_count() == 0

    def test_writes_inside_effect_converge(self):
        s = reactive({"n": 0, "double": 0})
        effect(lambda: setattr(s, "double", s.n * 2))
        s.n = 3
        assert s.double == 6

    def test_repr(self):
        def render():
            pass

        e = effect(render)
        assert repr(e) == "Effect(render, active)"
        e.stop()
        assert repr(e) == "Effect(render, disposed)"


class TestScheduling:
    def test_runs_once_per_batch(self):
        s = reactive({"a": 0, "b": 0, "c": 0})
        runs = []
        effect(lambda: runs.append(s.a + s.b + s.c))
        with transaction():
            s.a = 1
            s.b = 2
            s.c = 3
        assert runs == [0, 6]

    def test_flush_runs_in_registration_order(self):
        s = reactive({"a": 0, "b": 0})
        order = []
        effect(lambda: (s.a, order.append("first")))
        effect(lambda: (s.b, order.append("second")))
        order.clear()
        with transaction():
            s.b = 1
            s.a = 1
        assert order == ["first", "second"]

    def test_runaway_loop_is_cut_off(self, caplog):
        s = reactive({"a": 0, "b": 0})
        with caplog.at_level(logging.ERROR, logger="refx.tracking"):
            effect(lambda: setattr(s, "b", s.a + 1))
            effect(lambda: setattr(s, "a", s.b + 1))
        assert "Aborting flush" in caplog.text
        assert get_pending_count() == 0

    def test_inner_effect_reads_do_not_leak(self):
        s = reactive({"outer": 0, "inner": 0})
        outer_runs = []

        def outer():
            outer_runs.append(s.outer)
            effect(lambda: s.inner)

        effect(outer)
        s.inner = 1
        assert outer_runs == [0]


class TestUntrack:
    def test_untracked_reads(self):
        s = reactive({"a": 0, "b": 0})
        log = []
        effect(lambda: log.append((s.a, untrack(lambda: s.b))))
        s.b = 1
        assert log == [(0, 0)]
        s.a = 1
        assert log == [(0, 0), (1, 1)]

    def test_returns_value(self):
        assert untrack(lambda: 42) == 42


class TestEffects:
    def test_stop_all(self):
        s = reactive({"n": 0})
        a, b = [], []
        stop = effects(lambda: a.append(s.n), lambda: b.append(s.n))
        assert a == [0] and b == [0]
        stop()
        s.n = 1
        assert a == [0] and b == [0]
