"""Tests for store(), component() and async_state()."""

import asyncio

import pytest

from refx import async_state, component, effect, store


class TestStore:
    def test_getters_and_actions(self):
        todos = store(
            {"todos": []},
            getters={"count": lambda s: len(s.todos)},
            actions={"add": lambda s, text: s.todos.append(text)},
        )
        log = []
        effect(lambda: log.append(todos.count))
        todos.add("docs")
        todos.add("tests")
        assert todos.todos._to_list() == ["docs", "tests"]
        assert log == [0, 1, 2]

    def test_plain_state(self):
        s = store({"x": 1})
        s.x = 2
        assert s.x == 2


class TestComponent:
    def test_lifecycle(self):
        events = []
        c = component(
            state={"n": 0},
            computed={"double": lambda s: s.n * 2},
            watch={"n": lambda new, old: events.append(("watch", new, old))},
            effects=[lambda s: events.append(("effect", s.double))],
            actions={"inc": lambda s: setattr(s, "n", s.n + 1)},
            mounted=lambda s: events.append("mounted"),
            unmounted=lambda s: events.append("unmounted"),
        )
        assert events == [("effect", 0), "mounted"]

        events.clear()
        c.inc()
        assert events == [("watch", 1, 0), ("effect", 2)]

        events.clear()
        c.destroy()
        c.inc()
        assert events == ["unmounted"]

    def test_defaults(self):
        c = component()
        assert c._to_dict() == {}
        c.destroy()


class TestAsyncState:
    def test_execute_success(self):
        user = async_state()

        async def fetch():
            return {"id": 42}

        result = asyncio.run(user.execute(fetch))
        assert result == {"id": 42}
        assert user.data._to_dict() == {"id": 42}
        assert user.is_success
        assert not user.loading
        assert not user.is_error

    def test_loading_during_execution(self):
        job = async_state()
        seen = []

        async def work():
            seen.append(job.loading)
            return 1

        asyncio.run(job.execute(work))
        assert seen == [True]
        assert job.loading is False

    def test_execute_error_reraises(self):
        job = async_state()

        async def fail():
            raise ValueError("offline")

        with pytest.raises(ValueError, match="offline"):
            asyncio.run(job.execute(fail))
        assert isinstance(job.error, ValueError)
        assert job.is_error
        assert not job.is_success

    def test_sync_function_supported(self):
        job = async_state()
        assert asyncio.run(job.execute(lambda: 7)) == 7
        assert job.data == 7

    def test_reset(self):
        job = async_state(initial=[])
        asyncio.run(job.execute(lambda: [1, 2]))
        job.reset()
        assert job.data._to_list() == []
        assert job.error is None
        assert not job.loading
