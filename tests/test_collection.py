"""Tests for collection()."""

from refx import collection, effect


def _todos():
    return collection(
        [
            {"text": "docs", "done": False},
            {"text": "tests", "done": True},
            {"text": "release", "done": False},
        ]
    )


class TestCollection:
    def test_computed_views(self):
        todos = _todos()
        assert todos.length == 3
        assert todos.first["text"] == "docs"
        assert todos.last["text"] == "release"
        assert not todos.is_empty

    def test_empty(self):
        empty = collection()
        assert empty.length == 0
        assert empty.first is None
        assert empty.last is None
        assert empty.is_empty

    def test_add_is_reactive(self):
        items = collection()
        log = []
        effect(lambda: log.append(items.length))
        items.add("a")
        items.add("b")
        assert log == [0, 1, 2]
        assert items.to_list() == ["a", "b"]

    def test_remove_by_item_and_predicate(self):
        items = collection([1, 2, 3])
        items.remove(2)
        assert items.to_list() == [1, 3]
        items.remove(lambda x: x > 2)
        assert items.to_list() == [1]
        items.remove(99)  # not present
        assert items.to_list() == [1]

    def test_update_and_toggle(self):
        todos = _todos()
        todos.update(lambda t: t["text"] == "docs", {"text": "write docs"})
        todos.toggle(lambda t: t["text"] == "write docs")
        assert todos.first._to_dict() == {"text": "write docs", "done": True}
        todos.toggle(lambda t: t["text"] == "tests", "done")
        assert todos.at(1)["done"] is False

    def test_remove_where_runs_once(self):
        todos = _todos()
        log = []
        effect(lambda: log.append(todos.length))
        todos.update_where(lambda t, i: i > 0, {"done": True})
        todos.remove_where(lambda t, i: t["done"])
        assert log == [3, 1]
        assert todos.to_list() == [{"text": "docs", "done": False}]

    def test_find_filter_at(self):
        todos = _todos()
        assert todos.find(lambda t: t["done"])["text"] == "tests"
        assert todos.find(lambda t: t["text"] == "nope") is None
        assert [t["text"] for t in todos.filter(lambda t: not t["done"])] == ["docs", "release"]
        assert todos.at(-1)["text"] == "release"
        assert todos.at(10) is None

    def test_clear_and_reset(self):
        todos = _todos()
        todos.clear()
        assert todos.is_empty
        todos.reset([{"text": "again", "done": False}])
        assert todos.length == 1
        todos.reset()
        assert todos.to_list() == []

    def test_nested_item_change_reaches_effects(self):
        todos = _todos()
        log = []
        effect(lambda: log.append(todos.first["done"]))
        todos.toggle(lambda t: t["text"] == "docs")
        assert log == [False, True]
