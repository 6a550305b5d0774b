"""
Tests for urlquery.data.paths.
"""

import pytest

from urlquery.core.errors import InvalidPathError
from urlquery.data.paths import find_path, merge_into, parse_step, set_path, split_path


class TestFindPath:
    """Path navigation over decoded bodies."""

    def test_nested_keys(self):
        assert find_path({"d": {"results": [1, 2]}}, "d/results") == [1, 2]

    def test_missing_step_gives_none(self):
        assert find_path({"d": {}}, "d/results/0") is None
        assert find_path(None, "a") is None

    def test_empty_path_returns_data(self):
        data = {"a": 1}
        assert find_path(data, "") is data

    def test_numeric_steps_index_lists(self):
        assert find_path({"items": [{"n": "a"}, {"n": "b"}]}, "items/1/n") == "b"
        assert find_path({"items": []}, "items/3") is None

    def test_conditional_selector(self):
        data = {"addresses": [{"type": "ship", "city": "Bonn"}, {"type": "billing", "city": "Köln"}]}
        assert find_path(data, "addresses[type=billing]/city") == "Köln"
        assert find_path(data, "addresses[type=home]/city") is None

    def test_conditional_selector_on_booleans(self):
        data = {"flags": [{"on": False, "id": 1}, {"on": True, "id": 2}]}
        assert find_path(data, "flags[on=true]/id") == 2

    def test_unclosed_selector_raises(self):
        with pytest.raises(InvalidPathError, match="missing closing"):
            find_path({"a": []}, "a[id=1")

    def test_selector_without_value_raises(self):
        with pytest.raises(InvalidPathError):
            parse_step("a[id]")


class TestBuildingPaths:
    """Placing values at paths for request bodies."""

    def test_split_ignores_empty_steps(self):
        assert split_path("/a//b/") == ["a", "b"]

    def test_set_path(self):
        assert set_path("data/order", {"id": 1}) == {"data": {"order": {"id": 1}}}
        assert set_path(None, {"id": 1}) == {"id": 1}

    def test_set_path_rejects_selectors(self):
        with pytest.raises(InvalidPathError):
            set_path("items[id=1]", {})

    def test_merge_into(self):
        target = {"Customer": {"ID": 1}}
        merge_into(target, "Customer/Name", "ACME")
        merge_into(target, "Status", "open")
        assert target == {"Customer": {"ID": 1, "Name": "ACME"}, "Status": "open"}
