"""Unit tests for the source tree model."""

from __future__ import annotations

import datetime

import pytest

from strata.core.errors import ParseException, PathNotFoundException, WrongTypeException
from strata.core.source import FlatSource, TreeSource, tree_from_flat
from strata.core.types import Feature


def tree(data):
    return TreeSource(data, {"type": "test", "file": "test.yaml"})


class TestPredicates:
    """Test suite for kind predicates and accessors."""

    def test_int_widening(self):
        """Test that an int answers as int, long and double."""
        node = tree({"n": 42}).get("n")
        assert node.is_int() and node.is_long() and node.is_double()
        assert node.to_int() == 42
        assert node.to_long() == 42
        assert node.to_double() == 42.0
        assert isinstance(node.to_double(), float)

    def test_int_to_text_fails(self):
        """Test that numbers are never read as text."""
        node = tree({"n": 42}).get("n")
        with pytest.raises(WrongTypeException) as exc:
            node.to_text()
        assert exc.value.actual == "Int"
        assert exc.value.expected == "Text"
        assert "test.yaml" in str(exc.value)

    def test_long_beyond_int_range(self):
        """Test that a 64-bit value is long but not int."""
        node = tree({"n": 2**40}).get("n")
        assert not node.is_int()
        assert node.is_long()
        assert node.kind_name == "Long"
        with pytest.raises(WrongTypeException):
            node.to_int()

    def test_big_integer(self):
        """Test that values beyond 64 bits are only doubles."""
        node = tree({"n": 2**70}).get("n")
        assert not node.is_long()
        assert node.is_double()
        assert node.kind_name == "BigInteger"

    def test_integer_beyond_double_range(self):
        """Test that an integer too large for a float is not a double."""
        node = tree({"n": 10**400}).get("n")
        assert not node.is_double()
        with pytest.raises(WrongTypeException) as exc:
            node.to_double()
        assert exc.value.actual == "BigInteger"
        assert node.to_value() == 10**400

    def test_bool_is_not_numeric(self):
        """Test that booleans do not widen to numbers."""
        node = tree({"b": True}).get("b")
        assert node.is_boolean()
        assert not node.is_int()
        assert not node.is_double()
        with pytest.raises(WrongTypeException):
            node.to_long()

    def test_float_is_only_double(self):
        """Test that floats are not narrowed."""
        node = tree({"f": 1.5}).get("f")
        assert node.is_double()
        assert not node.is_long()

    def test_null_and_containers(self):
        """Test null, list and map nodes."""
        source = tree({"none": None, "list": [1, "a"], "map": {"k": "v"}})
        assert source.get("none").is_null()
        assert [n.to_value() for n in source.get("list").to_list()] == [1, "a"]
        assert source.get("map").to_map()["k"].to_text() == "v"
        assert source.to_value() == {"none": None, "list": [1, "a"], "map": {"k": "v"}}

    def test_child_provenance(self):
        """Test that children describe where they sit in their parent."""
        child = tree({"a": {"b": 1}}).get("a.b")
        assert child.info["file"] == "test.yaml"
        assert "inMap" in child.info

    def test_dates_become_text(self):
        """Test that parsed dates are normalised to ISO text."""
        node = tree({"d": datetime.date(2020, 1, 2)}).get("d")
        assert node.to_text() == "2020-01-02"

    def test_unsupported_value(self):
        """Test that foreign objects are rejected."""
        with pytest.raises(ParseException):
            tree(object())
        with pytest.raises(ParseException):
            tree({"a": [{"b": object()}]})

    def test_nested_data_is_copied(self):
        """Test that later changes to the parsed data do not leak into the tree."""
        data = {"a": {"b": 1}, "list": [{"c": 2}]}
        source = tree(data)
        data["a"]["b"] = 2
        data["list"][0]["c"] = 3
        data["list"].append(4)
        assert source.to_value() == {"a": {"b": 1}, "list": [{"c": 2}]}


class TestPathAccess:
    """Test suite for path lookup and scoping."""

    def test_get_missing_path(self):
        """Test that get raises for a missing path."""
        source = tree({"a": 1})
        assert source.get_or_none("b") is None
        assert not source.contains("a.b")
        with pytest.raises(PathNotFoundException) as exc:
            source.get("b.c")
        assert "b.c" in str(exc.value)

    def test_contains_operator(self):
        """Test the in operator."""
        source = tree({"a": {"b": 1}})
        assert "a.b" in source
        assert ("a",) in source

    def test_scoping_composes(self):
        """Test that scoping twice equals scoping once."""
        source = tree({"a": {"b": {"c": 3}}})
        assert source["a.b"]["c"].to_int() == source["a.b.c"].to_int() == 3

    def test_scoping_is_lazy(self):
        """Test that a missing scope only fails when read."""
        scoped = tree({"a": 1})["missing.path"]
        with pytest.raises(PathNotFoundException):
            scoped.to_map()
        assert scoped.get_or_none("x") is None

    def test_empty_scope_is_identity(self):
        """Test that scoping the root is a no-op view."""
        source = tree({"a": 1})
        assert source[""].to_value() == {"a": 1}

    def test_with_prefix(self):
        """Test that a prefixed source resolves through the prefix."""
        source = tree({"host": "localhost"}).with_prefix("server.http")
        assert source.get("server.http.host").to_text() == "localhost"
        assert source.get("server").is_map()
        assert source.get_or_none("host") is None
        assert source.to_value() == {"server": {"http": {"host": "localhost"}}}

    def test_prefix_then_scope(self):
        """Test that scoping undoes prefixing."""
        source = tree({"a": {"b": 1}})
        assert source.with_prefix("p")["p"].to_value() == source.to_value()

    def test_feature_views(self):
        """Test enabling and disabling features on a view."""
        source = tree({"a": 1})
        enabled = source.enabled(Feature.FAIL_ON_UNKNOWN_PATH)
        assert enabled.is_enabled(Feature.FAIL_ON_UNKNOWN_PATH) is True
        assert enabled.disabled(Feature.FAIL_ON_UNKNOWN_PATH).is_enabled(
            Feature.FAIL_ON_UNKNOWN_PATH
        ) is False
        assert source.is_enabled(Feature.FAIL_ON_UNKNOWN_PATH) is None
        assert enabled.get("a").to_int() == 1


class TestFlatSource:
    """Test suite for lenient text sources."""

    def test_text_coerces(self):
        """Test that text leaves answer as numbers and booleans."""
        source = FlatSource({"port": "8080", "debug": "TRUE", "ratio": "0.5"})
        assert source.get("port").to_int() == 8080
        assert source.get("port").to_text() == "8080"
        assert source.get("debug").to_boolean() is True
        assert source.get("ratio").to_double() == 0.5
        assert not source.get("ratio").is_long()

    def test_text_splits_into_list(self):
        """Test that comma separated text reads as a list."""
        source = FlatSource({"hosts": "a, b,c"})
        assert [n.to_text() for n in source.get("hosts").to_list()] == ["a", "b", "c"]

    def test_text_unwraps_as_text(self):
        """Test that unwrapping keeps text leaves as text."""
        source = FlatSource({"hosts": "a,b", "port": "80", "server": {"debug": "true"}})
        assert source.get("hosts").to_value() == "a,b"
        assert source.to_value() == {"hosts": "a,b", "port": "80", "server": {"debug": "true"}}
        assert [n.to_value() for n in source.get("hosts").to_list()] == ["a", "b"]

    def test_non_numeric_text(self):
        """Test that non-numeric text is not a number."""
        node = FlatSource({"name": "abc"}).get("name")
        assert not node.is_int()
        with pytest.raises(WrongTypeException):
            node.to_long()
        with pytest.raises(WrongTypeException):
            node.to_boolean()


class TestTreeFromFlat:
    """Test suite for tree_from_flat."""

    def test_builds_nested_data(self):
        """Test that dotted keys become nested maps."""
        assert tree_from_flat({"a.b": 1, "a.c": 2, "d": 3}) == {"a": {"b": 1, "c": 2}, "d": 3}

    def test_branch_wins_over_leaf(self):
        """Test that a key that is both leaf and branch keeps the branch."""
        assert tree_from_flat({"a": 1, "a.b": 2}) == {"a": {"b": 2}}
        assert tree_from_flat({"a.b": 2, "a": 1}) == {"a": {"b": 2}}

    def test_skips_empty_segments(self):
        """Test that malformed keys are dropped."""
        assert tree_from_flat({"a..b": 1, "c": 2}) == {"c": 2}
