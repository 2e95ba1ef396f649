"""Tests for storage identity inspection."""

import pytest

from coltables import as_table, identity, inspect_table, diff_tables, mutate, select
from coltables.inspect import Sharing


@pytest.fixture
def values():
    return {"a": [1, 2, 3], "b": ["x", "y", "z"]}


class TestIdentity:
    """Tests for identity tokens."""

    def test_store_matches_source(self, values):
        """Test that a wrapped sequence and its store share a token."""
        table = as_table(values)
        assert identity(table.store("a")) == identity(values["a"])

    def test_table_and_attributes(self, values):
        """Test tokens of tables and attribute sets."""
        table = as_table(values)
        assert identity(table) == table.token
        assert identity(table.attributes) == table.attributes.token
        assert identity(table) != identity(as_table(values))

    def test_equal_content_different_identity(self):
        """Test that equal but distinct sequences have different tokens."""
        assert identity([1, 2]) != identity([1, 2])

    def test_tuple(self):
        """Test that tuples are accepted as raw sequences."""
        values = (1, 2)
        assert identity(values) == id(values)

    def test_unsupported(self):
        """Test that scalars have no storage identity."""
        with pytest.raises(TypeError):
            identity(5)
        with pytest.raises(TypeError):
            identity("abc")


class TestInspectTable:
    """Tests for whole-table inspection."""

    def test_report(self, values):
        """Test the report of a table's identities."""
        table = as_table(values)
        report = inspect_table(table)
        assert report.table == table.token
        assert report.attributes == table.attributes.token
        assert list(report.columns) == ["a", "b"]
        assert report.columns["b"] == identity(values["b"])

    def test_tokens_ignore_names(self, values):
        """Test that the token set survives relabelling."""
        table = as_table(values)
        relabelled = select(table, first="a", second="b")
        assert inspect_table(relabelled).tokens == inspect_table(table).tokens

    def test_inspection_does_not_acquire(self, values):
        """Test that inspecting leaves reference counts alone."""
        table = as_table(values)
        before = table.store("a").ref_count
        inspect_table(table)
        diff_tables(table, table)
        assert table.store("a").ref_count == before


class TestDiffTables:
    """Tests for comparing two tables."""

    def test_self(self, values):
        """Test that a table shares everything with itself."""
        table = as_table(values)
        diff = diff_tables(table, table)
        assert diff.all_shared
        assert diff.attributes_shared
        assert not diff.none_shared

    def test_states(self, values):
        """Test every sharing state."""
        left = as_table(values)
        right = select(mutate(left, a="a + 0", c="b"), "a", "c")
        diff = diff_tables(left, right)
        assert diff.columns == {
            "a": Sharing.DIFFERENT,
            "b": Sharing.ONLY_LEFT,
            "c": Sharing.ONLY_RIGHT,
        }
        assert diff.shared == []
        assert diff.different == ["a"]
        assert diff.none_shared
        assert not diff.all_shared

    def test_independent_tables(self, values):
        """Test that separately coerced copies share nothing."""
        left = as_table(values)
        right = as_table({name: list(column) for name, column in values.items()})
        diff = diff_tables(left, right)
        assert diff.different == ["a", "b"]
        assert not diff.attributes_shared

    def test_same_source(self, values):
        """Test that two coercions of one aggregate share every column."""
        assert diff_tables(as_table(values), as_table(values)).all_shared
