"""Tests for coercing named aggregates into tables."""

import string

import pytest

from coltables import as_table, group_by, identity, inspect_table
from coltables.errors import DuplicateNameError, StructuralError


class TestAsTable:
    """Tests for as_table."""

    def test_mapping(self):
        """Test coercing a dict of lists."""
        table = as_table({"a": [1, 2], "b": ["x", "y"]})
        assert table.names == ("a", "b")
        assert table.nrow == 2

    def test_pairs(self):
        """Test coercing a list of (name, values) pairs."""
        table = as_table([("a", [1, 2]), ("b", (3, 4))])
        assert table.column("b") == (3, 4)

    def test_list_column(self):
        """Test that nested sequences are accepted as a list column."""
        table = as_table({"a": [1, 2], "nested": [[1, 2], {"k": 3}]})
        assert table.store("nested").type.value == "list"

    def test_input_not_mutated(self):
        """Test that the input aggregate is left as it was."""
        data = {"a": [1, 2], "b": [3, 4]}
        as_table(data)
        assert data == {"a": [1, 2], "b": [3, 4]}

    def test_empty(self):
        """Test coercing an empty aggregate."""
        assert as_table({}).nrow == 0
        assert as_table({}, nrow=5).nrow == 5

    def test_from_table(self):
        """Test that coercing a table reuses its stores and drops grouping."""
        table = group_by(as_table({"a": [1, 2]}), "a")
        again = as_table(table)
        assert again.store("a") is table.store("a")
        assert again.groups == ()

    def test_duplicate_pair_names(self):
        """Test that repeated names in pairs fail."""
        with pytest.raises(DuplicateNameError):
            as_table([("a", [1]), ("a", [2])])


class TestNoDuplication:
    """Coercion wraps the caller's sequences."""

    @pytest.mark.parametrize("ncol", [0, 1, 3, 26])
    def test_identities_unchanged(self, ncol):
        """Test that every column keeps the input's storage identity."""
        data = {letter: list(range(100)) for letter in string.ascii_lowercase[:ncol]}
        table = as_table(data)
        columns = inspect_table(table).columns
        assert len(columns) == ncol
        for name, values in data.items():
            assert columns[name] == identity(values)
            assert table.column(name) is values

    def test_type_inference_deferred(self):
        """Test that coercion does not scan column elements."""
        table = as_table({"a": list(range(1000))})
        assert table.store("a").declared_type is None


class TestValidation:
    """Structural validation, in order."""

    def test_missing_name(self):
        """Test that an empty name fails the name check."""
        with pytest.raises(StructuralError) as exc_info:
            as_table({"": [1]})
        assert exc_info.value.check == "name"

    def test_non_string_name(self):
        """Test that a non-string name fails the name check."""
        with pytest.raises(StructuralError) as exc_info:
            as_table([(None, [1])])
        assert exc_info.value.check == "name"

    def test_not_a_pair(self):
        """Test that malformed entries fail the name check."""
        with pytest.raises(StructuralError) as exc_info:
            as_table([[1, 2, 3]])
        assert exc_info.value.check == "name"

    @pytest.mark.parametrize("value", [5, "abc", None, {"k": 1}])
    def test_not_a_sequence(self, value):
        """Test that scalars, strings and mappings fail the structure check."""
        with pytest.raises(StructuralError) as exc_info:
            as_table({"a": [1], "b": value})
        assert exc_info.value.check == "structure"
        assert exc_info.value.column == "b"

    def test_unequal_lengths(self):
        """Test that unequal lengths fail the length check."""
        with pytest.raises(StructuralError) as exc_info:
            as_table({"a": [1, 2], "b": [1, 2, 3]})
        assert exc_info.value.check == "length"
        assert exc_info.value.column == "b"

    def test_checks_run_in_order(self):
        """Test that the name check precedes the structure check."""
        with pytest.raises(StructuralError) as exc_info:
            as_table([("a", 5), ("", [1])])
        assert exc_info.value.check == "name"

    def test_structure_before_length(self):
        """Test that the structure check precedes the length check."""
        with pytest.raises(StructuralError) as exc_info:
            as_table({"a": [1, 2], "b": [1], "c": 5})
        assert exc_info.value.check == "structure"

    def test_strict_rejects_mixed(self):
        """Test that strict coercion rejects mixed scalar kinds."""
        as_table({"a": [1, "x"]})
        with pytest.raises(StructuralError) as exc_info:
            as_table({"a": [1, "x"]}, strict=True)
        assert exc_info.value.check == "structure"

    def test_strict_accepts_list_column(self):
        """Test that strict coercion still accepts nested values."""
        table = as_table({"a": [[1], "x"]}, strict=True)
        assert table.nrow == 2

    def test_not_an_aggregate(self):
        """Test that a bare scalar cannot be coerced."""
        with pytest.raises(StructuralError):
            as_table(42)
