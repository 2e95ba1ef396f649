"""Tests for expression evaluation."""

import math

import pytest

from coltables import Environment, Evaluator
from coltables.errors import EvaluationError, UnknownColumnError
from coltables.evaluator import evaluate_column, iter_pairs


@pytest.fixture
def evaluator():
    return Evaluator()


@pytest.fixture
def env():
    return Environment({"x": [1, 2, 3, 4], "y": [10, 20, 30, 40], "s": ["a", "b", "a", "c"]}, nrow=4)


class TestEnvironment:
    """Tests for evaluation environments."""

    def test_lookup(self, env):
        """Test reading bound values."""
        assert env["x"] == [1, 2, 3, 4]
        assert "x" in env
        assert len(env) == 3

    def test_unknown(self, env):
        """Test that unbound names raise UnknownColumnError."""
        with pytest.raises(UnknownColumnError):
            env["missing"]

    def test_lazy_loaded_once(self):
        """Test that lazy bindings are loaded on first lookup only."""
        calls = []

        def load():
            calls.append(1)
            return [1, 2]

        env = Environment(lazy={"x": load})
        assert "x" in env
        assert calls == []
        assert env["x"] == [1, 2]
        assert env["x"] == [1, 2]
        assert calls == [1]

    def test_bind_and_unbind(self):
        """Test rebinding and removing names."""
        env = Environment(lazy={"x": lambda: [1]})
        env.bind("x", [2])
        assert env["x"] == [2]
        env.unbind("x")
        assert "x" not in env
        assert list(env) == []


class TestArithmetic:
    """Tests for elementwise operators."""

    def test_vector_scalar(self, evaluator, env):
        """Test recycling a scalar against a column."""
        assert evaluator.evaluate("x * 2 + 1", env) == [3, 5, 7, 9]

    def test_vector_vector(self, evaluator, env):
        """Test combining two columns elementwise."""
        assert evaluator.evaluate("y - x", env) == [9, 18, 27, 36]
        assert evaluator.evaluate("y / x", env) == [10.0, 10.0, 10.0, 10.0]
        assert evaluator.evaluate("y % 3", env) == [1, 2, 0, 1]

    def test_power(self, evaluator, env):
        """Test exponentiation and unary minus."""
        assert evaluator.evaluate("x ^ 2", env) == [1, 4, 9, 16]
        assert evaluator.evaluate("-2 ^ 2", env) == -4
        assert evaluator.evaluate("-x", env) == [-1, -2, -3, -4]

    def test_length_mismatch(self, evaluator, env):
        """Test that operands of incompatible length fail."""
        with pytest.raises(EvaluationError):
            evaluator.evaluate("x + c(1, 2)", env)

    def test_missing_propagates(self, evaluator):
        """Test that None stays None through arithmetic."""
        env = Environment({"x": [1, None, 3]}, nrow=3)
        assert evaluator.evaluate("x + 1", env) == [2, None, 4]
        assert evaluator.evaluate("null * 2", env) is None

    def test_range(self, evaluator, env):
        """Test inclusive integer ranges."""
        assert evaluator.evaluate("1:4", env) == [1, 2, 3, 4]
        assert evaluator.evaluate("3:1", env) == [3, 2, 1]
        assert evaluator.evaluate("-1:1", env) == [-1, 0, 1]
        assert evaluator.evaluate("1:n()", env) == [1, 2, 3, 4]

    def test_range_bounds(self, evaluator, env):
        """Test that ranges need single whole-number bounds."""
        with pytest.raises(EvaluationError):
            evaluator.evaluate("1:x", env)
        with pytest.raises(EvaluationError):
            evaluator.evaluate("1:2.5", env)

    def test_division_by_zero(self, evaluator, env):
        """Test that Python errors become EvaluationError."""
        with pytest.raises(EvaluationError) as exc_info:
            evaluator.evaluate("x / 0", env)
        assert isinstance(exc_info.value.__cause__, ZeroDivisionError)


class TestLogic:
    """Tests for comparisons and three-valued logic."""

    def test_comparison(self, evaluator, env):
        """Test elementwise comparisons."""
        assert evaluator.evaluate("x >= 3", env) == [False, False, True, True]
        assert evaluator.evaluate("s == 'a'", env) == [True, False, True, False]

    def test_and_or(self, evaluator, env):
        """Test combining conditions."""
        assert evaluator.evaluate("x > 1 & x < 4", env) == [False, True, True, False]
        assert evaluator.evaluate("x == 1 | x == 4", env) == [True, False, False, True]
        assert evaluator.evaluate("!(x > 2)", env) == [True, True, False, False]

    def test_missing_logic(self, evaluator):
        """Test that false & null is false and true | null is true."""
        env = Environment({"m": [None, None]}, nrow=2)
        assert evaluator.evaluate("false & m", env) == [False, False]
        assert evaluator.evaluate("true | m", env) == [True, True]
        assert evaluator.evaluate("true & m", env) == [None, None]

    def test_if_else(self, evaluator, env):
        """Test choosing between values per element."""
        assert evaluator.evaluate("if_else(x > 2, 'big', s)", env) == ["a", "b", "big", "big"]


class TestFunctions:
    """Tests for built-in functions."""

    def test_reductions(self, evaluator, env):
        """Test reductions to a single value."""
        assert evaluator.evaluate("sum(x)", env) == 10
        assert evaluator.evaluate("mean(y)", env) == 25.0
        assert evaluator.evaluate("median(x)", env) == 2.5
        assert evaluator.evaluate("min(y)", env) == 10
        assert evaluator.evaluate("max(s)", env) == "c"
        assert evaluator.evaluate("n_distinct(s)", env) == 3
        assert evaluator.evaluate("length(x)", env) == 4
        assert evaluator.evaluate("first(s)", env) == "a"
        assert evaluator.evaluate("last(s)", env) == "c"
        assert evaluator.evaluate("any(x > 3)", env) is True
        assert evaluator.evaluate("all(x > 3)", env) is False

    def test_reduction_with_missing(self, evaluator):
        """Test that a missing value makes a reduction missing."""
        env = Environment({"x": [1, None]}, nrow=2)
        assert evaluator.evaluate("sum(x)", env) is None

    def test_empty_reductions(self, evaluator):
        """Test reductions over no values."""
        env = Environment({"x": []}, nrow=0)
        assert evaluator.evaluate("sum(x)", env) == 0
        assert evaluator.evaluate("mean(x)", env) is None
        assert evaluator.evaluate("n()", env) == 0

    def test_elementwise(self, evaluator, env):
        """Test elementwise math functions."""
        assert evaluator.evaluate("sqrt(x * x)", env) == [1.0, 2.0, 3.0, 4.0]
        assert evaluator.evaluate("abs(-x)", env) == [1, 2, 3, 4]
        assert evaluator.evaluate("round(x / 3, 2)", env) == [0.33, 0.67, 1.0, 1.33]
        assert evaluator.evaluate("log(exp(1))", env) == pytest.approx(1.0)

    def test_vectors(self, evaluator, env):
        """Test vector construction functions."""
        assert evaluator.evaluate("c(1, x, 9)", env) == [1, 1, 2, 3, 4, 9]
        assert evaluator.evaluate("rev(x)", env) == [4, 3, 2, 1]
        assert evaluator.evaluate("cumsum(x)", env) == [1, 3, 6, 10]

    def test_n_takes_no_arguments(self, evaluator, env):
        """Test that n() rejects arguments."""
        with pytest.raises(EvaluationError):
            evaluator.evaluate("n(x)", env)

    def test_unknown_function(self, evaluator, env):
        """Test error on an unknown function."""
        with pytest.raises(EvaluationError, match="Unknown function 'nope'"):
            evaluator.evaluate("nope(x)", env)

    def test_custom_function(self, env):
        """Test registering an extra function."""
        evaluator = Evaluator(functions={"double": lambda v: [2 * i for i in v]})
        assert evaluator.evaluate("double(x)", env) == [2, 4, 6, 8]

    def test_dotted_names(self, evaluator):
        """Test that dotted names are plain identifiers."""
        env = Environment({"a.b": [math.pi]}, nrow=1)
        assert evaluator.evaluate("a.b", env) == [math.pi]


class TestEvaluate:
    """Tests for the kinds of expression accepted."""

    def test_callable(self, evaluator, env):
        """Test that callables receive the environment."""
        assert evaluator.evaluate(lambda e: e["x"][0], env) == 1

    def test_literal_value(self, evaluator, env):
        """Test that non-string values are returned as is."""
        values = [1, 2]
        assert evaluator.evaluate(values, env) is values
        assert evaluator.evaluate(5, env) == 5

    def test_unknown_column_propagates(self, evaluator, env):
        """Test that unknown columns are not wrapped."""
        with pytest.raises(UnknownColumnError):
            evaluator.evaluate("missing * 2", env)

    def test_syntax_error(self, evaluator, env):
        """Test that parse failures become EvaluationError."""
        with pytest.raises(EvaluationError):
            evaluator.evaluate("x +", env)

    def test_reference(self, evaluator):
        """Test detecting bare column references."""
        assert evaluator.reference("x") == "x"
        assert evaluator.reference("`a b`") == "a b"
        assert evaluator.reference("x + 1") is None
        assert evaluator.reference(["x"]) is None

    def test_parse_cache(self, evaluator):
        """Test that parsed trees are reused."""
        assert evaluator.parse("x + 1") is evaluator.parse("x + 1")

    def test_parse_cache_bounded(self, monkeypatch):
        """Test that the parse cache drops least recently used trees."""
        monkeypatch.setattr(Evaluator, "PARSE_CACHE_SIZE", 2)
        evaluator = Evaluator()
        first = evaluator.parse("x + 1")
        evaluator.parse("x + 2")
        evaluator.parse("x + 3")
        assert evaluator.parse("x + 1") is not first
        assert evaluator.parse("x + 1") == first

    def test_evaluate_column_names_column(self, evaluator, env):
        """Test that failures name the column being built."""
        with pytest.raises(EvaluationError, match="Evaluating 'z'"):
            evaluate_column(evaluator, "x / 0", env, "z")


class TestIterPairs:
    """Tests for (name, expression) argument handling."""

    def test_order(self):
        """Test that pairs and mappings come before keywords."""
        pairs = list(iter_pairs([("a", 1), {"b": 2, "c": 3}], {"d": 4}))
        assert pairs == [("a", 1), ("b", 2), ("c", 3), ("d", 4)]

    def test_bad_item(self):
        """Test that other positional items fail."""
        with pytest.raises(TypeError):
            list(iter_pairs(["a"], {}))
