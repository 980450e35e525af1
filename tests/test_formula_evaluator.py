"""Tests for the formula evaluator — per-row outcomes and batch invariants."""

import copy

import pytest

from backend.core.formula_evaluator import (
    RowOutcome,
    RowStatus,
    evaluate_row,
    execute_formula,
)
from backend.core.formula_parser import parse_formula


class TestArithmetic:
    @pytest.mark.parametrize("formula,expected", [
        ("2 + 3 * 4", 14.0),
        ("(2 + 3) * 4", 20.0),
        ("10 - 4 - 3", 3.0),
        ("100 / 10 / 2", 5.0),
        ("-a + 5", 3.0),
        ("-(a - 7)", 5.0),
        ("a * -1", -2.0),
    ])
    def test_precedence_and_associativity(self, formula, expected):
        outcome = evaluate_row(parse_formula(formula), {"a": 2})
        assert outcome.status == RowStatus.OK
        assert outcome.value == pytest.approx(expected)

    def test_bracketed_column_lookup(self):
        outcome = evaluate_row(parse_formula("[Entry Price] * 2"), {"Entry Price": 12.5})
        assert outcome == RowOutcome(status=RowStatus.OK, value=25.0)


class TestCoercion:
    def test_numeric_strings(self):
        outcome = evaluate_row(parse_formula("price * quantity"), {"price": "10.5", "quantity": " 2 "})
        assert outcome.value == 21.0

    def test_booleans_count_as_one_and_zero(self):
        outcome = evaluate_row(parse_formula("a + b"), {"a": True, "b": False})
        assert outcome.value == 1.0

    @pytest.mark.parametrize("bad", ["bad", "", None, [1], {"x": 1}, "nan", "inf"])
    def test_non_numeric_cell_is_invalid(self, bad):
        outcome = evaluate_row(parse_formula("a + 1"), {"a": bad})
        assert outcome.status == RowStatus.INVALID
        assert outcome.value is None
        assert outcome.error == "Invalid calculation result"

    def test_overflow_is_invalid(self):
        outcome = evaluate_row(parse_formula("a * 10"), {"a": 1e308})
        assert outcome.status == RowStatus.INVALID

    def test_int_beyond_float_range_is_invalid(self):
        result = execute_formula(parse_formula("a * 2"), [{"a": 1}, {"a": 10**400}, {"a": 3}])
        assert result.values == [2.0, None, 6.0]
        assert result.errors == ["Row 2: Invalid calculation result"]


class TestDivisionByZero:
    def test_yields_null_without_error(self):
        result = execute_formula(parse_formula("a / b"), [{"a": 10, "b": 0}])
        assert result.values == [None]
        assert result.errors == []

    def test_nested_division_by_zero(self):
        outcome = evaluate_row(parse_formula("1 + a / (b - b)"), {"a": 1, "b": 3})
        assert outcome.status == RowStatus.UNDEFINED
        assert outcome.error is None

    def test_non_numeric_operand_still_reported(self):
        result = execute_formula(parse_formula("a / b"), [{"a": "bad", "b": 0}])
        assert result.values == [None]
        assert result.errors == ["Row 1: Invalid calculation result"]


class TestExecuteFormula:
    def test_valid_rows(self):
        rows = [
            {"price": 10, "quantity": 5},
            {"price": 20, "quantity": 3},
            {"price": 15, "quantity": 2},
        ]
        result = execute_formula(parse_formula("price * quantity"), rows)
        assert result.values == [50, 60, 30]
        assert result.errors == []

    def test_missing_data_isolated_per_row(self):
        rows = [
            {"price": 10, "quantity": 5},
            {"price": 20},
            {"quantity": 2},
        ]
        result = execute_formula(parse_formula("price * quantity"), rows)
        assert result.values == [50, None, None]
        assert result.errors == [
            "Row 2: Column 'quantity' is missing from row",
            "Row 3: Column 'price' is missing from row",
        ]

    def test_partial_failure_in_middle_row(self):
        rows = [{"a": 1}, {"a": "oops"}, {"a": 3}]
        result = execute_formula(parse_formula("a * 2"), rows)
        assert result.values == [2, None, 6]
        assert len(result.errors) == 1
        assert result.errors[0].startswith("Row 2:")

    @pytest.mark.parametrize("n", [1, 7, 1000])
    def test_values_align_with_rows(self, n):
        rows = [{"a": i, "b": i % 3} for i in range(n)]
        result = execute_formula(parse_formula("a / b"), rows)
        assert len(result.values) == n
        assert len(result.errors) <= n

    def test_empty_batch(self):
        result = execute_formula(parse_formula("a + 1"), [])
        assert result.values == []
        assert result.errors == []

    def test_rows_are_not_mutated(self):
        rows = [{"a": "1", "b": None}, {"a": 2}]
        snapshot = copy.deepcopy(rows)
        execute_formula(parse_formula("a + b"), rows)
        assert rows == snapshot

    def test_constant_formula(self):
        result = execute_formula(parse_formula("1 + 1"), [{}, {"x": 1}])
        assert result.values == [2, 2]
