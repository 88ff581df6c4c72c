"""Unit tests for the quantity expression evaluator."""

from __future__ import annotations

import pytest

from hcregister.boq.expression import evaluate_expression, normalize_expression, parse_quantity
from hcregister.exceptions import ExpressionError


class TestNormalize:
    def test_multiplication_glyphs_become_star(self):
        assert normalize_expression("3x4") == "3*4"
        assert normalize_expression("3X4") == "3*4"
        assert normalize_expression("3 × 4") == "3*4"
        assert normalize_expression("3Ã—4") == "3*4"

    def test_whitespace_removed(self):
        assert normalize_expression(" 2 +\t3 ") == "2+3"


class TestEvaluate:
    @pytest.mark.parametrize(
        "expr, expected",
        [
            ("2+3*4", 14.0),
            ("(2+3)*4", 20.0),
            ("3x4", 12.0),
            ("3 × 4", 12.0),
            ("2.5 + 1.25", 3.75),
            (".5*2", 1.0),
            ("-2+5", 3.0),
            ("2*-3", -6.0),
            ("10/4", 2.5),
            ("((1+1))", 2.0),
        ],
    )
    def test_valid_expressions(self, expr, expected):
        result = evaluate_expression(expr)
        assert result.ok
        assert result.value == pytest.approx(expected)

    @pytest.mark.parametrize("expr", ["", "   ", None])
    def test_empty_is_zero(self, expr):
        result = evaluate_expression(expr)
        assert result.ok
        assert result.value == 0.0

    @pytest.mark.parametrize(
        "expr",
        ["abc", "2++3", "1--1", "1/0", "(2+3", "2+", "1e3", "2.5.3", "__import__('os')"],
    )
    def test_rejected(self, expr):
        assert not evaluate_expression(expr).ok

    @pytest.mark.parametrize(
        "expr",
        ["(" * 2000 + "1" + ")" * 2000, "-+" * 2000 + "1", "(" * 101 + "1" + ")" * 101],
    )
    def test_excessive_nesting_rejected(self, expr):
        assert not evaluate_expression(expr).ok

    def test_nesting_within_limit(self):
        assert evaluate_expression("(" * 100 + "2" + ")" * 100).value == 2.0
        assert evaluate_expression("-+" * 50 + "3").value == 3.0

    def test_deep_nesting_is_not_code(self):
        # parentheses and digits only: still arithmetic
        assert evaluate_expression("(((((7)))))").value == 7.0


class TestParseQuantity:
    def test_returns_value(self):
        assert parse_quantity("3x4+2") == 14.0

    def test_raises_on_invalid(self):
        with pytest.raises(ExpressionError) as exc_info:
            parse_quantity("2++2")
        assert exc_info.value.expr == "2++2"
