"""Tests for if/elif condition evaluation."""

import pytest

from prebyte.engine import PreprocessError
from prebyte.engine._conditions import evaluate_condition

VARS = {
    "A": ["x"],
    "B": ["x"],
    "C": ["y"],
    "L": ["p", "q"],
    "EMPTY": [""],
}


def check(expr):
    return evaluate_condition(expr, VARS)


class TestComparison:
    def test_equal_variables(self):
        assert check("A == B")

    def test_unequal_variables(self):
        assert not check("A == C")
        assert check("A != C")

    def test_variable_against_literal(self):
        assert check('C == "y"')
        assert check("C == y")

    def test_undefined_word_is_literal(self):
        assert check("nothing == nothing")
        assert not check("nothing == A")

    def test_indexed(self):
        assert check('L[1] == "q"')

    def test_index_out_of_range_is_empty(self):
        assert check('L[5] == ""')

    def test_quoted_with_spaces(self):
        assert not check('"a b" == "a c"')


class TestTruthiness:
    def test_bound_word(self):
        assert check("A")
        assert check("EMPTY")

    def test_unbound_word(self):
        assert not check("MISSING")

    def test_indexed_bound(self):
        assert check("L[1]")

    def test_string_literal(self):
        assert check('"x"')
        assert not check('""')


class TestLogic:
    def test_not(self):
        assert check("!MISSING")
        assert not check("!A")
        assert check("!!A")

    def test_and_or(self):
        assert check("A && C")
        assert not check("A && MISSING")
        assert check("MISSING || C")

    def test_precedence_and_binds_tighter(self):
        # A || (MISSING && MISSING)
        assert check("A || MISSING && MISSING")

    def test_parentheses(self):
        assert not check("(A || B) && MISSING")
        assert check("(A == C) || (L[0] == p)")

    def test_not_parenthesised(self):
        assert check("!(A == C)")


class TestErrors:
    def test_empty(self):
        with pytest.raises(PreprocessError, match="empty expression"):
            check("   ")

    def test_missing_close_paren(self):
        with pytest.raises(PreprocessError, match=r"missing '\)'"):
            check("(A")

    def test_missing_operand(self):
        with pytest.raises(PreprocessError, match="missing operand"):
            check("A ==")

    def test_trailing_garbage(self):
        with pytest.raises(PreprocessError, match="unexpected"):
            check("A B")

    def test_stray_operator(self):
        with pytest.raises(PreprocessError, match="Invalid condition"):
            check("&& A")

    def test_unterminated_string(self):
        with pytest.raises(PreprocessError, match="Invalid condition"):
            check('"abc')
