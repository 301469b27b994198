"""Tests for the consistency evaluator: plain agreement and expected-value policies."""

import pytest
from ldap_consistency.checks.consistency import (
    ERROR, FAIL, NA, NO, OK, YES, all_equal, evaluate,
)


class TestAllEqual:

    def test_empty_is_equal(self):
        assert all_equal([])

    def test_single_value(self):
        assert all_equal([7])

    def test_identical_counts(self):
        assert all_equal([42, 42, 42])

    def test_different_counts(self):
        assert not all_equal([42, 42, 41])

    def test_string_and_int_differ(self):
        assert not all_equal(["5", 5])


class TestDefaultPolicy:

    @pytest.mark.parametrize("values", [
        [10, 10, 10],
        [0, 0],
        [YES, YES],
        [NA, NA, NA],
    ])
    def test_same_value_everywhere_is_ok(self, values):
        assert evaluate(values) == OK

    @pytest.mark.parametrize("values", [
        [10, 11],
        [10, 10, 9],
        [YES, NO],
        [10, ERROR],
        [NA, 20],
    ])
    def test_any_disagreement_fails(self, values):
        assert evaluate(values) == FAIL

    def test_uniform_error_counts_as_agreement(self):
        assert evaluate([ERROR, ERROR, ERROR]) == OK

    def test_uniform_error_fails_in_strict_mode(self):
        assert evaluate([ERROR, ERROR], strict=True) == FAIL

    def test_strict_mode_keeps_real_agreement(self):
        assert evaluate([3, 3], strict=True) == OK


class TestExpectedValuePolicy:

    def test_all_no_is_ok(self):
        assert evaluate([NO, NO, NO], expected=NO) == OK

    def test_all_yes_fails(self):
        assert evaluate([YES, YES, YES], expected=NO) == FAIL

    def test_mixed_fails(self):
        assert evaluate([NO, YES, NO], expected=NO) == FAIL

    def test_uniform_error_is_not_the_safe_value(self):
        assert evaluate([ERROR, ERROR], expected=NO) == FAIL
