# PATH: tests/unit/test_math.py
"""
Unit tests for integer money math.

Covers rounding direction (received floors, owed ceils), the no-float
contract and slippage guards.
"""

from decimal import Decimal

import pytest

from core.math import (
    apply_fee_bps,
    ceil_div,
    fee_owed_bps,
    min_out_with_slippage,
    mul_div,
    mul_div_up,
    portion_bps,
    safe_int,
    validate_no_float,
)


class TestNoFloatContract:
    """Floats are rejected anywhere in money math."""

    def test_validate_no_float_rejects_float(self):
        with pytest.raises(TypeError):
            validate_no_float(1, 2, 0.5)

    def test_validate_no_float_accepts_ints_and_decimals(self):
        validate_no_float(1, Decimal("1.5"), "10")

    def test_safe_int_rejects_float(self):
        with pytest.raises(TypeError):
            safe_int(1.0)

    def test_safe_int_rejects_bool(self):
        with pytest.raises(TypeError):
            safe_int(True)

    def test_safe_int_parses_strings(self):
        assert safe_int("1_000_000") == 1_000_000
        assert safe_int(" 42 ") == 42

    def test_safe_int_truncates_decimal_strings(self):
        assert safe_int("12.99") == 12
        assert safe_int("1e3") == 1000

    def test_safe_int_truncates_decimal(self):
        assert safe_int(Decimal("7.9")) == 7

    def test_safe_int_default_for_none(self):
        assert safe_int(None, default=5) == 5


class TestRounding:
    """Received amounts round down, owed amounts round up."""

    def test_ceil_div(self):
        assert ceil_div(10, 3) == 4
        assert ceil_div(9, 3) == 3
        assert ceil_div(0, 7) == 0

    def test_ceil_div_zero_denominator(self):
        with pytest.raises(ZeroDivisionError):
            ceil_div(1, 0)

    def test_mul_div_floors(self):
        assert mul_div(10, 1, 3) == 3

    def test_mul_div_up_ceils(self):
        assert mul_div_up(10, 1, 3) == 4

    def test_fee_owed_rounds_up(self):
        # 9 bps of 1_111 = 0.9999 -> owes 1
        assert fee_owed_bps(1_111, 9) == 1
        assert fee_owed_bps(1_000_000, 9) == 900

    def test_fee_owed_zero_cases(self):
        assert fee_owed_bps(1_000_000, 0) == 0
        assert fee_owed_bps(0, 9) == 0

    def test_portion_rounds_down(self):
        assert portion_bps(1_111, 9) == 0
        assert portion_bps(1_000_000, 2_500) == 250_000

    def test_apply_fee_bps(self):
        assert apply_fee_bps(1_000_000, 30) == 997_000
        assert apply_fee_bps(1_001, 30) == 997

    def test_apply_fee_bps_rejects_out_of_range(self):
        with pytest.raises(ValueError):
            apply_fee_bps(1_000, 10_000)
        with pytest.raises(ValueError):
            apply_fee_bps(1_000, -1)


class TestSlippage:
    """Minimum-output guard computation."""

    def test_min_out_with_slippage(self):
        assert min_out_with_slippage(1_000_000, 50) == 995_000

    def test_zero_slippage_is_exact(self):
        assert min_out_with_slippage(123_456, 0) == 123_456

    def test_min_out_floors(self):
        assert min_out_with_slippage(999, 50) == 994

    def test_slippage_out_of_range(self):
        with pytest.raises(ValueError):
            min_out_with_slippage(1_000, 10_001)

