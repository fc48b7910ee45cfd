"""
Math utilities for the engine.

Integer-only money math (no float). Amounts are unsigned fixed-point
integers in the asset's smallest unit.

ROUNDING CONTRACT:
  - Amounts received (swap outputs, yields, bonuses) round DOWN.
  - Amounts owed (capital fees, bridge fees) round UP.
  Both directions keep simulated profit from exceeding realizable profit.
"""

from decimal import Decimal, ROUND_DOWN
from typing import Any, Union

from core.constants import BPS_DENOMINATOR


def validate_no_float(*values: Any) -> None:
    """
    Reject float values anywhere in money math.

    Raises:
        TypeError: If any value is a float
    """
    for value in values:
        if isinstance(value, float):
            raise TypeError(f"Float values are not allowed in money math: {value!r}")


def safe_int(value: Union[str, int, Decimal, None], default: int = 0) -> int:
    """
    Convert value to int, truncating Decimals toward zero.

    Args:
        value: Value to convert (str, int or Decimal; float is rejected)
        default: Returned for None

    Returns:
        Integer value
    """
    if value is None:
        return default
    validate_no_float(value)
    if isinstance(value, bool):
        raise TypeError("Boolean is not an amount")
    if isinstance(value, int):
        return value
    if isinstance(value, Decimal):
        return int(value.to_integral_value(rounding=ROUND_DOWN))
    text = str(value).strip().replace("_", "")
    if "." in text or "e" in text.lower():
        return int(Decimal(text).to_integral_value(rounding=ROUND_DOWN))
    return int(text)


def ceil_div(numerator: int, denominator: int) -> int:
    """Integer division rounding up (non-negative operands)."""
    if denominator <= 0:
        raise ZeroDivisionError("denominator must be positive")
    return -(-numerator // denominator)


def mul_div(a: int, b: int, denominator: int) -> int:
    """floor(a * b / denominator) with full precision."""
    if denominator <= 0:
        raise ZeroDivisionError("denominator must be positive")
    return (a * b) // denominator


def mul_div_up(a: int, b: int, denominator: int) -> int:
    """ceil(a * b / denominator) with full precision."""
    return ceil_div(a * b, denominator)


def apply_fee_bps(amount: int, fee_bps: int) -> int:
    """
    Deduct a fee in bps from an input amount, rounding the remainder down.

    Args:
        amount: Gross input amount
        fee_bps: Fee in basis points (30 = 0.3%)

    Returns:
        Amount left after the fee
    """
    if not 0 <= fee_bps < BPS_DENOMINATOR:
        raise ValueError(f"fee_bps out of range: {fee_bps}")
    return mul_div(amount, BPS_DENOMINATOR - fee_bps, BPS_DENOMINATOR)


def fee_owed_bps(amount: int, fee_bps: int) -> int:
    """Fee owed on amount at fee_bps, rounded up."""
    if fee_bps <= 0 or amount <= 0:
        return 0
    return mul_div_up(amount, fee_bps, BPS_DENOMINATOR)


def portion_bps(amount: int, share_bps: int) -> int:
    """Share of an amount in bps, rounded down."""
    if share_bps <= 0 or amount <= 0:
        return 0
    return mul_div(amount, share_bps, BPS_DENOMINATOR)


def min_out_with_slippage(expected_out: int, max_slippage_bps: int) -> int:
    """
    Minimum acceptable output given a slippage tolerance.

    Example:
        min_out_with_slippage(1_000_000, 50) -> 995_000
    """
    if not 0 <= max_slippage_bps <= BPS_DENOMINATOR:
        raise ValueError(f"max_slippage_bps out of range: {max_slippage_bps}")
    return mul_div(expected_out, BPS_DENOMINATOR - max_slippage_bps, BPS_DENOMINATOR)



def decimal_floor(value: Decimal) -> int:
    """Floor a non-negative Decimal to int."""
    return int(value.to_integral_value(rounding=ROUND_DOWN))
