"""
dex/pricing/constant_product.py - x * y = k pool math.

Fee is deducted from the input before the invariant is applied and the
output is floored, so the quote never exceeds what the pool pays.
"""

from core.exceptions import VenueError
from core.math import apply_fee_bps


def get_amount_out(amount_in: int, reserve_in: int, reserve_out: int, fee_bps: int) -> int:
    """
    Output of an exact-input swap against a constant-product pool.

    Args:
        amount_in: Gross input amount
        reserve_in: Pool reserve of the input token
        reserve_out: Pool reserve of the output token
        fee_bps: Pool fee in bps

    Returns:
        Output amount (floored)
    """
    if reserve_in <= 0 or reserve_out <= 0:
        raise VenueError(
            "Empty reserves",
            details={"reserve_in": reserve_in, "reserve_out": reserve_out},
        )
    if amount_in <= 0:
        return 0

    net_in = apply_fee_bps(amount_in, fee_bps)
    return (net_in * reserve_out) // (reserve_in + net_in)


def get_reserves_after(
    amount_in: int,
    reserve_in: int,
    reserve_out: int,
    fee_bps: int,
) -> tuple[int, int, int]:
    """
    Simulate a swap and return (amount_out, new_reserve_in, new_reserve_out).

    The full gross input stays in the pool (fees accrue to LPs).
    """
    amount_out = get_amount_out(amount_in, reserve_in, reserve_out, fee_bps)
    return amount_out, reserve_in + amount_in, reserve_out - amount_out


def spot_price_x18(reserve_in: int, reserve_out: int) -> int:
    """Marginal price of token_in in token_out, scaled by 1e18."""
    if reserve_in <= 0:
        return 0
    return reserve_out * 10**18 // reserve_in
