"""
dex/pricing/weighted.py - Weighted-pool (constant mean) math.

    amount_out = balance_out * (1 - (balance_in / (balance_in + amount_in)) ^ (w_in / w_out))

The fractional power is evaluated with Decimal at high precision with the
power rounded up, so the floored output never exceeds the exact value.
"""

from decimal import ROUND_CEILING, Decimal, localcontext

from core.exceptions import VenueError
from core.math import apply_fee_bps, decimal_floor, mul_div

# Largest input accepted, as a share of the input balance (30%)
MAX_IN_RATIO_BPS = 3_000
POWER_PRECISION = 60


def get_amount_out(
    amount_in: int,
    balance_in: int,
    weight_in: int,
    balance_out: int,
    weight_out: int,
    fee_bps: int,
) -> int:
    """
    Output of an exact-input swap against a weighted pool.

    Weights can use any common scale (e.g. 80/20 or 8000/2000).

    Raises:
        VenueError: On empty balances, bad weights or oversized input
    """
    if balance_in <= 0 or balance_out <= 0:
        raise VenueError("Empty weighted pool balance")
    if weight_in <= 0 or weight_out <= 0:
        raise VenueError("Weights must be positive")
    if amount_in <= 0:
        return 0

    net_in = apply_fee_bps(amount_in, fee_bps)
    if net_in > mul_div(balance_in, MAX_IN_RATIO_BPS, 10_000):
        raise VenueError(
            "Input exceeds max in-ratio",
            details={"amount_in": amount_in, "balance_in": balance_in},
        )

    with localcontext() as ctx:
        ctx.prec = POWER_PRECISION
        ctx.rounding = ROUND_CEILING
        base = Decimal(balance_in) / Decimal(balance_in + net_in)
        exponent = Decimal(weight_in) / Decimal(weight_out)
        power = base ** exponent
        out = Decimal(balance_out) * (Decimal(1) - power)

    return max(0, decimal_floor(out))


def spot_price_x18(balance_in: int, weight_in: int, balance_out: int, weight_out: int) -> int:
    """Marginal price of token_in in token_out, scaled by 1e18."""
    if balance_in <= 0 or weight_out <= 0:
        return 0
    return (balance_out * weight_in * 10**18) // (balance_in * weight_out)
