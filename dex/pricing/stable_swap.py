"""
dex/pricing/stable_swap.py - StableSwap invariant math.

Invariant for n coins with amplification A (Ann = A * n):

    Ann * S + D = Ann * D + D^(n+1) / (n^n * prod(x_i))

D and the post-trade balance y are found by Newton iteration in integers.
Balances are normalized by per-coin precision multipliers so coins with
different decimals share one scale.
"""

from typing import Sequence

from core.exceptions import VenueError
from core.math import apply_fee_bps

MAX_ITERATIONS = 255


def get_d(xp: Sequence[int], amp: int) -> int:
    """
    Compute the invariant D for normalized balances.

    Raises:
        VenueError: If Newton iteration does not converge
    """
    n = len(xp)
    total = sum(xp)
    if total == 0:
        return 0
    if any(x <= 0 for x in xp):
        raise VenueError("StableSwap balances must be positive")

    d = total
    ann = amp * n
    for _ in range(MAX_ITERATIONS):
        d_p = d
        for x in xp:
            d_p = d_p * d // (x * n)
        d_prev = d
        d = (ann * total + d_p * n) * d // ((ann - 1) * d + (n + 1) * d_p)
        if abs(d - d_prev) <= 1:
            return d

    raise VenueError("StableSwap D did not converge", details={"amp": amp, "balances": list(xp)})


def get_y(i: int, j: int, x: int, xp: Sequence[int], amp: int) -> int:
    """
    New normalized balance of coin j when coin i's balance becomes x.

    Raises:
        VenueError: On bad indices or non-convergence
    """
    n = len(xp)
    if i == j or not (0 <= i < n and 0 <= j < n):
        raise VenueError(f"Invalid coin indices: i={i}, j={j}")

    d = get_d(xp, amp)
    ann = amp * n
    c = d
    s = 0
    for k in range(n):
        if k == i:
            balance = x
        elif k != j:
            balance = xp[k]
        else:
            continue
        s += balance
        c = c * d // (balance * n)
    c = c * d // (ann * n)
    b = s + d // ann

    y = d
    for _ in range(MAX_ITERATIONS):
        y_prev = y
        y = (y * y + c) // (2 * y + b - d)
        if abs(y - y_prev) <= 1:
            return y

    raise VenueError("StableSwap y did not converge", details={"amp": amp})


def get_dy(
    i: int,
    j: int,
    amount_in: int,
    balances: Sequence[int],
    amp: int,
    fee_bps: int,
    precision_multipliers: Sequence[int] | None = None,
) -> int:
    """
    Output of coin j for an exact input of coin i.

    Args:
        i: Index of the input coin
        j: Index of the output coin
        amount_in: Gross input amount
        balances: Raw pool balances
        amp: Amplification coefficient A
        fee_bps: Pool fee in bps, deducted from the input
        precision_multipliers: Per-coin scale to a common precision

    Returns:
        Output amount in coin j's raw units (floored)
    """
    if amount_in <= 0:
        return 0
    rates = list(precision_multipliers or [1] * len(balances))
    if len(rates) != len(balances):
        raise VenueError("precision_multipliers length mismatch")

    xp = [b * r for b, r in zip(balances, rates)]
    net_in = apply_fee_bps(amount_in, fee_bps)
    x = xp[i] + net_in * rates[i]
    y = get_y(i, j, x, xp, amp)

    # One unit withheld against rounding in the pool's favour
    dy = xp[j] - y - 1
    if dy <= 0:
        return 0
    return dy // rates[j]
