"""
dex/pricing/concentrated.py - Concentrated-liquidity (tick) pool math.

Tick math and the per-range swap step come from degenbot's Uniswap V3
libraries; this module owns the tick table and the walk across it.

TICK WALK (as UniswapV3Pool.swap):
==================================
  state.tick is the greatest tick whose sqrt ratio <= sqrt_price_x96.
  Active liquidity sums liquidity_net of every initialized tick <= state.tick.

  zero_for_one   next boundary = highest initialized tick <= state.tick,
                 so a tick sitting exactly at the price is crossed first.
                 Crossing subtracts its net and leaves tick = boundary - 1.
  one_for_zero   next boundary = lowest initialized tick > state.tick.
                 Crossing adds its net and leaves tick = boundary.
==================================

The fee is taken from the input inside each swap step. Outputs are floored
and inputs rounded up by the library.
"""

from dataclasses import dataclass, field, replace
from typing import Optional

from degenbot.exceptions import DegenbotValueError, EVMRevertError
from degenbot.uniswap.v3_libraries import swap_math, tick_math
from degenbot.uniswap.v3_libraries.tick_math import (
    MAX_SQRT_RATIO,
    MAX_TICK,
    MIN_SQRT_RATIO,
    MIN_TICK,
)

from core.exceptions import VenueError

Q96 = 1 << 96

# Uniswap fees are in hundredths of a bp
PIPS_PER_BPS = 100


def get_sqrt_ratio_at_tick(tick: int) -> int:
    """
    sqrt(1.0001^tick) as a Q64.96 integer.

    Raises:
        VenueError: If tick is outside [MIN_TICK, MAX_TICK]
    """
    if not MIN_TICK <= tick <= MAX_TICK:
        raise VenueError(f"Tick out of range: {tick}")
    return tick_math.get_sqrt_ratio_at_tick(tick)


def get_tick_at_sqrt_ratio(sqrt_price_x96: int) -> int:
    if not MIN_SQRT_RATIO <= sqrt_price_x96 < MAX_SQRT_RATIO:
        raise VenueError(f"sqrt price out of range: {sqrt_price_x96}")
    return tick_math.get_tick_at_sqrt_ratio(sqrt_price_x96)


# =============================================================================
# POOL STATE
# =============================================================================

@dataclass(frozen=True)
class ConcentratedPoolState:
    """
    Immutable snapshot of a concentrated-liquidity pool.

    ticks holds (tick, liquidity_net) for every initialized tick, sorted
    ascending. liquidity is the active liquidity at tick. tick defaults to
    the tick of sqrt_price_x96; after a downward cross that lands exactly on
    a boundary it is boundary - 1.
    """
    sqrt_price_x96: int
    liquidity: int
    ticks: tuple[tuple[int, int], ...] = ()
    tick: Optional[int] = field(default=None)

    def __post_init__(self):
        if self.tick is None:
            object.__setattr__(self, "tick", get_tick_at_sqrt_ratio(self.sqrt_price_x96))

    def next_tick_at_or_below(self) -> tuple[int, int] | None:
        """Highest initialized tick <= the current tick."""
        candidate = None
        for tick, net in self.ticks:
            if tick > self.tick:
                break
            candidate = (tick, net)
        return candidate

    def next_tick_above(self) -> tuple[int, int] | None:
        """Lowest initialized tick > the current tick."""
        for tick, net in self.ticks:
            if tick > self.tick:
                return (tick, net)
        return None


def liquidity_positions(positions: list[tuple[int, int, int]]) -> tuple[tuple[int, int], ...]:
    """
    Build the initialized-tick table from (tick_lower, tick_upper, liquidity).

    Returns:
        Sorted ((tick, liquidity_net), ...) with zero nets dropped
    """
    nets: dict[int, int] = {}
    for lower, upper, liquidity in positions:
        if lower >= upper:
            raise VenueError(f"Invalid position range: [{lower}, {upper}]")
        nets[lower] = nets.get(lower, 0) + liquidity
        nets[upper] = nets.get(upper, 0) - liquidity
    return tuple(sorted((t, n) for t, n in nets.items() if n != 0))


def active_liquidity(sqrt_price_x96: int, ticks: tuple[tuple[int, int], ...]) -> int:
    """Sum of liquidity_net for ticks at or below the price's tick."""
    current = get_tick_at_sqrt_ratio(sqrt_price_x96)
    return sum(net for tick, net in ticks if tick <= current)


# =============================================================================
# SWAP
# =============================================================================

def swap_exact_input(
    state: ConcentratedPoolState,
    amount_in: int,
    zero_for_one: bool,
    fee_bps: int,
) -> tuple[int, ConcentratedPoolState]:
    """
    Exact-input swap walking initialized ticks.

    Args:
        state: Pool snapshot
        amount_in: Gross input amount
        zero_for_one: True when token0 is sold for token1
        fee_bps: Pool fee in bps

    Returns:
        (amount_out, new_state)

    Raises:
        VenueError: If liquidity runs out before the input is consumed
    """
    if amount_in <= 0:
        return 0, state

    fee_pips = fee_bps * PIPS_PER_BPS
    limit = MIN_SQRT_RATIO + 1 if zero_for_one else MAX_SQRT_RATIO - 1

    remaining = amount_in
    amount_out = 0
    current = state

    while remaining > 0 and current.sqrt_price_x96 != limit:
        boundary = current.next_tick_at_or_below() if zero_for_one else current.next_tick_above()
        if boundary is None:
            target = limit
        else:
            target = get_sqrt_ratio_at_tick(boundary[0])
            target = max(target, limit) if zero_for_one else min(target, limit)

        try:
            sqrt_next, step_in, step_out, step_fee = swap_math.compute_swap_step(
                current.sqrt_price_x96, target, current.liquidity, remaining, fee_pips
            )
        except (EVMRevertError, DegenbotValueError) as e:
            raise VenueError(f"Swap step failed: {e}") from e

        remaining -= step_in + step_fee
        amount_out += step_out

        if boundary is not None and sqrt_next == target:
            tick, net = boundary
            liquidity = current.liquidity - net if zero_for_one else current.liquidity + net
            if liquidity < 0:
                raise VenueError("Negative liquidity after tick cross", details={"tick": tick})
            current = replace(
                current,
                sqrt_price_x96=sqrt_next,
                liquidity=liquidity,
                tick=tick - 1 if zero_for_one else tick,
            )
        elif sqrt_next != current.sqrt_price_x96:
            current = replace(current, sqrt_price_x96=sqrt_next, tick=get_tick_at_sqrt_ratio(sqrt_next))

    if remaining > 0:
        raise VenueError(
            "Insufficient liquidity for swap",
            details={"unfilled_amount": remaining, "zero_for_one": zero_for_one},
        )
    return amount_out, current
