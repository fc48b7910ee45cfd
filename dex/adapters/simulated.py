"""
dex/adapters/simulated.py - In-process venues backed by the pricing models.

A SimulatedVenue hosts one or more pools that all use the venue's declared
pricing model. Pool state is immutable; a swap computes (amount_out,
new_state) purely and then swaps the state in, so snapshot/restore is a
dict copy.

execution_shortfall_bps models competing flow landing between simulation
and execution: it trims actual swap output (never quotes).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Sequence

from core.constants import BPS_DENOMINATOR, PricingModel
from core.exceptions import VenueError
from core.math import mul_div
from dex.adapters.base import VenueAdapter
from dex.pricing import concentrated, constant_product, stable_swap, weighted
from dex.pricing.concentrated import ConcentratedPoolState


# =============================================================================
# POOLS
# =============================================================================

class SimulatedPool(ABC):
    """A pool trading a fixed set of tokens under one pricing model."""

    pricing_model: PricingModel

    def __init__(self, tokens: Sequence[str], state: Any, pool_id: str = ""):
        if len(set(tokens)) != len(tokens) or len(tokens) < 2:
            raise VenueError(f"Pool needs at least two distinct tokens: {list(tokens)}")
        self.tokens = tuple(tokens)
        self.state = state
        self.pool_id = pool_id

    @property
    def pool_key(self) -> str:
        return self.pool_id or "/".join(self.tokens)

    def index(self, token: str) -> int:
        try:
            return self.tokens.index(token)
        except ValueError:
            raise VenueError(f"Token {token} not in pool {self.pool_key}")

    def trades(self, token_in: str, token_out: str) -> bool:
        return token_in != token_out and token_in in self.tokens and token_out in self.tokens

    @abstractmethod
    def simulate(self, token_in: str, token_out: str, amount_in: int, fee_bps: int) -> tuple[int, Any]:
        """(amount_out, new_state) for an exact input; state is not mutated."""


class ConstantProductPool(SimulatedPool):
    """Two-token x * y = k pool. State: (reserve0, reserve1)."""

    pricing_model = PricingModel.CONSTANT_PRODUCT

    def __init__(self, token0: str, token1: str, reserve0: int, reserve1: int, pool_id: str = ""):
        super().__init__((token0, token1), (reserve0, reserve1), pool_id)

    def simulate(self, token_in, token_out, amount_in, fee_bps):
        i, j = self.index(token_in), self.index(token_out)
        reserves = list(self.state)
        amount_out, new_in, new_out = constant_product.get_reserves_after(
            amount_in, reserves[i], reserves[j], fee_bps
        )
        reserves[i], reserves[j] = new_in, new_out
        return amount_out, tuple(reserves)


class ConcentratedLiquidityPool(SimulatedPool):
    """Two-token tick pool. State: ConcentratedPoolState (token0 is the base)."""

    pricing_model = PricingModel.CONCENTRATED_LIQUIDITY

    def __init__(self, token0: str, token1: str, state: ConcentratedPoolState, pool_id: str = ""):
        super().__init__((token0, token1), state, pool_id)

    @classmethod
    def from_positions(
        cls,
        token0: str,
        token1: str,
        sqrt_price_x96: int,
        positions: list[tuple[int, int, int]],
        pool_id: str = "",
    ) -> "ConcentratedLiquidityPool":
        """Build a pool from (tick_lower, tick_upper, liquidity) positions."""
        ticks = concentrated.liquidity_positions(positions)
        state = ConcentratedPoolState(
            sqrt_price_x96=sqrt_price_x96,
            liquidity=concentrated.active_liquidity(sqrt_price_x96, ticks),
            ticks=ticks,
        )
        return cls(token0, token1, state, pool_id)

    def simulate(self, token_in, token_out, amount_in, fee_bps):
        zero_for_one = self.index(token_in) == 0
        self.index(token_out)
        return concentrated.swap_exact_input(self.state, amount_in, zero_for_one, fee_bps)


class StableSwapPool(SimulatedPool):
    """n-coin StableSwap pool. State: tuple of balances."""

    pricing_model = PricingModel.STABLE_SWAP

    def __init__(
        self,
        coins: Sequence[str],
        balances: Sequence[int],
        amp: int,
        precision_multipliers: Sequence[int] | None = None,
        pool_id: str = "",
    ):
        if len(coins) != len(balances):
            raise VenueError("coins and balances length mismatch")
        super().__init__(coins, tuple(balances), pool_id)
        self.amp = amp
        self.precision_multipliers = tuple(precision_multipliers or [1] * len(coins))

    def simulate(self, token_in, token_out, amount_in, fee_bps):
        i, j = self.index(token_in), self.index(token_out)
        amount_out = stable_swap.get_dy(
            i, j, amount_in, self.state, self.amp, fee_bps, self.precision_multipliers
        )
        balances = list(self.state)
        balances[i] += amount_in
        balances[j] -= amount_out
        return amount_out, tuple(balances)


class WeightedPool(SimulatedPool):
    """n-token weighted pool. State: tuple of balances."""

    pricing_model = PricingModel.WEIGHTED

    def __init__(
        self,
        tokens: Sequence[str],
        balances: Sequence[int],
        weights: Sequence[int],
        pool_id: str = "",
    ):
        if not len(tokens) == len(balances) == len(weights):
            raise VenueError("tokens, balances and weights length mismatch")
        super().__init__(tokens, tuple(balances), pool_id)
        self.weights = tuple(weights)

    def simulate(self, token_in, token_out, amount_in, fee_bps):
        i, j = self.index(token_in), self.index(token_out)
        amount_out = weighted.get_amount_out(
            amount_in, self.state[i], self.weights[i], self.state[j], self.weights[j], fee_bps
        )
        balances = list(self.state)
        balances[i] += amount_in
        balances[j] -= amount_out
        return amount_out, tuple(balances)


# =============================================================================
# VENUE
# =============================================================================

@dataclass
class VenueSnapshot:
    """Pool states of one venue at a point in time."""
    venue_id: str
    states: Dict[str, Any]


class SimulatedVenue(VenueAdapter):
    """
    In-process venue hosting pools of a single pricing model.

    Usage:
        venue = SimulatedVenue("uni_v2", PricingModel.CONSTANT_PRODUCT, fee_bps=30)
        venue.add_pool(ConstantProductPool("WETH", "USDC", 10**21, 3 * 10**12))
        out = venue.swap("WETH", "USDC", 10**18, min_amount_out=0)
    """

    def __init__(
        self,
        venue_id: str,
        pricing_model: PricingModel,
        fee_bps: int,
        network: str = "",
        enabled: bool = True,
        execution_shortfall_bps: int = 0,
    ):
        super().__init__(venue_id, fee_bps, network, enabled)
        self.pricing_model = PricingModel(pricing_model)
        self.execution_shortfall_bps = execution_shortfall_bps
        self._pools: Dict[str, SimulatedPool] = {}

    def add_pool(self, pool: SimulatedPool) -> SimulatedPool:
        """Attach a pool; its model must match the venue's declared model."""
        if pool.pricing_model != self.pricing_model:
            raise VenueError(
                f"Pool model {pool.pricing_model.value} does not match venue model "
                f"{self.pricing_model.value}",
                venue_id=self.venue_id,
            )
        if pool.pool_key in self._pools:
            raise VenueError(f"Duplicate pool {pool.pool_key}", venue_id=self.venue_id)
        self._pools[pool.pool_key] = pool
        return pool

    @property
    def pools(self) -> list[SimulatedPool]:
        return list(self._pools.values())

    def tokens(self) -> set[str]:
        return {token for pool in self._pools.values() for token in pool.tokens}

    def _route(self, token_in: str, token_out: str, amount_in: int) -> tuple[SimulatedPool, int, Any]:
        """
        Pick the pool paying the most for this input.

        Ties keep registration order. Pools that cannot fill the trade are
        skipped; if none can, the last pool error is raised.
        """
        best = None
        last_error = None
        for pool in self._pools.values():
            if not pool.trades(token_in, token_out):
                continue
            try:
                amount_out, new_state = pool.simulate(token_in, token_out, amount_in, self.fee_bps)
            except VenueError as e:
                last_error = e
                continue
            if best is None or amount_out > best[1]:
                best = (pool, amount_out, new_state)

        if best is None:
            if last_error is not None:
                raise VenueError(last_error.message, venue_id=self.venue_id, details=last_error.details)
            raise VenueError(f"No pool for {token_in}->{token_out}", venue_id=self.venue_id)
        return best

    def supports(self, token_in: str, token_out: str) -> bool:
        return any(pool.trades(token_in, token_out) for pool in self._pools.values())

    def quote(self, token_in: str, token_out: str, amount_in: int) -> int:
        with self._lock:
            _, amount_out, _ = self._route(token_in, token_out, amount_in)
        return amount_out

    def _execute(self, token_in: str, token_out: str, amount_in: int, min_amount_out: int) -> int:
        pool, amount_out, new_state = self._route(token_in, token_out, amount_in)

        if self.execution_shortfall_bps:
            amount_out = mul_div(
                amount_out, BPS_DENOMINATOR - self.execution_shortfall_bps, BPS_DENOMINATOR
            )

        self._check_guard(amount_out, min_amount_out, token_out)
        pool.state = new_state
        return amount_out

    def snapshot(self) -> VenueSnapshot:
        with self._lock:
            return VenueSnapshot(
                venue_id=self.venue_id,
                states={key: pool.state for key, pool in self._pools.items()},
            )

    def restore(self, snapshot: VenueSnapshot) -> None:
        if snapshot.venue_id != self.venue_id:
            raise VenueError(f"Snapshot belongs to {snapshot.venue_id}", venue_id=self.venue_id)
        with self._lock:
            for key, state in snapshot.states.items():
                self._pools[key].state = state
