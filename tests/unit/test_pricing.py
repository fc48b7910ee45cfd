# PATH: tests/unit/test_pricing.py
"""
Unit tests for the pure pricing models.

Every model deducts the fee from the input first and floors its output,
so no quote can exceed the fee-less ideal.
"""

import pytest

from core.exceptions import VenueError
from dex.pricing import concentrated, constant_product, stable_swap, weighted
from dex.pricing.concentrated import (
    MAX_SQRT_RATIO,
    MAX_TICK,
    MIN_SQRT_RATIO,
    MIN_TICK,
    Q96,
    ConcentratedPoolState,
)

T12 = 10**12


class TestConstantProduct:

    def test_amount_out_matches_formula(self):
        net_in = 1_000_000 * 9_970 // 10_000
        expected = net_in * T12 // (T12 + net_in)
        assert constant_product.get_amount_out(1_000_000, T12, T12, 30) == expected

    def test_fee_is_deducted_before_formula(self):
        with_fee = constant_product.get_amount_out(1_000_000, T12, T12, 30)
        without_fee = constant_product.get_amount_out(1_000_000, T12, T12, 0)
        assert with_fee < without_fee

    def test_zero_input(self):
        assert constant_product.get_amount_out(0, T12, T12, 30) == 0

    def test_empty_reserves_raise(self):
        with pytest.raises(VenueError):
            constant_product.get_amount_out(1_000, 0, T12, 30)

    def test_reserves_after_keep_gross_input(self):
        out, new_in, new_out = constant_product.get_reserves_after(1_000_000, T12, T12, 30)
        assert new_in == T12 + 1_000_000
        assert new_out == T12 - out

    def test_invariant_never_decreases(self):
        out, new_in, new_out = constant_product.get_reserves_after(5 * 10**9, T12, 2 * T12, 30)
        assert new_in * new_out >= T12 * 2 * T12

    def test_spot_price(self):
        assert constant_product.spot_price_x18(T12, 2 * T12) == 2 * 10**18


class TestConcentratedTickMath:

    def test_tick_zero_is_q96(self):
        assert concentrated.get_sqrt_ratio_at_tick(0) == Q96

    def test_tick_bounds(self):
        assert concentrated.get_sqrt_ratio_at_tick(MIN_TICK) == MIN_SQRT_RATIO
        assert concentrated.get_sqrt_ratio_at_tick(MAX_TICK) == MAX_SQRT_RATIO

    def test_tick_out_of_range(self):
        with pytest.raises(VenueError):
            concentrated.get_sqrt_ratio_at_tick(MAX_TICK + 1)

    def test_monotonic(self):
        prices = [concentrated.get_sqrt_ratio_at_tick(t) for t in (-600, -1, 0, 1, 600)]
        assert prices == sorted(prices)
        assert len(set(prices)) == len(prices)

    def test_liquidity_positions_net(self):
        ticks = concentrated.liquidity_positions([(-60, 60, 100), (0, 120, 50)])
        assert ticks == ((-60, 100), (0, 50), (60, -100), (120, -50))

    def test_liquidity_positions_reject_inverted_range(self):
        with pytest.raises(VenueError):
            concentrated.liquidity_positions([(60, -60, 100)])

    def test_active_liquidity(self):
        ticks = concentrated.liquidity_positions([(-60, 60, 100), (0, 120, 50)])
        assert concentrated.active_liquidity(Q96, ticks) == 150


class TestConcentratedSwap:

    @staticmethod
    def _state(positions):
        ticks = concentrated.liquidity_positions(positions)
        return ConcentratedPoolState(
            sqrt_price_x96=Q96,
            liquidity=concentrated.active_liquidity(Q96, ticks),
            ticks=ticks,
        )

    def test_small_swap_near_par(self):
        state = self._state([(-600, 600, 10**18)])
        out, new_state = concentrated.swap_exact_input(state, 1_000_000, True, 5)
        net_in = 1_000_000 * 9_995 // 10_000
        assert net_in - 10 < out < net_in
        assert new_state.sqrt_price_x96 < state.sqrt_price_x96

    def test_one_for_zero_moves_price_up(self):
        state = self._state([(-600, 600, 10**18)])
        out, new_state = concentrated.swap_exact_input(state, 1_000_000, False, 5)
        assert out > 0
        assert new_state.sqrt_price_x96 > state.sqrt_price_x96

    def test_swap_does_not_mutate_input_state(self):
        state = self._state([(-600, 600, 10**18)])
        concentrated.swap_exact_input(state, 1_000_000, True, 5)
        assert state.sqrt_price_x96 == Q96

    def test_crosses_ticks(self):
        state = self._state([(-10, 10, 10**12), (-600, 600, 10**12)])
        out, new_state = concentrated.swap_exact_input(state, 10**10, True, 0)
        assert out > 0
        assert new_state.sqrt_price_x96 < concentrated.get_sqrt_ratio_at_tick(-10)
        assert new_state.liquidity == 10**12

    def test_exhausted_liquidity_raises(self):
        state = self._state([(-10, 10, 10**6)])
        with pytest.raises(VenueError):
            concentrated.swap_exact_input(state, 10**20, True, 5)

    def test_zero_input(self):
        state = self._state([(-600, 600, 10**18)])
        assert concentrated.swap_exact_input(state, 0, True, 5) == (0, state)

    def test_tick_derived_from_price(self):
        assert self._state([(-600, 600, 10**18)]).tick == 0
        below = ConcentratedPoolState(concentrated.get_sqrt_ratio_at_tick(-300) - 1, 0)
        assert below.tick == -301

    def test_range_starting_at_price_is_crossed_selling_token0(self):
        """A range whose lower tick sits at the price adds nothing below it."""
        liquidity = 10**18
        single = self._state([(-600, 600, liquidity)])
        stacked = self._state([(-600, 600, liquidity), (0, 600, liquidity)])
        assert stacked.liquidity == 2 * liquidity

        out_single, after_single = concentrated.swap_exact_input(single, 10**9, True, 0)
        out_stacked, after_stacked = concentrated.swap_exact_input(stacked, 10**9, True, 0)

        assert out_stacked == out_single
        assert after_stacked.sqrt_price_x96 == after_single.sqrt_price_x96
        assert after_stacked.liquidity == liquidity

    def test_range_starting_at_price_is_crossed_selling_token1(self):
        """Sitting on a crossed lower tick, buying back re-enters the range."""
        liquidity = 10**18
        ticks = concentrated.liquidity_positions([(-600, 600, liquidity), (-300, 600, liquidity)])
        at_boundary = concentrated.get_sqrt_ratio_at_tick(-300)
        crossed = ConcentratedPoolState(at_boundary, liquidity, ticks, tick=-301)
        inside = ConcentratedPoolState(at_boundary, concentrated.active_liquidity(at_boundary, ticks), ticks)
        assert inside.liquidity == 2 * liquidity

        out_crossed, after_crossed = concentrated.swap_exact_input(crossed, 10**9, False, 0)
        out_inside, after_inside = concentrated.swap_exact_input(inside, 10**9, False, 0)

        assert out_crossed == out_inside
        assert after_crossed.sqrt_price_x96 == after_inside.sqrt_price_x96
        assert after_crossed.liquidity == 2 * liquidity

    def test_swap_across_lower_tick(self):
        liquidity = 10**18
        state = self._state([(-600, 600, liquidity), (-300, 600, liquidity)])
        assert state.liquidity == 2 * liquidity

        _, after = concentrated.swap_exact_input(state, 4 * 10**16, True, 0)
        assert after.tick < -300
        assert after.liquidity == liquidity


class TestStableSwap:

    def test_balanced_pool_near_par(self):
        dy = stable_swap.get_dy(0, 1, 1_000_000, [T12, T12, T12], 200, 4)
        assert 999_500 < dy < 999_600

    def test_precision_multipliers(self):
        # USDC (6 decimals) -> DAI (18 decimals)
        balances = [10**12, 10**24]
        dy = stable_swap.get_dy(0, 1, 10**6, balances, 200, 4, precision_multipliers=[10**12, 1])
        assert 999_000 * 10**12 < dy < 10**18

    def test_imbalanced_pool_pays_more_for_scarce_side(self):
        rich = stable_swap.get_dy(0, 1, 10**9, [T12, 2 * T12], 100, 4)
        poor = stable_swap.get_dy(1, 0, 10**9, [T12, 2 * T12], 100, 4)
        assert rich > poor

    def test_d_of_balanced_pool_is_sum(self):
        d = stable_swap.get_d([T12, T12, T12], 200)
        assert abs(d - 3 * T12) <= 1

    def test_invalid_indices(self):
        with pytest.raises(VenueError):
            stable_swap.get_y(0, 0, T12, [T12, T12], 200)

    def test_multiplier_length_mismatch(self):
        with pytest.raises(VenueError):
            stable_swap.get_dy(0, 1, 1_000, [T12, T12], 200, 4, precision_multipliers=[1])


class TestWeighted:

    def test_equal_weights_match_constant_product(self):
        cp = constant_product.get_amount_out(1_000_000, T12, T12, 30)
        wp = weighted.get_amount_out(1_000_000, T12, 50, T12, 50, 30)
        assert wp <= cp
        assert cp - wp <= 1

    def test_heavier_input_weight_pays_more(self):
        light = weighted.get_amount_out(10**9, T12, 20, T12, 80, 10)
        heavy = weighted.get_amount_out(10**9, T12, 80, T12, 20, 10)
        assert heavy > light

    def test_max_in_ratio(self):
        with pytest.raises(VenueError):
            weighted.get_amount_out(T12 // 2, T12, 50, T12, 50, 0)

    def test_bad_weights(self):
        with pytest.raises(VenueError):
            weighted.get_amount_out(1_000, T12, 0, T12, 50, 0)

    def test_spot_price(self):
        assert weighted.spot_price_x18(T12, 80, T12, 20) == 4 * 10**18
