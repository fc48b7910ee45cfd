"""
strategy/side_terms.py - Side profitability terms of the specialized kinds.

Every function here is pure: it reads the typed payload and immutable
simulation numbers and returns a SideTerm. Received amounts round down,
owed amounts round up.

SIDE TERM CONTRACT:
  bonus                 - added to the route profit (may be negative)
  required_amount_out   - route output must reach this (0 = no requirement)
"""

from dataclasses import dataclass
from typing import Callable, Dict, Optional, Type

from core.constants import BPS_DENOMINATOR, SECONDS_PER_YEAR
from core.math import fee_owed_bps, portion_bps
from strategy.payloads import (
    AccountAbstractionPayload,
    FragmentationPayload,
    GovernancePayload,
    IntentPayload,
    ModularPayload,
    RealWorldAssetPayload,
    StrategyPayload,
)


@dataclass(frozen=True)
class SideTerm:
    bonus: int = 0
    required_amount_out: int = 0
    label: str = ""

    def to_dict(self) -> dict:
        return {
            "bonus": self.bonus,
            "required_amount_out": self.required_amount_out,
            "label": self.label,
        }


NO_SIDE_TERM = SideTerm()


def intent_surplus(payload: IntentPayload, amount_in: int, expected_amount_out: int) -> SideTerm:
    """Share of the surplus the intent offers over the reference amount."""
    surplus = max(0, payload.offered_amount - payload.reference_amount)
    return SideTerm(
        bonus=portion_bps(surplus, payload.surplus_share_bps),
        label=f"intent:{payload.order_hash}",
    )


def paymaster_subsidy(payload: AccountAbstractionPayload, amount_in: int, expected_amount_out: int) -> SideTerm:
    return SideTerm(
        bonus=payload.paymaster_subsidy - payload.bundler_fee,
        label=f"user_op:{payload.user_op_hash}",
    )


def sequencer_rebate(payload: ModularPayload, amount_in: int, expected_amount_out: int) -> SideTerm:
    return SideTerm(
        bonus=payload.sequencer_rebate - payload.data_availability_cost,
        label=f"modular:{payload.execution_layer}->{payload.settlement_layer}",
    )


def best_of_fragments(payload: FragmentationPayload, amount_in: int, expected_amount_out: int) -> SideTerm:
    """The route must beat every fragmented quote; no bonus."""
    return SideTerm(
        bonus=0,
        required_amount_out=max(payload.fragment_outputs),
        label=f"fragments:{len(payload.fragment_outputs)}",
    )


def voting_power_premium(payload: GovernancePayload, amount_in: int, expected_amount_out: int) -> SideTerm:
    return SideTerm(
        bonus=portion_bps(amount_in, payload.voting_power_premium_bps),
        label=f"proposal:{payload.proposal_id}",
    )


def rwa_yield(payload: RealWorldAssetPayload, amount_in: int, expected_amount_out: int) -> SideTerm:
    """
    Simple (non-compounding) yield over the holding period minus the
    redemption fee.

        yield = amount_in * annual_yield_bps * holding_seconds
                // (10_000 * SECONDS_PER_YEAR)
    """
    accrued = (amount_in * payload.annual_yield_bps * payload.holding_seconds) // (
        BPS_DENOMINATOR * SECONDS_PER_YEAR
    )
    redemption_fee = fee_owed_bps(amount_in, payload.redemption_fee_bps)
    return SideTerm(
        bonus=accrued - redemption_fee,
        label=f"rwa:{payload.asset_id}",
    )


SIDE_TERMS: Dict[Type, Callable[..., SideTerm]] = {
    IntentPayload: intent_surplus,
    AccountAbstractionPayload: paymaster_subsidy,
    ModularPayload: sequencer_rebate,
    FragmentationPayload: best_of_fragments,
    GovernancePayload: voting_power_premium,
    RealWorldAssetPayload: rwa_yield,
}


def compute_side_term(
    payload: Optional[StrategyPayload],
    amount_in: int,
    expected_amount_out: int,
) -> SideTerm:
    """Side term for a payload, or NO_SIDE_TERM for plain route kinds."""
    if payload is None:
        return NO_SIDE_TERM
    return SIDE_TERMS[type(payload)](payload, amount_in, expected_amount_out)
