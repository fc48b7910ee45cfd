"""
strategy/profitability.py - Go/no-go simulation of a dispatched route.

PROFITABILITY CONTRACT:
=======================
- Each leg is priced through its venue's side-effect-free quote(), which
  applies the venue's declared pricing model. Leg i's output feeds leg
  i + 1. Fees are deducted from the input before the formula and every
  intermediate result is floored.
- Cross-network hops deduct the bridge fee (rounded up) from the
  in-flight amount, including the closing hop to the loan network.
- capital_fee is the provider's fee (rounded up); 0 when self-funded.
- overhead = gas_units * gas_price_wei * native_price // 10**18
- expected_profit = expected_out - amount_in - capital_fee - overhead + bonus
- is_profitable = expected_profit >= max(request.min_profit, min_global_profit)
  and overhead <= max_accepted_cost and expected_out >= required_amount_out
- evaluate() never mutates venue, provider or bridge state: identical
  route, amount and venue snapshot give an identical report.
=======================
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from capital.registry import ProviderRegistry
from chains.bridges import BridgeRegistry
from core.exceptions import VenueError
from core.logging import get_logger
from core.models import ArbitrageRequest
from dex.registry import VenueRegistry
from strategy.config import EngineConfig
from strategy.dispatcher import StrategyPlan
from strategy.route_validator import closing_hops
from strategy.side_terms import NO_SIDE_TERM, SideTerm, compute_side_term

logger = get_logger("engine.strategy")


@dataclass
class ProfitabilityReport:
    """Simulation outcome for one request."""
    expected_amount_out: int = 0
    estimated_overhead_cost: int = 0
    capital_fee: int = 0
    capital_provider: Optional[str] = None
    gas_units: int = 0
    leg_outputs: List[int] = field(default_factory=list)
    bridge_fees: List[int] = field(default_factory=list)
    side_term: SideTerm = NO_SIDE_TERM
    expected_profit: int = 0
    min_profit: int = 0
    is_profitable: bool = False
    reason: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "expected_amount_out": self.expected_amount_out,
            "estimated_overhead_cost": self.estimated_overhead_cost,
            "capital_fee": self.capital_fee,
            "capital_provider": self.capital_provider,
            "gas_units": self.gas_units,
            "leg_outputs": list(self.leg_outputs),
            "bridge_fees": list(self.bridge_fees),
            "side_term": self.side_term.to_dict(),
            "expected_profit": self.expected_profit,
            "min_profit": self.min_profit,
            "is_profitable": self.is_profitable,
            "reason": self.reason,
        }


class ProfitabilityCalculator:
    """Simulates routes and decides go/no-go before capital is requested."""

    def __init__(
        self,
        venues: VenueRegistry,
        config: Optional[EngineConfig] = None,
        bridges: Optional[BridgeRegistry] = None,
        providers: Optional[ProviderRegistry] = None,
    ):
        self.venues = venues
        self.config = config or EngineConfig()
        self.bridges = bridges or BridgeRegistry()
        self.providers = providers or ProviderRegistry()

    def simulate_route(self, plan: StrategyPlan, amount_in: int) -> tuple[List[int], List[int], int]:
        """
        Carry amount_in through every leg and bridge hop.

        Returns:
            (leg_outputs, bridge_fees, final_amount)

        Raises:
            VenueError: A venue cannot quote a leg or a bridge is missing
        """
        route = plan.route
        hops_after = {after: (src, dst) for after, src, dst in closing_hops(route)}
        leg_outputs: List[int] = []
        bridge_fees: List[int] = []

        amount = amount_in
        for i, leg in enumerate(route.legs):
            amount = self.venues.quote(leg.venue, leg.token_in, leg.token_out, amount)
            leg_outputs.append(amount)

            if i in hops_after:
                src, dst = hops_after[i]
                bridge = self.bridges.find(src, dst)
                if bridge is None:
                    raise VenueError(f"No bridge registered for {src}->{dst}")
                fee = bridge.estimate_fee(src, dst, leg.token_out, amount)
                bridge_fees.append(fee)
                amount = max(0, amount - fee)

        return leg_outputs, bridge_fees, amount

    def evaluate(self, request: ArbitrageRequest, plan: StrategyPlan) -> ProfitabilityReport:
        route = plan.route
        loan_network = route.legs[0].network
        asset = request.borrowed_asset
        borrowed = not request.is_self_funded
        min_profit = self.config.effective_min_profit(request.min_profit)

        report = ProfitabilityReport(min_profit=min_profit)

        if borrowed:
            provider = self.providers.resolve(
                request.capital_provider, asset, request.amount_in, loan_network
            )
            report.capital_provider = provider.provider_id
            report.capital_fee = provider.fee_for(request.amount_in)

        try:
            leg_outputs, bridge_fees, expected_out = self.simulate_route(plan, request.amount_in)
        except VenueError as e:
            report.reason = f"Route cannot be simulated: {e}"
            self._log(request, report)
            return report

        report.leg_outputs = leg_outputs
        report.bridge_fees = bridge_fees
        report.expected_amount_out = expected_out

        gas = self.config.gas_for(loan_network)
        report.gas_units = gas.gas_units(plan.kind, route.leg_count, borrowed, len(bridge_fees))
        report.estimated_overhead_cost = gas.cost_in(asset, report.gas_units)

        report.side_term = compute_side_term(plan.payload, request.amount_in, expected_out)
        report.expected_profit = (
            expected_out
            - request.amount_in
            - report.capital_fee
            - report.estimated_overhead_cost
            + report.side_term.bonus
        )

        max_cost = self.config.max_accepted_cost
        if max_cost is not None and report.estimated_overhead_cost > max_cost:
            report.reason = (
                f"Overhead {report.estimated_overhead_cost} above max accepted cost {max_cost}"
            )
        elif expected_out < report.side_term.required_amount_out:
            report.reason = (
                f"Route output {expected_out} below required "
                f"{report.side_term.required_amount_out} ({report.side_term.label})"
            )
        elif report.expected_profit < min_profit:
            report.reason = f"Expected profit {report.expected_profit} below minimum {min_profit}"
        else:
            report.is_profitable = True

        self._log(request, report)
        return report

    def _log(self, request: ArbitrageRequest, report: ProfitabilityReport) -> None:
        logger.debug(
            "Profitability evaluated",
            extra={
                "context": {
                    "request_id": request.request_id,
                    "expected_amount_out": report.expected_amount_out,
                    "expected_profit": report.expected_profit,
                    "overhead": report.estimated_overhead_cost,
                    "capital_fee": report.capital_fee,
                    "is_profitable": report.is_profitable,
                    "reason": report.reason,
                }
            },
        )
