"""
Strategy package: dispatch, validation and profitability.

- dispatcher: StrategyKind -> route shape + typed payload
- route_validator: pre-capital route checks
- profitability: go/no-go simulation
- side_terms / payloads: specialized strategy terms
- config: EngineConfig / GasModel
"""

from strategy.config import EngineConfig, GasModel
from strategy.dispatcher import STRATEGY_SPECS, StrategyDispatcher, StrategyPlan, StrategySpec
from strategy.payloads import parse_payload
from strategy.profitability import ProfitabilityCalculator, ProfitabilityReport
from strategy.route_validator import RouteValidator
from strategy.side_terms import SideTerm, compute_side_term

__all__ = [
    "EngineConfig",
    "GasModel",
    "STRATEGY_SPECS",
    "StrategyDispatcher",
    "StrategyPlan",
    "StrategySpec",
    "parse_payload",
    "ProfitabilityCalculator",
    "ProfitabilityReport",
    "RouteValidator",
    "SideTerm",
    "compute_side_term",
]
