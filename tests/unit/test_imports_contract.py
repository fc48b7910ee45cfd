# PATH: tests/unit/test_imports_contract.py
"""
Import contract smoke tests.

PURPOSE: Catch ImportError regressions EARLY.
RUN FIRST: python -m pytest tests/unit/test_imports_contract.py -v

CRITICAL CONTRACTS (DO NOT WEAKEN):
- every engine module imports cleanly
- StrategyKind lists all 12 kinds
- PricingModel lists all 4 models
- FailureReason lists every abort class
"""

import importlib
import unittest

MODULES = [
    "core.constants",
    "core.exceptions",
    "core.logging",
    "core.math",
    "core.models",
    "dex.pricing.constant_product",
    "dex.pricing.concentrated",
    "dex.pricing.stable_swap",
    "dex.pricing.weighted",
    "dex.adapters.base",
    "dex.adapters.simulated",
    "dex.registry",
    "capital.providers",
    "capital.registry",
    "chains.bridges",
    "strategy.config",
    "strategy.payloads",
    "strategy.side_terms",
    "strategy.dispatcher",
    "strategy.route_validator",
    "strategy.profitability",
    "execution.balances",
    "execution.journal",
    "execution.state_machine",
    "execution.kill_switch",
    "execution.engine",
    "execution.bootstrap",
    "monitoring.events",
    "monitoring.ledger",
    "config",
    "run_engine",
]


class TestModuleImports(unittest.TestCase):

    def test_all_modules_import(self):
        for name in MODULES:
            with self.subTest(module=name):
                importlib.import_module(name)


class TestCoreConstantsImports(unittest.TestCase):
    """CRITICAL enum contracts."""

    def test_strategy_kinds(self):
        from core.constants import StrategyKind

        self.assertEqual(len(StrategyKind), 12)
        self.assertEqual(StrategyKind.REAL_WORLD_ASSET.value, "REAL_WORLD_ASSET")

    def test_pricing_models(self):
        from core.constants import PricingModel

        self.assertEqual(
            {m.value for m in PricingModel},
            {"CONSTANT_PRODUCT", "CONCENTRATED_LIQUIDITY", "STABLE_SWAP", "WEIGHTED"},
        )

    def test_failure_reasons(self):
        from core.constants import FailureReason

        for name in (
            "INVALID_ROUTE",
            "UNSUPPORTED_STRATEGY",
            "UNPROFITABLE",
            "LOAN_FAILED",
            "SLIPPAGE_EXCEEDED",
            "INSUFFICIENT_PROFIT",
        ):
            self.assertTrue(hasattr(FailureReason, name), name)

    def test_engine_entry_point(self):
        from execution.engine import ArbitrageEngine

        self.assertTrue(callable(getattr(ArbitrageEngine, "attempt_arbitrage")))


if __name__ == "__main__":
    unittest.main()
