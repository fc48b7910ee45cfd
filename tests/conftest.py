# PATH: tests/conftest.py
"""
Pytest configuration and fixtures for engine tests.

The `market` fixture builds a small simulated market (fresh per test):

  alpha (CP, 30 bps)   USDC/DAI-1  1e12 : 1e12
                       USDC/DAI-2  1.01e12 : 1e12   (DAI rich in USDC)
  beta  (CP, 30 bps)   USDC/DAI    1e12 : 1e12
                       DAI/USDT    1e12 : 1e12
  gamma (CP, 30 bps)   USDT/USDC   1e12 : 1.01e12
  flat  (CP, 30 bps)   USDC/DAI    1e12 : 1e12
  arb_dex  (CP, 30 bps, arbitrum)   USDC/DAI 1e12 : 1e12
  op_dex   (CP, 30 bps, optimism)   USDC/DAI 1.01e12 : 1e12
  bridges  arbitrum <-> optimism, 1 bps

  providers: balancer_v2 (0 bps), aave_v3 (9 bps)

Same-venue USDC -> DAI -> USDC on alpha buys DAI in pool 1 and sells it in
pool 2 (~+0.4% before fees); on flat the round trip loses ~0.6%.
"""

import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from capital.providers import SimulatedFlashLender  # noqa: E402
from capital.registry import ProviderRegistry  # noqa: E402
from chains.bridges import BridgeRegistry, SimulatedBridge  # noqa: E402
from core.constants import PricingModel, StrategyKind  # noqa: E402
from core.models import ArbitrageRequest  # noqa: E402
from dex.adapters.simulated import ConstantProductPool, SimulatedVenue  # noqa: E402
from dex.registry import AssetAllowlist, VenueRegistry  # noqa: E402
from execution.balances import BalanceBook  # noqa: E402
from execution.engine import ArbitrageEngine  # noqa: E402
from monitoring.events import MemoryEventSink  # noqa: E402
from strategy.config import EngineConfig  # noqa: E402

T12 = 10**12
ASSETS = ("USDC", "DAI", "USDT")


def pytest_configure(config):
    """Configure pytest."""
    # Add custom markers
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )


def cp_venue(venue_id: str, pools: list, network: str = "", fee_bps: int = 30) -> SimulatedVenue:
    venue = SimulatedVenue(venue_id, PricingModel.CONSTANT_PRODUCT, fee_bps=fee_bps, network=network)
    for pool in pools:
        venue.add_pool(pool)
    return venue


@dataclass
class Market:
    venues: VenueRegistry
    allowlist: AssetAllowlist
    providers: ProviderRegistry
    bridges: BridgeRegistry
    events: MemoryEventSink = field(default_factory=MemoryEventSink)

    def venue(self, venue_id: str) -> SimulatedVenue:
        return self.venues.require(venue_id)

    def provider(self, provider_id: str) -> SimulatedFlashLender:
        return self.providers.get(provider_id)

    def engine(
        self,
        config: Optional[EngineConfig] = None,
        bridges: Optional[BridgeRegistry] = None,
        balances: Optional[BalanceBook] = None,
        **kwargs,
    ) -> ArbitrageEngine:
        return ArbitrageEngine(
            venues=self.venues,
            allowlist=self.allowlist,
            providers=self.providers,
            bridges=bridges if bridges is not None else self.bridges,
            config=config or EngineConfig(),
            balances=balances,
            event_sink=self.events,
            **kwargs,
        )

    @staticmethod
    def request(**overrides) -> ArbitrageRequest:
        return make_request(**overrides)

    def pool_states(self) -> dict:
        return {
            venue.venue_id: {pool.pool_key: pool.state for pool in venue.pools}
            for venue in self.venues
        }


def build_market() -> Market:
    venues = VenueRegistry([
        cp_venue("alpha", [
            ConstantProductPool("USDC", "DAI", T12, T12, pool_id="USDC/DAI-1"),
            ConstantProductPool("USDC", "DAI", 101 * T12 // 100, T12, pool_id="USDC/DAI-2"),
        ]),
        cp_venue("beta", [
            ConstantProductPool("USDC", "DAI", T12, T12),
            ConstantProductPool("DAI", "USDT", T12, T12),
        ]),
        cp_venue("gamma", [
            ConstantProductPool("USDT", "USDC", T12, 101 * T12 // 100),
        ]),
        cp_venue("flat", [
            ConstantProductPool("USDC", "DAI", T12, T12),
        ]),
        cp_venue("arb_dex", [ConstantProductPool("USDC", "DAI", T12, T12)], network="arbitrum"),
        cp_venue("op_dex", [ConstantProductPool("USDC", "DAI", 101 * T12 // 100, T12)], network="optimism"),
    ])
    providers = ProviderRegistry([
        SimulatedFlashLender("balancer_v2", fee_bps=0, max_loan_amount=10 * T12,
                             liquidity={"USDC": 10 * T12, "DAI": 10 * T12}),
        SimulatedFlashLender("aave_v3", fee_bps=9, max_loan_amount=10 * T12,
                             liquidity={"USDC": 50 * T12, "DAI": 50 * T12}),
    ])
    bridges = BridgeRegistry([
        SimulatedBridge("bridge_arb_op", "arbitrum", "optimism", fee_bps=1, confirmation_time_s=60),
        SimulatedBridge("bridge_op_arb", "optimism", "arbitrum", fee_bps=1, confirmation_time_s=60),
    ])
    return Market(
        venues=venues,
        allowlist=AssetAllowlist(ASSETS),
        providers=providers,
        bridges=bridges,
    )


@pytest.fixture
def market() -> Market:
    return build_market()


def make_request(**overrides) -> ArbitrageRequest:
    """Profitable same-venue simple request on alpha, borrowed from aave_v3."""
    data = dict(
        strategy_kind=StrategyKind.SAME_VENUE_SIMPLE,
        tokens=("USDC", "DAI"),
        venues=("alpha",),
        amount_in=1_000_000,
        min_profit=0,
        max_slippage_bps=50,
        capital_provider="aave_v3",
    )
    data.update(overrides)
    return ArbitrageRequest(**data)
