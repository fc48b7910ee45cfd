# PATH: tests/unit/test_bridges.py
"""
Unit tests for simulated bridges and the bridge registry.
"""

import pytest

from chains.bridges import BridgeRegistry, SimulatedBridge
from core.exceptions import InsufficientBalanceError, VenueError
from execution.balances import BalanceBook
from execution.journal import CompensationJournal


def bridge(**kwargs):
    params = dict(fee_bps=4, flat_fee=10, confirmation_time_s=120)
    params.update(kwargs)
    return SimulatedBridge("across", "arbitrum", "optimism", **params)


class TestSimulatedBridge:

    def test_fee_is_flat_plus_bps_rounded_up(self):
        # 4 bps of 1_001 = 0.4004 -> 1
        assert bridge().estimate_fee("arbitrum", "optimism", "USDC", 1_001) == 11

    def test_wrong_pair(self):
        with pytest.raises(VenueError):
            bridge().estimate_fee("optimism", "arbitrum", "USDC", 1_000)

    def test_same_network_rejected(self):
        with pytest.raises(ValueError):
            SimulatedBridge("loop", "arbitrum", "arbitrum")

    def test_transfer_moves_balance(self):
        b = bridge()
        book = BalanceBook({("USDC", "arbitrum"): 1_000_000})
        received = b.transfer("USDC", 1_000_000, book)
        assert received == 1_000_000 - 410
        assert book.balance_of("USDC", "arbitrum") == 0
        assert book.balance_of("USDC", "optimism") == received
        assert b.collected_fees == {"USDC": 410}

    def test_transfer_rolls_back(self):
        b = bridge()
        book = BalanceBook({("USDC", "arbitrum"): 1_000_000})
        journal = CompensationJournal()
        b.transfer("USDC", 1_000_000, book, journal=journal)
        journal.rollback()
        assert book.snapshot() == {("USDC", "arbitrum"): 1_000_000}
        assert b.collected_fees == {"USDC": 0}

    def test_fee_above_amount(self):
        book = BalanceBook({("USDC", "arbitrum"): 5})
        with pytest.raises(InsufficientBalanceError):
            bridge().transfer("USDC", 5, book)
        assert book.balance_of("USDC", "arbitrum") == 5

    def test_source_balance_missing(self):
        with pytest.raises(InsufficientBalanceError):
            bridge().transfer("USDC", 1_000, BalanceBook())

    def test_info(self):
        info = bridge().info()
        assert info.pair == ("arbitrum", "optimism")
        assert info.confirmation_time_s == 120
        assert bridge().confirmation_time == 120


class TestBridgeRegistry:

    def test_find_is_directional(self):
        registry = BridgeRegistry([bridge()])
        assert registry.find("arbitrum", "optimism") is not None
        assert registry.find("optimism", "arbitrum") is None

    def test_disabled_bridge_not_found(self):
        registry = BridgeRegistry([bridge(enabled=False)])
        assert registry.find("arbitrum", "optimism") is None
        assert registry.get("arbitrum", "optimism") is not None

    def test_set_enabled(self):
        registry = BridgeRegistry([bridge()])
        registry.set_enabled("arbitrum", "optimism", False)
        assert registry.find("arbitrum", "optimism") is None
        with pytest.raises(KeyError):
            registry.set_enabled("base", "optimism", True)

    def test_duplicate_pair(self):
        registry = BridgeRegistry([bridge()])
        with pytest.raises(ValueError):
            registry.register(bridge())
        assert len(registry) == 1
