"""
Constants for the arbitrage execution engine.

Contains enums, defaults, and configuration constants shared by the
dispatcher, calculator, state machine and ledger.
"""

from enum import Enum
from typing import Final


# =============================================================================
# NUMERIC CONSTANTS
# =============================================================================

# Basis point denominator (1 bps = 1 / 10_000)
BPS_DENOMINATOR: Final[int] = 10_000

# Venue fee tiers in bps (0.01%, 0.05%, 0.3%, 1%)
FEE_TIERS_BPS: Final[tuple[int, ...]] = (1, 5, 30, 100)

# Wei per native token (gas price conversion)
WEI_PER_NATIVE: Final[int] = 10**18

SECONDS_PER_YEAR: Final[int] = 365 * 24 * 60 * 60

# Slippage defaults
DEFAULT_MAX_SLIPPAGE_BPS: Final[int] = 50
MAX_ALLOWED_SLIPPAGE_BPS: Final[int] = 5_000

# Request cardinality limits
MIN_ROUTE_TOKENS: Final[int] = 2
MAX_ROUTE_TOKENS: Final[int] = 4

# Capital provider sentinels
SELF_FUNDED: Final[str] = "none"
AUTO_PROVIDER: Final[str] = "auto"


class StrategyKind(str, Enum):
    """Supported arbitrage strategy kinds."""
    SAME_VENUE_SIMPLE = "SAME_VENUE_SIMPLE"
    SAME_VENUE_TRIANGULAR = "SAME_VENUE_TRIANGULAR"
    CROSS_VENUE_SIMPLE = "CROSS_VENUE_SIMPLE"
    CROSS_VENUE_TRIANGULAR = "CROSS_VENUE_TRIANGULAR"
    CROSS_NETWORK_SIMPLE = "CROSS_NETWORK_SIMPLE"
    CROSS_NETWORK_TRIANGULAR = "CROSS_NETWORK_TRIANGULAR"
    INTENT_BASED = "INTENT_BASED"
    ACCOUNT_ABSTRACTION = "ACCOUNT_ABSTRACTION"
    MODULAR = "MODULAR"
    LIQUIDITY_FRAGMENTATION = "LIQUIDITY_FRAGMENTATION"
    GOVERNANCE_TOKEN = "GOVERNANCE_TOKEN"
    REAL_WORLD_ASSET = "REAL_WORLD_ASSET"


class StrategyFamily(str, Enum):
    """Strategy families sharing a leg-sequencing skeleton."""
    SAME_VENUE = "SAME_VENUE"
    CROSS_VENUE = "CROSS_VENUE"
    CROSS_NETWORK = "CROSS_NETWORK"
    SPECIALIZED = "SPECIALIZED"


class PricingModel(str, Enum):
    """Venue pricing models understood by the calculator."""
    CONSTANT_PRODUCT = "CONSTANT_PRODUCT"
    CONCENTRATED_LIQUIDITY = "CONCENTRATED_LIQUIDITY"
    STABLE_SWAP = "STABLE_SWAP"
    WEIGHTED = "WEIGHTED"


class FailureReason(str, Enum):
    """
    Failure reasons for an attempt.

    INVALID_ROUTE, UNSUPPORTED_STRATEGY and UNPROFITABLE are resolved before
    any capital moves. LOAN_FAILED, SLIPPAGE_EXCEEDED and INSUFFICIENT_PROFIT
    are raised inside the atomic unit and always roll it back.
    """
    INVALID_ROUTE = "INVALID_ROUTE"
    UNSUPPORTED_STRATEGY = "UNSUPPORTED_STRATEGY"
    UNPROFITABLE = "UNPROFITABLE"
    LOAN_FAILED = "LOAN_FAILED"
    SLIPPAGE_EXCEEDED = "SLIPPAGE_EXCEEDED"
    INSUFFICIENT_PROFIT = "INSUFFICIENT_PROFIT"
    ENGINE_PAUSED = "ENGINE_PAUSED"
    UNKNOWN = "UNKNOWN"


# Reasons resolved before the capital provider is ever contacted
PRE_CAPITAL_REASONS: Final[frozenset[FailureReason]] = frozenset([
    FailureReason.INVALID_ROUTE,
    FailureReason.UNSUPPORTED_STRATEGY,
    FailureReason.UNPROFITABLE,
    FailureReason.ENGINE_PAUSED,
])


# =============================================================================
# GAS MODEL DEFAULTS
# =============================================================================

# Base gas per strategy kind
STRATEGY_BASE_GAS: Final[dict[StrategyKind, int]] = {
    StrategyKind.SAME_VENUE_SIMPLE: 150_000,
    StrategyKind.SAME_VENUE_TRIANGULAR: 200_000,
    StrategyKind.CROSS_VENUE_SIMPLE: 180_000,
    StrategyKind.CROSS_VENUE_TRIANGULAR: 250_000,
    StrategyKind.CROSS_NETWORK_SIMPLE: 400_000,
    StrategyKind.CROSS_NETWORK_TRIANGULAR: 500_000,
    StrategyKind.INTENT_BASED: 250_000,
    StrategyKind.ACCOUNT_ABSTRACTION: 220_000,
    StrategyKind.MODULAR: 300_000,
    StrategyKind.LIQUIDITY_FRAGMENTATION: 600_000,
    StrategyKind.GOVERNANCE_TOKEN: 300_000,
    StrategyKind.REAL_WORLD_ASSET: 350_000,
}

DEFAULT_GAS_PER_LEG: Final[int] = 120_000
DEFAULT_FLASH_LOAN_GAS: Final[int] = 100_000
DEFAULT_BRIDGE_GAS: Final[int] = 150_000


# Flash loan fees in bps per provider family
PROVIDER_FEE_BPS: Final[dict[str, int]] = {
    "balancer_v2": 0,
    "dodo": 0,
    "aave_v3": 9,
}
