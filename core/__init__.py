"""
core - Core utilities and models for the arbitrage engine.

This package contains:
- models.py: Data models (ArbitrageRequest, Route, ExecutionResult, StrategyStats)
- constants.py: Enums and constants
- exceptions.py: Typed exceptions carrying a FailureReason
- math.py: Integer money math (no float)
- logging.py: Structured JSON logging
"""

from core.constants import (
    FailureReason,
    PricingModel,
    StrategyFamily,
    StrategyKind,
)
from core.exceptions import (
    ConfigError,
    EngineError,
    EnginePausedError,
    InsufficientBalanceError,
    InsufficientProfitError,
    InvalidRouteError,
    InvalidTransitionError,
    LoanFailedError,
    SlippageExceededError,
    UnprofitableError,
    UnsupportedStrategyError,
    VenueError,
)
from core.logging import get_logger, setup_logging
from core.models import (
    ArbitrageRequest,
    BridgeInfo,
    CapitalLoan,
    ExecutionResult,
    Leg,
    ProviderInfo,
    Route,
    StrategyStats,
    ValidationResult,
    VenueInfo,
)

__all__ = [
    # Constants
    "FailureReason",
    "PricingModel",
    "StrategyFamily",
    "StrategyKind",
    # Exceptions
    "ConfigError",
    "EngineError",
    "EnginePausedError",
    "InsufficientBalanceError",
    "InsufficientProfitError",
    "InvalidRouteError",
    "InvalidTransitionError",
    "LoanFailedError",
    "SlippageExceededError",
    "UnprofitableError",
    "UnsupportedStrategyError",
    "VenueError",
    # Models
    "ArbitrageRequest",
    "BridgeInfo",
    "CapitalLoan",
    "ExecutionResult",
    "Leg",
    "ProviderInfo",
    "Route",
    "StrategyStats",
    "ValidationResult",
    "VenueInfo",
    # Logging
    "get_logger",
    "setup_logging",
]
