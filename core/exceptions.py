"""
Typed exceptions for the arbitrage engine.

Pre-capital failures (route, strategy, profitability) and in-flight
failures (loan, slippage, repayment) share one base so the engine can
map any of them onto an ExecutionResult.
"""

from typing import Optional

from core.constants import FailureReason


class EngineError(Exception):
    """Base exception for the engine."""

    def __init__(
        self,
        message: str,
        reason: FailureReason = FailureReason.UNKNOWN,
        details: Optional[dict] = None,
    ):
        super().__init__(message)
        self.message = message
        self.reason = reason
        self.details = details or {}

    def __str__(self):
        return f"[{self.reason.value}] {self.message}"


class InvalidRouteError(EngineError):
    """Route failed continuity, cardinality, allowlist or bridge checks."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message, FailureReason.INVALID_ROUTE, details)


class UnsupportedStrategyError(EngineError):
    """Dispatcher cannot map the request onto a strategy."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message, FailureReason.UNSUPPORTED_STRATEGY, details)


class UnprofitableError(EngineError):
    """Calculator rejected the attempt before capital was requested."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message, FailureReason.UNPROFITABLE, details)


class LoanFailedError(EngineError):
    """Capital provider did not deliver (or could not reclaim) the loan."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message, FailureReason.LOAN_FAILED, details)


class SlippageExceededError(EngineError):
    """A leg returned less than its minimum-output guard."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message, FailureReason.SLIPPAGE_EXCEEDED, details)


class InsufficientProfitError(EngineError):
    """Post-execution balance fails the repayment or profit check."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message, FailureReason.INSUFFICIENT_PROFIT, details)


class EnginePausedError(EngineError):
    """Kill switch is active."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message, FailureReason.ENGINE_PAUSED, details)


class VenueError(Exception):
    """
    Venue-level error (bad pool state or unsupported pair).

    Not a FailureReason on its own: the engine wraps it into the
    reason matching the stage where it happened.
    """

    def __init__(self, message: str, venue_id: str = "", details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.venue_id = venue_id
        self.details = details or {}

    def __str__(self):
        if self.venue_id:
            return f"[{self.venue_id}] {self.message}"
        return self.message


class ConfigError(Exception):
    """Configuration file is missing or malformed."""
    pass


class InvalidTransitionError(Exception):
    """Raised when an invalid state transition is attempted."""
    pass


class InsufficientBalanceError(Exception):
    """Balance book cannot cover a debit."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}
