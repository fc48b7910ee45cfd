"""
Core data models for the arbitrage engine.

REQUEST / ROUTE CONTRACT
========================
- ArbitrageRequest is immutable and lives for one attempt.
- A Route always closes back to tokens[0]: len(legs) == len(tokens).
- Continuity: leg[i].token_out == leg[i + 1].token_in for every i.
- Amounts are ints in the asset's smallest unit; floats are rejected.

RESULT CONTRACT
===============
- profit = amount_out - amount_in - capital_fee - cost (+ side-term bonus
  for the specialized kinds)
- succeeded is True only for SETTLED attempts.
- Every failed result carries a failure_reason.
========================
"""

from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Union

from core.constants import (
    SELF_FUNDED,
    FailureReason,
    PricingModel,
    StrategyKind,
)
from core.math import safe_int, validate_no_float


def _optional_int(value: Any) -> Optional[int]:
    return None if value is None else safe_int(value)


def _coerce_kind(value: Union[StrategyKind, str]) -> Union[StrategyKind, str]:
    """Map a string onto StrategyKind, keeping unknown strings as-is."""
    if isinstance(value, StrategyKind):
        return value
    try:
        return StrategyKind(str(value).upper())
    except ValueError:
        return str(value)


# =============================================================================
# ROUTE
# =============================================================================

@dataclass(frozen=True)
class Leg:
    """One atomic swap within a route."""
    venue: str
    token_in: str
    token_out: str
    fee_bps: int = 0
    network: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "venue": self.venue,
            "token_in": self.token_in,
            "token_out": self.token_out,
            "fee_bps": self.fee_bps,
            "network": self.network,
        }


@dataclass(frozen=True)
class Route:
    """Ordered legs converting the principal back into the start asset."""
    legs: tuple[Leg, ...]

    @property
    def leg_count(self) -> int:
        return len(self.legs)

    @property
    def start_token(self) -> str:
        return self.legs[0].token_in if self.legs else ""

    @property
    def end_token(self) -> str:
        return self.legs[-1].token_out if self.legs else ""

    @property
    def is_closed(self) -> bool:
        return bool(self.legs) and self.start_token == self.end_token

    def is_continuous(self) -> bool:
        """Check leg[i].token_out == leg[i+1].token_in for all adjacent pairs."""
        return all(
            prev.token_out == nxt.token_in
            for prev, nxt in zip(self.legs, self.legs[1:])
        )

    def first_break(self) -> Optional[int]:
        """Index of the first leg whose output does not feed the next leg."""
        for i, (prev, nxt) in enumerate(zip(self.legs, self.legs[1:])):
            if prev.token_out != nxt.token_in:
                return i
        return None

    @property
    def venues(self) -> tuple[str, ...]:
        return tuple(leg.venue for leg in self.legs)

    @property
    def networks(self) -> tuple[str, ...]:
        return tuple(leg.network for leg in self.legs)

    def hops(self) -> List[tuple[int, str, str]]:
        """
        Network changes between consecutive legs.

        Returns:
            (after_leg_index, from_network, to_network) for each change
        """
        changes = []
        for i, (prev, nxt) in enumerate(zip(self.legs, self.legs[1:])):
            if prev.network != nxt.network:
                changes.append((i, prev.network, nxt.network))
        return changes

    def to_dict(self) -> Dict[str, Any]:
        return {"legs": [leg.to_dict() for leg in self.legs]}


# =============================================================================
# REQUEST
# =============================================================================

@dataclass(frozen=True)
class ArbitrageRequest:
    """Immutable input to one execution attempt."""
    strategy_kind: Union[StrategyKind, str]
    tokens: tuple[str, ...]
    venues: tuple[str, ...]
    amount_in: int
    min_profit: int = 0
    # None = the engine's default_max_slippage_bps
    max_slippage_bps: Optional[int] = None
    deadline: int = 0
    networks: tuple[str, ...] = ()
    capital_provider: str = SELF_FUNDED
    strategy_payload: Mapping[str, Any] = field(default_factory=dict, hash=False, compare=False)
    request_id: str = ""

    def __post_init__(self):
        object.__setattr__(self, "strategy_kind", _coerce_kind(self.strategy_kind))
        object.__setattr__(self, "tokens", tuple(self.tokens))
        object.__setattr__(self, "venues", tuple(self.venues))
        object.__setattr__(self, "networks", tuple(self.networks or ()))
        object.__setattr__(self, "strategy_payload", MappingProxyType(dict(self.strategy_payload or {})))

        validate_no_float(self.amount_in, self.min_profit, self.max_slippage_bps, self.deadline)
        if self.amount_in < 0:
            raise ValueError(f"amount_in must be non-negative: {self.amount_in}")
        if self.min_profit < 0:
            raise ValueError(f"min_profit must be non-negative: {self.min_profit}")

    @property
    def is_self_funded(self) -> bool:
        return self.capital_provider == SELF_FUNDED

    @property
    def borrowed_asset(self) -> str:
        return self.tokens[0] if self.tokens else ""

    def with_default_slippage(self, default_bps: int) -> "ArbitrageRequest":
        """Copy with max_slippage_bps filled in when the caller left it unset."""
        if self.max_slippage_bps is not None:
            return self
        return replace(self, max_slippage_bps=default_bps)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ArbitrageRequest":
        """Build a request from a plain dict (YAML / JSON)."""
        return cls(
            strategy_kind=data["strategy_kind"],
            tokens=tuple(data.get("tokens", ())),
            venues=tuple(data.get("venues", ())),
            networks=tuple(data.get("networks", ()) or ()),
            amount_in=safe_int(data.get("amount_in", 0)),
            min_profit=safe_int(data.get("min_profit", 0)),
            max_slippage_bps=_optional_int(data.get("max_slippage_bps")),
            deadline=safe_int(data.get("deadline", 0)),
            capital_provider=str(data.get("capital_provider", SELF_FUNDED)),
            strategy_payload=data.get("strategy_payload") or {},
            request_id=str(data.get("request_id", "")),
        )

    def to_dict(self) -> Dict[str, Any]:
        kind = self.strategy_kind
        return {
            "request_id": self.request_id,
            "strategy_kind": kind.value if isinstance(kind, StrategyKind) else kind,
            "tokens": list(self.tokens),
            "venues": list(self.venues),
            "networks": list(self.networks),
            "amount_in": self.amount_in,
            "min_profit": self.min_profit,
            "max_slippage_bps": self.max_slippage_bps,
            "deadline": self.deadline,
            "capital_provider": self.capital_provider,
            "strategy_payload": dict(self.strategy_payload),
        }


# =============================================================================
# LOAN / RESULT / STATS
# =============================================================================

@dataclass(frozen=True)
class CapitalLoan:
    """Loan that exists only between grant and repayment of one attempt."""
    provider: str
    asset: str
    amount: int
    fee: int
    network: str = ""

    @property
    def amount_owed(self) -> int:
        return self.amount + self.fee


@dataclass
class ExecutionResult:
    """Outcome of one attempt."""
    succeeded: bool
    amount_out: int = 0
    profit: int = 0
    cost: int = 0
    failure_reason: Optional[str] = None
    attempt_id: str = ""
    strategy_kind: str = ""
    final_state: str = ""
    amount_in: int = 0
    capital_fee: int = 0
    leg_count: int = 0
    leg_amounts: List[int] = field(default_factory=list)
    duration_ms: int = 0
    detail: str = ""

    @property
    def is_pre_capital_rejection(self) -> bool:
        return self.failure_reason in (
            FailureReason.INVALID_ROUTE.value,
            FailureReason.UNSUPPORTED_STRATEGY.value,
            FailureReason.UNPROFITABLE.value,
            FailureReason.ENGINE_PAUSED.value,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "attempt_id": self.attempt_id,
            "strategy_kind": self.strategy_kind,
            "succeeded": self.succeeded,
            "final_state": self.final_state,
            "amount_in": self.amount_in,
            "amount_out": self.amount_out,
            "capital_fee": self.capital_fee,
            "cost": self.cost,
            "profit": self.profit,
            "failure_reason": self.failure_reason,
            "leg_count": self.leg_count,
            "leg_amounts": list(self.leg_amounts),
            "duration_ms": self.duration_ms,
            "detail": self.detail,
        }


@dataclass
class StrategyStats:
    """
    Per-strategy counters owned by the StatisticsLedger.

    success_rate keeps the historical formula
    cumulative_profit * 10_000 // execution_count, i.e. an average profit
    per attempt scaled by 10^4, NOT a fraction of successful attempts.
    Use success_ratio for the latter.
    """
    execution_count: int = 0
    success_count: int = 0
    cumulative_profit: int = 0
    success_rate: int = 0

    @property
    def success_ratio(self) -> float:
        if self.execution_count == 0:
            return 0.0
        return self.success_count / self.execution_count

    @property
    def average_profit_per_attempt(self) -> int:
        if self.execution_count == 0:
            return 0
        return self.cumulative_profit // self.execution_count

    def to_dict(self) -> Dict[str, Any]:
        return {
            "execution_count": self.execution_count,
            "success_count": self.success_count,
            "cumulative_profit": self.cumulative_profit,
            "success_rate": self.success_rate,
            "success_ratio": round(self.success_ratio, 4),
        }


# =============================================================================
# REGISTRATION RECORDS
# =============================================================================

@dataclass
class VenueInfo:
    """Venue registration data consumed by the Route Validator."""
    venue_id: str
    pricing_model: PricingModel
    fee_bps: int
    enabled: bool = True
    network: str = ""


@dataclass
class ProviderInfo:
    """Capital provider registration data."""
    provider_id: str
    fee_bps: int
    max_loan_amount: int
    enabled: bool = True
    network: str = ""


@dataclass
class BridgeInfo:
    """Bridge registration for one directed network pair."""
    bridge_id: str
    from_network: str
    to_network: str
    fee_bps: int = 0
    flat_fee: int = 0
    confirmation_time_s: int = 0
    enabled: bool = True

    @property
    def pair(self) -> tuple[str, str]:
        return (self.from_network, self.to_network)


@dataclass(frozen=True)
class ValidationResult:
    """Valid, or Invalid(reason) with the failing check name."""
    valid: bool
    reason: str = ""
    check: str = ""

    @classmethod
    def ok(cls) -> "ValidationResult":
        return cls(valid=True)

    @classmethod
    def invalid(cls, check: str, reason: str) -> "ValidationResult":
        return cls(valid=False, reason=reason, check=check)
