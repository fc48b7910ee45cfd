"""
strategy/payloads.py - Typed payloads for the specialized strategy kinds.

Each specialized kind carries only the fields it uses. parse_payload()
turns the request's opaque mapping into the kind's dataclass; a missing
or malformed field is an UnsupportedStrategyError raised before any
validation or capital movement.
"""

from dataclasses import dataclass, fields
from typing import Any, Mapping, Optional, Type, Union

from core.constants import BPS_DENOMINATOR, StrategyKind
from core.exceptions import UnsupportedStrategyError
from core.math import safe_int


@dataclass(frozen=True)
class IntentPayload:
    """Fill of a user intent: surplus over the reference price is shared."""
    order_hash: str
    offered_amount: int
    reference_amount: int
    surplus_share_bps: int


@dataclass(frozen=True)
class AccountAbstractionPayload:
    """Route bundled as a user operation with a paymaster subsidy."""
    user_op_hash: str
    paymaster_subsidy: int
    bundler_fee: int


@dataclass(frozen=True)
class ModularPayload:
    """Execution on a rollup that settles on another layer."""
    execution_layer: str
    settlement_layer: str
    sequencer_rebate: int
    data_availability_cost: int


@dataclass(frozen=True)
class FragmentationPayload:
    """Competing quotes for the same output from fragmented liquidity."""
    fragment_outputs: tuple[int, ...]


@dataclass(frozen=True)
class GovernancePayload:
    """Voting-power premium captured while holding the governance token."""
    proposal_id: str
    voting_power_premium_bps: int


@dataclass(frozen=True)
class RealWorldAssetPayload:
    """Yield accrued on a tokenized asset held for the route's duration."""
    asset_id: str
    annual_yield_bps: int
    holding_seconds: int
    redemption_fee_bps: int


StrategyPayload = Union[
    IntentPayload,
    AccountAbstractionPayload,
    ModularPayload,
    FragmentationPayload,
    GovernancePayload,
    RealWorldAssetPayload,
]

PAYLOAD_TYPES: dict[StrategyKind, Type] = {
    StrategyKind.INTENT_BASED: IntentPayload,
    StrategyKind.ACCOUNT_ABSTRACTION: AccountAbstractionPayload,
    StrategyKind.MODULAR: ModularPayload,
    StrategyKind.LIQUIDITY_FRAGMENTATION: FragmentationPayload,
    StrategyKind.GOVERNANCE_TOKEN: GovernancePayload,
    StrategyKind.REAL_WORLD_ASSET: RealWorldAssetPayload,
}

# Fields that must lie within [0, 10_000]
_BPS_FIELDS = {
    "surplus_share_bps",
    "voting_power_premium_bps",
    "annual_yield_bps",
    "redemption_fee_bps",
}


def _coerce(name: str, annotation: Any, raw: Any) -> Any:
    if annotation is str:
        return str(raw)
    if annotation == tuple[int, ...]:
        if isinstance(raw, (str, bytes)) or not hasattr(raw, "__iter__"):
            raise TypeError(f"{name} must be a list of amounts")
        return tuple(safe_int(v) for v in raw)
    value = safe_int(raw)
    if name in _BPS_FIELDS and not 0 <= value <= BPS_DENOMINATOR:
        raise ValueError(f"{name} out of range: {value}")
    if value < 0:
        raise ValueError(f"{name} must be non-negative: {value}")
    return value


def parse_payload(kind: StrategyKind, data: Optional[Mapping[str, Any]]) -> Optional[StrategyPayload]:
    """
    Build the typed payload for a specialized kind.

    Args:
        kind: Strategy kind of the request
        data: Raw strategy_payload mapping

    Returns:
        Payload dataclass, or None for kinds without a payload

    Raises:
        UnsupportedStrategyError: Missing or malformed fields
    """
    payload_type = PAYLOAD_TYPES.get(kind)
    if payload_type is None:
        return None

    data = data or {}
    values = {}
    for f in fields(payload_type):
        if f.name not in data:
            raise UnsupportedStrategyError(
                f"{kind.value} payload missing field '{f.name}'",
                details={"strategy_kind": kind.value, "field": f.name},
            )
        try:
            values[f.name] = _coerce(f.name, f.type, data[f.name])
        except (TypeError, ValueError, ArithmeticError) as e:
            raise UnsupportedStrategyError(
                f"{kind.value} payload field '{f.name}' is malformed: {e}",
                details={"strategy_kind": kind.value, "field": f.name},
            ) from e

    payload = payload_type(**values)
    if isinstance(payload, FragmentationPayload) and not payload.fragment_outputs:
        raise UnsupportedStrategyError(
            "LIQUIDITY_FRAGMENTATION payload needs at least one fragment output",
            details={"strategy_kind": kind.value, "field": "fragment_outputs"},
        )
    return payload
