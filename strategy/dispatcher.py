"""
strategy/dispatcher.py - Strategy kind -> route shape.

DISPATCH CONTRACT:
==================
- STRATEGY_SPECS covers every StrategyKind (checked at import).
- build_route() enforces per-kind cardinality and parses the typed
  payload; anything it cannot map raises UnsupportedStrategyError before
  validation or capital movement.
- Routes always close: leg i trades tokens[i] -> tokens[(i + 1) % n],
  so a route has exactly len(tokens) legs.

Cardinality:
  kind                       tokens  venues              networks
  SAME_VENUE_SIMPLE          2       1                   -
  SAME_VENUE_TRIANGULAR      3       1                   -
  CROSS_VENUE_SIMPLE         2       2 (distinct)        -
  CROSS_VENUE_TRIANGULAR     3       3                   -
  CROSS_NETWORK_SIMPLE       2       2                   2 (distinct)
  CROSS_NETWORK_TRIANGULAR   3       3                   3 (>= 2 distinct)
  specialized                2-4     1 or len(tokens)    -
==================
"""

from dataclasses import dataclass
from typing import Optional, Type

from core.constants import StrategyFamily, StrategyKind
from core.exceptions import UnsupportedStrategyError
from core.logging import get_logger
from core.models import ArbitrageRequest, Leg, Route
from dex.registry import VenueRegistry
from strategy.payloads import PAYLOAD_TYPES, StrategyPayload, parse_payload

logger = get_logger("engine.strategy")


@dataclass(frozen=True)
class StrategySpec:
    """Shape of the routes a strategy kind may build."""
    family: StrategyFamily
    token_counts: frozenset[int]
    single_venue: bool
    per_leg_venues: bool
    distinct_venues: bool = False
    min_distinct_networks: int = 0
    payload_type: Optional[Type] = None

    @property
    def is_cross_network(self) -> bool:
        return self.min_distinct_networks > 0

    def venue_count_ok(self, venue_count: int, leg_count: int) -> bool:
        if self.single_venue and venue_count == 1:
            return True
        return self.per_leg_venues and venue_count == leg_count


_SPECIALIZED_TOKENS = frozenset({2, 3, 4})


def _specialized(kind: StrategyKind) -> StrategySpec:
    return StrategySpec(
        family=StrategyFamily.SPECIALIZED,
        token_counts=_SPECIALIZED_TOKENS,
        single_venue=True,
        per_leg_venues=True,
        payload_type=PAYLOAD_TYPES[kind],
    )


STRATEGY_SPECS: dict[StrategyKind, StrategySpec] = {
    StrategyKind.SAME_VENUE_SIMPLE: StrategySpec(
        StrategyFamily.SAME_VENUE, frozenset({2}), single_venue=True, per_leg_venues=False
    ),
    StrategyKind.SAME_VENUE_TRIANGULAR: StrategySpec(
        StrategyFamily.SAME_VENUE, frozenset({3}), single_venue=True, per_leg_venues=False
    ),
    StrategyKind.CROSS_VENUE_SIMPLE: StrategySpec(
        StrategyFamily.CROSS_VENUE, frozenset({2}), single_venue=False, per_leg_venues=True,
        distinct_venues=True,
    ),
    StrategyKind.CROSS_VENUE_TRIANGULAR: StrategySpec(
        StrategyFamily.CROSS_VENUE, frozenset({3}), single_venue=False, per_leg_venues=True
    ),
    StrategyKind.CROSS_NETWORK_SIMPLE: StrategySpec(
        StrategyFamily.CROSS_NETWORK, frozenset({2}), single_venue=False, per_leg_venues=True,
        min_distinct_networks=2,
    ),
    StrategyKind.CROSS_NETWORK_TRIANGULAR: StrategySpec(
        StrategyFamily.CROSS_NETWORK, frozenset({3}), single_venue=False, per_leg_venues=True,
        min_distinct_networks=2,
    ),
    StrategyKind.INTENT_BASED: _specialized(StrategyKind.INTENT_BASED),
    StrategyKind.ACCOUNT_ABSTRACTION: _specialized(StrategyKind.ACCOUNT_ABSTRACTION),
    StrategyKind.MODULAR: _specialized(StrategyKind.MODULAR),
    StrategyKind.LIQUIDITY_FRAGMENTATION: _specialized(StrategyKind.LIQUIDITY_FRAGMENTATION),
    StrategyKind.GOVERNANCE_TOKEN: _specialized(StrategyKind.GOVERNANCE_TOKEN),
    StrategyKind.REAL_WORLD_ASSET: _specialized(StrategyKind.REAL_WORLD_ASSET),
}

_missing = set(StrategyKind) - set(STRATEGY_SPECS)
if _missing:
    raise RuntimeError(f"No strategy spec for: {sorted(k.value for k in _missing)}")


@dataclass(frozen=True)
class StrategyPlan:
    """Dispatcher output for one request."""
    kind: StrategyKind
    spec: StrategySpec
    route: Route
    payload: Optional[StrategyPayload] = None


def spec_for(kind) -> StrategySpec:
    """
    Raises:
        UnsupportedStrategyError: If kind is not a known StrategyKind
    """
    spec = STRATEGY_SPECS.get(kind) if isinstance(kind, StrategyKind) else None
    if spec is None:
        raise UnsupportedStrategyError(
            f"Unknown strategy kind: {kind}",
            details={"strategy_kind": str(kind)},
        )
    return spec


def check_cardinality(request: ArbitrageRequest, spec: StrategySpec) -> Optional[str]:
    """Reason the request's tokens/venues/networks do not fit spec, or None."""
    kind = request.strategy_kind
    tokens, venues, networks = request.tokens, request.venues, request.networks
    leg_count = len(tokens)

    if leg_count not in spec.token_counts:
        allowed = "/".join(str(n) for n in sorted(spec.token_counts))
        return f"{kind.value} needs {allowed} tokens, got {leg_count}"
    if len(set(tokens)) != leg_count:
        return f"{kind.value} tokens must be distinct (closure is implied): {list(tokens)}"
    if not spec.venue_count_ok(len(venues), leg_count):
        expected = []
        if spec.single_venue:
            expected.append("1")
        if spec.per_leg_venues:
            expected.append(str(leg_count))
        return f"{kind.value} needs {' or '.join(expected)} venues, got {len(venues)}"
    if spec.distinct_venues and len(set(venues)) != len(venues):
        return f"{kind.value} needs distinct venues: {list(venues)}"

    if spec.is_cross_network:
        if len(networks) != leg_count:
            return f"{kind.value} needs {leg_count} networks, got {len(networks)}"
        if len(set(networks)) < spec.min_distinct_networks:
            return (
                f"{kind.value} needs at least {spec.min_distinct_networks} distinct networks: "
                f"{list(networks)}"
            )
    elif networks:
        return f"{kind.value} does not take networks, got {list(networks)}"
    return None


class StrategyDispatcher:
    """
    Maps requests onto routes.

    The venue registry, when given, fills each leg's fee_bps.
    """

    def __init__(self, venues: Optional[VenueRegistry] = None):
        self.venues = venues

    def _fee_bps(self, venue_id: str) -> int:
        if self.venues is None:
            return 0
        venue = self.venues.get(venue_id)
        return venue.fee_bps if venue else 0

    def dispatch(self, request: ArbitrageRequest) -> StrategyPlan:
        """
        Build the route and typed payload for a request.

        Raises:
            UnsupportedStrategyError: Unknown kind, bad cardinality or payload
        """
        spec = spec_for(request.strategy_kind)
        kind = request.strategy_kind

        problem = check_cardinality(request, spec)
        if problem:
            raise UnsupportedStrategyError(
                problem,
                details={
                    "strategy_kind": kind.value,
                    "tokens": len(request.tokens),
                    "venues": len(request.venues),
                    "networks": len(request.networks),
                },
            )

        payload = parse_payload(kind, request.strategy_payload)

        tokens = request.tokens
        n = len(tokens)
        legs = []
        for i in range(n):
            venue = request.venues[0] if len(request.venues) == 1 else request.venues[i]
            legs.append(Leg(
                venue=venue,
                token_in=tokens[i],
                token_out=tokens[(i + 1) % n],
                fee_bps=self._fee_bps(venue),
                network=request.networks[i] if request.networks else "",
            ))

        route = Route(legs=tuple(legs))
        logger.debug(
            f"Dispatched {kind.value}",
            extra={
                "context": {
                    "request_id": request.request_id,
                    "strategy_kind": kind.value,
                    "family": spec.family.value,
                    "leg_count": route.leg_count,
                }
            },
        )
        return StrategyPlan(kind=kind, spec=spec, route=route, payload=payload)

    def build_route(self, request: ArbitrageRequest) -> Route:
        return self.dispatch(request).route
