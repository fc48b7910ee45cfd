"""
strategy/route_validator.py - Pre-capital route checks.

VALIDATION ORDER (first failure short-circuits, nothing is cached):
===================================================================
  deadline          now <= request.deadline (0 = no deadline)
  cardinality       tokens / venues / networks fit the kind, guards in range
                    (unset slippage is left to the engine default)
  venues            registered, enabled, on the leg's network
  assets            every token on the allowlist
  continuity        leg[i].token_out == leg[i + 1].token_in, route closes
  pairs             each leg's venue trades token_in -> token_out
  bridges           cross-network: enabled bridge per network change,
                    including the closing hop back to the loan network
  capital_provider  borrowed attempts: provider resolvable on the loan network
===================================================================
"""

import time
from typing import Callable, Optional

from capital.registry import ProviderRegistry
from chains.bridges import BridgeRegistry
from core.constants import MAX_ALLOWED_SLIPPAGE_BPS
from core.exceptions import InvalidRouteError
from core.logging import get_logger
from core.models import ArbitrageRequest, Route, ValidationResult
from dex.registry import AssetAllowlist, VenueRegistry
from strategy.dispatcher import check_cardinality, spec_for

logger = get_logger("engine.strategy")


def closing_hops(route: Route) -> list[tuple[int, str, str]]:
    """
    Network changes the route needs bridged: between consecutive legs and
    from the last leg back to the first leg's (loan) network.
    """
    hops = route.hops()
    if route.legs and route.legs[-1].network != route.legs[0].network:
        hops.append((route.leg_count - 1, route.legs[-1].network, route.legs[0].network))
    return hops


class RouteValidator:
    """Validates a dispatched route against the current registries."""

    CHECKS = (
        "deadline",
        "cardinality",
        "venues",
        "assets",
        "continuity",
        "pairs",
        "bridges",
        "capital_provider",
    )

    def __init__(
        self,
        venues: VenueRegistry,
        allowlist: AssetAllowlist,
        bridges: Optional[BridgeRegistry] = None,
        providers: Optional[ProviderRegistry] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.venues = venues
        self.allowlist = allowlist
        self.bridges = bridges or BridgeRegistry()
        self.providers = providers or ProviderRegistry()
        self.clock = clock

    def validate(self, request: ArbitrageRequest, route: Route) -> ValidationResult:
        for check in self.CHECKS:
            reason = getattr(self, f"_check_{check}")(request, route)
            if reason:
                logger.debug(
                    f"Route rejected at {check}: {reason}",
                    extra={"context": {"request_id": request.request_id, "check": check}},
                )
                return ValidationResult.invalid(check, reason)
        return ValidationResult.ok()

    def validate_or_raise(self, request: ArbitrageRequest, route: Route) -> None:
        """
        Raises:
            InvalidRouteError: With the failing check in details
        """
        result = self.validate(request, route)
        if not result.valid:
            raise InvalidRouteError(result.reason, details={"check": result.check})

    # -------------------------------------------------------------------------
    # checks: return a reason string on failure, None otherwise
    # -------------------------------------------------------------------------

    def _check_deadline(self, request: ArbitrageRequest, route: Route) -> Optional[str]:
        if request.deadline and int(self.clock()) > request.deadline:
            return f"Deadline {request.deadline} has passed"
        return None

    def _check_cardinality(self, request: ArbitrageRequest, route: Route) -> Optional[str]:
        spec = spec_for(request.strategy_kind)
        problem = check_cardinality(request, spec)
        if problem:
            return problem
        if route.leg_count != len(request.tokens):
            return f"Route has {route.leg_count} legs for {len(request.tokens)} tokens"
        if request.amount_in <= 0:
            return "amount_in must be positive"
        slippage = request.max_slippage_bps
        if slippage is not None and not 0 <= slippage <= MAX_ALLOWED_SLIPPAGE_BPS:
            return f"max_slippage_bps out of range: {request.max_slippage_bps}"
        return None

    def _check_venues(self, request: ArbitrageRequest, route: Route) -> Optional[str]:
        for i, leg in enumerate(route.legs):
            venue = self.venues.get(leg.venue)
            if venue is None:
                return f"Venue not registered: {leg.venue} (leg {i})"
            if not venue.enabled:
                return f"Venue disabled: {leg.venue} (leg {i})"
            if leg.network and venue.network and venue.network != leg.network:
                return f"Venue {leg.venue} is on {venue.network}, leg {i} needs {leg.network}"
        return None

    def _check_assets(self, request: ArbitrageRequest, route: Route) -> Optional[str]:
        unlisted = self.allowlist.first_unlisted(request.tokens)
        if unlisted is not None:
            return f"Asset not on allowlist: {unlisted}"
        return None

    def _check_continuity(self, request: ArbitrageRequest, route: Route) -> Optional[str]:
        broken = route.first_break()
        if broken is not None:
            prev, nxt = route.legs[broken], route.legs[broken + 1]
            return (
                f"Leg {broken} outputs {prev.token_out} but leg {broken + 1} "
                f"takes {nxt.token_in}"
            )
        if not route.is_closed:
            return f"Route ends in {route.end_token}, not {route.start_token}"
        return None

    def _check_pairs(self, request: ArbitrageRequest, route: Route) -> Optional[str]:
        for i, leg in enumerate(route.legs):
            if not self.venues.require(leg.venue).supports(leg.token_in, leg.token_out):
                return f"Venue {leg.venue} does not trade {leg.token_in}->{leg.token_out} (leg {i})"
        return None

    def _check_bridges(self, request: ArbitrageRequest, route: Route) -> Optional[str]:
        if not spec_for(request.strategy_kind).is_cross_network:
            return None
        for _, from_network, to_network in closing_hops(route):
            if self.bridges.find(from_network, to_network) is None:
                return f"No bridge registered for {from_network}->{to_network}"
        return None

    def _check_capital_provider(self, request: ArbitrageRequest, route: Route) -> Optional[str]:
        if request.is_self_funded:
            return None
        try:
            self.providers.resolve(
                request.capital_provider,
                request.borrowed_asset,
                request.amount_in,
                route.legs[0].network,
            )
        except InvalidRouteError as e:
            return e.message
        return None
