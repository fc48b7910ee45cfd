"""
dex/registry.py - Venue registry and supported-asset allowlist.

The registry is the only place the engine looks up venues. It owns no
pricing logic: swaps are forwarded to the registered adapter, which
enforces its own minimum-output guard.
"""

from typing import Iterable, Iterator, Optional

from core.exceptions import VenueError
from core.logging import get_logger
from core.models import VenueInfo
from dex.adapters.base import VenueAdapter

logger = get_logger("engine.dex")


class VenueRegistry:
    """Venues keyed by venue_id."""

    def __init__(self, venues: Iterable[VenueAdapter] = ()):
        self._venues: dict[str, VenueAdapter] = {}
        for venue in venues:
            self.register(venue)

    def register(self, venue: VenueAdapter) -> None:
        if venue.venue_id in self._venues:
            raise VenueError(f"Venue already registered: {venue.venue_id}", venue_id=venue.venue_id)
        self._venues[venue.venue_id] = venue
        logger.info(
            f"Registered venue {venue.venue_id}",
            extra={
                "context": {
                    "venue": venue.venue_id,
                    "pricing_model": venue.pricing_model.value,
                    "fee_bps": venue.fee_bps,
                    "network": venue.network,
                }
            },
        )

    def get(self, venue_id: str) -> Optional[VenueAdapter]:
        return self._venues.get(venue_id)

    def require(self, venue_id: str) -> VenueAdapter:
        venue = self._venues.get(venue_id)
        if venue is None:
            raise VenueError(f"Unknown venue: {venue_id}", venue_id=venue_id)
        return venue

    def info(self, venue_id: str) -> Optional[VenueInfo]:
        venue = self._venues.get(venue_id)
        return venue.info() if venue else None

    def is_enabled(self, venue_id: str) -> bool:
        venue = self._venues.get(venue_id)
        return bool(venue and venue.enabled)

    def set_enabled(self, venue_id: str, enabled: bool) -> None:
        """Administrative toggle; takes effect on the next validation."""
        self.require(venue_id).enabled = enabled
        logger.info(
            f"Venue {venue_id} {'enabled' if enabled else 'disabled'}",
            extra={"context": {"venue": venue_id, "enabled": enabled}},
        )

    def swap(
        self,
        venue_id: str,
        token_in: str,
        token_out: str,
        amount_in: int,
        min_amount_out: int,
    ) -> int:
        """Forward an exact-input swap to the venue adapter."""
        return self.require(venue_id).swap(token_in, token_out, amount_in, min_amount_out)

    def quote(self, venue_id: str, token_in: str, token_out: str, amount_in: int) -> int:
        return self.require(venue_id).quote(token_in, token_out, amount_in)

    def __contains__(self, venue_id: str) -> bool:
        return venue_id in self._venues

    def __iter__(self) -> Iterator[VenueAdapter]:
        return iter(self._venues.values())

    def __len__(self) -> int:
        return len(self._venues)


class AssetAllowlist:
    """Set of asset identifiers the engine may route through."""

    def __init__(self, assets: Iterable[str] = ()):
        self._assets: set[str] = set(assets)

    def add(self, asset: str) -> None:
        self._assets.add(asset)

    def remove(self, asset: str) -> None:
        self._assets.discard(asset)

    def is_allowed(self, asset: str) -> bool:
        return asset in self._assets

    def first_unlisted(self, assets: Iterable[str]) -> Optional[str]:
        for asset in assets:
            if asset not in self._assets:
                return asset
        return None

    def __contains__(self, asset: str) -> bool:
        return asset in self._assets

    def __len__(self) -> int:
        return len(self._assets)
