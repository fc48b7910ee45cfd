"""
dex/adapters/ - Venue adapters.

Adapters:
- base: VenueAdapter contract (quote / swap with guard / snapshot)
- simulated: in-process venues for each pricing model
"""

from dex.adapters.base import VenueAdapter
from dex.adapters.simulated import (
    ConcentratedLiquidityPool,
    ConstantProductPool,
    SimulatedPool,
    SimulatedVenue,
    StableSwapPool,
    VenueSnapshot,
    WeightedPool,
)

__all__ = [
    "VenueAdapter",
    "SimulatedVenue",
    "SimulatedPool",
    "ConstantProductPool",
    "ConcentratedLiquidityPool",
    "StableSwapPool",
    "WeightedPool",
    "VenueSnapshot",
]
