"""
capital - Borrowed-capital providers.

- providers: CapitalProvider contract, callback protocol, simulated lender
- registry: ProviderRegistry with the "auto" selection policy
"""

from capital.providers import (
    CapitalProvider,
    CapitalReceiver,
    LoanContext,
    SimulatedFlashLender,
)
from capital.registry import ProviderRegistry

__all__ = [
    "CapitalProvider",
    "CapitalReceiver",
    "LoanContext",
    "SimulatedFlashLender",
    "ProviderRegistry",
]
