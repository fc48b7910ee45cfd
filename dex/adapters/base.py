"""
dex/adapters/base.py - Uniform venue adapter contract.

VENUE ADAPTER CONTRACT:
=======================
  quote(token_in, token_out, amount_in) -> amount_out
    - no side effects, deterministic for a given venue state
  swap(token_in, token_out, amount_in, min_amount_out) -> amount_out
    - raises SlippageExceededError if amount_out < min_amount_out
      (never clamps, never partially fills)
  snapshot() / restore(snapshot)
    - opaque state handle used by the compensation journal
=======================
"""

import threading
from abc import ABC, abstractmethod
from typing import Any

from core.constants import PricingModel
from core.exceptions import SlippageExceededError
from core.logging import get_logger
from core.models import VenueInfo

logger = get_logger("engine.dex")


class VenueAdapter(ABC):
    """Base class for every venue the engine can trade on."""

    pricing_model: PricingModel

    def __init__(
        self,
        venue_id: str,
        fee_bps: int,
        network: str = "",
        enabled: bool = True,
    ):
        self.venue_id = venue_id
        self.fee_bps = fee_bps
        self.network = network
        self.enabled = enabled
        self._lock = threading.RLock()

    def info(self) -> VenueInfo:
        """Registration record for the validator."""
        return VenueInfo(
            venue_id=self.venue_id,
            pricing_model=self.pricing_model,
            fee_bps=self.fee_bps,
            enabled=self.enabled,
            network=self.network,
        )

    @abstractmethod
    def supports(self, token_in: str, token_out: str) -> bool:
        """Whether the venue can trade token_in for token_out."""

    @abstractmethod
    def quote(self, token_in: str, token_out: str, amount_in: int) -> int:
        """Expected output for an exact input, without side effects."""

    @abstractmethod
    def _execute(self, token_in: str, token_out: str, amount_in: int, min_amount_out: int) -> int:
        """Apply the swap to venue state once the guard has been checked."""

    @abstractmethod
    def snapshot(self) -> Any:
        """Opaque handle of the current venue state."""

    @abstractmethod
    def restore(self, snapshot: Any) -> None:
        """Reset venue state to a previous snapshot."""

    def swap(self, token_in: str, token_out: str, amount_in: int, min_amount_out: int) -> int:
        """
        Execute an exact-input swap with a minimum-output guard.

        Raises:
            SlippageExceededError: If output is below min_amount_out
        """
        with self._lock:
            amount_out = self._execute(token_in, token_out, amount_in, min_amount_out)

        logger.debug(
            f"Swap on {self.venue_id}: {token_in}->{token_out}",
            extra={
                "context": {
                    "venue": self.venue_id,
                    "amount_in": amount_in,
                    "amount_out": amount_out,
                    "min_amount_out": min_amount_out,
                }
            },
        )
        return amount_out

    def _check_guard(self, amount_out: int, min_amount_out: int, token_out: str) -> None:
        if amount_out < min_amount_out:
            raise SlippageExceededError(
                f"{self.venue_id} returned {amount_out} {token_out}, below guard {min_amount_out}",
                details={
                    "venue": self.venue_id,
                    "amount_out": amount_out,
                    "min_amount_out": min_amount_out,
                },
            )
