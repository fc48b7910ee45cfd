"""
chains/bridges.py - Cross-network bridge interface.

BRIDGE CONTRACT:
================
  estimate_fee(from_network, to_network, asset, amount) -> fee
    - flat_fee + ceil(amount * fee_bps / 10_000)
  confirmation_time
    - declared per network pair, informational only
  transfer(asset, amount, balances, journal) -> amount received
    - moves (asset, from_network) -> (asset, to_network) minus the fee
================
"""

from abc import ABC, abstractmethod
from typing import Dict, Iterable, Iterator, Optional

from core.exceptions import InsufficientBalanceError, VenueError
from core.logging import get_logger
from core.math import fee_owed_bps
from core.models import BridgeInfo
from execution.balances import BalanceBook
from execution.journal import CompensationJournal

logger = get_logger("engine.chains")


class Bridge(ABC):
    """Transport of an asset between two networks."""

    def __init__(
        self,
        bridge_id: str,
        from_network: str,
        to_network: str,
        fee_bps: int = 0,
        flat_fee: int = 0,
        confirmation_time_s: int = 0,
        enabled: bool = True,
    ):
        if from_network == to_network:
            raise ValueError(f"Bridge {bridge_id} must connect two networks")
        self.bridge_id = bridge_id
        self.from_network = from_network
        self.to_network = to_network
        self.fee_bps = fee_bps
        self.flat_fee = flat_fee
        self.confirmation_time_s = confirmation_time_s
        self.enabled = enabled

    @property
    def pair(self) -> tuple[str, str]:
        return (self.from_network, self.to_network)

    @property
    def confirmation_time(self) -> int:
        return self.confirmation_time_s

    def info(self) -> BridgeInfo:
        return BridgeInfo(
            bridge_id=self.bridge_id,
            from_network=self.from_network,
            to_network=self.to_network,
            fee_bps=self.fee_bps,
            flat_fee=self.flat_fee,
            confirmation_time_s=self.confirmation_time_s,
            enabled=self.enabled,
        )

    @abstractmethod
    def estimate_fee(self, from_network: str, to_network: str, asset: str, amount: int) -> int:
        """Fee charged to move amount of asset across this pair."""

    @abstractmethod
    def transfer(
        self,
        asset: str,
        amount: int,
        balances: BalanceBook,
        journal: Optional[CompensationJournal] = None,
    ) -> int:
        """Move funds across the pair, returning the amount delivered."""


class SimulatedBridge(Bridge):
    """In-process bridge that settles instantly."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.collected_fees: Dict[str, int] = {}

    def estimate_fee(self, from_network: str, to_network: str, asset: str, amount: int) -> int:
        if (from_network, to_network) != self.pair:
            raise VenueError(
                f"Bridge {self.bridge_id} serves {self.from_network}->{self.to_network}, "
                f"not {from_network}->{to_network}"
            )
        return self.flat_fee + fee_owed_bps(amount, self.fee_bps)

    def _collect(self, asset: str, delta: int) -> None:
        self.collected_fees[asset] = self.collected_fees.get(asset, 0) + delta

    def transfer(
        self,
        asset: str,
        amount: int,
        balances: BalanceBook,
        journal: Optional[CompensationJournal] = None,
    ) -> int:
        """
        Raises:
            InsufficientBalanceError: If the fee exceeds the amount or the
                source balance cannot cover it
        """
        fee = self.estimate_fee(self.from_network, self.to_network, asset, amount)
        if fee > amount:
            raise InsufficientBalanceError(
                f"Bridge fee {fee} exceeds transfer {amount} {asset}",
                details={"bridge": self.bridge_id, "fee": fee, "amount": amount},
            )
        received = amount - fee

        balances.debit(asset, amount, self.from_network, journal=journal)
        balances.credit(asset, received, self.to_network, journal=journal)
        self._collect(asset, fee)
        if journal is not None:
            journal.record(f"{self.bridge_id} fee {fee} {asset}", lambda: self._collect(asset, -fee))

        logger.debug(
            f"Bridged {asset} {self.from_network}->{self.to_network}",
            extra={
                "context": {
                    "bridge": self.bridge_id,
                    "amount": amount,
                    "fee": fee,
                    "received": received,
                }
            },
        )
        return received


class BridgeRegistry:
    """Bridges keyed by directed (from_network, to_network) pair."""

    def __init__(self, bridges: Iterable[Bridge] = ()):
        self._bridges: dict[tuple[str, str], Bridge] = {}
        for bridge in bridges:
            self.register(bridge)

    def register(self, bridge: Bridge) -> None:
        if bridge.pair in self._bridges:
            raise ValueError(f"Bridge already registered for {bridge.pair[0]}->{bridge.pair[1]}")
        self._bridges[bridge.pair] = bridge
        logger.info(
            f"Registered bridge {bridge.bridge_id}",
            extra={
                "context": {
                    "bridge": bridge.bridge_id,
                    "from_network": bridge.from_network,
                    "to_network": bridge.to_network,
                }
            },
        )

    def get(self, from_network: str, to_network: str) -> Optional[Bridge]:
        return self._bridges.get((from_network, to_network))

    def find(self, from_network: str, to_network: str) -> Optional[Bridge]:
        """Registered and enabled bridge for the pair, if any."""
        bridge = self._bridges.get((from_network, to_network))
        if bridge is None or not bridge.enabled:
            return None
        return bridge

    def set_enabled(self, from_network: str, to_network: str, enabled: bool) -> None:
        bridge = self._bridges.get((from_network, to_network))
        if bridge is None:
            raise KeyError(f"{from_network}->{to_network}")
        bridge.enabled = enabled

    def __iter__(self) -> Iterator[Bridge]:
        return iter(self._bridges.values())

    def __len__(self) -> int:
        return len(self._bridges)
