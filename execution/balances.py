"""
execution/balances.py - Engine balance book.

Balances are keyed by (asset, network); single-network setups use the
empty network "". Every movement made with a journal registers its
inverse, so a rollback restores the book exactly.
"""

import threading
from typing import Dict, Optional

from core.exceptions import InsufficientBalanceError
from core.math import validate_no_float
from execution.journal import CompensationJournal

BalanceKey = tuple[str, str]


class BalanceBook:
    """Integer balances held by the engine."""

    def __init__(self, initial: Optional[Dict[BalanceKey, int]] = None):
        self._lock = threading.RLock()
        self._balances: Dict[BalanceKey, int] = {}
        for (asset, network), amount in (initial or {}).items():
            self._apply(asset, network, amount)

    def balance_of(self, asset: str, network: str = "") -> int:
        with self._lock:
            return self._balances.get((asset, network), 0)

    def _apply(self, asset: str, network: str, delta: int) -> None:
        validate_no_float(delta)
        with self._lock:
            current = self._balances.get((asset, network), 0)
            if current + delta < 0:
                raise InsufficientBalanceError(
                    f"Balance of {asset} on '{network}' is {current}, cannot debit {-delta}",
                    details={"asset": asset, "network": network, "balance": current, "debit": -delta},
                )
            self._balances[(asset, network)] = current + delta

    def credit(
        self,
        asset: str,
        amount: int,
        network: str = "",
        journal: Optional[CompensationJournal] = None,
    ) -> None:
        if amount < 0:
            raise ValueError(f"Credit amount must be non-negative: {amount}")
        self._apply(asset, network, amount)
        if journal is not None:
            journal.record(
                f"credit {amount} {asset}@{network}",
                lambda: self._apply(asset, network, -amount),
            )

    def debit(
        self,
        asset: str,
        amount: int,
        network: str = "",
        journal: Optional[CompensationJournal] = None,
    ) -> None:
        """
        Raises:
            InsufficientBalanceError: If the balance cannot cover amount
        """
        if amount < 0:
            raise ValueError(f"Debit amount must be non-negative: {amount}")
        self._apply(asset, network, -amount)
        if journal is not None:
            journal.record(
                f"debit {amount} {asset}@{network}",
                lambda: self._apply(asset, network, amount),
            )

    def snapshot(self) -> Dict[BalanceKey, int]:
        with self._lock:
            return {key: value for key, value in self._balances.items() if value}
