"""
capital/providers.py - Capital provider (flash loan) interface.

CALLBACK PROTOCOL:
==================
  provider.initiate(asset, amount, receiver, context)
    1. transfer amount of asset into the engine's balance book
    2. call receiver.on_capital_received(asset, amount, fee, context)
       synchronously, exactly once
    3. reclaim amount + fee from the balance book
  A False return, an exception from the callback, or a failed reclaim
  aborts the whole attempt. There is no partial-loan state: every
  transfer is journaled so the attempt's rollback annuls the loan.
==================
"""

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Protocol

from core.exceptions import InsufficientBalanceError, LoanFailedError
from core.logging import get_logger
from core.math import fee_owed_bps
from core.models import CapitalLoan, ProviderInfo
from execution.balances import BalanceBook
from execution.journal import CompensationJournal

logger = get_logger("engine.capital")


@dataclass
class LoanContext:
    """Per-attempt handles a provider needs to move funds."""
    attempt_id: str
    balances: BalanceBook
    journal: CompensationJournal
    network: str = ""
    data: Dict[str, Any] = field(default_factory=dict)


class CapitalReceiver(Protocol):
    """Implemented by the engine."""

    def on_capital_received(self, asset: str, amount: int, fee: int, context: LoanContext) -> bool:
        ...


class CapitalProvider(ABC):
    """Source of uncollateralized capital repaid within one attempt."""

    def __init__(
        self,
        provider_id: str,
        fee_bps: int,
        max_loan_amount: int,
        enabled: bool = True,
        network: str = "",
    ):
        self.provider_id = provider_id
        self.fee_bps = fee_bps
        self.max_loan_amount = max_loan_amount
        self.enabled = enabled
        self.network = network

    def info(self) -> ProviderInfo:
        return ProviderInfo(
            provider_id=self.provider_id,
            fee_bps=self.fee_bps,
            max_loan_amount=self.max_loan_amount,
            enabled=self.enabled,
            network=self.network,
        )

    def fee_for(self, amount: int) -> int:
        """Fee owed on a loan of amount (rounded up)."""
        return fee_owed_bps(amount, self.fee_bps)

    @abstractmethod
    def available_liquidity(self, asset: str) -> int:
        """Amount of asset the provider could lend right now."""

    @abstractmethod
    def initiate(
        self,
        asset: str,
        amount: int,
        receiver: CapitalReceiver,
        context: LoanContext,
    ) -> CapitalLoan:
        """Lend, call back, reclaim. Returns the repaid loan."""


class SimulatedFlashLender(CapitalProvider):
    """
    In-process flash lender holding per-asset liquidity.

    initiate_count counts every call to initiate, including ones that
    later abort.
    """

    def __init__(
        self,
        provider_id: str,
        fee_bps: int,
        max_loan_amount: int,
        liquidity: Optional[Dict[str, int]] = None,
        enabled: bool = True,
        network: str = "",
    ):
        super().__init__(provider_id, fee_bps, max_loan_amount, enabled, network)
        self._liquidity: Dict[str, int] = dict(liquidity or {})
        self._lock = threading.RLock()
        self.initiate_count = 0

    def available_liquidity(self, asset: str) -> int:
        with self._lock:
            return self._liquidity.get(asset, 0)

    def _adjust(self, asset: str, delta: int) -> None:
        with self._lock:
            self._liquidity[asset] = self._liquidity.get(asset, 0) + delta

    def initiate(
        self,
        asset: str,
        amount: int,
        receiver: CapitalReceiver,
        context: LoanContext,
    ) -> CapitalLoan:
        """
        Raises:
            LoanFailedError: Provider disabled, amount above limits,
                callback returned False, or amount + fee not reclaimable
        """
        with self._lock:
            self.initiate_count += 1

        details = {
            "provider": self.provider_id,
            "asset": asset,
            "amount": amount,
            "attempt_id": context.attempt_id,
        }
        if not self.enabled:
            raise LoanFailedError(f"Provider {self.provider_id} is disabled", details=details)
        if amount > self.max_loan_amount:
            raise LoanFailedError(
                f"Loan {amount} exceeds max {self.max_loan_amount} for {self.provider_id}",
                details=details,
            )
        if amount > self.available_liquidity(asset):
            raise LoanFailedError(
                f"Provider {self.provider_id} lacks {asset} liquidity for {amount}",
                details=details,
            )

        fee = self.fee_for(amount)
        network = context.network
        journal = context.journal

        # Lend
        self._adjust(asset, -amount)
        journal.record(f"{self.provider_id} lend {amount} {asset}", lambda: self._adjust(asset, amount))
        context.balances.credit(asset, amount, network, journal=journal)

        logger.debug(
            f"Loan granted by {self.provider_id}",
            extra={"context": {**details, "fee": fee}},
        )

        # Callback
        if not receiver.on_capital_received(asset, amount, fee, context):
            raise LoanFailedError(
                f"Receiver rejected loan from {self.provider_id}",
                details={**details, "fee": fee},
            )

        # Reclaim
        owed = amount + fee
        try:
            context.balances.debit(asset, owed, network, journal=journal)
        except InsufficientBalanceError as e:
            raise LoanFailedError(
                f"Provider {self.provider_id} could not reclaim {owed} {asset}",
                details={**details, "fee": fee, **e.details},
            ) from e
        self._adjust(asset, owed)
        journal.record(f"{self.provider_id} reclaim {owed} {asset}", lambda: self._adjust(asset, -owed))

        return CapitalLoan(
            provider=self.provider_id,
            asset=asset,
            amount=amount,
            fee=fee,
            network=network,
        )
