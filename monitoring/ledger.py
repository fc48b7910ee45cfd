"""
monitoring/ledger.py - Per-strategy statistics ledger.

LEDGER CONTRACT:
================
- record() is the only writer and runs under one lock, so concurrent
  attempts never lose updates.
- execution_count grows by exactly 1 per record() call.
- success_count / cumulative_profit change only for succeeded attempts.
- success_rate = cumulative_profit * 10_000 // execution_count
  (average profit per attempt scaled by 10^4, kept from the historical
  definition; see StrategyStats.success_ratio for the fraction).
- Readers get copies, never the live counters.
================
"""

import threading
from dataclasses import replace
from typing import Dict, Optional, Union

from core.constants import StrategyKind
from core.logging import get_logger
from core.models import StrategyStats

logger = get_logger("engine.monitoring")

KindKey = Union[StrategyKind, str]


def _key(kind: KindKey) -> str:
    return kind.value if isinstance(kind, StrategyKind) else str(kind)


class StatisticsLedger:
    """Thread-safe owner of every StrategyStats."""

    def __init__(self):
        self._lock = threading.Lock()
        self._stats: Dict[str, StrategyStats] = {}

    def record(self, kind: KindKey, succeeded: bool, profit: int) -> StrategyStats:
        """
        Record one completed attempt.

        Returns:
            Copy of the updated stats
        """
        key = _key(kind)
        with self._lock:
            stats = self._stats.setdefault(key, StrategyStats())
            stats.execution_count += 1
            if succeeded:
                stats.success_count += 1
                stats.cumulative_profit += profit
            stats.success_rate = stats.cumulative_profit * 10_000 // stats.execution_count
            updated = replace(stats)

        logger.debug(
            f"Ledger updated for {key}",
            extra={
                "context": {
                    "strategy_kind": key,
                    "succeeded": succeeded,
                    "profit": profit,
                    "execution_count": updated.execution_count,
                }
            },
        )
        return updated

    def get(self, kind: KindKey) -> Optional[StrategyStats]:
        with self._lock:
            stats = self._stats.get(_key(kind))
            return replace(stats) if stats else None

    def snapshot(self) -> Dict[str, StrategyStats]:
        with self._lock:
            return {key: replace(stats) for key, stats in self._stats.items()}

    def totals(self) -> StrategyStats:
        """Stats summed over every strategy kind."""
        with self._lock:
            total = StrategyStats()
            for stats in self._stats.values():
                total.execution_count += stats.execution_count
                total.success_count += stats.success_count
                total.cumulative_profit += stats.cumulative_profit
        if total.execution_count:
            total.success_rate = total.cumulative_profit * 10_000 // total.execution_count
        return total
