# PATH: tests/unit/test_ledger.py
"""
Unit tests for the statistics ledger and attempt events.
"""

import threading
import unittest

from core.constants import StrategyKind
from core.models import ExecutionResult
from monitoring.events import AttemptEvent, LoggingEventSink, MemoryEventSink
from monitoring.ledger import StatisticsLedger


class TestStatisticsLedger(unittest.TestCase):
    """Counters, success_rate formula and concurrency."""

    def test_record_success_and_failure(self):
        ledger = StatisticsLedger()
        ledger.record(StrategyKind.SAME_VENUE_SIMPLE, True, 300)
        stats = ledger.record(StrategyKind.SAME_VENUE_SIMPLE, False, 0)
        self.assertEqual(stats.execution_count, 2)
        self.assertEqual(stats.success_count, 1)
        self.assertEqual(stats.cumulative_profit, 300)
        # cumulative_profit * 10_000 // execution_count
        self.assertEqual(stats.success_rate, 1_500_000)

    def test_failed_profit_ignored(self):
        ledger = StatisticsLedger()
        stats = ledger.record(StrategyKind.MODULAR, False, 999)
        self.assertEqual(stats.cumulative_profit, 0)

    def test_kinds_are_separate(self):
        ledger = StatisticsLedger()
        ledger.record(StrategyKind.SAME_VENUE_SIMPLE, True, 1)
        ledger.record("CROSS_VENUE_SIMPLE", True, 2)
        snapshot = ledger.snapshot()
        self.assertEqual(set(snapshot), {"SAME_VENUE_SIMPLE", "CROSS_VENUE_SIMPLE"})
        self.assertEqual(ledger.get(StrategyKind.CROSS_VENUE_SIMPLE).cumulative_profit, 2)
        self.assertIsNone(ledger.get(StrategyKind.MODULAR))

    def test_readers_get_copies(self):
        ledger = StatisticsLedger()
        ledger.record(StrategyKind.SAME_VENUE_SIMPLE, True, 5)
        copy = ledger.get(StrategyKind.SAME_VENUE_SIMPLE)
        copy.execution_count = 100
        self.assertEqual(ledger.get(StrategyKind.SAME_VENUE_SIMPLE).execution_count, 1)

    def test_totals(self):
        ledger = StatisticsLedger()
        ledger.record(StrategyKind.SAME_VENUE_SIMPLE, True, 10)
        ledger.record(StrategyKind.MODULAR, False, 0)
        totals = ledger.totals()
        self.assertEqual(totals.execution_count, 2)
        self.assertEqual(totals.cumulative_profit, 10)
        self.assertEqual(totals.success_rate, 50_000)

    def test_concurrent_records_are_not_lost(self):
        """100 threads x 50 records each."""
        ledger = StatisticsLedger()

        def worker(n):
            for _ in range(50):
                ledger.record(StrategyKind.CROSS_VENUE_SIMPLE, n % 2 == 0, 3)

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(100)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        stats = ledger.get(StrategyKind.CROSS_VENUE_SIMPLE)
        self.assertEqual(stats.execution_count, 5_000)
        self.assertEqual(stats.success_count, 2_500)
        self.assertEqual(stats.cumulative_profit, 7_500)


class TestAttemptEvents(unittest.TestCase):
    """Event payload and sinks."""

    def _result(self):
        return ExecutionResult(
            succeeded=False,
            failure_reason="SLIPPAGE_EXCEEDED",
            attempt_id="att_9",
            strategy_kind="CROSS_VENUE_SIMPLE",
            final_state="ABORTED",
            leg_count=2,
        )

    def test_from_result(self):
        event = AttemptEvent.from_result(self._result())
        self.assertEqual(event.to_dict(), {
            "strategy_kind": "CROSS_VENUE_SIMPLE",
            "succeeded": False,
            "profit": 0,
            "failure_reason": "SLIPPAGE_EXCEEDED",
            "leg_count": 2,
            "attempt_id": "att_9",
            "final_state": "ABORTED",
        })

    def test_memory_sink(self):
        sink = MemoryEventSink()
        sink.emit(AttemptEvent.from_result(self._result()))
        self.assertEqual(len(sink.events), 1)
        sink.clear()
        self.assertEqual(sink.events, [])

    def test_logging_sink_emits_context(self):
        sink = LoggingEventSink("engine.events.test")
        with self.assertLogs("engine.events.test", level="INFO") as captured:
            sink.emit(AttemptEvent.from_result(self._result()))
        record = captured.records[0]
        self.assertEqual(record.getMessage(), "attempt_completed")
        self.assertEqual(record.context["failure_reason"], "SLIPPAGE_EXCEEDED")


if __name__ == "__main__":
    unittest.main()
