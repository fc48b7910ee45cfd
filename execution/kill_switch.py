# PATH: execution/kill_switch.py
"""
Kill switch for the engine.

Emergency stop triggers:
- Manual pause
- Consecutive in-flight failures (loan / slippage / repayment)
- In-flight failure rate over a minimum sample

While active, every attempt is rejected with ENGINE_PAUSED before the
dispatcher runs; nothing is recorded in the ledger.
"""

import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from core.logging import get_logger

logger = get_logger("engine.execution")

MIN_SAMPLE = 10


@dataclass
class KillSwitchTrigger:
    """Kill switch trigger event."""
    timestamp: str
    reason: str
    details: Optional[str] = None


class KillSwitch:
    """
    Kill switch for emergency execution stop.

    Starts released. Thresholds of 0 disable the matching trigger.
    """

    def __init__(
        self,
        max_consecutive_failures: int = 0,
        max_failure_rate_bps: int = 0,
    ):
        self._lock = threading.Lock()
        self._active = False
        self._max_consecutive_failures = max_consecutive_failures
        self._max_failure_rate_bps = max_failure_rate_bps
        self._triggers: List[KillSwitchTrigger] = []
        self._consecutive_failures = 0
        self._failure_count = 0
        self._total_attempts = 0

    @property
    def is_active(self) -> bool:
        """Check if kill switch is triggered."""
        return self._active

    @property
    def can_execute(self) -> bool:
        """Check if execution is allowed."""
        return not self._active

    def _trigger(self, reason: str, details: Optional[str] = None) -> None:
        self._active = True
        self._triggers.append(KillSwitchTrigger(
            timestamp=datetime.now(timezone.utc).isoformat(),
            reason=reason,
            details=details,
        ))
        logger.warning(
            f"Kill switch triggered: {reason}",
            extra={"context": {"reason": reason, "details": details}},
        )

    def record_outcome(self, in_flight_failure: bool) -> None:
        """
        Feed one counted attempt.

        Args:
            in_flight_failure: True for LOAN_FAILED, SLIPPAGE_EXCEEDED or
                INSUFFICIENT_PROFIT outcomes
        """
        with self._lock:
            self._total_attempts += 1
            if in_flight_failure:
                self._failure_count += 1
                self._consecutive_failures += 1
            else:
                self._consecutive_failures = 0

            if self._active:
                return

            if (
                self._max_consecutive_failures
                and self._consecutive_failures >= self._max_consecutive_failures
            ):
                self._trigger(
                    "CONSECUTIVE_FAILURES",
                    f"{self._consecutive_failures} consecutive in-flight failures",
                )
            elif self._max_failure_rate_bps and self._total_attempts >= MIN_SAMPLE:
                rate_bps = self._failure_count * 10_000 // self._total_attempts
                if rate_bps >= self._max_failure_rate_bps:
                    self._trigger(
                        "FAILURE_RATE",
                        f"Failure rate {rate_bps} bps >= {self._max_failure_rate_bps} bps",
                    )

    def manual_trigger(self, reason: str = "MANUAL") -> None:
        """Manually pause the engine."""
        with self._lock:
            self._trigger(reason, "Manually triggered")

    def release(self) -> None:
        """Resume execution and reset the failure counters."""
        with self._lock:
            self._active = False
            self._consecutive_failures = 0
            self._failure_count = 0
            self._total_attempts = 0
        logger.info("Kill switch released")

    def get_status(self) -> Dict[str, Any]:
        return {
            "active": self._active,
            "can_execute": self.can_execute,
            "consecutive_failures": self._consecutive_failures,
            "failure_count": self._failure_count,
            "total_attempts": self._total_attempts,
            "max_consecutive_failures": self._max_consecutive_failures,
            "max_failure_rate_bps": self._max_failure_rate_bps,
            "triggers": [
                {"timestamp": t.timestamp, "reason": t.reason, "details": t.details}
                for t in self._triggers[-5:]  # Last 5 triggers
            ],
        }
