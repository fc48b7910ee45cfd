"""
monitoring/events.py - One structured event per attempt.

Event fields: strategy_kind, succeeded, profit, failure_reason,
leg_count, plus attempt_id and final_state.
"""

import threading
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol

from core.logging import get_logger
from core.models import ExecutionResult


@dataclass(frozen=True)
class AttemptEvent:
    strategy_kind: str
    succeeded: bool
    profit: int
    failure_reason: Optional[str]
    leg_count: int
    attempt_id: str = ""
    final_state: str = ""

    @classmethod
    def from_result(cls, result: ExecutionResult) -> "AttemptEvent":
        return cls(
            strategy_kind=result.strategy_kind,
            succeeded=result.succeeded,
            profit=result.profit,
            failure_reason=result.failure_reason,
            leg_count=result.leg_count,
            attempt_id=result.attempt_id,
            final_state=result.final_state,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "strategy_kind": self.strategy_kind,
            "succeeded": self.succeeded,
            "profit": self.profit,
            "failure_reason": self.failure_reason,
            "leg_count": self.leg_count,
            "attempt_id": self.attempt_id,
            "final_state": self.final_state,
        }


class EventSink(Protocol):
    def emit(self, event: AttemptEvent) -> None:
        ...


class LoggingEventSink:
    """Writes events through the structured logger."""

    def __init__(self, logger_name: str = "engine.events"):
        self.logger = get_logger(logger_name)

    def emit(self, event: AttemptEvent) -> None:
        self.logger.info(
            "attempt_completed",
            extra={"context": event.to_dict()},
        )


class MemoryEventSink:
    """Keeps events in memory."""

    def __init__(self):
        self._lock = threading.Lock()
        self._events: List[AttemptEvent] = []

    def emit(self, event: AttemptEvent) -> None:
        with self._lock:
            self._events.append(event)

    @property
    def events(self) -> List[AttemptEvent]:
        with self._lock:
            return list(self._events)

    def clear(self) -> None:
        with self._lock:
            self._events.clear()
