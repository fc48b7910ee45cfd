# PATH: monitoring/__init__.py
"""
Monitoring package: statistics ledger and attempt events.
"""

from monitoring.events import AttemptEvent, EventSink, LoggingEventSink, MemoryEventSink
from monitoring.ledger import StatisticsLedger

__all__ = [
    "AttemptEvent",
    "EventSink",
    "LoggingEventSink",
    "MemoryEventSink",
    "StatisticsLedger",
]
