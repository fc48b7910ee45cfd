# PATH: execution/__init__.py
"""
Execution layer.

- state_machine: attempt states and transitions
- journal: compensation journal (rollback / commit)
- balances: journaled engine balance book
- kill_switch: emergency pause
- engine: ArbitrageEngine (import from execution.engine)
- bootstrap: build an engine from config (import from execution.bootstrap)
"""

from execution.balances import BalanceBook
from execution.journal import CompensationJournal
from execution.kill_switch import KillSwitch
from execution.state_machine import (
    VALID_TRANSITIONS,
    AttemptState,
    AttemptStateMachine,
    StateTransition,
)

__all__ = [
    "BalanceBook",
    "CompensationJournal",
    "KillSwitch",
    "AttemptState",
    "AttemptStateMachine",
    "StateTransition",
    "VALID_TRANSITIONS",
]
