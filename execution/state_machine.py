# PATH: execution/state_machine.py
"""
Attempt execution state machine.

ATTEMPT STATE CONTRACT:
=======================

States (AttemptState):
  IDLE                 → request received
  VALIDATED            → route passed the validator
  LOAN_PENDING         → capital requested from the provider
  LOAN_RECEIVED        → provider callback fired with the loan
  LEGS_EXECUTING       → legs running; leg_index tracks the current leg
  REPAYMENT_VERIFYING  → checking balance >= amount + fee and min profit
  REPAID               → provider reclaimed amount + fee
  SETTLED              → journal committed, ledger updated
  ABORTED              → everything rolled back

Transitions:
  IDLE                → VALIDATED            (validator passed)
  VALIDATED           → LOAN_PENDING         (borrowed + profitable)
  VALIDATED           → LEGS_EXECUTING       (self-funded + profitable)
  LOAN_PENDING        → LOAN_RECEIVED        (callback fired)
  LOAN_RECEIVED       → LEGS_EXECUTING
  LEGS_EXECUTING      → LEGS_EXECUTING       (next leg, index strictly +1)
  LEGS_EXECUTING      → REPAYMENT_VERIFYING
  REPAYMENT_VERIFYING → REPAID               (borrowed)
  REPAYMENT_VERIFYING → SETTLED              (self-funded)
  REPAID              → SETTLED
  *                   → ABORTED              (any non-terminal state)

=======================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from core.exceptions import InvalidTransitionError


class AttemptState(str, Enum):
    """Attempt execution states."""
    IDLE = "IDLE"
    VALIDATED = "VALIDATED"
    LOAN_PENDING = "LOAN_PENDING"
    LOAN_RECEIVED = "LOAN_RECEIVED"
    LEGS_EXECUTING = "LEGS_EXECUTING"
    REPAYMENT_VERIFYING = "REPAYMENT_VERIFYING"
    REPAID = "REPAID"
    SETTLED = "SETTLED"
    ABORTED = "ABORTED"


# Valid state transitions
VALID_TRANSITIONS: Dict[AttemptState, List[AttemptState]] = {
    AttemptState.IDLE: [AttemptState.VALIDATED, AttemptState.ABORTED],
    AttemptState.VALIDATED: [
        AttemptState.LOAN_PENDING,
        AttemptState.LEGS_EXECUTING,
        AttemptState.ABORTED,
    ],
    AttemptState.LOAN_PENDING: [AttemptState.LOAN_RECEIVED, AttemptState.ABORTED],
    AttemptState.LOAN_RECEIVED: [AttemptState.LEGS_EXECUTING, AttemptState.ABORTED],
    AttemptState.LEGS_EXECUTING: [
        AttemptState.LEGS_EXECUTING,
        AttemptState.REPAYMENT_VERIFYING,
        AttemptState.ABORTED,
    ],
    AttemptState.REPAYMENT_VERIFYING: [
        AttemptState.REPAID,
        AttemptState.SETTLED,
        AttemptState.ABORTED,
    ],
    AttemptState.REPAID: [AttemptState.SETTLED, AttemptState.ABORTED],
    AttemptState.SETTLED: [],  # Terminal state
    AttemptState.ABORTED: [],  # Terminal state
}


@dataclass
class StateTransition:
    """Record of a state transition."""
    from_state: AttemptState
    to_state: AttemptState
    timestamp: str = ""
    reason: str = ""
    leg_index: Optional[int] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if not self.timestamp:
            self.timestamp = datetime.now(timezone.utc).isoformat()


@dataclass
class AttemptStateMachine:
    """
    State machine for one arbitrage attempt.

    Tracks current state, the executing leg and transition history.
    """
    attempt_id: str
    leg_count: int = 0
    state: AttemptState = AttemptState.IDLE
    leg_index: Optional[int] = None
    history: List[StateTransition] = field(default_factory=list)
    abort_reason: Optional[str] = None
    created_at: str = ""

    def __post_init__(self):
        if not self.created_at:
            self.created_at = datetime.now(timezone.utc).isoformat()

    def can_transition_to(self, new_state: AttemptState) -> bool:
        """Check if transition to new_state is valid."""
        valid_next = VALID_TRANSITIONS.get(self.state, [])
        return new_state in valid_next

    def transition_to(
        self,
        new_state: AttemptState,
        reason: str = "",
        metadata: Optional[Dict[str, Any]] = None,
    ) -> StateTransition:
        """
        Transition to a new state.

        Raises InvalidTransitionError if transition is not valid.
        """
        if not self.can_transition_to(new_state):
            raise InvalidTransitionError(
                f"Cannot transition from {self.state.value} to {new_state.value}. "
                f"Valid transitions: {[s.value for s in VALID_TRANSITIONS.get(self.state, [])]}"
            )

        if new_state == AttemptState.LEGS_EXECUTING:
            next_index = 0 if self.state != AttemptState.LEGS_EXECUTING else self.leg_index + 1
            if next_index >= self.leg_count:
                raise InvalidTransitionError(
                    f"Leg {next_index} out of range for {self.leg_count} legs"
                )
            self.leg_index = next_index
        elif new_state == AttemptState.REPAYMENT_VERIFYING:
            if self.leg_index is None or self.leg_index != self.leg_count - 1:
                raise InvalidTransitionError(
                    f"Cannot verify repayment after leg {self.leg_index} of {self.leg_count}"
                )

        transition = StateTransition(
            from_state=self.state,
            to_state=new_state,
            reason=reason,
            leg_index=self.leg_index if new_state == AttemptState.LEGS_EXECUTING else None,
            metadata=metadata or {},
        )

        self.history.append(transition)
        self.state = new_state

        return transition

    def start_leg(self) -> StateTransition:
        """Enter LEGS_EXECUTING for the next leg."""
        return self.transition_to(AttemptState.LEGS_EXECUTING)

    def abort(self, reason: str) -> StateTransition:
        """
        Abort the attempt.

        Always valid from a non-terminal state.
        """
        if self.is_terminal:
            raise InvalidTransitionError(
                f"Cannot abort attempt in terminal state {self.state.value}"
            )
        self.abort_reason = reason
        return self.transition_to(AttemptState.ABORTED, reason=reason)

    @property
    def is_terminal(self) -> bool:
        """Check if current state is terminal."""
        return len(VALID_TRANSITIONS.get(self.state, [])) == 0

    @property
    def is_success(self) -> bool:
        return self.state == AttemptState.SETTLED

    @property
    def reached_validation(self) -> bool:
        """Whether the attempt got past the validator (and is counted)."""
        return any(t.to_state == AttemptState.VALIDATED for t in self.history)

    @property
    def visited(self) -> List[AttemptState]:
        return [t.to_state for t in self.history]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "attempt_id": self.attempt_id,
            "state": self.state.value,
            "leg_count": self.leg_count,
            "leg_index": self.leg_index,
            "is_terminal": self.is_terminal,
            "is_success": self.is_success,
            "abort_reason": self.abort_reason,
            "created_at": self.created_at,
            "history": [
                {
                    "from_state": t.from_state.value,
                    "to_state": t.to_state.value,
                    "timestamp": t.timestamp,
                    "reason": t.reason,
                    "leg_index": t.leg_index,
                    "metadata": t.metadata,
                }
                for t in self.history
            ],
        }
