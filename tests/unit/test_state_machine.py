# PATH: tests/unit/test_state_machine.py
"""
Unit tests for the attempt state machine.
"""

import unittest

from core.exceptions import InvalidTransitionError
from execution.state_machine import AttemptState, AttemptStateMachine


class TestAttemptStateMachine(unittest.TestCase):
    """Transition rules and leg sequencing."""

    def setUp(self):
        self.machine = AttemptStateMachine(attempt_id="att_1", leg_count=2)

    def _borrowed_happy_path(self):
        m = self.machine
        m.transition_to(AttemptState.VALIDATED)
        m.transition_to(AttemptState.LOAN_PENDING)
        m.transition_to(AttemptState.LOAN_RECEIVED)
        m.start_leg()
        m.start_leg()
        m.transition_to(AttemptState.REPAYMENT_VERIFYING)
        m.transition_to(AttemptState.REPAID)
        m.transition_to(AttemptState.SETTLED)

    def test_initial_state(self):
        self.assertEqual(self.machine.state, AttemptState.IDLE)
        self.assertFalse(self.machine.is_terminal)
        self.assertFalse(self.machine.reached_validation)

    def test_borrowed_happy_path(self):
        self._borrowed_happy_path()
        self.assertTrue(self.machine.is_success)
        self.assertTrue(self.machine.is_terminal)
        self.assertEqual(self.machine.visited, [
            AttemptState.VALIDATED,
            AttemptState.LOAN_PENDING,
            AttemptState.LOAN_RECEIVED,
            AttemptState.LEGS_EXECUTING,
            AttemptState.LEGS_EXECUTING,
            AttemptState.REPAYMENT_VERIFYING,
            AttemptState.REPAID,
            AttemptState.SETTLED,
        ])

    def test_self_funded_path(self):
        m = self.machine
        m.transition_to(AttemptState.VALIDATED)
        m.start_leg()
        m.start_leg()
        m.transition_to(AttemptState.REPAYMENT_VERIFYING)
        m.transition_to(AttemptState.SETTLED)
        self.assertTrue(m.is_success)

    def test_leg_index_strictly_increments(self):
        m = self.machine
        m.transition_to(AttemptState.VALIDATED)
        first = m.start_leg()
        second = m.start_leg()
        self.assertEqual(first.leg_index, 0)
        self.assertEqual(second.leg_index, 1)
        with self.assertRaises(InvalidTransitionError):
            m.start_leg()

    def test_repayment_before_last_leg_rejected(self):
        m = self.machine
        m.transition_to(AttemptState.VALIDATED)
        m.start_leg()
        with self.assertRaises(InvalidTransitionError):
            m.transition_to(AttemptState.REPAYMENT_VERIFYING)

    def test_cannot_skip_validation(self):
        with self.assertRaises(InvalidTransitionError):
            self.machine.transition_to(AttemptState.LOAN_PENDING)

    def test_abort_from_any_non_terminal(self):
        m = self.machine
        m.transition_to(AttemptState.VALIDATED)
        m.transition_to(AttemptState.LOAN_PENDING)
        m.abort("LOAN_FAILED")
        self.assertEqual(m.state, AttemptState.ABORTED)
        self.assertEqual(m.abort_reason, "LOAN_FAILED")
        self.assertTrue(m.reached_validation)

    def test_abort_from_idle(self):
        self.machine.abort("INVALID_ROUTE")
        self.assertFalse(self.machine.reached_validation)

    def test_no_abort_after_settle(self):
        self._borrowed_happy_path()
        with self.assertRaises(InvalidTransitionError):
            self.machine.abort("UNKNOWN")

    def test_to_dict(self):
        self.machine.transition_to(AttemptState.VALIDATED)
        data = self.machine.to_dict()
        self.assertEqual(data["state"], "VALIDATED")
        self.assertEqual(data["history"][0]["from_state"], "IDLE")
        self.assertEqual(data["leg_count"], 2)


if __name__ == "__main__":
    unittest.main()
