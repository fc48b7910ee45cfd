# PATH: tests/unit/test_kill_switch.py
"""
Unit tests for the kill switch.
"""

import unittest

from execution.kill_switch import MIN_SAMPLE, KillSwitch


class TestKillSwitch(unittest.TestCase):

    def test_starts_released(self):
        ks = KillSwitch()
        self.assertFalse(ks.is_active)
        self.assertTrue(ks.can_execute)

    def test_consecutive_failures_trigger(self):
        ks = KillSwitch(max_consecutive_failures=3)
        ks.record_outcome(True)
        ks.record_outcome(True)
        self.assertFalse(ks.is_active)
        ks.record_outcome(True)
        self.assertTrue(ks.is_active)
        self.assertEqual(ks.get_status()["triggers"][-1]["reason"], "CONSECUTIVE_FAILURES")

    def test_success_resets_streak(self):
        ks = KillSwitch(max_consecutive_failures=2)
        ks.record_outcome(True)
        ks.record_outcome(False)
        ks.record_outcome(True)
        self.assertFalse(ks.is_active)

    def test_failure_rate_needs_minimum_sample(self):
        ks = KillSwitch(max_failure_rate_bps=5_000)
        for _ in range(MIN_SAMPLE - 1):
            ks.record_outcome(True)
        self.assertFalse(ks.is_active)
        ks.record_outcome(False)
        self.assertTrue(ks.is_active)
        self.assertEqual(ks.get_status()["triggers"][-1]["reason"], "FAILURE_RATE")

    def test_zero_thresholds_never_trigger(self):
        ks = KillSwitch()
        for _ in range(50):
            ks.record_outcome(True)
        self.assertFalse(ks.is_active)

    def test_manual_trigger_and_release(self):
        ks = KillSwitch(max_consecutive_failures=5)
        ks.manual_trigger("MAINTENANCE")
        self.assertFalse(ks.can_execute)
        ks.release()
        self.assertTrue(ks.can_execute)
        self.assertEqual(ks.get_status()["total_attempts"], 0)


if __name__ == "__main__":
    unittest.main()
