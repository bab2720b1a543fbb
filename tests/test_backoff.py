"""Tests for the Backoff class."""

import unittest

from restock_monitor.backoff import Backoff


class TestBackoff(unittest.TestCase):
    """Verify exponential backoff produces correct sleep durations."""

    def test_first_attempt_returns_base(self):
        """First retry should sleep approximately the base duration."""
        delay = Backoff(base_seconds=1.0, max_seconds=30.0).delay(1)
        self.assertGreaterEqual(delay, 1.0)
        self.assertLessEqual(delay, 1.1)

    def test_exponential_growth(self):
        backoff = Backoff(base_seconds=0.5, max_seconds=100.0)
        self.assertLess(backoff.delay(1), backoff.delay(2))
        self.assertLess(backoff.delay(2), backoff.delay(3))

    def test_respects_max_seconds(self):
        """Delay should never exceed max_seconds plus 10% jitter."""
        self.assertLessEqual(Backoff(base_seconds=1.0, max_seconds=5.0).delay(20), 5.5)

    def test_iteration_yields_one_delay_per_retry(self):
        self.assertEqual(len(list(Backoff(attempts=4))), 3)
        self.assertEqual(list(Backoff(attempts=1)), [])


if __name__ == "__main__":
    unittest.main()
