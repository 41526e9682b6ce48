"""Tests for ReplyQueue and LatestValue."""
import threading
import time
import unittest

from antsdk.dongle.mailbox import LatestValue, ReplyQueue
from antsdk.errors import DeviceClosedError


class TestReplyQueue(unittest.TestCase):
    """Test correlated waits."""

    def setUp(self):
        self.queue = ReplyQueue()

    def test_take_matching(self):
        self.queue.put(("assign", 0))
        self.assertEqual(self.queue.take(lambda m: m[0] == "assign", 0.1), ("assign", 0))
        self.assertEqual(len(self.queue), 0)

    def test_non_matching_items_stay_queued(self):
        self.queue.put(("period", 0))
        self.queue.put(("assign", 0))
        self.queue.put(("frequency", 0))

        self.assertEqual(self.queue.take(lambda m: m[0] == "assign", 0.1), ("assign", 0))
        self.assertEqual(len(self.queue), 2)
        # Order of the rest is preserved
        self.assertEqual(self.queue.take(lambda m: True, 0), ("period", 0))
        self.assertEqual(self.queue.take(lambda m: True, 0), ("frequency", 0))

    def test_timeout_returns_none(self):
        self.queue.put("other")
        start = time.monotonic()
        self.assertIsNone(self.queue.take(lambda m: m == "wanted", 0.05))
        self.assertGreaterEqual(time.monotonic() - start, 0.04)
        self.assertEqual(len(self.queue), 1)

    def test_zero_timeout_checks_once(self):
        self.assertIsNone(self.queue.take(lambda m: True, 0))
        self.queue.put("x")
        self.assertEqual(self.queue.take(lambda m: True, 0), "x")

    def test_wakes_on_put_from_other_thread(self):
        timer = threading.Timer(0.02, self.queue.put, args=("late",))
        timer.start()
        try:
            self.assertEqual(self.queue.take(lambda m: m == "late", 1.0), "late")
        finally:
            timer.cancel()

    def test_discard(self):
        for item in (1, 2, 3, 4):
            self.queue.put(item)
        self.assertEqual(self.queue.discard(lambda m: m % 2 == 0), [2, 4])
        self.assertEqual(len(self.queue), 2)

    def test_cancel_wakes_waiter(self):
        errors = []

        def waiter():
            try:
                self.queue.take(lambda m: True, 2.0)
            except DeviceClosedError as e:
                errors.append(e)

        thread = threading.Thread(target=waiter)
        thread.start()
        time.sleep(0.02)
        self.queue.cancel(DeviceClosedError("closed"))
        thread.join(timeout=1.0)

        self.assertFalse(thread.is_alive())
        self.assertEqual(len(errors), 1)


class TestLatestValue(unittest.TestCase):
    """Test the last-writer-wins slot."""

    def setUp(self):
        self.slot = LatestValue()

    def test_last_write_wins(self):
        self.slot.set(1)
        self.slot.set(2)
        self.assertEqual(self.slot.take(0), 2)
        self.assertIsNone(self.slot.take(0))

    def test_timeout(self):
        self.assertIsNone(self.slot.take(0.02))

    def test_clear(self):
        self.slot.set(1)
        self.slot.clear()
        self.assertIsNone(self.slot.take(0))

    def test_wakes_on_set(self):
        timer = threading.Timer(0.02, self.slot.set, args=("id",))
        timer.start()
        try:
            self.assertEqual(self.slot.take(1.0), "id")
        finally:
            timer.cancel()

    def test_cancel(self):
        self.slot.cancel(DeviceClosedError("closed"))
        with self.assertRaises(DeviceClosedError):
            self.slot.take(1.0)


if __name__ == '__main__':
    unittest.main()
