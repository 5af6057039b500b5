"""Tests for synlog/correlation.py"""

import unittest

from synlog.correlation import CorrelationBuffer
from synlog.parser import parse_line


def _diag(request_id="GET-1", ts="2024-03-01 10:00:00,000", message="working"):
    return parse_line(f"{ts} - synapse.handlers - 10 - INFO - {request_id} - {message}")


class TestStoreAndRetrieve(unittest.TestCase):
    def test_lines_come_back_in_arrival_order(self):
        buffer = CorrelationBuffer(indent="")
        a = _diag(message="first")
        b = _diag(ts="2024-03-01 10:00:01,000", message="second")
        buffer.store(a)
        buffer.store(b)
        self.assertEqual(buffer.retrieve("GET-1"), a.line + "\n" + b.line)

    def test_second_retrieve_is_empty(self):
        buffer = CorrelationBuffer()
        buffer.store(_diag())
        self.assertTrue(buffer.retrieve("GET-1"))
        self.assertEqual(buffer.retrieve("GET-1"), "")
        self.assertEqual(len(buffer), 0)

    def test_unknown_id_is_empty(self):
        self.assertEqual(CorrelationBuffer().retrieve("GET-404"), "")

    def test_lines_are_indented(self):
        buffer = CorrelationBuffer(indent="  | ")
        record = _diag()
        buffer.store(record)
        self.assertEqual(buffer.retrieve("GET-1"), "  | " + record.line)

    def test_ids_kept_apart(self):
        buffer = CorrelationBuffer(indent="")
        one = _diag(request_id="GET-1", message="one")
        two = _diag(request_id="GET-2", message="two")
        buffer.store(one)
        buffer.store(two)
        self.assertEqual(buffer.retrieve("GET-2"), two.line)
        self.assertEqual(buffer.retrieve("GET-1"), one.line)

    def test_unparseable_timestamp_not_buffered(self):
        buffer = CorrelationBuffer()
        self.assertFalse(buffer.store(_diag(ts="2024-02-31 10:00:00,000")))
        self.assertNotIn("GET-1", buffer)
        self.assertEqual(buffer.retrieve("GET-1"), "")


class TestExpiry(unittest.TestCase):
    def test_stale_entry_evicted_by_later_store(self):
        buffer = CorrelationBuffer(window=600)
        buffer.store(_diag(request_id="GET-1", ts="2024-03-01 10:00:00,000"))
        buffer.store(_diag(request_id="GET-2", ts="2024-03-01 10:10:01,000"))
        self.assertEqual(buffer.retrieve("GET-1"), "")
        self.assertIn("GET-2", buffer)
        self.assertEqual(buffer.expired, 1)

    def test_expiry_boundary_is_inclusive(self):
        buffer = CorrelationBuffer(window=600)
        buffer.store(_diag(request_id="GET-1", ts="2024-03-01 10:00:00,000"))
        buffer.store(_diag(request_id="GET-2", ts="2024-03-01 10:10:00,000"))
        self.assertNotIn("GET-1", buffer)

    def test_within_window_kept(self):
        buffer = CorrelationBuffer(window=600)
        buffer.store(_diag(request_id="GET-1", ts="2024-03-01 10:00:00,000"))
        buffer.store(_diag(request_id="GET-2", ts="2024-03-01 10:09:59,999"))
        self.assertIn("GET-1", buffer)

    def test_touch_refreshes_expiry(self):
        buffer = CorrelationBuffer(window=600)
        buffer.store(_diag(request_id="GET-1", ts="2024-03-01 10:00:00,000"))
        buffer.store(_diag(request_id="GET-2", ts="2024-03-01 10:05:00,000"))
        buffer.store(_diag(request_id="GET-1", ts="2024-03-01 10:08:00,000"))
        # GET-2 is now the oldest; GET-1 was refreshed
        buffer.store(_diag(request_id="GET-3", ts="2024-03-01 10:15:30,000"))
        self.assertNotIn("GET-2", buffer)
        self.assertIn("GET-1", buffer)
        self.assertIn("GET-3", buffer)

    def test_sweep_stops_at_first_live_entry(self):
        buffer = CorrelationBuffer(window=10)
        buffer.store(_diag(request_id="A", ts="2024-03-01 10:00:00,000"))
        buffer.store(_diag(request_id="B", ts="2024-03-01 10:00:05,000"))
        buffer.store(_diag(request_id="C", ts="2024-03-01 10:00:12,000"))
        self.assertNotIn("A", buffer)
        self.assertIn("B", buffer)
        self.assertIn("C", buffer)

    def test_retrieve_ignores_expiry(self):
        buffer = CorrelationBuffer(window=1, indent="")
        record = _diag(ts="2024-03-01 10:00:00,000")
        buffer.store(record)
        # no later store has swept it, so a late completion still claims it
        self.assertEqual(buffer.retrieve("GET-1"), record.line)

    def test_clear_reports_pending(self):
        buffer = CorrelationBuffer()
        buffer.store(_diag(request_id="GET-1"))
        buffer.store(_diag(request_id="GET-2"))
        self.assertEqual(buffer.clear(), 2)
        self.assertEqual(len(buffer), 0)


if __name__ == "__main__":
    unittest.main()
