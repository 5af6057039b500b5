"""Tests for synlog/tally.py"""

import unittest

from synlog.tally import Tally


class TestTally(unittest.TestCase):
    def test_empty(self):
        self.assertEqual(Tally().report(), [])

    def test_ascending_by_count(self):
        tally = Tally()
        for text in ("a", "a", "b"):
            tally.add(text)
        self.assertEqual(tally.items(), [("b", 1), ("a", 2)])
        self.assertEqual(tally.report(), [" 1 b", " 2 a"])

    def test_width_is_one_more_than_largest_count(self):
        tally = Tally()
        for _ in range(12):
            tally.add("busy")
        tally.add("quiet")
        self.assertEqual(tally.report(), ["  1 quiet", " 12 busy"])

    def test_distinct_count(self):
        tally = Tally()
        for text in ("x", "y", "x", "z"):
            tally.add(text)
        self.assertEqual(len(tally), 3)

    def test_multiline_output_counted_whole(self):
        tally = Tally()
        tally.add("extra\nline")
        tally.add("extra\nline")
        self.assertEqual(tally.report(), [" 2 extra\nline"])


if __name__ == "__main__":
    unittest.main()
