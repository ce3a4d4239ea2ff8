from __future__ import annotations

import unittest

from workflow_timer.focus import allowed_breaks, calculate_focus_index, focus_level

MINUTE = 60_000


class TestFocusIndex(unittest.TestCase):
    def test_ideal_ratio_scores_eighty(self) -> None:
        self.assertEqual(calculate_focus_index(52 * MINUTE, 17 * MINUTE, 1), 80)

    def test_no_time_scores_zero(self) -> None:
        self.assertEqual(calculate_focus_index(0, 0, 0), 0)

    def test_ratio_term_is_capped_at_hundred(self) -> None:
        self.assertEqual(calculate_focus_index(60 * MINUTE, 0, 0), 100)

    def test_better_than_ideal_ratio(self) -> None:
        # 50 / 60 of the time working
        self.assertEqual(calculate_focus_index(50 * MINUTE, 10 * MINUTE, 1), 88)

    def test_excess_breaks_are_penalised(self) -> None:
        # ratio term 79.6, two breaks over the allowance
        self.assertEqual(calculate_focus_index(30 * MINUTE, 10 * MINUTE, 3), 70)

    def test_allowance_grows_with_work_time(self) -> None:
        self.assertEqual(allowed_breaks(54 * MINUTE), 1)
        self.assertEqual(allowed_breaks(55 * MINUTE), 2)
        self.assertEqual(allowed_breaks(110 * MINUTE), 3)

    def test_score_is_floored_at_zero(self) -> None:
        self.assertEqual(calculate_focus_index(1 * MINUTE, 60 * MINUTE, 30), 0)

    def test_more_breaks_never_raise_the_score(self) -> None:
        previous = None
        for count in range(0, 20):
            score = calculate_focus_index(120 * MINUTE, 30 * MINUTE, count)
            if previous is not None:
                self.assertLessEqual(score, previous)
            self.assertGreaterEqual(score, 0)
            self.assertLessEqual(score, 100)
            previous = score


class TestFocusLevel(unittest.TestCase):
    def test_boundaries(self) -> None:
        cases = [(100, "S"), (90, "S"), (89, "A"), (80, "A"), (79, "B"), (60, "B"), (40, "C"), (39, "D"), (0, "D")]
        for score, expected in cases:
            with self.subTest(score=score):
                self.assertEqual(focus_level(score).level, expected)

    def test_labels(self) -> None:
        self.assertEqual(focus_level(95).label, "최고의 몰입")
        self.assertEqual(focus_level(10).label, "휴식 필요")


if __name__ == "__main__":
    unittest.main()
