from __future__ import annotations

from datetime import date
import unittest

from workflow_timer.durations import (
    adjusted_date,
    calculate_break_time,
    calculate_total_duration,
    count_breaks,
    find_anomalies,
    format_duration,
    format_duration_hm,
    longest_segment,
)
from workflow_timer.models import StopReason, TimeSegment
from workflow_timer.tests.test_helpers import UTC, at, make_session


class TestFormatting(unittest.TestCase):
    def test_format_duration(self) -> None:
        self.assertEqual(format_duration(3_661_000), "01:01:01")
        self.assertEqual(format_duration(999), "00:00:00")
        self.assertEqual(format_duration(-5_000), "00:00:00")

    def test_format_duration_hm(self) -> None:
        self.assertEqual(format_duration_hm(59_000), "0m")
        self.assertEqual(format_duration_hm(5 * 60_000), "5m")
        self.assertEqual(format_duration_hm(65 * 60_000), "1h 5m")


class TestAdjustedDate(unittest.TestCase):
    def test_late_night_belongs_to_previous_day(self) -> None:
        self.assertEqual(adjusted_date(at(23, 50), 6, UTC), date(2026, 3, 2))
        self.assertEqual(adjusted_date(at(0, 10, day=3), 6, UTC), date(2026, 3, 2))

    def test_day_start_hour_is_the_boundary(self) -> None:
        self.assertEqual(adjusted_date(at(5, 59, 59, day=3), 6, UTC), date(2026, 3, 2))
        self.assertEqual(adjusted_date(at(6, 0, day=3), 6, UTC), date(2026, 3, 3))
        self.assertEqual(adjusted_date(at(0, 10, day=3), 0, UTC), date(2026, 3, 3))


class TestTotalDuration(unittest.TestCase):
    def test_closed_and_open_segments(self) -> None:
        segments = [TimeSegment(at(9), at(9, 30)), TimeSegment(at(10), None)]
        self.assertEqual(calculate_total_duration(segments, now=at(10, 15)), 45 * 60_000)

    def test_deleted_segments_and_markers_are_excluded(self) -> None:
        segments = [
            TimeSegment(at(9), at(9, 30)),
            TimeSegment(at(9, 30), at(9, 40), deleted_at=at(11)),
            TimeSegment.removed_gap(at(9, 40), at(9, 50), deleted_at=at(11)),
        ]
        self.assertEqual(calculate_total_duration(segments, now=at(12)), 30 * 60_000)

    def test_negative_span_clips_to_zero(self) -> None:
        self.assertEqual(calculate_total_duration([TimeSegment(at(10), at(9))], now=at(12)), 0)

    def test_empty(self) -> None:
        self.assertEqual(calculate_total_duration([], now=at(12)), 0)


class TestBreakTime(unittest.TestCase):
    def break_time(self, sessions, threshold_ms: int = 60_000, day_start_hour: int = 0) -> int:
        return calculate_break_time(sessions, at(23), threshold_ms, day_start_hour, UTC)

    def test_gap_inside_one_session(self) -> None:
        session = make_session("a", [(at(9), at(9, 30)), (at(9, 40), at(10))])
        self.assertEqual(self.break_time([session]), 10 * 60_000)

    def test_gap_between_sessions(self) -> None:
        first = make_session("a", [(at(9), at(9, 30))])
        second = make_session("b", [(at(9, 45), at(10))])
        self.assertEqual(self.break_time([second, first]), 15 * 60_000)

    def test_hard_stop_gap_is_not_a_break(self) -> None:
        session = make_session(
            "a",
            [TimeSegment(at(9), at(9, 30), stop_reason=StopReason.HARD_STOP), (at(9, 40), at(10))],
        )
        self.assertEqual(self.break_time([session]), 0)

    def test_threshold_is_inclusive(self) -> None:
        exact = make_session("a", [(at(9), at(9, 30)), (at(9, 31), at(10))])
        short = make_session("b", [(at(9), at(9, 30)), (at(9, 30) + 60_000 + 1, at(10))])
        shorter = make_session("c", [(at(9), at(9, 30)), (at(9, 30) + 59_999, at(10))])
        self.assertEqual(self.break_time([exact]), 60_000)
        self.assertEqual(self.break_time([short]), 60_001)
        self.assertEqual(self.break_time([shorter]), 0)

    def test_overlap_is_not_a_break(self) -> None:
        first = make_session("a", [(at(9), at(9, 30))])
        second = make_session("b", [(at(9, 20), at(10))])
        self.assertEqual(self.break_time([first, second]), 0)

    def test_gap_across_day_boundary_is_ignored(self) -> None:
        session = make_session("a", [(at(5, 30, day=3), at(5, 50, day=3)), (at(6, 10, day=3), at(7, day=3))])
        self.assertEqual(self.break_time([session], day_start_hour=6), 0)

    def test_gap_after_midnight_stays_on_same_adjusted_day(self) -> None:
        session = make_session("a", [(at(23, 30), at(23, 50)), (at(0, 10, day=3), at(1, day=3))])
        self.assertEqual(self.break_time([session], day_start_hour=6), 20 * 60_000)
        self.assertEqual(self.break_time([session], day_start_hour=0), 0)

    def test_deleted_segment_closes_gap(self) -> None:
        session = make_session(
            "a",
            [
                (at(9), at(9, 30)),
                TimeSegment(at(9, 30), at(9, 50), deleted_at=at(12)),
                (at(9, 50), at(10)),
            ],
        )
        self.assertEqual(self.break_time([session]), 0)

    def test_fewer_than_two_segments(self) -> None:
        self.assertEqual(self.break_time([]), 0)
        self.assertEqual(self.break_time([make_session("a", [(at(9), at(10))])]), 0)

    def test_open_segment_ends_at_now(self) -> None:
        session = make_session("a", [(at(9), None)])
        later = make_session("b", [(at(22, 50), at(22, 55))])
        # open segment runs until 23:00, past the later one
        self.assertEqual(self.break_time([session, later]), 0)


class TestCounts(unittest.TestCase):
    def test_count_breaks(self) -> None:
        sessions = [
            make_session("a", [(at(9), at(9, 10)), (at(9, 20), at(9, 30)), (at(9, 40), at(9, 50))]),
            make_session("b", [(at(10), at(11))]),
        ]
        self.assertEqual(count_breaks(sessions), 2)
        self.assertEqual(count_breaks([]), 0)

    def test_longest_segment_skips_deleted(self) -> None:
        session = make_session(
            "a",
            [(at(9), at(9, 10)), TimeSegment(at(10), at(12), deleted_at=at(13)), (at(12), at(12, 40))],
        )
        self.assertEqual(longest_segment([session], now=at(14)), 40 * 60_000)


class TestAnomalies(unittest.TestCase):
    def test_open_segment_before_closed_one(self) -> None:
        session = make_session("a", [(at(9), None), (at(10), at(11))])
        found = find_anomalies([session])
        self.assertEqual([(item.session_id, item.segment_index) for item in found], [("a", 0)])

    def test_well_formed_sessions(self) -> None:
        session = make_session("a", [(at(9), at(9, 30)), (at(10), None)])
        self.assertEqual(find_anomalies([session]), [])


if __name__ == "__main__":
    unittest.main()
