from __future__ import annotations

import unittest

from workflow_timer.models import CompletionStatus, StopReason, TimeSegment
from workflow_timer.tests.test_helpers import UTC, at, make_session
from workflow_timer.timeline import (
    BREAK_LABEL,
    HARD_STOP_LABEL,
    REMOVED_TIME_LABEL,
    SliceKind,
    TimelineBuilder,
    fnv1a_32,
    generate_task_color,
    reconstruct_timeline,
    task_color,
    timeline_window,
)

NOW = at(12)


def build(sessions, group_id="all", threshold_ms=60_000, day_start_hour=0, now=NOW):
    return TimelineBuilder(
        sessions,
        now=now,
        group_id=group_id,
        day_start_hour=day_start_hour,
        threshold_ms=threshold_ms,
        tz=UTC,
    ).build()


def shape(slices):
    return [(item.kind, item.start, item.end) for item in slices]


class TestTimeline(unittest.TestCase):
    def test_break_between_segments_newest_first(self) -> None:
        session = make_session("a", [(at(9), at(9, 30)), (at(9, 40), at(10))], name="보고서")
        slices = reconstruct_timeline([session], now=NOW, tz=UTC)

        self.assertEqual(
            shape(slices),
            [
                (SliceKind.WORK, at(9, 40), at(10)),
                (SliceKind.BREAK, at(9, 30), at(9, 40)),
                (SliceKind.WORK, at(9), at(9, 30)),
            ],
        )
        self.assertEqual(slices[1].label, BREAK_LABEL)
        self.assertEqual(slices[0].label, "보고서")
        self.assertEqual(slices[1].duration, "00:10:00")

    def test_slices_tile_the_window(self) -> None:
        sessions = [
            make_session("a", [(at(9), at(9, 30)), (at(9, 40), at(10))]),
            make_session("b", [(at(10, 5), at(10, 30))]),
        ]
        slices = build(sessions)
        self.assertEqual(slices[0].start, at(9))
        self.assertEqual(slices[-1].end, at(10, 30))
        for before, after in zip(slices, slices[1:]):
            self.assertEqual(before.end, after.start)

    def test_hard_stop_gap_is_a_pause(self) -> None:
        session = make_session(
            "a",
            [TimeSegment(at(9), at(9, 30), stop_reason=StopReason.HARD_STOP), (at(9, 30, 30), at(10))],
        )
        slices = build([session])
        self.assertEqual(slices[1].kind, SliceKind.HARD_STOP)
        self.assertEqual(slices[1].label, HARD_STOP_LABEL)
        self.assertTrue(slices[1].is_hard_stop)
        self.assertEqual(slices[1].duration_ms, 30_000)

    def test_short_gap_is_hidden(self) -> None:
        session = make_session("a", [(at(9), at(9, 30)), (at(9, 30, 30), at(10))])
        slices = build([session])
        self.assertEqual([item.kind for item in slices], [SliceKind.WORK, SliceKind.WORK])

    def test_gap_across_day_start_is_hidden(self) -> None:
        session = make_session("a", [(at(5, 30), at(5, 50)), (at(6, 10), at(7))])
        slices = build([session], day_start_hour=6)
        self.assertEqual([item.kind for item in slices], [SliceKind.WORK, SliceKind.WORK])

    def test_overlap_is_clipped_to_cursor(self) -> None:
        sessions = [
            make_session("a", [(at(9), at(9, 30))]),
            make_session("b", [(at(9, 20), at(9, 50))]),
        ]
        slices = build(sessions)
        self.assertEqual(
            shape(slices),
            [(SliceKind.WORK, at(9), at(9, 30)), (SliceKind.WORK, at(9, 30), at(9, 50))],
        )

    def test_deleted_segment_and_removed_gap(self) -> None:
        session = make_session(
            "a",
            [
                (at(9), at(9, 30)),
                TimeSegment(at(9, 30), at(9, 40), deleted_at=NOW),
                TimeSegment.removed_gap(at(9, 40), at(9, 50), deleted_at=NOW),
                (at(9, 50), at(10)),
            ],
            name="분석",
        )
        slices = build([session])
        self.assertEqual(
            [item.kind for item in slices],
            [SliceKind.WORK, SliceKind.DELETED, SliceKind.REMOVED_GAP, SliceKind.WORK],
        )
        self.assertEqual(slices[1].label, "분석 (삭제됨)")
        self.assertEqual(slices[2].label, REMOVED_TIME_LABEL)
        self.assertEqual(slices[1].segment_index, 1)
        self.assertTrue(slices[2].is_deleted)

    def test_group_filter_interleaves_other_group_work(self) -> None:
        sessions = [
            make_session("a", [(at(9), at(9, 30))], group_id="1"),
            make_session("b", [(at(9, 30), at(9, 50))], group_id="2"),
            make_session("c", [(at(10), at(10, 30))], group_id="1"),
        ]
        slices = build(sessions, group_id="1")
        self.assertEqual(
            shape(slices),
            [
                (SliceKind.WORK, at(9), at(9, 30)),
                (SliceKind.OTHER_GROUP, at(9, 30), at(9, 50)),
                (SliceKind.BREAK, at(9, 50), at(10)),
                (SliceKind.WORK, at(10), at(10, 30)),
            ],
        )
        self.assertEqual(slices[1].label, "b")

    def test_group_with_no_sessions_is_empty(self) -> None:
        sessions = [make_session("a", [(at(9), at(9, 30))], group_id="1")]
        self.assertEqual(build(sessions, group_id="3"), [])
        self.assertEqual(build([]), [])

    def test_ongoing_and_on_hold_flags(self) -> None:
        held = make_session("a", [(at(9), at(9, 30))], completion_status=CompletionStatus.ON_HOLD)
        running = make_session("b", [(at(11), None)], is_active=True)
        slices = reconstruct_timeline([held, running], now=NOW, tz=UTC)
        self.assertTrue(slices[0].is_ongoing)
        self.assertEqual(slices[0].end, NOW)
        self.assertTrue(slices[-1].is_on_hold)
        self.assertFalse(slices[-1].is_ongoing)

    def test_trashed_sessions_are_skipped(self) -> None:
        kept = make_session("a", [(at(9), at(9, 30))])
        trashed = make_session("b", [(at(10), at(10, 30))], deleted_at=NOW)
        slices = build([kept, trashed])
        self.assertEqual(shape(slices), [(SliceKind.WORK, at(9), at(9, 30))])

    def test_window(self) -> None:
        session = make_session("a", [(at(9), at(9, 30)), (at(11), None)])
        self.assertEqual(timeline_window([session], now=NOW), (at(9), NOW))
        self.assertEqual(timeline_window([], now=NOW, fallback_start=at(8)), (at(8), NOW))


class TestTaskColors(unittest.TestCase):
    def test_fnv1a(self) -> None:
        self.assertEqual(fnv1a_32(""), 0x811C9DC5)
        self.assertEqual(fnv1a_32("a"), 0xE40C292C)

    def test_colors_are_stable(self) -> None:
        session = make_session("abc", [(at(9), at(10))], name="작업")
        self.assertEqual(task_color(session), generate_task_color("list-abc작업"))
        self.assertEqual(task_color(session), task_color(session))


if __name__ == "__main__":
    unittest.main()
