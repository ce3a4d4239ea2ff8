"""Chronological ledger of work, break, pause, deleted and other-group slices.

``TimelineBuilder`` walks the segments of the selected sessions in start
order while keeping a cursor: everything before the cursor is accounted for.
A hole between the cursor and the next segment becomes a break (or a pause
after a hard stop); when a group filter is active the hole is first carved
up by the work other groups did during it.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import tzinfo
from enum import Enum
from typing import Iterable, Sequence

from .durations import DEFAULT_BREAK_THRESHOLD_MS, DEFAULT_DAY_START_HOUR, adjusted_date, format_duration
from .models import Session, StopReason, TimeSegment

ALL_GROUPS = "all"

BREAK_LABEL = "휴식"
HARD_STOP_LABEL = "일시정지"
REMOVED_TIME_LABEL = "제거된 시간"
DELETED_SUFFIX = " (삭제됨)"

BREAK_COLOR = "#a7f3d0"
HARD_STOP_COLOR = "#cbd5e1"
DELETED_COLOR = "#f1f5f9"
OTHER_GROUP_COLOR = "#e2e8f0"

# Greens and grays are reserved for breaks, pauses and other-group work.
TASK_PALETTE: tuple[str, ...] = (
    "#ef4444",
    "#f97316",
    "#f59e0b",
    "#06b6d4",
    "#0ea5e9",
    "#3b82f6",
    "#6366f1",
    "#8b5cf6",
    "#d946ef",
    "#ec4899",
    "#f43f5e",
)

_FNV_OFFSET = 0x811C9DC5
_FNV_PRIME = 0x01000193


def fnv1a_32(text: str) -> int:
    value = _FNV_OFFSET
    for byte in text.encode("utf-8"):
        value ^= byte
        value = (value * _FNV_PRIME) & 0xFFFFFFFF
    return value


def generate_task_color(key: str) -> str:
    return TASK_PALETTE[fnv1a_32(key) % len(TASK_PALETTE)]


def task_color(session: Session, namespace: str = "list") -> str:
    return generate_task_color(f"{namespace}-{session.id}{session.name}")


class SliceKind(str, Enum):
    WORK = "work"
    BREAK = "break"
    HARD_STOP = "hard-stop"
    DELETED = "deleted"
    REMOVED_GAP = "removed-gap"
    OTHER_GROUP = "other-group"


@dataclass(frozen=True)
class TimelineSlice:
    kind: SliceKind
    label: str
    start: int
    end: int
    fill_color: str
    is_on_hold: bool = False
    is_ongoing: bool = False
    session_id: str | None = None
    segment_index: int | None = None

    @property
    def duration_ms(self) -> int:
        return self.end - self.start

    @property
    def duration(self) -> str:
        return format_duration(self.duration_ms)

    @property
    def is_break(self) -> bool:
        return self.kind is SliceKind.BREAK

    @property
    def is_hard_stop(self) -> bool:
        return self.kind is SliceKind.HARD_STOP

    @property
    def is_deleted(self) -> bool:
        return self.kind in (SliceKind.DELETED, SliceKind.REMOVED_GAP)

    @property
    def is_other_group(self) -> bool:
        return self.kind is SliceKind.OTHER_GROUP

    def to_dict(self) -> dict[str, object]:
        return {
            "kind": self.kind.value,
            "label": self.label,
            "start": self.start,
            "end": self.end,
            "duration_ms": self.duration_ms,
            "duration": self.duration,
            "fill_color": self.fill_color,
            "is_break": self.is_break,
            "is_hard_stop": self.is_hard_stop,
            "is_deleted": self.is_deleted,
            "is_on_hold": self.is_on_hold,
            "is_ongoing": self.is_ongoing,
            "is_other_group": self.is_other_group,
            "session_id": self.session_id,
            "segment_index": self.segment_index,
        }


@dataclass(frozen=True)
class _Item:
    start: int
    end: int
    session: Session
    segment_index: int
    stop_reason: StopReason | None
    is_deleted: bool
    is_deleted_gap: bool
    was_open: bool


def is_group_filter(group_id: str | None) -> bool:
    return bool(group_id) and group_id != ALL_GROUPS


def filter_sessions_by_group(sessions: Iterable[Session], group_id: str | None) -> list[Session]:
    if not is_group_filter(group_id):
        return list(sessions)
    return [session for session in sessions if session.group_id == group_id]


def timeline_window(
    sessions: Sequence[Session],
    now: int,
    fallback_start: int | None = None,
    fallback_end: int | None = None,
) -> tuple[int, int]:
    """Earliest segment start to latest segment end (open segments end at ``now``)."""
    starts = [seg.start for session in sessions for seg in session.segments]
    ends = [seg.end_or(now) for session in sessions for seg in session.segments]
    start = min(starts) if starts else (fallback_start if fallback_start is not None else now)
    end = max(ends) if ends else (fallback_end if fallback_end is not None else now)
    return start, max(start, end)


class TimelineBuilder:
    def __init__(
        self,
        sessions: Sequence[Session],
        now: int,
        group_id: str | None = ALL_GROUPS,
        window: tuple[int, int] | None = None,
        day_start_hour: int = DEFAULT_DAY_START_HOUR,
        threshold_ms: int = DEFAULT_BREAK_THRESHOLD_MS,
        tz: tzinfo | None = None,
    ) -> None:
        self.sessions = [session for session in sessions if not session.is_trashed]
        self.now = now
        self.group_id = group_id if is_group_filter(group_id) else ALL_GROUPS
        self.window = window or timeline_window(self.sessions, now)
        self.day_start_hour = day_start_hour
        self.threshold_ms = threshold_ms
        self.tz = tz

        self._slices: list[TimelineSlice] = []
        self._cursor = self.window[0]
        self._last_end = self.window[0]
        self._last_stop_reason: StopReason | None = None
        self._last_session_id: str | None = None

    def build(self) -> list[TimelineSlice]:
        """Slices in ascending time order."""
        selected = filter_sessions_by_group(self.sessions, self.group_id)
        if not selected:
            return []

        self._slices = []
        self._cursor = self.window[0]
        self._last_end = self.window[0]
        self._last_stop_reason = None
        self._last_session_id = None

        for item in self._items(selected):
            if item.start > self._cursor:
                self._fill_gap(self._cursor, item.start)
            self._emit_item(item)
            self._cursor = max(self._cursor, item.end)
            self._last_end = item.end
            self._last_stop_reason = item.stop_reason
            self._last_session_id = item.session.id

        window_end = self.window[1]
        if self._cursor < window_end:
            self._fill_gap(self._cursor, window_end)
        return list(self._slices)

    def _clip(self, start: int, end: int | None, lower: int, upper: int) -> tuple[int, int]:
        clipped_end = min(self.now if end is None else end, upper)
        return max(start, lower), clipped_end

    def _items(self, selected: Sequence[Session]) -> list[_Item]:
        window_start, window_end = self.window
        items: list[_Item] = []
        for session in selected:
            for idx, seg in enumerate(session.segments):
                start, end = self._clip(seg.start, seg.end, window_start, window_end)
                if end <= start:
                    continue
                items.append(
                    _Item(
                        start=start,
                        end=end,
                        session=session,
                        segment_index=idx,
                        stop_reason=seg.stop_reason,
                        is_deleted=seg.is_deleted,
                        is_deleted_gap=seg.is_deleted_gap,
                        was_open=seg.is_open,
                    )
                )
        items.sort(key=lambda item: item.start)
        return items

    def _emit_item(self, item: _Item) -> None:
        # Overlapping work only adds the part past the cursor.
        start = max(item.start, self._cursor)
        if item.end <= start:
            return
        session = item.session
        if item.is_deleted:
            label = REMOVED_TIME_LABEL if item.is_deleted_gap else f"{session.name}{DELETED_SUFFIX}"
            self._slices.append(
                TimelineSlice(
                    kind=SliceKind.REMOVED_GAP if item.is_deleted_gap else SliceKind.DELETED,
                    label=label,
                    start=start,
                    end=item.end,
                    fill_color=DELETED_COLOR,
                    session_id=session.id,
                    segment_index=item.segment_index,
                )
            )
            return
        self._slices.append(
            TimelineSlice(
                kind=SliceKind.WORK,
                label=session.name,
                start=start,
                end=item.end,
                fill_color=task_color(session),
                is_on_hold=session.is_on_hold,
                is_ongoing=item.was_open and session.is_active,
                session_id=session.id,
                segment_index=item.segment_index,
            )
        )

    def _fill_gap(self, gap_start: int, gap_end: int) -> None:
        hard_stop = self._last_stop_reason is StopReason.HARD_STOP
        others = self._other_group_work(gap_start, gap_end) if self.group_id != ALL_GROUPS else []
        if not others:
            self._add_break(gap_start, gap_end, hard_stop)
            return

        cursor = gap_start
        for session, seg in others:
            start, end = self._clip(seg.start, seg.end, cursor, gap_end)
            if start > cursor:
                self._add_break(cursor, start, hard_stop)
            if end > start:
                self._slices.append(
                    TimelineSlice(
                        kind=SliceKind.OTHER_GROUP,
                        label=session.name,
                        start=start,
                        end=end,
                        fill_color=OTHER_GROUP_COLOR,
                    )
                )
            cursor = max(cursor, end)
        if cursor < gap_end:
            self._add_break(cursor, gap_end, hard_stop)

    def _other_group_work(self, gap_start: int, gap_end: int) -> list[tuple[Session, TimeSegment]]:
        found: list[tuple[Session, TimeSegment]] = []
        for session in self.sessions:
            if session.group_id == self.group_id:
                continue
            for seg in session.segments:
                if seg.is_deleted:
                    continue
                start, end = self._clip(seg.start, seg.end, gap_start, gap_end)
                if end > start:
                    found.append((session, seg))
        found.sort(key=lambda pair: pair[1].start)
        return found

    def _add_break(self, start: int, end: int, hard_stop: bool) -> None:
        gap = end - start
        if gap <= 0:
            return
        day = adjusted_date(self._last_end, self.day_start_hour, self.tz)
        if adjusted_date(start, self.day_start_hour, self.tz) != day:
            return
        if adjusted_date(end, self.day_start_hour, self.tz) != day:
            return
        if gap < self.threshold_ms and not hard_stop:
            return
        self._slices.append(
            TimelineSlice(
                kind=SliceKind.HARD_STOP if hard_stop else SliceKind.BREAK,
                label=HARD_STOP_LABEL if hard_stop else BREAK_LABEL,
                start=start,
                end=end,
                fill_color=HARD_STOP_COLOR if hard_stop else BREAK_COLOR,
                session_id=self._last_session_id,
            )
        )


def reconstruct_timeline(
    sessions: Sequence[Session],
    now: int,
    group_id: str | None = ALL_GROUPS,
    window: tuple[int, int] | None = None,
    day_start_hour: int = DEFAULT_DAY_START_HOUR,
    threshold_ms: int = DEFAULT_BREAK_THRESHOLD_MS,
    tz: tzinfo | None = None,
) -> list[TimelineSlice]:
    """Newest-first slices for the list view."""
    builder = TimelineBuilder(
        sessions,
        now=now,
        group_id=group_id,
        window=window,
        day_start_hour=day_start_hour,
        threshold_ms=threshold_ms,
        tz=tz,
    )
    slices = builder.build()
    slices.reverse()
    return slices
