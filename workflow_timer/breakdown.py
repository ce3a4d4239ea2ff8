"""Work/break proportions for one day's chart.

Unlike the ledger in ``timeline.py`` this view keeps only work and break
time: pauses after a hard stop and deleted spans drop out of the ratio, and
every positive gap counts as a break regardless of length.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from .models import Session
from .timeline import BREAK_COLOR, BREAK_LABEL, filter_sessions_by_group, is_group_filter, task_color

OTHER_OR_BREAK_LABEL = "기타/휴식"


@dataclass(frozen=True)
class ChartSlice:
    label: str
    start: int
    end: int
    color: str
    is_break: bool
    percent: float = 0.0
    start_percent: float = 0.0
    end_percent: float = 0.0

    @property
    def duration_ms(self) -> int:
        return self.end - self.start


@dataclass(frozen=True)
class RatioChart:
    slices: list[ChartSlice]
    total_ms: int
    start: int
    end: int


@dataclass(frozen=True)
class LabelTotal:
    label: str
    duration_ms: int
    color: str
    is_break: bool
    count: int


def build_ratio_chart(
    sessions: Sequence[Session],
    now: int,
    group_id: str | None = None,
    fallback_start: int | None = None,
) -> RatioChart:
    live = [session for session in sessions if not session.is_trashed]
    kept = [seg for session in live for seg in session.segments if not seg.is_deleted]
    start = min((seg.start for seg in kept), default=fallback_start if fallback_start is not None else now)
    end = max((seg.end_or(now) for seg in kept), default=now)

    selected = filter_sessions_by_group(live, group_id)
    if not selected:
        return RatioChart(slices=[], total_ms=0, start=start, end=end)

    items = []
    for session in selected:
        for seg in session.segments:
            item_start = max(seg.start, start)
            item_end = min(seg.end_or(now), end)
            if item_end > item_start:
                items.append((item_start, item_end, session, seg))
    items.sort(key=lambda item: item[0])

    gap_label = OTHER_OR_BREAK_LABEL if is_group_filter(group_id) else BREAK_LABEL
    raw: list[ChartSlice] = []
    cursor = start
    hard_stop = False
    for item_start, item_end, session, seg in items:
        if item_start > cursor and not hard_stop:
            raw.append(ChartSlice(gap_label, cursor, item_start, BREAK_COLOR, True))
        if not seg.is_deleted:
            raw.append(ChartSlice(session.name, item_start, item_end, task_color(session, "chart"), False))
        cursor = max(cursor, item_end)
        hard_stop = seg.is_hard_stop
    if cursor < end and not hard_stop:
        raw.append(ChartSlice(gap_label, cursor, end, BREAK_COLOR, True))

    total = sum(piece.duration_ms for piece in raw)
    safe_total = max(1, total)
    slices: list[ChartSlice] = []
    accumulated = 0
    for piece in raw:
        slices.append(
            ChartSlice(
                label=piece.label,
                start=piece.start,
                end=piece.end,
                color=piece.color,
                is_break=piece.is_break,
                percent=piece.duration_ms / safe_total,
                start_percent=accumulated / safe_total,
                end_percent=(accumulated + piece.duration_ms) / safe_total,
            )
        )
        accumulated += piece.duration_ms
    return RatioChart(slices=slices, total_ms=total, start=start, end=end)


def aggregate_by_label(chart: RatioChart) -> list[LabelTotal]:
    totals: dict[str, LabelTotal] = {}
    for piece in chart.slices:
        existing = totals.get(piece.label)
        if existing is None:
            totals[piece.label] = LabelTotal(piece.label, piece.duration_ms, piece.color, piece.is_break, 1)
        else:
            totals[piece.label] = LabelTotal(
                existing.label,
                existing.duration_ms + piece.duration_ms,
                existing.color,
                existing.is_break,
                existing.count + 1,
            )
    return sorted(totals.values(), key=lambda item: item.duration_ms, reverse=True)
