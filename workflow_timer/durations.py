from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta, tzinfo
from typing import Iterable, Sequence

from .clock import from_millis
from .models import Session, StopReason, TimeSegment

DEFAULT_BREAK_THRESHOLD_MS = 60_000
DEFAULT_DAY_START_HOUR = 0


def format_duration(ms: int | float) -> str:
    total = max(0, int(ms // 1000))
    minutes, sec = divmod(total, 60)
    hours, minutes = divmod(minutes, 60)
    return f"{hours:02d}:{minutes:02d}:{sec:02d}"


def format_duration_hm(ms: int | float) -> str:
    total_minutes = max(0, int(ms // 60_000))
    hours, minutes = divmod(total_minutes, 60)
    if hours == 0:
        return f"{minutes}m"
    return f"{hours}h {minutes}m"


def format_clock(timestamp: int, tz: tzinfo | None = None) -> str:
    return from_millis(timestamp, tz).strftime("%H:%M:%S")


def adjusted_date(timestamp: int, day_start_hour: int = DEFAULT_DAY_START_HOUR, tz: tzinfo | None = None) -> date:
    """Calendar date of ``timestamp`` for a day that begins at ``day_start_hour``."""
    moment = from_millis(timestamp, tz) - timedelta(hours=day_start_hour)
    return moment.date()


def segment_duration(segment: TimeSegment, now: int) -> int:
    return max(0, segment.end_or(now) - segment.start)


def calculate_total_duration(segments: Iterable[TimeSegment], now: int) -> int:
    """Live work time: deleted spans and removed-gap markers contribute nothing."""
    return sum(segment_duration(seg, now) for seg in segments if not seg.is_deleted)


def calculate_sessions_duration(sessions: Iterable[Session], now: int) -> int:
    return sum(calculate_total_duration(session.segments, now) for session in sessions)


@dataclass(frozen=True)
class _Span:
    start: int
    end: int
    stop_reason: StopReason | None


def calculate_break_time(
    sessions: Iterable[Session],
    now: int,
    threshold_ms: int = DEFAULT_BREAK_THRESHOLD_MS,
    day_start_hour: int = DEFAULT_DAY_START_HOUR,
    tz: tzinfo | None = None,
) -> int:
    # Deleted segments stay in the walk: they occupy time and close gaps.
    spans = [
        _Span(seg.start, seg.end_or(now), seg.stop_reason)
        for session in sessions
        for seg in session.segments
    ]
    if len(spans) < 2:
        return 0
    spans.sort(key=lambda span: span.start)

    total = 0
    for current, following in zip(spans, spans[1:]):
        gap = following.start - current.end
        if gap <= 0:
            continue
        if adjusted_date(current.end, day_start_hour, tz) != adjusted_date(following.start, day_start_hour, tz):
            continue
        if gap < threshold_ms:
            continue
        if current.stop_reason is StopReason.HARD_STOP:
            continue
        total += gap
    return total


def count_breaks(sessions: Iterable[Session]) -> int:
    return sum(max(0, len(session.segments) - 1) for session in sessions)


def longest_segment(sessions: Iterable[Session], now: int) -> int:
    longest = 0
    for session in sessions:
        for seg in session.segments:
            if seg.is_deleted:
                continue
            longest = max(longest, segment_duration(seg, now))
    return longest


@dataclass(frozen=True)
class SegmentAnomaly:
    session_id: str
    segment_index: int
    reason: str


def find_anomalies(sessions: Sequence[Session]) -> list[SegmentAnomaly]:
    """Report malformed segments; nothing here repairs them."""
    found: list[SegmentAnomaly] = []
    for session in sessions:
        ordered = sorted(range(len(session.segments)), key=lambda idx: session.segments[idx].start)
        live = [idx for idx in ordered if not session.segments[idx].is_deleted]
        for idx, seg in enumerate(session.segments):
            if seg.end is not None and seg.end < seg.start:
                found.append(SegmentAnomaly(session.id, idx, "end before start"))
            if seg.is_open and (not live or live[-1] != idx):
                found.append(SegmentAnomaly(session.id, idx, "open segment is not the last one"))
        open_count = sum(1 for seg in session.segments if seg.is_open)
        if open_count > 1:
            found.append(SegmentAnomaly(session.id, -1, f"{open_count} open segments"))
    return found
