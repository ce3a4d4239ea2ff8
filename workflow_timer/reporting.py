from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime, timedelta, tzinfo
from pathlib import Path
from typing import Iterable, Sequence

from .clock import from_millis
from .durations import (
    DEFAULT_BREAK_THRESHOLD_MS,
    DEFAULT_DAY_START_HOUR,
    adjusted_date,
    calculate_break_time,
    calculate_sessions_duration,
    calculate_total_duration,
    count_breaks,
    format_duration_hm,
    longest_segment,
)
from .focus import calculate_focus_index, focus_level
from .models import Group, Session, resolve_group_name
from .timeline import filter_sessions_by_group

RANGE_PRESETS = ("yesterday", "week", "month", "all", "custom")
ON_HOLD_FILTER = "on-hold"


@dataclass(frozen=True)
class DayStats:
    day: date
    work_ms: int
    break_ms: int
    session_count: int
    break_count: int
    focus_index: int
    longest_segment_ms: int = 0

    @property
    def total_ms(self) -> int:
        return self.work_ms + self.break_ms

    @property
    def has_work(self) -> bool:
        return self.work_ms > 0


@dataclass(frozen=True)
class RangeSummary:
    work_ms: int
    break_ms: int
    session_count: int
    break_count: int
    avg_focus: int


@dataclass(frozen=True)
class RangeAverages:
    work_ms: float
    break_ms: float
    session_count: float
    break_count: float
    focus: float


@dataclass(frozen=True)
class RangeStats:
    start: date
    end: date
    days: list[DayStats]
    summary: RangeSummary
    averages: RangeAverages
    active_days: int


@dataclass(frozen=True)
class HistoryDay:
    day: date
    sessions: list[Session]
    total_ms: int
    break_ms: int


def bucket_by_day(
    sessions: Iterable[Session],
    day_start_hour: int = DEFAULT_DAY_START_HOUR,
    tz: tzinfo | None = None,
) -> dict[date, list[Session]]:
    """Sessions keyed by the adjusted day they were created on."""
    buckets: dict[date, list[Session]] = defaultdict(list)
    for session in sessions:
        buckets[adjusted_date(session.created_at, day_start_hour, tz)].append(session)
    return dict(buckets)


def summarize_day(
    day: date,
    sessions: Sequence[Session],
    now: int,
    threshold_ms: int = DEFAULT_BREAK_THRESHOLD_MS,
    day_start_hour: int = DEFAULT_DAY_START_HOUR,
    tz: tzinfo | None = None,
) -> DayStats:
    work_ms = calculate_sessions_duration(sessions, now)
    break_ms = calculate_break_time(sessions, now, threshold_ms, day_start_hour, tz)
    breaks = count_breaks(sessions)
    return DayStats(
        day=day,
        work_ms=work_ms,
        break_ms=break_ms,
        session_count=len(sessions),
        break_count=breaks,
        focus_index=calculate_focus_index(work_ms, break_ms, breaks),
        longest_segment_ms=longest_segment(sessions, now),
    )


def build_day_stats(
    sessions: Iterable[Session],
    day: date,
    now: int,
    threshold_ms: int = DEFAULT_BREAK_THRESHOLD_MS,
    day_start_hour: int = DEFAULT_DAY_START_HOUR,
    tz: tzinfo | None = None,
    group_id: str | None = None,
) -> DayStats:
    selected = filter_sessions_by_group(_live(sessions), group_id)
    day_sessions = bucket_by_day(selected, day_start_hour, tz).get(day, [])
    return summarize_day(day, day_sessions, now, threshold_ms, day_start_hour, tz)


def build_range_stats(
    sessions: Iterable[Session],
    start: date,
    end: date,
    now: int,
    threshold_ms: int = DEFAULT_BREAK_THRESHOLD_MS,
    day_start_hour: int = DEFAULT_DAY_START_HOUR,
    tz: tzinfo | None = None,
    group_id: str | None = None,
) -> RangeStats:
    if end < start:
        raise ValueError(f"range end {end} is before start {start}")

    selected = filter_sessions_by_group(_live(sessions), group_id)
    buckets = bucket_by_day(selected, day_start_hour, tz)

    days: list[DayStats] = []
    current = start
    while current <= end:
        days.append(summarize_day(current, buckets.get(current, []), now, threshold_ms, day_start_hour, tz))
        current += timedelta(days=1)

    active = [day for day in days if day.has_work]
    divisor = len(active) or 1
    work_total = sum(day.work_ms for day in active)
    break_total = sum(day.break_ms for day in days)
    session_total = sum(day.session_count for day in active)
    break_count_total = sum(day.break_count for day in active)
    focus_total = sum(day.focus_index for day in active)

    return RangeStats(
        start=start,
        end=end,
        days=days,
        summary=RangeSummary(
            work_ms=work_total,
            break_ms=break_total,
            session_count=session_total,
            break_count=break_count_total,
            avg_focus=int(focus_total / divisor + 0.5),
        ),
        averages=RangeAverages(
            work_ms=work_total / divisor,
            break_ms=break_total / divisor,
            session_count=session_total / divisor,
            break_count=break_count_total / divisor,
            focus=focus_total / divisor,
        ),
        active_days=len(active),
    )


def resolve_range(
    preset: str,
    today: date,
    sessions: Sequence[Session] = (),
    day_start_hour: int = DEFAULT_DAY_START_HOUR,
    tz: tzinfo | None = None,
    custom_start: date | None = None,
    custom_end: date | None = None,
) -> tuple[date, date]:
    if preset == "yesterday":
        day = today - timedelta(days=1)
        return day, day
    if preset == "week":
        return today - timedelta(days=6), today
    if preset == "month":
        return today - timedelta(days=29), today
    if preset == "all":
        created = [session.created_at for session in sessions]
        if not created:
            return today, today
        return adjusted_date(min(created), day_start_hour, tz), today
    if preset == "custom":
        start = custom_start or today
        return start, custom_end or today
    raise ValueError(f"unknown range preset: {preset}")


def group_history(
    sessions: Iterable[Session],
    now: int,
    threshold_ms: int = DEFAULT_BREAK_THRESHOLD_MS,
    day_start_hour: int = DEFAULT_DAY_START_HOUR,
    tz: tzinfo | None = None,
) -> list[HistoryDay]:
    """Newest day first."""
    grouped: list[HistoryDay] = []
    for day, day_sessions in bucket_by_day(sessions, day_start_hour, tz).items():
        grouped.append(
            HistoryDay(
                day=day,
                sessions=day_sessions,
                total_ms=sum(calculate_total_duration(s.segments, now) for s in day_sessions),
                break_ms=calculate_break_time(day_sessions, now, threshold_ms, day_start_hour, tz),
            )
        )
    grouped.sort(key=lambda item: item.day, reverse=True)
    return grouped


def filter_history(
    sessions: Iterable[Session],
    search: str = "",
    group_id: str | None = None,
    start: date | None = None,
    end: date | None = None,
    tz: tzinfo | None = None,
) -> list[Session]:
    query = search.strip().lower()
    matched: list[Session] = []
    for session in sessions:
        if query and query not in session.name.lower():
            continue
        if group_id == ON_HOLD_FILTER:
            if not session.is_on_hold:
                continue
        elif group_id and group_id != "all" and session.group_id != group_id:
            continue
        created_day = from_millis(session.created_at, tz).date()
        if start is not None and created_day < start:
            continue
        if end is not None and created_day > end:
            continue
        matched.append(session)
    return matched


def generate_weekly_report(
    sessions: Sequence[Session],
    groups: Sequence[Group],
    out_dir: Path,
    now: int,
    year: int | None = None,
    week: int | None = None,
    threshold_ms: int = DEFAULT_BREAK_THRESHOLD_MS,
    day_start_hour: int = DEFAULT_DAY_START_HOUR,
    tz: tzinfo | None = None,
) -> Path:
    ref_day = adjusted_date(now, day_start_hour, tz)
    iso = ref_day.isocalendar()
    target_year = int(year or iso[0])
    target_week = int(week or iso[1])

    week_start = date.fromisocalendar(target_year, target_week, 1)
    week_end = week_start + timedelta(days=6)
    stats = build_range_stats(sessions, week_start, week_end, now, threshold_ms, day_start_hour, tz)

    in_week = [
        session
        for session in _live(sessions)
        if week_start <= adjusted_date(session.created_at, day_start_hour, tz) <= week_end
    ]
    task_totals: dict[str, int] = {}
    group_totals: dict[str, int] = {}
    for session in in_week:
        worked = calculate_total_duration(session.segments, now)
        task_name = session.name.strip() or "이름 없는 작업"
        task_totals[task_name] = task_totals.get(task_name, 0) + worked
        group_name = resolve_group_name(session.group_id, groups)
        group_totals[group_name] = group_totals.get(group_name, 0) + worked

    summary = stats.summary
    generated = from_millis(now, tz)
    lines: list[str] = []
    lines.append(f"# 주간 작업 리포트 {target_year}-W{target_week:02d}")
    lines.append("")
    lines.append(f"- 기간: {week_start.isoformat()} ~ {week_end.isoformat()}")
    lines.append(f"- 생성 시각: {_stamp(generated)}")
    lines.append("")

    lines.append("## 요약")
    lines.append(f"- 총 작업 시간: {format_duration_hm(summary.work_ms)}")
    lines.append(f"- 총 휴식 시간: {format_duration_hm(summary.break_ms)}")
    lines.append(f"- 작업 수: {summary.session_count}개")
    lines.append(f"- 휴식 횟수: {summary.break_count}회")
    level = focus_level(summary.avg_focus)
    lines.append(f"- 평균 집중 지수: {summary.avg_focus} ({level.level} · {level.label})")
    lines.append(f"- 작업한 날: {stats.active_days}일")
    lines.append("")

    lines.extend(_table("그룹별 작업 시간", "그룹", group_totals, "이번 주 기록된 그룹이 없습니다."))
    lines.extend(_table("작업별 시간", "작업", task_totals, "이번 주 기록된 작업이 없습니다."))

    lines.append("## 일별 기록")
    if stats.active_days:
        lines.append("| 날짜 | 작업 | 휴식 | 작업 수 | 집중 지수 |")
        lines.append("| --- | --- | --- | --- | --- |")
        for day in stats.days:
            if not day.has_work:
                continue
            lines.append(
                f"| {day.day.isoformat()} | {format_duration_hm(day.work_ms)} | "
                f"{format_duration_hm(day.break_ms)} | {day.session_count} | {day.focus_index} |"
            )
    else:
        lines.append("이번 주 기록이 없습니다.")
    lines.append("")

    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    report_path = out_dir / f"week-{target_year}-{target_week:02d}.md"
    report_path.write_text("\n".join(lines), encoding="utf-8")
    return report_path


def _table(title: str, column: str, totals: dict[str, int], empty_text: str) -> list[str]:
    lines = [f"## {title}"]
    if totals:
        lines.append(f"| {column} | 시간 |")
        lines.append("| --- | --- |")
        for name, ms in sorted(totals.items(), key=lambda x: x[1], reverse=True):
            lines.append(f"| {name} | {format_duration_hm(ms)} |")
    else:
        lines.append(empty_text)
    lines.append("")
    return lines


def _stamp(moment: datetime) -> str:
    return moment.strftime("%Y-%m-%d %H:%M:%S")


def _live(sessions: Iterable[Session]) -> list[Session]:
    return [session for session in sessions if not session.is_trashed]
