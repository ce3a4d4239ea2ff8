from __future__ import annotations

from datetime import date

from pydantic import BaseModel, Field

from ..breakdown import RatioChart, aggregate_by_label
from ..durations import calculate_total_duration
from ..focus import focus_level
from ..models import Group, Session, TimeSegment
from ..reporting import DayStats, HistoryDay, RangeStats
from ..sessions import TimerState
from ..timeline import TimelineSlice


class SegmentOut(BaseModel):
    start: int
    end: int | None = None
    kind: str
    stop_reason: str | None = None
    deleted_at: int | None = None
    is_deleted_gap: bool = False

    @classmethod
    def from_segment(cls, segment: TimeSegment) -> SegmentOut:
        return cls(
            start=segment.start,
            end=segment.end,
            kind=segment.kind.value,
            stop_reason=segment.stop_reason.value if segment.stop_reason else None,
            deleted_at=segment.deleted_at,
            is_deleted_gap=segment.is_deleted_gap,
        )


class SessionOut(BaseModel):
    id: str
    name: str
    group_id: str
    created_at: int
    segments: list[SegmentOut]
    is_active: bool
    is_finished: bool
    completion_status: str | None = None
    memo: str = ""
    deleted_at: int | None = None
    total_ms: int

    @classmethod
    def from_session(cls, session: Session, now: int) -> SessionOut:
        return cls(
            id=session.id,
            name=session.name,
            group_id=session.group_id,
            created_at=session.created_at,
            segments=[SegmentOut.from_segment(seg) for seg in session.segments],
            is_active=session.is_active,
            is_finished=session.is_finished,
            completion_status=session.completion_status.value if session.completion_status else None,
            memo=session.memo,
            deleted_at=session.deleted_at,
            total_ms=calculate_total_duration(session.segments, now),
        )


class SessionPatch(BaseModel):
    name: str | None = None
    group_id: str | None = None
    memo: str | None = None


class GapDeleteRequest(BaseModel):
    start: int
    end: int


class HistoryDayOut(BaseModel):
    day: date
    total_ms: int
    break_ms: int
    sessions: list[SessionOut]

    @classmethod
    def from_history(cls, item: HistoryDay, now: int) -> HistoryDayOut:
        return cls(
            day=item.day,
            total_ms=item.total_ms,
            break_ms=item.break_ms,
            sessions=[SessionOut.from_session(session, now) for session in item.sessions],
        )


class TimerStartRequest(BaseModel):
    task: str = ""
    group_id: str | None = None


class TimerFinishRequest(BaseModel):
    hold: bool = False


class TimerStateOut(BaseModel):
    status: str
    current: SessionOut | None = None
    elapsed_ms: int = 0

    @classmethod
    def from_state(cls, state: TimerState, now: int) -> TimerStateOut:
        current = None if state.current is None else SessionOut.from_session(state.current, now)
        return cls(
            status=state.status.value,
            current=current,
            elapsed_ms=0 if current is None else current.total_ms,
        )


class TimelineSliceOut(BaseModel):
    kind: str
    label: str
    start: int
    end: int
    duration_ms: int
    duration: str
    fill_color: str
    is_break: bool
    is_hard_stop: bool
    is_deleted: bool
    is_on_hold: bool
    is_ongoing: bool
    is_other_group: bool
    session_id: str | None = None
    segment_index: int | None = None

    @classmethod
    def from_slice(cls, item: TimelineSlice) -> TimelineSliceOut:
        return cls(**item.to_dict())


class ChartSliceOut(BaseModel):
    label: str
    start: int
    end: int
    color: str
    is_break: bool
    percent: float
    start_percent: float
    end_percent: float


class LabelTotalOut(BaseModel):
    label: str
    duration_ms: int
    color: str
    is_break: bool
    count: int


class RatioChartOut(BaseModel):
    total_ms: int
    start: int
    end: int
    slices: list[ChartSliceOut]
    labels: list[LabelTotalOut]

    @classmethod
    def from_chart(cls, chart: RatioChart) -> RatioChartOut:
        return cls(
            total_ms=chart.total_ms,
            start=chart.start,
            end=chart.end,
            slices=[
                ChartSliceOut(
                    label=piece.label,
                    start=piece.start,
                    end=piece.end,
                    color=piece.color,
                    is_break=piece.is_break,
                    percent=piece.percent,
                    start_percent=piece.start_percent,
                    end_percent=piece.end_percent,
                )
                for piece in chart.slices
            ],
            labels=[LabelTotalOut(**vars(item)) for item in aggregate_by_label(chart)],
        )


class DayStatsOut(BaseModel):
    day: date
    work_ms: int
    break_ms: int
    session_count: int
    break_count: int
    focus_index: int
    focus_level: str
    focus_label: str
    longest_segment_ms: int

    @classmethod
    def from_stats(cls, stats: DayStats) -> DayStatsOut:
        level = focus_level(stats.focus_index)
        return cls(
            day=stats.day,
            work_ms=stats.work_ms,
            break_ms=stats.break_ms,
            session_count=stats.session_count,
            break_count=stats.break_count,
            focus_index=stats.focus_index,
            focus_level=level.level,
            focus_label=level.label,
            longest_segment_ms=stats.longest_segment_ms,
        )


class RangeSummaryOut(BaseModel):
    work_ms: int
    break_ms: int
    session_count: int
    break_count: int
    avg_focus: int


class RangeAveragesOut(BaseModel):
    work_ms: float
    break_ms: float
    session_count: float
    break_count: float
    focus: float


class RangeStatsOut(BaseModel):
    start: date
    end: date
    active_days: int
    summary: RangeSummaryOut
    averages: RangeAveragesOut
    days: list[DayStatsOut]

    @classmethod
    def from_stats(cls, stats: RangeStats) -> RangeStatsOut:
        return cls(
            start=stats.start,
            end=stats.end,
            active_days=stats.active_days,
            summary=RangeSummaryOut(**vars(stats.summary)),
            averages=RangeAveragesOut(**vars(stats.averages)),
            days=[DayStatsOut.from_stats(day) for day in stats.days],
        )


class GroupModel(BaseModel):
    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    color: str = "slate"

    @classmethod
    def from_group(cls, group: Group) -> GroupModel:
        return cls(id=group.id, name=group.name, color=group.color)

    def to_group(self) -> Group:
        return Group(id=self.id, name=self.name.strip(), color=self.color)


class FileResult(BaseModel):
    path: str


class CountResult(BaseModel):
    count: int


class HealthOut(BaseModel):
    status: str = Field(default="ok")
    timer: str = "idle"


class MetaOut(BaseModel):
    app: str
    version: str
    db_path: str
    platform: str
    day_start_hour: int
    break_threshold_ms: int
