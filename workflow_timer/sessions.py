"""Session lifecycle edits.

Every function takes snapshots and returns new ones; callers persist the
result. The timer is an explicit ``TimerState`` value rather than ambient
state, so the analytics code only ever sees plain session lists.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import tzinfo
from enum import Enum
import re
from typing import Callable, Iterable, Sequence
import uuid

from .durations import DEFAULT_DAY_START_HOUR, adjusted_date
from .models import CompletionStatus, Session, SegmentKind, StopReason, TimeSegment

DEFAULT_TASK_BASE_NAME = "새로운 작업"
CONTINUATION_SUFFIX = " (이어하기)"

IdFactory = Callable[[], str]


class SessionStateError(ValueError):
    pass


class TimerBusyError(SessionStateError):
    pass


class SessionNotFoundError(LookupError):
    pass


class TimerStatus(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    STOPPED = "stopped"


@dataclass(frozen=True)
class TimerState:
    status: TimerStatus = TimerStatus.IDLE
    current: Session | None = None

    @property
    def is_idle(self) -> bool:
        return self.status is TimerStatus.IDLE

    def to_dict(self) -> dict[str, object]:
        return {
            "status": self.status.value,
            "currentSession": None if self.current is None else self.current.to_dict(),
        }

    @classmethod
    def from_dict(cls, payload: dict[str, object]) -> TimerState:
        raw_current = payload.get("currentSession")
        current = Session.from_dict(raw_current) if isinstance(raw_current, dict) else None
        return cls(status=TimerStatus(str(payload.get("status", "idle"))), current=current)


def new_session_id() -> str:
    return uuid.uuid4().hex[:16]


def suggest_task_name(
    existing_names: Iterable[str],
    requested: str = "",
    base: str = DEFAULT_TASK_BASE_NAME,
) -> str:
    name = requested.strip()
    if name and name != base:
        return name
    pattern = re.compile(rf"^{re.escape(base)} (\d+)$")
    highest = 0
    for existing in existing_names:
        match = pattern.match(existing)
        if match:
            highest = max(highest, int(match.group(1)))
    return f"{base} {highest + 1}"


def _close_open(segments: Sequence[TimeSegment], now: int, stop_reason: StopReason | None = None) -> list[TimeSegment]:
    closed = list(segments)
    if closed and closed[-1].is_open:
        closed[-1] = replace(closed[-1], end=now, stop_reason=stop_reason or closed[-1].stop_reason)
    return closed


def start(
    state: TimerState,
    now: int,
    history_names: Iterable[str] = (),
    name: str = "",
    group_id: str = "1",
    base_name: str = DEFAULT_TASK_BASE_NAME,
    id_factory: IdFactory = new_session_id,
) -> TimerState:
    if state.status is TimerStatus.RUNNING:
        raise SessionStateError("timer is already running")

    if state.current is None:
        session = Session(
            id=id_factory(),
            name=suggest_task_name(history_names, name, base_name),
            group_id=group_id,
            created_at=now,
            segments=(TimeSegment.work(now),),
            is_active=True,
        )
    else:
        session = replace(
            state.current,
            is_active=True,
            segments=state.current.segments + (TimeSegment.work(now),),
        )
    return TimerState(TimerStatus.RUNNING, session)


def pause(state: TimerState, now: int) -> TimerState:
    if state.status is not TimerStatus.RUNNING or state.current is None:
        raise SessionStateError(f"cannot pause while {state.status.value}")
    session = replace(state.current, is_active=False, segments=tuple(_close_open(state.current.segments, now)))
    return TimerState(TimerStatus.PAUSED, session)


def hard_stop(state: TimerState, now: int) -> TimerState:
    if state.status is TimerStatus.IDLE:
        raise SessionStateError("cannot stop an idle timer")
    if state.current is None:
        return TimerState(TimerStatus.STOPPED, None)

    segments = list(state.current.segments)
    if state.status is TimerStatus.RUNNING:
        segments = _close_open(segments, now, StopReason.HARD_STOP)
    elif segments and segments[-1].end is not None:
        segments[-1] = replace(segments[-1], stop_reason=StopReason.HARD_STOP)
    session = replace(state.current, is_active=False, segments=tuple(segments))
    return TimerState(TimerStatus.STOPPED, session)


def finish(state: TimerState, now: int, status: CompletionStatus = CompletionStatus.COMPLETED) -> tuple[TimerState, Session]:
    if state.current is None:
        raise SessionStateError("no session to finish")
    segments = state.current.segments
    if state.status is TimerStatus.RUNNING:
        segments = tuple(_close_open(segments, now))
    finished = replace(
        state.current,
        segments=segments,
        is_active=False,
        is_finished=True,
        completion_status=status,
    )
    return TimerState(), finished


def continue_session(
    state: TimerState,
    history: Sequence[Session],
    session_id: str,
    now: int,
    day_start_hour: int = DEFAULT_DAY_START_HOUR,
    tz: tzinfo | None = None,
    id_factory: IdFactory = new_session_id,
) -> tuple[TimerState, list[Session]]:
    """Resume a finished session; a resume on a later day starts a new record."""
    if not state.is_idle:
        raise TimerBusyError("finish or pause the current task before resuming another")
    target = find_session(history, session_id)

    if adjusted_date(target.created_at, day_start_hour, tz) != adjusted_date(now, day_start_hour, tz):
        closed = replace(target, completion_status=CompletionStatus.COMPLETED)
        resumed = Session(
            id=id_factory(),
            name=f"{target.name}{CONTINUATION_SUFFIX}",
            group_id=target.group_id,
            created_at=now,
            segments=(TimeSegment.work(now),),
            is_active=True,
            memo=target.memo,
        )
        remaining = [closed if session.id == session_id else session for session in history]
        return TimerState(TimerStatus.RUNNING, resumed), remaining

    resumed = replace(
        target,
        is_active=True,
        is_finished=False,
        completion_status=None,
        deleted_at=None,
        segments=target.segments + (TimeSegment.work(now),),
    )
    remaining = [session for session in history if session.id != session_id]
    return TimerState(TimerStatus.RUNNING, resumed), remaining


def remove_hold(session: Session) -> Session:
    if not session.is_on_hold:
        return session
    return replace(session, completion_status=CompletionStatus.COMPLETED)


def is_last_live_segment(session: Session, index: int) -> bool:
    target = _segment_at(session, index)
    return target.kind is SegmentKind.WORK and len(session.live_work_segments) == 1


def delete_segment(session: Session, index: int, now: int) -> Session:
    """Soft-delete one segment; deleting the last live work span trashes the session."""
    last_one = is_last_live_segment(session, index)
    segments = list(session.segments)
    segments[index] = replace(segments[index], deleted_at=now)
    updated = replace(session, segments=tuple(segments))
    if last_one:
        updated = replace(updated, deleted_at=now)
    return updated


def delete_gap(session: Session, start: int, end: int, now: int) -> Session:
    if end <= start:
        raise ValueError(f"gap end {end} must be after start {start}")
    marker = TimeSegment.removed_gap(start, end, deleted_at=now)
    return session.with_segments(sorted(session.segments + (marker,), key=lambda seg: seg.start))


def restore_segment(session: Session, index: int) -> Session:
    target = _segment_at(session, index)
    if target.kind is SegmentKind.GAP_REMOVED:
        return session.with_segments(seg for idx, seg in enumerate(session.segments) if idx != index)
    segments = list(session.segments)
    segments[index] = replace(target, deleted_at=None)
    return session.with_segments(segments)


def trash_session(session: Session, now: int) -> Session:
    return replace(session, deleted_at=now)


def restore_session(session: Session) -> Session:
    return replace(session, deleted_at=None)


def rename_session(session: Session, name: str) -> Session:
    clean = name.strip()
    if not clean:
        raise ValueError("session name cannot be empty")
    return replace(session, name=clean)


def move_to_group(session: Session, group_id: str) -> Session:
    return replace(session, group_id=group_id)


def update_memo(session: Session, memo: str) -> Session:
    return replace(session, memo=memo)


def find_session(sessions: Iterable[Session], session_id: str) -> Session:
    for session in sessions:
        if session.id == session_id:
            return session
    raise SessionNotFoundError(f"session not found: {session_id}")


def _segment_at(session: Session, index: int) -> TimeSegment:
    if index < 0 or index >= len(session.segments):
        raise IndexError(f"segment index {index} out of range for session {session.id}")
    return session.segments[index]
