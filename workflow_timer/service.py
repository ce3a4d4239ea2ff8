from __future__ import annotations

from dataclasses import replace
from datetime import date, tzinfo
import logging
from pathlib import Path
from threading import RLock
from typing import Callable

from . import sessions as ops
from .breakdown import RatioChart, build_ratio_chart
from .clock import Clock, RealClock
from .db import WorkflowDB
from .durations import adjusted_date, calculate_total_duration, find_anomalies
from .focus import FocusLevel, focus_level
from .models import CompletionStatus, Group, Session
from .reporting import (
    DayStats,
    HistoryDay,
    RangeStats,
    build_day_stats,
    build_range_stats,
    filter_history,
    generate_weekly_report,
    group_history,
    resolve_range,
)
from .settings import Settings
from .timeline import ALL_GROUPS, TimelineSlice, reconstruct_timeline

logger = logging.getLogger(__name__)


class WorkflowService:
    """Applies session edits against the store and answers the read queries.

    Each public call reads the clock once and passes that instant down.
    """

    def __init__(
        self,
        db: WorkflowDB,
        clock: Clock | None = None,
        settings: Settings | None = None,
        tz: tzinfo | None = None,
        id_factory: Callable[[], str] = ops.new_session_id,
    ) -> None:
        self.db = db
        self.clock = clock or RealClock()
        self.settings = settings or Settings()
        self.tz = tz
        self.id_factory = id_factory
        self._lock = RLock()

    # timer

    def state(self) -> ops.TimerState:
        return self.db.load_timer_state()

    def start(self, name: str = "", group_id: str | None = None) -> ops.TimerState:
        with self._lock:
            now = self.clock.now_ms()
            state = self.db.load_timer_state()
            names = [session.name for session in self.db.list_sessions(include_deleted=True)]
            new_state = ops.start(
                state,
                now,
                history_names=names,
                name=name,
                group_id=self._resolve_group_id(group_id),
                base_name=self.settings.task_base_name,
                id_factory=self.id_factory,
            )
            self.db.save_timer_state(new_state)
            logger.info("timer started: session=%s name=%r", new_state.current.id, new_state.current.name)
            return new_state

    def pause(self) -> ops.TimerState:
        with self._lock:
            new_state = ops.pause(self.db.load_timer_state(), self.clock.now_ms())
            self.db.save_timer_state(new_state)
            logger.info("timer paused: session=%s", new_state.current.id)
            return new_state

    def stop(self) -> ops.TimerState:
        with self._lock:
            new_state = ops.hard_stop(self.db.load_timer_state(), self.clock.now_ms())
            self.db.save_timer_state(new_state)
            logger.info("timer hard-stopped")
            return new_state

    def finish(self, hold: bool = False) -> Session:
        with self._lock:
            status = CompletionStatus.ON_HOLD if hold else CompletionStatus.COMPLETED
            new_state, finished = ops.finish(self.db.load_timer_state(), self.clock.now_ms(), status)
            self.db.upsert_session(finished)
            self.db.save_timer_state(new_state)
            logger.info("session finished: session=%s status=%s", finished.id, status.value)
            self._report_anomalies([finished])
            return finished

    def continue_session(self, session_id: str) -> ops.TimerState:
        with self._lock:
            now = self.clock.now_ms()
            history = self.db.list_sessions(include_deleted=True)
            new_state, remaining = ops.continue_session(
                self.db.load_timer_state(),
                history,
                session_id,
                now,
                day_start_hour=self.settings.day_start_hour,
                tz=self.tz,
                id_factory=self.id_factory,
            )
            remaining_ids = {session.id for session in remaining}
            for session in history:
                if session.id not in remaining_ids:
                    self.db.delete_session(session.id)
            for session in remaining:
                if session.id == session_id:
                    self.db.upsert_session(session)
            self.db.save_timer_state(new_state)
            logger.info("session %s continued as %s", session_id, new_state.current.id)
            return new_state

    def elapsed_ms(self) -> int:
        current = self.db.load_timer_state().current
        if current is None:
            return 0
        return calculate_total_duration(current.segments, self.clock.now_ms())

    # session edits

    def get_session(self, session_id: str) -> Session:
        session, _ = self._load(session_id)
        return session

    def delete_segment(self, session_id: str, index: int) -> Session:
        with self._lock:
            session, is_current = self._load(session_id)
            updated = ops.delete_segment(session, index, self.clock.now_ms())
            if is_current and updated.is_trashed:
                self.db.save_timer_state(ops.TimerState())
                logger.info("current session %s discarded after its last segment was deleted", session_id)
                return updated
            self._store(updated, is_current)
            if updated.is_trashed:
                logger.info("session %s moved to trash after its last segment was deleted", session_id)
            return updated

    def restore_segment(self, session_id: str, index: int) -> Session:
        return self._edit(session_id, lambda session: ops.restore_segment(session, index))

    def delete_gap(self, session_id: str, start: int, end: int) -> Session:
        now = self.clock.now_ms()
        return self._edit(session_id, lambda session: ops.delete_gap(session, start, end, now))

    def remove_hold(self, session_id: str) -> Session:
        return self._edit(session_id, ops.remove_hold)

    def rename_session(self, session_id: str, name: str) -> Session:
        return self._edit(session_id, lambda session: ops.rename_session(session, name))

    def move_to_group(self, session_id: str, group_id: str) -> Session:
        return self._edit(session_id, lambda session: ops.move_to_group(session, group_id))

    def update_memo(self, session_id: str, memo: str) -> Session:
        return self._edit(session_id, lambda session: ops.update_memo(session, memo))

    def trash_session(self, session_id: str) -> Session:
        with self._lock:
            session = self._history_session(session_id)
            trashed = ops.trash_session(session, self.clock.now_ms())
            self.db.upsert_session(trashed)
            logger.info("session %s moved to trash", session_id)
            return trashed

    def restore_session(self, session_id: str) -> Session:
        with self._lock:
            restored = ops.restore_session(self._history_session(session_id))
            self.db.upsert_session(restored)
            logger.info("session %s restored from trash", session_id)
            return restored

    def purge_session(self, session_id: str) -> None:
        with self._lock:
            self._history_session(session_id)
            self.db.delete_session(session_id)
            logger.info("session %s purged", session_id)

    def empty_trash(self) -> int:
        with self._lock:
            count = self.db.purge_trash()
            logger.info("trash emptied: %d session(s) purged", count)
            return count

    def trash(self) -> list[Session]:
        return self.db.list_sessions(only_deleted=True)

    # groups

    def groups(self) -> list[Group]:
        return self.db.list_groups()

    def save_groups(self, groups: list[Group]) -> list[Group]:
        ids = [group.id for group in groups]
        if len(set(ids)) != len(ids):
            raise ValueError("group ids must be unique")
        if any(not group.name.strip() for group in groups):
            raise ValueError("group name cannot be empty")
        self.db.save_groups(groups)
        logger.info("saved %d group(s)", len(groups))
        return self.db.list_groups()

    # queries

    def today(self) -> date:
        return adjusted_date(self.clock.now_ms(), self.settings.day_start_hour, self.tz)

    def all_sessions(self, include_current: bool = True) -> list[Session]:
        """History plus the in-progress session, oldest first."""
        items = self.db.list_sessions()
        current = self.db.load_timer_state().current
        if include_current and current is not None:
            items.append(current)
        items.sort(key=lambda session: session.created_at)
        return items

    def day_sessions(self, day: date | None = None) -> list[Session]:
        target = day or self.today()
        return [
            session
            for session in self.all_sessions()
            if adjusted_date(session.created_at, self.settings.day_start_hour, self.tz) == target
        ]

    def timeline(self, day: date | None = None, group_id: str | None = ALL_GROUPS) -> list[TimelineSlice]:
        now = self.clock.now_ms()
        sessions = self.day_sessions(day)
        self._report_anomalies(sessions)
        logger.debug("building timeline for %s (%d sessions, group=%s)", day or "today", len(sessions), group_id)
        return reconstruct_timeline(
            sessions,
            now,
            group_id=group_id,
            day_start_hour=self.settings.day_start_hour,
            threshold_ms=self.settings.break_threshold_ms,
            tz=self.tz,
        )

    def ratio_chart(self, day: date | None = None, group_id: str | None = None) -> RatioChart:
        return build_ratio_chart(self.day_sessions(day), self.clock.now_ms(), group_id=group_id)

    def day_stats(self, day: date | None = None, group_id: str | None = None) -> DayStats:
        now = self.clock.now_ms()
        target = day or adjusted_date(now, self.settings.day_start_hour, self.tz)
        return build_day_stats(
            self.all_sessions(),
            target,
            now,
            threshold_ms=self.settings.break_threshold_ms,
            day_start_hour=self.settings.day_start_hour,
            tz=self.tz,
            group_id=group_id,
        )

    def focus(self, day: date | None = None) -> tuple[int, FocusLevel]:
        score = self.day_stats(day).focus_index
        return score, focus_level(score)

    def range_stats(
        self,
        preset: str = "week",
        start: date | None = None,
        end: date | None = None,
        group_id: str | None = None,
    ) -> RangeStats:
        now = self.clock.now_ms()
        sessions = self.all_sessions()
        first, last = resolve_range(
            preset,
            adjusted_date(now, self.settings.day_start_hour, self.tz),
            sessions,
            day_start_hour=self.settings.day_start_hour,
            tz=self.tz,
            custom_start=start,
            custom_end=end,
        )
        logger.debug("range stats %s: %s..%s", preset, first, last)
        return build_range_stats(
            sessions,
            first,
            last,
            now,
            threshold_ms=self.settings.break_threshold_ms,
            day_start_hour=self.settings.day_start_hour,
            tz=self.tz,
            group_id=group_id,
        )

    def history(
        self,
        search: str = "",
        group_id: str | None = None,
        start: date | None = None,
        end: date | None = None,
    ) -> list[HistoryDay]:
        matched = filter_history(self.db.list_sessions(), search, group_id, start, end, self.tz)
        return group_history(
            matched,
            self.clock.now_ms(),
            threshold_ms=self.settings.break_threshold_ms,
            day_start_hour=self.settings.day_start_hour,
            tz=self.tz,
        )

    def weekly_report(self, out_dir: Path, year: int | None = None, week: int | None = None) -> Path:
        path = generate_weekly_report(
            self.all_sessions(),
            self.db.list_groups(),
            out_dir,
            self.clock.now_ms(),
            year=year,
            week=week,
            threshold_ms=self.settings.break_threshold_ms,
            day_start_hour=self.settings.day_start_hour,
            tz=self.tz,
        )
        logger.info("weekly report written to %s", path)
        return path

    # internals

    def _load(self, session_id: str) -> tuple[Session, bool]:
        current = self.db.load_timer_state().current
        if current is not None and current.id == session_id:
            return current, True
        return self._history_session(session_id), False

    def _resolve_group_id(self, group_id: str | None) -> str:
        """Requested group, else the configured default, else the first stored group."""
        requested = group_id or self.settings.default_group_id
        groups = self.db.list_groups()
        if not groups or any(group.id == requested for group in groups):
            return requested
        logger.warning("group %s does not exist, using %s", requested, groups[0].id)
        return groups[0].id

    def _history_session(self, session_id: str) -> Session:
        session = self.db.get_session(session_id)
        if session is None:
            raise ops.SessionNotFoundError(f"session not found: {session_id}")
        return session

    def _store(self, session: Session, is_current: bool) -> None:
        if is_current:
            state = self.db.load_timer_state()
            self.db.save_timer_state(replace(state, current=session))
        else:
            self.db.upsert_session(session)

    def _edit(self, session_id: str, change: Callable[[Session], Session]) -> Session:
        with self._lock:
            session, is_current = self._load(session_id)
            updated = change(session)
            self._store(updated, is_current)
            logger.debug("session %s updated", session_id)
            return updated

    def _report_anomalies(self, sessions: list[Session]) -> None:
        for anomaly in find_anomalies(sessions):
            logger.warning(
                "segment anomaly in session %s at index %d: %s",
                anomaly.session_id,
                anomaly.segment_index,
                anomaly.reason,
            )
