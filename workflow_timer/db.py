from __future__ import annotations

import json
import logging
import os
from pathlib import Path
import sqlite3
from typing import Iterable

from .models import DEFAULT_GROUPS, CompletionStatus, Group, Session, TimeSegment
from .sessions import TimerState

logger = logging.getLogger(__name__)

ENV_DB_PATH = "WORKFLOW_TIMER_DB"
ENV_JOURNAL_MODE = "WORKFLOW_TIMER_JOURNAL_MODE"

_SESSION_COLUMNS = (
    "id, name, group_id, created_at, segments, is_active, is_finished, completion_status, memo, deleted_at"
)


class WorkflowDB:
    def __init__(self, db_path: Path, journal_mode: str | None = None) -> None:
        self.db_path = Path(db_path)
        raw_mode = (journal_mode or os.getenv(ENV_JOURNAL_MODE) or "MEMORY").strip()
        self.journal_mode = raw_mode.upper() if raw_mode else "MEMORY"
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.init_schema()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        self._apply_journal_mode(conn)
        conn.execute("PRAGMA synchronous=NORMAL")
        return conn

    def _apply_journal_mode(self, conn: sqlite3.Connection) -> None:
        try:
            conn.execute(f"PRAGMA journal_mode={self.journal_mode}")
        except sqlite3.OperationalError:
            logger.warning("journal mode %s rejected, falling back to MEMORY", self.journal_mode)
            conn.execute("PRAGMA journal_mode=MEMORY")

    def init_schema(self) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS sessions (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL DEFAULT '',
                    group_id TEXT NOT NULL,
                    created_at INTEGER NOT NULL,
                    segments TEXT NOT NULL DEFAULT '[]',
                    is_active INTEGER NOT NULL CHECK (is_active IN (0, 1)),
                    is_finished INTEGER NOT NULL CHECK (is_finished IN (0, 1)),
                    completion_status TEXT CHECK (completion_status IN ('completed', 'on-hold')),
                    memo TEXT NOT NULL DEFAULT '',
                    deleted_at INTEGER
                )
                """
            )
            conn.execute(
                """
                CREATE INDEX IF NOT EXISTS idx_sessions_created_at
                ON sessions(created_at)
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS groups (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    color TEXT NOT NULL DEFAULT 'slate',
                    position INTEGER NOT NULL DEFAULT 0
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS app_state (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
                """
            )
            seeded = conn.execute("SELECT COUNT(*) FROM groups").fetchone()[0]
            if not seeded:
                self._write_groups(conn, DEFAULT_GROUPS)
            conn.commit()

    def upsert_session(self, session: Session) -> None:
        with self._connect() as conn:
            conn.execute(
                f"""
                INSERT OR REPLACE INTO sessions ({_SESSION_COLUMNS})
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    session.id,
                    session.name,
                    session.group_id,
                    int(session.created_at),
                    json.dumps([seg.to_dict() for seg in session.segments]),
                    1 if session.is_active else 0,
                    1 if session.is_finished else 0,
                    session.completion_status.value if session.completion_status else None,
                    session.memo,
                    session.deleted_at,
                ),
            )
            conn.commit()

    def get_session(self, session_id: str) -> Session | None:
        items = self._read_sessions(
            f"SELECT {_SESSION_COLUMNS} FROM sessions WHERE id = ?",
            [session_id],
        )
        return items[0] if items else None

    def list_sessions(
        self,
        include_deleted: bool = False,
        only_deleted: bool = False,
        group_id: str | None = None,
        since: int | None = None,
        until: int | None = None,
    ) -> list[Session]:
        clauses = ["1=1"]
        params: list[object] = []

        if only_deleted:
            clauses.append("deleted_at IS NOT NULL")
        elif not include_deleted:
            clauses.append("deleted_at IS NULL")
        if group_id:
            clauses.append("group_id = ?")
            params.append(group_id)
        if since is not None:
            clauses.append("created_at >= ?")
            params.append(int(since))
        if until is not None:
            clauses.append("created_at < ?")
            params.append(int(until))

        query = (
            f"SELECT {_SESSION_COLUMNS} FROM sessions "
            f"WHERE {' AND '.join(clauses)} "
            "ORDER BY created_at DESC"
        )
        return self._read_sessions(query, params)

    def delete_session(self, session_id: str) -> bool:
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM sessions WHERE id = ?", (session_id,))
            conn.commit()
        return cursor.rowcount > 0

    def purge_trash(self) -> int:
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM sessions WHERE deleted_at IS NOT NULL")
            conn.commit()
        return cursor.rowcount

    def list_groups(self) -> list[Group]:
        with self._connect() as conn:
            rows = conn.execute("SELECT id, name, color FROM groups ORDER BY position ASC, id ASC").fetchall()
        return [Group(id=row["id"], name=row["name"], color=row["color"]) for row in rows]

    def save_groups(self, groups: Iterable[Group]) -> None:
        with self._connect() as conn:
            conn.execute("DELETE FROM groups")
            self._write_groups(conn, groups)
            conn.commit()

    def load_timer_state(self) -> TimerState:
        with self._connect() as conn:
            row = conn.execute("SELECT value FROM app_state WHERE key = 'timer'").fetchone()
        if row is None:
            return TimerState()
        try:
            return TimerState.from_dict(json.loads(row["value"]))
        except (ValueError, KeyError, TypeError) as exc:
            logger.warning("stored timer state is unreadable, resetting to idle: %s", exc)
            return TimerState()

    def save_timer_state(self, state: TimerState) -> None:
        with self._connect() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO app_state (key, value) VALUES ('timer', ?)",
                (json.dumps(state.to_dict(), ensure_ascii=False),),
            )
            conn.commit()

    @staticmethod
    def _write_groups(conn: sqlite3.Connection, groups: Iterable[Group]) -> None:
        for position, group in enumerate(groups):
            conn.execute(
                "INSERT OR REPLACE INTO groups (id, name, color, position) VALUES (?, ?, ?, ?)",
                (group.id, group.name, group.color, position),
            )

    def _read_sessions(self, query: str, params: list[object]) -> list[Session]:
        with self._connect() as conn:
            rows = conn.execute(query, params).fetchall()

        items: list[Session] = []
        for row in rows:
            status = row["completion_status"]
            items.append(
                Session(
                    id=row["id"],
                    name=row["name"] or "",
                    group_id=row["group_id"],
                    created_at=int(row["created_at"]),
                    segments=tuple(TimeSegment.from_dict(item) for item in json.loads(row["segments"] or "[]")),
                    is_active=bool(row["is_active"]),
                    is_finished=bool(row["is_finished"]),
                    completion_status=CompletionStatus(status) if status else None,
                    memo=row["memo"] or "",
                    deleted_at=row["deleted_at"],
                )
            )
        return items


def default_db_path() -> Path:
    override = os.environ.get(ENV_DB_PATH, "").strip()
    if override:
        return Path(override)
    return Path(__file__).resolve().parent / "data" / "workflow_timer.sqlite"
