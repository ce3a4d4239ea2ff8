"""Session, segment and group value types.

Everything here is an immutable snapshot: edits go through
``dataclasses.replace`` (see ``sessions.py``) and never touch the input.
Dictionaries use the camelCase keys of the stored document format.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Iterable


class StopReason(str, Enum):
    HARD_STOP = "hard-stop"


class CompletionStatus(str, Enum):
    COMPLETED = "completed"
    ON_HOLD = "on-hold"


class SegmentKind(str, Enum):
    WORK = "work"
    WORK_DELETED = "work-deleted"
    GAP_REMOVED = "gap-removed"


UNASSIGNED_GROUP_NAME = "미지정"


@dataclass(frozen=True)
class TimeSegment:
    start: int
    end: int | None = None
    stop_reason: StopReason | None = None
    deleted_at: int | None = None
    is_deleted_gap: bool = False

    @classmethod
    def work(cls, start: int, end: int | None = None) -> TimeSegment:
        return cls(start=start, end=end)

    @classmethod
    def removed_gap(cls, start: int, end: int, deleted_at: int) -> TimeSegment:
        return cls(start=start, end=end, deleted_at=deleted_at, is_deleted_gap=True)

    @property
    def kind(self) -> SegmentKind:
        if self.is_deleted_gap:
            return SegmentKind.GAP_REMOVED
        if self.deleted_at is not None:
            return SegmentKind.WORK_DELETED
        return SegmentKind.WORK

    @property
    def is_open(self) -> bool:
        return self.end is None

    @property
    def is_deleted(self) -> bool:
        return self.kind is not SegmentKind.WORK

    @property
    def is_hard_stop(self) -> bool:
        return self.stop_reason is StopReason.HARD_STOP

    def end_or(self, now: int) -> int:
        return now if self.end is None else self.end

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"start": self.start, "end": self.end}
        if self.stop_reason is not None:
            payload["stopReason"] = self.stop_reason.value
        if self.deleted_at is not None:
            payload["deletedAt"] = self.deleted_at
        if self.is_deleted_gap:
            payload["isDeletedGap"] = True
        return payload

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> TimeSegment:
        end = payload.get("end")
        deleted_at = payload.get("deletedAt")
        raw_reason = payload.get("stopReason")
        return cls(
            start=int(payload["start"]),
            end=None if end is None else int(end),
            stop_reason=StopReason(raw_reason) if raw_reason else None,
            deleted_at=None if deleted_at is None else int(deleted_at),
            is_deleted_gap=bool(payload.get("isDeletedGap", False)),
        )


@dataclass(frozen=True)
class Group:
    id: str
    name: str
    color: str = "slate"

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "color": self.color}

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> Group:
        return cls(
            id=str(payload["id"]),
            name=str(payload.get("name", "")),
            color=str(payload.get("color", "slate")),
        )


DEFAULT_GROUPS: tuple[Group, ...] = (
    Group("1", "업무", "blue"),
    Group("2", "개인", "emerald"),
    Group("3", "공부", "violet"),
)


@dataclass(frozen=True)
class Session:
    id: str
    name: str
    group_id: str
    created_at: int
    segments: tuple[TimeSegment, ...] = field(default_factory=tuple)
    is_active: bool = False
    is_finished: bool = False
    completion_status: CompletionStatus | None = None
    memo: str = ""
    deleted_at: int | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.segments, tuple):
            object.__setattr__(self, "segments", tuple(self.segments))
        if self.is_active and self.completion_status is not None:
            raise ValueError(f"session {self.id} cannot be active with a completion status")

    @property
    def is_on_hold(self) -> bool:
        return self.completion_status is CompletionStatus.ON_HOLD

    @property
    def is_trashed(self) -> bool:
        return self.deleted_at is not None

    @property
    def live_work_segments(self) -> list[TimeSegment]:
        return [seg for seg in self.segments if seg.kind is SegmentKind.WORK]

    @property
    def open_segment_index(self) -> int | None:
        for idx in range(len(self.segments) - 1, -1, -1):
            if self.segments[idx].is_open:
                return idx
        return None

    def with_segments(self, segments: Iterable[TimeSegment]) -> Session:
        return replace(self, segments=tuple(segments))

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "groupId": self.group_id,
            "createdAt": self.created_at,
            "segments": [seg.to_dict() for seg in self.segments],
            "isActive": self.is_active,
            "isFinished": self.is_finished,
            "memo": self.memo,
        }
        if self.completion_status is not None:
            payload["completionStatus"] = self.completion_status.value
        if self.deleted_at is not None:
            payload["deletedAt"] = self.deleted_at
        return payload

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> Session:
        status = payload.get("completionStatus")
        deleted_at = payload.get("deletedAt")
        return cls(
            id=str(payload["id"]),
            name=str(payload.get("name", "")),
            group_id=str(payload.get("groupId", "1")),
            created_at=int(payload["createdAt"]),
            segments=tuple(TimeSegment.from_dict(item) for item in payload.get("segments", [])),
            is_active=bool(payload.get("isActive", False)),
            is_finished=bool(payload.get("isFinished", False)),
            completion_status=CompletionStatus(status) if status else None,
            memo=str(payload.get("memo") or ""),
            deleted_at=None if deleted_at is None else int(deleted_at),
        )


def resolve_group_name(group_id: str, groups: Iterable[Group]) -> str:
    for group in groups:
        if group.id == group_id:
            return group.name
    return UNASSIGNED_GROUP_NAME
