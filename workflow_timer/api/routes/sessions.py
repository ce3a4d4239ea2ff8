from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends

from ...service import WorkflowService
from ..deps import get_service
from ..schemas import CountResult, GapDeleteRequest, HistoryDayOut, SessionOut, SessionPatch

router = APIRouter(prefix="/api/v1", tags=["sessions"])


@router.get("/sessions", response_model=list[HistoryDayOut])
def list_sessions(
    search: str = "",
    group_id: str | None = None,
    start: date | None = None,
    end: date | None = None,
    service: WorkflowService = Depends(get_service),
) -> list[HistoryDayOut]:
    now = service.clock.now_ms()
    days = service.history(search=search, group_id=group_id, start=start, end=end)
    return [HistoryDayOut.from_history(day, now) for day in days]


@router.get("/trash", response_model=list[SessionOut])
def list_trash(service: WorkflowService = Depends(get_service)) -> list[SessionOut]:
    now = service.clock.now_ms()
    return [SessionOut.from_session(item, now) for item in service.trash()]


@router.delete("/trash", response_model=CountResult)
def empty_trash(service: WorkflowService = Depends(get_service)) -> CountResult:
    return CountResult(count=service.empty_trash())


@router.get("/sessions/{session_id}", response_model=SessionOut)
def get_session(session_id: str, service: WorkflowService = Depends(get_service)) -> SessionOut:
    return SessionOut.from_session(service.get_session(session_id), service.clock.now_ms())


@router.patch("/sessions/{session_id}", response_model=SessionOut)
def update_session(
    session_id: str,
    payload: SessionPatch,
    service: WorkflowService = Depends(get_service),
) -> SessionOut:
    session = service.get_session(session_id)
    if payload.name is not None:
        session = service.rename_session(session_id, payload.name)
    if payload.group_id is not None:
        session = service.move_to_group(session_id, payload.group_id)
    if payload.memo is not None:
        session = service.update_memo(session_id, payload.memo)
    return SessionOut.from_session(session, service.clock.now_ms())


@router.delete("/sessions/{session_id}", response_model=SessionOut)
def trash_session(session_id: str, service: WorkflowService = Depends(get_service)) -> SessionOut:
    return SessionOut.from_session(service.trash_session(session_id), service.clock.now_ms())


@router.post("/sessions/{session_id}/restore", response_model=SessionOut)
def restore_session(session_id: str, service: WorkflowService = Depends(get_service)) -> SessionOut:
    return SessionOut.from_session(service.restore_session(session_id), service.clock.now_ms())


@router.delete("/sessions/{session_id}/purge", status_code=204)
def purge_session(session_id: str, service: WorkflowService = Depends(get_service)) -> None:
    service.purge_session(session_id)


@router.delete("/sessions/{session_id}/hold", response_model=SessionOut)
def remove_hold(session_id: str, service: WorkflowService = Depends(get_service)) -> SessionOut:
    return SessionOut.from_session(service.remove_hold(session_id), service.clock.now_ms())


@router.delete("/sessions/{session_id}/segments/{index}", response_model=SessionOut)
def delete_segment(session_id: str, index: int, service: WorkflowService = Depends(get_service)) -> SessionOut:
    return SessionOut.from_session(service.delete_segment(session_id, index), service.clock.now_ms())


@router.post("/sessions/{session_id}/segments/{index}/restore", response_model=SessionOut)
def restore_segment(session_id: str, index: int, service: WorkflowService = Depends(get_service)) -> SessionOut:
    return SessionOut.from_session(service.restore_segment(session_id, index), service.clock.now_ms())


@router.post("/sessions/{session_id}/gaps", response_model=SessionOut)
def delete_gap(
    session_id: str,
    payload: GapDeleteRequest,
    service: WorkflowService = Depends(get_service),
) -> SessionOut:
    updated = service.delete_gap(session_id, payload.start, payload.end)
    return SessionOut.from_session(updated, service.clock.now_ms())
