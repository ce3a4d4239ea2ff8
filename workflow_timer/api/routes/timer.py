from __future__ import annotations

from fastapi import APIRouter, Depends

from ...service import WorkflowService
from ..deps import get_service
from ..schemas import SessionOut, TimerFinishRequest, TimerStartRequest, TimerStateOut

router = APIRouter(prefix="/api/v1", tags=["timer"])


@router.get("/timer/state", response_model=TimerStateOut)
def timer_state(service: WorkflowService = Depends(get_service)) -> TimerStateOut:
    return TimerStateOut.from_state(service.state(), service.clock.now_ms())


@router.post("/timer/start", response_model=TimerStateOut)
def start_timer(payload: TimerStartRequest, service: WorkflowService = Depends(get_service)) -> TimerStateOut:
    state = service.start(name=payload.task, group_id=payload.group_id)
    return TimerStateOut.from_state(state, service.clock.now_ms())


@router.post("/timer/pause", response_model=TimerStateOut)
def pause_timer(service: WorkflowService = Depends(get_service)) -> TimerStateOut:
    return TimerStateOut.from_state(service.pause(), service.clock.now_ms())


@router.post("/timer/stop", response_model=TimerStateOut)
def stop_timer(service: WorkflowService = Depends(get_service)) -> TimerStateOut:
    return TimerStateOut.from_state(service.stop(), service.clock.now_ms())


@router.post("/timer/finish", response_model=SessionOut)
def finish_timer(payload: TimerFinishRequest, service: WorkflowService = Depends(get_service)) -> SessionOut:
    return SessionOut.from_session(service.finish(hold=payload.hold), service.clock.now_ms())


@router.post("/timer/continue/{session_id}", response_model=TimerStateOut)
def continue_session(session_id: str, service: WorkflowService = Depends(get_service)) -> TimerStateOut:
    state = service.continue_session(session_id)
    return TimerStateOut.from_state(state, service.clock.now_ms())
