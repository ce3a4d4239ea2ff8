from __future__ import annotations

from fastapi import APIRouter, Depends

from ...service import WorkflowService
from ..deps import get_service
from ..schemas import HealthOut

router = APIRouter(prefix="/api/v1", tags=["system"])


@router.get("/health", response_model=HealthOut)
def health(service: WorkflowService = Depends(get_service)) -> HealthOut:
    return HealthOut(timer=service.state().status.value)
