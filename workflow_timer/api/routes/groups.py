from __future__ import annotations

from fastapi import APIRouter, Depends

from ...service import WorkflowService
from ..deps import get_service
from ..schemas import GroupModel

router = APIRouter(prefix="/api/v1", tags=["groups"])


@router.get("/groups", response_model=list[GroupModel])
def list_groups(service: WorkflowService = Depends(get_service)) -> list[GroupModel]:
    return [GroupModel.from_group(group) for group in service.groups()]


@router.put("/groups", response_model=list[GroupModel])
def save_groups(payload: list[GroupModel], service: WorkflowService = Depends(get_service)) -> list[GroupModel]:
    saved = service.save_groups([item.to_group() for item in payload])
    return [GroupModel.from_group(group) for group in saved]
