from __future__ import annotations

import platform
from pathlib import Path

from fastapi import APIRouter, Depends, Request

from ... import __version__
from ...service import WorkflowService
from ..deps import get_service
from ..schemas import MetaOut

router = APIRouter(prefix="/api/v1", tags=["system"])


@router.get("/meta", response_model=MetaOut)
def meta(request: Request, service: WorkflowService = Depends(get_service)) -> MetaOut:
    return MetaOut(
        app="Workflow Timer",
        version=__version__,
        db_path=str(Path(request.app.state.db_path)),
        platform=platform.platform(),
        day_start_hour=service.settings.day_start_hour,
        break_threshold_ms=service.settings.break_threshold_ms,
    )
