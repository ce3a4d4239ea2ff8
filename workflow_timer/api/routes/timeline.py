from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends

from ...service import WorkflowService
from ...timeline import ALL_GROUPS
from ..deps import get_service
from ..schemas import RatioChartOut, TimelineSliceOut

router = APIRouter(prefix="/api/v1", tags=["timeline"])


@router.get("/timeline", response_model=list[TimelineSliceOut])
def timeline(
    day: date | None = None,
    group_id: str = ALL_GROUPS,
    service: WorkflowService = Depends(get_service),
) -> list[TimelineSliceOut]:
    return [TimelineSliceOut.from_slice(item) for item in service.timeline(day=day, group_id=group_id)]


@router.get("/timeline/ratio", response_model=RatioChartOut)
def ratio(
    day: date | None = None,
    group_id: str | None = None,
    service: WorkflowService = Depends(get_service),
) -> RatioChartOut:
    return RatioChartOut.from_chart(service.ratio_chart(day=day, group_id=group_id))
