from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Query

from ...reporting import RANGE_PRESETS
from ...service import WorkflowService
from ..deps import get_service
from ..schemas import DayStatsOut, RangeStatsOut

router = APIRouter(prefix="/api/v1", tags=["stats"])

_PRESET_PATTERN = "^(" + "|".join(RANGE_PRESETS) + ")$"


@router.get("/stats/today", response_model=DayStatsOut)
def today_stats(group_id: str | None = None, service: WorkflowService = Depends(get_service)) -> DayStatsOut:
    return DayStatsOut.from_stats(service.day_stats(group_id=group_id))


@router.get("/stats/range", response_model=RangeStatsOut)
def range_stats(
    preset: str = Query(default="week", pattern=_PRESET_PATTERN),
    start: date | None = None,
    end: date | None = None,
    group_id: str | None = None,
    service: WorkflowService = Depends(get_service),
) -> RangeStatsOut:
    stats = service.range_stats(preset, start=start, end=end, group_id=group_id)
    return RangeStatsOut.from_stats(stats)
