from __future__ import annotations

from pathlib import Path

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from ...service import WorkflowService
from ..deps import get_service
from ..schemas import FileResult

router = APIRouter(prefix="/api/v1", tags=["report"])


class WeeklyReportRequest(BaseModel):
    year: int | None = None
    week: int | None = Field(default=None, ge=1, le=53)
    out_dir: str | None = None


@router.post("/report/weekly", response_model=FileResult)
def generate_report(payload: WeeklyReportRequest, service: WorkflowService = Depends(get_service)) -> FileResult:
    out_dir = Path(payload.out_dir) if payload.out_dir else Path(__file__).resolve().parents[2] / "out"
    report_path = service.weekly_report(out_dir, year=payload.year, week=payload.week)
    return FileResult(path=str(report_path))
