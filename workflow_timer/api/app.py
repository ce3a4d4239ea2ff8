from __future__ import annotations

from datetime import tzinfo
import logging
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .. import __version__
from ..clock import Clock
from ..db import WorkflowDB, default_db_path
from ..service import WorkflowService
from ..sessions import SessionNotFoundError, SessionStateError
from ..settings import load_settings
from .routes.groups import router as groups_router
from .routes.health import router as health_router
from .routes.meta import router as meta_router
from .routes.report import router as report_router
from .routes.sessions import router as sessions_router
from .routes.stats import router as stats_router
from .routes.timeline import router as timeline_router
from .routes.timer import router as timer_router

logger = logging.getLogger(__name__)


def create_app(
    db_path: Path | None = None,
    settings_path: Path | None = None,
    clock: Clock | None = None,
    tz: tzinfo | None = None,
) -> FastAPI:
    resolved_db = Path(db_path or default_db_path())
    settings = load_settings(settings_path)
    service = WorkflowService(WorkflowDB(resolved_db), clock=clock, settings=settings, tz=tz)

    app = FastAPI(title="Workflow Timer API", version=__version__)
    app.state.db_path = str(resolved_db)
    app.state.service = service

    app.add_exception_handler(SessionNotFoundError, _not_found)
    app.add_exception_handler(IndexError, _not_found)
    app.add_exception_handler(SessionStateError, _conflict)
    app.add_exception_handler(ValueError, _bad_request)

    app.include_router(health_router)
    app.include_router(meta_router)
    app.include_router(sessions_router)
    app.include_router(timer_router)
    app.include_router(timeline_router)
    app.include_router(stats_router)
    app.include_router(groups_router)
    app.include_router(report_router)

    logger.debug("API created for %s", resolved_db)
    return app


def create_default_app() -> FastAPI:
    """Factory for `uvicorn workflow_timer.api.app:create_default_app --factory`."""
    return create_app(db_path=default_db_path())


async def _not_found(request: Request, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": str(exc)})


async def _conflict(request: Request, exc: Exception) -> JSONResponse:
    logger.info("rejected %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=409, content={"detail": str(exc)})


async def _bad_request(request: Request, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": str(exc)})
