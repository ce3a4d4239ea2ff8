from __future__ import annotations

from fastapi import Request

from ..service import WorkflowService


def get_service(request: Request) -> WorkflowService:
    return request.app.state.service
