"""项目接口：列出项目与创建项目。"""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, status

from projectflow.api.deps import CurrentUser, ServiceDep
from projectflow.api.v1.schemas import ProjectCreateRequest, ProjectResponse, to_project_response
from projectflow.infra.logging.context import bind_log_context

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/projects", response_model=list[ProjectResponse])
def list_projects(user: CurrentUser, service: ServiceDep) -> list[ProjectResponse]:
    with bind_log_context(user_id=user.id):
        return [to_project_response(item) for item in service.list_projects()]


@router.post("/projects", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
def create_project(payload: ProjectCreateRequest, user: CurrentUser, service: ServiceDep) -> ProjectResponse:
    """创建项目，当前用户作为项目负责人。"""
    with bind_log_context(user_id=user.id):
        logger.info("create_project requested", extra={"event": "api.project.create.requested"})
        try:
            project = service.create_project(
                manager=user,
                name=payload.name,
                description=payload.description,
                deadline=payload.deadline,
                priority=payload.priority,
            )
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return to_project_response(project)
