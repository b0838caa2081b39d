"""任务接口：列出任务与创建任务（含自动分配）。"""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, status

from projectflow.api.deps import CurrentUser, ServiceDep
from projectflow.api.v1.schemas import TaskCreateRequest, TaskResponse, to_task_response
from projectflow.domain.errors import InvalidPriority, NoEligibleCandidates
from projectflow.infra.logging.context import bind_log_context

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/tasks", response_model=list[TaskResponse])
def list_tasks(user: CurrentUser, service: ServiceDep) -> list[TaskResponse]:
    with bind_log_context(user_id=user.id):
        return [to_task_response(item) for item in service.list_tasks()]


@router.post("/tasks", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
def create_task(payload: TaskCreateRequest, user: CurrentUser, service: ServiceDep) -> TaskResponse:
    """创建任务；未提供 assigneeId 时由分配引擎挑选负责人。"""
    with bind_log_context(user_id=user.id):
        logger.info(
            "create_task requested",
            extra={
                "event": "api.task.create.requested",
                "payload_preview": {"project_id": payload.project_id, "explicit_assignee": bool(payload.assignee_id)},
            },
        )
        try:
            task = service.create_task(
                title=payload.title,
                project_id=payload.project_id,
                priority=payload.priority,
                due_date=payload.due_date,
                assignee_id=payload.assignee_id,
            )
        except NoEligibleCandidates as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc
        except InvalidPriority as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        except KeyError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        logger.info(
            "create_task succeeded",
            extra={"event": "api.task.create.succeeded", "payload_preview": {"task_id": task.id, "assignee_id": task.assignee_id}},
        )
        return to_task_response(task)
