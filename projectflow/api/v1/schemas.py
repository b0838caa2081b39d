"""API 请求/响应数据模型，字段以 camelCase 暴露给前端。"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from projectflow.domain.enums import Priority, UserRole


class _ApiModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


def _blank_to_none(value: object) -> object:
    # 前端表单未填写的日期/下拉项以空字符串提交。
    if isinstance(value, str) and not value.strip():
        return None
    return value


class RegisterRequest(_ApiModel):
    """注册接口请求模型。"""
    name: str = Field(min_length=1)
    email: str = Field(min_length=3)
    password: str = Field(min_length=1)
    role: UserRole = UserRole.member


class LoginRequest(_ApiModel):
    """登录接口请求模型。"""
    email: str
    password: str


class UserResponse(_ApiModel):
    """用户视图，不含口令哈希。"""
    id: str
    name: str
    email: str
    role: str
    skills: list[str]
    avatar: str
    created_at: datetime = Field(alias="createdAt")


class AuthResponse(_ApiModel):
    """注册/登录接口响应模型。"""
    user: UserResponse
    token: str


class ProjectCreateRequest(_ApiModel):
    """创建项目接口请求模型。"""
    name: str = Field(min_length=1)
    description: str | None = None
    deadline: date | None = None
    priority: Priority | None = None

    @field_validator("description", "deadline", "priority", mode="before")
    @classmethod
    def normalize_blank(cls, value: object) -> object:
        return _blank_to_none(value)


class ProjectResponse(_ApiModel):
    """项目视图。"""
    id: str
    name: str
    description: str | None
    status: str
    progress: int
    deadline: date | None
    priority: str | None
    manager_id: str = Field(alias="managerId")
    created_at: datetime = Field(alias="createdAt")


class TaskCreateRequest(_ApiModel):
    """创建任务接口请求模型；assigneeId 为空时走自动分配。"""
    title: str = Field(min_length=1)
    project_id: str = Field(alias="projectId", min_length=1)
    assignee_id: str | None = Field(default=None, alias="assigneeId")
    priority: Priority = Priority.medium
    due_date: date | None = Field(default=None, alias="dueDate")

    @field_validator("assignee_id", "due_date", mode="before")
    @classmethod
    def normalize_blank(cls, value: object) -> object:
        return _blank_to_none(value)


class TaskResponse(_ApiModel):
    """任务视图，aiScore 仅在自动分配时有值。"""
    id: str
    title: str
    project_id: str = Field(alias="projectId")
    assignee_id: str | None = Field(alias="assigneeId")
    status: str
    priority: str | None
    due_date: date | None = Field(alias="dueDate")
    estimated_hours: int | None = Field(alias="estimatedHours")
    completed_hours: int = Field(alias="completedHours")
    ai_score: int | None = Field(alias="aiScore")
    created_at: datetime = Field(alias="createdAt")


def to_user_response(user: Any) -> UserResponse:
    return UserResponse(
        id=user.id,
        name=user.name,
        email=user.email,
        role=user.role,
        skills=list(user.skills or []),
        avatar=user.avatar,
        created_at=user.created_at,
    )


def to_project_response(project: Any) -> ProjectResponse:
    return ProjectResponse(
        id=project.id,
        name=project.name,
        description=project.description,
        status=project.status,
        progress=project.progress,
        deadline=project.deadline,
        priority=project.priority,
        manager_id=project.manager_id,
        created_at=project.created_at,
    )


def to_task_response(task: Any) -> TaskResponse:
    return TaskResponse(
        id=task.id,
        title=task.title,
        project_id=task.project_id,
        assignee_id=task.assignee_id,
        status=task.status,
        priority=task.priority,
        due_date=task.due_date,
        estimated_hours=task.estimated_hours,
        completed_hours=task.completed_hours,
        ai_score=task.ai_score,
        created_at=task.created_at,
    )
