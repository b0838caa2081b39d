"""领域枚举定义：统一用户角色、任务状态、优先级与项目状态取值。"""

from __future__ import annotations

from enum import Enum


class UserRole(str, Enum):
    """用户角色枚举。"""
    admin = "admin"
    manager = "manager"
    member = "member"


class TaskStatus(str, Enum):
    """任务生命周期状态枚举。"""
    pending = "pending"
    in_progress = "in-progress"
    completed = "completed"


class Priority(str, Enum):
    """任务与项目优先级枚举。"""
    high = "high"
    medium = "medium"
    low = "low"


class ProjectStatus(str, Enum):
    """项目状态枚举。"""
    active = "active"
    pending = "pending"
    completed = "completed"


class NotificationKind(str, Enum):
    """通知类型枚举。"""
    welcome = "welcome"
    project_created = "project_created"
    task_assigned = "task_assigned"


# 注册时按角色写入的默认技能标签。
DEFAULT_SKILLS_BY_ROLE: dict[UserRole, tuple[str, ...]] = {
    UserRole.admin: ("leadership", "strategy"),
    UserRole.manager: ("project-management", "coordination"),
    UserRole.member: ("development", "implementation"),
}
