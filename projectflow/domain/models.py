"""领域数据结构定义：分配引擎读取的用户/任务快照与通知值对象。"""

from __future__ import annotations

from dataclasses import dataclass

from projectflow.domain.enums import NotificationKind, TaskStatus


@dataclass(slots=True, frozen=True)
class UserSnapshot:
    """候选用户只读快照，仅包含分配引擎需要的字段。"""
    id: str
    role: str
    skills: tuple[str, ...]
    name: str = ""


@dataclass(slots=True, frozen=True)
class TaskSnapshot:
    """已有任务只读快照，用于统计候选人当前负载。"""
    id: str
    assignee_id: str | None
    status: str

    def is_open(self) -> bool:
        return self.status != TaskStatus.completed.value


@dataclass(slots=True, frozen=True)
class CandidateScore:
    """单次分配决策中的候选人得分，不落库。"""
    user_id: str
    score: int


@dataclass(slots=True, frozen=True)
class Notification:
    """待投递的邮件通知。"""
    kind: NotificationKind
    recipient: str
    subject: str
    html: str
