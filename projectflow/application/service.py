"""项目/任务服务门面：处理注册登录、项目与任务创建、自动分配与通知。"""

from __future__ import annotations

import logging
import random
from datetime import date

from sqlalchemy.exc import IntegrityError

from projectflow.application.notifications import (
    DispatchReport,
    NotificationDispatcher,
    project_created_notification,
    task_assigned_notification,
    welcome_notification,
)
from projectflow.config import Settings
from projectflow.domain.assignment import AssignmentEngine, coerce_priority
from projectflow.domain.enums import DEFAULT_SKILLS_BY_ROLE, Priority, UserRole
from projectflow.domain.errors import AuthenticationError, DuplicateEmailError
from projectflow.domain.models import TaskSnapshot, UserSnapshot
from projectflow.infra.db.models import ProjectORM, TaskORM, UserORM
from projectflow.infra.db.repository import NewTaskRecord, ProjectRepository, TaskRepository, UserRepository
from projectflow.infra.security.passwords import PasswordHasher
from projectflow.infra.security.tokens import TokenService

logger = logging.getLogger(__name__)


def avatar_initials(name: str) -> str:
    """取姓名各段首字母并大写。"""
    return "".join(part[0] for part in name.split()).upper()


def to_user_snapshot(user: UserORM) -> UserSnapshot:
    return UserSnapshot(id=user.id, role=user.role, skills=tuple(user.skills or ()), name=user.name)


def to_task_snapshot(task: TaskORM) -> TaskSnapshot:
    return TaskSnapshot(id=task.id, assignee_id=task.assignee_id, status=task.status)


class ProjectFlowService:
    """应用服务门面，对外提供账户、项目与任务相关能力。"""
    def __init__(
        self,
        *,
        settings: Settings,
        users: UserRepository,
        projects: ProjectRepository,
        tasks: TaskRepository,
        engine: AssignmentEngine,
        hasher: PasswordHasher,
        tokens: TokenService,
        dispatcher: NotificationDispatcher,
        rng: random.Random | None = None,
    ) -> None:
        self._settings = settings
        self._users = users
        self._projects = projects
        self._tasks = tasks
        self._engine = engine
        self._hasher = hasher
        self._tokens = tokens
        self._dispatcher = dispatcher
        self._rng = rng or random.Random()

    def register(self, *, name: str, email: str, password: str, role: UserRole | str) -> tuple[UserORM, str]:
        """注册账户：按角色写入默认技能，签发令牌并发送欢迎邮件。"""
        name = name.strip()
        email = email.strip().lower()
        if not name:
            raise ValueError("name is required")
        if not email:
            raise ValueError("email is required")
        resolved_role = UserRole(role)
        if self._users.get_by_email(email) is not None:
            raise DuplicateEmailError(email)

        try:
            user = self._users.create(
                name=name,
                email=email,
                password_hash=self._hasher.hash(password),
                role=resolved_role.value,
                skills=list(DEFAULT_SKILLS_BY_ROLE[resolved_role]),
                avatar=avatar_initials(name),
            )
        except IntegrityError as exc:
            # 并发注册同一邮箱时由唯一索引兜底。
            raise DuplicateEmailError(email) from exc

        logger.info(
            "user registered",
            extra={"event": "auth.user.registered", "user_id": user.id, "payload_preview": {"role": user.role}},
        )
        self._dispatcher.dispatch([welcome_notification(name=user.name, email=user.email, app_name=self._settings.app_name)])
        return user, self._tokens.issue(user.id, user.role)

    def login(self, *, email: str, password: str) -> tuple[UserORM, str]:
        """校验凭据并签发令牌。"""
        user = self._users.get_by_email(email.strip().lower())
        if user is None or not self._hasher.verify(password, user.password_hash):
            logger.info("login rejected", extra={"event": "auth.login.rejected"})
            raise AuthenticationError("Invalid credentials")
        logger.info("login succeeded", extra={"event": "auth.login.succeeded", "user_id": user.id})
        return user, self._tokens.issue(user.id, user.role)

    def authenticate(self, token: str) -> UserORM:
        """解析令牌并返回当前用户。"""
        claims = self._tokens.decode(token)
        user = self._users.get(claims.user_id)
        if user is None:
            raise AuthenticationError("token subject no longer exists")
        return user

    def list_users(self) -> list[UserORM]:
        return self._users.list_all()

    def list_projects(self) -> list[ProjectORM]:
        return self._projects.list_all()

    def list_tasks(self) -> list[TaskORM]:
        return self._tasks.list_all()

    def create_project(
        self,
        *,
        manager: UserORM,
        name: str,
        description: str | None = None,
        deadline: date | None = None,
        priority: Priority | str | None = None,
    ) -> ProjectORM:
        """创建项目并通知全部 member。"""
        if not name.strip():
            raise ValueError("project name is required")
        resolved_priority = coerce_priority(priority).value if priority is not None else None
        project = self._projects.create(
            name=name.strip(),
            description=description,
            deadline=deadline,
            priority=resolved_priority,
            manager_id=manager.id,
        )
        logger.info(
            "project created",
            extra={"event": "project.created", "payload_preview": {"project_id": project.id, "name": project.name}},
        )
        members = self._users.list_by_role(UserRole.member.value)
        self._dispatcher.dispatch(
            project_created_notification(project_name=project.name, recipient=member.email) for member in members
        )
        return project

    def create_task(
        self,
        *,
        title: str,
        project_id: str,
        priority: Priority | str,
        due_date: date | None = None,
        assignee_id: str | None = None,
    ) -> TaskORM:
        """创建任务；未指定负责人时由分配引擎从 member 中挑选。"""
        if not title.strip():
            raise ValueError("task title is required")
        resolved_priority = coerce_priority(priority)
        if self._projects.get(project_id) is None:
            raise KeyError(f"project not found: {project_id}")

        ai_score: int | None = None
        if assignee_id:
            assignee = self._users.get(assignee_id)
            if assignee is None:
                raise KeyError(f"assignee not found: {assignee_id}")
        else:
            assignee, ai_score = self._auto_assign(title, resolved_priority)

        task = self._tasks.create(
            NewTaskRecord(
                title=title.strip(),
                project_id=project_id,
                assignee_id=assignee.id,
                priority=resolved_priority.value,
                due_date=due_date,
                estimated_hours=self._rng.randint(self._settings.estimated_hours_min, self._settings.estimated_hours_max),
                ai_score=ai_score,
            )
        )
        logger.info(
            "task created",
            extra={
                "event": "task.created",
                "payload_preview": {"task_id": task.id, "assignee_id": assignee.id, "ai_assigned": ai_score is not None},
            },
        )
        self.notify_assignee(task, assignee)
        return task

    def notify_assignee(self, task: TaskORM, assignee: UserORM) -> DispatchReport:
        return self._dispatcher.dispatch([task_assigned_notification(task_title=task.title, recipient=assignee.email)])

    def _auto_assign(self, title: str, priority: Priority) -> tuple[UserORM, int]:
        # 每次调用都重新读取用户与任务；并发请求可能读到相同负载而分给同一人。
        candidates = [to_user_snapshot(user) for user in self._users.list_by_role(UserRole.member.value)]
        existing = [to_task_snapshot(task) for task in self._tasks.list_all()]
        choice = self._engine.select(title, priority, candidates, existing)
        assignee = self._users.get(choice.user_id)
        if assignee is None:
            raise RuntimeError(f"selected assignee disappeared: {choice.user_id}")
        logger.info(
            "task assignee selected",
            extra={
                "event": "task.assignment.selected",
                "payload_preview": {
                    "user_id": choice.user_id,
                    "score": choice.score,
                    "candidates": len(candidates),
                    "priority": priority.value,
                },
            },
        )
        return assignee, choice.score
