"""仓储实现：封装用户、项目与任务的持久化读写。"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from projectflow.domain.enums import ProjectStatus, TaskStatus
from projectflow.infra.db.models import ProjectORM, TaskORM, UserORM


@dataclass(slots=True)
class NewTaskRecord:
    """新建任务的写库参数。"""
    title: str
    project_id: str
    assignee_id: str | None
    priority: str | None
    due_date: date | None
    estimated_hours: int
    ai_score: int | None = None


class UserRepository:
    """用户仓储，提供目录查询与注册写入。"""
    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def get(self, user_id: str) -> UserORM | None:
        with self._session_factory() as db:
            return db.get(UserORM, user_id)

    def get_by_email(self, email: str) -> UserORM | None:
        """按邮箱查询用户。"""
        with self._session_factory() as db:
            return db.execute(select(UserORM).where(UserORM.email == email)).scalars().first()

    def list_all(self) -> list[UserORM]:
        with self._session_factory() as db:
            stmt = select(UserORM).order_by(UserORM.created_at.asc(), UserORM.id.asc())
            return list(db.execute(stmt).scalars().all())

    def list_by_role(self, role: str) -> list[UserORM]:
        """按角色过滤用户，结果按创建时间稳定排序，作为分配同分时的先后依据。"""
        with self._session_factory() as db:
            stmt = (
                select(UserORM)
                .where(UserORM.role == role)
                .order_by(UserORM.created_at.asc(), UserORM.id.asc())
            )
            return list(db.execute(stmt).scalars().all())

    def create(
        self,
        *,
        name: str,
        email: str,
        password_hash: str,
        role: str,
        skills: list[str],
        avatar: str,
    ) -> UserORM:
        with self._session_factory.begin() as db:
            user = UserORM(
                name=name,
                email=email,
                password_hash=password_hash,
                role=role,
                skills=skills,
                avatar=avatar,
            )
            db.add(user)
            db.flush()
            return user


class ProjectRepository:
    """项目仓储。"""
    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def get(self, project_id: str) -> ProjectORM | None:
        with self._session_factory() as db:
            return db.get(ProjectORM, project_id)

    def list_all(self) -> list[ProjectORM]:
        with self._session_factory() as db:
            stmt = select(ProjectORM).order_by(ProjectORM.created_at.asc(), ProjectORM.id.asc())
            return list(db.execute(stmt).scalars().all())

    def create(
        self,
        *,
        name: str,
        description: str | None,
        deadline: date | None,
        priority: str | None,
        manager_id: str,
    ) -> ProjectORM:
        """新建项目，进度与状态使用初始值。"""
        with self._session_factory.begin() as db:
            project = ProjectORM(
                name=name,
                description=description,
                deadline=deadline,
                priority=priority,
                manager_id=manager_id,
                progress=0,
                status=ProjectStatus.active.value,
            )
            db.add(project)
            db.flush()
            return project


class TaskRepository:
    """任务仓储。"""
    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def list_all(self) -> list[TaskORM]:
        """返回全部任务，不做过滤。"""
        with self._session_factory() as db:
            stmt = select(TaskORM).order_by(TaskORM.created_at.asc(), TaskORM.id.asc())
            return list(db.execute(stmt).scalars().all())

    def create(self, record: NewTaskRecord) -> TaskORM:
        """写入新任务，状态固定为 pending，已完成工时为 0。"""
        with self._session_factory.begin() as db:
            task = TaskORM(
                title=record.title,
                project_id=record.project_id,
                assignee_id=record.assignee_id,
                priority=record.priority,
                due_date=record.due_date,
                status=TaskStatus.pending.value,
                estimated_hours=record.estimated_hours,
                completed_hours=0,
                ai_score=record.ai_score,
            )
            db.add(task)
            db.flush()
            return task
