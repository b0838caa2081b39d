"""测试公共配置：导入应用前指定临时数据库、日志目录与 eager 队列，并提供仓储/服务夹具。"""

from __future__ import annotations

import os
import random
import tempfile
from pathlib import Path

_TEST_ROOT = Path(tempfile.mkdtemp(prefix="projectflow-tests-"))
os.environ["DATABASE_URL"] = f"sqlite:///{_TEST_ROOT / 'default.db'}"
os.environ["LOG_DIR"] = str(_TEST_ROOT / "logs")
os.environ["CELERY_TASK_ALWAYS_EAGER"] = "true"
os.environ["JWT_SECRET"] = "projectflow-test-secret-0123456789abcdef"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ.pop("SMTP_HOST", None)

import pytest  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402

from projectflow.application.notifications import NotificationDispatcher  # noqa: E402
from projectflow.application.service import ProjectFlowService  # noqa: E402
from projectflow.config import get_settings  # noqa: E402
from projectflow.domain.assignment import AssignmentEngine  # noqa: E402
from projectflow.domain.models import Notification  # noqa: E402
from projectflow.infra.db.models import Base  # noqa: E402
from projectflow.infra.db.repository import ProjectRepository, TaskRepository, UserRepository  # noqa: E402
from projectflow.infra.security.passwords import PasswordHasher  # noqa: E402
from projectflow.infra.security.tokens import TokenService  # noqa: E402


class RecordingQueue:
    """测试用队列桩，记录入队的通知并返回伪任务 ID。"""
    def __init__(self) -> None:
        self.sent: list[Notification] = []

    def __call__(self, notification: Notification) -> str:
        self.sent.append(notification)
        return f"task-{len(self.sent)}"


@pytest.fixture()
def session_factory(tmp_path: Path) -> sessionmaker[Session]:
    engine = create_engine(f"sqlite:///{tmp_path / 'repo.db'}")
    Base.metadata.create_all(bind=engine)
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False, class_=Session)


@pytest.fixture()
def users(session_factory: sessionmaker[Session]) -> UserRepository:
    return UserRepository(session_factory)


@pytest.fixture()
def projects(session_factory: sessionmaker[Session]) -> ProjectRepository:
    return ProjectRepository(session_factory)


@pytest.fixture()
def tasks(session_factory: sessionmaker[Session]) -> TaskRepository:
    return TaskRepository(session_factory)


@pytest.fixture()
def outbox() -> RecordingQueue:
    return RecordingQueue()


@pytest.fixture()
def token_service() -> TokenService:
    return TokenService(secret="projectflow-test-secret-0123456789abcdef", expire_days=7)


@pytest.fixture()
def service(
    users: UserRepository,
    projects: ProjectRepository,
    tasks: TaskRepository,
    outbox: RecordingQueue,
    token_service: TokenService,
) -> ProjectFlowService:
    return ProjectFlowService(
        settings=get_settings(),
        users=users,
        projects=projects,
        tasks=tasks,
        engine=AssignmentEngine(),
        hasher=PasswordHasher(rounds=4),
        tokens=token_service,
        dispatcher=NotificationDispatcher(enqueue=outbox),
        rng=random.Random(7),
    )
