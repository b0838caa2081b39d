"""依赖容器模块，负责单例化创建仓储、安全组件、通知与应用服务对象。"""

from __future__ import annotations

from functools import lru_cache

from projectflow.application.notifications import NotificationDispatcher
from projectflow.application.service import ProjectFlowService
from projectflow.config import get_settings
from projectflow.domain.assignment import AssignmentEngine
from projectflow.infra.db.repository import ProjectRepository, TaskRepository, UserRepository
from projectflow.infra.db.session import SessionLocal
from projectflow.infra.notify.mailer import SmtpMailer
from projectflow.infra.security.passwords import PasswordHasher
from projectflow.infra.security.tokens import TokenService


@lru_cache(maxsize=1)
def get_user_repository() -> UserRepository:
    return UserRepository(SessionLocal)


@lru_cache(maxsize=1)
def get_project_repository() -> ProjectRepository:
    return ProjectRepository(SessionLocal)


@lru_cache(maxsize=1)
def get_task_repository() -> TaskRepository:
    return TaskRepository(SessionLocal)


@lru_cache(maxsize=1)
def get_token_service() -> TokenService:
    """获取令牌服务单例。"""
    settings = get_settings()
    return TokenService(
        secret=settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
        expire_days=settings.jwt_expire_days,
    )


@lru_cache(maxsize=1)
def get_password_hasher() -> PasswordHasher:
    return PasswordHasher(rounds=get_settings().bcrypt_rounds)


@lru_cache(maxsize=1)
def get_mailer() -> SmtpMailer:
    """获取 SMTP 发送器单例，worker 与 eager 模式共用。"""
    return SmtpMailer.from_settings(get_settings())


@lru_cache(maxsize=1)
def get_dispatcher() -> NotificationDispatcher:
    return NotificationDispatcher()


@lru_cache(maxsize=1)
def get_project_service() -> ProjectFlowService:
    """获取应用服务单例。"""
    return ProjectFlowService(
        settings=get_settings(),
        users=get_user_repository(),
        projects=get_project_repository(),
        tasks=get_task_repository(),
        engine=AssignmentEngine(),
        hasher=get_password_hasher(),
        tokens=get_token_service(),
        dispatcher=get_dispatcher(),
    )


def shutdown_container_resources() -> None:
    """清理依赖容器缓存，确保后续调用可重新构建全新实例。"""
    for provider in (
        get_project_service,
        get_dispatcher,
        get_mailer,
        get_password_hasher,
        get_token_service,
        get_task_repository,
        get_project_repository,
        get_user_repository,
    ):
        provider.cache_clear()
