"""数据库会话管理：按后端类型构造引擎、建表并提供会话工厂。"""

from __future__ import annotations

import logging
import time
from typing import Any

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from projectflow.config import get_settings
from projectflow.infra.db.models import Base

settings = get_settings()
logger = logging.getLogger(__name__)


def _is_sqlite(url: str) -> bool:
    return url.startswith("sqlite")


def build_engine(url: str) -> Engine:
    """创建引擎；SQLite 连接在 API 线程池与 eager worker 间共享，需关闭同线程检查。"""
    if not _is_sqlite(url):
        return create_engine(url, pool_pre_ping=True)

    sqlite_engine = create_engine(url, connect_args={"check_same_thread": False})

    @event.listens_for(sqlite_engine, "connect")
    def _enable_foreign_keys(dbapi_connection: Any, _connection_record: Any) -> None:
        # SQLite 默认不校验外键，任务的 project_id/assignee_id 依赖它兜底。
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    return sqlite_engine


engine = build_engine(settings.database_url)
SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False, class_=Session)


def init_db() -> None:
    """创建 users/projects/tasks 表（已存在则跳过）。"""
    started = time.perf_counter()
    tables = sorted(Base.metadata.tables)
    backend = engine.dialect.name
    logger.info(
        "db init started",
        extra={"event": "db.init.started", "external_service": backend, "op": "create_all"},
    )
    try:
        Base.metadata.create_all(bind=engine)
    except Exception as exc:
        logger.exception(
            "db init failed",
            extra={
                "event": "db.init.failed",
                "external_service": backend,
                "op": "create_all",
                "duration_ms": round((time.perf_counter() - started) * 1000, 2),
                "error_type": type(exc).__name__,
                "error": str(exc),
            },
        )
        raise
    logger.info(
        "db init succeeded",
        extra={
            "event": "db.init.succeeded",
            "external_service": backend,
            "op": "create_all",
            "duration_ms": round((time.perf_counter() - started) * 1000, 2),
            "payload_preview": {"tables": tables},
        },
    )
