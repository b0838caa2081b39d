"""Celery 应用配置：通知队列、SMTP 超时联动、eager 开关与进程退出时的资源回收。"""

from __future__ import annotations

import logging
import sys

from celery import Celery
from celery.signals import worker_process_shutdown

from projectflow.application.container import shutdown_container_resources
from projectflow.config import get_settings
from projectflow.infra.logging.setup import configure_logging, shutdown_logging

settings = get_settings()
logger = logging.getLogger(__name__)

NOTIFICATION_QUEUE = "notifications"

# 仅 `celery worker` 进程自行初始化日志；API 进程与 eager 模式沿用 api 角色的配置。
_is_worker_process = "worker" in " ".join(sys.argv[1:]).lower()
if _is_worker_process:
    configure_logging(settings, process_role="worker")

celery_app = Celery("projectflow", broker=settings.redis_url, backend=settings.redis_url)
celery_app.conf.update(
    imports=("projectflow.worker.tasks",),
    task_default_queue=NOTIFICATION_QUEUE,
    task_routes={"projectflow.worker.tasks.*": {"queue": NOTIFICATION_QUEUE}},
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    broker_connection_retry_on_startup=True,
    # 单封邮件的耗时上限跟随 SMTP 超时。
    task_soft_time_limit=2 * settings.smtp_timeout_seconds,
    task_time_limit=3 * settings.smtp_timeout_seconds,
    task_default_retry_delay=30,
    result_expires=24 * 3600,
)

if settings.celery_task_always_eager:
    celery_app.conf.update(task_always_eager=True, task_eager_propagates=True)
    logger.info(
        "celery eager mode enabled",
        extra={"event": "celery.config.eager", "external_service": "celery", "op": NOTIFICATION_QUEUE},
    )
elif _is_worker_process:
    logger.info(
        "celery worker configured",
        extra={
            "event": "celery.config.loaded",
            "external_service": "redis",
            "op": NOTIFICATION_QUEUE,
            "payload_preview": {"broker": settings.redis_url, "smtp_configured": bool(settings.smtp_host)},
        },
    )


@worker_process_shutdown.connect
def _release_worker_resources(**_: object) -> None:
    """Worker 子进程退出时清空容器缓存（含 SMTP 发送器）并停止日志监听。"""
    shutdown_container_resources()
    shutdown_logging()
