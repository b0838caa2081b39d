"""异步任务定义：投递通知邮件并对连接类错误执行退避重试。"""

from __future__ import annotations

import logging
from dataclasses import asdict
from typing import Any

from projectflow.application.container import get_mailer
from projectflow.domain.enums import NotificationKind
from projectflow.domain.models import Notification
from projectflow.infra.logging.context import bind_log_context
from projectflow.infra.notify.mailer import TRANSIENT_SMTP_ERRORS
from projectflow.worker.celery_app import celery_app

logger = logging.getLogger(__name__)


@celery_app.task(bind=True, name="projectflow.worker.tasks.send_notification_task")
def send_notification_task(self, kind: str, recipient: str, subject: str, html: str) -> dict[str, Any]:
    """发送单封通知邮件，SMTP 连接错误时按退避策略重试。"""
    notification = Notification(kind=NotificationKind(kind), recipient=recipient, subject=subject, html=html)
    with bind_log_context(worker_task_id=self.request.id):
        logger.info(
            "notification task started",
            extra={
                "event": "notification.task.started",
                "retry": self.request.retries,
                "payload_preview": {"kind": kind, "recipient": recipient},
            },
        )
        try:
            result = get_mailer().send(notification)
        except TRANSIENT_SMTP_ERRORS as exc:
            # 首次快速重试，后续拉长退避。
            countdown = 30 if self.request.retries == 0 else 120
            logger.warning(
                "notification task transient smtp error",
                extra={
                    "event": "notification.task.retrying",
                    "retry": self.request.retries,
                    "external_service": "smtp",
                    "op": "mailer.send",
                    "payload_preview": {"countdown": countdown},
                    "error_type": type(exc).__name__,
                    "error": str(exc),
                },
            )
            raise self.retry(exc=exc, max_retries=2, countdown=countdown)
        except Exception as exc:
            logger.exception(
                "notification task failed",
                extra={"event": "notification.task.failed", "error_type": type(exc).__name__, "error": str(exc)},
            )
            raise
        logger.info(
            "notification task finished",
            extra={"event": "notification.task.succeeded" if result.success else "notification.task.undelivered"},
        )
        return asdict(result)
