"""通知编排：构造业务邮件并逐条投递到任务队列，记录每条的入队结果。"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from html import escape

from projectflow.domain.enums import NotificationKind
from projectflow.domain.models import Notification

logger = logging.getLogger(__name__)


def welcome_notification(*, name: str, email: str, app_name: str) -> Notification:
    return Notification(
        kind=NotificationKind.welcome,
        recipient=email,
        subject=f"Welcome to {app_name}",
        html=f"<p>Hi {escape(name)}, your {escape(app_name)} account is ready.</p>",
    )


def project_created_notification(*, project_name: str, recipient: str) -> Notification:
    return Notification(
        kind=NotificationKind.project_created,
        recipient=recipient,
        subject=f"New Project: {project_name}",
        html=f'<p>A new project "{escape(project_name)}" has been created.</p>',
    )


def task_assigned_notification(*, task_title: str, recipient: str) -> Notification:
    return Notification(
        kind=NotificationKind.task_assigned,
        recipient=recipient,
        subject=f"New Task Assigned: {task_title}",
        html=f'<p>You have been assigned a new task: "{escape(task_title)}"</p>',
    )


@dataclass(slots=True)
class DispatchOutcome:
    """单条通知的入队结果。"""
    kind: str
    recipient: str
    queued: bool
    worker_task_id: str | None = None
    error: str | None = None


@dataclass(slots=True)
class DispatchReport:
    """一批通知的入队汇总。"""
    outcomes: list[DispatchOutcome] = field(default_factory=list)

    @property
    def failed(self) -> list[DispatchOutcome]:
        return [item for item in self.outcomes if not item.queued]

    @property
    def queued_count(self) -> int:
        return sum(1 for item in self.outcomes if item.queued)


def _enqueue_with_celery(notification: Notification) -> str:
    from projectflow.worker.tasks import send_notification_task

    result = send_notification_task.delay(
        notification.kind.value,
        notification.recipient,
        notification.subject,
        notification.html,
    )
    return result.id


class NotificationDispatcher:
    """逐条入队通知；单条失败只记录，不影响其余通知和调用方。"""

    def __init__(self, enqueue: Callable[[Notification], str] | None = None) -> None:
        self._enqueue = enqueue or _enqueue_with_celery

    def dispatch(self, notifications: Iterable[Notification]) -> DispatchReport:
        report = DispatchReport()
        for notification in notifications:
            try:
                worker_task_id = self._enqueue(notification)
            except Exception as exc:
                logger.error(
                    "notification dispatch failed",
                    extra={
                        "event": "notification.dispatch.failed",
                        "external_service": "celery",
                        "op": "enqueue",
                        "error_type": type(exc).__name__,
                        "error": str(exc),
                        "payload_preview": {"kind": notification.kind.value, "recipient": notification.recipient},
                    },
                )
                report.outcomes.append(
                    DispatchOutcome(
                        kind=notification.kind.value,
                        recipient=notification.recipient,
                        queued=False,
                        error=f"{type(exc).__name__}: {exc}",
                    )
                )
                continue
            report.outcomes.append(
                DispatchOutcome(
                    kind=notification.kind.value,
                    recipient=notification.recipient,
                    queued=True,
                    worker_task_id=worker_task_id,
                )
            )
        if report.outcomes:
            logger.info(
                "notification batch dispatched",
                extra={
                    "event": "notification.dispatch.completed",
                    "payload_preview": {"queued": report.queued_count, "failed": len(report.failed)},
                },
            )
        return report
