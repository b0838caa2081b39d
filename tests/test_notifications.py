"""通知测试：验证逐条入队的失败隔离、SMTP 发送与未配置降级行为。"""

from __future__ import annotations

import smtplib

import pytest

from projectflow.application.notifications import (
    NotificationDispatcher,
    project_created_notification,
    task_assigned_notification,
)
from projectflow.domain.models import Notification
from projectflow.infra.notify.mailer import SmtpMailer


class _FlakyQueue:
    """对指定收件人入队失败的队列桩。"""
    def __init__(self, failing: set[str]) -> None:
        self._failing = failing
        self.accepted: list[str] = []

    def __call__(self, notification: Notification) -> str:
        if notification.recipient in self._failing:
            raise ConnectionError("broker unavailable")
        self.accepted.append(notification.recipient)
        return f"id-{notification.recipient}"


class _FakeSMTP:
    """记录 sendmail 调用的 SMTP 桩。"""
    instances: list[_FakeSMTP] = []

    def __init__(self, host: str, port: int, timeout: int) -> None:
        self.host = host
        self.port = port
        self.sent: list[tuple[str, list[str], str]] = []
        self.logged_in: tuple[str, str] | None = None
        self.tls = False
        _FakeSMTP.instances.append(self)

    def __enter__(self) -> _FakeSMTP:
        return self

    def __exit__(self, *exc: object) -> None:
        return None

    def starttls(self, context: object = None) -> None:
        self.tls = True

    def login(self, username: str, password: str) -> None:
        self.logged_in = (username, password)

    def sendmail(self, from_addr: str, to_addrs: list[str], msg: str) -> None:
        self.sent.append((from_addr, to_addrs, msg))


def _mailer(host: str | None = "smtp.example.com") -> SmtpMailer:
    return SmtpMailer(
        host=host,
        port=2525,
        username="mailer",
        password="pw",
        use_tls=True,
        from_email="noreply@example.com",
        from_name="ProjectFlow",
    )


def test_dispatch_isolates_single_failure() -> None:
    """单条入队失败只记入报告，其余通知照常入队。"""
    queue = _FlakyQueue(failing={"b@example.com"})
    dispatcher = NotificationDispatcher(enqueue=queue)
    batch = [
        project_created_notification(project_name="Apollo", recipient=address)
        for address in ("a@example.com", "b@example.com", "c@example.com")
    ]

    report = dispatcher.dispatch(batch)

    assert queue.accepted == ["a@example.com", "c@example.com"]
    assert report.queued_count == 2
    assert [item.recipient for item in report.failed] == ["b@example.com"]
    assert "broker unavailable" in (report.failed[0].error or "")


def test_notification_html_is_escaped() -> None:
    notification = task_assigned_notification(task_title="<script>x</script>", recipient="a@example.com")

    assert "<script>" not in notification.html
    assert notification.subject == "New Task Assigned: <script>x</script>"


def test_mailer_without_host_reports_not_configured() -> None:
    result = _mailer(host=None).send(task_assigned_notification(task_title="T", recipient="a@example.com"))

    assert result.success is False
    assert result.error_code == "NOT_CONFIGURED"


def test_mailer_sends_over_smtp(monkeypatch: pytest.MonkeyPatch) -> None:
    _FakeSMTP.instances.clear()
    monkeypatch.setattr(smtplib, "SMTP", _FakeSMTP)

    result = _mailer().send(task_assigned_notification(task_title="Ship it", recipient="dev@example.com"))

    assert result.success is True
    server = _FakeSMTP.instances[-1]
    assert server.tls is True
    assert server.logged_in == ("mailer", "pw")
    from_addr, to_addrs, raw = server.sent[0]
    assert from_addr == "noreply@example.com"
    assert to_addrs == ["dev@example.com"]
    assert "Subject: New Task Assigned: Ship it" in raw


def test_mailer_reraises_transient_errors(monkeypatch: pytest.MonkeyPatch) -> None:
    """连接断开应向上抛出，交由 worker 重试。"""
    class _Disconnecting(_FakeSMTP):
        def sendmail(self, from_addr: str, to_addrs: list[str], msg: str) -> None:
            raise smtplib.SMTPServerDisconnected("gone")

    monkeypatch.setattr(smtplib, "SMTP", _Disconnecting)

    with pytest.raises(smtplib.SMTPServerDisconnected):
        _mailer().send(task_assigned_notification(task_title="T", recipient="dev@example.com"))


def test_mailer_reports_refused_recipient(monkeypatch: pytest.MonkeyPatch) -> None:
    class _Refusing(_FakeSMTP):
        def sendmail(self, from_addr: str, to_addrs: list[str], msg: str) -> None:
            raise smtplib.SMTPRecipientsRefused({to_addrs[0]: (550, b"no such user")})

    monkeypatch.setattr(smtplib, "SMTP", _Refusing)

    result = _mailer().send(task_assigned_notification(task_title="T", recipient="ghost@example.com"))

    assert result.success is False
    assert result.error_code == "RECIPIENTS_REFUSED"


def test_mailer_rejects_header_injection() -> None:
    with pytest.raises(ValueError):
        _mailer().build_message(task_assigned_notification(task_title="T", recipient="a@example.com\r\nBcc: x@y"))
