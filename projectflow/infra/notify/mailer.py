"""SMTP 邮件投递：将通知渲染为 MIME 邮件并通过 SMTP 发送。"""

from __future__ import annotations

import logging
import smtplib
import ssl
import time
from dataclasses import dataclass
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr

from projectflow.config import Settings
from projectflow.domain.models import Notification

logger = logging.getLogger(__name__)

# 连接级错误交由 worker 重试，其余 SMTP 错误直接记为投递失败。
TRANSIENT_SMTP_ERRORS: tuple[type[BaseException], ...] = (
    smtplib.SMTPConnectError,
    smtplib.SMTPServerDisconnected,
    ConnectionError,
    TimeoutError,
)


@dataclass(slots=True)
class DeliveryResult:
    """单封邮件的投递结果。"""
    success: bool
    recipient: str
    error_code: str | None = None
    error_message: str | None = None


class SmtpMailer:
    """基于 smtplib 的邮件发送器，支持 STARTTLS 与基础认证。"""

    def __init__(
        self,
        *,
        host: str | None,
        port: int = 587,
        username: str | None = None,
        password: str | None = None,
        use_tls: bool = True,
        from_email: str,
        from_name: str,
        timeout_seconds: int = 30,
    ) -> None:
        self._host = host
        self._port = port
        self._username = username
        self._password = password
        self._use_tls = use_tls
        self._from_email = from_email
        self._from_name = from_name
        self._timeout_seconds = timeout_seconds

    @classmethod
    def from_settings(cls, settings: Settings) -> SmtpMailer:
        return cls(
            host=settings.smtp_host,
            port=settings.smtp_port,
            username=settings.smtp_username,
            password=settings.smtp_password,
            use_tls=settings.smtp_use_tls,
            from_email=settings.smtp_from_email,
            from_name=settings.smtp_from_name,
            timeout_seconds=settings.smtp_timeout_seconds,
        )

    def is_configured(self) -> bool:
        return bool(self._host)

    def build_message(self, notification: Notification) -> MIMEMultipart:
        """构造 HTML 邮件，拒绝含换行的收件人以防头注入。"""
        if any(c in notification.recipient for c in ("\r", "\n")):
            raise ValueError(f"invalid recipient address: {notification.recipient!r}")
        msg = MIMEMultipart("alternative")
        msg["From"] = formataddr((self._from_name, self._from_email))
        msg["To"] = notification.recipient
        msg["Subject"] = notification.subject
        msg.attach(MIMEText(notification.html, "html", "utf-8"))
        return msg

    def send(self, notification: Notification) -> DeliveryResult:
        """发送单封通知邮件；连接类错误向上抛出以便重试。"""
        if not self.is_configured():
            logger.warning(
                "smtp not configured, notification dropped",
                extra={
                    "event": "notification.smtp.not_configured",
                    "external_service": "smtp",
                    "payload_preview": {"kind": notification.kind.value, "recipient": notification.recipient},
                },
            )
            return DeliveryResult(
                success=False,
                recipient=notification.recipient,
                error_code="NOT_CONFIGURED",
                error_message="SMTP not configured (missing SMTP_HOST)",
            )

        msg = self.build_message(notification)
        started = time.perf_counter()
        try:
            with smtplib.SMTP(self._host, self._port, timeout=self._timeout_seconds) as server:
                if self._use_tls:
                    server.starttls(context=ssl.create_default_context())
                if self._username and self._password:
                    server.login(self._username, self._password)
                server.sendmail(self._from_email, [notification.recipient], msg.as_string())
        except TRANSIENT_SMTP_ERRORS:
            raise
        except smtplib.SMTPAuthenticationError as exc:
            return self._failed(notification, "AUTH_ERROR", exc, started)
        except smtplib.SMTPRecipientsRefused as exc:
            return self._failed(notification, "RECIPIENTS_REFUSED", exc, started)
        except smtplib.SMTPException as exc:
            return self._failed(notification, "SMTP_ERROR", exc, started)

        logger.info(
            "notification email sent",
            extra={
                "event": "notification.smtp.sent",
                "external_service": "smtp",
                "op": "sendmail",
                "duration_ms": round((time.perf_counter() - started) * 1000, 2),
                "payload_preview": {"kind": notification.kind.value, "recipient": notification.recipient},
            },
        )
        return DeliveryResult(success=True, recipient=notification.recipient)

    def _failed(self, notification: Notification, code: str, exc: Exception, started: float) -> DeliveryResult:
        logger.error(
            "notification email failed",
            extra={
                "event": "notification.smtp.failed",
                "external_service": "smtp",
                "op": "sendmail",
                "duration_ms": round((time.perf_counter() - started) * 1000, 2),
                "error_type": type(exc).__name__,
                "error": str(exc),
                "payload_preview": {"kind": notification.kind.value, "recipient": notification.recipient, "code": code},
            },
        )
        return DeliveryResult(success=False, recipient=notification.recipient, error_code=code, error_message=str(exc))
