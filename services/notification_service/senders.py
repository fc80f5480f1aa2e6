"""Email delivery adapters.

The queue only knows the ``EmailSender`` interface. ``SmtpEmailSender`` is the
production adapter; ``LogEmailSender`` is the default when no SMTP host is
configured; ``InMemoryEmailSender`` records messages for tests.
"""
from abc import ABC, abstractmethod
from email.message import EmailMessage
from uuid import uuid4

import aiosmtplib
import structlog

from shared.config import settings

logger = structlog.get_logger(__name__)


class EmailSender(ABC):

    @abstractmethod
    async def send(self, to: str, subject: str, body: str) -> str:
        """Deliver one plain-text email and return a message id. Raises on failure."""
        ...


class SmtpEmailSender(EmailSender):

    def __init__(
        self,
        hostname: str,
        port: int = 587,
        username: str | None = None,
        password: str | None = None,
        start_tls: bool = True,
        sender: str = settings.MAIL_FROM,
        timeout: float = 30.0,
    ) -> None:
        self.hostname = hostname
        self.port = port
        self.username = username
        self.password = password
        self.start_tls = start_tls
        self.sender = sender
        self.timeout = timeout

    async def send(self, to: str, subject: str, body: str) -> str:
        message = EmailMessage()
        message_id = f"<{uuid4().hex}@{self.hostname}>"
        message["From"] = self.sender
        message["To"] = to
        message["Subject"] = subject
        message["Message-ID"] = message_id
        message.set_content(body)

        await aiosmtplib.send(
            message,
            hostname=self.hostname,
            port=self.port,
            username=self.username,
            password=self.password,
            start_tls=self.start_tls,
            timeout=self.timeout,
        )
        return message_id


class LogEmailSender(EmailSender):
    """Writes emails to the structured log instead of sending them."""

    async def send(self, to: str, subject: str, body: str) -> str:
        message_id = f"log-{uuid4().hex[:12]}"
        logger.info("email_logged", message_id=message_id, to=to, subject=subject, body=body)
        return message_id


class InMemoryEmailSender(EmailSender):
    """Records messages in memory for test assertions."""

    def __init__(self):
        self.sent_emails: list[dict] = []
        self.should_succeed = True
        self.failure_reason = "Email delivery failed"

    def configure(self, should_succeed: bool = True, failure_reason: str = "Email delivery failed"):
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    async def send(self, to: str, subject: str, body: str) -> str:
        if not self.should_succeed:
            raise RuntimeError(self.failure_reason)
        message_id = f"email-{uuid4().hex[:12]}"
        self.sent_emails.append({"message_id": message_id, "to": to, "subject": subject, "body": body})
        return message_id


def build_sender() -> EmailSender:
    if settings.SMTP_HOST:
        return SmtpEmailSender(
            hostname=settings.SMTP_HOST,
            port=settings.SMTP_PORT,
            username=settings.SMTP_USERNAME,
            password=settings.SMTP_PASSWORD,
            start_tls=settings.SMTP_START_TLS,
        )
    return LogEmailSender()
