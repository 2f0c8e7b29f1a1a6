"""Outbound notifications to clients.

The lifecycle only knows about :class:`NotificationSink`; which sink is used
is decided by :func:`build_notification_sink` from the SMTP settings.
"""

import logging
import smtplib
import ssl
from abc import ABC, abstractmethod
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from clinic_backend.core import config

logger = logging.getLogger(__name__)


class NotificationSink(ABC):
    @abstractmethod
    def send(self, recipient: str, subject: str, body: str) -> None:
        """Deliver one message to a single recipient."""


class LoggingNotificationSink(NotificationSink):
    """Writes notifications to the log instead of delivering them."""

    def send(self, recipient: str, subject: str, body: str) -> None:
        logger.info('Notification for %s: %s', recipient, subject)


class SmtpNotificationSink(NotificationSink):
    def __init__(
        self,
        host: str,
        port: int,
        username: str = '',
        password: str = '',
        use_tls: bool = True,
        from_address: str = config.EMAIL_FROM_ADDRESS,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.from_address = from_address

    def build_message(self, recipient: str, subject: str, body: str) -> MIMEMultipart:
        msg = MIMEMultipart('alternative')
        msg['Subject'] = subject
        msg['From'] = self.from_address
        msg['To'] = recipient
        msg.attach(MIMEText(body, 'plain'))
        return msg

    def send(self, recipient: str, subject: str, body: str) -> None:
        msg = self.build_message(recipient, subject, body)

        with smtplib.SMTP(self.host, self.port, timeout=30) as server:
            if self.use_tls:
                server.starttls(context=ssl.create_default_context())
            if self.username:
                server.login(self.username, self.password)
            server.sendmail(self.from_address, [recipient], msg.as_string())

        logger.info('Email "%s" sent to %s via %s', subject, recipient, self.host)


def build_notification_sink() -> NotificationSink:
    if not config.SMTP_HOST:
        return LoggingNotificationSink()

    return SmtpNotificationSink(
        host=config.SMTP_HOST,
        port=config.SMTP_PORT,
        username=config.SMTP_USERNAME,
        password=config.SMTP_PASSWORD,
        use_tls=config.SMTP_USE_TLS,
        from_address=config.EMAIL_FROM_ADDRESS,
    )


def finished_visit_message(client_name: str, title: str, rating: int | None = None) -> tuple[str, str]:
    subject = f'Your appointment "{title}" is complete'
    lines = [
        f'Hello {client_name},',
        '',
        f'Thank you for visiting us. Your appointment "{title}" has been marked as finished.',
    ]
    if rating is not None:
        lines.append(f'Rating recorded for this visit: {rating}/5.')
    return subject, '\n'.join(lines)
