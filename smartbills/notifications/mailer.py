import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import make_msgid
from typing import Protocol

from smartbills.core.config import Settings
from .errors import DeliveryError

logger = logging.getLogger(__name__)


class Mailer(Protocol):
    def send(self, to: str, subject: str, html: str) -> str:
        """Deliver one message and return a delivery receipt (message id)."""
        ...


class SmtpMailer:
    def __init__(
        self,
        host: str,
        port: int,
        username: str,
        password: str,
        from_email: str,
        timeout: float = 30.0,
    ):
        self.host = host
        self.port = int(port)
        self.username = username
        self.password = password
        self.from_email = from_email
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "SmtpMailer":
        return cls(
            host=settings.SMTP_HOST,
            port=settings.SMTP_PORT,
            username=settings.SMTP_USER,
            password=settings.SMTP_PASS,
            from_email=settings.mail_from,
            timeout=settings.SMTP_TIMEOUT_SECONDS,
        )

    def build_message(self, to: str, subject: str, html: str) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = self.from_email
        msg["To"] = to
        msg["Message-ID"] = make_msgid(domain=self.host)
        msg.attach(MIMEText(html, "html"))
        return msg

    def send(self, to: str, subject: str, html: str) -> str:
        msg = self.build_message(to, subject, html)
        try:
            # 465 is implicit TLS; everything else upgrades with STARTTLS
            if self.port == 465:
                server = smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout)
            else:
                server = smtplib.SMTP(self.host, self.port, timeout=self.timeout)
            with server:
                server.ehlo()
                if self.port != 465:
                    server.starttls()
                    server.ehlo()
                server.login(self.username, self.password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.warning(f"[SMTP] Delivery to {to} failed: {e!r}")
            raise DeliveryError(str(e) or e.__class__.__name__) from e
        logger.info(f"[SMTP] Sent '{subject}' to {to}")
        return msg["Message-ID"]


class DisabledMailer:
    """Stand-in used when SMTP is not configured; every send fails."""

    reason = "SMTP not configured"

    def send(self, to: str, subject: str, html: str) -> str:
        raise DeliveryError(self.reason)


def build_mailer(settings: Settings) -> Mailer:
    if not settings.email_enabled:
        logger.warning("SMTP email is disabled. Set SMTP_HOST/PORT/USER/PASS to enable reminder emails.")
        return DisabledMailer()
    return SmtpMailer.from_settings(settings)


def describe_error(error: Exception) -> str:
    message = str(error)
    return message or error.__class__.__name__
