import logging
import smtplib
import ssl
from email.message import EmailMessage
from email.utils import formataddr, make_msgid

from app.domain.exceptions import EmailDeliveryError

logger = logging.getLogger(__name__)


class SmtpEmailService:
    """Plain SMTP sender (Gmail app-password style). One connection per message."""

    def __init__(
        self,
        host: str,
        port: int,
        username: str | None,
        password: str | None,
        default_from: str,
        timeout_seconds: float = 15.0,
    ):
        self.host = host
        self.port = port
        self.username = username or default_from
        self.password = password
        self.default_from = default_from
        self.timeout_seconds = timeout_seconds

    @property
    def enabled(self) -> bool:
        return bool(self.password)

    def send(
        self,
        to: str,
        subject: str,
        text: str,
        html: str | None = None,
        sender_name: str | None = None,
        reply_to: str | None = None,
    ) -> str:
        """Send one message and return its Message-ID. Raises EmailDeliveryError."""
        msg = EmailMessage()
        msg["From"] = formataddr((sender_name, self.default_from)) if sender_name else self.default_from
        msg["To"] = to
        msg["Subject"] = subject
        msg["Message-ID"] = make_msgid(domain=self.default_from.split("@")[-1])
        if reply_to:
            msg["Reply-To"] = reply_to
        msg.set_content(text)
        if html:
            msg.add_alternative(html, subtype="html")

        try:
            if self.port == 465:
                context = ssl.create_default_context()
                with smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout_seconds, context=context) as smtp:
                    self._deliver(smtp, msg)
            else:
                with smtplib.SMTP(self.host, self.port, timeout=self.timeout_seconds) as smtp:
                    smtp.starttls(context=ssl.create_default_context())
                    self._deliver(smtp, msg)
        except (smtplib.SMTPException, OSError) as e:
            raise EmailDeliveryError(f"send '{subject}' to {to}: {e}") from e

        logger.info("✅ Email sent to %s (%s)", to, subject)
        return msg["Message-ID"]

    def _deliver(self, smtp: smtplib.SMTP, msg: EmailMessage) -> None:
        if self.password:
            smtp.login(self.username, self.password)
        smtp.send_message(msg)
