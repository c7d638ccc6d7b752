"""SMTP transport for the mail relay. One connection and one message per recipient."""

import asyncio
import logging
import smtplib
import ssl
from email.mime.text import MIMEText
from email.utils import make_msgid
from typing import Optional

from dst_crm.core.config import Settings, settings
from dst_crm.core.exceptions import MailTransportError

logger = logging.getLogger(__name__)

SMTP_SSL_PORT = 465
SMTP_TIMEOUT = 20


class SmtpMailer:
    def __init__(
        self,
        host: Optional[str],
        port: int,
        username: Optional[str],
        password: Optional[str],
        sender: Optional[str],
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.sender = sender

    @classmethod
    def from_settings(cls, cfg: Settings) -> "SmtpMailer":
        return cls(cfg.smtp_host, cfg.smtp_port, cfg.smtp_user, cfg.smtp_password, cfg.sender_email)

    def _send_sync(self, recipient: str, subject: str, text: str) -> str:
        if not self.host or not self.sender:
            raise MailTransportError("SMTP is not configured")

        msg = MIMEText(text or "", "plain", "utf-8")
        msg["Subject"] = subject or ""
        msg["From"] = self.sender
        msg["To"] = recipient
        msg["Message-ID"] = make_msgid()

        context = ssl.create_default_context()
        try:
            if self.port == SMTP_SSL_PORT:
                smtp = smtplib.SMTP_SSL(self.host, self.port, context=context, timeout=SMTP_TIMEOUT)
            else:
                smtp = smtplib.SMTP(self.host, self.port, timeout=SMTP_TIMEOUT)
            with smtp:
                if self.port != SMTP_SSL_PORT:
                    smtp.starttls(context=context)
                if self.username and self.password:
                    smtp.login(self.username, self.password)
                refused = smtp.sendmail(self.sender, [recipient], msg.as_string())
        except (smtplib.SMTPException, OSError) as e:
            raise MailTransportError(str(e)) from e
        if refused:
            raise MailTransportError(f"Recipient refused: {refused}")
        return msg["Message-ID"]

    async def send(self, recipient: str, subject: str, text: str) -> str:
        """Send one plain-text message. Returns the Message-ID; raises MailTransportError."""
        return await asyncio.to_thread(self._send_sync, recipient, subject, text)


def get_mailer() -> SmtpMailer:
    return SmtpMailer.from_settings(settings)
