"""Outbound email through the configured SMTP relay."""

import logging
import smtplib
from email.message import EmailMessage
from email.utils import formataddr
from typing import Optional

from app.core.config import settings
from app.core.exceptions import EmailDeliveryError

logger = logging.getLogger(__name__)


class Mailer:
    def __init__(self, host: str = None, port: int = None, username: str = None,
                 password: str = None, use_tls: bool = None, from_name: str = None):
        self.host = host or settings.SMTP_HOST
        self.port = port or settings.SMTP_PORT
        self.username = username if username is not None else settings.SMTP_USER
        self.password = password if password is not None else settings.SMTP_PASSWORD
        self.use_tls = settings.SMTP_USE_TLS if use_tls is None else use_tls
        self.from_name = from_name or settings.MAIL_FROM_NAME

    def build_message(self, to: str, subject: str, text: Optional[str] = None,
                      html: Optional[str] = None, from_name: Optional[str] = None) -> EmailMessage:
        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = formataddr((from_name or self.from_name, self.username))
        msg["To"] = to
        msg.set_content(text or "")
        if html:
            msg.add_alternative(html, subtype="html")
        return msg

    def send(self, to: str, subject: str, text: Optional[str] = None,
             html: Optional[str] = None, from_name: Optional[str] = None) -> None:
        msg = self.build_message(to, subject, text=text, html=html, from_name=from_name)
        try:
            with smtplib.SMTP(self.host, self.port, timeout=30) as smtp:
                if self.use_tls:
                    smtp.starttls()
                if self.username and self.password:
                    smtp.login(self.username, self.password)
                smtp.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            raise EmailDeliveryError(context={"to": to, "subject": subject, "error": str(e)}) from e
        logger.info("Email sent to %s: %s", to, subject)


def get_mailer() -> Mailer:
    return Mailer()
