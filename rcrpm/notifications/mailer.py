"""SMTP delivery of transactional email."""

from __future__ import annotations

import logging
import re
import smtplib
from email.message import EmailMessage

from rcrpm.core.config import Settings, get_settings

logger = logging.getLogger(__name__)

_TAG_RE = re.compile(r"<[^>]+>")
_BLANK_LINES_RE = re.compile(r"\n\s*\n+")


def html_to_text(html: str) -> str:
    """Crude plain-text rendition used as the non-HTML alternative."""

    text = _TAG_RE.sub("", html.replace("<br>", "\n").replace("</p>", "</p>\n"))
    return _BLANK_LINES_RE.sub("\n\n", text).strip()


class SmtpMailer:
    """Send multipart messages through the configured SMTP relay."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    def send(self, *, to: str, subject: str, html: str) -> bool:
        if not self.settings.smtp_configured:
            logger.warning("SMTP not configured; dropping email %r to %s", subject, to)
            return False

        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = self.settings.sender_email
        msg["To"] = to
        msg.set_content(html_to_text(html))
        msg.add_alternative(html, subtype="html")

        with smtplib.SMTP(
            self.settings.smtp_host,
            self.settings.smtp_port,
            timeout=self.settings.smtp_timeout_seconds,
        ) as smtp:
            if self.settings.smtp_use_tls:
                smtp.starttls()
            if self.settings.smtp_user:
                smtp.login(self.settings.smtp_user, self.settings.smtp_password)
            smtp.send_message(msg)

        logger.info("Sent email %r to %s", subject, to)
        return True


def get_mailer() -> SmtpMailer:
    """FastAPI dependency returning the process mailer."""

    return SmtpMailer(get_settings())
