from __future__ import annotations
import logging
import smtplib
from email.message import EmailMessage
from typing import List, Optional, Protocol, Sequence

from .config import get_setting

log = logging.getLogger(__name__)


class Notifier(Protocol):
    def send(self, to_addresses: Sequence[str], subject: str, body: str) -> None: ...


class LogNotifier:
    """Used when no SMTP server is configured."""

    def send(self, to_addresses: Sequence[str], subject: str, body: str) -> None:
        log.info("Mail to %s: %s", ", ".join(to_addresses), subject)


class RecordingNotifier:
    def __init__(self, fail: bool = False):
        self.sent: List[dict] = []
        self.fail = fail

    def send(self, to_addresses: Sequence[str], subject: str, body: str) -> None:
        if self.fail:
            raise RuntimeError("mail service unavailable")
        self.sent.append({"to": list(to_addresses), "subject": subject, "body": body})


class SmtpNotifier:
    def __init__(self, host: str, port: int = 587, user: str = "", password: str = "",
                 sender: str = "", starttls: bool = True):
        self.host, self.port = host, int(port)
        self.user, self.password = user, password
        self.sender = sender or user
        self.starttls = starttls

    def send(self, to_addresses: Sequence[str], subject: str, body: str) -> None:
        msg = EmailMessage()
        msg["From"] = self.sender
        msg["To"] = ", ".join(to_addresses)
        msg["Subject"] = subject
        msg.set_content(body)
        with smtplib.SMTP(self.host, self.port, timeout=15) as smtp:
            if self.starttls:
                smtp.starttls()
            if self.user:
                smtp.login(self.user, self.password)
            smtp.send_message(msg)


def notifier_from_settings() -> Notifier:
    host = get_setting("SMTP_HOST")
    if not host:
        return LogNotifier()
    return SmtpNotifier(
        host=host,
        port=int(get_setting("SMTP_PORT", 587)),
        user=get_setting("SMTP_USER", ""),
        password=get_setting("SMTP_PASSWORD", ""),
        sender=get_setting("MAIL_FROM", ""),
    )


def notify_best_effort(notifier: Optional[Notifier], to_addresses: Sequence[str],
                       subject: str, body: str) -> bool:
    """Send and report success. Never raises: the write it accompanies already happened."""
    to = [a for a in (to_addresses or []) if a and a.strip()]
    if notifier is None or not to:
        return False
    try:
        notifier.send(to, subject, body)
        return True
    except Exception as e:
        log.warning("Notification '%s' to %s failed: %s", subject, to, e)
        return False
