"""
Order notifications.

The order engine only emits events; a Notifier hands each one to a dispatcher
(FastAPI background tasks in the API) which delivers it by email. Delivery
failures are logged and never reach the request that raised the event.
"""
import html
import logging
import os
import smtplib
from email.message import EmailMessage
from typing import Callable, List, Literal, Optional

from pydantic import BaseModel

logger = logging.getLogger(__name__)

SMTP_HOST = os.getenv("SMTP_HOST", "")
SMTP_PORT = int(os.getenv("SMTP_PORT", 587))
SMTP_USER = os.getenv("SMTP_USER", "")
SMTP_PASS = os.getenv("SMTP_PASS", "")
MAIL_FROM = os.getenv("MAIL_FROM", SMTP_USER)


class NotificationEvent(BaseModel):
    kind: Literal["customer", "seller"]
    recipient: str
    subject: str
    message: str
    order_id: str


Mailer = Callable[[str, str, str], bool]


def send_email(recipient: str, subject: str, message: str) -> bool:
    if not SMTP_HOST:
        logger.info("SMTP not configured, skipping email to %s: %s", recipient, subject)
        return False
    mail = EmailMessage()
    mail["From"] = MAIL_FROM
    mail["To"] = recipient
    mail["Subject"] = subject
    mail.set_content(message)
    mail.add_alternative(f"<p>{html.escape(message)}</p>", subtype="html")
    with smtplib.SMTP(SMTP_HOST, SMTP_PORT, timeout=10) as smtp:
        smtp.starttls()
        if SMTP_USER:
            smtp.login(SMTP_USER, SMTP_PASS)
        smtp.send_message(mail)
    logger.info("Email sent to %s: %s", recipient, subject)
    return True


class Notifier:
    def __init__(self, mailer: Optional[Mailer] = None, schedule: Optional[Callable] = None):
        self.mailer = mailer or send_email
        # schedule(fn, *args) runs fn later; without one, delivery happens inline
        self.schedule = schedule
        self.emitted: List[NotificationEvent] = []

    def emit(self, event: NotificationEvent) -> None:
        self.emitted.append(event)
        if self.schedule is not None:
            self.schedule(self.deliver, event)
        else:
            self.deliver(event)

    def deliver(self, event: NotificationEvent) -> None:
        try:
            self.mailer(event.recipient, event.subject, event.message)
        except Exception:
            logger.exception("Failed to notify %s about order %s", event.recipient, event.order_id)
