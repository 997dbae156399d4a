"""Bill notification emails.

The notifier is built once at application startup (see ``main.lifespan``),
handed to routes through ``get_notifier`` and closed on shutdown. In mock
mode messages are only logged; otherwise they go out over SMTP with STARTTLS.
"""

import logging
import smtplib
import threading
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from email.message import EmailMessage
from pathlib import Path

from fastapi import Request
from jinja2 import Environment, FileSystemLoader, TemplateError, select_autoescape

from app.config import Settings
from app.errors import NotificationError
from app.models.bill import Bill
from app.models.user import User

logger = logging.getLogger("bill_tracker")

TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates" / "emails"


def format_long_date(value: date) -> str:
    """2025-03-01 -> 'March 1, 2025'."""
    return f"{value:%B} {value.day}, {value.year}"


@dataclass(frozen=True)
class BillNotice:
    """Detached snapshot of a created bill and its owner, safe to use after the request ends."""

    recipient_email: str
    recipient_name: str | None
    bill_name: str
    amount: Decimal
    due_date: date
    category: str
    status: str

    @classmethod
    def from_models(cls, bill: Bill, user: User) -> "BillNotice":
        return cls(
            recipient_email=user.email,
            recipient_name=user.name,
            bill_name=bill.name,
            amount=Decimal(bill.amount),
            due_date=bill.due_date,
            category=bill.category,
            status=bill.status,
        )


class BillNotifier:
    """Renders and delivers the 'bill created' email."""

    def __init__(
        self,
        mock_mode: bool = True,
        smtp_host: str = "localhost",
        smtp_port: int = 587,
        smtp_user: str = "",
        smtp_password: str = "",
        sender: str = "noreply@oyfbilling.com",
        templates_dir: Path = TEMPLATES_DIR,
    ) -> None:
        self.mock_mode = mock_mode
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self.smtp_user = smtp_user
        self.smtp_password = smtp_password
        self.sender = sender
        self._env = Environment(
            loader=FileSystemLoader(str(templates_dir)),
            autoescape=select_autoescape(["html"]),
        )
        self._html_template = self._env.get_template("bill_created.html")
        self._text_template = self._env.get_template("bill_created.txt")
        self._smtp: smtplib.SMTP | None = None
        self._lock = threading.Lock()
        if mock_mode:
            logger.info("Email notifier running in MOCK mode - emails will be logged instead of sent")

    @classmethod
    def from_settings(cls, settings: Settings) -> "BillNotifier":
        return cls(
            mock_mode=settings.MOCK_EMAIL,
            smtp_host=settings.SMTP_HOST,
            smtp_port=settings.SMTP_PORT,
            smtp_user=settings.SMTP_USER,
            smtp_password=settings.SMTP_PASSWORD,
            sender=settings.EMAIL_FROM,
        )

    def render(self, notice: BillNotice) -> EmailMessage:
        """Build the email for a newly created bill."""
        context = {
            "user_name": notice.recipient_name or notice.recipient_email,
            "bill_name": notice.bill_name,
            "bill_amount": f"{notice.amount:.2f}",
            "bill_due_date": format_long_date(notice.due_date),
            "bill_category": notice.category,
            "bill_status": notice.status,
            "bill_status_upper": notice.status.upper(),
            "current_year": datetime.now().year,
        }
        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = notice.recipient_email
        message["Subject"] = f"New Bill Created: {notice.bill_name}"
        message.set_content(self._text_template.render(context))
        message.add_alternative(self._html_template.render(context), subtype="html")
        return message

    def send_bill_created(self, notice: BillNotice) -> str:
        """Deliver (or log, in mock mode) the notification. Returns the delivery mode used."""
        try:
            message = self.render(notice)
        except TemplateError as e:
            raise NotificationError(f"Failed to render email notification: {e}") from e

        if self.mock_mode:
            text_part = message.get_body(preferencelist=("plain",))
            logger.info(
                "MOCK EMAIL\nFrom: %s\nTo: %s\nSubject: %s\n%s",
                message["From"],
                message["To"],
                message["Subject"],
                text_part.get_content() if text_part else "",
            )
            return "mock"

        with self._lock:
            try:
                self._connection().send_message(message)
            except (smtplib.SMTPException, OSError) as e:
                self._reset_connection()
                raise NotificationError(f"Failed to send email notification: {e}") from e

        logger.info("Bill notification sent to %s", notice.recipient_email)
        return "sent"

    def verify_connection(self) -> bool:
        """Check that the SMTP server accepts our credentials. Always true in mock mode."""
        if self.mock_mode:
            return True
        with self._lock:
            try:
                self._connection().noop()
            except (smtplib.SMTPException, OSError) as e:
                self._reset_connection()
                logger.error("Email service verification failed: %s", e)
                return False
        logger.info("Email service is ready to send messages")
        return True

    def close(self) -> None:
        """Close the SMTP connection, if one is open."""
        with self._lock:
            self._reset_connection()

    def _connection(self) -> smtplib.SMTP:
        if self._smtp is None:
            smtp = smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=30)
            smtp.starttls()
            if self.smtp_user:
                smtp.login(self.smtp_user, self.smtp_password)
            self._smtp = smtp
        return self._smtp

    def _reset_connection(self) -> None:
        if self._smtp is None:
            return
        try:
            self._smtp.quit()
        except (smtplib.SMTPException, OSError):
            logger.debug("SMTP quit failed", exc_info=True)
        self._smtp = None


def dispatch_bill_created(notifier: BillNotifier, notice: BillNotice) -> None:
    """Background task: send the notification, logging any failure."""
    try:
        notifier.send_bill_created(notice)
    except NotificationError as e:
        logger.error("Failed to send bill notification to %s: %s", notice.recipient_email, e)


def get_notifier(request: Request) -> BillNotifier:
    """FastAPI dependency returning the notifier created at startup."""
    return request.app.state.notifier
