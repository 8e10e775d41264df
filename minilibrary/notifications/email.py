"""SMTP delivery and the two message bodies the scheduled jobs send."""

from dataclasses import dataclass
from email.message import EmailMessage
from typing import Optional
import logging
import smtplib

from minilibrary.core.config import Settings
from minilibrary.core.errors import EmailDeliveryError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Email:
    to: str
    subject: str
    text: str
    html: Optional[str] = None


def due_date_reminder(to: str, book_title: str, due_date: str) -> Email:
    return Email(
        to=to,
        subject="Reminder: Upcoming Due Date for Borrowed Book",
        text=(
            f'Dear User,\n\nThis is a reminder that your borrowed book "{book_title}" is due on {due_date}. '
            "Please make sure to return it on time.\n\nThank you,\nLibrary Team"
        ),
        html=(
            f'<p>Dear User,</p><p>This is a reminder that your borrowed book "<strong>{book_title}</strong>" '
            f"is due on <strong>{due_date}</strong>. Please make sure to return it on time.</p>"
            "<p>Thank you,<br>Library Team</p>"
        ),
    )


def new_books_announcement(to: str, title_list: str) -> Email:
    html_items = "".join(f"<li>{line[2:]}</li>" for line in title_list.splitlines() if line.startswith("- "))
    return Email(
        to=to,
        subject="New Books Available",
        text=(
            f"Hello,\n\nThe following books have been added to the library:\n{title_list}\n\n"
            "Check them out!\n\nBest regards,\nLibrary Team"
        ),
        html=(
            f"<p>Hello,</p><p>The following books have been added to the library:</p><ul>{html_items}</ul>"
            "<p>Check them out!</p><p>Best regards,<br>Library Team</p>"
        ),
    )


class Mailer:
    def __init__(self, settings: Settings):
        self.host = settings.smtp_host
        self.port = settings.smtp_port
        self.secure = settings.smtp_secure
        self.user = settings.smtp_user
        self.password = settings.smtp_password
        self.from_email = settings.smtp_from_email

    def _build(self, email: Email) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = self.from_email
        msg["To"] = email.to
        msg["Subject"] = email.subject
        msg.set_content(email.text)
        if email.html:
            msg.add_alternative(email.html, subtype="html")
        return msg

    def send(self, email: Email) -> None:
        smtp_cls = smtplib.SMTP_SSL if self.secure else smtplib.SMTP
        try:
            # malformed headers (e.g. a linefeed in the address) fail here
            msg = self._build(email)
            with smtp_cls(self.host, self.port, timeout=30) as smtp:
                if not self.secure:
                    smtp.ehlo()
                    if smtp.has_extn("starttls"):
                        smtp.starttls()
                        smtp.ehlo()
                if self.user:
                    smtp.login(self.user, self.password or "")
                smtp.send_message(msg)
        except (smtplib.SMTPException, OSError, ValueError) as e:
            logger.error(f"Failed to send email to {email.to!r}: {e}")
            raise EmailDeliveryError("Failed to send email", error=str(e))
        logger.info(f"Email sent to {email.to} subject={email.subject!r}")
