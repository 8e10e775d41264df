"""Daily notification jobs.

Both jobs are fire-and-continue: a failure for one loan or one recipient is
logged and the loop moves on to the next record.
"""

from datetime import datetime, timedelta
from typing import Optional, Protocol
import logging

from sqlalchemy.orm import Session, joinedload

from minilibrary.core.clock import utcnow
from minilibrary.models import models
from minilibrary.notifications.email import Email, due_date_reminder, new_books_announcement

logger = logging.getLogger(__name__)

NEW_BOOK_LOOKBACK = timedelta(hours=24)


class MailSender(Protocol):
    def send(self, email: Email) -> None: ...


def send_due_date_reminders(db: Session, mailer: MailSender, now: Optional[datetime] = None,
                            window_days: int = 3) -> int:
    """Remind borrowers of open loans due within ``window_days`` (overdue ones included)."""
    now = now or utcnow()
    threshold = now + timedelta(days=window_days)
    loans = (
        db.query(models.Loan)
        .options(joinedload(models.Loan.user), joinedload(models.Loan.book))
        .filter(models.Loan.returned == False, models.Loan.due_date <= threshold)  # noqa: E712
        .order_by(models.Loan.due_date)
        .all()
    )
    logger.info(f"Due date reminder run: {len(loans)} open loan(s) due by {threshold.isoformat()}")

    sent = 0
    for loan in loans:
        if loan.user is None or loan.book is None:
            logger.warning(f"Skipping reminder for loan {loan.id}: user or book missing")
            continue
        try:
            mailer.send(due_date_reminder(loan.user.email, loan.book.title, loan.due_date.strftime("%a %b %d %Y")))
        except Exception as e:
            logger.warning(f"Reminder for loan {loan.id} to {loan.user.email!r} failed: {e}", exc_info=True)
            continue
        sent += 1
        logger.info(f'Reminder sent to {loan.user.email} for book "{loan.book.title}" due on {loan.due_date}')
    return sent


def send_new_book_announcements(db: Session, mailer: MailSender, now: Optional[datetime] = None) -> int:
    """Announce books added in the last 24 hours to every registered user."""
    now = now or utcnow()
    since = now - NEW_BOOK_LOOKBACK
    new_books = (
        db.query(models.Book)
        .filter(models.Book.created_at >= since, models.Book.deleted == False)  # noqa: E712
        .order_by(models.Book.created_at)
        .all()
    )
    if not new_books:
        logger.info("No new books added in the last 24 hours.")
        return 0

    title_list = "\n".join(f"- {book.title}" for book in new_books)
    users = db.query(models.User).order_by(models.User.id).all()

    sent = 0
    for user in users:
        try:
            mailer.send(new_books_announcement(user.email, title_list))
        except Exception as e:
            logger.warning(f"New book notification to {user.email!r} failed: {e}", exc_info=True)
            continue
        sent += 1
        logger.info(f"New book notification sent to {user.email}")
    return sent
