"""Loan lifecycle: borrow, overdue penalty, return.

Book availability moves in lockstep with loan state. Each transition writes
the loan and the book in one transaction, and the partial unique index on
open loans turns a concurrent second borrow into a conflict.
"""

from datetime import datetime, timedelta
from typing import Optional
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from minilibrary.core.clock import utcnow
from minilibrary.core.errors import (AlreadyReturnedError, ConflictError, ForbiddenError, NotFoundError,
                                     ValidationError)
from minilibrary.core.security import Principal
from minilibrary.models import models
from minilibrary.schemas import schemas
from minilibrary.services.catalog import get_active_book

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 24 * 60 * 60


def days_overdue(due_date: datetime, now: datetime) -> int:
    """Whole days elapsed past ``due_date``; 0 when not yet due."""
    return max(int((now - due_date).total_seconds() // SECONDS_PER_DAY), 0)


class LoanService:
    def __init__(self, db: Session, max_loan_days: int = 365, default_loan_days: int = 7):
        self.db = db
        self.max_loan_days = max_loan_days
        self.default_loan_days = default_loan_days

    def _open_loan_for_book(self, book_id: int) -> Optional[models.Loan]:
        return (
            self.db.query(models.Loan)
            .filter(models.Loan.book_id == book_id, models.Loan.returned == False)  # noqa: E712
            .first()
        )

    def borrow(self, book_id: int, user_id: int, days: Optional[int] = None,
               now: Optional[datetime] = None) -> models.Loan:
        days = self.default_loan_days if days is None else days
        if days < 1 or days > self.max_loan_days:
            raise ValidationError(f"days must be between 1 and {self.max_loan_days}")
        now = now or utcnow()

        book = get_active_book(self.db, book_id, for_update=True)
        if self._open_loan_for_book(book.id):
            raise ConflictError("Book is currently unavailable for borrowing.")

        loan = models.Loan(
            user_id=user_id,
            book_id=book.id,
            due_date=now + timedelta(days=days),
            returned=False,
            borrowed_at=now,
        )
        book.status = models.BookStatus.CHECKED_OUT
        self.db.add(loan)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ConflictError("Book is currently unavailable for borrowing.")
        self.db.refresh(loan)
        logger.info(f"User {user_id} borrowed book {book.id} loan {loan.id} due {loan.due_date.isoformat()}")
        return loan

    def calculate_penalty(self, loan_id: int, daily_rate: float,
                          now: Optional[datetime] = None) -> schemas.Penalty:
        now = now or utcnow()
        loan = self.db.query(models.Loan).filter(models.Loan.id == loan_id).first()
        if not loan:
            raise NotFoundError("Loan not found")
        if loan.returned:
            raise AlreadyReturnedError("Loan already returned")
        overdue = days_overdue(loan.due_date, now)
        return schemas.Penalty(days_overdue=overdue, penalty=overdue * daily_rate if overdue > 0 else 0)

    def return_loan(self, loan_id: int, actor: Optional[Principal] = None,
                    now: Optional[datetime] = None) -> Optional[models.Book]:
        now = now or utcnow()
        loan = self.db.query(models.Loan).filter(models.Loan.id == loan_id).first()
        if not loan:
            raise NotFoundError("Loan not found")
        if actor is not None and not actor.is_admin and loan.user_id != actor.id:
            raise ForbiddenError("You can only return your own loans")
        if loan.returned:
            raise AlreadyReturnedError("Loan already returned")

        loan.returned = True
        loan.returned_at = now
        book = self.db.query(models.Book).filter(models.Book.id == loan.book_id).first()
        if book:
            book.status = models.BookStatus.AVAILABLE
        self.db.commit()
        if book:
            self.db.refresh(book)
        logger.info(f"Loan {loan_id} returned")
        return book
