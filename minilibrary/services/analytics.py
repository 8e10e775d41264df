"""Read-only borrowing statistics over the loans table.

Each ranking is paginated; ``total`` counts distinct groups, not loans.
"""

from typing import List, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from minilibrary.core.pagination import PageParams
from minilibrary.models import models
from minilibrary.schemas import schemas


class AnalyticsService:
    def __init__(self, db: Session):
        self.db = db

    def most_borrowed_books(self, params: PageParams) -> Tuple[List[schemas.BorrowedBookStat], int]:
        total = self.db.query(func.count(func.distinct(models.Loan.book_id))).scalar() or 0
        borrow_count = func.count(models.Loan.id).label("borrow_count")
        rows = (
            self.db.query(models.Book.id, models.Book.title, models.Book.author, borrow_count)
            .join(models.Loan, models.Loan.book_id == models.Book.id)
            .group_by(models.Book.id, models.Book.title, models.Book.author)
            .order_by(borrow_count.desc(), models.Book.id)
            .offset(params.offset)
            .limit(params.limit)
            .all()
        )
        stats = [
            schemas.BorrowedBookStat(book_id=r[0], title=r[1], author=r[2], borrow_count=r[3])
            for r in rows
        ]
        return stats, total

    def most_active_users(self, params: PageParams) -> Tuple[List[schemas.ActiveUserStat], int]:
        total = self.db.query(func.count(func.distinct(models.Loan.user_id))).scalar() or 0
        borrow_count = func.count(models.Loan.id).label("borrow_count")
        rows = (
            self.db.query(models.User.id, models.User.username, models.User.first_name,
                          models.User.last_name, borrow_count)
            .join(models.Loan, models.Loan.user_id == models.User.id)
            .group_by(models.User.id, models.User.username, models.User.first_name, models.User.last_name)
            .order_by(borrow_count.desc(), models.User.id)
            .offset(params.offset)
            .limit(params.limit)
            .all()
        )
        stats = [
            schemas.ActiveUserStat(user_id=r[0], username=r[1], first_name=r[2], last_name=r[3], borrow_count=r[4])
            for r in rows
        ]
        return stats, total

    def genre_popularity(self, params: PageParams) -> Tuple[List[schemas.GenreStat], int]:
        total = (
            self.db.query(func.count(func.distinct(models.Book.genre)))
            .select_from(models.Loan)
            .join(models.Book, models.Loan.book_id == models.Book.id)
            .scalar()
        ) or 0
        borrow_count = func.count(models.Loan.id).label("borrow_count")
        rows = (
            self.db.query(models.Book.genre, borrow_count)
            .select_from(models.Loan)
            .join(models.Book, models.Loan.book_id == models.Book.id)
            .group_by(models.Book.genre)
            .order_by(borrow_count.desc(), models.Book.genre)
            .offset(params.offset)
            .limit(params.limit)
            .all()
        )
        return [schemas.GenreStat(genre=r[0], borrow_count=r[1]) for r in rows], total
