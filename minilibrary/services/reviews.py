from typing import List, Optional, Tuple
import logging

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from minilibrary.core.errors import DuplicateReviewError, ValidationError
from minilibrary.core.pagination import PageParams
from minilibrary.models import models
from minilibrary.schemas import schemas
from minilibrary.services.catalog import get_active_book

logger = logging.getLogger(__name__)

MIN_RATING = 1
MAX_RATING = 5


class ReviewService:
    def __init__(self, db: Session):
        self.db = db

    def _apply_rating(self, book: models.Book) -> None:
        # full scan over the book's reviews, so repeated calls converge on the same values
        average, count = (
            self.db.query(func.avg(models.Review.rating), func.count(models.Review.id))
            .filter(models.Review.book_id == book.id)
            .one()
        )
        book.average_rating = float(average) if average is not None else 0.0
        book.review_count = int(count)

    def add_review(self, user_id: int, book_id: int, rating: int,
                   comment: Optional[str] = None) -> models.Review:
        if isinstance(rating, bool) or not isinstance(rating, int) or not MIN_RATING <= rating <= MAX_RATING:
            raise ValidationError(f"rating must be an integer between {MIN_RATING} and {MAX_RATING}")
        book = get_active_book(self.db, book_id)

        review = models.Review(user_id=user_id, book_id=book.id, rating=rating, comment=comment)
        self.db.add(review)
        try:
            # the unique (user_id, book_id) constraint is the duplicate check
            self.db.flush()
        except IntegrityError:
            self.db.rollback()
            raise DuplicateReviewError("You have already reviewed this book")

        self._apply_rating(book)
        self.db.commit()
        self.db.refresh(review)
        logger.info(
            f"User {user_id} reviewed book {book_id} rating={rating} "
            f"average={book.average_rating:.2f} count={book.review_count}"
        )
        return review

    def recompute_rating(self, book_id: int) -> models.Book:
        book = get_active_book(self.db, book_id)
        self._apply_rating(book)
        self.db.commit()
        self.db.refresh(book)
        return book

    def get_book_reviews(self, book_id: int, params: PageParams
                         ) -> Tuple[Optional[models.Book], List[schemas.ReviewWithUser], int]:
        """Book summary plus a newest-first page of reviews.

        An unknown (or deleted) book is reported as ``(None, [], 0)`` rather
        than an error. Reviews whose author no longer exists keep ``user=None``.
        """
        book = (
            self.db.query(models.Book)
            .filter(models.Book.id == book_id, models.Book.deleted == False)  # noqa: E712
            .first()
        )
        if not book:
            return None, [], 0

        query = self.db.query(models.Review).filter(models.Review.book_id == book.id)
        total = query.count()
        rows = (
            self.db.query(models.Review, models.User)
            .outerjoin(models.User, models.User.id == models.Review.user_id)
            .filter(models.Review.book_id == book.id)
            .order_by(models.Review.created_at.desc(), models.Review.id.desc())
            .offset(params.offset)
            .limit(params.limit)
            .all()
        )
        reviews = [
            schemas.ReviewWithUser(
                id=review.id,
                rating=review.rating,
                comment=review.comment,
                created_at=review.created_at,
                user=schemas.UserPublic.model_validate(user) if user is not None else None,
            )
            for review, user in rows
        ]
        return book, reviews, total
