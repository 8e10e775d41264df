from typing import List, Tuple
import logging

from sqlalchemy.orm import Session

from minilibrary.core.clock import utcnow
from minilibrary.core.errors import ConflictError, NotFoundError
from minilibrary.core.pagination import PageParams
from minilibrary.models import models
from minilibrary.schemas import schemas

logger = logging.getLogger(__name__)

# only the descriptive fields are client-writable; status and ratings are derived
UPDATABLE_FIELDS = ("title", "author", "genre", "publication_date", "description")


def _like_pattern(term: str) -> str:
    """Substring pattern with LIKE wildcards in ``term`` matched literally."""
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def get_active_book(db: Session, book_id: int, for_update: bool = False) -> models.Book:
    """Shared soft-delete guard: a deleted book is gone for every mutating operation."""
    query = db.query(models.Book).filter(models.Book.id == book_id, models.Book.deleted == False)  # noqa: E712
    if for_update:
        query = query.with_for_update()
    book = query.first()
    if not book:
        raise NotFoundError("Book not found")
    return book


class CatalogService:
    def __init__(self, db: Session):
        self.db = db

    def fetch_books(self, params: PageParams) -> Tuple[List[models.Book], int]:
        query = self.db.query(models.Book).filter(models.Book.deleted == False)  # noqa: E712
        total = query.count()
        books = query.order_by(models.Book.id).offset(params.offset).limit(params.limit).all()
        return books, total

    def search_books(self, filters: schemas.BookSearchFilters, params: PageParams) -> Tuple[List[models.Book], int]:
        query = self.db.query(models.Book).filter(models.Book.deleted == False)  # noqa: E712
        if filters.title:
            query = query.filter(models.Book.title.ilike(_like_pattern(filters.title), escape="\\"))
        if filters.author:
            query = query.filter(models.Book.author.ilike(_like_pattern(filters.author), escape="\\"))
        if filters.genre:
            query = query.filter(models.Book.genre == filters.genre)
        if filters.start_date:
            query = query.filter(models.Book.publication_date >= filters.start_date)
        if filters.end_date:
            query = query.filter(models.Book.publication_date <= filters.end_date)
        total = query.count()
        books = (
            query.order_by(models.Book.publication_date.desc(), models.Book.id.desc())
            .offset(params.offset)
            .limit(params.limit)
            .all()
        )
        return books, total

    def add_book(self, book_in: schemas.BookCreate, actor_id: int) -> models.Book:
        book = models.Book(
            **book_in.model_dump(),
            status=models.BookStatus.AVAILABLE,
            created_by=actor_id,
            updated_by=actor_id,
        )
        self.db.add(book)
        self.db.commit()
        self.db.refresh(book)
        logger.info(f"Created book id={book.id} title={book.title}")
        return book

    def update_book(self, book_id: int, book_upd: schemas.BookUpdate, actor_id: int) -> models.Book:
        book = get_active_book(self.db, book_id)
        data = book_upd.model_dump(exclude_unset=True)
        for key, value in data.items():
            # description is the only nullable field
            if key in UPDATABLE_FIELDS and (value is not None or key == "description"):
                setattr(book, key, value)
        book.updated_by = actor_id
        self.db.commit()
        self.db.refresh(book)
        logger.info(f"Updated book id={book.id}")
        return book

    def soft_delete_book(self, book_id: int, actor_id: int) -> models.Book:
        book = get_active_book(self.db, book_id)
        open_loans = (
            self.db.query(models.Loan)
            .filter(models.Loan.book_id == book.id, models.Loan.returned == False)  # noqa: E712
            .count()
        )
        if open_loans > 0:
            raise ConflictError("Cannot delete a book that is currently borrowed")
        book.deleted = True
        book.deleted_by = actor_id
        book.deleted_at = utcnow()
        self.db.commit()
        self.db.refresh(book)
        logger.info(f"Soft-deleted book id={book.id}")
        return book
