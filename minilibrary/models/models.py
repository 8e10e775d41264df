from sqlalchemy import (Column, Integer, String, Text, Date, DateTime, Float, Boolean, ForeignKey, Index,
                        UniqueConstraint, CheckConstraint, Enum as SAEnum, text)
from sqlalchemy.orm import relationship
import enum

from minilibrary.core.clock import utcnow
from minilibrary.core.database import Base


class Role(str, enum.Enum):
    ADMIN = "Admin"
    USER = "User"


class BookStatus(str, enum.Enum):
    AVAILABLE = "Available"
    CHECKED_OUT = "Checked Out"


class WishlistStatus(str, enum.Enum):
    ACTIVE = "Active"
    DELETED = "Deleted"


def _enum_column(enum_cls, name):
    return SAEnum(enum_cls, name=name, values_callable=lambda e: [m.value for m in e], validate_strings=True)


class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, unique=True, nullable=True, index=True)
    first_name = Column(String, nullable=True)
    last_name = Column(String, nullable=True)
    email = Column(String, unique=True, nullable=False, index=True)
    password_hash = Column(String, nullable=False)
    role = Column(_enum_column(Role, "user_role"), nullable=False, default=Role.USER)
    created_at = Column(DateTime, default=utcnow)

    loans = relationship("Loan", back_populates="user")


class Book(Base):
    __tablename__ = "books"
    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, nullable=False, index=True)
    author = Column(String, nullable=False, index=True)
    genre = Column(String, nullable=False)
    publication_date = Column(Date, nullable=False)
    description = Column(Text, nullable=True)
    status = Column(_enum_column(BookStatus, "book_status"), nullable=False, default=BookStatus.AVAILABLE)
    average_rating = Column(Float, nullable=False, default=0.0)
    review_count = Column(Integer, nullable=False, default=0)
    deleted = Column(Boolean, nullable=False, default=False, index=True)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    updated_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    deleted_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=utcnow, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
    deleted_at = Column(DateTime, nullable=True)

    loans = relationship("Loan", back_populates="book")
    reviews = relationship("Review", back_populates="book")


Index("ix_books_genre_publication_date", Book.genre, Book.publication_date)
Index("ix_books_title_author", Book.title, Book.author)


class Loan(Base):
    __tablename__ = "loans"
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    book_id = Column(Integer, ForeignKey("books.id"), nullable=False, index=True)
    due_date = Column(DateTime, nullable=False, index=True)
    returned = Column(Boolean, nullable=False, default=False, index=True)
    borrowed_at = Column(DateTime, default=utcnow)
    returned_at = Column(DateTime, nullable=True)

    user = relationship("User", back_populates="loans")
    book = relationship("Book", back_populates="loans")


# At most one open loan per book, enforced by the store.
Index(
    "uq_loans_open_book",
    Loan.book_id,
    unique=True,
    sqlite_where=text("returned = 0"),
    postgresql_where=text("returned = false"),
)
Index("ix_loans_user_book", Loan.user_id, Loan.book_id)


class Review(Base):
    __tablename__ = "reviews"
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    book_id = Column(Integer, ForeignKey("books.id"), nullable=False, index=True)
    rating = Column(Integer, nullable=False)
    comment = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow, index=True)

    book = relationship("Book", back_populates="reviews")
    user = relationship("User")

    __table_args__ = (
        UniqueConstraint("user_id", "book_id", name="uq_reviews_user_book"),
        CheckConstraint("rating >= 1 AND rating <= 5", name="ck_reviews_rating_range"),
    )


class WishlistItem(Base):
    __tablename__ = "wishlist_items"
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    book_id = Column(Integer, ForeignKey("books.id"), nullable=False)
    status = Column(_enum_column(WishlistStatus, "wishlist_status"), nullable=False, default=WishlistStatus.ACTIVE)
    created_at = Column(DateTime, default=utcnow)

    book = relationship("Book")

    __table_args__ = (
        UniqueConstraint("user_id", "book_id", name="uq_wishlist_user_book"),
    )
