from pydantic import BaseModel, ConfigDict, Field, constr, field_validator
from datetime import date, datetime
from typing import Any, Generic, List, Optional, TypeVar

from minilibrary.models.models import BookStatus, Role, WishlistStatus

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    status: str
    message: str
    data: Optional[T] = None


class ErrorResponse(BaseModel):
    status: str
    message: str
    error: Optional[Any] = None


class Paginated(BaseModel):
    total: int
    page: int
    limit: int
    total_pages: int


# -----------------------------
# Users / auth
# -----------------------------
class UserCreate(BaseModel):
    username: Optional[constr(min_length=1, strip_whitespace=True)] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: constr(min_length=5, strip_whitespace=True)
    # bcrypt only looks at the first 72 bytes
    password: constr(min_length=6, max_length=72)

    @field_validator("email")
    @classmethod
    def email_has_at_sign(cls, v):
        if "@" not in v:
            raise ValueError("email must contain '@'")
        return v.lower()


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: str
    role: Role


class UserPublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None


class LoginRequest(BaseModel):
    username: constr(min_length=1, strip_whitespace=True) = Field(description="username or email")
    password: constr(min_length=1)


class TokenOut(BaseModel):
    token: str


# -----------------------------
# Books
# -----------------------------
class BookBase(BaseModel):
    title: constr(min_length=1, strip_whitespace=True)
    author: constr(min_length=1, strip_whitespace=True)
    genre: constr(min_length=1, strip_whitespace=True)
    publication_date: date
    description: Optional[str] = None


class BookCreate(BookBase):
    pass


class BookUpdate(BaseModel):
    title: Optional[constr(min_length=1, strip_whitespace=True)] = None
    author: Optional[constr(min_length=1, strip_whitespace=True)] = None
    genre: Optional[constr(min_length=1, strip_whitespace=True)] = None
    publication_date: Optional[date] = None
    description: Optional[str] = None


class BookSummary(BookBase):
    model_config = ConfigDict(from_attributes=True)

    id: int
    status: BookStatus
    average_rating: float
    review_count: int


class BookOut(BookSummary):
    deleted: bool
    created_by: Optional[int] = None
    updated_by: Optional[int] = None
    deleted_by: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None


class BookPage(Paginated):
    books: List[BookOut]


class BookSearchFilters(BaseModel):
    title: Optional[str] = None
    author: Optional[str] = None
    genre: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None


# -----------------------------
# Loans
# -----------------------------
class LoanOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    book_id: int
    due_date: datetime
    returned: bool
    borrowed_at: datetime
    returned_at: Optional[datetime] = None


class Penalty(BaseModel):
    days_overdue: int
    penalty: float


class ReturnOut(Penalty):
    book: Optional[BookOut] = None


# -----------------------------
# Reviews
# -----------------------------
class ReviewCreate(BaseModel):
    rating: int = Field(ge=1, le=5)
    comment: Optional[str] = None


class ReviewOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    book_id: int
    rating: int
    comment: Optional[str] = None
    created_at: datetime


class ReviewWithUser(BaseModel):
    id: int
    rating: int
    comment: Optional[str] = None
    created_at: datetime
    user: Optional[UserPublic] = None


class ReviewPage(Paginated):
    reviews: List[ReviewWithUser]


class BookReviewsOut(BaseModel):
    book: Optional[BookSummary] = None
    all_reviews: ReviewPage


# -----------------------------
# Wishlist
# -----------------------------
class WishlistCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: int = Field(alias="userId")
    book_id: int = Field(alias="bookId")


class WishlistItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    book_id: int
    status: WishlistStatus
    created_at: Optional[datetime] = None


class WishlistBook(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    author: str
    genre: str


class WishlistEntry(WishlistItemOut):
    book: Optional[WishlistBook] = None


class WishlistPage(Paginated):
    wishlist: List[WishlistEntry]


# -----------------------------
# Analytics
# -----------------------------
class BorrowedBookStat(BaseModel):
    book_id: int
    title: str
    author: str
    borrow_count: int


class ActiveUserStat(BaseModel):
    user_id: int
    username: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    borrow_count: int


class GenreStat(BaseModel):
    genre: str
    borrow_count: int


class BorrowedBooksPage(Paginated):
    books: List[BorrowedBookStat]


class ActiveUsersPage(Paginated):
    users: List[ActiveUserStat]


class GenrePopularityPage(Paginated):
    genres: List[GenreStat]


class HealthOut(BaseModel):
    status: str
    time: datetime
