from datetime import datetime, timedelta

import pytest
from sqlalchemy.exc import IntegrityError

from minilibrary.core.errors import (AlreadyReturnedError, ConflictError, ForbiddenError, NotFoundError,
                                     ValidationError)
from minilibrary.core.security import Principal
from minilibrary.models import models
from minilibrary.services.catalog import CatalogService
from minilibrary.services.loans import LoanService, days_overdue

T0 = datetime(2024, 3, 1, 12, 0, 0)


def open_loans(db, book_id):
    return db.query(models.Loan).filter(models.Loan.book_id == book_id, models.Loan.returned == False).all()  # noqa: E712


def test_borrow_checks_out_book(db, make_user, make_book):
    user = make_user(db)
    book = make_book(db)
    loan = LoanService(db).borrow(book.id, user.id, 14, now=T0)

    assert loan.returned is False
    assert loan.returned_at is None
    assert loan.due_date == T0 + timedelta(days=14)
    db.refresh(book)
    assert book.status == models.BookStatus.CHECKED_OUT


def test_borrow_defaults_to_seven_days(db, make_user, make_book):
    user = make_user(db)
    book = make_book(db)
    loan = LoanService(db).borrow(book.id, user.id, now=T0)
    assert loan.due_date == T0 + timedelta(days=7)


def test_borrow_already_borrowed_book_conflicts_without_mutation(db, make_user, make_book):
    first, second = make_user(db), make_user(db)
    book = make_book(db)
    loans = LoanService(db)
    original = loans.borrow(book.id, first.id, now=T0)

    with pytest.raises(ConflictError):
        loans.borrow(book.id, second.id, now=T0)

    assert [l.id for l in open_loans(db, book.id)] == [original.id]
    assert db.query(models.Loan).count() == 1
    db.refresh(book)
    assert book.status == models.BookStatus.CHECKED_OUT


@pytest.mark.parametrize("days", [0, -3, 366])
def test_borrow_rejects_out_of_range_days(db, make_user, make_book, days):
    user = make_user(db)
    book = make_book(db)
    with pytest.raises(ValidationError):
        LoanService(db, max_loan_days=365).borrow(book.id, user.id, days)
    db.refresh(book)
    assert book.status == models.BookStatus.AVAILABLE


def test_borrow_unknown_or_deleted_book_is_not_found(db, make_user, make_book):
    admin = make_user(db, role=models.Role.ADMIN)
    book = make_book(db)
    CatalogService(db).soft_delete_book(book.id, actor_id=admin.id)
    loans = LoanService(db)

    with pytest.raises(NotFoundError):
        loans.borrow(book.id, admin.id)
    with pytest.raises(NotFoundError):
        loans.borrow(9999, admin.id)


def test_store_rejects_second_open_loan_for_same_book(db, make_user, make_book):
    user = make_user(db)
    book = make_book(db)
    db.add(models.Loan(user_id=user.id, book_id=book.id, due_date=T0, returned=False))
    db.commit()

    db.add(models.Loan(user_id=user.id, book_id=book.id, due_date=T0, returned=False))
    with pytest.raises(IntegrityError):
        db.commit()
    db.rollback()

    # closed loans do not count towards the limit
    db.add(models.Loan(user_id=user.id, book_id=book.id, due_date=T0, returned=True, returned_at=T0))
    db.commit()


def test_penalty_for_overdue_loan(db, make_user, make_book):
    user = make_user(db)
    book = make_book(db)
    loans = LoanService(db)
    loan = loans.borrow(book.id, user.id, 7, now=T0)
    due = loan.due_date

    penalty = loans.calculate_penalty(loan.id, 2, now=due + timedelta(days=5))
    assert penalty.days_overdue == 5
    assert penalty.penalty == 10


def test_penalty_counts_only_whole_days(db, make_user, make_book):
    user = make_user(db)
    book = make_book(db)
    loans = LoanService(db)
    loan = loans.borrow(book.id, user.id, 7, now=T0)

    penalty = loans.calculate_penalty(loan.id, 1.5, now=loan.due_date + timedelta(days=2, hours=23))
    assert penalty.days_overdue == 2
    assert penalty.penalty == pytest.approx(3.0)


@pytest.mark.parametrize("offset", [timedelta(days=-3), timedelta(0), timedelta(hours=23)])
def test_no_penalty_before_a_full_day_overdue(db, make_user, make_book, offset):
    user = make_user(db)
    book = make_book(db)
    loans = LoanService(db)
    loan = loans.borrow(book.id, user.id, 7, now=T0)

    penalty = loans.calculate_penalty(loan.id, 2, now=loan.due_date + offset)
    assert penalty.days_overdue == 0
    assert penalty.penalty == 0


def test_penalty_is_a_pure_read(db, make_user, make_book):
    user = make_user(db)
    book = make_book(db)
    loans = LoanService(db)
    loan = loans.borrow(book.id, user.id, 1, now=T0)

    loans.calculate_penalty(loan.id, 2, now=T0 + timedelta(days=30))
    db.refresh(loan)
    db.refresh(book)
    assert loan.returned is False
    assert book.status == models.BookStatus.CHECKED_OUT


def test_penalty_requires_an_open_loan(db, make_user, make_book):
    user = make_user(db)
    book = make_book(db)
    loans = LoanService(db)
    loan = loans.borrow(book.id, user.id, now=T0)
    loans.return_loan(loan.id, now=T0 + timedelta(days=1))

    with pytest.raises(NotFoundError):
        loans.calculate_penalty(12345, 2)
    with pytest.raises(AlreadyReturnedError) as excinfo:
        loans.calculate_penalty(loan.id, 2)
    assert isinstance(excinfo.value, NotFoundError)


def test_return_closes_loan_and_frees_book(db, make_user, make_book):
    user = make_user(db)
    book = make_book(db)
    loans = LoanService(db)
    loan = loans.borrow(book.id, user.id, now=T0)

    returned_book = loans.return_loan(loan.id, now=T0 + timedelta(days=3))

    assert returned_book.id == book.id
    assert returned_book.status == models.BookStatus.AVAILABLE
    db.refresh(loan)
    assert loan.returned is True
    assert loan.returned_at == T0 + timedelta(days=3)


def test_return_twice_fails_and_keeps_first_timestamp(db, make_user, make_book):
    user = make_user(db)
    book = make_book(db)
    loans = LoanService(db)
    loan = loans.borrow(book.id, user.id, now=T0)
    loans.return_loan(loan.id, now=T0 + timedelta(days=1))

    with pytest.raises(AlreadyReturnedError):
        loans.return_loan(loan.id, now=T0 + timedelta(days=9))
    db.refresh(loan)
    assert loan.returned_at == T0 + timedelta(days=1)


def test_return_unknown_loan_is_not_found(db):
    with pytest.raises(NotFoundError):
        LoanService(db).return_loan(404)


def test_only_owner_or_admin_can_return(db, make_user, make_book):
    owner, other = make_user(db), make_user(db)
    admin = make_user(db, role=models.Role.ADMIN)
    book = make_book(db)
    loans = LoanService(db)
    loan = loans.borrow(book.id, owner.id, now=T0)

    with pytest.raises(ForbiddenError):
        loans.return_loan(loan.id, actor=Principal(id=other.id, role=models.Role.USER))
    db.refresh(loan)
    assert loan.returned is False

    loans.return_loan(loan.id, actor=Principal(id=admin.id, role=models.Role.ADMIN))
    db.refresh(loan)
    assert loan.returned is True


def test_book_status_tracks_open_loans_across_cycles(db, make_user, make_book):
    user = make_user(db)
    book = make_book(db)
    loans = LoanService(db)

    for cycle in range(3):
        loan = loans.borrow(book.id, user.id, now=T0 + timedelta(days=10 * cycle))
        db.refresh(book)
        assert book.status == models.BookStatus.CHECKED_OUT
        assert len(open_loans(db, book.id)) == 1
        loans.return_loan(loan.id, now=T0 + timedelta(days=10 * cycle + 2))
        db.refresh(book)
        assert book.status == models.BookStatus.AVAILABLE
        assert open_loans(db, book.id) == []

    assert db.query(models.Loan).filter(models.Loan.book_id == book.id).count() == 3


def test_days_overdue():
    assert days_overdue(T0, T0 + timedelta(days=5)) == 5
    assert days_overdue(T0, T0 - timedelta(days=5)) == 0
    assert days_overdue(T0, T0 + timedelta(seconds=86399)) == 0
