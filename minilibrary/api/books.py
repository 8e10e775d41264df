from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query

from minilibrary.api.deps import get_catalog_service, get_loan_service, get_settings, require_admin, require_user
from minilibrary.core.config import Settings
from minilibrary.core.pagination import PageParams, page_params
from minilibrary.core.responses import success
from minilibrary.core.security import Principal
from minilibrary.schemas import schemas
from minilibrary.services.catalog import CatalogService
from minilibrary.services.loans import LoanService

router = APIRouter(prefix="/books", tags=["Books"])


def _book_page(books, total, params: PageParams) -> schemas.BookPage:
    return schemas.BookPage(books=[schemas.BookOut.model_validate(b) for b in books], **params.meta(total))


@router.get("/fetch", response_model=schemas.ApiResponse[schemas.BookPage])
def fetch_books(params: PageParams = Depends(page_params),
                principal: Principal = Depends(require_user),
                catalog: CatalogService = Depends(get_catalog_service)):
    books, total = catalog.fetch_books(params)
    return success("Books fetched successfully", _book_page(books, total, params))


@router.get("/search", response_model=schemas.ApiResponse[schemas.BookPage])
def search_books(title: Optional[str] = Query(None),
                 author: Optional[str] = Query(None),
                 genre: Optional[str] = Query(None),
                 start_date: Optional[date] = Query(None, alias="startDate"),
                 end_date: Optional[date] = Query(None, alias="endDate"),
                 params: PageParams = Depends(page_params),
                 principal: Principal = Depends(require_user),
                 catalog: CatalogService = Depends(get_catalog_service)):
    filters = schemas.BookSearchFilters(
        title=title, author=author, genre=genre, start_date=start_date, end_date=end_date,
    )
    books, total = catalog.search_books(filters, params)
    return success("Books retrieved successfully", _book_page(books, total, params))


@router.post("/add", status_code=201, response_model=schemas.ApiResponse[schemas.BookOut])
def add_book(book_in: schemas.BookCreate,
             principal: Principal = Depends(require_admin),
             catalog: CatalogService = Depends(get_catalog_service)):
    book = catalog.add_book(book_in, actor_id=principal.id)
    return success("Book added successfully", schemas.BookOut.model_validate(book), status_code=201)


@router.put("/update/{book_id}", response_model=schemas.ApiResponse[schemas.BookOut])
def update_book(book_id: int, book_upd: schemas.BookUpdate,
                principal: Principal = Depends(require_admin),
                catalog: CatalogService = Depends(get_catalog_service)):
    book = catalog.update_book(book_id, book_upd, actor_id=principal.id)
    return success("Book updated successfully", schemas.BookOut.model_validate(book))


@router.delete("/delete/{book_id}", response_model=schemas.ApiResponse[schemas.BookOut])
def delete_book(book_id: int,
                principal: Principal = Depends(require_admin),
                catalog: CatalogService = Depends(get_catalog_service)):
    book = catalog.soft_delete_book(book_id, actor_id=principal.id)
    return success("Book deleted successfully", schemas.BookOut.model_validate(book))


@router.get("/borrow/{book_id}", response_model=schemas.ApiResponse[schemas.LoanOut])
@router.get("/borrow/{book_id}/{days}", response_model=schemas.ApiResponse[schemas.LoanOut])
def borrow_book(book_id: int, days: Optional[int] = None,
                principal: Principal = Depends(require_user),
                loans: LoanService = Depends(get_loan_service)):
    loan = loans.borrow(book_id, principal.id, days)
    return success("Book borrowed successfully", schemas.LoanOut.model_validate(loan))


@router.get("/return/{loan_id}", response_model=schemas.ApiResponse[schemas.ReturnOut])
def return_book(loan_id: int,
                principal: Principal = Depends(require_user),
                loans: LoanService = Depends(get_loan_service),
                settings: Settings = Depends(get_settings)):
    # penalty is priced before the loan is closed
    penalty = loans.calculate_penalty(loan_id, settings.penalty_rate)
    book = loans.return_loan(loan_id, actor=principal)
    data = schemas.ReturnOut(
        book=schemas.BookOut.model_validate(book) if book else None,
        days_overdue=penalty.days_overdue,
        penalty=penalty.penalty,
    )
    return success("Book returned successfully", data)
