from fastapi import APIRouter, Depends

from minilibrary.api.deps import get_review_service, require_user
from minilibrary.core.pagination import PageParams, page_params
from minilibrary.core.responses import success
from minilibrary.core.security import Principal
from minilibrary.schemas import schemas
from minilibrary.services.reviews import ReviewService

router = APIRouter(prefix="/reviews", tags=["Reviews"])


@router.get("/fetch/{book_id}", response_model=schemas.ApiResponse[schemas.BookReviewsOut])
def get_book_reviews(book_id: int,
                     params: PageParams = Depends(page_params),
                     principal: Principal = Depends(require_user),
                     reviews: ReviewService = Depends(get_review_service)):
    book, items, total = reviews.get_book_reviews(book_id, params)
    data = schemas.BookReviewsOut(
        book=schemas.BookSummary.model_validate(book) if book else None,
        all_reviews=schemas.ReviewPage(reviews=items, **params.meta(total)),
    )
    message = "Fetched book reviews successfully" if book else "Book not found"
    return success(message, data)


@router.post("/add/{book_id}", status_code=201, response_model=schemas.ApiResponse[schemas.ReviewOut])
def add_review(book_id: int, review_in: schemas.ReviewCreate,
               principal: Principal = Depends(require_user),
               reviews: ReviewService = Depends(get_review_service)):
    review = reviews.add_review(principal.id, book_id, review_in.rating, review_in.comment)
    return success("Review added successfully", schemas.ReviewOut.model_validate(review), status_code=201)
