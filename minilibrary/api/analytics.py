from fastapi import APIRouter, Depends

from minilibrary.api.deps import get_analytics_service, require_admin
from minilibrary.core.pagination import PageParams, page_params
from minilibrary.core.responses import success
from minilibrary.core.security import Principal
from minilibrary.schemas import schemas
from minilibrary.services.analytics import AnalyticsService

router = APIRouter(prefix="/analytics", tags=["Analytics"])


@router.get("/most-borrowed-books", response_model=schemas.ApiResponse[schemas.BorrowedBooksPage])
def most_borrowed_books(params: PageParams = Depends(page_params),
                        principal: Principal = Depends(require_admin),
                        analytics: AnalyticsService = Depends(get_analytics_service)):
    books, total = analytics.most_borrowed_books(params)
    return success("Most borrowed books fetched successfully",
                   schemas.BorrowedBooksPage(books=books, **params.meta(total)))


@router.get("/active-users", response_model=schemas.ApiResponse[schemas.ActiveUsersPage])
def active_users(params: PageParams = Depends(page_params),
                 principal: Principal = Depends(require_admin),
                 analytics: AnalyticsService = Depends(get_analytics_service)):
    users, total = analytics.most_active_users(params)
    return success("Active users fetched successfully",
                   schemas.ActiveUsersPage(users=users, **params.meta(total)))


@router.get("/genre-popularity", response_model=schemas.ApiResponse[schemas.GenrePopularityPage])
def genre_popularity(params: PageParams = Depends(page_params),
                     principal: Principal = Depends(require_admin),
                     analytics: AnalyticsService = Depends(get_analytics_service)):
    genres, total = analytics.genre_popularity(params)
    return success("Genre popularity data fetched successfully",
                   schemas.GenrePopularityPage(genres=genres, **params.meta(total)))
