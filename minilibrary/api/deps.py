"""FastAPI dependencies: settings, bearer-token principal, role guards, services."""

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from minilibrary.core.config import Settings
from minilibrary.core.database import get_db
from minilibrary.core.errors import ForbiddenError, UnauthorizedError
from minilibrary.core.security import Principal, authorize, decode_access_token
from minilibrary.models.models import Role
from minilibrary.services.analytics import AnalyticsService
from minilibrary.services.auth import AuthService
from minilibrary.services.catalog import CatalogService
from minilibrary.services.loans import LoanService
from minilibrary.services.reviews import ReviewService
from minilibrary.services.wishlist import WishlistService

auth_scheme = HTTPBearer(auto_error=False)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_current_principal(
    creds: HTTPAuthorizationCredentials = Depends(auth_scheme),
    settings: Settings = Depends(get_settings),
) -> Principal:
    if creds is None:
        raise UnauthorizedError("Access denied. No token provided.")
    return decode_access_token(creds.credentials.strip(), settings.jwt_secret, settings.jwt_algorithm)


def require_role(required: Role):
    def dependency(principal: Principal = Depends(get_current_principal)) -> Principal:
        if not authorize(principal, required):
            raise ForbiddenError("Forbidden: You are not authorized to perform this action")
        return principal

    return dependency


require_user = require_role(Role.USER)
require_admin = require_role(Role.ADMIN)


def get_auth_service(db: Session = Depends(get_db), settings: Settings = Depends(get_settings)) -> AuthService:
    return AuthService(db, settings)


def get_catalog_service(db: Session = Depends(get_db)) -> CatalogService:
    return CatalogService(db)


def get_loan_service(db: Session = Depends(get_db), settings: Settings = Depends(get_settings)) -> LoanService:
    return LoanService(db, max_loan_days=settings.max_loan_days, default_loan_days=settings.default_loan_days)


def get_review_service(db: Session = Depends(get_db)) -> ReviewService:
    return ReviewService(db)


def get_wishlist_service(db: Session = Depends(get_db)) -> WishlistService:
    return WishlistService(db)


def get_analytics_service(db: Session = Depends(get_db)) -> AnalyticsService:
    return AnalyticsService(db)
