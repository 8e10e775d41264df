from fastapi import APIRouter

from minilibrary.api import analytics, auth, books, health, reviews, wishlist

router = APIRouter()
router.include_router(health.router)
router.include_router(auth.router)
router.include_router(books.router)
router.include_router(reviews.router)
router.include_router(wishlist.router)
router.include_router(analytics.router)
