from typing import List, Optional, Tuple
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from minilibrary.core.errors import DuplicateEntryError, ForbiddenError, NotFoundError
from minilibrary.core.pagination import PageParams
from minilibrary.core.security import Principal
from minilibrary.models import models
from minilibrary.services.catalog import get_active_book

logger = logging.getLogger(__name__)


def ensure_self_or_admin(actor: Optional[Principal], user_id: int) -> None:
    if actor is not None and not actor.is_admin and actor.id != user_id:
        raise ForbiddenError("You can only manage your own wishlist")


class WishlistService:
    def __init__(self, db: Session):
        self.db = db

    def add(self, user_id: int, book_id: int, actor: Optional[Principal] = None) -> models.WishlistItem:
        ensure_self_or_admin(actor, user_id)
        if not self.db.query(models.User).filter(models.User.id == user_id).first():
            raise NotFoundError("User not found")
        # an existing pair wins over the book check, whatever either status is now
        existing = (
            self.db.query(models.WishlistItem.id)
            .filter(models.WishlistItem.user_id == user_id, models.WishlistItem.book_id == book_id)
            .first()
        )
        if existing:
            raise DuplicateEntryError("Book is already in the wishlist")
        get_active_book(self.db, book_id)

        item = models.WishlistItem(user_id=user_id, book_id=book_id, status=models.WishlistStatus.ACTIVE)
        self.db.add(item)
        try:
            self.db.commit()
        except IntegrityError:
            # the pair stays taken even after a soft delete
            self.db.rollback()
            raise DuplicateEntryError("Book is already in the wishlist")
        self.db.refresh(item)
        logger.info(f"User {user_id} added book {book_id} to wishlist item={item.id}")
        return item

    def fetch(self, user_id: int, params: PageParams,
              actor: Optional[Principal] = None) -> Tuple[List[models.WishlistItem], int]:
        ensure_self_or_admin(actor, user_id)
        query = self.db.query(models.WishlistItem).filter(
            models.WishlistItem.user_id == user_id,
            models.WishlistItem.status == models.WishlistStatus.ACTIVE,
        )
        total = query.count()
        items = (
            query.options(joinedload(models.WishlistItem.book))
            .order_by(models.WishlistItem.id)
            .offset(params.offset)
            .limit(params.limit)
            .all()
        )
        return items, total

    def soft_delete(self, item_id: int, actor: Optional[Principal] = None) -> models.WishlistItem:
        item = self.db.query(models.WishlistItem).filter(models.WishlistItem.id == item_id).first()
        if not item:
            raise NotFoundError("Wishlist item not found")
        ensure_self_or_admin(actor, item.user_id)
        if item.status is not models.WishlistStatus.DELETED:
            item.status = models.WishlistStatus.DELETED
            self.db.commit()
            self.db.refresh(item)
            logger.info(f"Wishlist item {item_id} removed")
        return item
