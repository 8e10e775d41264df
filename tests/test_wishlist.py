import pytest

from minilibrary.core.errors import DuplicateEntryError, ForbiddenError, NotFoundError
from minilibrary.core.pagination import PageParams
from minilibrary.core.security import Principal
from minilibrary.models import models
from minilibrary.services.catalog import CatalogService
from minilibrary.services.wishlist import WishlistService


def as_principal(user):
    return Principal(id=user.id, role=user.role)


def test_add_and_fetch_active_entries_with_book(db, make_user, make_book):
    user = make_user(db)
    books = [make_book(db, title=f"Wanted {i}") for i in range(3)]
    wishlist = WishlistService(db)
    for book in books:
        wishlist.add(user.id, book.id, actor=as_principal(user))

    items, total = wishlist.fetch(user.id, PageParams(page=1, limit=2), actor=as_principal(user))

    assert total == 3
    assert [i.book.title for i in items] == ["Wanted 0", "Wanted 1"]
    assert all(i.status == models.WishlistStatus.ACTIVE for i in items)


def test_fetch_only_returns_own_entries(db, make_user, make_book):
    alice, bob = make_user(db), make_user(db)
    book = make_book(db)
    wishlist = WishlistService(db)
    wishlist.add(alice.id, book.id)
    wishlist.add(bob.id, book.id)

    items, total = wishlist.fetch(alice.id, PageParams())
    assert total == 1
    assert items[0].user_id == alice.id


def test_duplicate_entry_is_rejected(db, make_user, make_book):
    user = make_user(db)
    book = make_book(db)
    wishlist = WishlistService(db)
    wishlist.add(user.id, book.id)

    with pytest.raises(DuplicateEntryError):
        wishlist.add(user.id, book.id)
    assert db.query(models.WishlistItem).count() == 1


def test_removed_entry_cannot_be_added_again(db, make_user, make_book):
    user = make_user(db)
    book = make_book(db)
    wishlist = WishlistService(db)
    item = wishlist.add(user.id, book.id)
    wishlist.soft_delete(item.id)

    with pytest.raises(DuplicateEntryError):
        wishlist.add(user.id, book.id)


def test_soft_delete_hides_entry_and_is_idempotent(db, make_user, make_book):
    user = make_user(db)
    book = make_book(db)
    wishlist = WishlistService(db)
    item = wishlist.add(user.id, book.id)

    first = wishlist.soft_delete(item.id)
    second = wishlist.soft_delete(item.id)

    assert first.status == models.WishlistStatus.DELETED
    assert second.status == models.WishlistStatus.DELETED
    assert db.query(models.WishlistItem).count() == 1
    assert wishlist.fetch(user.id, PageParams()) == ([], 0)


def test_soft_delete_unknown_item_is_not_found(db):
    with pytest.raises(NotFoundError):
        WishlistService(db).soft_delete(777)


def test_users_cannot_touch_other_wishlists(db, make_user, make_book):
    owner, intruder = make_user(db), make_user(db)
    book = make_book(db)
    wishlist = WishlistService(db)
    item = wishlist.add(owner.id, book.id, actor=as_principal(owner))

    with pytest.raises(ForbiddenError):
        wishlist.add(owner.id, make_book(db).id, actor=as_principal(intruder))
    with pytest.raises(ForbiddenError):
        wishlist.fetch(owner.id, PageParams(), actor=as_principal(intruder))
    with pytest.raises(ForbiddenError):
        wishlist.soft_delete(item.id, actor=as_principal(intruder))
    db.refresh(item)
    assert item.status == models.WishlistStatus.ACTIVE


def test_admin_may_manage_any_wishlist(db, make_user, make_book):
    owner = make_user(db)
    admin = make_user(db, role=models.Role.ADMIN)
    wishlist = WishlistService(db)

    item = wishlist.add(owner.id, make_book(db).id, actor=as_principal(admin))
    _, total = wishlist.fetch(owner.id, PageParams(), actor=as_principal(admin))
    assert total == 1
    assert wishlist.soft_delete(item.id, actor=as_principal(admin)).status == models.WishlistStatus.DELETED


def test_add_requires_existing_user_and_live_book(db, make_user, make_book):
    user = make_user(db)
    admin = make_user(db, role=models.Role.ADMIN)
    gone = make_book(db)
    CatalogService(db).soft_delete_book(gone.id, actor_id=admin.id)
    wishlist = WishlistService(db)

    with pytest.raises(NotFoundError):
        wishlist.add(user.id, 5555)
    with pytest.raises(NotFoundError):
        wishlist.add(user.id, gone.id)
    with pytest.raises(NotFoundError):
        wishlist.add(9999, make_book(db).id)


def test_existing_pair_is_duplicate_even_after_book_is_deleted(db, make_user, make_book):
    user = make_user(db)
    admin = make_user(db, role=models.Role.ADMIN)
    book = make_book(db)
    wishlist = WishlistService(db)
    item = wishlist.add(user.id, book.id)
    wishlist.soft_delete(item.id)
    CatalogService(db).soft_delete_book(book.id, actor_id=admin.id)

    with pytest.raises(DuplicateEntryError):
        wishlist.add(user.id, book.id)
