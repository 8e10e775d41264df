from fastapi import APIRouter, Depends

from minilibrary.api.deps import get_wishlist_service, require_user
from minilibrary.core.pagination import PageParams, page_params
from minilibrary.core.responses import success
from minilibrary.core.security import Principal
from minilibrary.schemas import schemas
from minilibrary.services.wishlist import WishlistService

router = APIRouter(prefix="/wishlist", tags=["Wishlist"])


@router.post("/add", status_code=201, response_model=schemas.ApiResponse[schemas.WishlistItemOut])
def add_wishlist(item_in: schemas.WishlistCreate,
                 principal: Principal = Depends(require_user),
                 wishlist: WishlistService = Depends(get_wishlist_service)):
    item = wishlist.add(item_in.user_id, item_in.book_id, actor=principal)
    return success("Book added to wishlist successfully", schemas.WishlistItemOut.model_validate(item),
                   status_code=201)


@router.get("/fetch/{user_id}", response_model=schemas.ApiResponse[schemas.WishlistPage])
def fetch_wishlist(user_id: int,
                   params: PageParams = Depends(page_params),
                   principal: Principal = Depends(require_user),
                   wishlist: WishlistService = Depends(get_wishlist_service)):
    items, total = wishlist.fetch(user_id, params, actor=principal)
    data = schemas.WishlistPage(
        wishlist=[schemas.WishlistEntry.model_validate(item) for item in items],
        **params.meta(total),
    )
    return success("Wishlist fetched successfully", data)


@router.delete("/delete/{item_id}", response_model=schemas.ApiResponse[schemas.WishlistItemOut])
def delete_wishlist_item(item_id: int,
                         principal: Principal = Depends(require_user),
                         wishlist: WishlistService = Depends(get_wishlist_service)):
    item = wishlist.soft_delete(item_id, actor=principal)
    return success("Book removed from wishlist successfully", schemas.WishlistItemOut.model_validate(item))
