"""
api/routes/v1/items.py -- Catalog routes.

Routes (in registration order to avoid FastAPI path capture conflicts):
  GET    /items/count      -- total number of items (pagination)
  GET    /items            -- list items, newest first (?skip=&first=)
  GET    /items/{item_id}  -- item detail
  POST   /items            -- create item owned by the caller
  PATCH  /items/{item_id}  -- owner OR {ADMIN, ITEMUPDATE}
  DELETE /items/{item_id}  -- owner OR {ADMIN, ITEMDELETE}

Reads are public. Every write resolves the acting Identity first and runs the
guard before touching the store, so a rejected write changes nothing.
"""

from fastapi import APIRouter, Depends, Query, Request

from api.limiter import limiter
from api.models import ItemCountResponse, ItemCreate, ItemResponse, ItemUpdate, MessageResponse
from auth.dependencies import get_identity
from auth.errors import InternalError, InvalidInput, ResourceNotFound
from auth.guard import authorize_owner_or_permission, require_user
from auth.models import Identity
from auth.permissions import ITEM_DELETE_OVERRIDE, ITEM_UPDATE_OVERRIDE
from shop.models import Item
from shop.store import ShopStore

router = APIRouter()

_PAGE_MAX = 100
_NULLABLE = {"image", "large_image"}


def _get_item_or_404(store: ShopStore, item_id: int) -> Item:
    item = store.get_item(item_id)
    if item is None:
        raise ResourceNotFound("No item found.")
    return item


@router.get("/items/count", response_model=ItemCountResponse)
async def count_items(request: Request) -> ItemCountResponse:
    shop: ShopStore = request.app.state.shop
    return ItemCountResponse(count=shop.count_items())


@router.get("/items", response_model=list[ItemResponse])
async def list_items(
    request: Request,
    skip: int = Query(default=0, ge=0),
    first: int = Query(default=_PAGE_MAX, ge=1, le=_PAGE_MAX),
) -> list[ItemResponse]:
    shop: ShopStore = request.app.state.shop
    return [ItemResponse.from_item(i) for i in shop.list_items(skip=skip, first=first)]


@router.get("/items/{item_id}", response_model=ItemResponse)
async def get_item(request: Request, item_id: int) -> ItemResponse:
    shop: ShopStore = request.app.state.shop
    return ItemResponse.from_item(_get_item_or_404(shop, item_id))


@limiter.limit("30/minute")
@router.post("/items", response_model=ItemResponse, status_code=201)
async def create_item(
    request: Request,
    body: ItemCreate,
    identity: Identity = Depends(get_identity),
) -> ItemResponse:
    """Create an item owned by the signed-in caller."""
    user = require_user(identity)
    shop: ShopStore = request.app.state.shop
    item_id = shop.create_item(
        Item(
            title=body.title,
            description=body.description,
            price=body.price,
            image=body.image,
            large_image=body.large_image,
            user_id=user.id,
        )
    )
    created = shop.get_item(item_id)
    if created is None:
        raise InternalError("Item not found after write.")
    return ItemResponse.from_item(created)


@limiter.limit("30/minute")
@router.patch("/items/{item_id}", response_model=ItemResponse)
async def update_item(
    request: Request,
    item_id: int,
    body: ItemUpdate,
    identity: Identity = Depends(get_identity),
) -> ItemResponse:
    require_user(identity)
    shop: ShopStore = request.app.state.shop
    item = _get_item_or_404(shop, item_id)
    authorize_owner_or_permission(identity, item.user_id, ITEM_UPDATE_OVERRIDE)

    # Explicit nulls only make sense for the optional image fields.
    updates = {k: v for k, v in body.model_dump(exclude_unset=True).items() if v is not None or k in _NULLABLE}
    if not updates:
        raise InvalidInput("No fields to update.")
    shop.update_item(item_id, **updates)
    return ItemResponse.from_item(_get_item_or_404(shop, item_id))


@limiter.limit("30/minute")
@router.delete("/items/{item_id}", response_model=MessageResponse)
async def delete_item(
    request: Request,
    item_id: int,
    identity: Identity = Depends(get_identity),
) -> MessageResponse:
    require_user(identity)
    shop: ShopStore = request.app.state.shop
    item = _get_item_or_404(shop, item_id)
    authorize_owner_or_permission(identity, item.user_id, ITEM_DELETE_OVERRIDE)
    shop.delete_item(item_id)
    return MessageResponse(message=f"Deleted item {item_id}.")
