"""
api/routes/v1/cart.py -- Shopping cart routes.

Routes:
  GET    /cart                  -- caller's cart lines
  POST   /cart/{item_id}        -- add one unit of an item (increments existing line)
  DELETE /cart/{cart_item_id}   -- remove a line; strict ownership, no admin override

All routes require a session. Cart lines are only ever created with the
caller as owner, so ownership is the whole access rule here.
"""

from fastapi import APIRouter, Depends, Request

from api.limiter import limiter
from api.models import CartItemResponse
from auth.dependencies import get_current_user, get_identity
from auth.errors import ResourceNotFound
from auth.guard import authorize_owner, require_user
from auth.models import Identity, User
from shop.store import ShopStore

router = APIRouter()


@router.get("/cart", response_model=list[CartItemResponse])
async def list_cart(request: Request, user: User = Depends(get_current_user)) -> list[CartItemResponse]:
    shop: ShopStore = request.app.state.shop
    return [CartItemResponse.from_cart_item(line) for line in shop.list_cart_items(user.id)]


@limiter.limit("60/minute")
@router.post("/cart/{item_id}", response_model=CartItemResponse)
async def add_to_cart(
    request: Request,
    item_id: int,
    identity: Identity = Depends(get_identity),
) -> CartItemResponse:
    user = require_user(identity)
    shop: ShopStore = request.app.state.shop
    if shop.get_item(item_id) is None:
        raise ResourceNotFound("No item found.")
    return CartItemResponse.from_cart_item(shop.add_to_cart(user.id, item_id))


@limiter.limit("60/minute")
@router.delete("/cart/{cart_item_id}", response_model=CartItemResponse)
async def remove_from_cart(
    request: Request,
    cart_item_id: int,
    identity: Identity = Depends(get_identity),
) -> CartItemResponse:
    """Delete a cart line and return it as it was."""
    require_user(identity)
    shop: ShopStore = request.app.state.shop
    line = shop.get_cart_item(cart_item_id)
    if line is None:
        raise ResourceNotFound("No item found.")
    authorize_owner(identity, line.user_id)
    shop.delete_cart_item(cart_item_id)
    return CartItemResponse.from_cart_item(line)
