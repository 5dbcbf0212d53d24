"""
api/routes/v1/users.py -- User administration.

Routes:
  GET /api/v1/users                          -- list all users
  PUT /api/v1/users/{user_id}/permissions    -- replace a user's permission set

Both require a session AND one of {ADMIN, PERMISSIONUPDATE}. Ownership plays
no part: a USER cannot edit even their own permissions. The guard runs before
the target lookup, so unauthorized callers cannot probe which ids exist.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request

from api.models import PermissionsUpdate, UserResponse
from auth.dependencies import get_identity
from auth.errors import InternalError, UserNotFound
from auth.guard import authorize_permission
from auth.models import Identity
from auth.permissions import PERMISSION_ADMIN
from auth.store import UserStore

logger = logging.getLogger("storefront.api")

router = APIRouter()


@router.get("/users", response_model=list[UserResponse])
async def list_users(request: Request, identity: Identity = Depends(get_identity)) -> list[UserResponse]:
    authorize_permission(identity, PERMISSION_ADMIN)
    user_store: UserStore = request.app.state.user_store
    return [UserResponse.from_user(u) for u in user_store.list_users()]


@router.put("/users/{user_id}/permissions", response_model=UserResponse)
async def update_permissions(
    request: Request,
    user_id: int,
    body: PermissionsUpdate,
    identity: Identity = Depends(get_identity),
) -> UserResponse:
    """Replace the permission set of user_id. Duplicates are dropped, order kept."""
    actor = authorize_permission(identity, PERMISSION_ADMIN)
    user_store: UserStore = request.app.state.user_store

    if user_store.get_by_id(user_id) is None:
        raise UserNotFound()

    labels = list(dict.fromkeys(p.value for p in body.permissions))
    user_store.update_user(user_id, permissions=labels)
    updated = user_store.get_by_id(user_id)
    if updated is None:
        raise InternalError("User not found after write.")
    logger.info("Permissions of user_id=%s set to %s by user_id=%s", user_id, labels, actor.id)
    return UserResponse.from_user(updated)
