"""
auth/guard.py -- Authorization checks for privileged mutations.

Every guarded route calls one of these BEFORE touching storage, so a failed
check leaves the resource untouched. All functions take the acting Identity
explicitly; nothing reads ambient request state.

Rules in use:
  item update     -- owner OR {ADMIN, ITEMUPDATE}
  item delete     -- owner OR {ADMIN, ITEMDELETE}
  permissions     -- {ADMIN, PERMISSIONUPDATE}, ownership irrelevant
  cart item       -- owner only, no permission override
"""

from __future__ import annotations

from collections.abc import Iterable

from auth.errors import Forbidden, Unauthenticated
from auth.models import Identity, User
from auth.permissions import allows, enforce


def require_user(identity: Identity) -> User:
    """Return the acting user or raise Unauthenticated for anonymous callers."""
    if not identity.is_authenticated:
        raise Unauthenticated()
    return identity.user


def is_owner(identity: Identity, owner_id: int | None) -> bool:
    return identity.is_authenticated and identity.user_id == owner_id


def authorize_owner_or_permission(identity: Identity, owner_id: int | None, required: Iterable) -> User:
    user = require_user(identity)
    if is_owner(identity, owner_id) or allows(user.permissions, required):
        return user
    raise Forbidden("You don't have permission to modify this item.")


def authorize_permission(identity: Identity, required: Iterable) -> User:
    return enforce(require_user(identity), required)


def authorize_owner(identity: Identity, owner_id: int | None) -> User:
    user = require_user(identity)
    if not is_owner(identity, owner_id):
        raise Forbidden("You do not own that item.")
    return user
