"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Mirrors the approach
in shop/models.py -- dataclasses own domain shape; stores, services and
routes do the work.

Layer rule: no imports from api/, core/, or shop/.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class Permission(str, Enum):
    """Closed set of permission labels. Authorization is intersection-based, not hierarchical."""

    ADMIN = "ADMIN"
    USER = "USER"
    ITEMCREATE = "ITEMCREATE"
    ITEMUPDATE = "ITEMUPDATE"
    ITEMDELETE = "ITEMDELETE"
    PERMISSIONUPDATE = "PERMISSIONUPDATE"


@dataclass
class User:
    """A storefront account.

    email is always stored lowercased -- the session manager normalizes it
    before any write or lookup.

    permissions keeps insertion order (it is rendered back to admins as-is)
    but is evaluated as a set.

    reset_token / reset_token_expiry are both None or both set. The store only
    ever writes them together: set_reset_token() sets both, consume_reset_token()
    clears both.
    """

    email: str
    name: str
    id: int | None = None
    hashed_password: str | None = None
    permissions: list[str] = field(default_factory=lambda: [Permission.USER.value])
    reset_token: str | None = None
    reset_token_expiry: float | None = None  # epoch seconds
    created_at: str | None = None


@dataclass(frozen=True)
class Identity:
    """The acting identity of one request.

    Built once per request by auth.dependencies.get_identity() and passed
    explicitly into every guarded operation. user is None for anonymous
    callers (no token, or a token that failed verification).
    """

    user: User | None = None

    @classmethod
    def anonymous(cls) -> "Identity":
        return cls(user=None)

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    @property
    def user_id(self) -> int | None:
        return self.user.id if self.user is not None else None
