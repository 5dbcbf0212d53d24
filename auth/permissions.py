"""
auth/permissions.py -- Permission evaluation.

A requirement is satisfied when the user's permission set intersects it.
There is no hierarchy: ADMIN only wins where a requirement lists ADMIN.

The requirement constants below are the only ones the application uses;
keep route code referring to them rather than spelling out label sets.
"""

from __future__ import annotations

from collections.abc import Iterable

from auth.errors import Forbidden
from auth.models import Permission, User

# Override sets for privileged mutations. Immutable by construction.
ITEM_UPDATE_OVERRIDE = frozenset({Permission.ADMIN.value, Permission.ITEMUPDATE.value})
ITEM_DELETE_OVERRIDE = frozenset({Permission.ADMIN.value, Permission.ITEMDELETE.value})
PERMISSION_ADMIN = frozenset({Permission.ADMIN.value, Permission.PERMISSIONUPDATE.value})


def _labels(values: Iterable) -> set[str]:
    # Accept both Permission members and raw strings.
    return {v.value if isinstance(v, Permission) else str(v) for v in values}


def allows(user_permissions: Iterable, required: Iterable) -> bool:
    """Return True iff user_permissions and required share at least one label."""
    return bool(_labels(user_permissions) & _labels(required))


def enforce(user: User | None, required: Iterable) -> User:
    """Return user if it satisfies required, else raise Forbidden.

    A missing user (anonymous caller) is always Forbidden here; callers that
    want a 401 for anonymous access check authentication first.
    """
    required = _labels(required)
    if user is None or not allows(user.permissions, required):
        raise Forbidden(f"You do not have sufficient permissions: {sorted(required)}")
    return user
