"""Unit tests for auth/permissions.py and auth/guard.py.

Covers:
- allows(U, R) is True iff U and R intersect; empty U never satisfies non-empty R
- enforce() raises Forbidden for anonymous and under-privileged users
- Guard rules: item owner-or-permission, permission-only, cart owner-only
"""

import pytest

from auth.errors import Forbidden, Unauthenticated
from auth.guard import authorize_owner, authorize_owner_or_permission, authorize_permission, is_owner, require_user
from auth.models import Identity, Permission, User
from auth.permissions import ITEM_DELETE_OVERRIDE, PERMISSION_ADMIN, allows, enforce


def _identity(user_id: int, *labels: Permission) -> Identity:
    perms = [p.value for p in labels] or [Permission.USER.value]
    return Identity(user=User(id=user_id, email=f"u{user_id}@x.com", name="u", permissions=perms))


class TestAllows:
    @pytest.mark.parametrize(
        ("user_perms", "required", "expected"),
        [
            ({"ADMIN"}, {"ADMIN", "ITEMDELETE"}, True),
            ({"USER", "ITEMDELETE"}, {"ADMIN", "ITEMDELETE"}, True),
            ({"USER"}, {"ADMIN", "ITEMDELETE"}, False),
            (set(), {"ADMIN"}, False),
            ({"ADMIN"}, set(), False),
        ],
    )
    def test_intersection(self, user_perms, required, expected) -> None:
        assert allows(user_perms, required) is expected

    def test_accepts_enum_members(self) -> None:
        assert allows([Permission.ADMIN], {"ADMIN"})
        assert allows(["PERMISSIONUPDATE"], PERMISSION_ADMIN)

    def test_not_hierarchical(self) -> None:
        # ADMIN does not imply labels it is not listed alongside.
        assert not allows({"ADMIN"}, {"ITEMCREATE"})


class TestEnforce:
    def test_anonymous_forbidden(self) -> None:
        with pytest.raises(Forbidden):
            enforce(None, PERMISSION_ADMIN)

    def test_insufficient_forbidden(self) -> None:
        with pytest.raises(Forbidden):
            enforce(_identity(1).user, PERMISSION_ADMIN)

    def test_sufficient_returns_user(self) -> None:
        user = _identity(1, Permission.ADMIN).user
        assert enforce(user, PERMISSION_ADMIN) is user


class TestGuard:
    def test_require_user_anonymous(self) -> None:
        with pytest.raises(Unauthenticated):
            require_user(Identity.anonymous())

    def test_identity_authentication_flag(self) -> None:
        assert _identity(1).is_authenticated
        assert not Identity.anonymous().is_authenticated

    def test_is_owner(self) -> None:
        assert is_owner(_identity(5), 5)
        assert not is_owner(_identity(5), 6)
        assert not is_owner(Identity.anonymous(), None)

    def test_owner_may_delete_without_permission(self) -> None:
        authorize_owner_or_permission(_identity(1), 1, ITEM_DELETE_OVERRIDE)

    def test_non_owner_without_permission_forbidden(self) -> None:
        with pytest.raises(Forbidden):
            authorize_owner_or_permission(_identity(1), 2, ITEM_DELETE_OVERRIDE)

    @pytest.mark.parametrize("label", [Permission.ADMIN, Permission.ITEMDELETE])
    def test_permission_overrides_ownership(self, label: Permission) -> None:
        authorize_owner_or_permission(_identity(1, label), 2, ITEM_DELETE_OVERRIDE)

    def test_permission_update_ignores_ownership(self) -> None:
        with pytest.raises(Forbidden):
            authorize_permission(_identity(1), PERMISSION_ADMIN)
        authorize_permission(_identity(1, Permission.PERMISSIONUPDATE), PERMISSION_ADMIN)

    def test_cart_has_no_admin_override(self) -> None:
        with pytest.raises(Forbidden):
            authorize_owner(_identity(1, Permission.ADMIN), 2)
        assert authorize_owner(_identity(2), 2).id == 2

    def test_anonymous_is_unauthenticated_not_forbidden(self) -> None:
        with pytest.raises(Unauthenticated):
            authorize_owner_or_permission(Identity.anonymous(), 1, ITEM_DELETE_OVERRIDE)
