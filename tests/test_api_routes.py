"""
tests/test_api_routes.py -- Integration tests for the /api/v1 routers.

Covers:
  - auth: signup/signin/signout/me cookies, duplicate email, uniform bad credentials
  - password reset over HTTP: unknown email, mismatch, success, token reuse
  - users: listing and permission updates gated on {ADMIN, PERMISSIONUPDATE}
  - items: public reads, owner-or-permission writes, anonymous 401, missing 404
  - cart: increments, strict ownership on removal (no admin override)

Users created through make_user() authenticate with a Bearer header; the
session cookie jar is cleared before every test so identities never leak
between tests.
"""

from __future__ import annotations

import pytest

from auth.models import Permission


@pytest.fixture(autouse=True)
def _fresh_cookies(api_client):
    client, _, mailer = api_client
    client.cookies.clear()
    mailer.reset_mock()
    mailer.send_mail.return_value = True


def _auth(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def _create_item(client, token: str, title: str = "Shirt") -> dict:
    resp = client.post(
        "/api/v1/items",
        json={"title": title, "description": "A thing", "price": 1500},
        headers=_auth(token),
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


def _signup(client, email: str, password: str = "pw-123456"):
    return client.post("/api/v1/auth/signup", json={"email": email, "name": "Shopper", "password": password})


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


class TestSignupSignin:
    def test_signup_lowercases_email_and_sets_cookie(self, api_client):
        client, user_store, _ = api_client
        resp = _signup(client, "Test@Example.com")
        assert resp.status_code == 201
        body = resp.json()
        assert body["email"] == "test@example.com"
        assert body["permissions"] == ["USER"]
        assert "hashed_password" not in body
        assert "token" in resp.cookies
        assert resp.headers["cache-control"] == "no-store"
        assert user_store.get_by_email("test@example.com") is not None

    def test_signin_after_mixed_case_signup(self, api_client):
        client, _, _ = api_client
        _signup(client, "Mixed@Example.com")
        client.cookies.clear()
        resp = client.post("/api/v1/auth/signin", json={"email": "mixed@example.com", "password": "pw-123456"})
        assert resp.status_code == 200
        assert resp.json()["email"] == "mixed@example.com"
        assert "token" in resp.cookies

    def test_duplicate_email_conflict(self, api_client):
        client, _, _ = api_client
        assert _signup(client, "dup@example.com").status_code == 201
        client.cookies.clear()
        resp = _signup(client, "DUP@example.com")
        assert resp.status_code == 409
        assert resp.json()["error"]["code"] == "conflict"

    def test_malformed_email_rejected(self, api_client):
        client, _, _ = api_client
        assert _signup(client, "not-an-email").status_code == 422

    def test_bad_credentials_are_uniform(self, api_client):
        client, _, _ = api_client
        _signup(client, "known@example.com")
        client.cookies.clear()

        unknown = client.post("/api/v1/auth/signin", json={"email": "ghost@example.com", "password": "pw-123456"})
        wrong = client.post("/api/v1/auth/signin", json={"email": "known@example.com", "password": "nope"})

        assert unknown.status_code == wrong.status_code == 401
        assert unknown.json() == wrong.json()
        assert unknown.json()["error"]["code"] == "bad_credentials"
        assert "token" not in wrong.cookies


class TestSessionLifecycle:
    def test_me_anonymous_is_null(self, api_client):
        client, _, _ = api_client
        resp = client.get("/api/v1/auth/me")
        assert resp.status_code == 200
        assert resp.json() is None

    def test_me_with_garbage_token_is_null(self, api_client):
        client, _, _ = api_client
        assert client.get("/api/v1/auth/me", headers=_auth("not.a.jwt")).json() is None

    def test_me_follows_cookie(self, api_client):
        client, _, _ = api_client
        _signup(client, "cookie@example.com")
        assert client.get("/api/v1/auth/me").json()["email"] == "cookie@example.com"

    def test_me_with_bearer(self, api_client, make_user):
        client, _, _ = api_client
        uid, token = make_user("bearer@example.com")
        assert client.get("/api/v1/auth/me", headers=_auth(token)).json()["id"] == uid

    def test_signout_clears_cookie(self, api_client):
        client, _, _ = api_client
        _signup(client, "bye@example.com")
        resp = client.post("/api/v1/auth/signout")
        assert resp.status_code == 200
        assert resp.json() == {"message": "Goodbye!"}
        set_cookie = resp.headers["set-cookie"].lower()
        assert set_cookie.startswith("token=")
        assert "max-age=0" in set_cookie

    def test_signout_without_session_still_ok(self, api_client):
        client, _, _ = api_client
        assert client.post("/api/v1/auth/signout").status_code == 200


class TestPasswordReset:
    def test_unknown_email_404_and_no_mail(self, api_client):
        client, _, mailer = api_client
        resp = client.post("/api/v1/auth/request-reset", json={"email": "nobody@example.com"})
        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "not_found"
        mailer.send_mail.assert_not_called()

    def test_full_reset_flow(self, api_client):
        client, user_store, mailer = api_client
        _signup(client, "forgot@example.com", "old-password")
        client.cookies.clear()

        resp = client.post("/api/v1/auth/request-reset", json={"email": "Forgot@Example.com"})
        assert resp.status_code == 200
        assert resp.json()["delivered"] is True
        token = user_store.get_by_email("forgot@example.com").reset_token
        assert f"resetToken={token}" in mailer.send_mail.call_args.args[2]

        mismatch = client.post(
            "/api/v1/auth/reset-password",
            json={"password": "new-password", "confirmPassword": "other", "resetToken": token},
        )
        assert mismatch.status_code == 400
        assert mismatch.json()["error"]["code"] == "password_mismatch"

        ok = client.post(
            "/api/v1/auth/reset-password",
            json={"password": "new-password", "confirmPassword": "new-password", "resetToken": token},
        )
        assert ok.status_code == 200
        assert ok.json()["email"] == "forgot@example.com"
        assert "token" in ok.cookies

        reuse = client.post(
            "/api/v1/auth/reset-password",
            json={"password": "again", "confirmPassword": "again", "resetToken": token},
        )
        assert reuse.status_code == 400
        assert reuse.json()["error"]["code"] == "invalid_reset_token"

        client.cookies.clear()
        old = client.post("/api/v1/auth/signin", json={"email": "forgot@example.com", "password": "old-password"})
        new = client.post("/api/v1/auth/signin", json={"email": "forgot@example.com", "password": "new-password"})
        assert old.status_code == 401
        assert new.status_code == 200

    def test_delivery_failure_reported(self, api_client):
        client, user_store, mailer = api_client
        _signup(client, "undeliverable@example.com")
        mailer.send_mail.return_value = False
        resp = client.post("/api/v1/auth/request-reset", json={"email": "undeliverable@example.com"})
        assert resp.status_code == 200
        assert resp.json()["delivered"] is False
        assert user_store.get_by_email("undeliverable@example.com").reset_token is not None


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class TestUsers:
    def test_list_users_requires_permission(self, api_client, make_user):
        client, _, _ = api_client
        _, user_token = make_user("plain-lister@example.com")
        _, admin_token = make_user("admin-lister@example.com", [Permission.ADMIN])

        assert client.get("/api/v1/users").status_code == 401
        assert client.get("/api/v1/users", headers=_auth(user_token)).status_code == 403
        resp = client.get("/api/v1/users", headers=_auth(admin_token))
        assert resp.status_code == 200
        assert "admin-lister@example.com" in [u["email"] for u in resp.json()]

    def test_admin_updates_permissions(self, api_client, make_user):
        client, user_store, _ = api_client
        target, _ = make_user("promote-me@example.com")
        _, admin_token = make_user("perm-admin@example.com", [Permission.ADMIN])

        resp = client.put(
            f"/api/v1/users/{target}/permissions",
            json={"permissions": ["USER", "ITEMDELETE", "USER"]},
            headers=_auth(admin_token),
        )
        assert resp.status_code == 200
        assert resp.json()["permissions"] == ["USER", "ITEMDELETE"]
        assert user_store.get_by_id(target).permissions == ["USER", "ITEMDELETE"]

    def test_permissionupdate_holder_may_update(self, api_client, make_user):
        client, _, _ = api_client
        target, _ = make_user("target-pu@example.com")
        _, token = make_user("pu@example.com", [Permission.USER, Permission.PERMISSIONUPDATE])
        resp = client.put(f"/api/v1/users/{target}/permissions", json={"permissions": ["ADMIN"]}, headers=_auth(token))
        assert resp.status_code == 200

    def test_user_cannot_escalate_self(self, api_client, make_user):
        client, user_store, _ = api_client
        uid, token = make_user("escalate@example.com")
        resp = client.put(f"/api/v1/users/{uid}/permissions", json={"permissions": ["ADMIN"]}, headers=_auth(token))
        assert resp.status_code == 403
        assert user_store.get_by_id(uid).permissions == ["USER"]

    def test_unknown_target_404(self, api_client, make_user):
        client, _, _ = api_client
        _, admin_token = make_user("admin-404@example.com", [Permission.ADMIN])
        resp = client.put("/api/v1/users/99999/permissions", json={"permissions": ["USER"]}, headers=_auth(admin_token))
        assert resp.status_code == 404

    def test_invalid_label_422(self, api_client, make_user):
        client, _, _ = api_client
        target, _ = make_user("target-422@example.com")
        _, admin_token = make_user("admin-422@example.com", [Permission.ADMIN])
        resp = client.put(
            f"/api/v1/users/{target}/permissions",
            json={"permissions": ["SUPERUSER"]},
            headers=_auth(admin_token),
        )
        assert resp.status_code == 422
        assert resp.json()["error"]["code"] == "validation_error"


# ---------------------------------------------------------------------------
# Items
# ---------------------------------------------------------------------------


class TestItems:
    def test_create_requires_session(self, api_client):
        client, _, _ = api_client
        resp = client.post("/api/v1/items", json={"title": "x", "description": "y", "price": 1})
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "unauthorized"

    def test_create_and_read_public(self, api_client, make_user):
        client, _, _ = api_client
        uid, token = make_user("seller@example.com")
        item = _create_item(client, token, "Hat")
        assert item["user_id"] == uid

        assert client.get(f"/api/v1/items/{item['id']}").json()["title"] == "Hat"
        assert client.get("/api/v1/items/count").json()["count"] >= 1
        listed = client.get("/api/v1/items", params={"first": 1}).json()
        assert [i["id"] for i in listed] == [item["id"]]

    def test_get_missing_item_404(self, api_client):
        client, _, _ = api_client
        assert client.get("/api/v1/items/99999").status_code == 404

    def test_owner_deletes_with_user_permission_only(self, api_client, make_user):
        client, _, _ = api_client
        _, token = make_user("owner-del@example.com")
        item = _create_item(client, token)
        resp = client.delete(f"/api/v1/items/{item['id']}", headers=_auth(token))
        assert resp.status_code == 200
        assert client.get(f"/api/v1/items/{item['id']}").status_code == 404

    def test_non_owner_forbidden_then_admin_allowed(self, api_client, make_user):
        client, _, _ = api_client
        _, owner_token = make_user("owner-keep@example.com")
        _, other_token = make_user("other-del@example.com")
        _, admin_token = make_user("admin-del@example.com", [Permission.ADMIN])
        item = _create_item(client, owner_token)

        forbidden = client.delete(f"/api/v1/items/{item['id']}", headers=_auth(other_token))
        assert forbidden.status_code == 403
        assert client.get(f"/api/v1/items/{item['id']}").status_code == 200

        assert client.delete(f"/api/v1/items/{item['id']}", headers=_auth(admin_token)).status_code == 200

    def test_itemdelete_permission_overrides_ownership(self, api_client, make_user):
        client, _, _ = api_client
        _, owner_token = make_user("owner-id@example.com")
        _, deleter_token = make_user("deleter@example.com", [Permission.USER, Permission.ITEMDELETE])
        item = _create_item(client, owner_token)
        assert client.delete(f"/api/v1/items/{item['id']}", headers=_auth(deleter_token)).status_code == 200

    def test_delete_anonymous_401_missing_404(self, api_client, make_user):
        client, _, _ = api_client
        _, token = make_user("owner-anon@example.com")
        item = _create_item(client, token)
        assert client.delete(f"/api/v1/items/{item['id']}").status_code == 401
        assert client.delete("/api/v1/items/99999", headers=_auth(token)).status_code == 404

    def test_update_owner_and_itemupdate(self, api_client, make_user):
        client, _, _ = api_client
        _, owner_token = make_user("owner-upd@example.com")
        _, other_token = make_user("other-upd@example.com")
        _, editor_token = make_user("editor@example.com", [Permission.ITEMUPDATE])
        item = _create_item(client, owner_token)
        url = f"/api/v1/items/{item['id']}"

        assert client.patch(url, json={"price": 999}, headers=_auth(owner_token)).json()["price"] == 999
        assert client.patch(url, json={"price": 1}, headers=_auth(other_token)).status_code == 403
        edited = client.patch(url, json={"title": "Renamed"}, headers=_auth(editor_token))
        assert edited.status_code == 200
        assert edited.json()["title"] == "Renamed"
        assert edited.json()["price"] == 999

    def test_update_with_nothing_to_change(self, api_client, make_user):
        client, _, _ = api_client
        _, token = make_user("owner-empty@example.com")
        item = _create_item(client, token)
        resp = client.patch(f"/api/v1/items/{item['id']}", json={"title": None}, headers=_auth(token))
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "invalid_input"


# ---------------------------------------------------------------------------
# Cart
# ---------------------------------------------------------------------------


class TestCart:
    def test_add_twice_increments(self, api_client, make_user):
        client, _, _ = api_client
        _, seller = make_user("cart-seller@example.com")
        uid, buyer = make_user("cart-buyer@example.com")
        item = _create_item(client, seller)

        first = client.post(f"/api/v1/cart/{item['id']}", headers=_auth(buyer)).json()
        second = client.post(f"/api/v1/cart/{item['id']}", headers=_auth(buyer)).json()
        assert first["quantity"] == 1
        assert second["id"] == first["id"]
        assert second["quantity"] == 2

        cart = client.get("/api/v1/cart", headers=_auth(buyer)).json()
        assert [(line["item_id"], line["user_id"]) for line in cart] == [(item["id"], uid)]

    def test_cart_requires_session(self, api_client):
        client, _, _ = api_client
        assert client.get("/api/v1/cart").status_code == 401
        assert client.post("/api/v1/cart/1").status_code == 401

    def test_add_missing_item_404(self, api_client, make_user):
        client, _, _ = api_client
        _, token = make_user("cart-missing@example.com")
        assert client.post("/api/v1/cart/99999", headers=_auth(token)).status_code == 404

    def test_remove_is_owner_only_even_for_admin(self, api_client, make_user):
        client, _, _ = api_client
        _, seller = make_user("cart-seller2@example.com")
        _, buyer = make_user("cart-buyer2@example.com")
        _, admin = make_user("cart-admin@example.com", [Permission.ADMIN])
        item = _create_item(client, seller)
        line = client.post(f"/api/v1/cart/{item['id']}", headers=_auth(buyer)).json()

        assert client.delete(f"/api/v1/cart/{line['id']}", headers=_auth(admin)).status_code == 403
        removed = client.delete(f"/api/v1/cart/{line['id']}", headers=_auth(buyer))
        assert removed.status_code == 200
        assert removed.json()["id"] == line["id"]
        assert client.delete(f"/api/v1/cart/{line['id']}", headers=_auth(buyer)).status_code == 404

    def test_deleting_item_empties_carts(self, api_client, make_user):
        client, _, _ = api_client
        _, seller = make_user("cart-seller3@example.com")
        _, buyer = make_user("cart-buyer3@example.com")
        item = _create_item(client, seller)
        client.post(f"/api/v1/cart/{item['id']}", headers=_auth(buyer))

        assert client.delete(f"/api/v1/items/{item['id']}", headers=_auth(seller)).status_code == 200
        assert client.get("/api/v1/cart", headers=_auth(buyer)).json() == []


def test_make_user_password_signs_in(api_client, make_user, user_password):
    client, _, _ = api_client
    make_user("factory@example.com")
    resp = client.post("/api/v1/auth/signin", json={"email": "factory@example.com", "password": user_password})
    assert resp.status_code == 200
