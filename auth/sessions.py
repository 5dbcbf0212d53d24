"""
auth/sessions.py -- Signup, signin, signout.

Per request the caller moves Anonymous -> Authenticated (signup, signin,
password reset) or Authenticated -> Anonymous (signout). Each transition is
one call; there is no intermediate state to resume.

Signin does not reveal whether an email is registered: unknown email and
wrong password raise the same InvalidCredentials, and bcrypt runs against
DUMMY_HASH for unknown emails so both paths cost the same.

Emails are lowercased on every entry point. The store compares exactly.
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError

from auth.errors import DuplicateEmail, InternalError, InvalidCredentials
from auth.models import Identity, Permission, User
from auth.passwords import DEFAULT_ROUNDS, DUMMY_HASH, hash_password, verify_password
from auth.store import UserStore
from auth.tokens import SessionCookie, TokenService

logger = logging.getLogger("storefront.auth")

SIGNOUT_MESSAGE = "Goodbye!"


def normalize_email(email: str) -> str:
    return email.strip().lower()


class SessionManager:
    """Orchestrates account creation and session establishment.

    Usage:
        sessions = SessionManager(store, TokenService(secret, 3600), SessionCookie(max_age=3600))
        user = sessions.signup("Me@Example.com", "hunter22", "Me", response)
    """

    def __init__(
        self,
        store: UserStore,
        tokens: TokenService,
        cookie: SessionCookie,
        bcrypt_rounds: int = DEFAULT_ROUNDS,
    ) -> None:
        self.store = store
        self.tokens = tokens
        self.cookie = cookie
        self.bcrypt_rounds = bcrypt_rounds

    def start_session(self, user: User, response) -> str:
        """Issue a token for user and attach it to response. Returns the token."""
        token = self.tokens.issue(user.id)
        self.cookie.attach(response, token)
        return token

    def signup(self, email: str, password: str, name: str, response) -> User:
        """Create an account with permissions [USER] and sign it in.

        Raises DuplicateEmail if the lowercased email is already registered.
        """
        email = normalize_email(email)
        hashed = hash_password(password, self.bcrypt_rounds)
        try:
            user_id = self.store.create_user(
                User(email=email, name=name, hashed_password=hashed, permissions=[Permission.USER.value])
            )
        except IntegrityError as exc:
            raise DuplicateEmail() from exc

        user = self.store.get_by_id(user_id)
        if user is None:
            raise InternalError("User not found after write.")
        self.start_session(user, response)
        logger.info("Signup user_id=%s", user.id)
        return user

    def signin(self, email: str, password: str, response) -> User:
        """Verify credentials and sign the user in.

        Raises InvalidCredentials for both unknown email and wrong password.
        """
        user = self.store.get_by_email(normalize_email(email))
        if user is None or not user.hashed_password:
            # Equalize timing -- do NOT return early before running bcrypt
            verify_password(password, DUMMY_HASH)
            logger.info("Signin failed: unknown account")
            raise InvalidCredentials()
        if not verify_password(password, user.hashed_password):
            logger.info("Signin failed: bad password for user_id=%s", user.id)
            raise InvalidCredentials()

        self.start_session(user, response)
        logger.info("Signin user_id=%s", user.id)
        return user

    def signout(self, response) -> str:
        """Clear the session cookie. Always succeeds."""
        self.cookie.clear(response)
        return SIGNOUT_MESSAGE

    def me(self, identity: Identity) -> User | None:
        """Return the acting user's fresh record, or None when anonymous."""
        if identity.user_id is None:
            return None
        return self.store.get_by_id(identity.user_id)
