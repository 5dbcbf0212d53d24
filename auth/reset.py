"""
auth/reset.py -- Two-phase password reset.

Request phase (public): look the account up by email, store a fresh random
token with expiry = now + ttl on the user record, and mail a reset link.

Reset phase (public, token-authenticated): check the confirmation matches,
then swap the password hash in and clear the token in ONE conditional update
(see UserStore.consume_reset_token). A token is accepted while
reset_token_expiry >= now - ttl. Since expiry is already issue time + ttl,
a token stays redeemable for up to 2 * ttl after issue. After a successful
reset the user is signed in with a fresh session token.

The clock is injectable so window boundaries can be tested without sleeping.
"""

from __future__ import annotations

import logging
import secrets
import time
from collections.abc import Callable

from auth.errors import InternalError, InvalidOrExpiredToken, PasswordMismatch, UserNotFound
from auth.models import User
from auth.passwords import hash_password
from auth.sessions import SessionManager, normalize_email

logger = logging.getLogger("storefront.auth")

RESET_TOKEN_BYTES = 20  # 40 hex characters
DEFAULT_TTL_SECONDS = 3600
RESET_SUBJECT = "Your password reset token"


def generate_reset_token() -> str:
    return secrets.token_hex(RESET_TOKEN_BYTES)


class PasswordResetFlow:
    """Issues and redeems single-use, time-boxed reset tokens.

    Args:
        sessions:      SessionManager -- provides the store, hashing cost, and
                       session re-establishment after a reset.
        mailer:        anything with send_mail(to, subject, html_body) -> bool.
        frontend_url:  base URL of the storefront UI; the link points at
                       {frontend_url}/reset?resetToken=<token>.
        render_email:  wraps the message text into the mail's HTML body.
        ttl_seconds:   one hour; added to issue time for the stored expiry and
                       subtracted from now for the redemption bound.
        clock:         returns the current time in epoch seconds.
    """

    def __init__(
        self,
        sessions: SessionManager,
        mailer,
        frontend_url: str,
        render_email: Callable[[str], str],
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.sessions = sessions
        self.store = sessions.store
        self.mailer = mailer
        self.frontend_url = frontend_url.rstrip("/")
        self.render_email = render_email
        self.ttl_seconds = ttl_seconds
        self.clock = clock

    def request_reset(self, email: str) -> bool:
        """Store a reset token for email and mail the link.

        Raises UserNotFound for unknown emails; nothing is stored or sent.
        Returns whether the mail was delivered. The token is valid either
        way -- a failed delivery is reported, not rolled back.
        """
        email = normalize_email(email)
        user = self.store.get_by_email(email)
        if user is None:
            raise UserNotFound(email)

        token = generate_reset_token()
        expiry = self.clock() + self.ttl_seconds
        self.store.set_reset_token(user.id, token, expiry)

        link = f"{self.frontend_url}/reset?resetToken={token}"
        body = self.render_email(
            f'Your password reset token is here! <br /><br /> <a href="{link}">Click here to reset!</a>'
        )
        delivered = self.mailer.send_mail(user.email, RESET_SUBJECT, body)
        if not delivered:
            logger.warning("Reset token stored but mail delivery failed for user_id=%s", user.id)
        else:
            logger.info("Reset token issued for user_id=%s", user.id)
        return bool(delivered)

    def reset_password(self, password: str, confirm_password: str, reset_token: str, response) -> User:
        """Redeem reset_token for a new password and sign the user in.

        Raises PasswordMismatch if the two inputs differ, and
        InvalidOrExpiredToken if the token is unknown, already used, or its
        stored expiry is more than ttl_seconds in the past. On failure nothing
        is written.
        """
        if password != confirm_password:
            raise PasswordMismatch()
        min_expiry = self.clock() - self.ttl_seconds
        # Cheap lookup first; the conditional update below stays authoritative.
        if not reset_token or self.store.find_by_reset_token(reset_token, min_expiry) is None:
            raise InvalidOrExpiredToken()

        hashed = hash_password(password, self.sessions.bcrypt_rounds)
        user_id = self.store.consume_reset_token(reset_token, min_expiry, hashed)
        if user_id is None:
            raise InvalidOrExpiredToken()

        user = self.store.get_by_id(user_id)
        if user is None:
            raise InternalError("User not found after write.")
        self.sessions.start_session(user, response)
        logger.info("Password reset for user_id=%s", user.id)
        return user
