"""
auth/passwords.py -- Password hashing (the credential store).

bcrypt directly, no passlib wrapper. passlib's internal wrap-bug detection
builds a password longer than 72 bytes, which bcrypt 4.x rejects with an
explicit error. Direct bcrypt usage is simpler and actively maintained.

Cost factor 10 by default (Settings.bcrypt_rounds). Each hash gets a fresh
salt from bcrypt.gensalt(), so hashing the same password twice yields two
different strings that both verify.

Layer rule: no imports from api/, core/, or shop/.
"""

from __future__ import annotations

import logging

import bcrypt

from auth.errors import InternalError

logger = logging.getLogger("storefront.auth")

DEFAULT_ROUNDS = 10


def hash_password(plain: str, rounds: int = DEFAULT_ROUNDS) -> str:
    """Return a salted bcrypt hash of the given plaintext password.

    bcrypt refuses inputs over 72 bytes. The API layer caps password fields
    at 72 characters; anything that still fails here (multi-byte input,
    salt/entropy failure) is an internal error, not a validation error.
    """
    try:
        return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")
    except ValueError as exc:
        logger.error("Password hashing failed: %s", exc)
        raise InternalError("Could not process the password.") from exc


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash.

    bcrypt.checkpw compares in constant time. A malformed hash or oversize
    input is treated as a mismatch -- this never raises.
    """
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


# Timing equalization dummy hash.
# Computed once at module load so the first signin attempt is not measurably
# slower than subsequent ones. SessionManager.signin() verifies against this
# when the email is unknown, so response time does not reveal whether an
# account exists.
DUMMY_HASH: str = hash_password("storefront_timing_dummy")
