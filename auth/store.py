"""
auth/store.py -- SQLAlchemy Core persistence layer for user accounts.

Pattern: Repository + Data Mapper (same as shop/store.py).
UserStore is the repository; _row_to_user is the mapper.
Service and route code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

  Reset-token consumption is a single conditional UPDATE
  (WHERE reset_token = :t AND reset_token_expiry >= :min_expiry). Two concurrent
  resets with the same token cannot both match, so single use holds without
  any application-level locking.

Invariant: reset_token and reset_token_expiry are written together. The only
writers are set_reset_token() (sets both) and consume_reset_token() (clears
both); update_user() refuses to touch either column.

DB URL: Settings.database_url (sqlite:///storefront.db by default).

Layer rule: no imports from api/, core/, or shop/.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone

from sqlalchemy import Column, Float, Integer, MetaData, String, Table, Text, create_engine, event, select, text
from sqlalchemy.engine import Engine

from auth.models import User

_DEFAULT_DB_URL = "sqlite:///storefront.db"

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("email", String(255), nullable=False, unique=True),  # lowercased before insert
    Column("name", String(255), nullable=False),
    Column("hashed_password", Text, nullable=False),
    Column("permissions", Text, nullable=False),  # JSON array of labels
    Column("reset_token", String(64)),
    Column("reset_token_expiry", Float),  # epoch seconds
    Column("created_at", String(32), nullable=False),
)

# Fields update_user() may write. Reset-token columns are deliberately absent.
_MUTABLE_FIELDS = {"name", "hashed_password", "permissions"}


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User entities.

    Usage:
        store = UserStore()
        user_id = store.create_user(User(email="a@b.com", name="A", hashed_password=hash_password("secret")))
        user = store.get_by_email("a@b.com")
        store.close()
    """

    def __init__(self, db_url: str = _DEFAULT_DB_URL) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def ping(self) -> bool:
        """Return True if the database answers a trivial query. Used by /health."""
        with self.engine.connect() as conn:
            return conn.execute(text("SELECT 1")).scalar() == 1

    def create_user(self, user: User) -> int:
        """Insert a new user and return its assigned database ID.

        Raises sqlalchemy.exc.IntegrityError if the email already exists.
        SessionManager.signup() turns that into DuplicateEmail. Relying on the
        UNIQUE constraint (not a pre-check) keeps concurrent signups safe.
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.insert().values(
                    email=user.email,
                    name=user.name,
                    hashed_password=user.hashed_password,
                    permissions=json.dumps(list(user.permissions)),
                    created_at=_now_iso(),
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def get_by_email(self, email: str) -> User | None:
        """Look up a user by exact email. Callers pass the lowercased form."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.email == email)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_id(self, user_id: int) -> User | None:
        """Look up a user by primary key. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def list_users(self) -> list[User]:
        """Return all users ordered by email. Admin-only operation."""
        with self.engine.connect() as conn:
            rows = conn.execute(_users.select().order_by(_users.c.email)).fetchall()
        return [_row_to_user(r) for r in rows]

    def update_user(self, user_id: int, **fields) -> bool:
        """Update mutable fields on an existing user.

        Accepted fields: name, hashed_password, permissions (list of labels).
        Unknown keys raise ValueError rather than being silently ignored.

        Returns True if a row was updated, False if user_id was not found.
        """
        unknown = set(fields) - _MUTABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown or protected user fields: {unknown!r}")
        if "permissions" in fields:
            fields["permissions"] = json.dumps(list(fields["permissions"]))
        with self.engine.connect() as conn:
            result = conn.execute(_users.update().where(_users.c.id == user_id).values(**fields))
            conn.commit()
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Reset tokens
    # ------------------------------------------------------------------

    def set_reset_token(self, user_id: int, token: str, expiry: float) -> bool:
        """Store a reset token and its expiry together, replacing any previous one."""
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.update().where(_users.c.id == user_id).values(reset_token=token, reset_token_expiry=expiry)
            )
            conn.commit()
        return result.rowcount > 0

    def find_by_reset_token(self, token: str, min_expiry: float) -> User | None:
        """Return the user holding token if its stored expiry is at least min_expiry."""
        with self.engine.connect() as conn:
            row = conn.execute(
                _users.select().where((_users.c.reset_token == token) & (_users.c.reset_token_expiry >= min_expiry))
            ).fetchone()
        return _row_to_user(row) if row is not None else None

    def consume_reset_token(self, token: str, min_expiry: float, hashed_password: str) -> int | None:
        """Swap in a new password hash and clear the reset token, atomically.

        The UPDATE re-checks token and expiry (>= min_expiry) in its WHERE
        clause, so of two concurrent calls with the same token at most one
        sees rowcount == 1.

        Returns the user id on success, None if the token was unknown,
        expired, or already consumed.
        """
        with self.engine.connect() as conn:
            user_id = conn.execute(select(_users.c.id).where(_users.c.reset_token == token)).scalar()
            if user_id is None:
                return None
            result = conn.execute(
                _users.update()
                .where(
                    (_users.c.id == user_id)
                    & (_users.c.reset_token == token)
                    & (_users.c.reset_token_expiry >= min_expiry)
                )
                .values(hashed_password=hashed_password, reset_token=None, reset_token_expiry=None)
            )
            conn.commit()
        return user_id if result.rowcount == 1 else None

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        email=row.email,
        name=row.name,
        hashed_password=row.hashed_password,
        permissions=json.loads(row.permissions) if row.permissions else [],
        reset_token=row.reset_token,
        reset_token_expiry=row.reset_token_expiry,
        created_at=row.created_at,
    )
