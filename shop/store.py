"""
shop/store.py -- SQLAlchemy-backed persistence for items and cart items.

Uses SQLAlchemy Core (not ORM) so the dataclasses in shop/models.py remain
the authoritative domain representation. Swapping SQLite for PostgreSQL is a
connection string change, not a rewrite.

Pattern: Repository + Data Mapper. ShopStore is the repository; the _row_to_*
functions are the mappers. Authorization is NOT this module's job -- routes
run the auth/guard.py checks before calling any mutating method here.

Security: all queries use bound parameters. No f-strings in SQL.

Usage:
    store = ShopStore()                               # SQLite default
    store = ShopStore("postgresql://user:pw@host/db") # PostgreSQL
    item_id = store.create_item(item)
    line = store.add_to_cart(user_id, item_id)
    store.close()
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    Column,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
    create_engine,
    event,
    func,
    select,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from shop.models import CartItem, Item

_DEFAULT_DB_URL = "sqlite:///storefront.db"

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_items = Table(
    "items",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("title", String(255), nullable=False),
    Column("description", Text, nullable=False),
    Column("price", Integer, nullable=False),  # cents
    Column("image", Text),
    Column("large_image", Text),
    Column("user_id", Integer, nullable=False),
    Column("created_at", String(32), nullable=False),
)

_cart_items = Table(
    "cart_items",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("quantity", Integer, nullable=False, server_default="1"),
    Column("item_id", Integer, ForeignKey("items.id"), nullable=False),
    Column("user_id", Integer, nullable=False),
    UniqueConstraint("user_id", "item_id", name="uq_cart_user_item"),
)

# Fields update_item() may write. Owner and timestamps are immutable.
_ITEM_MUTABLE_FIELDS = {"title", "description", "price", "image", "large_image"}


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class ShopStore:
    def __init__(self, db_url: str = _DEFAULT_DB_URL) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Items
    # ------------------------------------------------------------------

    def create_item(self, item: Item) -> int:
        """Insert an item and return its ID."""
        with self.engine.connect() as conn:
            result = conn.execute(
                _items.insert().values(
                    title=item.title,
                    description=item.description,
                    price=item.price,
                    image=item.image,
                    large_image=item.large_image,
                    user_id=item.user_id,
                    created_at=_now_iso(),
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def get_item(self, item_id: int) -> Optional[Item]:
        with self.engine.connect() as conn:
            row = conn.execute(_items.select().where(_items.c.id == item_id)).fetchone()
        return _row_to_item(row) if row is not None else None

    def list_items(self, skip: int = 0, first: Optional[int] = None) -> list[Item]:
        """Return items newest first, paginated by offset (skip) and page size (first)."""
        query = _items.select().order_by(_items.c.id.desc()).offset(skip)
        if first is not None:
            query = query.limit(first)
        with self.engine.connect() as conn:
            rows = conn.execute(query).fetchall()
        return [_row_to_item(r) for r in rows]

    def count_items(self) -> int:
        with self.engine.connect() as conn:
            result = conn.execute(select(func.count()).select_from(_items)).scalar()
        return result or 0

    def update_item(self, item_id: int, **fields) -> bool:
        """Update mutable item fields. Returns True if a row was updated.

        Unknown keys (including user_id) raise ValueError -- ownership cannot
        be transferred through an update.
        """
        unknown = set(fields) - _ITEM_MUTABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown or protected item fields: {unknown!r}")
        if not fields:
            return False
        with self.engine.connect() as conn:
            result = conn.execute(_items.update().where(_items.c.id == item_id).values(**fields))
            conn.commit()
        return result.rowcount > 0

    def delete_item(self, item_id: int) -> bool:
        """Delete an item and every cart line pointing at it, in one transaction."""
        with self.engine.connect() as conn:
            conn.execute(_cart_items.delete().where(_cart_items.c.item_id == item_id))
            result = conn.execute(_items.delete().where(_items.c.id == item_id))
            conn.commit()
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Cart items
    # ------------------------------------------------------------------

    def get_cart_item(self, cart_item_id: int) -> Optional[CartItem]:
        with self.engine.connect() as conn:
            row = conn.execute(_cart_items.select().where(_cart_items.c.id == cart_item_id)).fetchone()
        return _row_to_cart_item(row) if row is not None else None

    def list_cart_items(self, user_id: int) -> list[CartItem]:
        with self.engine.connect() as conn:
            rows = conn.execute(
                _cart_items.select().where(_cart_items.c.user_id == user_id).order_by(_cart_items.c.id)
            ).fetchall()
        return [_row_to_cart_item(r) for r in rows]

    def add_to_cart(self, user_id: int, item_id: int) -> CartItem:
        """Add one unit of item_id to user_id's cart.

        An existing line is incremented in place (quantity = quantity + 1 in
        SQL, so concurrent adds do not lose updates). A new line starts at 1.
        If a concurrent request inserts the line first, the UNIQUE constraint
        fires and we fall back to the increment.
        """
        with self.engine.connect() as conn:
            if not self._increment(conn, user_id, item_id):
                try:
                    conn.execute(_cart_items.insert().values(user_id=user_id, item_id=item_id, quantity=1))
                except IntegrityError:
                    conn.rollback()
                    self._increment(conn, user_id, item_id)
            conn.commit()
            row = conn.execute(
                _cart_items.select().where((_cart_items.c.user_id == user_id) & (_cart_items.c.item_id == item_id))
            ).fetchone()
        return _row_to_cart_item(row)

    @staticmethod
    def _increment(conn, user_id: int, item_id: int) -> bool:
        result = conn.execute(
            _cart_items.update()
            .where((_cart_items.c.user_id == user_id) & (_cart_items.c.item_id == item_id))
            .values(quantity=_cart_items.c.quantity + 1)
        )
        return result.rowcount > 0

    def delete_cart_item(self, cart_item_id: int) -> bool:
        with self.engine.connect() as conn:
            result = conn.execute(_cart_items.delete().where(_cart_items.c.id == cart_item_id))
            conn.commit()
        return result.rowcount > 0

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers
# ---------------------------------------------------------------------------


def _row_to_item(row) -> Item:
    return Item(
        id=row.id,
        title=row.title,
        description=row.description,
        price=row.price,
        image=row.image,
        large_image=row.large_image,
        user_id=row.user_id,
        created_at=row.created_at,
    )


def _row_to_cart_item(row) -> CartItem:
    return CartItem(
        id=row.id,
        quantity=row.quantity,
        item_id=row.item_id,
        user_id=row.user_id,
    )
