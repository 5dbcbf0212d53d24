"""
shop/models.py -- Domain dataclasses for the storefront catalog and carts.

These are pure data containers with zero logic. Ownership checks live in
auth/guard.py; persistence in shop/store.py.

user_id on both records is the owner reference: the account that listed the
item, or the account whose cart the line belongs to.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class Item:
    """A listed product. price is in cents.

    id is None before the record is written to the database.
    """

    title: str
    description: str
    price: int
    user_id: int
    image: Optional[str] = None
    large_image: Optional[str] = None
    id: Optional[int] = None
    created_at: str = ""  # ISO 8601, set by store on insert


@dataclass
class CartItem:
    """One line in a user's cart. (user_id, item_id) is unique."""

    item_id: int
    user_id: int
    quantity: int = 1
    id: Optional[int] = None
