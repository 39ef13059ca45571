"""Product model type definitions (read-only catalog rows)."""

from datetime import datetime
from typing import TypedDict


class Product(TypedDict, total=False):
    """Product table row representation.

    Only the fields the order flow reads are listed.
    """

    id: str
    name: str
    image: str | None
    price: float
    in_stock: bool
    unit: str
    amount: float
    is_active: bool
    created_at: datetime
    updated_at: datetime
