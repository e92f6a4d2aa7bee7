"""
catalog/models.py -- Domain dataclass for the products catalog.

Pure data container with zero logic. Persistence and ownership checks live in
catalog/store.py.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class Product:
    """A product listed by a merchant.

    merchant_id is the id of the owning user record. Only that merchant may
    delete the product.

    id is None before the record is written to the database.
    """

    merchant_id: int
    name: str
    price_cents: int
    description: Optional[str] = None
    id: Optional[int] = None
    created_at: str = ""  # ISO 8601, set by store on insert
