"""
catalog/store.py -- SQLAlchemy-backed persistence layer for products.

Uses SQLAlchemy Core (not ORM) so the dataclass in catalog/models.py remains
the authoritative domain representation.

Pattern: Repository + Data Mapper. ProductStore is the repository and
_row_to_product is the mapper. Route handlers never touch SQL directly.

Security: all queries use bound parameters. Deletes carry the merchant id in
the WHERE clause so one merchant cannot remove another's product by guessing
its id.

Errors are reported as auth.errors.StoreFailure, same as the user store, so
the API maps both stores' outages to the same 503 response.

Usage:
    store = ProductStore()
    product = store.create_product(Product(merchant_id=1, name="Mug", price_cents=1200))
    store.list_products()
    store.delete_product(product.id, merchant_id=1)
    store.close()
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from auth.errors import StoreFailure
from catalog.models import Product
from core.config import get_settings
from core.db import create_store_engine

logger = logging.getLogger("storefront.catalog.store")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_products = Table(
    "products",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("merchant_id", Integer, nullable=False, index=True),
    Column("name", String(200), nullable=False),
    Column("description", Text),
    Column("price_cents", Integer, nullable=False),
    Column("created_at", String(32), nullable=False),
)


@contextmanager
def _store_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except SQLAlchemyError as exc:
        logger.exception("Catalog store %s failed", operation)
        raise StoreFailure(f"catalog store {operation} failed") from exc


class ProductStore:
    def __init__(self, db_url: Optional[str] = None, timeout: Optional[float] = None) -> None:
        settings = get_settings()
        self.engine: Engine = create_store_engine(
            db_url or settings.catalog_database_url,
            timeout=timeout if timeout is not None else settings.store_timeout_seconds,
        )
        with _store_errors("schema setup"):
            metadata.create_all(self.engine)

    def create_product(self, product: Product) -> Product:
        """Insert a product and return it with id and created_at filled in."""
        created_at = datetime.now(timezone.utc).isoformat()
        with _store_errors("create_product"), self.engine.connect() as conn:
            result = conn.execute(
                _products.insert().values(
                    merchant_id=product.merchant_id,
                    name=product.name,
                    description=product.description,
                    price_cents=product.price_cents,
                    created_at=created_at,
                )
            )
            conn.commit()
        return replace(product, id=result.inserted_primary_key[0], created_at=created_at)

    def get_product(self, product_id: int) -> Optional[Product]:
        with _store_errors("get_product"), self.engine.connect() as conn:
            row = conn.execute(_products.select().where(_products.c.id == product_id)).fetchone()
        return _row_to_product(row) if row is not None else None

    def list_products(self, merchant_id: Optional[int] = None) -> list[Product]:
        """Return products newest first, optionally only those of one merchant."""
        query = _products.select().order_by(_products.c.id.desc())
        if merchant_id is not None:
            query = query.where(_products.c.merchant_id == merchant_id)
        with _store_errors("list_products"), self.engine.connect() as conn:
            rows = conn.execute(query).fetchall()
        return [_row_to_product(r) for r in rows]

    def delete_product(self, product_id: int, merchant_id: int) -> bool:
        """Delete a product owned by merchant_id.

        Returns True if deleted, False if not found or owned by someone else.
        """
        with _store_errors("delete_product"), self.engine.connect() as conn:
            result = conn.execute(
                _products.delete().where((_products.c.id == product_id) & (_products.c.merchant_id == merchant_id))
            )
            conn.commit()
        return result.rowcount > 0

    def ping(self) -> bool:
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError:
            logger.warning("Catalog store ping failed", exc_info=True)
            return False
        return True

    def close(self) -> None:
        self.engine.dispose()


def _row_to_product(row) -> Product:
    return Product(
        id=row.id,
        merchant_id=row.merchant_id,
        name=row.name,
        description=row.description,
        price_cents=row.price_cents,
        created_at=row.created_at,
    )
