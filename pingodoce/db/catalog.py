"""Find-or-create resolution of stores, brands, products and purchases.

Every method works on the caller's open transaction and never commits.
Run them inside ``Storage.atomic()``.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime

from ..api.models import UNKNOWN_STORE, BrandInfo
from ..normalize import isoformat
from .models import Brand, Product, Purchase, Store, Transaction

logger = logging.getLogger(__name__)


class CatalogReconciler:
    """Maps external identifiers to local rows, creating them on first sight."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def find_or_create_store(self, external_id: str, name: str | None = None) -> Store:
        """Resolve a store by its retailer id.

        An existing placeholder name is replaced when a real one arrives.
        """
        name = name or UNKNOWN_STORE
        row = self._conn.execute(
            "SELECT * FROM stores WHERE external_id = ?", (external_id,)
        ).fetchone()
        if row is not None:
            store = Store.from_row(row)
            if store.name == UNKNOWN_STORE and name != UNKNOWN_STORE:
                self._conn.execute(
                    "UPDATE stores SET name = ? WHERE id = ?", (name, store.id)
                )
                store.name = name
            return store

        cur = self._conn.execute(
            "INSERT INTO stores (external_id, name) VALUES (?, ?)",
            (external_id, name),
        )
        logger.debug("Created store %s (%s)", external_id, name)
        return self._get(Store, "stores", cur.lastrowid)

    def find_or_create_brand(
        self,
        external_id: str | None,
        name: str | None,
        own_brand: bool = False,
        logo: str | None = None,
    ) -> Brand | None:
        """Resolve a brand by retailer id, or by name when the id is absent.

        Returns None when neither is supplied.
        """
        if external_id is None and not name:
            return None

        if external_id is not None:
            row = self._conn.execute(
                "SELECT * FROM brands WHERE external_id = ? ORDER BY id LIMIT 1",
                (external_id,),
            ).fetchone()
        else:
            row = self._conn.execute(
                "SELECT * FROM brands WHERE external_id IS NULL AND name = ?"
                " ORDER BY id LIMIT 1",
                (name,),
            ).fetchone()
        if row is not None:
            return Brand.from_row(row)

        cur = self._conn.execute(
            "INSERT INTO brands (external_id, name, own_brand, logo) VALUES (?, ?, ?, ?)",
            (external_id, name or "Unknown", int(bool(own_brand)), logo),
        )
        return self._get(Brand, "brands", cur.lastrowid)

    def find_or_create_brand_info(self, info: BrandInfo | None) -> Brand | None:
        if info is None:
            return None
        return self.find_or_create_brand(
            info.external_id, info.name, info.own_brand, info.logo
        )

    def find_or_create_product(
        self,
        external_id: str | None,
        name: str,
        category: str | None = None,
        category_id: int | None = None,
        brand: Brand | None = None,
        image: str | None = None,
        first_seen: datetime | str | None = None,
    ) -> Product:
        """Resolve a product: by external id, then by (name, brand), else create."""
        if external_id is not None:
            row = self._conn.execute(
                "SELECT * FROM products WHERE external_id = ?", (external_id,)
            ).fetchone()
            if row is not None:
                return Product.from_row(row)

        if brand is not None:
            row = self._conn.execute(
                "SELECT * FROM products WHERE name = ? AND brand_id = ? ORDER BY id LIMIT 1",
                (name, brand.id),
            ).fetchone()
        else:
            row = self._conn.execute(
                "SELECT * FROM products WHERE name = ? ORDER BY id LIMIT 1", (name,)
            ).fetchone()
        if row is not None:
            product = Product.from_row(row)
            if product.external_id is None and external_id is not None:
                self._conn.execute(
                    "UPDATE products SET external_id = ? WHERE id = ?",
                    (external_id, product.id),
                )
                product.external_id = external_id
            return product

        first_seen = isoformat(first_seen) or datetime.now().isoformat(timespec="seconds")
        cur = self._conn.execute(
            """INSERT INTO products
               (external_id, name, category, category_id, brand_id, image, first_seen)
               VALUES (?, ?, ?, ?, ?, ?, ?)""",
            (
                external_id,
                name,
                category,
                category_id,
                brand.id if brand else None,
                image,
                first_seen,
            ),
        )
        logger.debug("Created product %r", name)
        return self._get(Product, "products", cur.lastrowid)

    def record_purchase(
        self,
        product: Product,
        transaction: Transaction,
        store: Store | None,
        quantity: float | None,
        unit_price: float | None,
        line_total: float | None,
        purchase_date: datetime | str | None,
    ) -> Purchase | None:
        """Insert a purchase line unless one exists for (product, transaction).

        Returns:
            The new Purchase, or None if it was already recorded.
        """
        existing = self._conn.execute(
            "SELECT id FROM purchases WHERE product_id = ? AND transaction_id = ?",
            (product.id, transaction.id),
        ).fetchone()
        if existing is not None:
            return None

        cur = self._conn.execute(
            """INSERT INTO purchases
               (product_id, transaction_id, store_id, quantity, price, total,
                purchase_date)
               VALUES (?, ?, ?, ?, ?, ?, ?)""",
            (
                product.id,
                transaction.id,
                store.id if store else None,
                quantity,
                unit_price,
                line_total,
                isoformat(purchase_date),
            ),
        )
        return self._get(Purchase, "purchases", cur.lastrowid)

    def _get(self, model, table: str, row_id: int):
        row = self._conn.execute(
            f"SELECT * FROM {table} WHERE id = ?", (row_id,)
        ).fetchone()
        return model.from_row(row)
