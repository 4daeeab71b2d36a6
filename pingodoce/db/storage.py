"""Transaction ingestion and read queries over the grocery ledger."""

from __future__ import annotations

import csv
import json
import logging
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path

from ..api.models import CatalogProduct, TransactionDetail, TransactionSummary
from ..errors import PersistenceError, ReconciliationError, StorageError
from ..normalize import fold_text, isoformat
from ..nutrition import NutritionFacts, has_nutrition_data, parse_nutrition
from .catalog import CatalogReconciler
from .models import (
    NUTRITION_FIELDS,
    DatabaseStats,
    Product,
    ProductHistory,
    ProductNutrition,
    PurchaseLine,
    Transaction,
    TransactionRecord,
)
from .schema import TABLES, ensure_schema

logger = logging.getLogger(__name__)

_PRODUCT_WITH_BRAND = """
    SELECT p.*, b.name AS brand_name
    FROM products p
    LEFT JOIN brands b ON b.id = p.brand_id
"""

_TRANSACTION_WITH_STORE = """
    SELECT t.*, s.external_id AS store_external_id, s.name AS store_name
    FROM transactions t
    LEFT JOIN stores s ON s.id = t.store_id
"""


@dataclass
class PurchaseFact:
    """A flat purchase row used by the health scorer."""

    product_id: int
    name: str
    transaction_id: int
    quantity: float | None
    total: float | None
    purchase_date: str | None
    transaction_total: float | None


class Storage:
    """Owns the SQLite connection and every write to the ledger tables."""

    def __init__(self, db_path: str | Path = "data/pingodoce.db") -> None:
        self._db_path = db_path
        self._conn: sqlite3.Connection | None = None
        self._depth = 0

    def _get_conn(self) -> sqlite3.Connection:
        if self._conn is None:
            self._conn = ensure_schema(self._db_path)
        return self._conn

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    @contextmanager
    def atomic(self) -> Iterator[sqlite3.Connection]:
        """Run the block in one write transaction.

        Nested calls join the outer transaction. On error everything is
        rolled back and SQLite errors are re-raised as StorageError.
        """
        conn = self._get_conn()
        if self._depth > 0:
            self._depth += 1
            try:
                yield conn
            finally:
                self._depth -= 1
            return

        self._depth = 1
        try:
            if not conn.in_transaction:
                conn.execute("BEGIN IMMEDIATE")
            with conn:
                yield conn
        except sqlite3.IntegrityError as e:
            raise ReconciliationError(f"Constraint violation: {e}") from e
        except sqlite3.Error as e:
            raise PersistenceError(f"Database error: {e}") from e
        finally:
            self._depth = 0

    # --- Ingestion ---

    def ingest(
        self,
        transaction_payload: dict,
        details_payload: dict | None = None,
    ) -> Transaction:
        """Store a transaction and its product lines in one atomic write.

        Re-ingesting a known transaction refreshes its details and saved_at
        and never duplicates stores, brands, products or purchases.

        Raises:
            ValidationError: If a payload is malformed. Nothing is written.
            StorageError: If the write fails. Nothing is written.
        """
        summary = TransactionSummary.from_dict(transaction_payload)
        detail = (
            TransactionDetail.from_dict(details_payload)
            if details_payload is not None
            else None
        )
        details_json = (
            json.dumps(details_payload, ensure_ascii=False)
            if details_payload is not None
            else None
        )

        with self.atomic() as conn:
            catalog = CatalogReconciler(conn)
            store = catalog.find_or_create_store(summary.store_id, summary.store_name)
            txn = self._upsert_transaction(conn, summary, store.id, details_json)

            new_lines = 0
            for line in detail.products if detail else []:
                brand = catalog.find_or_create_brand_info(line.brand)
                product = catalog.find_or_create_product(
                    line.external_id,
                    line.name,
                    category=line.category,
                    category_id=line.category_id,
                    brand=brand,
                    image=line.image,
                    first_seen=summary.transaction_date,
                )
                purchase = catalog.record_purchase(
                    product,
                    txn,
                    store,
                    line.quantity,
                    line.unit_price,
                    line.line_total,
                    summary.transaction_date,
                )
                if purchase is not None:
                    new_lines += 1

        logger.info(
            "Saved transaction %s (%d new purchase lines)",
            summary.transaction_id,
            new_lines,
        )
        return txn

    save_transaction = ingest

    def _upsert_transaction(
        self,
        conn: sqlite3.Connection,
        summary: TransactionSummary,
        store_id: int,
        details_json: str | None,
    ) -> Transaction:
        now = datetime.now().isoformat(timespec="seconds")
        row = conn.execute(
            "SELECT * FROM transactions WHERE transaction_id = ?",
            (summary.transaction_id,),
        ).fetchone()
        if row is not None:
            conn.execute(
                """UPDATE transactions
                   SET details = COALESCE(?, details), saved_at = ?
                   WHERE id = ?""",
                (details_json, now, row["id"]),
            )
            txn = Transaction.from_row(row)
            if details_json is not None:
                txn.details = details_json
            txn.saved_at = now
            return txn

        cur = conn.execute(
            """INSERT INTO transactions
               (transaction_id, store_id, total_items, total_discount, total,
                transaction_date, details, saved_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                summary.transaction_id,
                store_id,
                summary.total_items,
                summary.total_discount,
                summary.total,
                isoformat(summary.transaction_date),
                details_json,
                now,
            ),
        )
        row = conn.execute(
            "SELECT * FROM transactions WHERE id = ?", (cur.lastrowid,)
        ).fetchone()
        return Transaction.from_row(row)

    # --- Transactions ---

    def transaction_exists(self, transaction_id: str) -> bool:
        conn = self._get_conn()
        row = conn.execute(
            "SELECT 1 FROM transactions WHERE transaction_id = ?", (str(transaction_id),)
        ).fetchone()
        return row is not None

    def get_transaction(self, transaction_id: str) -> TransactionRecord | None:
        """Return a stored transaction with its purchase lines, or None."""
        conn = self._get_conn()
        row = conn.execute(
            _TRANSACTION_WITH_STORE + " WHERE t.transaction_id = ?",
            (str(transaction_id),),
        ).fetchone()
        if row is None:
            return None
        record = self._transaction_record(row)
        record.details = Transaction.from_row(row).details_payload
        return record

    def all_transactions(self) -> list[TransactionRecord]:
        """All transactions, newest first, without purchase lines."""
        conn = self._get_conn()
        rows = conn.execute(
            _TRANSACTION_WITH_STORE + " ORDER BY t.transaction_date DESC"
        ).fetchall()
        return [self._transaction_record(r, with_products=False) for r in rows]

    def recent_transactions(
        self,
        start: date,
        end: date | None = None,
    ) -> list[TransactionRecord]:
        """Transactions dated within [start, end], newest first."""
        conn = self._get_conn()
        end = end or date.today()
        rows = conn.execute(
            _TRANSACTION_WITH_STORE
            + """ WHERE substr(t.transaction_date, 1, 10) >= ?
                    AND substr(t.transaction_date, 1, 10) <= ?
                  ORDER BY t.transaction_date DESC""",
            (start.isoformat(), end.isoformat()),
        ).fetchall()
        return [self._transaction_record(r) for r in rows]

    def _transaction_record(
        self, row: sqlite3.Row, with_products: bool = True
    ) -> TransactionRecord:
        record = TransactionRecord(
            transaction_id=row["transaction_id"],
            store_id=row["store_external_id"],
            store_name=row["store_name"],
            total_items=row["total_items"],
            total_discount=row["total_discount"],
            total=row["total"],
            transaction_date=row["transaction_date"],
            saved_at=row["saved_at"],
        )
        if with_products:
            lines = self._get_conn().execute(
                """SELECT p.name AS product_name, pu.quantity, pu.price, pu.total,
                          pu.purchase_date
                   FROM purchases pu
                   JOIN products p ON p.id = pu.product_id
                   WHERE pu.transaction_id = ?
                   ORDER BY pu.id""",
                (row["id"],),
            ).fetchall()
            record.products = [
                PurchaseLine(
                    product_name=r["product_name"],
                    quantity=r["quantity"],
                    price=r["price"],
                    total=r["total"],
                    purchase_date=r["purchase_date"],
                    transaction_id=record.transaction_id,
                    store_name=record.store_name,
                )
                for r in lines
            ]
        return record

    # --- Products ---

    def all_products(self) -> list[Product]:
        conn = self._get_conn()
        rows = conn.execute(_PRODUCT_WITH_BRAND + " ORDER BY p.name").fetchall()
        return [Product.from_row(r) for r in rows]

    def products_with_multiple_purchases(self) -> list[ProductHistory]:
        conn = self._get_conn()
        rows = conn.execute(
            """SELECT * FROM products
               WHERE id IN (
                   SELECT product_id FROM purchases
                   GROUP BY product_id HAVING COUNT(*) > 1
               )
               ORDER BY name"""
        ).fetchall()
        return [self._product_history(r) for r in rows]

    def search_products(self, pattern: str) -> list[ProductHistory]:
        """Products whose name contains ``pattern``, ignoring case and accents."""
        conn = self._get_conn()
        needle = (
            fold_text(pattern)
            .replace("\\", "\\\\")
            .replace("%", "\\%")
            .replace("_", "\\_")
        )
        rows = conn.execute(
            "SELECT * FROM products WHERE fold(name) LIKE ? ESCAPE '\\' ORDER BY name",
            (f"%{needle}%",),
        ).fetchall()
        return [self._product_history(r) for r in rows]

    def _product_history(self, row: sqlite3.Row) -> ProductHistory:
        lines = self._get_conn().execute(
            """SELECT pu.quantity, pu.price, pu.total, pu.purchase_date,
                      t.transaction_id, s.name AS store_name
               FROM purchases pu
               JOIN transactions t ON t.id = pu.transaction_id
               LEFT JOIN stores s ON s.id = pu.store_id
               WHERE pu.product_id = ?
               ORDER BY pu.purchase_date, pu.id""",
            (row["id"],),
        ).fetchall()
        return ProductHistory(
            id=row["id"],
            name=row["name"],
            category=row["category"],
            image=row["image"],
            first_seen=row["first_seen"],
            purchases=[
                PurchaseLine(
                    product_name=row["name"],
                    quantity=r["quantity"],
                    price=r["price"],
                    total=r["total"],
                    purchase_date=r["purchase_date"],
                    transaction_id=r["transaction_id"],
                    store_name=r["store_name"],
                )
                for r in lines
            ],
        )

    def find_product_by_ean(self, ean: str) -> Product | None:
        row = self._get_conn().execute(
            _PRODUCT_WITH_BRAND + " WHERE p.ean = ? LIMIT 1", (str(ean),)
        ).fetchone()
        return Product.from_row(row) if row else None

    def find_product_by_external_id(self, external_id: str) -> Product | None:
        row = self._get_conn().execute(
            _PRODUCT_WITH_BRAND + " WHERE p.external_id = ?", (str(external_id),)
        ).fetchone()
        return Product.from_row(row) if row else None

    def products_needing_enrichment(self, limit: int = 50) -> list[Product]:
        """Products never enriched or still pending."""
        rows = self._get_conn().execute(
            _PRODUCT_WITH_BRAND
            + """ WHERE p.enrichment_status IS NULL OR p.enrichment_status = 'pending'
                  ORDER BY p.id LIMIT ?""",
            (limit,),
        ).fetchall()
        return [Product.from_row(r) for r in rows]

    # --- Enrichment ---

    def enrich_product(self, product_id: int, catalog: CatalogProduct) -> None:
        """Copy catalog metadata onto a product and store parsed nutrition.

        Ingredients are taken from any description; nutrition values only
        when the description carries a nutrition section.
        """
        nutrition: NutritionFacts | None = None
        has_label = False
        if catalog.description:
            nutrition = parse_nutrition(catalog.description)
            has_label = has_nutrition_data(catalog.description)

        fields = {
            "ean": catalog.ean,
            "description_html": catalog.description,
            "store_price": catalog.store_price,
            "enrichment_status": "enriched",
            "last_enriched_at": datetime.now().isoformat(timespec="seconds"),
        }
        if nutrition is not None:
            fields["ingredients"] = nutrition.ingredients
        if catalog.image:
            fields["image"] = catalog.image

        assignments = ", ".join(f"{name} = ?" for name in fields)
        with self.atomic() as conn:
            conn.execute(
                f"UPDATE products SET {assignments} WHERE id = ?",
                (*fields.values(), product_id),
            )
            if nutrition is not None and has_label:
                self.save_product_nutrition(product_id, nutrition)
        logger.info("Enriched product %d", product_id)

    def save_product_nutrition(self, product_id: int, facts: NutritionFacts) -> bool:
        """Upsert nutrition values for a product.

        Returns:
            False if the facts had neither energy nor protein and were skipped.
        """
        if not facts.is_storable:
            return False

        values = [getattr(facts, name) for name in NUTRITION_FIELDS]
        columns = ", ".join(NUTRITION_FIELDS)
        placeholders = ", ".join("?" for _ in NUTRITION_FIELDS)
        updates = ", ".join(f"{name} = excluded.{name}" for name in NUTRITION_FIELDS)
        with self.atomic() as conn:
            conn.execute(
                f"""INSERT INTO product_nutritions (product_id, {columns})
                    VALUES (?, {placeholders})
                    ON CONFLICT(product_id) DO UPDATE SET {updates}""",
                (product_id, *values),
            )
        return True

    def get_product_nutrition(self, product_id: int) -> ProductNutrition | None:
        row = self._get_conn().execute(
            "SELECT * FROM product_nutritions WHERE product_id = ?", (product_id,)
        ).fetchone()
        return ProductNutrition.from_row(row) if row else None

    def mark_product_unavailable(self, product_id: int) -> None:
        with self.atomic() as conn:
            conn.execute(
                """UPDATE products
                   SET enrichment_status = 'unavailable', last_enriched_at = ?
                   WHERE id = ?""",
                (datetime.now().isoformat(timespec="seconds"), product_id),
            )

    # --- Reporting support ---

    def purchase_facts(self, since: date | None = None) -> list[PurchaseFact]:
        """Every purchase line joined with its product name and receipt total."""
        sql = """SELECT pu.product_id, p.name, pu.transaction_id, pu.quantity,
                        pu.total, pu.purchase_date, t.total AS transaction_total
                 FROM purchases pu
                 JOIN products p ON p.id = pu.product_id
                 JOIN transactions t ON t.id = pu.transaction_id"""
        params: tuple = ()
        if since is not None:
            sql += " WHERE substr(pu.purchase_date, 1, 10) >= ?"
            params = (since.isoformat(),)
        rows = self._get_conn().execute(sql + " ORDER BY pu.id", params).fetchall()
        return [
            PurchaseFact(
                product_id=r["product_id"],
                name=r["name"],
                transaction_id=r["transaction_id"],
                quantity=r["quantity"],
                total=r["total"],
                purchase_date=r["purchase_date"],
                transaction_total=r["transaction_total"],
            )
            for r in rows
        ]

    def count(self, table: str) -> int:
        """Row count of one of the ledger tables."""
        if table not in TABLES:
            raise StorageError(f"Unknown table: {table}")
        row = self._get_conn().execute(f"SELECT COUNT(*) AS n FROM {table}").fetchone()
        return row["n"]

    def stats(self) -> DatabaseStats:
        conn = self._get_conn()
        row = conn.execute(
            """SELECT COUNT(*) AS n,
                      MIN(transaction_date) AS earliest,
                      MAX(transaction_date) AS latest,
                      COALESCE(SUM(total), 0) AS total_spent
               FROM transactions"""
        ).fetchone()
        if row["n"] == 0:
            return DatabaseStats()

        return DatabaseStats(
            total_transactions=row["n"],
            total_products=self.count("products"),
            earliest=row["earliest"],
            latest=row["latest"],
            total_spent=round(row["total_spent"], 2),
        )

    def export_csv(self, output_dir: str | Path) -> tuple[Path, Path]:
        """Write transactions.csv and products.csv into ``output_dir``."""
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)
        conn = self._get_conn()

        transactions_csv = output_dir / "transactions.csv"
        with open(transactions_csv, "w", newline="", encoding="utf-8") as f:
            writer = csv.writer(f)
            writer.writerow(["Transaction ID", "Date", "Store", "Total", "Items Count"])
            for row in conn.execute(
                _TRANSACTION_WITH_STORE + " ORDER BY t.transaction_date"
            ):
                writer.writerow(
                    [
                        row["transaction_id"],
                        row["transaction_date"],
                        row["store_name"],
                        row["total"],
                        row["total_items"],
                    ]
                )

        products_csv = output_dir / "products.csv"
        with open(products_csv, "w", newline="", encoding="utf-8") as f:
            writer = csv.writer(f)
            writer.writerow(
                ["Product Name", "Category", "Total Purchases", "First Seen", "Avg Price"]
            )
            for row in conn.execute(
                """SELECT p.name, p.category, p.first_seen,
                          COUNT(pu.id) AS purchase_count,
                          AVG(pu.price) AS avg_price
                   FROM products p
                   LEFT JOIN purchases pu ON pu.product_id = p.id
                   GROUP BY p.id
                   ORDER BY p.name"""
            ):
                avg = row["avg_price"]
                writer.writerow(
                    [
                        row["name"],
                        row["category"],
                        row["purchase_count"],
                        row["first_seen"],
                        round(avg, 2) if avg is not None else 0,
                    ]
                )

        logger.info("Exported to %s and %s", transactions_csv, products_csv)
        return transactions_csv, products_csv
