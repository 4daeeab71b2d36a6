"""Row records for the grocery ledger tables."""

from __future__ import annotations

import json
import sqlite3
from dataclasses import asdict, dataclass, field


@dataclass
class Store:
    id: int
    external_id: str
    name: str
    created_at: str | None = None

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> Store:
        return cls(
            id=row["id"],
            external_id=row["external_id"],
            name=row["name"],
            created_at=row["created_at"],
        )


@dataclass
class Brand:
    id: int
    external_id: str | None
    name: str
    own_brand: bool = False
    logo: str | None = None
    created_at: str | None = None

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> Brand:
        return cls(
            id=row["id"],
            external_id=row["external_id"],
            name=row["name"],
            own_brand=bool(row["own_brand"]),
            logo=row["logo"],
            created_at=row["created_at"],
        )


@dataclass
class Product:
    """A product as first seen on a receipt, plus catalog enrichment."""

    id: int
    external_id: str | None
    name: str
    category: str | None = None
    category_id: int | None = None
    brand_id: int | None = None
    image: str | None = None
    first_seen: str | None = None
    ean: str | None = None
    description_html: str | None = None
    ingredients: str | None = None
    store_price: float | None = None
    enrichment_status: str | None = None   # None, pending, enriched, unavailable
    last_enriched_at: str | None = None
    brand_name: str | None = None

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> Product:
        keys = row.keys()
        return cls(
            id=row["id"],
            external_id=row["external_id"],
            name=row["name"],
            category=row["category"],
            category_id=row["category_id"],
            brand_id=row["brand_id"],
            image=row["image"],
            first_seen=row["first_seen"],
            ean=row["ean"],
            description_html=row["description_html"],
            ingredients=row["ingredients"],
            store_price=row["store_price"],
            enrichment_status=row["enrichment_status"],
            last_enriched_at=row["last_enriched_at"],
            brand_name=row["brand_name"] if "brand_name" in keys else None,
        )

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class Transaction:
    id: int
    transaction_id: str
    store_id: int | None
    total_items: int | None = None
    total_discount: float | None = None
    total: float | None = None
    transaction_date: str | None = None
    details: str | None = None
    saved_at: str | None = None

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> Transaction:
        return cls(
            id=row["id"],
            transaction_id=row["transaction_id"],
            store_id=row["store_id"],
            total_items=row["total_items"],
            total_discount=row["total_discount"],
            total=row["total"],
            transaction_date=row["transaction_date"],
            details=row["details"],
            saved_at=row["saved_at"],
        )

    @property
    def details_payload(self) -> dict | None:
        """The stored detail payload, decoded."""
        if not self.details:
            return None
        return json.loads(self.details)


@dataclass
class Purchase:
    id: int
    product_id: int
    transaction_id: int
    store_id: int | None
    quantity: float | None = None
    price: float | None = None
    total: float | None = None
    purchase_date: str | None = None

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> Purchase:
        return cls(
            id=row["id"],
            product_id=row["product_id"],
            transaction_id=row["transaction_id"],
            store_id=row["store_id"],
            quantity=row["quantity"],
            price=row["price"],
            total=row["total"],
            purchase_date=row["purchase_date"],
        )


NUTRITION_FIELDS = (
    "energy_kj",
    "energy_kcal",
    "fat",
    "saturated_fat",
    "carbohydrates",
    "sugars",
    "fiber",
    "protein",
    "salt",
)


@dataclass
class ProductNutrition:
    """Per-100 g nutrition values stored for a product."""

    product_id: int
    energy_kj: float | None = None
    energy_kcal: float | None = None
    fat: float | None = None
    saturated_fat: float | None = None
    carbohydrates: float | None = None
    sugars: float | None = None
    fiber: float | None = None
    protein: float | None = None
    salt: float | None = None

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> ProductNutrition:
        return cls(
            product_id=row["product_id"],
            **{name: row[name] for name in NUTRITION_FIELDS},
        )


# --- Read models ---


@dataclass
class PurchaseLine:
    """One purchase joined with its product and store names."""

    product_name: str
    quantity: float | None
    price: float | None
    total: float | None
    purchase_date: str | None = None
    transaction_id: str | None = None
    store_name: str | None = None


@dataclass
class TransactionRecord:
    """A transaction joined with its store and purchase lines."""

    transaction_id: str
    store_id: str | None
    store_name: str | None
    total_items: int | None
    total_discount: float | None
    total: float | None
    transaction_date: str | None
    saved_at: str | None = None
    details: dict | None = None
    products: list[PurchaseLine] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class ProductHistory:
    """A product with its purchases in date order."""

    id: int
    name: str
    category: str | None
    image: str | None
    first_seen: str | None
    purchases: list[PurchaseLine] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class DatabaseStats:
    total_transactions: int = 0
    total_products: int = 0
    earliest: str | None = None
    latest: str | None = None
    total_spent: float = 0

    def to_dict(self) -> dict:
        return {
            "total_transactions": self.total_transactions,
            "total_products": self.total_products,
            "date_range": {"earliest": self.earliest, "latest": self.latest},
            "total_spent": self.total_spent,
        }
