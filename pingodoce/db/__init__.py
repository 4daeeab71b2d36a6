"""SQLite persistence for transactions, products and nutrition."""

from .catalog import CatalogReconciler
from .models import (
    Brand,
    DatabaseStats,
    Product,
    ProductHistory,
    ProductNutrition,
    Purchase,
    PurchaseLine,
    Store,
    Transaction,
    TransactionRecord,
)
from .schema import ensure_schema
from .storage import PurchaseFact, Storage

__all__ = [
    "CatalogReconciler",
    "Brand",
    "DatabaseStats",
    "Product",
    "ProductHistory",
    "ProductNutrition",
    "Purchase",
    "PurchaseFact",
    "PurchaseLine",
    "Store",
    "Transaction",
    "TransactionRecord",
    "Storage",
    "ensure_schema",
]
