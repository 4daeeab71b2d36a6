"""Typed records for retailer API payloads.

Each ``from_dict`` normalizes the loosely typed JSON (comma decimals,
string ids, mixed date formats) into Python values.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from ..errors import ValidationError
from ..normalize import parse_datetime, to_float, to_int, to_money

UNKNOWN_STORE = "Unknown Store"
UNKNOWN_BRAND = "Unknown"


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


@dataclass
class BrandInfo:
    """Brand block attached to a product line."""

    external_id: str | None
    name: str
    own_brand: bool = False
    logo: str | None = None

    @classmethod
    def from_value(cls, value: Any) -> BrandInfo | None:
        """Build from a brand dict or a bare brand name; None if absent."""
        if value is None or value == "" or value == {}:
            return None
        if isinstance(value, str):
            return cls(external_id=None, name=value.strip())
        if not isinstance(value, dict):
            raise ValidationError(f"unexpected brand payload: {value!r}")
        return cls(
            external_id=_optional_str(value.get("id")),
            name=_optional_str(value.get("name")) or UNKNOWN_BRAND,
            own_brand=bool(value.get("ownBrand") or False),
            logo=_optional_str(value.get("logo")),
        )


@dataclass
class ProductLine:
    """A purchased product line from a transaction detail payload."""

    external_id: str | None
    name: str
    category: str | None = None
    category_id: int | None = None
    brand: BrandInfo | None = None
    image: str | None = None
    quantity: float | None = None
    unit_price: float | None = None
    line_total: float | None = None

    @classmethod
    def from_dict(cls, data: dict) -> ProductLine:
        name = _optional_str(data.get("name"))
        if name is None:
            raise ValidationError(f"product line without a name: {data!r}")
        external_id = data.get("productId")
        if external_id is None:
            external_id = data.get("elasticId")
        return cls(
            external_id=_optional_str(external_id),
            name=name,
            category=_optional_str(data.get("category")),
            category_id=to_int(data.get("categoryId")),
            brand=BrandInfo.from_value(data.get("brand")),
            image=_optional_str(data.get("image")),
            quantity=to_float(data.get("purchaseQuantity")),
            unit_price=to_float(data.get("purchasePrice")),
            line_total=to_money(data.get("totalAmount")),
        )


@dataclass
class TransactionSummary:
    """One entry from the transaction history listing."""

    transaction_id: str
    transaction_date: datetime | None
    store_id: str
    store_name: str
    total: float | None
    total_discount: float | None = None
    total_items: int | None = None

    @classmethod
    def from_dict(cls, data: dict) -> TransactionSummary:
        if not isinstance(data, dict):
            raise ValidationError(f"transaction payload must be a mapping: {data!r}")
        transaction_id = _optional_str(data.get("transactionId"))
        if transaction_id is None:
            raise ValidationError("transaction payload is missing transactionId")
        return cls(
            transaction_id=transaction_id,
            transaction_date=parse_datetime(data.get("transactionDate")),
            store_id=_optional_str(data.get("storeId")) or "unknown",
            store_name=_optional_str(data.get("storeName")) or UNKNOWN_STORE,
            total=to_money(data.get("total")),
            total_discount=to_money(data.get("totalDiscount")),
            total_items=to_int(data.get("totalItems")),
        )


@dataclass
class TransactionDetail:
    """Detail payload for a transaction: its product lines."""

    transaction_id: str | None
    products: list[ProductLine] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> TransactionDetail:
        if not isinstance(data, dict):
            raise ValidationError(f"detail payload must be a mapping: {data!r}")
        return cls(
            transaction_id=_optional_str(data.get("transactionId")),
            products=[ProductLine.from_dict(p) for p in data.get("products") or []],
        )


@dataclass
class CatalogProduct:
    """A catalog search hit used to enrich a locally known product."""

    name: str
    ean: str | None = None
    description: str | None = None
    store_price: float | None = None
    image: str | None = None
    internal_code: str | None = None

    @classmethod
    def from_dict(cls, data: dict) -> CatalogProduct:
        if not isinstance(data, dict):
            raise ValidationError(f"catalog payload must be a mapping: {data!r}")
        return cls(
            name=_optional_str(data.get("name")) or "",
            ean=_optional_str(data.get("ean")),
            description=data.get("description") or None,
            store_price=to_money(data.get("storePrice")),
            image=_optional_str(data.get("image")),
            internal_code=_optional_str(data.get("productInternalCode")),
        )
