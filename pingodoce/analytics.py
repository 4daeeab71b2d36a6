"""Spending and price-trend reports over stored transactions."""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import asdict, dataclass, field
from datetime import date, timedelta
from pathlib import Path

from .api.models import UNKNOWN_STORE
from .db import DatabaseStats, ProductHistory, Storage, TransactionRecord
from .normalize import parse_datetime, to_float

logger = logging.getLogger(__name__)

WEEKDAYS = (
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
)


@dataclass
class SpendingReport:
    """Spending summary for a trailing window of days.

    When the window holds no transactions only ``message`` is set.
    """

    period_days: int
    message: str | None = None
    total_spent: float | None = None
    transaction_count: int | None = None
    average_per_transaction: float | None = None
    by_store: dict[str, float] | None = None
    by_day_of_week: dict[str, float] | None = None
    top_products: dict[str, int] | None = None

    @property
    def is_empty(self) -> bool:
        return self.transaction_count is None

    def to_dict(self) -> dict:
        return {k: v for k, v in asdict(self).items() if v is not None}


@dataclass
class PriceTrend:
    product_id: int
    name: str
    first_seen: str | None
    first_price: float
    last_seen: str | None
    last_price: float
    price_change: float
    percent_change: float
    total_purchases: int

    def to_dict(self) -> dict:
        return asdict(self)


def _sorted_desc(totals: dict[str, float]) -> dict[str, float]:
    items = sorted(totals.items(), key=lambda kv: (-kv[1], kv[0]))
    return {name: round(amount, 2) for name, amount in items}


class Analytics:
    """Read-only reports built from ``Storage`` queries."""

    def __init__(self, storage: Storage, data_dir: str | Path = "data") -> None:
        self._storage = storage
        self._data_dir = Path(data_dir)

    def spending_report(self, days: int = 30, today: date | None = None) -> SpendingReport:
        """Summarize spending for transactions dated in [today - days, today]."""
        today = today or date.today()
        recent = self._storage.recent_transactions(today - timedelta(days=days), today)

        if not recent:
            return SpendingReport(
                period_days=days,
                message=f"No transactions found in the last {days} days",
            )

        total = sum(t.total or 0.0 for t in recent)
        return SpendingReport(
            period_days=days,
            total_spent=round(total, 2),
            transaction_count=len(recent),
            average_per_transaction=round(total / len(recent), 2),
            by_store=self._by_store(recent),
            by_day_of_week=self._by_day(recent),
            top_products=self._top_products(recent, limit=10),
        )

    def price_trends(self, product_name: str | None = None) -> list[PriceTrend]:
        """First vs last unit price for products bought at least twice.

        With ``product_name`` only products whose name contains it are
        considered (case- and accent-insensitive).
        """
        if product_name:
            candidates = self._storage.search_products(product_name)
        else:
            candidates = self._storage.products_with_multiple_purchases()

        trends = []
        for product in candidates:
            trend = self._price_trend(product)
            if trend is not None:
                trends.append(trend)
        return trends

    def stats(self) -> DatabaseStats:
        return self._storage.stats()

    def export_csv(self) -> tuple[Path, Path]:
        return self._storage.export_csv(self._data_dir)

    def _by_store(self, transactions: list[TransactionRecord]) -> dict[str, float]:
        totals: dict[str, float] = defaultdict(float)
        for t in transactions:
            totals[t.store_name or UNKNOWN_STORE] += t.total or 0.0
        return _sorted_desc(totals)

    def _by_day(self, transactions: list[TransactionRecord]) -> dict[str, float]:
        totals: dict[str, float] = defaultdict(float)
        for t in transactions:
            when = parse_datetime(t.transaction_date)
            if when is None:
                continue
            totals[WEEKDAYS[when.weekday()]] += t.total or 0.0
        return _sorted_desc(totals)

    def _top_products(
        self, transactions: list[TransactionRecord], limit: int
    ) -> dict[str, int]:
        frequency: dict[str, int] = defaultdict(int)
        for t in transactions:
            for line in t.products:
                quantity = line.quantity or 0.0
                if quantity == 0:
                    quantity = 1
                frequency[line.product_name] += int(quantity)
        ranked = sorted(frequency.items(), key=lambda kv: (-kv[1], kv[0]))
        return dict(ranked[:limit])

    def _price_trend(self, product: ProductHistory) -> PriceTrend | None:
        purchases = product.purchases
        if len(purchases) < 2:
            return None

        ordered = sorted(purchases, key=lambda p: p.purchase_date or "")
        first, last = ordered[0], ordered[-1]
        first_price = to_float(first.price)
        last_price = to_float(last.price)
        if first_price is None or last_price is None:
            logger.debug("Skipping %r: missing unit price", product.name)
            return None

        change = last_price - first_price
        percent = 0.0 if first_price == 0 else round(change / first_price * 100, 1)
        return PriceTrend(
            product_id=product.id,
            name=product.name,
            first_seen=first.purchase_date,
            first_price=first_price,
            last_seen=last.purchase_date,
            last_price=last_price,
            price_change=round(change, 2),
            percent_change=percent,
            total_purchases=len(purchases),
        )
