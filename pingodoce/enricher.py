"""Catalog enrichment for products known only from receipts."""

from __future__ import annotations

import logging
import re
import time
from typing import TYPE_CHECKING

from .api.models import CatalogProduct
from .errors import APIError, NotFoundError

if TYPE_CHECKING:
    from .api.client import PingoDoceClient
    from .db import Product, Storage

logger = logging.getLogger(__name__)

_PUNCTUATION = re.compile(r"[^\w\s]|_")
_WHITESPACE = re.compile(r"\s+")

SIMILARITY_THRESHOLD = 0.6


def normalize_name(name: str | None) -> str:
    """Lowercase, drop punctuation (keeping accented letters) and collapse spaces."""
    text = _PUNCTUATION.sub("", (name or "").lower())
    return _WHITESPACE.sub(" ", text).strip()


def word_similarity(a: str, b: str) -> float:
    """Shared words over the longer word count."""
    if a == b:
        return 1.0
    if not a or not b:
        return 0.0
    words_a = a.split()
    words_b = b.split()
    common = len(set(words_a) & set(words_b))
    return common / max(len(words_a), len(words_b))


def find_best_match(documents: list[dict], target_name: str) -> dict | None:
    """Pick the catalog hit that names the same product.

    Tries an exact normalized match, then containment either way, then a
    lone result whose words overlap enough.
    """
    if not documents:
        return None

    target = normalize_name(target_name)

    for doc in documents:
        if normalize_name(doc.get("name")) == target:
            return doc

    for doc in documents:
        candidate = normalize_name(doc.get("name"))
        if candidate and (target in candidate or candidate in target):
            return doc

    if len(documents) == 1:
        only = documents[0]
        if word_similarity(target, normalize_name(only.get("name"))) > SIMILARITY_THRESHOLD:
            return only

    return None


class ProductEnricher:
    """Looks products up in the retailer catalog and stores what it finds."""

    def __init__(
        self,
        client: PingoDoceClient,
        storage: Storage,
        store_id: str = "-1",
    ) -> None:
        self._client = client
        self._storage = storage
        self._store_id = store_id

    def enrich(self, product: Product) -> bool:
        """Enrich one product.

        Returns:
            True if a catalog match was stored, False if the product was
            marked unavailable.

        Raises:
            APIError: If a catalog request fails for a reason other than 404.
        """
        logger.info("Enriching product: %s", product.name)

        data = self.find_in_catalog(product)
        if data is None:
            self._storage.mark_product_unavailable(product.id)
            logger.info("  -> Not found in catalog")
            return False

        catalog = CatalogProduct.from_dict(data)
        self._storage.enrich_product(product.id, catalog)
        logger.info("  -> Enriched with EAN: %s", catalog.ean)
        return True

    def enrich_batch(self, products: list[Product], delay: float = 0.5) -> dict[str, int]:
        """Enrich products one by one, pausing ``delay`` seconds between calls.

        A failing product is counted and logged; the batch carries on.
        """
        results = {"enriched": 0, "not_found": 0, "errors": 0}
        if not products:
            return results

        logger.info("Enriching %d products...", len(products))

        for index, product in enumerate(products):
            if index > 0 and delay > 0:
                time.sleep(delay)
            try:
                if self.enrich(product):
                    results["enriched"] += 1
                else:
                    results["not_found"] += 1
            except Exception:
                logger.exception("  -> Error enriching %s", product.name)
                results["errors"] += 1

        logger.info(
            "Enrichment complete: %d enriched, %d not found, %d errors",
            results["enriched"],
            results["not_found"],
            results["errors"],
        )
        return results

    def find_in_catalog(self, product: Product) -> dict | None:
        if product.external_id:
            found = self._client.fetch_product_by_code(
                product.external_id, store_id=self._store_id
            )
            if found:
                return found

        try:
            results = self._client.search_products(
                product.name, store_id=self._store_id, page=1, size=5
            )
        except NotFoundError:
            return None
        if not isinstance(results, dict):
            raise APIError(f"Unexpected search response for {product.name!r}")
        return find_best_match(results.get("documents") or [], product.name)
