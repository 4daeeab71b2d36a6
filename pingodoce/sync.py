"""Paginated download of transaction history into the database."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .errors import APIError, StorageError, ValidationError

if TYPE_CHECKING:
    from .api.client import PingoDoceClient
    from .db import Storage

logger = logging.getLogger(__name__)


@dataclass
class SyncResult:
    synced: int = 0
    skipped: int = 0
    failed: list[str] = field(default_factory=list)


def sync_transactions(
    client: PingoDoceClient,
    storage: Storage,
    pages: int = 5,
    size: int = 20,
) -> SyncResult:
    """Fetch up to ``pages`` pages of history and store unseen transactions.

    Known transactions are skipped without fetching details. A transaction
    that fails to download or store is logged and recorded in ``failed``.
    Stops early at the first empty page.
    """
    if not client.authenticated:
        client.login()

    result = SyncResult()
    for page in range(1, pages + 1):
        logger.info("Fetching page %d...", page)
        txns = client.transactions(page=page, size=size)
        if not txns:
            break

        for summary in txns:
            transaction_id = summary.get("transactionId")
            if transaction_id is None:
                logger.warning("Skipping transaction without id on page %d", page)
                continue
            if storage.transaction_exists(transaction_id):
                result.skipped += 1
                continue

            try:
                details = client.transaction_details(
                    transaction_id, store_id=summary.get("storeId")
                )
                storage.ingest(summary, details)
            except (APIError, StorageError, ValidationError):
                logger.exception("Failed to sync %s", transaction_id)
                result.failed.append(str(transaction_id))
                continue

            result.synced += 1
            logger.info(
                "Synced: %s - %s - %s EUR",
                summary.get("transactionDate"),
                summary.get("storeName"),
                summary.get("total"),
            )

    logger.info(
        "Sync complete! Synced: %d, Skipped (already exists): %d",
        result.synced,
        result.skipped,
    )
    return result
