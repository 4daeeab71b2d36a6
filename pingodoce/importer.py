"""Import of a JSON transaction archive into the database."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING

from .errors import StorageError, ValidationError

if TYPE_CHECKING:
    from .db import Storage

logger = logging.getLogger(__name__)

ARCHIVE_FILENAME = "transactions.json"


class JsonImporter:
    """Loads ``transactions.json``: a mapping of transaction id to the
    summary payload, with the detail payload under ``"details"``.
    """

    def __init__(self, storage: Storage) -> None:
        self._storage = storage

    def import_dir(self, json_dir: str | Path) -> dict[str, int]:
        """Import every archived transaction not yet in the database.

        Returns:
            Counts of imported ``transactions``, their ``products`` lines,
            and ``skipped`` transactions that already existed.

        Raises:
            StorageError: If the archive is missing or unreadable.
        """
        path = Path(json_dir) / ARCHIVE_FILENAME
        if not path.exists():
            raise StorageError(f"{ARCHIVE_FILENAME} not found in {json_dir}")

        try:
            with open(path, encoding="utf-8") as f:
                archive = json.load(f)
        except json.JSONDecodeError as e:
            raise StorageError(f"Invalid JSON in {path}: {e}") from e
        if not isinstance(archive, dict):
            raise ValidationError(f"{path} must contain an object keyed by transaction id")

        result = {"transactions": 0, "products": 0, "skipped": 0}

        for transaction_id, data in archive.items():
            if self._storage.transaction_exists(transaction_id):
                result["skipped"] += 1
                continue

            if not isinstance(data, dict):
                raise ValidationError(f"Archived transaction {transaction_id} is not an object")
            summary = dict(data)
            summary.setdefault("transactionId", transaction_id)
            details = summary.pop("details", None)
            products_count = len((details or {}).get("products") or [])

            self._storage.save_transaction(summary, details)
            result["transactions"] += 1
            result["products"] += products_count
            logger.info("Imported: %s (%d products)", transaction_id, products_count)

        logger.info(
            "Import finished: %d transactions, %d products, %d skipped",
            result["transactions"],
            result["products"],
            result["skipped"],
        )
        return result
