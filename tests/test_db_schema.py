"""Tests for database schema creation and migration."""

import sqlite3

import pytest

from pingodoce.db.schema import _SCHEMA_VERSION, TABLES, ensure_schema


def test_ensure_schema_creates_tables(tmp_path):
    """Schema creates every ledger table."""
    conn = ensure_schema(tmp_path / "test.db")

    tables = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' ORDER BY name"
    ).fetchall()
    table_names = {row["name"] for row in tables}

    for table in TABLES:
        assert table in table_names
    assert "schema_version" in table_names

    conn.close()


def test_ensure_schema_creates_parent_dirs(tmp_path):
    """Schema creates parent directories if they don't exist."""
    db_path = tmp_path / "sub" / "dir" / "test.db"
    conn = ensure_schema(db_path)
    assert db_path.exists()
    conn.close()


def test_ensure_schema_idempotent(tmp_path):
    """Calling ensure_schema twice keeps the version."""
    db_path = tmp_path / "test.db"
    ensure_schema(db_path).close()

    conn = ensure_schema(db_path)
    row = conn.execute("SELECT version FROM schema_version").fetchone()
    assert row["version"] == _SCHEMA_VERSION
    conn.close()


def test_ensure_schema_wal_mode(tmp_path):
    """Schema sets WAL journal mode."""
    conn = ensure_schema(tmp_path / "test.db")
    mode = conn.execute("PRAGMA journal_mode").fetchone()
    assert mode[0] == "wal"
    conn.close()


def test_expected_indexes(tmp_path):
    """Lookup columns are indexed."""
    conn = ensure_schema(tmp_path / "test.db")
    rows = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='index' AND name LIKE 'idx_%'"
    ).fetchall()
    names = {row["name"] for row in rows}

    expected = {
        "idx_transactions_date",
        "idx_transactions_store",
        "idx_products_name",
        "idx_products_external_id",
        "idx_products_ean",
        "idx_products_enrichment",
        "idx_purchases_product",
        "idx_purchases_transaction",
        "idx_purchases_date",
        "idx_purchases_product_transaction",
    }
    assert expected <= names
    conn.close()


def test_products_enrichment_columns(tmp_path):
    """products carries the catalog enrichment columns."""
    conn = ensure_schema(tmp_path / "test.db")
    info = conn.execute("PRAGMA table_info(products)").fetchall()
    col_names = {row["name"] for row in info}

    assert {
        "ean", "description_html", "ingredients", "store_price",
        "enrichment_status", "last_enriched_at",
    } <= col_names
    conn.close()


def test_duplicate_purchase_rejected(tmp_path):
    """The (product, transaction) pair is unique at the database level."""
    conn = ensure_schema(tmp_path / "test.db")
    conn.execute("INSERT INTO stores (external_id, name) VALUES ('1', 'Loja')")
    conn.execute("INSERT INTO transactions (transaction_id, store_id) VALUES ('T1', 1)")
    conn.execute(
        "INSERT INTO products (name, first_seen) VALUES ('Leite', '2024-01-01')"
    )
    conn.execute("INSERT INTO purchases (product_id, transaction_id) VALUES (1, 1)")

    with pytest.raises(sqlite3.IntegrityError):
        conn.execute("INSERT INTO purchases (product_id, transaction_id) VALUES (1, 1)")
    conn.close()


def test_fold_function_registered(tmp_path):
    """The fold() SQL function ignores accents and case."""
    conn = ensure_schema(tmp_path / "test.db")
    row = conn.execute("SELECT fold('GRÃO de Bico') AS f").fetchone()
    assert row["f"] == "grao de bico"
    assert conn.execute("SELECT fold(NULL) AS f").fetchone()["f"] is None
    conn.close()
