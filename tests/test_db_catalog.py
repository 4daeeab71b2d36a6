"""Tests for find-or-create reconciliation."""

import pytest

from pingodoce.db import CatalogReconciler, Storage, Transaction


@pytest.fixture
def storage(tmp_path):
    """Create a temporary Storage."""
    s = Storage(tmp_path / "test.db")
    yield s
    s.close()


def _count(storage, table):
    return storage.count(table)


class TestStores:
    def test_same_external_id_reused(self, storage):
        """A store id resolves to one row."""
        with storage.atomic() as conn:
            catalog = CatalogReconciler(conn)
            first = catalog.find_or_create_store("101", "Pingo Doce Lisboa")
            second = catalog.find_or_create_store("101", "Pingo Doce Lisboa")

        assert first.id == second.id
        assert _count(storage, "stores") == 1

    def test_placeholder_name_backfilled(self, storage):
        """A real name replaces the placeholder."""
        with storage.atomic() as conn:
            catalog = CatalogReconciler(conn)
            catalog.find_or_create_store("101", None)
            store = catalog.find_or_create_store("101", "Pingo Doce Porto")

        assert store.name == "Pingo Doce Porto"

    def test_real_name_not_overwritten(self, storage):
        """An existing real name is kept."""
        with storage.atomic() as conn:
            catalog = CatalogReconciler(conn)
            catalog.find_or_create_store("101", "Pingo Doce Porto")
            store = catalog.find_or_create_store("101", "Other")

        assert store.name == "Pingo Doce Porto"


class TestBrands:
    def test_none_without_id_or_name(self, storage):
        """No id and no name means no brand."""
        with storage.atomic() as conn:
            assert CatalogReconciler(conn).find_or_create_brand(None, None) is None
        assert _count(storage, "brands") == 0

    def test_lookup_by_external_id(self, storage):
        """Brands with an id are matched on it."""
        with storage.atomic() as conn:
            catalog = CatalogReconciler(conn)
            a = catalog.find_or_create_brand("7", "Mimosa", own_brand=False)
            b = catalog.find_or_create_brand("7", "MIMOSA")

        assert a.id == b.id
        assert b.name == "Mimosa"

    def test_lookup_by_name_without_id(self, storage):
        """Brands without an id are matched on name."""
        with storage.atomic() as conn:
            catalog = CatalogReconciler(conn)
            a = catalog.find_or_create_brand(None, "Pingo Doce", own_brand=True)
            b = catalog.find_or_create_brand(None, "Pingo Doce")

        assert a.id == b.id
        assert a.own_brand is True
        assert _count(storage, "brands") == 1


class TestProducts:
    def test_lookup_by_external_id(self, storage):
        """A known external id wins over a different name."""
        with storage.atomic() as conn:
            catalog = CatalogReconciler(conn)
            a = catalog.find_or_create_product("P1", "Leite 1L", first_seen="2024-01-01")
            b = catalog.find_or_create_product("P1", "Leite Meio Gordo 1L")

        assert a.id == b.id
        assert b.name == "Leite 1L"

    def test_lookup_by_name_and_brand(self, storage):
        """Without an id, products match on name within the brand."""
        with storage.atomic() as conn:
            catalog = CatalogReconciler(conn)
            mimosa = catalog.find_or_create_brand("1", "Mimosa")
            gresso = catalog.find_or_create_brand("2", "Gresso")
            a = catalog.find_or_create_product(None, "Leite", brand=mimosa)
            b = catalog.find_or_create_product(None, "Leite", brand=mimosa)
            c = catalog.find_or_create_product(None, "Leite", brand=gresso)

        assert a.id == b.id
        assert c.id != a.id

    def test_name_match_backfills_external_id(self, storage):
        """A product first seen without an id picks one up later."""
        with storage.atomic() as conn:
            catalog = CatalogReconciler(conn)
            a = catalog.find_or_create_product(None, "Pão")
            b = catalog.find_or_create_product("P9", "Pão")

        assert a.id == b.id
        assert storage.find_product_by_external_id("P9").id == a.id

    def test_first_seen_defaults_to_now(self, storage):
        """An unparsable date still yields a first_seen value."""
        with storage.atomic() as conn:
            product = CatalogReconciler(conn).find_or_create_product(
                "P2", "Queijo", first_seen="not a date"
            )

        assert product.first_seen is not None


def test_record_purchase_once(storage):
    """The second record of the same line is a no-op."""
    with storage.atomic() as conn:
        catalog = CatalogReconciler(conn)
        store = catalog.find_or_create_store("1", "Loja")
        conn.execute(
            "INSERT INTO transactions (transaction_id, store_id, total) VALUES ('T1', ?, 5)",
            (store.id,),
        )
        txn = Transaction.from_row(
            conn.execute("SELECT * FROM transactions WHERE transaction_id = 'T1'").fetchone()
        )
        product = catalog.find_or_create_product("P1", "Leite")

        first = catalog.record_purchase(product, txn, store, 2.0, 1.29, 2.58, "2024-01-05")
        second = catalog.record_purchase(product, txn, store, 2.0, 1.29, 2.58, "2024-01-05")

    assert first is not None
    assert first.price == 1.29
    assert first.purchase_date == "2024-01-05T00:00:00"
    assert second is None
    assert _count(storage, "purchases") == 1
