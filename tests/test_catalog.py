"""
Tests for the catalog store and its SQLite backing.
"""

import pytest

from retail_assistant import catalog as catalog_module
from retail_assistant.catalog import CatalogStore, SEED_PRODUCTS, create_catalog
from retail_assistant.database import CatalogDatabase
from retail_assistant.models import Product, StockStatus


@pytest.fixture
def test_database(tmp_path):
    """Create a temporary catalog database."""
    return CatalogDatabase(str(tmp_path / "catalog.db"))


@pytest.fixture
def sample_product():
    return Product(
        sku="cam-mirrorless-1",
        name="Mirrorless Camera",
        description="Compact mirrorless camera body.",
        price=849.0,
        stock_quantity=3,
        category="Cameras",
        serial_numbers=["CAM-001", "CAM-002", "CAM-003"]
    )


# =============================================================================
# Reads
# =============================================================================

class TestCatalogReads:
    """Lookup, search and snapshot behaviour."""

    def test_seed_products_loaded(self, catalog):
        """A new store starts with the seed set in order."""
        skus = [p.sku for p in catalog.get_all()]
        assert skus == ["lap-pro-16", "head-nc-500", "phone-ultra-x", "watch-sport-2"]

    def test_get_all_returns_snapshot(self, catalog):
        """Mutating a snapshot never touches the store."""
        snapshot = catalog.get_all()
        snapshot[0].stock_quantity = 999
        snapshot.pop()

        assert catalog.find_by_sku("lap-pro-16").stock_quantity == 12
        assert len(catalog.get_all()) == 4

    def test_find_by_sku(self, catalog):
        """Exact SKU lookup returns a copy."""
        product = catalog.find_by_sku("head-nc-500")
        assert product.name == "NoiseCancel 500"

        product.price = 1.0
        assert catalog.find_by_sku("head-nc-500").price == 299.99

    def test_find_unknown_sku_returns_none(self, catalog):
        assert catalog.find_by_sku("nope") is None

    def test_search_is_case_insensitive(self, catalog):
        """Name, category and SKU all match regardless of case."""
        assert [p.sku for p in catalog.search("probook")] == ["lap-pro-16"]
        assert [p.sku for p in catalog.search("AUDIO")] == ["head-nc-500"]
        assert [p.sku for p in catalog.search("Watch-Sport")] == ["watch-sport-2"]

    def test_search_matches_serial_numbers(self, catalog, sample_product):
        catalog.upsert(sample_product)
        assert [p.sku for p in catalog.search("cam-002")] == ["cam-mirrorless-1"]

    def test_search_no_match_is_empty(self, catalog):
        assert catalog.search("toaster") == []

    def test_search_keeps_table_order(self, catalog):
        """An empty query matches everything in table order."""
        assert [p.sku for p in catalog.search("")] == [row["sku"] for row in SEED_PRODUCTS]

    def test_snapshot_delay_applied(self, monkeypatch):
        """get_all waits for the configured delay before returning."""
        waits = []
        monkeypatch.setattr(catalog_module.time, "sleep", waits.append)

        CatalogStore(snapshot_delay=0.3).get_all()
        assert waits == [0.3]


# =============================================================================
# Mutations
# =============================================================================

class TestCatalogMutations:
    """Stock updates, upserts and reset."""

    def test_set_stock(self, catalog):
        assert catalog.set_stock("phone-ultra-x", 7) is True
        assert catalog.find_by_sku("phone-ultra-x").stock_quantity == 7

    def test_set_stock_unknown_sku(self, catalog):
        assert catalog.set_stock("ghost", 3) is False

    @pytest.mark.parametrize("quantity", [-1, 2.5, "4", True])
    def test_set_stock_rejects_invalid_quantity(self, catalog, quantity):
        """Stock can never go negative or become a non-integer."""
        with pytest.raises(ValueError):
            catalog.set_stock("lap-pro-16", quantity)
        assert catalog.find_by_sku("lap-pro-16").stock_quantity == 12

    def test_upsert_inserts_new_product(self, catalog, sample_product):
        catalog.upsert(sample_product)

        stored = catalog.find_by_sku("cam-mirrorless-1")
        assert stored.model_dump() == sample_product.model_dump()
        assert len(catalog) == 5

    def test_upsert_merges_existing_product(self, catalog):
        """Stock, serials and category are replaced; name is kept."""
        catalog.upsert(Product(
            sku="lap-pro-16",
            name="Renamed",
            category="Notebooks",
            price=2199.0,
            stock_quantity=2,
            serial_numbers=["SN-A", "SN-B"]
        ))

        stored = catalog.find_by_sku("lap-pro-16")
        assert stored.name == 'ProBook 16"'
        assert stored.category == "Notebooks"
        assert stored.price == 2199.0
        assert stored.stock_quantity == 2
        assert stored.serial_numbers == ["SN-A", "SN-B"]

    def test_upsert_keeps_price_when_incoming_is_zero(self, catalog):
        catalog.upsert(Product(sku="lap-pro-16", name="ProBook", price=0, stock_quantity=1))
        assert catalog.find_by_sku("lap-pro-16").price == 2499.99

    def test_reset_restores_seed(self, catalog, sample_product):
        catalog.upsert(sample_product)
        catalog.set_stock("lap-pro-16", 0)

        catalog.reset()

        assert [p.sku for p in catalog.get_all()] == [row["sku"] for row in SEED_PRODUCTS]
        assert catalog.find_by_sku("lap-pro-16").stock_quantity == 12

    def test_reset_is_not_affected_by_earlier_mutation(self, catalog):
        """The seed set itself is never mutated through the store."""
        catalog.set_stock("head-nc-500", 1)
        catalog.reset()
        assert SEED_PRODUCTS[1]["stock_quantity"] == 45
        assert catalog.find_by_sku("head-nc-500").stock_quantity == 45

    def test_seed_rows_are_read_only(self):
        with pytest.raises(TypeError):
            SEED_PRODUCTS[0]["stock_quantity"] = 0
        assert SEED_PRODUCTS[0]["stock_quantity"] == 12

    def test_reset_ignores_changes_to_initial_products(self, sample_product):
        """A store keeps its own copy of the products it was built from."""
        store = CatalogStore(initial_products=[sample_product], snapshot_delay=0)
        sample_product.stock_quantity = 0
        sample_product.serial_numbers.append("CAM-999")

        store.reset()

        stored = store.find_by_sku("cam-mirrorless-1")
        assert stored.stock_quantity == 3
        assert stored.serial_numbers == ["CAM-001", "CAM-002", "CAM-003"]

    def test_stats(self, catalog):
        stats = catalog.get_stats()

        assert stats.total_products == 4
        assert stats.total_stock == 12 + 45 + 0 + 8
        assert stats.low_stock_count == 0
        assert stats.categories == 4

        catalog.set_stock("watch-sport-2", 2)
        assert catalog.get_stats().low_stock_count == 1


class TestStockStatus:
    """Derived stock status on products."""

    def test_stock_status_levels(self, catalog):
        assert catalog.find_by_sku("phone-ultra-x").stock_status == StockStatus.OUT_OF_STOCK
        assert catalog.find_by_sku("lap-pro-16").stock_status == StockStatus.IN_STOCK

        catalog.set_stock("lap-pro-16", 4)
        assert catalog.find_by_sku("lap-pro-16").stock_status == StockStatus.LOW_STOCK

    def test_negative_stock_rejected_by_model(self):
        with pytest.raises(ValueError):
            Product(sku="x", name="X", stock_quantity=-1)

    def test_price_rounding(self):
        assert Product(sku="x", name="X", price=19.999).price == 20.0


# =============================================================================
# Database Persistence
# =============================================================================

class TestCatalogDatabase:
    """SQLite persistence of products and serial numbers."""

    def test_empty_database(self, test_database):
        assert test_database.load_products() == []
        assert test_database.get_product_count() == 0

    def test_save_and_load_round_trip(self, test_database, sample_product):
        test_database.save_product(sample_product)

        loaded = test_database.load_products()
        assert [p.model_dump() for p in loaded] == [sample_product.model_dump()]

    def test_save_product_updates_in_place(self, test_database, sample_product):
        """Re-saving replaces fields and the serial list, keeping one row."""
        test_database.save_product(sample_product)

        updated = sample_product.model_copy(update={
            "stock_quantity": 1,
            "serial_numbers": ["CAM-009"]
        })
        test_database.save_product(updated)

        loaded = test_database.load_products()
        assert test_database.get_product_count() == 1
        assert loaded[0].stock_quantity == 1
        assert loaded[0].serial_numbers == ["CAM-009"]

    def test_replace_all(self, test_database, sample_product):
        test_database.save_product(sample_product)
        test_database.replace_all([Product(**row) for row in SEED_PRODUCTS])

        assert [p.sku for p in test_database.load_products()] == [row["sku"] for row in SEED_PRODUCTS]

    def test_store_seeds_empty_database(self, test_database):
        CatalogStore(database=test_database)
        assert test_database.get_product_count() == len(SEED_PRODUCTS)

    def test_store_writes_through(self, test_database, sample_product):
        """Mutations are visible to a store opened later on the same file."""
        store = CatalogStore(database=test_database)
        store.set_stock("phone-ultra-x", 5)
        store.upsert(sample_product)

        reopened = CatalogStore(database=CatalogDatabase(str(test_database.db_path)))
        assert reopened.find_by_sku("phone-ultra-x").stock_quantity == 5
        assert reopened.find_by_sku("cam-mirrorless-1").serial_numbers == ["CAM-001", "CAM-002", "CAM-003"]

    def test_store_reset_rewrites_database(self, test_database, sample_product):
        store = CatalogStore(database=test_database)
        store.upsert(sample_product)
        store.reset()

        assert test_database.get_product_count() == len(SEED_PRODUCTS)

    def test_create_catalog_with_path(self, tmp_path):
        store = create_catalog(str(tmp_path / "nested" / "catalog.db"))
        assert store.database is not None
        assert store.database.get_product_count() == len(SEED_PRODUCTS)
