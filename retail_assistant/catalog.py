"""
Catalog store.

Holds the authoritative SKU-keyed product table and the immutable seed set
it is reset to. Optionally writes through to a CatalogDatabase.
"""

import logging
import time
from types import MappingProxyType
from typing import Iterable, List, Optional

from retail_assistant import config
from retail_assistant.database import CatalogDatabase
from retail_assistant.models import InventoryStats, LOW_STOCK_THRESHOLD, Product

logger = logging.getLogger(__name__)


# Frozen rows; CatalogStore builds fresh Product records from them.
SEED_PRODUCTS = (
    MappingProxyType({
        "sku": "lap-pro-16",
        "name": 'ProBook 16"',
        "description": "High performance laptop with M2 chip, 32GB RAM.",
        "price": 2499.99,
        "stock_quantity": 12,
        "category": "Laptops",
        "image_url": "https://picsum.photos/400/400?random=1",
    }),
    MappingProxyType({
        "sku": "head-nc-500",
        "name": "NoiseCancel 500",
        "description": "Over-ear noise cancelling headphones with 20h battery.",
        "price": 299.99,
        "stock_quantity": 45,
        "category": "Audio",
        "image_url": "https://picsum.photos/400/400?random=2",
    }),
    MappingProxyType({
        "sku": "phone-ultra-x",
        "name": "UltraPhone X",
        "description": "Latest flagship smartphone, 5G, 256GB.",
        "price": 999.00,
        "stock_quantity": 0,
        "category": "Phones",
        "image_url": "https://picsum.photos/400/400?random=3",
    }),
    MappingProxyType({
        "sku": "watch-sport-2",
        "name": "SportWatch Gen 2",
        "description": "Waterproof fitness tracker with GPS.",
        "price": 199.50,
        "stock_quantity": 8,
        "category": "Wearables",
        "image_url": "https://picsum.photos/400/400?random=4",
    }),
)


class CatalogStore:
    """
    In-memory product table with an explicit lifecycle.

    Every read returns copies so callers never observe the live table.
    """

    def __init__(
        self,
        initial_products: Optional[Iterable[Product]] = None,
        database: Optional[CatalogDatabase] = None,
        snapshot_delay: Optional[float] = None
    ):
        """
        Initialize the store.

        Args:
            initial_products: Products to start with and reset to. Defaults to
                the SEED_PRODUCTS rows.
            database: Optional backing store. When it already holds products
                they take precedence over initial_products.
            snapshot_delay: Seconds to wait before get_all returns
        """
        if initial_products is None:
            self._seed = SEED_PRODUCTS
        else:
            self._seed = tuple(MappingProxyType(p.model_dump()) for p in initial_products)
        self.database = database
        self.snapshot_delay = config.CATALOG_SNAPSHOT_DELAY if snapshot_delay is None else snapshot_delay

        stored = database.load_products() if database else []
        if stored:
            logger.info("Loaded %d products from %s", len(stored), database.db_path)
            self._products = stored
        else:
            self._products = self._build_seed()
            if database:
                database.replace_all(self._products)

    def get_all(self) -> List[Product]:
        """Return a snapshot copy of the whole table."""
        if self.snapshot_delay > 0:
            time.sleep(self.snapshot_delay)
        return [p.model_copy(deep=True) for p in self._products]

    def find_by_sku(self, sku: str) -> Optional[Product]:
        """
        Look up a product by exact SKU.

        Returns:
            A copy of the product, or None if the SKU is unknown
        """
        product = self._find(sku)
        return product.model_copy(deep=True) if product else None

    def search(self, query: str) -> List[Product]:
        """
        Case-insensitive substring search.

        Matches name, category, SKU and any serial number. Results keep
        table order.
        """
        needle = query.lower()
        logger.debug("Searching catalog for %r", query)
        return [
            p.model_copy(deep=True)
            for p in self._products
            if needle in p.name.lower()
            or needle in p.category.lower()
            or needle in p.sku.lower()
            or any(needle in sn.lower() for sn in p.serial_numbers)
        ]

    def set_stock(self, sku: str, quantity: int) -> bool:
        """
        Overwrite the stock level of a product.

        Args:
            sku: Product to update
            quantity: New stock level (non-negative integer)

        Returns:
            True if updated, False if the SKU is unknown

        Raises:
            ValueError: If quantity is negative or not an integer
        """
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 0:
            raise ValueError(f"Stock quantity must be a non-negative integer, got {quantity!r}")

        product = self._find(sku)
        if product is None:
            return False

        product.stock_quantity = quantity
        self._persist(product)
        logger.info("Stock for %s set to %d", sku, quantity)
        return True

    def upsert(self, incoming: Product) -> Product:
        """
        Insert a product or merge it into the existing record.

        An existing record takes stock, serial numbers and category from the
        incoming one unconditionally, and its price only when positive.

        Returns:
            A copy of the stored record
        """
        existing = self._find(incoming.sku)
        if existing is None:
            existing = incoming.model_copy(deep=True)
            self._products.append(existing)
            logger.info("Added product %s", incoming.sku)
        else:
            existing.stock_quantity = incoming.stock_quantity
            existing.serial_numbers = list(incoming.serial_numbers)
            existing.category = incoming.category
            if incoming.price > 0:
                existing.price = incoming.price
            logger.info("Updated product %s", incoming.sku)

        self._persist(existing)
        return existing.model_copy(deep=True)

    def reset(self) -> None:
        """Replace the table with a fresh copy of the seed set."""
        self._products = self._build_seed()
        if self.database:
            self.database.replace_all(self._products)
        logger.info("Catalog reset to %d seed products", len(self._products))

    def get_stats(self) -> InventoryStats:
        """Summary figures for dashboards and the CLI."""
        return InventoryStats(
            total_products=len(self._products),
            total_stock=sum(p.stock_quantity for p in self._products),
            low_stock_count=sum(1 for p in self._products if 0 < p.stock_quantity < LOW_STOCK_THRESHOLD),
            categories=len({p.category for p in self._products})
        )

    def __len__(self) -> int:
        return len(self._products)

    def _build_seed(self) -> List[Product]:
        return [Product(**row) for row in self._seed]

    def _find(self, sku: str) -> Optional[Product]:
        for product in self._products:
            if product.sku == sku:
                return product
        return None

    def _persist(self, product: Product) -> None:
        if self.database:
            self.database.save_product(product)


def create_catalog(db_path: Optional[str] = None) -> CatalogStore:
    """Build a catalog store from configuration."""
    path = db_path or config.CATALOG_DB_PATH
    return CatalogStore(database=CatalogDatabase(path) if path else None)
