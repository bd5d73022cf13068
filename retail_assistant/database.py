"""
Database module for catalog persistence.

Provides the SQLite schema, connection management and read/write operations
used when the catalog is backed by a file instead of living only in memory.
"""

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterable, List

from retail_assistant.models import Product

logger = logging.getLogger(__name__)


class CatalogDatabase:
    """
    Manages SQLite connections and operations for product persistence.

    Uses parameterized queries and context managers for proper resource
    handling. Serial numbers live in their own table, ordered by position.
    """

    def __init__(self, db_path: str):
        """
        Initialize the database and create the schema if needed.

        Args:
            db_path: Path to the SQLite database file
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._initialize_schema()

    @contextmanager
    def _get_connection(self):
        """Context manager for database connections."""
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _initialize_schema(self):
        """Create database tables if they don't exist."""
        with self._get_connection() as conn:
            cursor = conn.cursor()

            # rowid keeps table order stable across reloads
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS products (
                    sku TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    description TEXT NOT NULL DEFAULT '',
                    category TEXT NOT NULL DEFAULT '',
                    price REAL NOT NULL CHECK(price >= 0),
                    stock_quantity INTEGER NOT NULL CHECK(stock_quantity >= 0),
                    image_url TEXT NOT NULL DEFAULT ''
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS product_serials (
                    sku TEXT NOT NULL,
                    position INTEGER NOT NULL,
                    serial_number TEXT NOT NULL,
                    PRIMARY KEY (sku, position),
                    FOREIGN KEY (sku) REFERENCES products(sku)
                        ON DELETE CASCADE
                )
            """)

    def save_product(self, product: Product) -> None:
        """
        Insert or update a product together with its serial numbers.

        Args:
            product: Validated Product to persist
        """
        with self._get_connection() as conn:
            self._write_product(conn.cursor(), product)

    def replace_all(self, products: Iterable[Product]) -> None:
        """
        Replace the whole table in one transaction.

        Args:
            products: Products to store, in table order
        """
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("DELETE FROM product_serials")
            cursor.execute("DELETE FROM products")
            for product in products:
                self._write_product(cursor, product)

    def load_products(self) -> List[Product]:
        """
        Read every stored product in insertion order.

        Returns:
            List of Product objects (empty when nothing is stored)
        """
        with self._get_connection() as conn:
            cursor = conn.cursor()

            cursor.execute("SELECT * FROM products ORDER BY rowid")
            product_rows = cursor.fetchall()

            cursor.execute("""
                SELECT sku, serial_number FROM product_serials
                ORDER BY sku, position
            """)
            serials = {}
            for row in cursor.fetchall():
                serials.setdefault(row['sku'], []).append(row['serial_number'])

            return [self._row_to_product(row, serials.get(row['sku'], [])) for row in product_rows]

    def get_product_count(self) -> int:
        """Get total number of products in the database."""
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT COUNT(*) FROM products")
            return cursor.fetchone()[0]

    def _write_product(self, cursor: sqlite3.Cursor, product: Product) -> None:
        cursor.execute("""
            INSERT INTO products (
                sku, name, description, category,
                price, stock_quantity, image_url
            ) VALUES (?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(sku) DO UPDATE SET
                name = excluded.name,
                description = excluded.description,
                category = excluded.category,
                price = excluded.price,
                stock_quantity = excluded.stock_quantity,
                image_url = excluded.image_url
        """, (
            product.sku,
            product.name,
            product.description,
            product.category,
            product.price,
            product.stock_quantity,
            product.image_url
        ))

        cursor.execute("DELETE FROM product_serials WHERE sku = ?", (product.sku,))
        cursor.executemany("""
            INSERT INTO product_serials (sku, position, serial_number)
            VALUES (?, ?, ?)
        """, [
            (product.sku, position, serial)
            for position, serial in enumerate(product.serial_numbers)
        ])
        logger.debug("Persisted product %s", product.sku)

    def _row_to_product(self, row: sqlite3.Row, serial_numbers: List[str]) -> Product:
        """Convert a database row to a Product object."""
        return Product(
            sku=row['sku'],
            name=row['name'],
            description=row['description'],
            category=row['category'],
            price=row['price'],
            stock_quantity=row['stock_quantity'],
            image_url=row['image_url'],
            serial_numbers=serial_numbers
        )
