"""
Bulk inventory ingestion.

Reconciles serialized-inventory CSV exports into one aggregate stock record
per product and upserts the results into the catalog. Expected columns:

    name, category, status, identifier, quantity, cost, price[, ...]

Each upload is a full resync for the products it mentions: stock and serial
numbers are replaced, not incremented.
"""

import csv
import logging
import re
from pathlib import Path
from typing import Dict, List, Optional

from retail_assistant.catalog import CatalogStore
from retail_assistant.models import AggregatedRow, Product

logger = logging.getLogger(__name__)


MIN_COLUMNS = 5

NAME_COL, CATEGORY_COL, STATUS_COL, IDENTIFIER_COL, QUANTITY_COL, COST_COL, PRICE_COL = range(7)

NO_IDENTIFIER = "n/a"

_NON_ALNUM = re.compile(r"[^a-z0-9]+")
_LEADING_INT = re.compile(r"^[+-]?\d+")
_PRICE_CHARS = re.compile(r"[^0-9.,]")


def generate_sku(name: str) -> str:
    """
    Derive a canonical SKU from a product name.

    >>> generate_sku('Pro Book 16"')
    'pro-book-16'
    """
    return _NON_ALNUM.sub("-", name.lower().strip()).strip("-")


def parse_csv_line(line: str) -> List[str]:
    """
    Split one CSV line into trimmed fields.

    Double-quoted fields may contain commas; "" inside quotes is a literal
    quote.

    Raises:
        csv.Error: If a field exceeds the csv module's field size limit
    """
    fields = next(csv.reader([line], skipinitialspace=True), [])
    return [field.strip() for field in fields]


def parse_quantity(raw: str) -> int:
    match = _LEADING_INT.match(raw.strip())
    if not match:
        return 0
    return max(int(match.group()), 0)


def parse_price(raw: str) -> float:
    """
    Parse a price cell, tolerating currency symbols and separators.

    Returns 0.0 when nothing usable is present.
    """
    cleaned = _PRICE_CHARS.sub("", raw)
    if "," in cleaned and "." in cleaned:
        cleaned = cleaned.replace(",", "")
    else:
        cleaned = cleaned.replace(",", ".")
    try:
        return max(float(cleaned), 0.0)
    except ValueError:
        return 0.0


def parse_row(fields: List[str]) -> Optional[AggregatedRow]:
    """
    Map CSV fields onto an AggregatedRow.

    Returns:
        None when the row has too few columns or no name
    """
    if len(fields) < MIN_COLUMNS or not fields[NAME_COL]:
        return None

    identifier = fields[IDENTIFIER_COL]
    if identifier.lower() == NO_IDENTIFIER:
        identifier = ""

    return AggregatedRow(
        name=fields[NAME_COL],
        category=fields[CATEGORY_COL],
        status=fields[STATUS_COL],
        identifier=identifier,
        quantity=parse_quantity(fields[QUANTITY_COL]),
        price=parse_price(fields[PRICE_COL]) if len(fields) > PRICE_COL else 0.0
    )


class CsvAggregator:
    """
    Turns an uploaded inventory export into catalog upserts.

    Rows that normalize to the same SKU are merged into one aggregate:
    available rows add to stock and contribute their serial numbers, the
    last positive price wins, and the first non-empty category sticks.
    """

    def __init__(self, catalog: CatalogStore):
        self.catalog = catalog

    def process_upload(self, raw_text: str) -> int:
        """
        Aggregate a CSV upload and upsert the results into the catalog.

        Args:
            raw_text: Full file contents, header row first

        Returns:
            Number of data rows accepted into an aggregate
        """
        lines = raw_text.splitlines()
        aggregates: Dict[str, Product] = {}
        processed = 0

        for line in lines[1:]:
            if not line.strip():
                continue

            try:
                fields = parse_csv_line(line)
            except csv.Error as e:
                logger.debug("Skipping unreadable row (%s): %.80r", e, line)
                continue

            row = parse_row(fields)
            if row is None:
                logger.debug("Skipping malformed row: %r", line)
                continue

            sku = generate_sku(row.name)
            if not sku:
                logger.debug("Skipping row without usable name: %r", line)
                continue

            self._aggregate(aggregates, sku, row)
            processed += 1

        for product in aggregates.values():
            self.catalog.upsert(product)

        logger.info(
            "Processed %d rows into %d products from CSV upload",
            processed, len(aggregates)
        )
        return processed

    def process_file(self, path: str) -> int:
        """Read a CSV file from disk and process it."""
        text = Path(path).read_text(encoding="utf-8-sig")
        return self.process_upload(text)

    def _aggregate(self, aggregates: Dict[str, Product], sku: str, row: AggregatedRow) -> None:
        product = aggregates.get(sku)
        if product is None:
            product = Product(
                sku=sku,
                name=row.name,
                description=f"{row.category} - {row.name}",
                category=row.category,
                price=row.price,
                stock_quantity=0,
                image_url=f"https://picsum.photos/seed/{sku}/400/400"
            )
            aggregates[sku] = product

        if row.is_available:
            product.stock_quantity += row.quantity
            if row.identifier:
                product.serial_numbers.append(row.identifier)

        if row.price > 0:
            product.price = row.price

        if row.category and not product.category:
            product.category = row.category
