"""Export service for generating re-importable product CSVs."""

import csv
import io
import json
import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from storefront.schemas.catalog import CatalogProduct, InventoryLevelRef
from storefront.services.catalog.interfaces import CatalogStore, InventoryStore
from storefront.services.import_service.constants import EXPORT_HEADERS

logger = logging.getLogger(__name__)

EXPORT_PAGE_SIZE = 200

# Columns emitted from dedicated product fields rather than the metadata bag
_COMPUTED_COLUMNS = {
    "id",
    "product_id",
    "type",
    "sku",
    "name",
    "subtitle",
    "description",
    "stock",
    "sales_price",
    "regular_price",
    "categories",
    "images",
    "brand",
    "published",
    "handle",
    "sales_channel_id",
    "location_id",
}

# Metadata columns whose list values are written comma-joined instead of as JSON
_COMMA_LIST_COLUMNS = {"region_availability"}


def generate_filename(now: datetime | None = None) -> str:
    """Download filename, e.g. products-export-2024-05-01.csv."""
    now = now or datetime.now(timezone.utc)
    return f"products-export-{now.strftime('%Y-%m-%d')}.csv"


def _format_amount(amount: Decimal | None) -> str:
    if amount is None:
        return ""
    return f"{Decimal(amount):.2f}"


def _metadata_lookup(metadata: dict[str, Any], key: str) -> Any:
    """Case-insensitive metadata lookup."""
    if key in metadata:
        return metadata[key]
    lowered = key.lower()
    for name, value in metadata.items():
        if name.lower() == lowered:
            return value
    return None


def _format_metadata_value(column: str, value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, list) and column in _COMMA_LIST_COLUMNS:
        return ",".join(str(item) for item in value)
    if isinstance(value, (list, dict)):
        return json.dumps(value)
    return str(value)


def product_to_row(
    product: CatalogProduct,
    brand_name: str | None = None,
    inventory: InventoryLevelRef | None = None,
) -> list[str]:
    """Flatten a product into one row in EXPORT_HEADERS order.

    Only the first variant is exported.
    """
    variant = product.first_variant
    variant_metadata = variant.metadata if variant else {}

    usd_price = None
    if variant:
        usd_price = next(
            (price.amount for price in variant.prices if price.currency_code.lower() == "usd"),
            None,
        )

    regular_price = _metadata_lookup(variant_metadata, "regular_price")

    computed = {
        "id": variant.id if variant else "",
        "product_id": product.id,
        "type": "product",
        "sku": (variant.sku or "") if variant else "",
        "name": product.title,
        "subtitle": product.subtitle or "",
        "description": product.description or "",
        "stock": str(inventory.stocked_quantity) if inventory else "0",
        "sales_price": _format_amount(usd_price),
        "regular_price": _format_amount(Decimal(str(regular_price))) if regular_price else "",
        "categories": ",".join(product.category_names),
        "images": ",".join(product.images),
        "brand": brand_name or "",
        "published": "1" if product.status == "published" else "0",
        "handle": product.handle or "",
        "sales_channel_id": product.sales_channel_ids[0] if product.sales_channel_ids else "",
        "location_id": inventory.location_id if inventory else "",
    }

    row: list[str] = []
    for column in EXPORT_HEADERS:
        if column in _COMPUTED_COLUMNS:
            row.append(computed[column])
            continue
        value = _metadata_lookup(product.metadata, column)
        if value is None:
            value = _metadata_lookup(variant_metadata, column)
        row.append(_format_metadata_value(column, value))
    return row


class ExportService:
    """Pages through the catalog and writes products as CSV."""

    def __init__(
        self,
        catalog: CatalogStore,
        inventory: InventoryStore,
        page_size: int = EXPORT_PAGE_SIZE,
    ) -> None:
        self.catalog = catalog
        self.inventory = inventory
        self.page_size = page_size

    async def _brand_names(self) -> dict[str, str]:
        """product id -> brand name, built once per export."""
        names: dict[str, str] = {}
        for brand in await self.catalog.list_brands_with_products():
            for product_id in brand.product_ids:
                names.setdefault(product_id, brand.brand_name)
        return names

    async def _collect(self, limit: int, offset: int) -> list[CatalogProduct]:
        products: list[CatalogProduct] = []
        while len(products) < limit:
            page_size = min(self.page_size, limit - len(products))
            page = await self.catalog.list_products(page_size, offset + len(products))
            products.extend(page)
            if len(page) < page_size:
                break
        return products

    async def export_csv(self, limit: int = 1000, offset: int = 0) -> str:
        """Export up to ``limit`` products starting at ``offset``.

        Returns:
            CSV text with a header row of EXPORT_HEADERS.
        """
        products = await self._collect(limit, offset)
        brand_names = await self._brand_names()

        output = io.StringIO()
        writer = csv.writer(output, quoting=csv.QUOTE_MINIMAL)

        # Write header
        writer.writerow(EXPORT_HEADERS)

        for product in products:
            level = None
            if product.first_variant is not None:
                level = await self.inventory.first_level_for_variant(product.first_variant.id)
            writer.writerow(product_to_row(product, brand_names.get(product.id), level))

        logger.info("Exported %d products (offset %d)", len(products), offset)
        return output.getvalue()

