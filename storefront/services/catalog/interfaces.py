"""Collaborator interfaces consumed by the import/export pipeline.

The pipeline only ever talks to the catalog, inventory and file storage
through these protocols. ``storefront.services.catalog.mongo`` implements
them on MongoDB; tests use in-memory fakes.
"""

from typing import Protocol

from storefront.schemas.catalog import (
    BrandProducts,
    BrandRef,
    CatalogProduct,
    CategoryRef,
    InventoryLevelCreate,
    InventoryLevelRef,
    VariantPrices,
    VariantRef,
)
from storefront.schemas.import_schemas import ProductCreateCommand


class PartialBatchError(Exception):
    """Raised by CatalogStore.create_batch when it stops partway.

    ``created`` holds the products written before the failure, in command
    order. The remaining commands were not created.
    """

    def __init__(self, created: list[CatalogProduct], cause: Exception) -> None:
        self.created = created
        self.cause = cause
        super().__init__(f"created {len(created)} products before failing: {cause}")


class CatalogStore(Protocol):
    """Products, variants, prices and the reference data they point at."""

    async def list_categories(self) -> list[CategoryRef]: ...

    async def list_brands(self) -> list[BrandRef]: ...

    async def list_sales_channels(self) -> list[str]:
        """Ids of every sales channel, default channel first."""
        ...

    async def list_stock_locations(self) -> list[str]:
        """Ids of every stock location, default location first."""
        ...

    async def find_variants_by_sku(self, skus: list[str]) -> dict[str, VariantRef]: ...

    async def create_batch(self, commands: list[ProductCreateCommand]) -> list[CatalogProduct]:
        """Create products; the result is in command order.

        Raises:
            PartialBatchError: If some products were created before a failure.
        """
        ...

    async def update_products(
        self, updates: list[tuple[VariantRef, ProductCreateCommand]]
    ) -> list[CatalogProduct]:
        """Overwrite existing products; the result is in update order."""
        ...

    async def update_variant_prices(
        self, product_id: str, variant_prices: list[VariantPrices]
    ) -> None: ...

    async def get_product(self, product_id: str) -> CatalogProduct | None: ...

    async def list_products(self, limit: int, offset: int) -> list[CatalogProduct]: ...

    async def list_brands_with_products(self) -> list[BrandProducts]: ...


class RelationshipLinker(Protocol):
    """Product <-> brand links."""

    async def link(self, product_id: str, brand_id: str) -> None: ...


class InventoryStore(Protocol):
    """Inventory items and per-location stock levels."""

    async def find_inventory_item_for_variant(self, variant_id: str) -> str | None: ...

    async def find_inventory_item_by_sku(self, sku: str) -> str | None: ...

    async def query_level(
        self, location_id: str, inventory_item_id: str
    ) -> InventoryLevelRef | None: ...

    async def update_level(self, level_id: str, stocked_quantity: int) -> None: ...

    async def create_levels(self, levels: list[InventoryLevelCreate]) -> None: ...

    async def first_level_for_variant(self, variant_id: str) -> InventoryLevelRef | None: ...


class BlobStorage(Protocol):
    """File storage returning the URL the stored bytes are served from."""

    async def put(self, content: bytes, filename: str, mime_type: str) -> str: ...
