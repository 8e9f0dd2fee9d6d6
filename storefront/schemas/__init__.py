"""Pydantic schemas for the Storefront API and import pipeline."""

from storefront.schemas.catalog import (
    BrandProducts,
    BrandRef,
    CatalogProduct,
    CatalogVariant,
    CategoryRef,
    InventoryLevelCreate,
    InventoryLevelRef,
    VariantPrices,
    VariantRef,
)
from storefront.schemas.import_schemas import (
    CanonicalRecord,
    ExchangeRateTable,
    FieldMap,
    ImageRef,
    ImportOutcome,
    ImportRequest,
    ImportResultResponse,
    LocationStock,
    MissingReferences,
    PriceQuote,
    ProductCreateCommand,
    ProductStatus,
    RawRow,
    ResolvedReferences,
    RowError,
    VariantCommand,
)

__all__ = [
    # Catalog views
    "BrandProducts",
    "BrandRef",
    "CatalogProduct",
    "CatalogVariant",
    "CategoryRef",
    "InventoryLevelCreate",
    "InventoryLevelRef",
    "VariantPrices",
    "VariantRef",
    # Import pipeline
    "CanonicalRecord",
    "ExchangeRateTable",
    "FieldMap",
    "ImageRef",
    "ImportOutcome",
    "ImportRequest",
    "ImportResultResponse",
    "LocationStock",
    "MissingReferences",
    "PriceQuote",
    "ProductCreateCommand",
    "ProductStatus",
    "RawRow",
    "ResolvedReferences",
    "RowError",
    "VariantCommand",
]
