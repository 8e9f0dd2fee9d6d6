"""Read/write views exchanged with the catalog, inventory and blob collaborators."""

from typing import Any

from pydantic import BaseModel, Field

from storefront.schemas.import_schemas import PriceQuote


class BrandRef(BaseModel):
    id: str
    name: str
    slug: str | None = None


class CategoryRef(BaseModel):
    id: str
    name: str


class VariantRef(BaseModel):
    """Location of an existing variant found by SKU."""

    product_id: str
    variant_id: str


class CatalogVariant(BaseModel):
    id: str
    title: str = ""
    sku: str | None = None
    prices: list[PriceQuote] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)
    # Populated once the downstream variant -> inventory item link exists
    inventory_item_id: str | None = None


class CatalogProduct(BaseModel):
    id: str
    title: str
    handle: str | None = None
    description: str = ""
    subtitle: str = ""
    status: str = "draft"
    thumbnail: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    images: list[str] = Field(default_factory=list)
    category_names: list[str] = Field(default_factory=list)
    sales_channel_ids: list[str] = Field(default_factory=list)
    variants: list[CatalogVariant] = Field(default_factory=list)

    @property
    def first_variant(self) -> CatalogVariant | None:
        return self.variants[0] if self.variants else None


class VariantPrices(BaseModel):
    variant_id: str
    prices: list[PriceQuote]


class InventoryLevelRef(BaseModel):
    id: str
    location_id: str
    inventory_item_id: str
    stocked_quantity: int = 0


class InventoryLevelCreate(BaseModel):
    location_id: str
    inventory_item_id: str
    stocked_quantity: int = 0


class BrandProducts(BaseModel):
    """A brand together with the ids of every product linked to it."""

    brand_name: str
    product_ids: list[str] = Field(default_factory=list)
