"""Product document model with embedded variants and prices."""

import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from beanie import Document, Indexed
from pydantic import BaseModel, Field


class Price(BaseModel):
    """Embedded subdocument for one currency price of a variant."""

    currency_code: str  # lower-case ISO code, e.g. 'usd'
    amount: float


class ProductVariant(BaseModel):
    """Embedded subdocument for a sellable variant."""

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    title: str
    sku: Optional[str] = None
    size_option: str = ""
    prices: list[Price] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)
    inventory_item_id: Optional[str] = None


class Product(Document):
    """Product document model representing one catalog entry."""

    title: Indexed(str)
    handle: Optional[Indexed(str)] = None
    subtitle: str = ""
    description: str = ""
    status: str = "draft"  # 'draft' or 'published'
    thumbnail: Optional[str] = None
    images: list[str] = Field(default_factory=list)

    # Arbitrary SEO/marketplace/delivery columns from the CSV
    metadata: dict[str, Any] = Field(default_factory=dict)

    category_ids: list[str] = Field(default_factory=list)
    sales_channel_ids: list[str] = Field(default_factory=list)
    variants: list[ProductVariant] = Field(default_factory=list)

    # Timestamps
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    class Settings:
        name = "products"
        indexes = [
            "title",
            "handle",
            "status",
            "variants.sku",
            "variants.id",
            "sales_channel_ids",
            "created_at",
        ]

    def __repr__(self) -> str:
        return f"<Product(id={self.id}, title={self.title})>"
