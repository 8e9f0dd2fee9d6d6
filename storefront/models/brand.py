"""Brand document and its product links."""

from datetime import datetime, timezone
from typing import Optional

from beanie import Document, Indexed
from pydantic import Field


class Brand(Document):
    """Brand reference data, matched by name (or slug) during import."""

    name: Indexed(str)
    slug: Optional[Indexed(str)] = None

    class Settings:
        name = "brands"
        indexes = ["name", "slug"]

    def __repr__(self) -> str:
        return f"<Brand(id={self.id}, name={self.name})>"


class ProductBrandLink(Document):
    """Link between a product and its brand."""

    product_id: Indexed(str)
    brand_id: Indexed(str)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    class Settings:
        name = "product_brand_links"
        indexes = [
            "product_id",
            "brand_id",
            [("product_id", 1), ("brand_id", 1)],
        ]
