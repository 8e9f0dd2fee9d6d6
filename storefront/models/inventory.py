"""Stock locations, inventory items and per-location stock levels."""

from datetime import datetime, timezone
from typing import Optional

from beanie import Document, Indexed
from pydantic import Field


class StockLocation(Document):
    """A warehouse or store holding stock."""

    name: str
    is_default: bool = False
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    class Settings:
        name = "stock_locations"


class InventoryItem(Document):
    """Stock-keeping unit tracked for one product variant."""

    variant_id: Indexed(str)
    sku: Optional[Indexed(str)] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    class Settings:
        name = "inventory_items"
        indexes = ["variant_id", "sku"]


class InventoryLevel(Document):
    """Stocked quantity of an inventory item at a location."""

    location_id: Indexed(str)
    inventory_item_id: Indexed(str)
    stocked_quantity: int = Field(default=0, ge=0)
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    class Settings:
        name = "inventory_levels"
        indexes = [
            "location_id",
            "inventory_item_id",
            [("location_id", 1), ("inventory_item_id", 1)],
        ]
