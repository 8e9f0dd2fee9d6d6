"""Sales channels products are published to."""

from datetime import datetime, timezone

from beanie import Document
from pydantic import Field


class SalesChannel(Document):
    """A storefront, marketplace or other channel selling catalog products."""

    name: str
    description: str = ""
    is_default: bool = False
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    class Settings:
        name = "sales_channels"
