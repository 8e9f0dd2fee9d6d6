"""MongoDB document models for the storefront catalog."""

from storefront.models.brand import Brand, ProductBrandLink
from storefront.models.category import Category
from storefront.models.inventory import InventoryItem, InventoryLevel, StockLocation
from storefront.models.product import Price, Product, ProductVariant
from storefront.models.sales_channel import SalesChannel

__all__ = [
    # Main documents
    "Product",
    # Embedded subdocuments
    "ProductVariant",
    "Price",
    # Reference data documents
    "Brand",
    "Category",
    "SalesChannel",
    "StockLocation",
    # Links and inventory
    "ProductBrandLink",
    "InventoryItem",
    "InventoryLevel",
]
