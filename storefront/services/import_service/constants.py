"""Constants for the product import service."""

# Maximum data rows per import (keeps a single request bounded)
MAX_ROWS = 5000

# Products submitted to the catalog per createBatch call
DEFAULT_BATCH_SIZE = 200

# Header alias table: lowercase alias -> canonical field name
HEADER_ALIASES: dict[str, str] = {
    # title
    "name": "title",
    "title": "title",
    "product name": "title",
    "product_name": "title",
    # handle
    "handle": "handle",
    # sku
    "sku": "sku",
    "item sku": "sku",
    # subtitle / description
    "subtitle": "subtitle",
    "description": "description",
    # publication
    "published": "published",
    "status": "status",
    # inventory
    "stock": "stock",
    "quantity": "stock",
    "qty": "stock",
    "location_id": "location_id",
    "location id": "location_id",
    # channel
    "sales_channel_id": "sales_channel_id",
    "sales channel id": "sales_channel_id",
    # prices
    "sales_price": "sales_price",
    "sale_price": "sales_price",
    "sales price": "sales_price",
    "sale price": "sales_price",
    "regular_price": "regular_price",
    "regular price": "regular_price",
    "price": "regular_price",
    # references
    "categories": "categories",
    "category": "categories",
    "brand": "brand",
    # media
    "images": "images",
    "image": "images",
    "image_urls": "images",
    "thumbnail": "thumbnail",
    # variant option
    "size": "size",
}

# Canonical fields consumed directly by the row processor
CANONICAL_FIELDS = set(HEADER_ALIASES.values())

# Headers never copied into the metadata bag. Everything consumed directly
# plus the identity columns written by the export.
SKIP_METADATA_FIELDS = {
    alias for alias, field in HEADER_ALIASES.items() if field != "size"
} | {"id", "product_id", "type", "variant_id"}

# Metadata fields holding lists: JSON first, comma-split fallback
LIST_METADATA_MARKERS = ("synonyms", "keyphrases")
LIST_METADATA_FIELDS = {"robots_advanced", "faq_schema"}

# Metadata fields holding JSON objects: JSON first, raw string fallback
OBJECT_METADATA_FIELDS = {"product_schema"}

# Import/export column schema, in export order
CANONICAL_COLUMNS = [
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
    "model",
    "gender",
    "rim_style",
    "shape",
    "frame_material",
    "size",
    "lens_width",
    "leng_bridge",
    "arm_length",
    "condition",
    "keywords",
    "age_group",
    "region_availability",
    "published",
]

ESTIMATED_DELIVERY_FIELDS = [
    "days_of_deliery",
    "max_days_of_delivery",
    "days_of_delivery_out_of_stock",
    "max_days_of_delivery_out_of_stock",
    "days_of_delivery_backorders",
    "delivery_note",
    "disebled_days",
]

SEO_FIELDS = [
    "seo_title",
    "meta_description",
    "slug",
    "focus_keyphrase",
    "keyphrase_synonyms",
    "related_keyphrases",
    "canonical_url",
    "robots_index",
    "robots_follow",
    "robots_advanced",
    "breadcrumb_title",
    "schema_type",
    "schema_subtype",
    "article_type",
    "product_schema",
    "faq_schema",
    "og_title",
    "og_description",
    "og_image",
    "twitter_title",
    "twitter_description",
    "twitter_image",
    "cornerstone",
    "seo_score",
    "readability_score",
]

EXTRA_FIELDS = [
    "item_no",
    "condition",
    "lens width",
    "lens bridge",
    "arm length",
    "model",
    "color_code",
    "ean",
    "gender",
    "rim style",
    "shapes",
    "frame_material",
    "size",
    "lens_weight",
    "lens_bridge",
    "arm_length",
    "department",
]

MARKETPLACE_FIELDS = [
    "gtin",
    "mpn",
    "ean",
    "brand",
    "condition",
    "gender",
    "size",
    "size_system",
    "size_type",
    "color",
    "material",
    "pattern",
    "age_group",
    "multipack",
    "is_bundle",
    "availablity_date",
    "adult_content",
    "region_availability",
]

# Product assignment columns; purchase_cost is read from metadata
ASSIGNMENT_COLUMNS = ["sales_channel_id", "location_id", "purchase_cost"]


def unique_columns(columns: list[str]) -> list[str]:
    """Drop repeated column names, compared case-insensitively. First one wins."""
    seen: set[str] = set()
    unique: list[str] = []
    for column in columns:
        key = column.lower()
        if key not in seen:
            seen.add(key)
            unique.append(column)
    return unique


_CANONICAL_KEYS = {column.lower() for column in CANONICAL_COLUMNS}

# Extension columns appended after the canonical ones on export
EXTENSION_COLUMNS = [
    column
    for column in unique_columns(
        [
            "handle",
            *ASSIGNMENT_COLUMNS,
            *SEO_FIELDS,
            *ESTIMATED_DELIVERY_FIELDS,
            *EXTRA_FIELDS,
            *MARKETPLACE_FIELDS,
        ]
    )
    if column.lower() not in _CANONICAL_KEYS
]

EXPORT_HEADERS = [*CANONICAL_COLUMNS, *EXTENSION_COLUMNS]
