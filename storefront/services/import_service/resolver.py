"""Up-front resolution of category and brand names for a whole import.

Every referenced name is checked before any row is processed, and all the
unresolvable ones are reported together.
"""

import re

from storefront.schemas.catalog import BrandRef, CategoryRef
from storefront.schemas.import_schemas import (
    FieldMap,
    MissingReferences,
    RawRow,
    ResolvedReferences,
)

_CATEGORY_SPLIT = re.compile(r"[|,]")


def split_category_names(value: str) -> list[str]:
    """Split a categories cell on commas or pipes."""
    return [name.strip() for name in _CATEGORY_SPLIT.split(value) if name.strip()]


def _add_distinct(seen: dict[str, str], name: str) -> None:
    key = name.lower()
    if key not in seen:
        seen[key] = name


def collect_reference_names(
    rows: list[RawRow],
    field_map: FieldMap,
) -> tuple[dict[str, str], dict[str, str]]:
    """Scan all rows once for distinct category and brand names.

    Rows without a title are ignored since they will be skipped anyway.

    Returns:
        Tuple of (categories, brands), each lower-cased name -> first-seen spelling,
        in first-seen order.
    """
    categories: dict[str, str] = {}
    brands: dict[str, str] = {}
    for row in rows:
        if not field_map.value(row.cells, "title"):
            continue
        for name in split_category_names(field_map.value(row.cells, "categories")):
            _add_distinct(categories, name)
        brand = field_map.value(row.cells, "brand")
        if brand:
            _add_distinct(brands, brand)
    return categories, brands


def _brand_index(brands: list[BrandRef]) -> dict[str, str]:
    index: dict[str, str] = {}
    for brand in brands:
        if brand.slug:
            index.setdefault(brand.slug.strip().lower(), brand.id)
    # Names take precedence over slugs
    for brand in brands:
        index[brand.name.strip().lower()] = brand.id
    return index


def resolve_references(
    rows: list[RawRow],
    field_map: FieldMap,
    categories: list[CategoryRef],
    brands: list[BrandRef],
) -> tuple[ResolvedReferences, MissingReferences]:
    """Resolve every category and brand named in the file.

    Args:
        rows: All data rows of the import.
        field_map: Column mapping for the file.
        categories: Preloaded catalog categories.
        brands: Preloaded catalog brands.

    Returns:
        Tuple of (resolved, missing). ``missing`` is falsy when everything
        resolved, otherwise it lists every unknown name.
    """
    wanted_categories, wanted_brands = collect_reference_names(rows, field_map)

    category_index = {category.name.strip().lower(): category.id for category in categories}
    brand_index = _brand_index(brands)

    category_ids: dict[str, str] = {}
    brand_ids: dict[str, str] = {}
    missing = MissingReferences()

    for key, name in wanted_categories.items():
        if key in category_index:
            category_ids[key] = category_index[key]
        else:
            missing.categories.append(name)

    for key, name in wanted_brands.items():
        if key in brand_index:
            brand_ids[key] = brand_index[key]
        else:
            missing.brands.append(name)

    return ResolvedReferences(category_ids=category_ids, brand_ids=brand_ids), missing
