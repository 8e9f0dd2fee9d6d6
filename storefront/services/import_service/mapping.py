"""Column mapping and metadata extraction for product imports."""

import json
import logging
from typing import Any

from storefront.schemas.import_schemas import FieldMap

from .constants import (
    HEADER_ALIASES,
    LIST_METADATA_FIELDS,
    LIST_METADATA_MARKERS,
    OBJECT_METADATA_FIELDS,
    SKIP_METADATA_FIELDS,
)
from .errors import MissingColumnError

logger = logging.getLogger(__name__)


def _normalize(header: str) -> str:
    return header.strip().lower()


def build_field_map(headers: list[str]) -> FieldMap:
    """Map canonical field names to column indexes.

    Matching is case-insensitive and alias-tolerant. The first column that
    maps to a field wins.

    Args:
        headers: Header row from the CSV.

    Returns:
        FieldMap for the file.

    Raises:
        MissingColumnError: If no column maps to the product title.
    """
    columns: dict[str, int] = {}
    for index, header in enumerate(headers):
        field = HEADER_ALIASES.get(_normalize(header))
        if field and field not in columns:
            columns[field] = index

    if "title" not in columns:
        raise MissingColumnError("name")

    return FieldMap(columns=columns)


def _is_list_field(normalized: str) -> bool:
    if normalized in LIST_METADATA_FIELDS:
        return True
    return any(marker in normalized for marker in LIST_METADATA_MARKERS)


def parse_metadata_value(header: str, value: str) -> Any:
    """Coerce an extension column value according to its header.

    Keyphrase/synonym lists, robots_advanced and faq_schema are parsed as
    JSON, falling back to a comma-split list. product_schema is parsed as JSON,
    falling back to the raw string. Everything else stays a string.
    """
    normalized = _normalize(header)
    if _is_list_field(normalized):
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            return [part.strip() for part in value.split(",") if part.strip()]
    if normalized in OBJECT_METADATA_FIELDS:
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            logger.debug("Column '%s' is not valid JSON, keeping raw text", header)
            return value
    return value


def metadata_headers(headers: list[str]) -> list[tuple[int, str]]:
    """Columns that feed the metadata bag, as (index, stripped header)."""
    return [
        (index, header.strip())
        for index, header in enumerate(headers)
        if header.strip() and _normalize(header) not in SKIP_METADATA_FIELDS
    ]


def extract_metadata(headers: list[str], cells: list[str]) -> dict[str, Any]:
    """Collect every extension column of a row into a metadata dict.

    Keys are the original header text; blank values are omitted.
    """
    metadata: dict[str, Any] = {}
    for index, header in metadata_headers(headers):
        value = cells[index].strip() if index < len(cells) else ""
        if not value:
            continue
        metadata[header] = parse_metadata_value(header, value)
    return metadata
