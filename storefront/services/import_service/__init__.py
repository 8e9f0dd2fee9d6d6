"""Import service package for parsing catalog CSVs and creating products."""

from .constants import (
    CANONICAL_COLUMNS,
    DEFAULT_BATCH_SIZE,
    EXPORT_HEADERS,
    EXTENSION_COLUMNS,
    HEADER_ALIASES,
    MAX_ROWS,
)
from .converters import (
    RowContext,
    RowProcessor,
    derive_color_code,
    fan_out_prices,
    normalize_cents,
    parse_image_urls,
    parse_price,
    parse_status,
    parse_stock,
    slugify,
)
from .errors import (
    CatalogImportError,
    EmptyCsvError,
    MissingColumnError,
    RowProcessingError,
    UnresolvedReferencesError,
)
from .mapping import build_field_map, extract_metadata, parse_metadata_value
from .parsers import decode_csv, parse_csv
from .processor import ImportOrchestrator
from .reconcile import ProductReconciliation, ReconcileState, Reconciler, await_consistency
from .resolver import collect_reference_names, resolve_references, split_category_names

__all__ = [
    # Constants
    "CANONICAL_COLUMNS",
    "DEFAULT_BATCH_SIZE",
    "EXPORT_HEADERS",
    "EXTENSION_COLUMNS",
    "HEADER_ALIASES",
    "MAX_ROWS",
    # Errors
    "CatalogImportError",
    "EmptyCsvError",
    "MissingColumnError",
    "RowProcessingError",
    "UnresolvedReferencesError",
    # Parsers
    "decode_csv",
    "parse_csv",
    # Mapping
    "build_field_map",
    "extract_metadata",
    "parse_metadata_value",
    # Resolver
    "collect_reference_names",
    "resolve_references",
    "split_category_names",
    # Converters
    "RowContext",
    "RowProcessor",
    "derive_color_code",
    "fan_out_prices",
    "normalize_cents",
    "parse_image_urls",
    "parse_price",
    "parse_status",
    "parse_stock",
    "slugify",
    # Processor
    "ImportOrchestrator",
    "ProductReconciliation",
    "ReconcileState",
    "Reconciler",
    "await_consistency",
]
