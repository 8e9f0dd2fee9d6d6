"""Exceptions raised by the product import pipeline."""

from storefront.schemas.import_schemas import MissingReferences


class CatalogImportError(Exception):
    """Base class for fatal, whole-import failures."""

    pass


class EmptyCsvError(CatalogImportError, ValueError):
    """Raised when the CSV has no header row."""

    pass


class MissingColumnError(CatalogImportError):
    """Raised when a required column is absent from the header row."""

    def __init__(self, column: str) -> None:
        self.column = column
        super().__init__(f"CSV must include a '{column}' column.")


class UnresolvedReferencesError(CatalogImportError):
    """Raised when categories or brands named in the CSV do not exist.

    Carries the complete list of missing names, not just the first one.
    """

    def __init__(self, missing: MissingReferences) -> None:
        self.missing = missing
        parts = []
        if missing.categories:
            parts.append(f"categories not found: {', '.join(missing.categories)}")
        if missing.brands:
            parts.append(f"brands not found: {', '.join(missing.brands)}")
        super().__init__("Import rejected, " + "; ".join(parts))


class RowProcessingError(Exception):
    """Raised when a single row cannot be turned into a product command."""

    def __init__(self, row_index: int, product_name: str, cause: Exception) -> None:
        self.row_index = row_index
        self.product_name = product_name
        self.cause = cause
        super().__init__(f"Row {row_index}: {cause}")
