"""Pydantic schemas for the bulk product import pipeline."""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ProductStatus(str, Enum):
    """Publication status of an imported product."""

    DRAFT = "draft"
    PUBLISHED = "published"


class RawRow(BaseModel):
    """One tokenized CSV record."""

    cells: list[str]
    line: int  # 1-based source line where the record ends


class FieldMap(BaseModel):
    """Canonical field name -> source column index."""

    columns: dict[str, int] = Field(default_factory=dict)

    def index(self, field: str) -> int | None:
        return self.columns.get(field)

    def has(self, field: str) -> bool:
        return field in self.columns

    def value(self, cells: list[str], field: str) -> str:
        """Return the trimmed cell for a canonical field, or "" when unmapped."""
        idx = self.columns.get(field)
        if idx is None or idx >= len(cells):
            return ""
        return cells[idx].strip()


class ImageRef(BaseModel):
    """A product image before and after rehosting."""

    remote_url: str
    local_url: str | None = None
    # False until a rehost attempt completes without error
    resolved: bool = False

    @property
    def url(self) -> str:
        return self.local_url or self.remote_url


class ExchangeRateTable(BaseModel):
    """USD-based multiplier table.

    ``rates["USD"]`` is always 1.0, whatever the source said.
    """

    base: Literal["USD"] = "USD"
    rates: dict[str, float]
    fetched_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    ttl_seconds: int = 3600
    source: Literal["live", "override", "fallback"] = "live"

    @model_validator(mode="after")
    def _anchor_usd(self) -> "ExchangeRateTable":
        self.rates = {code.upper(): rate for code, rate in self.rates.items()}
        self.rates["USD"] = 1.0
        return self

    def rate_for(self, currency_code: str) -> float | None:
        return self.rates.get(currency_code.upper())


class PriceQuote(BaseModel):
    """Price of one variant in one store currency."""

    currency_code: str
    amount: Decimal


class ResolvedReferences(BaseModel):
    """Lower-cased category/brand name -> catalog id, built once per import."""

    model_config = ConfigDict(frozen=True)

    category_ids: dict[str, str] = Field(default_factory=dict)
    brand_ids: dict[str, str] = Field(default_factory=dict)

    def category_id(self, name: str) -> str | None:
        return self.category_ids.get(name.strip().lower())

    def brand_id(self, name: str | None) -> str | None:
        if not name:
            return None
        return self.brand_ids.get(name.strip().lower())


class MissingReferences(BaseModel):
    """Every category and brand name that could not be resolved."""

    categories: list[str] = Field(default_factory=list)
    brands: list[str] = Field(default_factory=list)

    def __bool__(self) -> bool:
        return bool(self.categories or self.brands)


class CanonicalRecord(BaseModel):
    """Normalized representation of one CSV row."""

    title: str
    handle: str | None = None
    sku: str | None = None
    subtitle: str = ""
    description: str = ""
    status: ProductStatus = ProductStatus.DRAFT
    size: str = ""
    images: list[ImageRef] = Field(default_factory=list)
    category_names: list[str] = Field(default_factory=list)
    brand_name: str | None = None
    stock_qty: int = 0
    sale_price: Decimal | None = None
    regular_price: Decimal | None = None
    location_id: str | None = None
    sales_channel_id: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    source_row: int


class VariantCommand(BaseModel):
    """The single variant created for each imported product."""

    title: str
    sku: str | None = None
    size_option: str = ""
    prices: list[PriceQuote] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)


class LocationStock(BaseModel):
    """Target stocked quantity for a variant at a stock location."""

    location_id: str
    quantity: int = 0
    sku: str | None = None


class ProductCreateCommand(BaseModel):
    """Everything needed to create (or upsert) one product."""

    title: str
    handle: str | None = None
    subtitle: str = ""
    description: str = ""
    status: ProductStatus = ProductStatus.DRAFT
    thumbnail: str | None = None
    images: list[str] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)
    brand_id: str | None = None
    category_ids: list[str] = Field(default_factory=list)
    sales_channel_id: str | None = None
    variant: VariantCommand
    stock: LocationStock
    source_row: int

    def without_prices(self) -> "ProductCreateCommand":
        """Copy of this command whose variant carries no prices."""
        variant = self.variant.model_copy(update={"prices": []})
        return self.model_copy(update={"variant": variant})


class RowError(BaseModel):
    """A recoverable failure while processing a single row."""

    row_index: int
    product_name: str = ""
    error: str


class ImportOutcome(BaseModel):
    """Result of a bulk import."""

    created_count: int = 0
    updated_count: int = 0
    skipped_count: int = 0
    row_errors: list[RowError] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    @property
    def status(self) -> Literal["success", "partial"]:
        return "partial" if self.row_errors else "success"


# =============================================================================
# API request/response schemas
# =============================================================================


class ImportRequest(BaseModel):
    """Body of the product import endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    csv: str | None = None
    file: str | None = None
    filename: str | None = None
    # Non-numeric or non-positive rates are dropped by the rate provider
    exchange_rates: dict[str, Any] | None = Field(default=None, alias="exchangeRates")

    @property
    def content(self) -> str | None:
        return self.csv or self.file


class ImportResultResponse(BaseModel):
    """Response after processing a product import."""

    success: bool
    status: str
    created: int
    updated: int
    skipped: int
    row_errors: list[RowError]
    warnings: list[str]

    @staticmethod
    def from_outcome(outcome: ImportOutcome) -> "ImportResultResponse":
        return ImportResultResponse(
            success=True,
            status=outcome.status,
            created=outcome.created_count,
            updated=outcome.updated_count,
            skipped=outcome.skipped_count,
            row_errors=outcome.row_errors,
            warnings=outcome.warnings,
        )
