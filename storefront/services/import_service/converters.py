"""Row conversion: one CSV row -> one product create command.

The price and color heuristics are kept as small named functions so they can
be tested and revisited on their own.
"""

import asyncio
import json
import logging
import re
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import TYPE_CHECKING

from storefront.schemas.import_schemas import (
    CanonicalRecord,
    ExchangeRateTable,
    FieldMap,
    ImageRef,
    LocationStock,
    PriceQuote,
    ProductCreateCommand,
    ProductStatus,
    RawRow,
    ResolvedReferences,
    VariantCommand,
)

from .mapping import extract_metadata
from .resolver import split_category_names

if TYPE_CHECKING:
    from storefront.services.image_rehost import ImageRehostService

logger = logging.getLogger(__name__)

# Amounts above this that divide evenly by 100 are assumed to be cents
CENTS_THRESHOLD = Decimal("10000")
TWO_PLACES = Decimal("0.01")

_IMAGE_SPLIT = re.compile(r"[|,]")
_SLUG_STRIP = re.compile(r"[^a-z0-9]+")


@dataclass(frozen=True)
class RowContext:
    """Per-import lookups shared read-only by every row."""

    headers: list[str]
    field_map: FieldMap
    refs: ResolvedReferences
    rates: ExchangeRateTable
    default_location_id: str
    location_ids: frozenset[str] = field(default_factory=frozenset)
    default_sales_channel_id: str | None = None
    sales_channel_ids: frozenset[str] = field(default_factory=frozenset)


def derive_color_code(title: str) -> str | None:
    """Color code heuristic: the third whitespace-separated word of the title."""
    words = title.split()
    if len(words) >= 3:
        return words[2]
    return None


def slugify(text: str) -> str:
    return _SLUG_STRIP.sub("-", text.lower()).strip("-")


def parse_image_urls(value: str) -> list[str]:
    """Parse an images cell: a JSON array, or URLs separated by pipes or commas."""
    value = value.strip()
    if not value:
        return []
    if value.startswith("["):
        try:
            parsed = json.loads(value)
        except json.JSONDecodeError:
            parsed = None
        if isinstance(parsed, list):
            return [str(item).strip() for item in parsed if str(item).strip()]
    return [url.strip() for url in _IMAGE_SPLIT.split(value) if url.strip()]


def parse_price(value: str) -> Decimal | None:
    """Parse a dollar amount. Currency symbols and thousands separators are ignored."""
    cleaned = value.replace("$", "").replace(",", "").replace(" ", "").strip()
    if not cleaned:
        return None
    try:
        amount = Decimal(cleaned)
    except InvalidOperation:
        logger.warning("Ignoring unparseable price %r", value)
        return None
    if not amount.is_finite() or amount < 0:
        logger.warning("Ignoring invalid price %r", value)
        return None
    return amount


def normalize_cents(amount: Decimal) -> tuple[Decimal, bool]:
    """Cents heuristic: treat large whole-hundred amounts as cents.

    Returns:
        Tuple of (amount in dollars, whether it was divided).
    """
    if amount > CENTS_THRESHOLD and amount % 100 == 0:
        return amount / 100, True
    return amount, False


def fan_out_prices(
    anchor_usd: Decimal | None,
    rates: ExchangeRateTable,
    currencies: list[str],
) -> list[PriceQuote]:
    """One price per store currency from a single USD anchor, rounded to cents.

    Currencies missing from the rate table, and converted amounts <= 0, are
    left out.
    """
    if anchor_usd is None or anchor_usd <= 0:
        return []
    quotes: list[PriceQuote] = []
    for code in currencies:
        rate = rates.rate_for(code)
        if rate is None:
            logger.debug("No exchange rate for %s, skipping price", code)
            continue
        amount = (anchor_usd * Decimal(str(rate))).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)
        if amount <= 0:
            continue
        quotes.append(PriceQuote(currency_code=code.lower(), amount=amount))
    return quotes


def parse_stock(value: str) -> int:
    if not value:
        return 0
    try:
        return max(int(float(value)), 0)
    except (ValueError, OverflowError):
        return 0


def parse_status(field_map: FieldMap, cells: list[str]) -> ProductStatus:
    """The published flag wins; the legacy status column is only a fallback."""
    published = field_map.value(cells, "published")
    if published:
        return ProductStatus.PUBLISHED if published == "1" else ProductStatus.DRAFT
    legacy = field_map.value(cells, "status").lower()
    if legacy == ProductStatus.PUBLISHED.value:
        return ProductStatus.PUBLISHED
    return ProductStatus.DRAFT


class RowProcessor:
    """Turns validated CSV rows into ProductCreateCommands."""

    def __init__(self, rehost_service: "ImageRehostService", currencies: list[str]) -> None:
        self.rehost_service = rehost_service
        self.currencies = currencies

    def build_record(self, row: RawRow, ctx: RowContext) -> CanonicalRecord | None:
        """Map a raw row onto a CanonicalRecord. Returns None for a blank title."""
        fm = ctx.field_map
        cells = row.cells
        title = fm.value(cells, "title")
        if not title:
            return None

        sale_price = self._price(fm.value(cells, "sales_price"), title)
        regular_price = self._price(fm.value(cells, "regular_price"), title)

        urls = parse_image_urls(fm.value(cells, "images"))
        thumbnail = fm.value(cells, "thumbnail")
        if thumbnail and thumbnail not in urls:
            urls.insert(0, thumbnail)

        return CanonicalRecord(
            title=title,
            handle=fm.value(cells, "handle") or None,
            sku=fm.value(cells, "sku") or None,
            subtitle=fm.value(cells, "subtitle"),
            description=fm.value(cells, "description"),
            status=parse_status(fm, cells),
            size=fm.value(cells, "size"),
            images=[ImageRef(remote_url=url) for url in urls],
            category_names=split_category_names(fm.value(cells, "categories")),
            brand_name=fm.value(cells, "brand") or None,
            stock_qty=parse_stock(fm.value(cells, "stock")),
            sale_price=sale_price,
            regular_price=regular_price,
            location_id=fm.value(cells, "location_id") or None,
            sales_channel_id=fm.value(cells, "sales_channel_id") or None,
            metadata=extract_metadata(ctx.headers, cells),
            source_row=row.line,
        )

    def _price(self, value: str, title: str) -> Decimal | None:
        amount = parse_price(value)
        if amount is None:
            return None
        normalized, divided = normalize_cents(amount)
        if divided:
            logger.warning(
                "Price %s for '%s' looks like cents, using %s",
                amount,
                title,
                normalized,
            )
        return normalized

    async def rehost_images(self, images: list[ImageRef]) -> list[ImageRef]:
        """Rehost every image of a row concurrently.

        A failed rehost keeps that image's remote URL, is marked unresolved
        and does not affect the other images.
        """
        if not images:
            return []
        results = await asyncio.gather(
            *(self.rehost_service.store_remote(image.remote_url) for image in images),
            return_exceptions=True,
        )
        enriched: list[ImageRef] = []
        for image, result in zip(images, results):
            if isinstance(result, BaseException) or not result:
                logger.warning("Keeping remote image %s: %s", image.remote_url, result)
                enriched.append(
                    image.model_copy(update={"local_url": image.remote_url, "resolved": False})
                )
            else:
                enriched.append(image.model_copy(update={"local_url": result, "resolved": True}))
        return enriched

    def to_command(self, record: CanonicalRecord, ctx: RowContext) -> ProductCreateCommand:
        """Build the create command for an enriched record."""
        anchor = record.sale_price if record.sale_price and record.sale_price > 0 else record.regular_price
        prices = fan_out_prices(anchor, ctx.rates, self.currencies)

        variant_metadata = dict(record.metadata)
        color_code = derive_color_code(record.title)
        if color_code:
            variant_metadata["color_code"] = color_code
        if record.regular_price is not None:
            variant_metadata["regular_price"] = str(record.regular_price)

        category_ids: list[str] = []
        for name in record.category_names:
            category_id = ctx.refs.category_id(name)
            if category_id and category_id not in category_ids:
                category_ids.append(category_id)

        location_id = ctx.default_location_id
        if record.location_id and record.location_id in ctx.location_ids:
            location_id = record.location_id

        sales_channel_id = ctx.default_sales_channel_id
        if record.sales_channel_id and record.sales_channel_id in ctx.sales_channel_ids:
            sales_channel_id = record.sales_channel_id

        image_urls = [image.url for image in record.images]
        # First image whose rehost did not fail, else the first image as given
        thumbnail = next(
            (image.url for image in record.images if image.resolved),
            image_urls[0] if image_urls else None,
        )

        return ProductCreateCommand(
            title=record.title,
            handle=record.handle or slugify(record.title),
            subtitle=record.subtitle,
            description=record.description,
            status=record.status,
            thumbnail=thumbnail,
            images=image_urls,
            metadata=record.metadata,
            brand_id=ctx.refs.brand_id(record.brand_name),
            category_ids=category_ids,
            sales_channel_id=sales_channel_id,
            variant=VariantCommand(
                title=f"{record.title} - {record.size}" if record.size else record.title,
                sku=record.sku,
                size_option=record.size or "Default",
                prices=prices,
                metadata=variant_metadata,
            ),
            stock=LocationStock(
                location_id=location_id,
                quantity=record.stock_qty,
                sku=record.sku,
            ),
            source_row=record.source_row,
        )

    async def process(self, row: RawRow, ctx: RowContext) -> ProductCreateCommand | None:
        """Convert one row. Returns None when the row has no title."""
        record = self.build_record(row, ctx)
        if record is None:
            return None
        images = await self.rehost_images(record.images)
        record = record.model_copy(update={"images": images})
        return self.to_command(record, ctx)
