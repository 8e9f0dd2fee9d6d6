"""Batch orchestration for product imports."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

from storefront.config import settings
from storefront.schemas.catalog import CatalogProduct, VariantRef
from storefront.schemas.import_schemas import (
    ImportOutcome,
    ProductCreateCommand,
    RawRow,
    RowError,
)
from storefront.services.catalog.interfaces import (
    CatalogStore,
    InventoryStore,
    PartialBatchError,
    RelationshipLinker,
)

from .constants import DEFAULT_BATCH_SIZE
from .converters import RowContext, RowProcessor
from .errors import CatalogImportError, RowProcessingError, UnresolvedReferencesError
from .mapping import build_field_map
from .parsers import parse_csv
from .reconcile import Reconciler
from .resolver import resolve_references

if TYPE_CHECKING:
    from storefront.services.exchange_rates import ExchangeRateProvider
    from storefront.services.image_rehost import ImageRehostService

logger = logging.getLogger(__name__)

# (1-based data row number, command)
IndexedCommand = tuple[int, ProductCreateCommand]


class ImportOrchestrator:
    """Runs a whole CSV import: validate, convert rows, create in batches, reconcile."""

    def __init__(
        self,
        catalog: CatalogStore,
        linker: RelationshipLinker,
        inventory: InventoryStore,
        rate_provider: "ExchangeRateProvider",
        rehost_service: "ImageRehostService",
        batch_size: int | None = None,
        row_concurrency: int | None = None,
        reconcile_concurrency: int | None = None,
        consistency_retries: int | None = None,
        consistency_delay_seconds: float | None = None,
        currencies: list[str] | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        cancel_event: asyncio.Event | None = None,
    ) -> None:
        self.catalog = catalog
        self.linker = linker
        self.inventory = inventory
        self.rate_provider = rate_provider
        self.batch_size = batch_size or settings.import_batch_size or DEFAULT_BATCH_SIZE
        self.row_concurrency = row_concurrency or settings.import_row_concurrency
        self.cancel_event = cancel_event
        self.row_processor = RowProcessor(
            rehost_service,
            currencies or settings.store_currencies,
        )
        self.reconciler = Reconciler(
            catalog,
            inventory,
            concurrency=reconcile_concurrency or settings.import_reconcile_concurrency,
            retries=(
                consistency_retries
                if consistency_retries is not None
                else settings.consistency_retries
            ),
            delay_seconds=(
                consistency_delay_seconds
                if consistency_delay_seconds is not None
                else settings.consistency_delay_seconds
            ),
            sleep=sleep,
        )

    async def import_csv(
        self,
        text: str,
        rate_override: dict[str, Any] | None = None,
    ) -> ImportOutcome:
        """Parse CSV text and import every row.

        Raises:
            CatalogImportError: On an empty file, a missing title column,
                unresolved categories/brands, or no sales channel or stock
                location to assign products to. Nothing is written in that case.
        """
        headers, rows = parse_csv(text)
        return await self.import_all(headers, rows, rate_override)

    async def import_all(
        self,
        headers: list[str],
        rows: list[RawRow],
        rate_override: dict[str, Any] | None = None,
    ) -> ImportOutcome:
        """Import already tokenized rows.

        Args:
            headers: Header row.
            rows: Data rows.
            rate_override: Caller-supplied exchange rates, skipping the live fetch.

        Returns:
            ImportOutcome; row-level failures are reported in it, not raised.
        """
        field_map = build_field_map(headers)

        categories = await self.catalog.list_categories()
        brands = await self.catalog.list_brands()
        refs, missing = resolve_references(rows, field_map, categories, brands)
        if missing:
            raise UnresolvedReferencesError(missing)

        channels = await self.catalog.list_sales_channels()
        if not channels:
            raise CatalogImportError(
                "No sales channels found. Create at least one sales channel before importing products."
            )

        locations = await self.catalog.list_stock_locations()
        if not locations:
            raise CatalogImportError("No stock location is configured.")

        rates = await self.rate_provider.get_rates(rate_override)

        outcome = ImportOutcome()
        if rates.source == "fallback":
            outcome.warnings.append("Live exchange rates unavailable, fallback rates were used.")

        ctx = RowContext(
            headers=headers,
            field_map=field_map,
            refs=refs,
            rates=rates,
            default_location_id=locations[0],
            location_ids=frozenset(locations),
            default_sales_channel_id=channels[0],
            sales_channel_ids=frozenset(channels),
        )

        commands = await self._process_rows(rows, ctx, outcome)

        batches = [
            commands[start : start + self.batch_size]
            for start in range(0, len(commands), self.batch_size)
        ]
        for number, batch in enumerate(batches, start=1):
            if self.cancel_event is not None and self.cancel_event.is_set():
                remaining = sum(len(b) for b in batches[number - 1 :])
                logger.info("Import cancelled before batch %d", number)
                outcome.warnings.append(
                    f"Import cancelled, {remaining} products were not submitted."
                )
                break
            await self._run_batch(number, batch, outcome)

        logger.info(
            "Import finished: %d created, %d updated, %d skipped, %d row errors",
            outcome.created_count,
            outcome.updated_count,
            outcome.skipped_count,
            len(outcome.row_errors),
        )
        return outcome

    async def _process_rows(
        self,
        rows: list[RawRow],
        ctx: RowContext,
        outcome: ImportOutcome,
    ) -> list[IndexedCommand]:
        semaphore = asyncio.Semaphore(self.row_concurrency)

        async def run(index: int, row: RawRow) -> ProductCreateCommand | None:
            async with semaphore:
                try:
                    return await self.row_processor.process(row, ctx)
                except Exception as e:
                    raise RowProcessingError(
                        index, ctx.field_map.value(row.cells, "title"), e
                    ) from e

        results = await asyncio.gather(
            *(run(index, row) for index, row in enumerate(rows, start=1)),
            return_exceptions=True,
        )

        commands: list[IndexedCommand] = []
        for index, result in enumerate(results, start=1):
            if isinstance(result, RowProcessingError):
                logger.warning("Import error on %s", result)
                outcome.row_errors.append(
                    RowError(
                        row_index=result.row_index,
                        product_name=result.product_name,
                        error=str(result.cause),
                    )
                )
            elif isinstance(result, BaseException):
                raise result
            elif result is None:
                logger.debug("Skipping row %d without a title", index)
                outcome.skipped_count += 1
            else:
                commands.append((index, result))
        return commands

    async def _run_batch(
        self,
        number: int,
        batch: list[IndexedCommand],
        outcome: ImportOutcome,
    ) -> None:
        skus = [command.variant.sku for _, command in batch if command.variant.sku]
        existing: dict[str, VariantRef] = {}
        if skus:
            try:
                existing = await self.catalog.find_variants_by_sku(skus)
            except Exception as e:
                self._fail_rows(batch, f"SKU lookup failed: {e}", outcome)
                return

        creates = [(i, c) for i, c in batch if not (c.variant.sku and c.variant.sku in existing)]
        updates = [(i, c) for i, c in batch if c.variant.sku and c.variant.sku in existing]

        written: list[tuple[CatalogProduct, ProductCreateCommand]] = []

        if creates:
            try:
                products = await self.catalog.create_batch(
                    [command.without_prices() for _, command in creates]
                )
            except PartialBatchError as e:
                # Products written before the failure stay and are reconciled
                products = e.created
                logger.error(
                    "Batch %d creation stopped after %d of %d products: %s",
                    number,
                    len(products),
                    len(creates),
                    e.cause,
                )
                self._fail_rows(creates[len(products) :], f"product creation failed: {e.cause}", outcome)
            except Exception as e:
                products = []
                logger.error("Batch %d creation failed: %s", number, e)
                self._fail_rows(creates, f"product creation failed: {e}", outcome)
            outcome.created_count += len(products)
            written.extend(zip(products, (command for _, command in creates)))

        if updates:
            try:
                products = await self.catalog.update_products(
                    [(existing[c.variant.sku], c.without_prices()) for _, c in updates]
                )
            except Exception as e:
                logger.error("Batch %d update failed: %s", number, e)
                self._fail_rows(updates, f"product update failed: {e}", outcome)
            else:
                outcome.updated_count += len(products)
                written.extend(zip(products, (command for _, command in updates)))

        for product, command in written:
            if not command.brand_id:
                continue
            try:
                await self.linker.link(product.id, command.brand_id)
            except Exception as e:
                logger.warning("Linking product %s to brand %s failed: %s", product.id, command.brand_id, e)

        await self.reconciler.reconcile_batch(written, outcome.warnings)

        logger.info(
            "Batch %d done: %d created, %d updated",
            number,
            len(creates),
            len(updates),
        )

    def _fail_rows(self, batch: list[IndexedCommand], message: str, outcome: ImportOutcome) -> None:
        for index, command in batch:
            outcome.row_errors.append(
                RowError(row_index=index, product_name=command.title, error=message)
            )
