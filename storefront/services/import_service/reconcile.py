"""Post-creation reconciliation of inventory levels and prices.

Each created product walks CREATED -> INVENTORY_LINKED -> PRICE_VERIFIED.
Any failed step moves it to FAILED with a reason; nothing is rolled back.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import TypeVar

from storefront.schemas.catalog import (
    CatalogProduct,
    InventoryLevelCreate,
    VariantPrices,
)
from storefront.schemas.import_schemas import ProductCreateCommand
from storefront.services.catalog.interfaces import CatalogStore, InventoryStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

TWO_PLACES = Decimal("0.01")


class ReconcileState(str, Enum):
    """Reconciliation progress of one created product."""

    CREATED = "created"
    INVENTORY_LINKED = "inventory_linked"
    PRICE_VERIFIED = "price_verified"
    FAILED = "failed"


@dataclass
class ProductReconciliation:
    """Tracks one product through reconciliation."""

    product: CatalogProduct
    command: ProductCreateCommand
    state: ReconcileState = ReconcileState.CREATED
    reasons: list[str] = field(default_factory=list)

    @property
    def reason(self) -> str | None:
        return self.reasons[0] if self.reasons else None

    def advance(self, state: ReconcileState) -> None:
        if self.state is not ReconcileState.FAILED:
            self.state = state

    def fail(self, reason: str) -> None:
        self.state = ReconcileState.FAILED
        self.reasons.append(reason)


async def await_consistency(
    lookup: Callable[[], Awaitable[T | None]],
    retries: int = 3,
    delay_seconds: float = 1.0,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T | None:
    """Wait for eventually-consistent downstream data to show up.

    Calls ``lookup`` until it returns something other than None, sleeping
    ``delay_seconds * 2**attempt`` between attempts.

    Args:
        lookup: Coroutine factory performing one lookup.
        retries: Extra attempts after the first one.
        delay_seconds: Base delay for the exponential backoff.
        sleep: Sleep function, replaceable with a fake clock in tests.

    Returns:
        The first non-None lookup result, or None once retries are exhausted.
    """
    for attempt in range(retries + 1):
        result = await lookup()
        if result is not None:
            return result
        if attempt < retries:
            await sleep(delay_seconds * (2**attempt))
    return None


class Reconciler:
    """Brings inventory and prices in line with what the import asked for."""

    def __init__(
        self,
        catalog: CatalogStore,
        inventory: InventoryStore,
        concurrency: int = 10,
        retries: int = 3,
        delay_seconds: float = 1.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.catalog = catalog
        self.inventory = inventory
        self.concurrency = concurrency
        self.retries = retries
        self.delay_seconds = delay_seconds
        self.sleep = sleep

    async def reconcile_batch(
        self,
        created: list[tuple[CatalogProduct, ProductCreateCommand]],
        warnings: list[str],
    ) -> list[ProductReconciliation]:
        """Reconcile every product of a batch.

        Inventory is settled for the whole batch before any price is touched.
        Failures are appended to ``warnings``.
        """
        items = [ProductReconciliation(product=p, command=c) for p, c in created]
        if not items:
            return items

        semaphore = asyncio.Semaphore(self.concurrency)

        async def bounded(coro_factory, item):
            async with semaphore:
                return await coro_factory(item)

        queued = await asyncio.gather(*(bounded(self._link_inventory, item) for item in items))
        await self._create_queued_levels(items, queued)

        await asyncio.gather(*(bounded(self._reconcile_prices, item) for item in items))

        for item in items:
            for reason in item.reasons:
                warnings.append(f"{item.product.title}: {reason}")
        return items

    # -------------------------------------------------------------------------
    # Inventory
    # -------------------------------------------------------------------------

    async def _find_inventory_item(self, item: ProductReconciliation) -> str | None:
        variant = item.product.first_variant
        if variant is None:
            return None
        if variant.inventory_item_id:
            return variant.inventory_item_id
        item_id = await self.inventory.find_inventory_item_for_variant(variant.id)
        if item_id:
            return item_id
        sku = variant.sku or item.command.variant.sku
        if sku:
            return await self.inventory.find_inventory_item_by_sku(sku)
        return None

    async def _link_inventory(self, item: ProductReconciliation) -> InventoryLevelCreate | None:
        """Update the stock level in place, or return a level to create."""
        if item.product.first_variant is None:
            item.fail("product has no variant")
            return None

        stock = item.command.stock
        try:
            item_id = await await_consistency(
                lambda: self._find_inventory_item(item),
                retries=self.retries,
                delay_seconds=self.delay_seconds,
                sleep=self.sleep,
            )
            if item_id is None:
                item.fail("inventory item not found")
                return None

            level = await self.inventory.query_level(stock.location_id, item_id)
            if level is not None:
                await self.inventory.update_level(level.id, stock.quantity)
                item.advance(ReconcileState.INVENTORY_LINKED)
                return None
        except Exception as e:
            logger.warning("Inventory reconciliation failed for %s: %s", item.product.id, e)
            item.fail(f"inventory update failed: {e}")
            return None

        return InventoryLevelCreate(
            location_id=stock.location_id,
            inventory_item_id=item_id,
            stocked_quantity=stock.quantity,
        )

    async def _create_queued_levels(
        self,
        items: list[ProductReconciliation],
        queued: list[InventoryLevelCreate | None],
    ) -> None:
        levels: dict[tuple[str, str], InventoryLevelCreate] = {}
        owners: list[ProductReconciliation] = []
        for item, level in zip(items, queued):
            if level is None:
                continue
            owners.append(item)
            key = (level.location_id, level.inventory_item_id)
            if key in levels:
                logger.debug("Duplicate inventory level %s:%s in batch", *key)
                continue
            levels[key] = level

        if not levels:
            return

        try:
            await self.inventory.create_levels(list(levels.values()))
        except Exception as e:
            logger.warning("Creating %d inventory levels failed: %s", len(levels), e)
            for item in owners:
                item.fail(f"inventory level creation failed: {e}")
            return

        for item in owners:
            item.advance(ReconcileState.INVENTORY_LINKED)

    # -------------------------------------------------------------------------
    # Prices
    # -------------------------------------------------------------------------

    async def _reconcile_prices(self, item: ProductReconciliation) -> None:
        """Apply the variant prices, then read them back and compare.

        Runs after an inventory failure too: prices do not depend on stock.
        """
        variant = item.product.first_variant
        if variant is None:
            return

        expected = [VariantPrices(variant_id=variant.id, prices=item.command.variant.prices)]
        if not item.command.variant.prices:
            item.advance(ReconcileState.PRICE_VERIFIED)
            return

        try:
            await self.catalog.update_variant_prices(item.product.id, expected)
        except Exception as e:
            logger.warning(
                "Price update failed for product %s, retrying per variant: %s",
                item.product.id,
                e,
            )
            applied: list[VariantPrices] = []
            for variant_prices in expected:
                try:
                    await self.catalog.update_variant_prices(item.product.id, [variant_prices])
                    applied.append(variant_prices)
                except Exception as variant_error:
                    item.fail(
                        f"price update failed for variant {variant_prices.variant_id}: "
                        f"{variant_error}"
                    )
            if not applied:
                return
            expected = applied

        try:
            mismatches = await self._verify_prices(item.product.id, expected)
        except Exception as e:
            item.fail(f"price verification failed: {e}")
            return

        if mismatches:
            item.fail("price mismatch: " + ", ".join(mismatches))
            return
        item.advance(ReconcileState.PRICE_VERIFIED)

    async def _verify_prices(self, product_id: str, expected: list[VariantPrices]) -> list[str]:
        product = await self.catalog.get_product(product_id)
        if product is None:
            return ["product not found"]

        stored_by_variant = {variant.id: variant for variant in product.variants}
        mismatches: list[str] = []
        for variant_prices in expected:
            variant = stored_by_variant.get(variant_prices.variant_id)
            stored = {}
            if variant is not None:
                stored = {p.currency_code.lower(): p.amount for p in variant.prices}
            for quote in variant_prices.prices:
                amount = stored.get(quote.currency_code.lower())
                if amount is None or Decimal(amount).quantize(TWO_PLACES) != quote.amount.quantize(
                    TWO_PLACES
                ):
                    mismatches.append(f"{quote.currency_code} expected {quote.amount} got {amount}")
        return mismatches
