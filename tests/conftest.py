"""Pytest configuration and in-memory collaborators for storefront tests.

The fakes implement the catalog, inventory and linker protocols with plain
dicts so the pipeline can be exercised without MongoDB.
"""

from contextlib import asynccontextmanager
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from storefront.schemas.catalog import (
    BrandProducts,
    BrandRef,
    CatalogProduct,
    CatalogVariant,
    CategoryRef,
    InventoryLevelCreate,
    InventoryLevelRef,
    VariantPrices,
    VariantRef,
)
from storefront.schemas.import_schemas import ExchangeRateTable, ProductCreateCommand
from storefront.services.catalog import PartialBatchError
from storefront.services.exchange_rates import clean_rates
from storefront.services.import_service import ImportOrchestrator

TEST_RATES = {"USD": 1.0, "EUR": 0.5, "GBP": 0.8, "INR": 80.0}


# =============================================================================
# In-memory collaborators
# =============================================================================


class FakeInventoryStore:
    """Inventory items and levels kept in dicts."""

    def __init__(self) -> None:
        self.items: dict[str, dict[str, str | None]] = {}
        self.levels: dict[str, InventoryLevelRef] = {}
        self.created_level_batches: list[list[InventoryLevelCreate]] = []
        # Variant lookups that return None before the link becomes visible
        self.hidden_lookups = 0
        self.variant_lookups = 0

    def register_item(self, variant_id: str, sku: str | None) -> str:
        item_id = f"iitem_{len(self.items) + 1}"
        self.items[item_id] = {"variant_id": variant_id, "sku": sku}
        return item_id

    async def find_inventory_item_for_variant(self, variant_id: str) -> str | None:
        self.variant_lookups += 1
        if self.hidden_lookups > 0:
            self.hidden_lookups -= 1
            return None
        for item_id, item in self.items.items():
            if item["variant_id"] == variant_id:
                return item_id
        return None

    async def find_inventory_item_by_sku(self, sku: str) -> str | None:
        if self.hidden_lookups > 0:
            return None
        for item_id, item in self.items.items():
            if item["sku"] == sku:
                return item_id
        return None

    async def query_level(self, location_id: str, inventory_item_id: str) -> InventoryLevelRef | None:
        for level in self.levels.values():
            if level.location_id == location_id and level.inventory_item_id == inventory_item_id:
                return level
        return None

    async def update_level(self, level_id: str, stocked_quantity: int) -> None:
        self.levels[level_id] = self.levels[level_id].model_copy(
            update={"stocked_quantity": stocked_quantity}
        )

    async def create_levels(self, levels: list[InventoryLevelCreate]) -> None:
        self.created_level_batches.append(list(levels))
        for level in levels:
            level_id = f"ilev_{len(self.levels) + 1}"
            self.levels[level_id] = InventoryLevelRef(id=level_id, **level.model_dump())

    async def first_level_for_variant(self, variant_id: str) -> InventoryLevelRef | None:
        item_id = await self.find_inventory_item_for_variant(variant_id)
        if item_id is None:
            return None
        for level in self.levels.values():
            if level.inventory_item_id == item_id:
                return level
        return None


class FakeRelationshipLinker:
    """Product -> brand links."""

    def __init__(self) -> None:
        self.links: dict[str, str] = {}
        self.fail_for: set[str] = set()

    async def link(self, product_id: str, brand_id: str) -> None:
        if brand_id in self.fail_for:
            raise RuntimeError("link service unavailable")
        self.links[product_id] = brand_id


class FakeCatalogStore:
    """Products, categories, brands and stock locations kept in memory."""

    def __init__(self, inventory: FakeInventoryStore, linker: FakeRelationshipLinker) -> None:
        self.inventory = inventory
        self.linker = linker
        self.categories = [
            CategoryRef(id="pcat_sun", name="Sunglasses"),
            CategoryRef(id="pcat_opt", name="Optical"),
            CategoryRef(id="pcat_kids", name="Kids"),
        ]
        self.brands = [
            BrandRef(id="brand_rb", name="Ray-Ban", slug="ray-ban"),
            BrandRef(id="brand_ok", name="Oakley", slug="oakley"),
        ]
        self.sales_channels = ["sc_web", "sc_wholesale"]
        self.locations = ["sloc_main", "sloc_backup"]
        self.products: dict[str, CatalogProduct] = {}
        self.submitted: list[ProductCreateCommand] = []
        self.price_calls: list[tuple[str, list[VariantPrices]]] = []
        # Number of upcoming update_variant_prices calls that raise
        self.price_failures = 0
        # Stored amounts are multiplied by this, to simulate a bad write
        self.price_skew = Decimal("1")
        # create_batch raises after creating this many products
        self.fail_after: int | None = None

    def _category_names(self, ids: list[str]) -> list[str]:
        names = {c.id: c.name for c in self.categories}
        return [names[i] for i in ids if i in names]

    def _build(self, product_id: str, variant_id: str, command: ProductCreateCommand) -> CatalogProduct:
        return CatalogProduct(
            id=product_id,
            title=command.title,
            handle=command.handle,
            description=command.description,
            subtitle=command.subtitle,
            status=command.status.value,
            thumbnail=command.thumbnail,
            metadata=command.metadata,
            images=command.images,
            category_names=self._category_names(command.category_ids),
            sales_channel_ids=[command.sales_channel_id] if command.sales_channel_id else [],
            variants=[
                CatalogVariant(
                    id=variant_id,
                    title=command.variant.title,
                    sku=command.variant.sku,
                    prices=command.variant.prices,
                    metadata=command.variant.metadata,
                )
            ],
        )

    async def list_categories(self) -> list[CategoryRef]:
        return list(self.categories)

    async def list_brands(self) -> list[BrandRef]:
        return list(self.brands)

    async def list_sales_channels(self) -> list[str]:
        return list(self.sales_channels)

    async def list_stock_locations(self) -> list[str]:
        return list(self.locations)

    async def find_variants_by_sku(self, skus: list[str]) -> dict[str, VariantRef]:
        found: dict[str, VariantRef] = {}
        for product in self.products.values():
            for variant in product.variants:
                if variant.sku in skus and variant.sku not in found:
                    found[variant.sku] = VariantRef(product_id=product.id, variant_id=variant.id)
        return found

    async def create_batch(self, commands: list[ProductCreateCommand]) -> list[CatalogProduct]:
        created = []
        for command in commands:
            if self.fail_after is not None and len(created) >= self.fail_after:
                error = RuntimeError("catalog write timeout")
                if not created:
                    raise error
                raise PartialBatchError(created, error)
            self.submitted.append(command)
            number = len(self.products) + 1
            product = self._build(f"prod_{number}", f"variant_{number}", command)
            self.products[product.id] = product
            self.inventory.register_item(product.variants[0].id, command.variant.sku)
            created.append(product)
        return created

    async def update_products(
        self, updates: list[tuple[VariantRef, ProductCreateCommand]]
    ) -> list[CatalogProduct]:
        updated = []
        for ref, command in updates:
            self.submitted.append(command)
            existing = self.products[ref.product_id]
            product = self._build(ref.product_id, ref.variant_id, command)
            product.variants[0].prices = existing.variants[0].prices
            self.products[ref.product_id] = product
            updated.append(product)
        return updated

    async def update_variant_prices(self, product_id: str, variant_prices: list[VariantPrices]) -> None:
        self.price_calls.append((product_id, variant_prices))
        if self.price_failures > 0:
            self.price_failures -= 1
            raise RuntimeError("price service timeout")
        product = self.products[product_id]
        for entry in variant_prices:
            for variant in product.variants:
                if variant.id == entry.variant_id:
                    variant.prices = [
                        quote.model_copy(update={"amount": quote.amount * self.price_skew})
                        for quote in entry.prices
                    ]

    async def get_product(self, product_id: str) -> CatalogProduct | None:
        return self.products.get(product_id)

    async def list_products(self, limit: int, offset: int) -> list[CatalogProduct]:
        return list(self.products.values())[offset : offset + limit]

    async def list_brands_with_products(self) -> list[BrandProducts]:
        return [
            BrandProducts(
                brand_name=brand.name,
                product_ids=[pid for pid, bid in self.linker.links.items() if bid == brand.id],
            )
            for brand in self.brands
        ]


class FakeRateProvider:
    """Rate provider returning fixed rates, or the caller's override."""

    def __init__(self, rates: dict[str, float] | None = None, source: str = "live") -> None:
        self.rates = rates or dict(TEST_RATES)
        self.source = source
        self.calls = 0

    async def get_rates(self, override=None) -> ExchangeRateTable:
        self.calls += 1
        if override:
            return ExchangeRateTable(rates=clean_rates(override), source="override")
        return ExchangeRateTable(rates=self.rates, source=self.source)


class FakeRehostService:
    """Rehosts every http(s) URL onto a fake CDN."""

    def __init__(self) -> None:
        self.calls: list[str] = []

    async def rehost(self, url: str, backend_url: str | None = None) -> str:
        try:
            return await self.store_remote(url, backend_url)
        except Exception:
            return url

    async def store_remote(self, url: str, backend_url: str | None = None) -> str:
        self.calls.append(url)
        if not url.startswith("http"):
            return url
        return "https://cdn.test/" + url.rsplit("/", 1)[-1]


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def inventory() -> FakeInventoryStore:
    return FakeInventoryStore()


@pytest.fixture
def linker() -> FakeRelationshipLinker:
    return FakeRelationshipLinker()


@pytest.fixture
def catalog(inventory: FakeInventoryStore, linker: FakeRelationshipLinker) -> FakeCatalogStore:
    return FakeCatalogStore(inventory, linker)


@pytest.fixture
def rate_provider() -> FakeRateProvider:
    return FakeRateProvider()


@pytest.fixture
def rehost_service() -> FakeRehostService:
    return FakeRehostService()


@pytest.fixture
def fake_sleep() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def orchestrator(
    catalog: FakeCatalogStore,
    linker: FakeRelationshipLinker,
    inventory: FakeInventoryStore,
    rate_provider: FakeRateProvider,
    rehost_service: FakeRehostService,
    fake_sleep: AsyncMock,
) -> ImportOrchestrator:
    return ImportOrchestrator(
        catalog=catalog,
        linker=linker,
        inventory=inventory,
        rate_provider=rate_provider,
        rehost_service=rehost_service,
        batch_size=200,
        row_concurrency=4,
        reconcile_concurrency=4,
        consistency_retries=3,
        consistency_delay_seconds=0.5,
        currencies=["usd", "eur", "gbp", "inr"],
        sleep=fake_sleep,
    )


# =============================================================================
# HTTP client
# =============================================================================


def create_test_app():
    """The main app's routes without the database lifespan."""
    from fastapi import FastAPI

    from storefront.main import app as main_app

    @asynccontextmanager
    async def test_lifespan(app: FastAPI):
        yield

    test_app = FastAPI(title="Storefront Test", lifespan=test_lifespan)
    # Copied routes resolve overrides through main_app, so share its dict
    test_app.dependency_overrides = main_app.dependency_overrides
    for route in main_app.routes:
        test_app.routes.append(route)
    return test_app


@pytest_asyncio.fixture
async def client(
    orchestrator: ImportOrchestrator,
    catalog: FakeCatalogStore,
    inventory: FakeInventoryStore,
    rate_provider: FakeRateProvider,
):
    """HTTP client whose pipeline dependencies are the in-memory fakes."""
    from storefront.routers.dependencies import (
        get_export_service,
        get_import_orchestrator,
        get_rate_provider,
    )
    from storefront.services.export_service import ExportService

    app = create_test_app()
    app.dependency_overrides[get_import_orchestrator] = lambda: orchestrator
    app.dependency_overrides[get_export_service] = lambda: ExportService(catalog, inventory)
    app.dependency_overrides[get_rate_provider] = lambda: rate_provider

    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            yield ac
    finally:
        app.dependency_overrides.clear()
