"""Tests for the product CSV export."""

import csv
import io
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from storefront.schemas.catalog import CatalogProduct, CatalogVariant, InventoryLevelRef
from storefront.schemas.import_schemas import PriceQuote
from storefront.services.export_service import (
    ExportService,
    generate_filename,
    product_to_row,
)
from storefront.services.import_service import EXPORT_HEADERS, ImportOrchestrator

from conftest import FakeCatalogStore, FakeInventoryStore

IMPORT_CSV = (
    "name,sku,sales_price,regular_price,categories,brand,images,size,stock,published,model,pattern,department\n"
    '"Aviator, ""Gold"" Edition",RB-1,120,150,Sunglasses|Optical,Ray-Ban,http://img.test/1.jpg,58,4,1,RB3025,striped,optical\n'
    "Holbrook Matte C22,OK-2,90,,Sunglasses,Oakley,http://img.test/2.jpg,,0,0,OO9102,,\n"
    "Kids Round,KD-3,,40,Kids,,,,2,1,,,\n"
)


def read_rows(text: str) -> list[dict[str, str]]:
    return list(csv.DictReader(io.StringIO(text)))


def make_product(**overrides) -> CatalogProduct:
    values = {
        "id": "prod_9",
        "title": "Clubmaster",
        "handle": "clubmaster",
        "status": "published",
        "metadata": {"Gender": "unisex", "region_availability": ["US", "EU"], "faq_schema": [{"q": "a"}]},
        "category_names": ["Sunglasses", "Optical"],
        "images": ["https://cdn.test/a.jpg", "https://cdn.test/b.jpg"],
        "variants": [
            CatalogVariant(
                id="variant_9",
                sku="RB-3016",
                prices=[
                    PriceQuote(currency_code="eur", amount=Decimal("55.00")),
                    PriceQuote(currency_code="usd", amount=Decimal("110")),
                ],
                metadata={"regular_price": "130", "color_code": "W0365"},
            )
        ],
    }
    values.update(overrides)
    return CatalogProduct(**values)


# =============================================================================
# Row Formatting Tests
# =============================================================================


def test_generate_filename() -> None:
    now = datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc)
    assert generate_filename(now) == "products-export-2024-05-01.csv"


def test_product_to_row() -> None:
    """Computed columns come from product fields, the rest from metadata."""
    level = InventoryLevelRef(id="ilev_1", location_id="sloc_main", inventory_item_id="i", stocked_quantity=6)
    product = make_product(
        sales_channel_ids=["sc_web"],
        metadata={
            "Gender": "unisex",
            "region_availability": ["US", "EU"],
            "faq_schema": [{"q": "a"}],
            "purchase_cost": "42.50",
        },
    )
    row = dict(zip(EXPORT_HEADERS, product_to_row(product, "Ray-Ban", level)))

    assert len(row) == len(EXPORT_HEADERS)
    assert row["id"] == "variant_9"
    assert row["product_id"] == "prod_9"
    assert row["type"] == "product"
    assert row["sku"] == "RB-3016"
    assert row["stock"] == "6"
    assert row["sales_price"] == "110.00"
    assert row["regular_price"] == "130.00"
    assert row["categories"] == "Sunglasses,Optical"
    assert row["images"] == "https://cdn.test/a.jpg,https://cdn.test/b.jpg"
    assert row["brand"] == "Ray-Ban"
    assert row["published"] == "1"
    assert row["handle"] == "clubmaster"
    assert row["gender"] == "unisex"
    assert row["region_availability"] == "US,EU"
    assert row["faq_schema"] == '[{"q": "a"}]'
    assert row["color_code"] == "W0365"
    assert row["seo_title"] == ""
    assert row["sales_channel_id"] == "sc_web"
    assert row["location_id"] == "sloc_main"
    assert row["purchase_cost"] == "42.50"


def test_product_to_row_without_variant() -> None:
    row = dict(zip(EXPORT_HEADERS, product_to_row(make_product(variants=[], status="draft"))))

    assert row["id"] == ""
    assert row["sku"] == ""
    assert row["sales_price"] == ""
    assert row["stock"] == "0"
    assert row["published"] == "0"
    assert row["brand"] == ""
    assert row["sales_channel_id"] == ""
    assert row["location_id"] == ""


# =============================================================================
# Export Service Tests
# =============================================================================


@pytest.mark.asyncio
async def test_export_empty_catalog(catalog: FakeCatalogStore, inventory: FakeInventoryStore) -> None:
    text = await ExportService(catalog, inventory).export_csv()

    rows = list(csv.reader(io.StringIO(text)))
    assert rows == [EXPORT_HEADERS]


@pytest.mark.asyncio
async def test_export_after_import(
    orchestrator: ImportOrchestrator,
    catalog: FakeCatalogStore,
    inventory: FakeInventoryStore,
) -> None:
    """Imported products export with stock, USD price and brand."""
    await orchestrator.import_csv(IMPORT_CSV)

    rows = read_rows(await ExportService(catalog, inventory).export_csv())

    assert [row["sku"] for row in rows] == ["RB-1", "OK-2", "KD-3"]
    aviator, holbrook, kids = rows
    assert aviator["name"] == 'Aviator, "Gold" Edition'
    assert aviator["sales_price"] == "120.00"
    assert aviator["regular_price"] == "150.00"
    assert aviator["stock"] == "4"
    assert aviator["brand"] == "Ray-Ban"
    assert aviator["categories"] == "Sunglasses,Optical"
    assert aviator["images"] == "https://cdn.test/1.jpg"
    assert aviator["model"] == "RB3025"
    assert aviator["size"] == "58"
    assert aviator["pattern"] == "striped"
    assert aviator["department"] == "optical"
    assert aviator["sales_channel_id"] == "sc_web"
    assert holbrook["brand"] == "Oakley"
    assert holbrook["published"] == "0"
    assert holbrook["color_code"] == "C22"
    assert kids["sales_price"] == "40.00"
    assert kids["brand"] == ""


@pytest.mark.asyncio
async def test_export_escapes_special_characters(
    orchestrator: ImportOrchestrator,
    catalog: FakeCatalogStore,
    inventory: FakeInventoryStore,
) -> None:
    """Commas, quotes and newlines are quoted so the file parses back."""
    text = (
        "name,sku,description\n"
        '"Round, ""Tortoise""",RT-1,"Line one\nLine two"\n'
    )
    await orchestrator.import_csv(text)

    exported = await ExportService(catalog, inventory).export_csv()

    assert '"Round, ""Tortoise"""' in exported
    row = read_rows(exported)[0]
    assert row["name"] == 'Round, "Tortoise"'
    assert row["description"] == "Line one\nLine two"


@pytest.mark.asyncio
async def test_export_reimports_cleanly(
    orchestrator: ImportOrchestrator,
    catalog: FakeCatalogStore,
    inventory: FakeInventoryStore,
) -> None:
    """An exported file imports back as updates with the same data."""
    await orchestrator.import_csv(IMPORT_CSV)
    before = {p.id: (p.title, p.category_names, p.variants[0].prices) for p in catalog.products.values()}

    exported = await ExportService(catalog, inventory).export_csv()
    outcome = await orchestrator.import_csv(exported)

    assert outcome.created_count == 0
    assert outcome.updated_count == 3
    assert outcome.row_errors == []
    after = {p.id: (p.title, p.category_names, p.variants[0].prices) for p in catalog.products.values()}
    assert after == before
    assert [level.stocked_quantity for level in inventory.levels.values()] == [4, 0, 2]
    assert catalog.products["prod_1"].metadata["pattern"] == "striped"
    assert catalog.products["prod_1"].metadata["department"] == "optical"


@pytest.mark.asyncio
async def test_export_pagination(
    orchestrator: ImportOrchestrator,
    catalog: FakeCatalogStore,
    inventory: FakeInventoryStore,
) -> None:
    """limit/offset select a window; pages are fetched in page_size chunks."""
    lines = [f"Frame {i},SKU-{i}" for i in range(1, 6)]
    await orchestrator.import_csv("name,sku\n" + "\n".join(lines) + "\n")

    service = ExportService(catalog, inventory, page_size=2)
    rows = read_rows(await service.export_csv(limit=3, offset=1))

    assert [row["name"] for row in rows] == ["Frame 2", "Frame 3", "Frame 4"]

    tail = read_rows(await service.export_csv(limit=10, offset=4))
    assert [row["name"] for row in tail] == ["Frame 5"]


def test_export_headers_cover_extension_fields() -> None:
    """Marketplace and lens columns are exported once each, whatever their case."""
    expected = ["pattern", "is_bundle", "department", "lens width", "rim style", "purchase_cost"]
    for column in expected:
        assert column in EXPORT_HEADERS
    lowered = [column.lower() for column in EXPORT_HEADERS]
    assert len(lowered) == len(set(lowered))
