"""MongoDB (Beanie) implementation of the catalog collaborators."""

import logging
from datetime import datetime, timezone
from decimal import Decimal

from beanie import PydanticObjectId

from storefront.models import (
    Brand,
    Category,
    InventoryItem,
    InventoryLevel,
    Price,
    Product,
    ProductBrandLink,
    ProductVariant,
    SalesChannel,
    StockLocation,
)
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
from storefront.schemas.import_schemas import PriceQuote, ProductCreateCommand

from .interfaces import PartialBatchError

logger = logging.getLogger(__name__)


def _to_prices(quotes: list[PriceQuote]) -> list[Price]:
    return [
        Price(currency_code=quote.currency_code.lower(), amount=float(quote.amount))
        for quote in quotes
    ]


def _to_catalog_product(product: Product, category_names: dict[str, str]) -> CatalogProduct:
    return CatalogProduct(
        id=str(product.id),
        title=product.title,
        handle=product.handle,
        description=product.description,
        subtitle=product.subtitle,
        status=product.status,
        thumbnail=product.thumbnail,
        metadata=product.metadata,
        images=product.images,
        category_names=[
            category_names[cid] for cid in product.category_ids if cid in category_names
        ],
        sales_channel_ids=product.sales_channel_ids,
        variants=[
            CatalogVariant(
                id=variant.id,
                title=variant.title,
                sku=variant.sku,
                prices=[
                    PriceQuote(currency_code=price.currency_code, amount=Decimal(str(price.amount)))
                    for price in variant.prices
                ],
                metadata=variant.metadata,
                inventory_item_id=variant.inventory_item_id,
            )
            for variant in product.variants
        ],
    )


async def _category_names() -> dict[str, str]:
    categories = await Category.find_all().to_list()
    return {str(category.id): category.name for category in categories}


async def _ensure_inventory_item(variant: ProductVariant) -> None:
    """Create the inventory item backing a variant if it has none yet."""
    if variant.inventory_item_id:
        return
    item = InventoryItem(variant_id=variant.id, sku=variant.sku)
    await item.insert()
    variant.inventory_item_id = str(item.id)


class MongoCatalogStore:
    """CatalogStore backed by the products, brands and categories collections."""

    async def list_categories(self) -> list[CategoryRef]:
        categories = await Category.find_all().sort(Category.name).to_list()
        return [CategoryRef(id=str(c.id), name=c.name) for c in categories]

    async def list_brands(self) -> list[BrandRef]:
        brands = await Brand.find_all().sort(Brand.name).to_list()
        return [BrandRef(id=str(b.id), name=b.name, slug=b.slug) for b in brands]

    async def list_sales_channels(self) -> list[str]:
        channels = await SalesChannel.find_all().sort(SalesChannel.created_at).to_list()
        channels.sort(key=lambda channel: not channel.is_default)
        return [str(channel.id) for channel in channels]

    async def list_stock_locations(self) -> list[str]:
        locations = await StockLocation.find_all().sort(StockLocation.created_at).to_list()
        # Explicit default first, otherwise the oldest location
        locations.sort(key=lambda location: not location.is_default)
        return [str(location.id) for location in locations]

    async def find_variants_by_sku(self, skus: list[str]) -> dict[str, VariantRef]:
        if not skus:
            return {}
        wanted = set(skus)
        products = await Product.find({"variants.sku": {"$in": list(wanted)}}).to_list()
        found: dict[str, VariantRef] = {}
        for product in products:
            for variant in product.variants:
                if variant.sku in wanted and variant.sku not in found:
                    found[variant.sku] = VariantRef(
                        product_id=str(product.id),
                        variant_id=variant.id,
                    )
        return found

    async def create_batch(self, commands: list[ProductCreateCommand]) -> list[CatalogProduct]:
        category_names = await _category_names()
        created: list[CatalogProduct] = []
        for command in commands:
            try:
                product = await self._insert(command)
            except Exception as e:
                if not created:
                    raise
                raise PartialBatchError(created, e) from e
            created.append(_to_catalog_product(product, category_names))

        logger.debug("Created %d products", len(created))
        return created

    @staticmethod
    async def _insert(command: ProductCreateCommand) -> Product:
        variant = ProductVariant(
            title=command.variant.title,
            sku=command.variant.sku,
            size_option=command.variant.size_option,
            prices=_to_prices(command.variant.prices),
            metadata=command.variant.metadata,
        )
        await _ensure_inventory_item(variant)

        product = Product(
            title=command.title,
            handle=command.handle,
            subtitle=command.subtitle,
            description=command.description,
            status=command.status.value,
            thumbnail=command.thumbnail,
            images=command.images,
            metadata=command.metadata,
            category_ids=command.category_ids,
            sales_channel_ids=[command.sales_channel_id] if command.sales_channel_id else [],
            variants=[variant],
        )
        await product.insert()
        return product

    async def update_products(
        self, updates: list[tuple[VariantRef, ProductCreateCommand]]
    ) -> list[CatalogProduct]:
        category_names = await _category_names()
        updated: list[CatalogProduct] = []
        for ref, command in updates:
            product = await Product.get(PydanticObjectId(ref.product_id))
            if product is None:
                raise ValueError(f"Product {ref.product_id} no longer exists")

            product.title = command.title
            product.handle = command.handle
            product.subtitle = command.subtitle
            product.description = command.description
            product.status = command.status.value
            product.thumbnail = command.thumbnail
            product.images = command.images
            product.metadata = command.metadata
            product.category_ids = command.category_ids
            if command.sales_channel_id:
                product.sales_channel_ids = [command.sales_channel_id]
            product.updated_at = datetime.now(timezone.utc)

            variant = next((v for v in product.variants if v.id == ref.variant_id), None)
            if variant is None:
                raise ValueError(f"Variant {ref.variant_id} not found on {ref.product_id}")
            variant.title = command.variant.title
            variant.sku = command.variant.sku
            variant.size_option = command.variant.size_option
            variant.metadata = command.variant.metadata
            # Existing prices stay until price reconciliation replaces them
            if command.variant.prices:
                variant.prices = _to_prices(command.variant.prices)
            await _ensure_inventory_item(variant)

            await product.save()
            updated.append(_to_catalog_product(product, category_names))
        return updated

    async def update_variant_prices(
        self, product_id: str, variant_prices: list[VariantPrices]
    ) -> None:
        product = await Product.get(PydanticObjectId(product_id))
        if product is None:
            raise ValueError(f"Product {product_id} not found")

        variants = {variant.id: variant for variant in product.variants}
        for entry in variant_prices:
            variant = variants.get(entry.variant_id)
            if variant is None:
                raise ValueError(f"Variant {entry.variant_id} not found on {product_id}")
            variant.prices = _to_prices(entry.prices)

        product.updated_at = datetime.now(timezone.utc)
        await product.save()

    async def get_product(self, product_id: str) -> CatalogProduct | None:
        product = await Product.get(PydanticObjectId(product_id))
        if product is None:
            return None
        return _to_catalog_product(product, await _category_names())

    async def list_products(self, limit: int, offset: int) -> list[CatalogProduct]:
        products = (
            await Product.find_all()
            .sort(Product.created_at)
            .skip(offset)
            .limit(limit)
            .to_list()
        )
        category_names = await _category_names()
        return [_to_catalog_product(product, category_names) for product in products]

    async def list_brands_with_products(self) -> list[BrandProducts]:
        brands = await Brand.find_all().to_list()
        links = await ProductBrandLink.find_all().to_list()

        by_brand: dict[str, list[str]] = {}
        for link in links:
            by_brand.setdefault(link.brand_id, []).append(link.product_id)

        return [
            BrandProducts(brand_name=brand.name, product_ids=by_brand.get(str(brand.id), []))
            for brand in brands
        ]


class MongoRelationshipLinker:
    """Keeps exactly one brand link per product."""

    async def link(self, product_id: str, brand_id: str) -> None:
        existing = await ProductBrandLink.find_one(ProductBrandLink.product_id == product_id)
        if existing is not None:
            if existing.brand_id != brand_id:
                existing.brand_id = brand_id
                await existing.save()
            return
        await ProductBrandLink(product_id=product_id, brand_id=brand_id).insert()


class MongoInventoryStore:
    """InventoryStore backed by the inventory_items and inventory_levels collections."""

    async def find_inventory_item_for_variant(self, variant_id: str) -> str | None:
        item = await InventoryItem.find_one(InventoryItem.variant_id == variant_id)
        return str(item.id) if item else None

    async def find_inventory_item_by_sku(self, sku: str) -> str | None:
        item = await InventoryItem.find_one(InventoryItem.sku == sku)
        return str(item.id) if item else None

    async def query_level(
        self, location_id: str, inventory_item_id: str
    ) -> InventoryLevelRef | None:
        level = await InventoryLevel.find_one(
            InventoryLevel.location_id == location_id,
            InventoryLevel.inventory_item_id == inventory_item_id,
        )
        return self._to_ref(level) if level else None

    async def update_level(self, level_id: str, stocked_quantity: int) -> None:
        level = await InventoryLevel.get(PydanticObjectId(level_id))
        if level is None:
            raise ValueError(f"Inventory level {level_id} not found")
        level.stocked_quantity = stocked_quantity
        level.updated_at = datetime.now(timezone.utc)
        await level.save()

    async def create_levels(self, levels: list[InventoryLevelCreate]) -> None:
        if not levels:
            return
        await InventoryLevel.insert_many(
            [
                InventoryLevel(
                    location_id=level.location_id,
                    inventory_item_id=level.inventory_item_id,
                    stocked_quantity=level.stocked_quantity,
                )
                for level in levels
            ]
        )

    async def first_level_for_variant(self, variant_id: str) -> InventoryLevelRef | None:
        item_id = await self.find_inventory_item_for_variant(variant_id)
        if item_id is None:
            return None
        level = await InventoryLevel.find_one(InventoryLevel.inventory_item_id == item_id)
        return self._to_ref(level) if level else None

    @staticmethod
    def _to_ref(level: InventoryLevel) -> InventoryLevelRef:
        return InventoryLevelRef(
            id=str(level.id),
            location_id=level.location_id,
            inventory_item_id=level.inventory_item_id,
            stocked_quantity=level.stocked_quantity,
        )
