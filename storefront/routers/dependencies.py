"""FastAPI dependency providers for the catalog pipeline.

Tests replace these through ``app.dependency_overrides``.
"""

from typing import Annotated

from fastapi import Depends

from storefront.services.catalog import (
    MongoCatalogStore,
    MongoInventoryStore,
    MongoRelationshipLinker,
)
from storefront.services.exchange_rates import (
    ExchangeRateCache,
    ExchangeRateProvider,
    get_default_rate_cache,
)
from storefront.services.export_service import ExportService
from storefront.services.image_rehost import ImageRehostService
from storefront.services.image_storage import ImageStorageService
from storefront.services.import_service import ImportOrchestrator


def get_catalog_store() -> MongoCatalogStore:
    return MongoCatalogStore()


def get_inventory_store() -> MongoInventoryStore:
    return MongoInventoryStore()


def get_relationship_linker() -> MongoRelationshipLinker:
    return MongoRelationshipLinker()


def get_rate_cache() -> ExchangeRateCache:
    return get_default_rate_cache()


def get_rate_provider(
    cache: Annotated[ExchangeRateCache, Depends(get_rate_cache)],
) -> ExchangeRateProvider:
    return ExchangeRateProvider(cache=cache)


def get_rehost_service() -> ImageRehostService:
    return ImageRehostService(storage=ImageStorageService())


def get_import_orchestrator(
    catalog: Annotated[MongoCatalogStore, Depends(get_catalog_store)],
    linker: Annotated[MongoRelationshipLinker, Depends(get_relationship_linker)],
    inventory: Annotated[MongoInventoryStore, Depends(get_inventory_store)],
    rate_provider: Annotated[ExchangeRateProvider, Depends(get_rate_provider)],
    rehost_service: Annotated[ImageRehostService, Depends(get_rehost_service)],
) -> ImportOrchestrator:
    return ImportOrchestrator(
        catalog=catalog,
        linker=linker,
        inventory=inventory,
        rate_provider=rate_provider,
        rehost_service=rehost_service,
    )


def get_export_service(
    catalog: Annotated[MongoCatalogStore, Depends(get_catalog_store)],
    inventory: Annotated[MongoInventoryStore, Depends(get_inventory_store)],
) -> ExportService:
    return ExportService(catalog=catalog, inventory=inventory)


Orchestrator = Annotated[ImportOrchestrator, Depends(get_import_orchestrator)]
Exporter = Annotated[ExportService, Depends(get_export_service)]
RateProvider = Annotated[ExchangeRateProvider, Depends(get_rate_provider)]
