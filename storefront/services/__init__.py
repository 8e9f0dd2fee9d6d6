"""Services for the storefront catalog pipeline."""

from storefront.services.exchange_rates import ExchangeRateCache, ExchangeRateProvider
from storefront.services.export_service import ExportService
from storefront.services.image_rehost import ImageRehostService
from storefront.services.image_storage import ImageStorageService

__all__ = [
    "ExchangeRateCache",
    "ExchangeRateProvider",
    "ExportService",
    "ImageRehostService",
    "ImageStorageService",
]
