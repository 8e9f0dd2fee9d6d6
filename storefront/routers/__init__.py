"""API routers for the storefront catalog pipeline."""

from storefront.routers import exchange_rates, export, import_router

__all__ = ["exchange_rates", "export", "import_router"]
