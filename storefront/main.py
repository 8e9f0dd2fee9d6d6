"""FastAPI application entry point for the storefront catalog service."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from storefront import __version__
from storefront.config import settings
from storefront.database import close_db, init_db

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    # Startup
    settings.image_storage_path.mkdir(parents=True, exist_ok=True)
    await init_db()
    logger.info("Storefront catalog service started (public URL %s)", settings.public_url)

    yield

    # Shutdown
    await close_db()


app = FastAPI(
    title=settings.app_name,
    description="Bulk catalog CSV import and export for the storefront",
    version=__version__,
    lifespan=lifespan,
)

# Only allow origins from the whitelist; empty list means same-origin only
if settings.cors_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["Authorization", "Content-Type"],
        max_age=600,
    )


# Health check endpoint
@app.get("/health", tags=["Health"])
async def health_check() -> JSONResponse:
    """Health check endpoint."""
    return JSONResponse(
        content={
            "status": "healthy",
            "version": __version__,
            "app_name": settings.app_name,
        }
    )


# Import and include routers
from storefront.routers import exchange_rates, export, import_router  # noqa: E402

app.include_router(import_router.router, prefix="/api/products", tags=["Import"])
app.include_router(export.router, prefix="/api/products", tags=["Export"])
app.include_router(exchange_rates.router, prefix="/api/exchange-rates", tags=["Exchange Rates"])

# Serve rehosted images
images_path = settings.image_storage_path
images_path.mkdir(parents=True, exist_ok=True)
app.mount("/api/images", StaticFiles(directory=str(images_path)), name="images")
