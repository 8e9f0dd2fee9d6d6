"""Bulk product import endpoints."""

import logging
from typing import Any

from fastapi import APIRouter, File, HTTPException, UploadFile, status

from storefront.routers.dependencies import Orchestrator
from storefront.schemas.import_schemas import ImportRequest, ImportResultResponse
from storefront.services.import_service import (
    CatalogImportError,
    ImportOrchestrator,
    UnresolvedReferencesError,
    decode_csv,
)

logger = logging.getLogger(__name__)

router = APIRouter()

MAX_FILE_SIZE = 10 * 1024 * 1024  # 10 MB


def _error_detail(error: CatalogImportError) -> dict[str, Any]:
    detail: dict[str, Any] = {
        "message": str(error),
        "missing_categories": [],
        "missing_brands": [],
    }
    if isinstance(error, UnresolvedReferencesError):
        detail["missing_categories"] = error.missing.categories
        detail["missing_brands"] = error.missing.brands
    return detail


async def _run_import(
    orchestrator: ImportOrchestrator,
    text: str,
    exchange_rates: dict[str, Any] | None = None,
) -> ImportResultResponse:
    try:
        outcome = await orchestrator.import_csv(text, rate_override=exchange_rates)
    except CatalogImportError as e:
        logger.info("Import rejected: %s", e)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=_error_detail(e),
        )
    except ValueError as e:
        # Row limit and similar tokenizer rejections
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"message": str(e), "missing_categories": [], "missing_brands": []},
        )
    return ImportResultResponse.from_outcome(outcome)


@router.post("/import", response_model=ImportResultResponse)
async def import_products(
    request: ImportRequest,
    orchestrator: Orchestrator,
) -> ImportResultResponse:
    """Import products from CSV text.

    Returns 200 with a summary even when some rows failed; 400 only when the
    whole file is rejected.
    """
    content = request.content
    if not content or not content.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "message": "No CSV content provided.",
                "missing_categories": [],
                "missing_brands": [],
            },
        )

    logger.info("Importing products from %s", request.filename or "request body")
    return await _run_import(orchestrator, content, request.exchange_rates)


@router.post("/import/upload", response_model=ImportResultResponse)
async def upload_products(
    orchestrator: Orchestrator,
    file: UploadFile = File(..., description="Product CSV"),
) -> ImportResultResponse:
    """Import products from an uploaded CSV file."""
    if file.filename and not file.filename.lower().endswith(".csv"):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Unsupported file type. Allowed: CSV",
        )

    # Read in chunks to avoid unbounded memory for oversized files
    chunks: list[bytes] = []
    total_size = 0
    while True:
        chunk = await file.read(64 * 1024)
        if not chunk:
            break
        total_size += len(chunk)
        if total_size > MAX_FILE_SIZE:
            raise HTTPException(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                detail="File exceeds maximum size of 10 MB",
            )
        chunks.append(chunk)

    logger.info("Importing products from upload %s (%d bytes)", file.filename, total_size)
    return await _run_import(orchestrator, decode_csv(b"".join(chunks)))
