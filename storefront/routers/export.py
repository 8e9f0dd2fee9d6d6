"""Product CSV export endpoint."""

from fastapi import APIRouter, Query
from fastapi.responses import Response

from storefront.routers.dependencies import Exporter
from storefront.services.export_service import generate_filename

router = APIRouter()


@router.get("/export")
async def export_products(
    exporter: Exporter,
    limit: int = Query(default=1000, ge=1, le=10000, description="Maximum products to export"),
    offset: int = Query(default=0, ge=0, description="Products to skip"),
) -> Response:
    """Download products as a CSV that can be imported again."""
    content = await exporter.export_csv(limit=limit, offset=offset)
    return Response(
        content=content,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{generate_filename()}"'},
    )
