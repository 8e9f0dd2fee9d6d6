"""Exchange rate endpoint used by the admin import screen."""

from fastapi import APIRouter

from storefront.routers.dependencies import RateProvider
from storefront.schemas.import_schemas import ExchangeRateTable

router = APIRouter()


@router.get("", response_model=ExchangeRateTable)
async def get_exchange_rates(provider: RateProvider) -> ExchangeRateTable:
    """Current USD-based rates: cached, live, or the static fallback."""
    return await provider.get_rates()
