"""USD-based exchange rates for multi-currency price fan-out.

The provider never raises: a caller-supplied override wins, then a fresh
cached table, then a live fetch, and finally a static fallback table.
"""

import asyncio
import logging
import time
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

import httpx

from storefront.config import settings
from storefront.schemas.import_schemas import ExchangeRateTable

logger = logging.getLogger(__name__)

FALLBACK_RATES: dict[str, float] = {
    "USD": 1.0,
    "EUR": 0.92,
    "GBP": 0.79,
    "INR": 83.0,
}


def clean_rates(raw: Any) -> dict[str, float]:
    """Keep only positive numeric rates, keyed by upper-case currency code."""
    rates: dict[str, float] = {}
    if not isinstance(raw, dict):
        return rates
    for code, rate in raw.items():
        if isinstance(rate, bool) or not isinstance(rate, (int, float)):
            continue
        if rate > 0:
            rates[str(code).upper()] = float(rate)
    return rates


class ExchangeRateCache:
    """Process-wide TTL cache for the live exchange rate table.

    Owned by the import dependency set so tests can hand in their own
    instance and clock.
    """

    def __init__(
        self,
        ttl_seconds: int = 3600,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._table: ExchangeRateTable | None = None
        self._stored_at: float = 0.0
        self.lock = asyncio.Lock()

    def get(self) -> ExchangeRateTable | None:
        """Return the cached table if it has not expired."""
        if self._table is None:
            return None
        if self._clock() - self._stored_at >= self.ttl_seconds:
            return None
        return self._table

    def put(self, table: ExchangeRateTable) -> None:
        self._table = table
        self._stored_at = self._clock()

    def clear(self) -> None:
        self._table = None
        self._stored_at = 0.0


class ExchangeRateProvider:
    """Supplies exchange rate tables. Never raises."""

    def __init__(
        self,
        cache: ExchangeRateCache | None = None,
        url: str | None = None,
        timeout_seconds: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.cache = cache or ExchangeRateCache(ttl_seconds=settings.exchange_rate_ttl_seconds)
        self.url = url or settings.exchange_rate_url
        self.timeout_seconds = timeout_seconds or settings.exchange_rate_timeout_seconds
        self._transport = transport

    async def get_rates(self, override: dict[str, Any] | None = None) -> ExchangeRateTable:
        """Get the exchange rate table for an import.

        Args:
            override: Caller-supplied rates. When given, the network and cache
                are not consulted at all.

        Returns:
            An ExchangeRateTable with ``rates["USD"] == 1.0``.
        """
        if override:
            return ExchangeRateTable(
                rates=clean_rates(override),
                ttl_seconds=self.cache.ttl_seconds,
                source="override",
            )

        async with self.cache.lock:
            cached = self.cache.get()
            if cached is not None:
                return cached

            try:
                table = await self._fetch()
            except Exception as e:
                logger.warning("Exchange rate fetch failed, using fallback rates: %s", e)
                return self.fallback()

            self.cache.put(table)
            return table

    def fallback(self) -> ExchangeRateTable:
        return ExchangeRateTable(
            rates=dict(FALLBACK_RATES),
            ttl_seconds=self.cache.ttl_seconds,
            source="fallback",
        )

    async def _fetch(self) -> ExchangeRateTable:
        async with httpx.AsyncClient(
            timeout=self.timeout_seconds,
            transport=self._transport,
            headers={"Accept": "application/json"},
        ) as client:
            response = await client.get(self.url)
            response.raise_for_status()
            data = response.json()

        if not isinstance(data, dict) or not isinstance(data.get("rates"), dict):
            raise ValueError("Invalid exchange rate API response format")

        rates = clean_rates(data["rates"])
        if not rates:
            raise ValueError("Exchange rate API returned no usable rates")

        logger.info("Fetched %d exchange rates from %s", len(rates), self.url)
        return ExchangeRateTable(
            rates=rates,
            fetched_at=datetime.now(timezone.utc),
            ttl_seconds=self.cache.ttl_seconds,
            source="live",
        )


# Process-wide cache shared by every request, created on first use
_default_cache: ExchangeRateCache | None = None


def get_default_rate_cache() -> ExchangeRateCache:
    """Return the process-wide exchange rate cache."""
    global _default_cache
    if _default_cache is None:
        _default_cache = ExchangeRateCache(ttl_seconds=settings.exchange_rate_ttl_seconds)
    return _default_cache
