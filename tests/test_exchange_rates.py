"""Tests for the exchange rate provider and its TTL cache."""

import asyncio

import httpx
import pytest

from storefront.schemas.import_schemas import ExchangeRateTable
from storefront.services.exchange_rates import (
    FALLBACK_RATES,
    ExchangeRateCache,
    ExchangeRateProvider,
    clean_rates,
)

RATES_URL = "https://rates.test/v4/latest/USD"


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def make_provider(handler, clock: FakeClock | None = None, ttl: int = 3600) -> ExchangeRateProvider:
    cache = ExchangeRateCache(ttl_seconds=ttl, clock=clock or FakeClock())
    return ExchangeRateProvider(
        cache=cache,
        url=RATES_URL,
        timeout_seconds=1.0,
        transport=httpx.MockTransport(handler),
    )


class CountingHandler:
    def __init__(self, respond=None, error: Exception | None = None) -> None:
        self.calls = 0
        self.respond = respond
        self.error = error

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.respond()


def live_response() -> httpx.Response:
    return httpx.Response(
        200,
        json={"base": "USD", "rates": {"USD": 1, "EUR": 0.9, "GBP": 0.75, "INR": 82.5, "XXX": "n/a"}},
    )


# =============================================================================
# Table Invariant Tests
# =============================================================================


def test_table_forces_usd_anchor() -> None:
    """USD is always 1.0 whatever the source said."""
    table = ExchangeRateTable(rates={"usd": 2.0, "eur": 0.9})
    assert table.rates == {"USD": 1.0, "EUR": 0.9}
    assert table.rate_for("eur") == 0.9
    assert table.rate_for("jpy") is None


def test_clean_rates() -> None:
    assert clean_rates({"eur": 0.9, "bad": "x", "neg": -1, "zero": 0, "flag": True}) == {"EUR": 0.9}
    assert clean_rates(None) == {}


# =============================================================================
# Provider Tests
# =============================================================================


@pytest.mark.asyncio
async def test_override_skips_network() -> None:
    """A caller override is used as-is and the network is never touched."""
    handler = CountingHandler(live_response)
    provider = make_provider(handler)

    table = await provider.get_rates({"eur": 0.5, "USD": 3.0})

    assert handler.calls == 0
    assert table.source == "override"
    assert table.rates == {"EUR": 0.5, "USD": 1.0}


@pytest.mark.asyncio
async def test_live_fetch_is_cached() -> None:
    handler = CountingHandler(live_response)
    provider = make_provider(handler)

    first = await provider.get_rates()
    second = await provider.get_rates()

    assert handler.calls == 1
    assert first.source == "live"
    assert first.rates == {"USD": 1.0, "EUR": 0.9, "GBP": 0.75, "INR": 82.5}
    assert second is first


@pytest.mark.asyncio
async def test_cache_expires_after_ttl() -> None:
    clock = FakeClock()
    handler = CountingHandler(live_response)
    provider = make_provider(handler, clock=clock, ttl=60)

    await provider.get_rates()
    clock.now += 59
    await provider.get_rates()
    assert handler.calls == 1

    clock.now += 1
    await provider.get_rates()
    assert handler.calls == 2


@pytest.mark.asyncio
async def test_concurrent_callers_share_one_fetch() -> None:
    handler = CountingHandler(live_response)
    provider = make_provider(handler)

    tables = await asyncio.gather(*(provider.get_rates() for _ in range(5)))

    assert handler.calls == 1
    assert all(table.rates["EUR"] == 0.9 for table in tables)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "handler",
    [
        CountingHandler(lambda: httpx.Response(500, text="oops")),
        CountingHandler(lambda: httpx.Response(200, text="<html>not json</html>")),
        CountingHandler(lambda: httpx.Response(200, json={"result": "error"})),
        CountingHandler(lambda: httpx.Response(200, json={"rates": {"EUR": "x"}})),
        CountingHandler(error=httpx.ConnectTimeout("timed out")),
        CountingHandler(error=httpx.ConnectError("refused")),
    ],
)
async def test_failures_fall_back(handler: CountingHandler) -> None:
    """Any network or format failure yields the static fallback table."""
    provider = make_provider(handler)

    table = await provider.get_rates()

    assert table.source == "fallback"
    assert table.rates == FALLBACK_RATES
    assert table.rates["USD"] == 1.0


@pytest.mark.asyncio
async def test_fallback_is_not_cached() -> None:
    """After a failure the next call tries the network again."""
    handler = CountingHandler(error=httpx.ConnectError("refused"))
    provider = make_provider(handler)

    await provider.get_rates()
    handler.error = None
    handler.respond = live_response
    table = await provider.get_rates()

    assert handler.calls == 2
    assert table.source == "live"
