"""Gamma and Kalshi REST fetchers against a mock transport."""

import httpx
import pytest

from predwatch.ingestion.base import REQUESTED_ID_KEY, FetchError
from predwatch.ingestion.kalshi import KalshiClient
from predwatch.ingestion.polymarket import GammaClient


def _transport(handler):
    requests: list[httpx.Request] = []

    def record(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return handler(request)

    return httpx.MockTransport(record), requests


async def test_gamma_trending_requests_active_open_events():
    transport, requests = _transport(lambda r: httpx.Response(200, json=[{"slug": "a"}, {"slug": "b"}, "junk"]))
    client = GammaClient("http://gamma.test", trending_limit=7, transport=transport)
    try:
        rows = await client.fetch_trending()
    finally:
        await client.aclose()
    assert [r["slug"] for r in rows] == ["a", "b"]
    params = requests[0].url.params
    assert requests[0].url.path == "/events"
    assert params["limit"] == "7"
    assert params["active"] == "true"
    assert params["closed"] == "false"


async def test_gamma_lookup_by_slug_and_numeric_id():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/events/12345":
            return httpx.Response(200, json={"id": "12345", "slug": "by-id"})
        slug = request.url.params.get("slug")
        if slug == "missing":
            return httpx.Response(200, json=[])
        return httpx.Response(200, json=[{"slug": slug}])

    transport, _ = _transport(handler)
    client = GammaClient("http://gamma.test", transport=transport)
    try:
        assert (await client.fetch_by_id("btc-100k"))["slug"] == "btc-100k"
        assert (await client.fetch_by_id("12345"))["slug"] == "by-id"
        assert await client.fetch_by_id("missing") is None
    finally:
        await client.aclose()


async def test_gamma_http_error_raises_fetch_error():
    transport, _ = _transport(lambda r: httpx.Response(503))
    client = GammaClient("http://gamma.test", transport=transport)
    try:
        with pytest.raises(FetchError):
            await client.fetch_trending()
        # single lookups swallow the failure
        assert await client.fetch_by_id("x") is None
    finally:
        await client.aclose()


async def test_kalshi_trending_sorted_by_volume_and_capped():
    markets = [
        {"ticker": "LOW", "volume": 5},
        {"ticker": "HIGH", "volume": 900},
        {"ticker": "NONE"},
        {"ticker": "MID", "volume": 50},
    ]
    transport, requests = _transport(lambda r: httpx.Response(200, json={"markets": markets}))
    client = KalshiClient("http://kalshi.test/v2", fetch_limit=100, trending_limit=2, transport=transport)
    try:
        rows = await client.fetch_trending()
    finally:
        await client.aclose()
    assert [r["ticker"] for r in rows] == ["HIGH", "MID"]
    assert requests[0].url.path == "/v2/markets"
    assert requests[0].url.params["status"] == "open"
    assert requests[0].url.params["limit"] == "100"


async def test_kalshi_trending_empty_payload():
    transport, _ = _transport(lambda r: httpx.Response(200, json={"cursor": ""}))
    client = KalshiClient("http://kalshi.test/v2", transport=transport)
    try:
        assert await client.fetch_trending() == []
    finally:
        await client.aclose()


async def test_kalshi_fetch_by_ids_omits_failures():
    def handler(request: httpx.Request) -> httpx.Response:
        ticker = request.url.path.rsplit("/", 1)[-1]
        if ticker == "GONE":
            return httpx.Response(404, json={"error": "not found"})
        return httpx.Response(200, json={"market": {"ticker": ticker, "yes_bid": 40}})

    transport, requests = _transport(handler)
    client = KalshiClient("http://kalshi.test/v2", transport=transport)
    try:
        rows = await client.fetch_by_ids(["A", "GONE", "B"])
    finally:
        await client.aclose()
    assert [r["ticker"] for r in rows] == ["A", "B"]
    assert [r[REQUESTED_ID_KEY] for r in rows] == ["A", "B"]
    assert len(requests) == 3


async def test_undecodable_body_is_a_fetch_error():
    transport, _ = _transport(lambda r: httpx.Response(200, content=b"<html>"))
    client = KalshiClient("http://kalshi.test/v2", transport=transport)
    try:
        with pytest.raises(FetchError):
            await client.fetch_trending()
    finally:
        await client.aclose()
