import asyncio

import httpx
import pytest

from conftest import make_settings
from mealforge_import.app.services.extraction.html_fetcher import PageLoader, decode_html, fetch_html

PAGE = "<html><head><title>Soup</title></head><body><h1>Soup</h1><p>Warm and good.</p></body></html>"


def html_response(body: str = PAGE, status: int = 200, content_type: str = "text/html; charset=utf-8"):
    return httpx.Response(status, content=body.encode("utf-8"), headers={"content-type": content_type})


@pytest.mark.asyncio
async def test_fetch_html_returns_markup():
    def handler(request: httpx.Request) -> httpx.Response:
        assert "Mozilla" in request.headers["user-agent"]
        return html_response()

    html = await fetch_html("https://example.com/soup", settings=make_settings(), transport=httpx.MockTransport(handler))
    assert "<h1>Soup</h1>" in html


@pytest.mark.asyncio
async def test_fetch_html_retries_forbidden_with_relaxed_accept():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.headers["accept"])
        if request.headers["accept"] == "*/*":
            return html_response()
        return html_response(status=403)

    html = await fetch_html("https://example.com/soup", settings=make_settings(), transport=httpx.MockTransport(handler))
    assert "Soup" in html
    assert seen[-1] == "*/*"
    assert len(seen) == 2


@pytest.mark.asyncio
async def test_fetch_html_raises_for_error_status():
    transport = httpx.MockTransport(lambda request: html_response(status=500))
    with pytest.raises(httpx.HTTPStatusError):
        await fetch_html("https://example.com/soup", settings=make_settings(), transport=transport)


@pytest.mark.asyncio
async def test_fetch_html_rejects_non_html():
    transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"a": 1}))
    with pytest.raises(ValueError):
        await fetch_html("https://example.com/api", settings=make_settings(), transport=transport)


@pytest.mark.asyncio
async def test_fetch_html_blocks_private_hosts():
    with pytest.raises(ValueError):
        await fetch_html("http://127.0.0.1/admin", settings=make_settings())


def test_decode_html_uses_header_charset():
    body = "<html><body><h1>Crème brûlée</h1></body></html>"
    response = httpx.Response(
        200, content=body.encode("latin-1"), headers={"content-type": "text/html; charset=iso-8859-1"}
    )
    assert "Crème brûlée" in decode_html(response)


@pytest.mark.asyncio
async def test_page_loader_caches_within_ttl():
    calls = []
    now = [0.0]

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(str(request.url))
        return html_response()

    loader = PageLoader(
        make_settings(), transport=httpx.MockTransport(handler), ttl_seconds=300, clock=lambda: now[0]
    )
    await loader.load("https://example.com/soup")
    await loader.load("https://example.com/soup")
    assert len(calls) == 1

    now[0] = 301.0
    await loader.load("https://example.com/soup")
    assert len(calls) == 2

    loader.clear()
    await loader.load("https://example.com/soup")
    assert len(calls) == 3


@pytest.mark.asyncio
async def test_page_loader_drops_expired_pages_and_idle_locks():
    now = [0.0]
    loader = PageLoader(
        make_settings(),
        transport=httpx.MockTransport(lambda request: html_response()),
        ttl_seconds=1,
        clock=lambda: now[0],
    )
    for i in range(50):
        await loader.load(f"https://example.com/recipes/{i}")
        now[0] += 10
    assert loader.cached_urls == ["https://example.com/recipes/49"]
    assert loader.loading_urls == []


@pytest.mark.asyncio
async def test_page_loader_evicts_oldest_beyond_capacity():
    loader = PageLoader(
        make_settings(),
        transport=httpx.MockTransport(lambda request: html_response()),
        ttl_seconds=300,
        max_entries=3,
    )
    for i in range(5):
        await loader.load(f"https://example.com/recipes/{i}")
    assert loader.cached_urls == [f"https://example.com/recipes/{i}" for i in (2, 3, 4)]


@pytest.mark.asyncio
async def test_page_loader_shares_one_fetch_between_concurrent_callers():
    calls = []

    async def handler(request: httpx.Request) -> httpx.Response:
        calls.append(str(request.url))
        await asyncio.sleep(0.01)
        return html_response()

    loader = PageLoader(make_settings(), transport=httpx.MockTransport(handler), ttl_seconds=300)
    pages = await asyncio.gather(*(loader.load("https://example.com/soup") for _ in range(3)))
    assert len(set(pages)) == 1
    assert len(calls) == 1
    assert loader.loading_urls == []
