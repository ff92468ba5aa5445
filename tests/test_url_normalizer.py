import httpx
import pytest

from mealforge_import.app.services.extraction.url_normalizer import (
    clean_url,
    print_variant_candidates,
    resolve_print_variant,
    title_from_url,
)


def test_clean_url_strips_tracking_params_and_trailing_slash():
    url = "https://example.com/recipes/bread/?utm_source=pin&utm_medium=x&fbclid=abc&page=2&ref=home"
    assert clean_url(url) == "https://example.com/recipes/bread?page=2"


def test_clean_url_keeps_root_path():
    assert clean_url("https://example.com/") == "https://example.com/"


def test_clean_url_without_query_is_stable():
    url = "https://example.com/recipes/bread"
    assert clean_url(url) == url


def test_title_from_url():
    assert title_from_url("https://iambaker.net/butterfinger-bars/") == "Butterfinger Bars"
    assert title_from_url("https://x.com/recipes/easy_banana-bread.html") == "Easy Banana Bread"
    assert title_from_url("https://x.com/") == "Imported Recipe"
    assert title_from_url(None) == "Imported Recipe"


def test_print_variant_candidates_are_ordered():
    candidates = print_variant_candidates("https://site.com/recipes/banana-bread?x=1")
    assert candidates[0] == "https://site.com/wprm_print/banana-bread"
    assert candidates[1] == "https://site.com/print/banana-bread"
    assert len(candidates) == len(set(candidates))


def test_print_variant_candidates_need_a_path():
    assert print_variant_candidates("https://site.com/") == []


@pytest.mark.asyncio
async def test_resolve_print_variant_returns_first_live_candidate():
    probed = []

    def handler(request: httpx.Request) -> httpx.Response:
        probed.append(str(request.url))
        assert request.method == "HEAD"
        if request.url.path == "/print/banana-bread":
            return httpx.Response(200)
        return httpx.Response(404)

    resolved = await resolve_print_variant(
        "https://site.com/recipes/banana-bread", transport=httpx.MockTransport(handler)
    )
    assert resolved == "https://site.com/print/banana-bread"
    assert probed == [
        "https://site.com/wprm_print/banana-bread",
        "https://site.com/print/banana-bread",
    ]


@pytest.mark.asyncio
async def test_resolve_print_variant_falls_back_to_original():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.startswith("/wprm_print"):
            raise httpx.ConnectError("refused", request=request)
        return httpx.Response(404)

    url = "https://site.com/recipes/banana-bread"
    assert await resolve_print_variant(url, transport=httpx.MockTransport(handler)) == url
