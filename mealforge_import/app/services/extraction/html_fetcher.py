"""HTML fetching with encoding handling and a small per-pipeline page cache."""

import asyncio
import logging
import re
import time
from typing import Callable, Dict, List, Optional, Tuple
from urllib.parse import urlparse

import httpx

from mealforge_import.app.core.config import Settings, get_settings
from mealforge_import.app.services.extraction.models import is_private_host

logger = logging.getLogger(__name__)

PAGE_CACHE_MAX_ENTRIES = 128

_tag_re = re.compile(r"<[a-z]+[^>]*>", re.I)


def build_headers(settings: Settings) -> Dict[str, str]:
    headers = {
        "User-Agent": settings.scraper_user_agent,
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
        "Accept-Language": "en-US,en;q=0.9",
        "Referer": "https://www.google.com/",
        "Connection": "keep-alive",
    }
    if settings.scraper_cookies:
        headers["Cookie"] = settings.scraper_cookies
    return headers


def _looks_like_html(text: str) -> bool:
    sample = text[:2000]
    if not sample:
        return False
    printable = sum(1 for c in sample if (32 <= ord(c) <= 126) or c.isspace() or ord(c) > 127)
    control = sum(1 for c in sample if ord(c) < 32 and c not in "\n\r\t")
    return bool(_tag_re.search(sample)) and printable / len(sample) > 0.6 and control / len(sample) < 0.1


def decode_html(response: httpx.Response, url: str = "") -> str:
    """Decode a response body using the header charset, then a <meta charset>, then utf-8."""
    content_type = response.headers.get("content-type", "")
    content_bytes = response.content
    encoding = None
    if "charset=" in content_type.lower():
        encoding = content_type.lower().split("charset=")[1].split(";")[0].strip().strip("\"'")

    try:
        text = content_bytes.decode(encoding or "utf-8")
    except (UnicodeDecodeError, LookupError):
        text = content_bytes.decode("utf-8", errors="replace")
        meta = re.search(r'<meta[^>]+charset=["\']?([^"\'>\s]+)', text, re.I)
        if meta and meta.group(1).lower() != "utf-8":
            try:
                text = content_bytes.decode(meta.group(1).lower())
            except (UnicodeDecodeError, LookupError):
                pass

    if len(text) > 100 and not _looks_like_html(text):
        logger.warning("HTML validation failed for %s", url)
        raise ValueError("HTML content appears corrupted or invalid encoding")
    return text


async def fetch_html(
    url: str,
    settings: Optional[Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> str:
    """Fetch HTML content from a URL; retries once with relaxed headers on 401/403."""
    settings = settings or get_settings()
    parsed_url = urlparse(url)
    if parsed_url.scheme not in {"http", "https"} or not parsed_url.netloc:
        raise ValueError("Invalid URL")
    if is_private_host(parsed_url.hostname or ""):
        raise ValueError("URL points to a private or disallowed host")

    fetch_timeout = settings.html_fetch_timeout_seconds
    timeout = httpx.Timeout(fetch_timeout, read=fetch_timeout, connect=min(5.0, fetch_timeout))
    headers = build_headers(settings)

    async with httpx.AsyncClient(
        timeout=timeout, follow_redirects=True, headers=headers, transport=transport
    ) as client:
        response = await client.get(url)
        if response.status_code in {401, 403}:
            logger.info("Fetch of %s returned %d; retrying with relaxed headers", url, response.status_code)
            response = await client.get(url, headers={"Accept": "*/*"})
        response.raise_for_status()

    content_type = response.headers.get("content-type", "")
    if content_type and "text/html" not in content_type and "application/xhtml" not in content_type:
        raise ValueError(f"Unsupported content type: {content_type}")
    return decode_html(response, url)


class PageLoader:
    """Fetches pages once per TTL so several providers can share one download.

    Expired pages are dropped on every load and the cache holds at most
    ``max_entries`` pages, oldest evicted first. A per-URL lock exists only
    while some caller is loading that URL.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        ttl_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
        max_entries: int = PAGE_CACHE_MAX_ENTRIES,
    ):
        self.settings = settings or get_settings()
        self.transport = transport
        self.ttl_seconds = self.settings.page_cache_ttl_seconds if ttl_seconds is None else ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._cache: Dict[str, Tuple[float, str]] = {}
        self._locks: Dict[str, Tuple[asyncio.Lock, List[int]]] = {}

    @property
    def cached_urls(self) -> List[str]:
        return list(self._cache)

    @property
    def loading_urls(self) -> List[str]:
        return list(self._locks)

    def _evict_expired(self, now: float) -> None:
        expired = [url for url, (fetched_at, _) in self._cache.items() if now - fetched_at >= self.ttl_seconds]
        for url in expired:
            del self._cache[url]

    def _store(self, url: str, html: str) -> None:
        self._cache.pop(url, None)
        self._cache[url] = (self._clock(), html)
        while len(self._cache) > self.max_entries:
            oldest = next(iter(self._cache))
            del self._cache[oldest]

    async def load(self, url: str) -> str:
        self._evict_expired(self._clock())
        lock, users = self._locks.setdefault(url, (asyncio.Lock(), [0]))
        users[0] += 1
        try:
            async with lock:
                cached = self._cache.get(url)
                if cached and self._clock() - cached[0] < self.ttl_seconds:
                    return cached[1]
                html = await fetch_html(url, settings=self.settings, transport=self.transport)
                self._store(url, html)
                return html
        finally:
            users[0] -= 1
            if not users[0]:
                self._locks.pop(url, None)

    def clear(self) -> None:
        self._cache.clear()
