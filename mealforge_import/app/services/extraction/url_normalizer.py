"""URL canonicalization and print-friendly variant discovery."""

import logging
import re
from typing import List, Optional
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

import httpx

from mealforge_import.app.services.extraction.constants import (
    DEFAULT_TITLE,
    PRINT_URL_PATTERNS,
    TRACKING_PARAMS,
    TRACKING_PREFIXES,
)

logger = logging.getLogger(__name__)


def _is_tracking_param(key: str) -> bool:
    lowered = key.lower()
    return lowered in TRACKING_PARAMS or lowered.startswith(TRACKING_PREFIXES)


def clean_url(url: str) -> str:
    """Strip tracking query parameters and a single trailing slash."""
    parsed = urlparse(url.strip())
    query = [(k, v) for k, v in parse_qsl(parsed.query, keep_blank_values=True) if not _is_tracking_param(k)]
    path = parsed.path
    if path.endswith("/") and path != "/":
        path = path[:-1]
    return urlunparse(parsed._replace(path=path, query=urlencode(query)))


def title_from_url(url: Optional[str]) -> str:
    """Guess a human title from the last path segment, e.g. /easy-banana-bread.html."""
    if not url:
        return DEFAULT_TITLE
    segments = [seg for seg in urlparse(url).path.split("/") if seg]
    if not segments:
        return DEFAULT_TITLE
    slug = re.sub(r"\.(html?|php|aspx?)$", "", segments[-1], flags=re.I)
    words = [w for w in re.split(r"[-_\s]+", slug) if w]
    if not words:
        return DEFAULT_TITLE
    return " ".join(w.capitalize() for w in words)


def print_variant_candidates(url: str) -> List[str]:
    """Ordered print-view rewrites of ``url`` (``https://host/<pattern>/<slug>``)."""
    parsed = urlparse(url)
    segments = [seg for seg in parsed.path.split("/") if seg]
    if not segments:
        return []
    slug = segments[-1]
    candidates = []
    for pattern in PRINT_URL_PATTERNS:
        candidate = urlunparse(parsed._replace(path=f"/{pattern}/{slug}", query="", fragment=""))
        if candidate != url and candidate not in candidates:
            candidates.append(candidate)
    return candidates


async def resolve_print_variant(
    url: str,
    timeout: float = 3.0,
    user_agent: Optional[str] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> str:
    """Return the first print-view URL that answers a HEAD probe, else ``url``."""
    candidates = print_variant_candidates(url)
    if not candidates:
        return url
    headers = {"User-Agent": user_agent} if user_agent else {}
    async with httpx.AsyncClient(
        follow_redirects=True, timeout=timeout, headers=headers, transport=transport
    ) as client:
        for candidate in candidates:
            try:
                resp = await client.head(candidate)
            except httpx.HTTPError as exc:
                logger.debug("Print probe failed for %s: %s", candidate, exc)
                continue
            if resp.status_code < 400:
                logger.info("Using print-friendly variant %s for %s", candidate, url)
                return candidate
    return url
