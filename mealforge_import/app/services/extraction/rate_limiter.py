"""Per-provider request counters in fixed 60-second buckets."""

import logging
import threading
import time
from typing import Callable, Dict, Optional

from mealforge_import.app.services.extraction.models import RateLimitWindow

logger = logging.getLogger(__name__)

WINDOW_SECONDS = 60.0


class RateLimiter:
    """Owned, lock-protected rate-limit state.

    Each pipeline builds its own limiter so separate pipelines never share
    counters. ``try_acquire`` is the atomic check-and-record used by provider
    families; ``allow``/``record`` remain available as separate steps.
    """

    def __init__(
        self,
        limits: Optional[Dict[str, int]] = None,
        default_limit: int = 60,
        window_seconds: float = WINDOW_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._limits: Dict[str, int] = dict(limits or {})
        self._default_limit = default_limit
        self._window_seconds = window_seconds
        self._clock = clock
        self._windows: Dict[str, RateLimitWindow] = {}
        self._lock = threading.Lock()

    def set_limit(self, provider_key: str, requests_per_minute: int) -> None:
        with self._lock:
            self._limits[provider_key] = requests_per_minute

    def limit_for(self, provider_key: str) -> int:
        return self._limits.get(provider_key, self._default_limit)

    def _live_window(self, provider_key: str, now: float) -> Optional[RateLimitWindow]:
        window = self._windows.get(provider_key)
        if window is not None and now > window.window_reset_at:
            del self._windows[provider_key]
            return None
        return window

    def allow(self, provider_key: str) -> bool:
        with self._lock:
            window = self._live_window(provider_key, self._clock())
            return window is None or window.request_count < self.limit_for(provider_key)

    def record(self, provider_key: str) -> None:
        with self._lock:
            self._record_locked(provider_key, self._clock())

    def _record_locked(self, provider_key: str, now: float) -> None:
        window = self._live_window(provider_key, now)
        if window is None:
            self._windows[provider_key] = RateLimitWindow(
                provider_key=provider_key,
                request_count=1,
                window_reset_at=now + self._window_seconds,
            )
        else:
            window.request_count += 1

    def try_acquire(self, provider_key: str) -> bool:
        """Reserve one request slot if available; False when the window is full."""
        with self._lock:
            now = self._clock()
            window = self._live_window(provider_key, now)
            if window is not None and window.request_count >= self.limit_for(provider_key):
                logger.debug(
                    "Rate limit hit for %s (%d/%d)",
                    provider_key,
                    window.request_count,
                    self.limit_for(provider_key),
                )
                return False
            self._record_locked(provider_key, now)
            return True

    def retry_after(self, provider_key: str) -> Optional[float]:
        with self._lock:
            now = self._clock()
            window = self._live_window(provider_key, now)
            if window is None:
                return None
            return max(window.window_reset_at - now, 0.0)

    def window(self, provider_key: str) -> Optional[RateLimitWindow]:
        with self._lock:
            window = self._live_window(provider_key, self._clock())
            return window.model_copy() if window is not None else None
