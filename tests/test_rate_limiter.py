import threading

from mealforge_import.app.services.extraction.rate_limiter import RateLimiter


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def test_allow_without_window():
    limiter = RateLimiter({"openai": 2}, clock=FakeClock())
    assert limiter.allow("openai")
    assert limiter.window("openai") is None


def test_record_opens_window_and_counts():
    clock = FakeClock()
    limiter = RateLimiter({"openai": 2}, clock=clock)
    limiter.record("openai")
    window = limiter.window("openai")
    assert window.request_count == 1
    assert window.window_reset_at == clock.now + 60

    limiter.record("openai")
    assert limiter.window("openai").request_count == 2
    assert not limiter.allow("openai")


def test_window_expires_strictly_after_reset():
    clock = FakeClock()
    limiter = RateLimiter({"spoonacular": 1}, clock=clock)
    limiter.record("spoonacular")

    clock.now += 60
    assert not limiter.allow("spoonacular")

    clock.now += 0.001
    assert limiter.allow("spoonacular")
    assert limiter.window("spoonacular") is None


def test_try_acquire_reserves_up_to_limit():
    clock = FakeClock()
    limiter = RateLimiter({"grok": 2}, clock=clock)
    assert limiter.try_acquire("grok")
    assert limiter.try_acquire("grok")
    assert not limiter.try_acquire("grok")
    assert limiter.window("grok").request_count == 2

    clock.now += 15
    assert limiter.retry_after("grok") == 45


def test_unknown_provider_uses_default_limit():
    limiter = RateLimiter(default_limit=1, clock=FakeClock())
    assert limiter.limit_for("mystery") == 1
    assert limiter.try_acquire("mystery")
    assert not limiter.try_acquire("mystery")


def test_providers_have_independent_windows():
    limiter = RateLimiter({"a": 1, "b": 1}, clock=FakeClock())
    assert limiter.try_acquire("a")
    assert limiter.try_acquire("b")
    assert not limiter.try_acquire("a")


def test_separate_limiters_do_not_share_state():
    first = RateLimiter({"openai": 1}, clock=FakeClock())
    second = RateLimiter({"openai": 1}, clock=FakeClock())
    assert first.try_acquire("openai")
    assert second.try_acquire("openai")


def test_window_returns_a_copy():
    limiter = RateLimiter({"openai": 5}, clock=FakeClock())
    limiter.record("openai")
    snapshot = limiter.window("openai")
    snapshot.request_count = 99
    assert limiter.window("openai").request_count == 1


def test_try_acquire_never_overshoots_under_contention():
    limiter = RateLimiter({"openai": 50}, clock=FakeClock())
    granted = []
    lock = threading.Lock()

    def worker():
        for _ in range(20):
            if limiter.try_acquire("openai"):
                with lock:
                    granted.append(1)

    threads = [threading.Thread(target=worker) for _ in range(10)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(granted) == 50
    assert limiter.window("openai").request_count == 50
