import pytest

from conftest import FakeAdapter, make_config, make_record, make_settings, registry_of
from mealforge_import.app.services.extraction.errors import NoRecipeFound, ProviderTransportError
from mealforge_import.app.services.extraction.family import FamilyRunner
from mealforge_import.app.services.extraction.models import ExtractionMethod, SourceReference
from mealforge_import.app.services.extraction.orchestrator import ExtractionOrchestrator
from mealforge_import.app.services.extraction.rate_limiter import RateLimiter

HTML = ExtractionMethod.HTML_SCRAPING
API = ExtractionMethod.PROFESSIONAL_API
AI = ExtractionMethod.AI_PARSING
BROWSER = ExtractionMethod.BROWSER_AUTOMATION


def adapter(name, family, settings, **kwargs):
    return FakeAdapter(make_config(name, family), settings, **kwargs)


def orchestrator_for(settings, *adapters):
    registry = registry_of(*adapters)
    runner = FamilyRunner(registry, RateLimiter(registry.rate_limits()), settings)
    return ExtractionOrchestrator(runner, settings)


@pytest.mark.asyncio
async def test_insufficient_html_and_unconfigured_api_fall_through_to_ai(url_source):
    settings = make_settings()
    html = adapter("html-scraper", HTML, settings, record=make_record(ingredients=0), confidence=0.6)
    api = adapter("spoonacular", API, settings, configured=False)
    ai = adapter("openai", AI, settings, record=make_record(ingredients=8), confidence=0.8)
    browser = adapter("playwright-chromium", BROWSER, settings, record=make_record())

    result = await orchestrator_for(settings, html, api, ai, browser).run(url_source)

    assert result.state == "succeeded"
    assert result.satisfied_by == AI
    assert browser.calls == 0
    assert set(result.family_results) == {HTML, API, AI}
    assert result.family_results[HTML].success
    assert [a.provider_name for a in result.attempts] == ["html-scraper", "spoonacular", "openai"]


@pytest.mark.asyncio
async def test_sufficient_html_stops_the_chain(url_source):
    settings = make_settings()
    html = adapter("html-scraper", HTML, settings, record=make_record(), confidence=0.75)
    ai = adapter("openai", AI, settings, record=make_record(), confidence=0.98)

    result = await orchestrator_for(settings, html, ai).run(url_source)

    assert result.satisfied_by == HTML
    assert ai.calls == 0


@pytest.mark.asyncio
async def test_low_confidence_with_core_fields_is_not_sufficient(url_source):
    settings = make_settings()
    html = adapter("html-scraper", HTML, settings, record=make_record(), confidence=0.4)
    ai = adapter("openai", AI, settings, record=make_record(), confidence=0.8)

    result = await orchestrator_for(settings, html, ai).run(url_source)

    assert result.satisfied_by == AI


@pytest.mark.asyncio
async def test_last_family_only_needs_success(url_source):
    settings = make_settings()
    html = adapter("html-scraper", HTML, settings, error=NoRecipeFound("html-scraper", "nothing"))
    browser = adapter("playwright-chromium", BROWSER, settings, record=make_record(steps=0), confidence=0.3)

    result = await orchestrator_for(settings, html, browser).run(url_source)

    assert result.state == "succeeded"
    assert result.satisfied_by == BROWSER


@pytest.mark.asyncio
async def test_all_families_failing_uses_fallback():
    settings = make_settings()
    html = adapter("html-scraper", HTML, settings, error=ProviderTransportError("html-scraper", "down"))
    browser = adapter("playwright-chromium", BROWSER, settings, error=NoRecipeFound("playwright-chromium", "empty"))
    source = SourceReference.from_url("https://iambaker.net/butterfinger-bars")

    result = await orchestrator_for(settings, html, browser).run(source)

    assert result.state == "fallback_used"
    assert result.satisfied_by is None
    assert result.fallback_record.title == "Butterfinger Bars"
    assert result.fallback_record.ingredients == []
    assert result.fallback_record.instructions == [
        "Instructions could not be extracted. Please add them manually."
    ]
    assert result.fallback_confidence == pytest.approx(0.2)


@pytest.mark.asyncio
async def test_fallback_confidence_rises_with_partial_data():
    settings = make_settings()
    # Partial data (no instructions) at sufficient confidence in a non-final family.
    html = adapter("html-scraper", HTML, settings, record=make_record(steps=0), confidence=0.9)
    source = SourceReference.from_url("https://example.com/recipes/pot-roast")

    result = await orchestrator_for(settings, html).run(source)

    assert result.state == "fallback_used"
    assert result.fallback_confidence == pytest.approx(0.3)


def test_fallback_confidence_floor_for_unknown_title():
    record = ExtractionOrchestrator.fallback_record(SourceReference.from_url("https://example.com/"))
    assert record.title == "Imported Recipe"
    assert ExtractionOrchestrator.fallback_confidence(record, {}) == pytest.approx(0.1)


@pytest.mark.asyncio
async def test_total_cost_sums_every_attempt(url_source):
    settings = make_settings()
    html = FakeAdapter(
        make_config("html-scraper", HTML, cost_per_request=0.0), settings, record=make_record(ingredients=0)
    )
    api = FakeAdapter(
        make_config("spoonacular", API, cost_per_request=0.001),
        settings,
        error=NoRecipeFound("spoonacular", "none", cost=0.001),
    )
    ai = FakeAdapter(make_config("openai", AI, cost_per_request=0.05), settings, record=make_record())

    result = await orchestrator_for(settings, html, api, ai).run(url_source)

    assert result.total_cost == pytest.approx(0.051)
