"""Headless rendering with Playwright for JavaScript-heavy recipe pages."""

import logging

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright

from mealforge_import.app.services.extraction.constants import BROWSER_WAIT_SELECTOR
from mealforge_import.app.services.extraction.errors import (
    NoRecipeFound,
    ProviderTimeout,
    ProviderTransportError,
)
from mealforge_import.app.services.extraction.extractors import extract_recipe_from_markup
from mealforge_import.app.services.extraction.models import (
    ExtractionResult,
    ProviderConfig,
    SourceKind,
    SourceReference,
)
from mealforge_import.app.services.extraction.providers.base import ProviderAdapter

logger = logging.getLogger(__name__)

LAUNCH_ARGS = {
    "chromium": [
        "--no-sandbox",
        "--disable-dev-shm-usage",
        "--disable-gpu",
        "--disable-extensions",
        "--disable-blink-features=AutomationControlled",
        "--mute-audio",
        "--no-first-run",
    ],
    "firefox": [],
    "webkit": [],
}

# Hides the most common automation fingerprints before page scripts run.
STEALTH_SCRIPT = """
Object.defineProperty(navigator, 'webdriver', {get: () => undefined});
Object.defineProperty(navigator, 'languages', {get: () => ['en-US', 'en']});
"""

SELECTOR_WAIT_MS = 5000


class PlaywrightProvider(ProviderAdapter):
    def __init__(self, config: ProviderConfig, engine: str, settings=None):
        super().__init__(config, settings=settings)
        self.engine = engine

    async def render(self, source: SourceReference) -> str:
        """Load the page (or supplied markup) in a headless browser and return the rendered DOM."""
        timeout_ms = int(self.settings.browser_automation_timeout_seconds * 1000)
        async with async_playwright() as p:
            browser = await getattr(p, self.engine).launch(headless=True, args=LAUNCH_ARGS.get(self.engine, []))
            try:
                context = await browser.new_context(
                    user_agent=self.settings.scraper_user_agent,
                    viewport={
                        "width": self.settings.browser_viewport_width,
                        "height": self.settings.browser_viewport_height,
                    },
                    java_script_enabled=True,
                )
                await context.add_init_script(STEALTH_SCRIPT)
                page = await context.new_page()
                page.set_default_timeout(timeout_ms)
                if source.kind == SourceKind.HTML_BLOB:
                    await page.set_content(source.html or "", wait_until="domcontentloaded")
                else:
                    await page.goto(self.require_url(source), wait_until="domcontentloaded", timeout=timeout_ms)
                try:
                    await page.wait_for_selector(BROWSER_WAIT_SELECTOR, timeout=SELECTOR_WAIT_MS)
                except PlaywrightTimeoutError:
                    logger.debug("No recipe selector appeared on %s; using DOM as-is", source.url)
                return await page.content()
            finally:
                await browser.close()

    async def _extract(self, source: SourceReference) -> ExtractionResult:
        try:
            html = await self.render(source)
        except PlaywrightTimeoutError:
            raise ProviderTimeout(self.name, self.settings.browser_automation_timeout_seconds)
        except PlaywrightError as exc:
            raise ProviderTransportError(self.name, f"{self.engine} rendering failed: {exc}")
        record = extract_recipe_from_markup(html, source.url)
        cost = self.config.cost_per_request
        if record is None or not (record.ingredients or record.instructions):
            raise NoRecipeFound(self.name, "rendered page has no recipe content", cost=cost)
        return self.success(record, self.config.confidence, cost=cost)
