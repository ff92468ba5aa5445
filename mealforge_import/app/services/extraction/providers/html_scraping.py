import logging

from mealforge_import.app.services.extraction.errors import NoRecipeFound
from mealforge_import.app.services.extraction.extractors import extract_recipe_from_markup
from mealforge_import.app.services.extraction.html_fetcher import PageLoader
from mealforge_import.app.services.extraction.models import (
    ExtractionResult,
    ProviderConfig,
    SourceKind,
    SourceReference,
)
from mealforge_import.app.services.extraction.providers.base import ProviderAdapter

logger = logging.getLogger(__name__)

PARTIAL_CONFIDENCE = 0.6
COMPLETE_CONFIDENCE = 0.75


class HtmlScrapingProvider(ProviderAdapter):
    """Fetches raw markup and runs the JSON-LD, microdata and heuristic extractors."""

    def __init__(self, config: ProviderConfig, page_loader: PageLoader, settings=None):
        super().__init__(config, settings=settings or page_loader.settings, transport=page_loader.transport)
        self.page_loader = page_loader

    async def markup_for(self, source: SourceReference) -> str:
        if source.kind == SourceKind.HTML_BLOB:
            return source.html or ""
        return await self.page_loader.load(self.require_url(source))

    async def _extract(self, source: SourceReference) -> ExtractionResult:
        html = await self.markup_for(source)
        record = extract_recipe_from_markup(html, source.url)
        if record is None:
            raise NoRecipeFound(self.name, "no recipe markup found on page")

        confidence = COMPLETE_CONFIDENCE if record.has_core_fields else PARTIAL_CONFIDENCE
        logger.info(
            "HTML scraping for %s: ingredients=%d, steps=%d, confidence=%.2f",
            source.url,
            len(record.ingredients),
            len(record.instructions),
            confidence,
        )
        return self.success(record, confidence, cost=self.config.cost_per_request)
