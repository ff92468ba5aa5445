"""End-to-end import: normalize -> orchestrate -> aggregate -> validate."""

import logging
from typing import Optional

import httpx

from mealforge_import.app.core.config import Settings, get_settings
from mealforge_import.app.services.extraction.aggregator import MultiSourceAggregator
from mealforge_import.app.services.extraction.family import FamilyRunner
from mealforge_import.app.services.extraction.html_fetcher import PageLoader
from mealforge_import.app.services.extraction.models import (
    ExtractionMethod,
    ImportOutcome,
    SourceKind,
    SourceReference,
)
from mealforge_import.app.services.extraction.orchestrator import ExtractionOrchestrator
from mealforge_import.app.services.extraction.providers.registry import (
    ProviderRegistry,
    build_default_registry,
)
from mealforge_import.app.services.extraction.rate_limiter import RateLimiter
from mealforge_import.app.services.extraction.url_normalizer import clean_url, resolve_print_variant
from mealforge_import.app.services.extraction.validator import RecipeValidator

logger = logging.getLogger(__name__)

URL_KINDS = {SourceKind.URL, SourceKind.VIDEO_URL}


class RecipeImportPipeline:
    """One import facade with its own registry, rate limiter and page cache."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        registry: Optional[ProviderRegistry] = None,
        rate_limiter: Optional[RateLimiter] = None,
        page_loader: Optional[PageLoader] = None,
        aggregator: Optional[MultiSourceAggregator] = None,
        validator: Optional[RecipeValidator] = None,
    ):
        self.settings = settings or get_settings()
        self.transport = transport
        self.page_loader = page_loader or PageLoader(self.settings, transport=transport)
        self.registry = registry or build_default_registry(self.settings, self.page_loader)
        self.rate_limiter = rate_limiter or RateLimiter(self.registry.rate_limits())
        self.family_runner = FamilyRunner(self.registry, self.rate_limiter, self.settings)
        self.orchestrator = ExtractionOrchestrator(self.family_runner, self.settings)
        self.aggregator = aggregator or MultiSourceAggregator()
        self.validator = validator or RecipeValidator()

    async def prepare(self, source: SourceReference) -> SourceReference:
        """Strip tracking params and, when enabled, point fetches at a print view."""
        if source.kind not in URL_KINDS or not source.url:
            return source
        cleaned = clean_url(source.url)
        if cleaned != source.url:
            logger.debug("Cleaned %s -> %s", source.url, cleaned)
            source = source.model_copy(update={"url": cleaned, "fetch_url": cleaned})
        if self.settings.resolve_print_urls and source.kind == SourceKind.URL:
            fetch_url = await resolve_print_variant(
                cleaned,
                timeout=self.settings.print_probe_timeout_seconds,
                user_agent=self.settings.scraper_user_agent,
                transport=self.transport,
            )
            if fetch_url != cleaned:
                source = source.with_fetch_url(fetch_url)
        return source

    async def run(self, source: SourceReference) -> ImportOutcome:
        source = await self.prepare(source)
        orchestration = await self.orchestrator.run(source)

        fallback_used = orchestration.state == "fallback_used"
        aggregation = self.aggregator.aggregate(
            orchestration.family_results,
            fallback=orchestration.fallback_record if fallback_used else None,
        )
        if fallback_used:
            method = ExtractionMethod.FALLBACK
            confidence = orchestration.fallback_confidence
        else:
            method = orchestration.satisfied_by
            confidence = aggregation.confidence

        recipe = aggregation.record
        if recipe.source_url is None and source.url:
            recipe = recipe.model_copy(update={"source_url": source.url})
        validation = self.validator.validate(recipe, url=source.url)

        outcome = ImportOutcome(
            recipe=recipe,
            confidence=confidence,
            extraction_method=method,
            validation=validation,
            total_cost=round(orchestration.total_cost, 6),
            needs_review=fallback_used or not validation.is_valid,
            recommendations=aggregation.recommendations,
            field_confidences=aggregation.field_confidences,
            attempts=orchestration.attempts,
        )
        logger.info(
            "Imported %s via %s: confidence=%.2f, cost=%.4f, needs_review=%s",
            source.url or source.filename or source.kind.value,
            method.value,
            outcome.confidence,
            outcome.total_cost,
            outcome.needs_review,
        )
        return outcome

    async def import_url(self, url: str, hints: Optional[dict] = None) -> ImportOutcome:
        return await self.run(SourceReference.from_url(url, hints=hints))

    async def import_html(self, html: str, source_url: Optional[str] = None) -> ImportOutcome:
        return await self.run(SourceReference.from_html(html, source_url=source_url))

    async def import_video(self, filename: str, content_type: Optional[str], data: bytes) -> ImportOutcome:
        source = SourceReference.from_video_file(
            filename, content_type, data, max_bytes=self.settings.video_max_bytes
        )
        return await self.run(source)
