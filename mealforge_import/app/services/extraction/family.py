import asyncio
import logging
from typing import Dict, List, Optional, Tuple

from mealforge_import.app.core.config import Settings, get_settings
from mealforge_import.app.services.extraction.errors import (
    ExtractionErrorCode,
    ProviderRateLimited,
    ProviderTimeout,
    ProviderUnconfigured,
)
from mealforge_import.app.services.extraction.models import (
    ExtractionMethod,
    ExtractionResult,
    SourceReference,
)
from mealforge_import.app.services.extraction.providers.base import ProviderAdapter
from mealforge_import.app.services.extraction.providers.registry import ProviderRegistry
from mealforge_import.app.services.extraction.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)


def family_timeouts(settings: Settings) -> Dict[ExtractionMethod, float]:
    return {
        ExtractionMethod.HTML_SCRAPING: settings.html_scraping_timeout_seconds,
        ExtractionMethod.PROFESSIONAL_API: settings.professional_api_timeout_seconds,
        ExtractionMethod.AI_PARSING: settings.ai_parsing_timeout_seconds,
        ExtractionMethod.BROWSER_AUTOMATION: settings.browser_automation_timeout_seconds,
    }


def pick_best(results: List[ExtractionResult]) -> Optional[ExtractionResult]:
    """Highest-confidence successful result; earlier (higher priority) wins ties."""
    best: Optional[ExtractionResult] = None
    for result in results:
        if result.success and (best is None or result.confidence > best.confidence):
            best = result
    return best


class FamilyRunner:
    """Tries one family's providers in priority order under the shared rate limiter."""

    def __init__(
        self,
        registry: ProviderRegistry,
        rate_limiter: RateLimiter,
        settings: Optional[Settings] = None,
    ):
        self.registry = registry
        self.rate_limiter = rate_limiter
        self.settings = settings or get_settings()
        self.timeouts = family_timeouts(self.settings)

    def _early_exit(self, result: ExtractionResult) -> bool:
        return result.success and result.confidence > self.settings.provider_early_exit_confidence

    async def call_provider(self, adapter: ProviderAdapter, source: SourceReference) -> ExtractionResult:
        """One gated, time-boxed provider call. Never raises."""
        if not adapter.is_configured():
            exc = ProviderUnconfigured(adapter.name, adapter.config.credential_setting)
            logger.warning("Skipping %s: %s", adapter.name, exc.message)
            return adapter.failure(exc.code, exc.message)
        if not self.rate_limiter.try_acquire(adapter.name):
            exc = ProviderRateLimited(adapter.name, self.rate_limiter.retry_after(adapter.name))
            logger.warning("Skipping %s: %s", adapter.name, exc.message)
            return adapter.failure(exc.code, exc.message)

        timeout = self.timeouts.get(adapter.family, 30.0)
        try:
            return await asyncio.wait_for(adapter.extract(source), timeout=timeout)
        except asyncio.TimeoutError:
            exc = ProviderTimeout(adapter.name, timeout)
            logger.warning("Provider %s: %s", adapter.name, exc.message)
            return adapter.failure(exc.code, exc.message)
        except Exception as exc:
            logger.exception("Provider %s raised out of extract", adapter.name)
            return adapter.failure(
                ExtractionErrorCode.PROVIDER_BAD_RESPONSE, f"Unexpected {type(exc).__name__}: {exc}"
            )

    def eligible(self, family: ExtractionMethod, source: SourceReference) -> List[ProviderAdapter]:
        return [
            adapter
            for adapter in self.registry.for_family(family)
            if adapter.config.enabled and adapter.supports(source)
        ]

    async def run(
        self, family: ExtractionMethod, source: SourceReference
    ) -> Tuple[ExtractionResult, List[ExtractionResult]]:
        """Return the family's representative result and every provider attempt."""
        adapters = self.eligible(family, source)
        if not adapters:
            logger.info("No enabled %s providers handle %s sources", family.value, source.kind.value)
            return (
                ExtractionResult.failure(
                    family.value,
                    ExtractionErrorCode.PROVIDER_UNCONFIGURED,
                    "no enabled providers for this source",
                    family=family,
                ),
                [],
            )

        if self.settings.concurrent_provider_calls and len(adapters) > 1:
            attempts = await self._run_concurrently(adapters, source)
        else:
            attempts = await self._run_sequentially(adapters, source)
        return self.representative(family, attempts), attempts

    async def _run_sequentially(self, adapters: List[ProviderAdapter], source: SourceReference) -> List[ExtractionResult]:
        attempts: List[ExtractionResult] = []
        for adapter in adapters:
            result = await self.call_provider(adapter, source)
            attempts.append(result)
            if self._early_exit(result):
                logger.info("Early exit in %s: %s at %.2f", adapter.family.value, adapter.name, result.confidence)
                break
        return attempts

    async def _run_concurrently(self, adapters: List[ProviderAdapter], source: SourceReference) -> List[ExtractionResult]:
        async def indexed(idx: int, adapter: ProviderAdapter) -> Tuple[int, ExtractionResult]:
            return idx, await self.call_provider(adapter, source)

        tasks = [asyncio.create_task(indexed(i, adapter)) for i, adapter in enumerate(adapters)]
        finished: Dict[int, ExtractionResult] = {}
        try:
            for next_done in asyncio.as_completed(tasks):
                idx, result = await next_done
                finished[idx] = result
                if self._early_exit(result):
                    logger.info("Early exit: %s at %.2f; cancelling siblings", result.provider_name, result.confidence)
                    break
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
        # Priority order keeps tie-breaking identical to the sequential path.
        return [finished[i] for i in sorted(finished)]

    @staticmethod
    def representative(family: ExtractionMethod, attempts: List[ExtractionResult]) -> ExtractionResult:
        best = pick_best(attempts)
        if best is not None:
            return best
        with_data = [a for a in attempts if a.data is not None]
        if with_data:
            return with_data[0]
        if attempts:
            return attempts[-1]
        return ExtractionResult.failure(
            family.value, ExtractionErrorCode.NO_RECIPE_FOUND, "no provider attempts", family=family
        )
