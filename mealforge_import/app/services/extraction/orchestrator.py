"""Fixed-order fallback chain across the four extraction families.

    Start -> html-scraping -> professional-api -> ai-parsing -> browser-automation
          -> Succeeded | FallbackUsed

A family ends the chain when its representative result is sufficient. The
last family only needs to succeed. Every family's result is kept so the
aggregator can reuse partial data from families that fell short.
"""

import logging
from typing import Dict, List, Optional

from mealforge_import.app.core.config import Settings, get_settings
from mealforge_import.app.services.extraction.constants import (
    FALLBACK_CONFIDENCE_MAX,
    FALLBACK_CONFIDENCE_MIN,
    FIELD_DEFAULTS,
    DEFAULT_TITLE,
)
from mealforge_import.app.services.extraction.errors import ExtractionErrorCode
from mealforge_import.app.services.extraction.family import FamilyRunner
from mealforge_import.app.services.extraction.models import (
    FAMILY_ORDER,
    ExtractionMethod,
    ExtractionResult,
    OrchestrationResult,
    RecipeRecord,
    SourceReference,
)
from mealforge_import.app.services.extraction.url_normalizer import title_from_url

logger = logging.getLogger(__name__)


class ExtractionOrchestrator:
    def __init__(self, family_runner: FamilyRunner, settings: Optional[Settings] = None):
        self.family_runner = family_runner
        self.settings = settings or get_settings()

    def is_sufficient(self, result: ExtractionResult) -> bool:
        return (
            result.success
            and result.has_core_fields
            and result.confidence >= self.settings.family_sufficiency_confidence
        )

    async def run(self, source: SourceReference) -> OrchestrationResult:
        family_results: Dict[ExtractionMethod, ExtractionResult] = {}
        attempts: List[ExtractionResult] = []
        last = FAMILY_ORDER[-1]

        for family in FAMILY_ORDER:
            logger.info("Trying %s for %s", family.value, source.url or source.kind.value)
            result, family_attempts = await self.family_runner.run(family, source)
            family_results[family] = result
            attempts.extend(family_attempts)

            done = result.success if family == last else self.is_sufficient(result)
            if done:
                logger.info(
                    "%s satisfied %s (provider=%s, confidence=%.2f)",
                    family.value,
                    source.url or source.kind.value,
                    result.provider_name,
                    result.confidence,
                )
                return OrchestrationResult(
                    state="succeeded",
                    satisfied_by=family,
                    family_results=family_results,
                    attempts=attempts,
                )
            if result.success:
                logger.info(
                    "%s insufficient (%s): ingredients=%d, steps=%d, confidence=%.2f",
                    family.value,
                    ExtractionErrorCode.FAMILY_INSUFFICIENT_DATA.value,
                    len(result.data.ingredients) if result.data else 0,
                    len(result.data.instructions) if result.data else 0,
                    result.confidence,
                )

        logger.warning(
            "%s for %s; using fallback record",
            ExtractionErrorCode.ALL_FAMILIES_EXHAUSTED.value,
            source.url or source.kind.value,
        )
        record = self.fallback_record(source)
        return OrchestrationResult(
            state="fallback_used",
            family_results=family_results,
            attempts=attempts,
            fallback_record=record,
            fallback_confidence=self.fallback_confidence(record, family_results),
        )

    @staticmethod
    def fallback_record(source: SourceReference) -> RecipeRecord:
        title = title_from_url(source.url) if source.url else (source.filename or DEFAULT_TITLE)
        return RecipeRecord(
            title=title,
            description=FIELD_DEFAULTS["description"],
            instructions=list(FIELD_DEFAULTS["instructions"]),
            ingredients=[],
            source_url=source.url,
        )

    @staticmethod
    def fallback_confidence(record: RecipeRecord, family_results: Dict[ExtractionMethod, ExtractionResult]) -> float:
        confidence = FALLBACK_CONFIDENCE_MIN
        if record.title != DEFAULT_TITLE:
            confidence += 0.1
        if any(r.data is not None for r in family_results.values()):
            confidence += 0.1
        return min(max(confidence, FALLBACK_CONFIDENCE_MIN), FALLBACK_CONFIDENCE_MAX)
