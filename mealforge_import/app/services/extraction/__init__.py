"""Recipe extraction: fallback orchestration across families plus field-level aggregation."""

from mealforge_import.app.services.extraction.aggregator import MultiSourceAggregator
from mealforge_import.app.services.extraction.ingredient_parser import parse_ingredient
from mealforge_import.app.services.extraction.models import (
    ExtractionMethod,
    ExtractionResult,
    ImportOutcome,
    ParsedIngredient,
    RecipeRecord,
    SourceKind,
    SourceReference,
)
from mealforge_import.app.services.extraction.orchestrator import ExtractionOrchestrator
from mealforge_import.app.services.extraction.pipeline import RecipeImportPipeline
from mealforge_import.app.services.extraction.rate_limiter import RateLimiter
from mealforge_import.app.services.extraction.validator import RecipeValidator

__all__ = [
    "ExtractionMethod",
    "ExtractionOrchestrator",
    "ExtractionResult",
    "ImportOutcome",
    "MultiSourceAggregator",
    "ParsedIngredient",
    "RateLimiter",
    "RecipeImportPipeline",
    "RecipeRecord",
    "RecipeValidator",
    "SourceKind",
    "SourceReference",
    "parse_ingredient",
]
