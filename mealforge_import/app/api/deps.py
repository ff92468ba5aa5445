from functools import lru_cache

from mealforge_import.app.core.config import get_settings
from mealforge_import.app.services.extraction.pipeline import RecipeImportPipeline


@lru_cache
def get_pipeline() -> RecipeImportPipeline:
    return RecipeImportPipeline(settings=get_settings())
