"""Markup extractors, tried in order: JSON-LD, microdata, then heuristics."""

import logging
from typing import Optional

from bs4 import BeautifulSoup

from mealforge_import.app.services.extraction.extractors.heuristic import (
    extract_recipe_heuristic,
)
from mealforge_import.app.services.extraction.extractors.microdata import (
    extract_recipe_from_microdata,
)
from mealforge_import.app.services.extraction.extractors.schema_org import (
    extract_recipe_from_schema_org,
)
from mealforge_import.app.services.extraction.models import RecipeRecord

logger = logging.getLogger(__name__)

EXTRACTORS = (
    ("schema_org", extract_recipe_from_schema_org),
    ("microdata", extract_recipe_from_microdata),
    ("heuristic", extract_recipe_heuristic),
)


def fill_missing(base: RecipeRecord, extra: RecipeRecord) -> RecipeRecord:
    """Copy fields from ``extra`` into the blanks of ``base``."""
    updates = {}
    for name in RecipeRecord.model_fields:
        current = getattr(base, name)
        candidate = getattr(extra, name)
        if current in (None, "", []) and candidate not in (None, "", []):
            updates[name] = candidate
    return base.model_copy(update=updates) if updates else base


def extract_recipe_from_markup(html: str, url: Optional[str] = None) -> Optional[RecipeRecord]:
    soup = BeautifulSoup(html, "lxml")
    record: Optional[RecipeRecord] = None
    for name, extractor in EXTRACTORS:
        found = extractor(html, url, soup=soup)
        if found is None:
            continue
        logger.debug("Extractor %s contributed to %s", name, url)
        record = found if record is None else fill_missing(record, found)
        if record.title and record.has_core_fields and record.image_url:
            break
    return record


__all__ = [
    "extract_recipe_from_markup",
    "extract_recipe_from_microdata",
    "extract_recipe_from_schema_org",
    "extract_recipe_heuristic",
    "fill_missing",
]
