"""Schema.org microdata (``itemprop``) recipe extraction."""

import logging
from typing import Optional

from bs4 import BeautifulSoup

from mealforge_import.app.services.extraction.constants import SCHEMA_SELECTORS
from mealforge_import.app.services.extraction.ingredient_parser import parse_ingredient
from mealforge_import.app.services.extraction.models import RecipeRecord
from mealforge_import.app.services.extraction.parsing_utils import (
    absolutize_url,
    clean_text,
    coerce_keywords,
    parse_minutes,
    parse_servings,
)

logger = logging.getLogger(__name__)


def _node_value(node) -> str:
    """Microdata values live in content/datetime/src attributes before text."""
    for attr in ("content", "datetime", "src", "href"):
        value = node.get(attr)
        if value:
            return clean_text(value)
    return clean_text(node.get_text(" ", strip=True))


def extract_recipe_from_microdata(html: str, url: Optional[str] = None, soup: Optional[BeautifulSoup] = None) -> Optional[RecipeRecord]:
    soup = soup or BeautifulSoup(html, "lxml")
    scope = soup.find(attrs={"itemtype": lambda v: bool(v) and "recipe" in v.lower()})
    if scope is None:
        return None

    def one(key: str) -> Optional[str]:
        node = scope.select_one(SCHEMA_SELECTORS[key])
        return _node_value(node) if node is not None else None

    ingredient_lines = [_node_value(n) for n in scope.select(SCHEMA_SELECTORS["ingredients"])]
    instruction_nodes = scope.select(SCHEMA_SELECTORS["instructions"])
    steps = []
    for node in instruction_nodes:
        items = node.find_all("li")
        if items:
            steps.extend(clean_text(li.get_text(" ", strip=True)) for li in items)
        else:
            steps.append(_node_value(node))

    prep = parse_minutes(one("prep_time"))
    cook = parse_minutes(one("cook_time"))
    if prep is None and cook is None:
        prep = parse_minutes(one("total_time"))
    image = one("image")
    tags = coerce_keywords([t for t in (one("category"), one("cuisine")) if t])

    record = RecipeRecord(
        title=one("title") or "",
        description=one("description") or "",
        image_url=absolutize_url(image, url) if image else None,
        prep_time_minutes=prep,
        cook_time_minutes=cook,
        servings=parse_servings(one("servings")),
        cuisine=one("cuisine"),
        tags=tags,
        instructions=[s for s in steps if s],
        ingredients=[parse_ingredient(line) for line in ingredient_lines if line],
        source_url=url,
    )
    logger.info(
        "Microdata recipe: title=%s, ingredients=%d, steps=%d",
        record.title[:50] or "None",
        len(record.ingredients),
        len(record.instructions),
    )
    return record
