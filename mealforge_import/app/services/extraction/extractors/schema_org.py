"""Schema.org JSON-LD recipe extraction."""

import json
import logging
from typing import Iterator, List, Optional

from bs4 import BeautifulSoup

from mealforge_import.app.services.extraction.ingredient_parser import coerce_ingredients
from mealforge_import.app.services.extraction.models import RecipeRecord
from mealforge_import.app.services.extraction.parsing_utils import (
    clean_text,
    coerce_keywords,
    extract_image,
    extract_instruction_text,
    first_text,
    parse_minutes,
    parse_servings,
)

logger = logging.getLogger(__name__)


def _is_recipe(obj: dict) -> bool:
    obj_type = obj.get("@type")
    types = [obj_type] if isinstance(obj_type, str) else (obj_type or [])
    return any(str(t).lower() == "recipe" for t in types)


def iter_json_ld(soup: BeautifulSoup) -> Iterator[dict]:
    """Yield every JSON-LD object on the page, flattening lists and @graph."""
    scripts = soup.find_all("script", attrs={"type": "application/ld+json"})
    logger.debug("Found %d JSON-LD script blocks", len(scripts))
    for idx, script in enumerate(scripts):
        raw_json = script.string or script.get_text()
        if not raw_json or not raw_json.strip():
            continue
        try:
            data = json.loads(raw_json)
        except ValueError as exc:
            logger.warning("JSON-LD block %d failed to parse: %s", idx, exc)
            continue

        stack = data if isinstance(data, list) else [data]
        for obj in stack:
            if not isinstance(obj, dict):
                continue
            graph = obj.get("@graph")
            if isinstance(graph, list):
                for item in graph:
                    if isinstance(item, dict):
                        yield item
            yield obj


def find_recipe_object(soup: BeautifulSoup) -> Optional[dict]:
    for obj in iter_json_ld(soup):
        if _is_recipe(obj):
            return obj
    return None


def extract_recipe_from_schema_org(html: str, url: Optional[str] = None, soup: Optional[BeautifulSoup] = None) -> Optional[RecipeRecord]:
    """Extract a (possibly partial) recipe from schema.org JSON-LD data."""
    soup = soup or BeautifulSoup(html, "lxml")
    obj = find_recipe_object(soup)
    if obj is None:
        return None

    title = clean_text(first_text(obj.get("name")) or "")
    ingredients = coerce_ingredients(obj.get("recipeIngredient") or obj.get("ingredients") or [])
    steps = extract_instruction_text(obj.get("recipeInstructions") or [])

    all_keywords: List = []
    for key in ("keywords", "recipeCategory", "recipeCuisine"):
        value = obj.get(key)
        if isinstance(value, list):
            all_keywords.extend(value)
        elif value:
            all_keywords.append(value)

    prep = parse_minutes(obj.get("prepTime"))
    cook = parse_minutes(obj.get("cookTime"))
    if prep is None and cook is None:
        prep = parse_minutes(obj.get("totalTime"))

    logger.info(
        "Schema.org recipe: title=%s, ingredients=%d, steps=%d",
        title[:50] if title else "None",
        len(ingredients),
        len(steps),
    )
    return RecipeRecord(
        title=title,
        description=clean_text(first_text(obj.get("description")) or ""),
        image_url=extract_image(obj.get("image"), base_url=url),
        prep_time_minutes=prep,
        cook_time_minutes=cook,
        servings=parse_servings(obj.get("recipeYield")),
        cuisine=first_text(obj.get("recipeCuisine")),
        tags=coerce_keywords(all_keywords),
        instructions=steps,
        ingredients=ingredients,
        source_url=url,
    )
