"""Third-party recipe APIs: Spoonacular, Zestful and Chefkoch."""

import logging
import math
import re
from typing import List, Optional

from bs4 import BeautifulSoup

from mealforge_import.app.services.extraction.errors import NoRecipeFound, UnsupportedSource
from mealforge_import.app.services.extraction.extractors import extract_recipe_from_markup
from mealforge_import.app.services.extraction.html_fetcher import PageLoader
from mealforge_import.app.services.extraction.ingredient_parser import format_quantity, normalize_unit
from mealforge_import.app.services.extraction.models import (
    ExtractionResult,
    ParsedIngredient,
    ProviderConfig,
    RecipeRecord,
    SourceKind,
    SourceReference,
)
from mealforge_import.app.services.extraction.parsing_utils import (
    clean_text,
    coerce_keywords,
    extract_instruction_text,
    parse_minutes,
)
from mealforge_import.app.services.extraction.providers.base import ProviderAdapter

logger = logging.getLogger(__name__)


def _strip_html(value: Optional[str]) -> str:
    if not value:
        return ""
    return clean_text(BeautifulSoup(value, "lxml").get_text(" "))


def _ingredient(name: str, amount, unit: Optional[str], notes: str = "", original: Optional[str] = None) -> ParsedIngredient:
    try:
        quantity = float(amount) if amount not in (None, "") else 1.0
    except (TypeError, ValueError, OverflowError):
        quantity = 1.0
    quantity = quantity if math.isfinite(quantity) and quantity >= 0 else 1.0
    return ParsedIngredient(
        quantity=quantity,
        unit=normalize_unit(unit) if unit else "piece",
        name=clean_text(name),
        notes=clean_text(notes),
        display_quantity=format_quantity(quantity),
        original=original,
    )


class SpoonacularProvider(ProviderAdapter):
    """``GET /recipes/extract`` on the Spoonacular food API."""

    async def _extract(self, source: SourceReference) -> ExtractionResult:
        url = self.require_url(source)
        async with self.http_client(timeout=self.settings.professional_api_timeout_seconds) as client:
            resp = await client.get(
                f"{self.settings.spoonacular_base_url}/recipes/extract",
                params={"url": url, "forceExtraction": "true", "analyze": "false", "apiKey": self.credential()},
            )
        resp.raise_for_status()
        try:
            record = self.to_record(resp.json(), source.url or url)
        except (ValueError, KeyError, TypeError, AttributeError) as exc:
            raise self.bad_response(f"Unexpected response body: {exc}")
        if not record.title and not record.ingredients:
            raise NoRecipeFound(self.name, "API returned no recipe", cost=self.config.cost_per_request)
        return self.success(record, self.config.confidence, cost=self.config.cost_per_request)

    @staticmethod
    def to_record(data: dict, url: str) -> RecipeRecord:
        ingredients = [
            _ingredient(
                item.get("nameClean") or item.get("name") or "",
                item.get("amount"),
                item.get("unit"),
                original=item.get("original"),
            )
            for item in data.get("extendedIngredients") or []
            if item.get("nameClean") or item.get("name")
        ]
        steps: List[str] = []
        for block in data.get("analyzedInstructions") or []:
            steps.extend(clean_text(step.get("step") or "") for step in block.get("steps") or [])
        if not steps and data.get("instructions"):
            soup = BeautifulSoup(data["instructions"], "lxml")
            items = [li.get_text(" ", strip=True) for li in soup.find_all("li")]
            steps = items or extract_instruction_text(soup.get_text("\n"))
        prep = data.get("preparationMinutes")
        return RecipeRecord(
            title=clean_text(data.get("title") or ""),
            description=_strip_html(data.get("summary")),
            image_url=data.get("image"),
            prep_time_minutes=prep if isinstance(prep, int) and prep > 0 else parse_minutes(data.get("readyInMinutes")),
            cook_time_minutes=data.get("cookingMinutes") if (data.get("cookingMinutes") or 0) > 0 else None,
            servings=data.get("servings"),
            cuisine=(data.get("cuisines") or [None])[0],
            tags=coerce_keywords((data.get("dishTypes") or []) + (data.get("diets") or [])),
            instructions=[s for s in steps if s],
            ingredients=ingredients,
            source_url=url,
        )


class ZestfulProvider(ProviderAdapter):
    """Zestful ingredient parser (RapidAPI). Only structures ingredient lines."""

    def __init__(self, config: ProviderConfig, page_loader: PageLoader, settings=None):
        super().__init__(config, settings=settings or page_loader.settings, transport=page_loader.transport)
        self.page_loader = page_loader

    async def _ingredient_lines(self, source: SourceReference) -> tuple[List[str], Optional[RecipeRecord]]:
        hinted = source.hints.get("ingredient_text")
        if hinted:
            lines = hinted if isinstance(hinted, list) else str(hinted).splitlines()
            return [clean_text(line) for line in lines if clean_text(line)], None
        if source.kind == SourceKind.HTML_BLOB:
            html = source.html or ""
        else:
            html = await self.page_loader.load(self.require_url(source))
        page = extract_recipe_from_markup(html, source.url)
        if page is None:
            return [], None
        return [ing.original or ing.name for ing in page.ingredients], page

    async def _extract(self, source: SourceReference) -> ExtractionResult:
        lines, page = await self._ingredient_lines(source)
        if not lines:
            raise NoRecipeFound(self.name, "no ingredient lines to parse")
        host = self.settings.zestful_base_url.split("://", 1)[-1].rstrip("/")
        async with self.http_client(timeout=self.settings.professional_api_timeout_seconds) as client:
            resp = await client.post(
                f"{self.settings.zestful_base_url}/parseIngredients",
                json={"ingredients": lines[:100]},
                headers={"X-RapidAPI-Key": self.credential(), "X-RapidAPI-Host": host},
            )
        resp.raise_for_status()
        try:
            results = resp.json()["results"]
            ingredients = []
            for item in results:
                parsed = item.get("ingredientParsed") or {}
                product = parsed.get("product")
                if not product:
                    continue
                notes = ", ".join(
                    n for n in (parsed.get("productSizeModifier"), parsed.get("preparationNotes")) if n
                )
                ingredients.append(
                    _ingredient(product, parsed.get("quantity"), parsed.get("unit"), notes, item.get("ingredientRaw"))
                )
        except (ValueError, KeyError, TypeError, AttributeError) as exc:
            raise self.bad_response(f"Unexpected response body: {exc}")
        if not ingredients:
            raise NoRecipeFound(self.name, "no ingredients parsed", cost=self.config.cost_per_request)

        base = page or RecipeRecord(source_url=source.url)
        record = base.model_copy(update={"ingredients": ingredients})
        return self.success(record, self.config.confidence, cost=self.config.cost_per_request)


_chefkoch_id_re = re.compile(r"/rezepte/(\d+)")


class ChefkochProvider(ProviderAdapter):
    """Chefkoch recipe API; only applies to chefkoch.de recipe URLs."""

    async def _extract(self, source: SourceReference) -> ExtractionResult:
        url = self.require_url(source)
        match = _chefkoch_id_re.search(url)
        if "chefkoch." not in url or not match:
            raise UnsupportedSource(self.name, "not a chefkoch recipe URL")
        async with self.http_client(timeout=self.settings.professional_api_timeout_seconds) as client:
            resp = await client.get(
                f"{self.settings.chefkoch_base_url}/v2/recipes/{match.group(1)}",
                headers={"X-Api-Key": self.credential()},
            )
        resp.raise_for_status()
        try:
            record = self.to_record(resp.json(), source.url or url)
        except (ValueError, KeyError, TypeError, AttributeError) as exc:
            raise self.bad_response(f"Unexpected response body: {exc}")
        return self.success(record, self.config.confidence, cost=self.config.cost_per_request)

    @staticmethod
    def to_record(data: dict, url: str) -> RecipeRecord:
        ingredients = []
        for group in data.get("ingredientGroups") or []:
            for item in group.get("ingredients") or []:
                if item.get("name"):
                    ingredients.append(
                        _ingredient(item["name"], item.get("amount"), item.get("unit"), item.get("usageInfo") or "")
                    )
        image = data.get("previewImageUrlTemplate")
        if image:
            image = image.replace("<format>", "crop-960x640")
        return RecipeRecord(
            title=clean_text(data.get("title") or ""),
            description=clean_text(data.get("subtitle") or ""),
            image_url=image,
            prep_time_minutes=parse_minutes(data.get("preparationTime")),
            cook_time_minutes=parse_minutes(data.get("cookingTime")),
            servings=data.get("servings"),
            tags=coerce_keywords(data.get("tags") or []),
            instructions=extract_instruction_text(data.get("instructions") or ""),
            ingredients=ingredients,
            source_url=url,
        )
