"""Heuristic recipe extraction from common recipe-plugin classes and page structure."""

import re
from typing import List, Optional

from bs4 import BeautifulSoup

from mealforge_import.app.services.extraction.constants import COMMON_SELECTORS
from mealforge_import.app.services.extraction.ingredient_parser import parse_ingredient
from mealforge_import.app.services.extraction.models import RecipeRecord
from mealforge_import.app.services.extraction.parsing_utils import (
    absolutize_url,
    clean_text,
    parse_minutes,
    parse_servings,
    parse_servings_from_text,
)

_unit_hint_re = re.compile(
    r"\d|\b(cup|tsp|tbsp|tablespoon|teaspoon|ounce|oz|gram|kg|ml|l|pound|lb)s?\b", re.I
)
_action_verb_re = re.compile(
    r"\b(cook|bake|add|mix|stir|heat|pour|season|chop|slice|dice|mince|preheat|whisk|combine)\b", re.I
)


def _find_ingredient_items(container) -> List[str]:
    """Find likely ingredient items in a container element."""
    candidates = container.find_all(["ul", "ol"])
    best_items: List[str] = []
    best_score = -1
    for lst in candidates:
        items = [li.get_text(" ", strip=True) for li in lst.find_all("li")]
        if len(items) < 2:
            continue
        matches = sum(1 for item in items if _unit_hint_re.search(item))
        if matches < max(2, len(items) // 2):
            continue
        score = matches * 2 + len(items)
        if score > best_score:
            best_score = score
            best_items = items
    return [clean_text(i) for i in best_items if clean_text(i)]


def _find_instruction_items(container) -> List[str]:
    """Find likely instruction items in a container element."""
    steps: List[str] = []

    # Strategy 1: a heading followed by a list or paragraphs
    heading = container.find(string=re.compile(r"direction|instruction|method|preparation", re.I))
    if heading and heading.parent:
        sibling = heading.parent.find_next_sibling(["ol", "ul", "div", "section", "p"])
        if sibling is not None:
            if sibling.name in {"ol", "ul"}:
                steps = [li.get_text(" ", strip=True) for li in sibling.find_all("li")]
            else:
                steps = [p.get_text(" ", strip=True) for p in sibling.find_all("p")] or [
                    li.get_text(" ", strip=True) for li in sibling.find_all("li")
                ]

    # Strategy 2: the ordered list that reads most like steps
    if not steps:
        best_score = 0
        for ol in container.find_all("ol"):
            items = [li.get_text(" ", strip=True) for li in ol.find_all("li")]
            score = len(items) + 2 * sum(1 for item in items if _action_verb_re.search(item))
            if score > best_score:
                best_score = score
                steps = items

    return [clean_text(s) for s in steps if clean_text(s)]


def _select_texts(soup: BeautifulSoup, selectors: List[str]) -> List[str]:
    for selector in selectors:
        nodes = soup.select(selector)
        texts = [clean_text(n.get("content") or n.get_text(" ", strip=True)) for n in nodes]
        texts = [t for t in texts if t]
        if texts:
            return texts
    return []


def _select_first(soup: BeautifulSoup, selectors: List[str], attrs=("content",)) -> Optional[str]:
    for selector in selectors:
        node = soup.select_one(selector)
        if node is None:
            continue
        for attr in attrs:
            if node.get(attr):
                return clean_text(node.get(attr))
        text = clean_text(node.get_text(" ", strip=True))
        if text:
            return text
    return None


def extract_recipe_heuristic(html: str, url: Optional[str] = None, soup: Optional[BeautifulSoup] = None) -> Optional[RecipeRecord]:
    """Extract a (possibly partial) recipe using class-name heuristics and page structure."""
    soup = soup or BeautifulSoup(html, "lxml")
    title = _select_first(soup, COMMON_SELECTORS["title"]) or (
        clean_text(soup.title.get_text()) if soup.title else ""
    )
    ingredient_lines = _select_texts(soup, COMMON_SELECTORS["ingredients"])
    steps = _select_texts(soup, COMMON_SELECTORS["instructions"])

    container = find_main_node(soup)
    if container is not None:
        if not ingredient_lines:
            ingredient_lines = _find_ingredient_items(container)
        if not steps:
            steps = [s for s in _find_instruction_items(container) if s not in ingredient_lines]

    servings = parse_servings(_select_first(soup, COMMON_SELECTORS["servings"]))
    if servings is None and container is not None:
        servings = parse_servings_from_text(container.get_text(" ", strip=True))
    image = _select_first(soup, COMMON_SELECTORS["image"], attrs=("content", "src", "data-src"))

    if not (title or ingredient_lines or steps):
        return None
    return RecipeRecord(
        title=title or "",
        description=_select_first(soup, COMMON_SELECTORS["description"]) or "",
        image_url=absolutize_url(image, url) if image else None,
        prep_time_minutes=parse_minutes(_select_first(soup, COMMON_SELECTORS["prep_time"])),
        cook_time_minutes=parse_minutes(_select_first(soup, COMMON_SELECTORS["cook_time"])),
        servings=servings,
        instructions=steps,
        ingredients=[parse_ingredient(line) for line in ingredient_lines],
        source_url=url,
    )


def clean_soup_for_content(soup: BeautifulSoup) -> None:
    """Remove obvious boilerplate nodes before extracting candidate content."""
    for noisy in soup.find_all(["header", "footer", "nav", "aside", "form"]):
        noisy.decompose()
    for tag in soup.find_all(["script", "style", "noscript", "link"]):
        tag.decompose()


def find_main_node(soup: BeautifulSoup):
    """Find the main content node in the soup."""
    return (
        soup.find(attrs={"itemtype": re.compile("Recipe", re.I)})
        or soup.find("article")
        or soup.find("main")
        or soup.find(class_=re.compile("recipe|post|content", re.I))
        or soup.body
    )
