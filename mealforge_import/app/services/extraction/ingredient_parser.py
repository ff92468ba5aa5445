"""Ingredient line parsing.

``parse_ingredient`` is total: every input yields a ``ParsedIngredient``. Lines
are matched against an ordered list of structural patterns, most specific
first, and the first pattern whose extractor accepts the match wins. When none
do, the line degrades to ``{1, "piece", <line>, ""}``.
"""

import logging
import math
import re
from decimal import Decimal, InvalidOperation
from typing import Callable, List, NamedTuple, Optional, Tuple

from mealforge_import.app.services.extraction.constants import (
    DESCRIPTIVE_WORDS,
    DISPLAY_FRACTIONS,
    DISPLAY_TOLERANCE,
    FRACTION_CHARS,
    FRACTION_MAP,
    SIZE_UNITS,
    UNIT_ALIASES,
)
from mealforge_import.app.services.extraction.models import ParsedIngredient
from mealforge_import.app.services.extraction.parsing_utils import clean_text

logger = logging.getLogger(__name__)

_NUMBER = r"\d+\s+\d+/\d+|\d+/\d+|\d+(?:\.\d+)?|\.\d+"
QUANTITY = rf"(?P<qty>{_NUMBER})(?:\s*(?:-|–|to)\s*(?:{_NUMBER}))?"

_unit_tokens = sorted(set(UNIT_ALIASES) | SIZE_UNITS, key=len, reverse=True)
UNIT = r"(?P<unit>(?:" + "|".join(re.escape(tok) for tok in _unit_tokens) + r")\.?)(?![a-z])"
MEASURE_UNIT = r"(?P<unit>(?:" + "|".join(
    re.escape(tok) for tok in sorted(UNIT_ALIASES, key=len, reverse=True)
) + r")\.?)(?![a-z])"

bullet_re = re.compile(r"^\s*[-*•·▪◦‣]+\s*")
metric_aside_re = re.compile(r"\s*\(([^)]*\d+\s*(?:g|kg|ml)\b[^)]*)\)", re.I)
mixed_unicode_re = re.compile(rf"(\d+)\s*([{FRACTION_CHARS}])")
lone_unicode_re = re.compile(rf"([{FRACTION_CHARS}])")

Extracted = Tuple[float, str, str, str]


class IngredientPattern(NamedTuple):
    name: str
    regex: "re.Pattern[str]"
    extract: Callable[["re.Match[str]"], Optional[Extracted]]


def parse_quantity(raw: Optional[str]) -> Optional[float]:
    """Parse "1", "0.5", "1/2", "1 1/2" or a unicode fraction into a float.

    Values that do not fit a finite float count as unparsed.
    """
    value = _parse_decimal(raw)
    if value is None or not value.is_finite():
        return None
    number = float(value)
    return number if math.isfinite(number) else None


def _parse_decimal(raw: Optional[str]) -> Optional[Decimal]:
    if raw is None:
        return None
    value = resolve_unicode_fractions(clean_text(raw))
    if not value:
        return None

    try:
        if "/" not in value and " " not in value:
            return Decimal(value)
    except InvalidOperation:
        return None

    try:
        if " " in value:
            whole_part, frac_part = value.split(" ", 1)
            whole = Decimal(whole_part)
            if "/" not in frac_part:
                return whole + Decimal(frac_part)
            num_str, denom_str = frac_part.split("/", 1)
            denom = Decimal(denom_str)
            if denom == 0:
                return None
            return whole + Decimal(num_str) / denom
        num_str, denom_str = value.split("/", 1)
        denom = Decimal(denom_str)
        if denom == 0:
            return None
        return Decimal(num_str) / denom
    except (ArithmeticError, ValueError):
        return None


def format_quantity(value: float) -> str:
    """Render a quantity for display, preferring common kitchen fractions."""
    if value is None or not math.isfinite(value):
        return ""
    whole = int(value)
    frac = value - whole
    if frac < DISPLAY_TOLERANCE:
        return str(whole)
    if 1 - frac < DISPLAY_TOLERANCE:
        return str(whole + 1)
    for decimal, display in DISPLAY_FRACTIONS.items():
        if abs(frac - decimal) <= DISPLAY_TOLERANCE:
            return f"{whole} {display}" if whole else display
    return f"{value:.3f}".rstrip("0").rstrip(".")


def normalize_unit(unit: str) -> str:
    token = clean_text(unit).lower().rstrip(".")
    token = re.sub(r"\s+", " ", token)
    if token in SIZE_UNITS:
        return token
    return UNIT_ALIASES.get(token, token)


def resolve_unicode_fractions(text: str) -> str:
    """Turn "1½" into "1.5" and a lone "¾" into "0.75"."""

    def _mixed(m: "re.Match[str]") -> str:
        return _format_decimal(float(m.group(1)) + FRACTION_MAP[m.group(2)])

    text = mixed_unicode_re.sub(_mixed, text)
    return lone_unicode_re.sub(lambda m: _format_decimal(FRACTION_MAP[m.group(1)]), text)


def _format_decimal(value: float) -> str:
    return f"{value:.3f}".rstrip("0").rstrip(".")


def _split_adjective(name: str) -> Optional[Tuple[str, str]]:
    words = name.split()
    if not words:
        return None
    if words[0].lower() in DESCRIPTIVE_WORDS:
        return " ".join(words[1:]), words[0]
    if words[-1].lower() in DESCRIPTIVE_WORDS:
        return " ".join(words[:-1]), words[-1]
    return None


def _qty(m: "re.Match[str]") -> float:
    parsed = parse_quantity(m.group("qty"))
    return parsed if parsed is not None else 1.0


def _paren_qualifier(m: "re.Match[str]") -> Optional[Extracted]:
    notes = [clean_text(m.group("paren"))]
    if m.group("clause"):
        notes.append(clean_text(m.group("clause")))
    return _qty(m), m.group("unit"), m.group("name"), ", ".join(n for n in notes if n)


def _comma_clause(m: "re.Match[str]") -> Optional[Extracted]:
    return _qty(m), m.group("unit"), m.group("name"), m.group("clause")


def _adjective(m: "re.Match[str]") -> Optional[Extracted]:
    split = _split_adjective(clean_text(m.group("name")))
    if split is None:
        return None
    name, adjective = split
    return _qty(m), m.group("unit"), name, adjective


def _bare(m: "re.Match[str]") -> Optional[Extracted]:
    return _qty(m), m.group("unit"), m.group("name"), ""


def _quantity_only(m: "re.Match[str]") -> Optional[Extracted]:
    name, _, clause = m.group("name").partition(",")
    return _qty(m), "piece", name, clause


def _unit_only(m: "re.Match[str]") -> Optional[Extracted]:
    name, _, clause = m.group("name").partition(",")
    return 1.0, m.group("unit"), name, clause


_NAME = r"(?P<name>[^,]+?)"
_CLAUSE = r"\s*,\s*(?P<clause>.+)"

INGREDIENT_PATTERNS: List[IngredientPattern] = [
    IngredientPattern(
        "paren_qualifier",
        re.compile(rf"^{QUANTITY}\s*{UNIT}\s*\((?P<paren>[^)]*)\)\s*{_NAME}(?:{_CLAUSE})?$", re.I),
        _paren_qualifier,
    ),
    IngredientPattern(
        "paren_qualifier",
        re.compile(rf"^{QUANTITY}\s*\((?P<paren>[^)]*)\)\s*{UNIT}\s+{_NAME}(?:{_CLAUSE})?$", re.I),
        _paren_qualifier,
    ),
    IngredientPattern(
        "comma_clause",
        re.compile(rf"^{QUANTITY}\s*{UNIT}\s+{_NAME}{_CLAUSE}$", re.I),
        _comma_clause,
    ),
    IngredientPattern(
        "adjective",
        re.compile(rf"^{QUANTITY}\s*{UNIT}\s+(?P<name>.+)$", re.I),
        _adjective,
    ),
    IngredientPattern(
        "bare",
        re.compile(rf"^{QUANTITY}\s*{UNIT}\s+(?P<name>.+)$", re.I),
        _bare,
    ),
    IngredientPattern(
        "quantity_only",
        re.compile(rf"^{QUANTITY}\s+(?P<name>.+)$", re.I),
        _quantity_only,
    ),
    IngredientPattern(
        "unit_only",
        re.compile(rf"^(?:an?\s+)?{MEASURE_UNIT}\s+(?:of\s+)?(?P<name>.+)$", re.I),
        _unit_only,
    ),
]


def _fallback(text: str, original: str) -> ParsedIngredient:
    return ParsedIngredient(
        quantity=1.0, unit="piece", name=text, notes="", display_quantity="1", original=original
    )


def parse_ingredient(line: str) -> ParsedIngredient:
    original = line if isinstance(line, str) else str(line or "")
    text = clean_text(bullet_re.sub("", original))
    if not text:
        return _fallback("", original)

    working = resolve_unicode_fractions(text)
    metric_note = ""
    aside = metric_aside_re.search(working)
    if aside:
        metric_note = clean_text(aside.group(1))
        working = clean_text(metric_aside_re.sub("", working, count=1))

    for pattern in INGREDIENT_PATTERNS:
        m = pattern.regex.match(working)
        if not m:
            continue
        extracted = pattern.extract(m)
        if extracted is None:
            continue
        quantity, unit, name, notes = extracted
        name = clean_text(name)
        notes = clean_text(notes or "")
        if metric_note:
            notes = f"{notes}, {metric_note}" if notes else metric_note
            metric_note = ""
        logger.debug("Ingredient %r matched pattern %s", text[:50], pattern.name)
        return ParsedIngredient(
            quantity=max(quantity, 0.0),
            unit=normalize_unit(unit),
            name=name,
            notes=notes,
            display_quantity=format_quantity(quantity),
            original=original,
        )

    logger.debug("Ingredient %r matched no pattern; using fallback", text[:50])
    return _fallback(text, original)


def coerce_ingredients(ingredients) -> List[ParsedIngredient]:
    """Parse ingredients from a list of strings/dicts, or a single string."""
    parsed: List[ParsedIngredient] = []
    if isinstance(ingredients, str):
        ingredients = [line for line in ingredients.splitlines() if line.strip()]
    if not isinstance(ingredients, list):
        if ingredients is not None:
            logger.warning("Ingredients input is not a list or string: %s", type(ingredients).__name__)
        return parsed

    for idx, raw in enumerate(ingredients):
        if isinstance(raw, str):
            if clean_text(raw):
                parsed.append(parse_ingredient(raw))
        elif isinstance(raw, dict):
            name = clean_text(str(raw.get("name") or raw.get("text") or raw.get("original") or ""))
            if not name:
                logger.debug("Ingredient %d: dict had no name/text field", idx)
                continue
            quantity = raw.get("quantity", raw.get("amount"))
            unit = raw.get("unit")
            if quantity in (None, "") and not unit:
                parsed.append(parse_ingredient(name))
                continue
            if isinstance(quantity, (int, float)) and not isinstance(quantity, bool):
                qty = float(quantity)
            else:
                qty = parse_quantity(str(quantity)) if quantity not in (None, "") else None
            qty = qty if qty is not None and math.isfinite(qty) and qty >= 0 else 1.0
            parsed.append(
                ParsedIngredient(
                    quantity=qty,
                    unit=normalize_unit(str(unit)) if unit else "piece",
                    name=name,
                    notes=clean_text(str(raw.get("notes") or "")),
                    display_quantity=format_quantity(qty),
                    original=raw.get("original"),
                )
            )
        else:
            logger.debug("Ingredient %d: unexpected type %s", idx, type(raw).__name__)
    return parsed
