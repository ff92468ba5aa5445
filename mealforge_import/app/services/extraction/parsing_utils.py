"""General parsing utilities for recipe extraction."""

import math
import re
from typing import List, Optional, Sequence
from urllib.parse import urljoin


def clean_text(text: str) -> str:
    """Normalize whitespace in text."""
    return re.sub(r"\s+", " ", text or "").strip()


def to_int(value) -> Optional[int]:
    """Whole-number conversion that yields None for unparseable or non-finite input."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return None
    if not math.isfinite(number):
        return None
    return int(number)


def parse_iso8601_duration(duration: str) -> Optional[int]:
    """Parse a minimal ISO-8601 duration string (e.g., PT1H30M) into minutes."""
    if not duration:
        return None
    match = re.fullmatch(r"P(?:(\d+)D)?T?(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?", duration.strip(), flags=re.I)
    if not match or not any(match.groups()):
        return None
    parts = [to_int(group or 0) for group in match.groups()]
    if None in parts:
        return None
    days, hours, minutes, seconds = parts
    total_minutes = days * 24 * 60 + hours * 60 + minutes + (1 if seconds >= 30 else 0)
    return total_minutes or None


def parse_minutes(value) -> Optional[int]:
    """Parse a minutes value from ISO durations, "1 hr 20 mins" text, or bare numbers."""
    if value is None:
        return None
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return to_int(value)
    if not isinstance(value, str):
        return None
    text = value.strip()
    if not text:
        return None
    iso_minutes = parse_iso8601_duration(text)
    if iso_minutes is not None:
        return iso_minutes
    hours = re.search(r"(\d+(?:\.\d+)?)\s*(?:h|hr|hrs|hour|hours)\b", text, flags=re.I)
    minutes = re.search(r"(\d+)\s*(?:m|min|mins|minute|minutes)\b", text, flags=re.I)
    if hours or minutes:
        total = 0.0
        if hours:
            total += float(hours.group(1)) * 60
        if minutes:
            total += float(minutes.group(1))
        return to_int(total)
    bare = re.fullmatch(r"(\d+)", text)
    if bare:
        return to_int(bare.group(1))
    return None


def parse_servings(value) -> Optional[int]:
    """Parse servings from various formats."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return to_int(value)
    if isinstance(value, list):
        for item in value:
            parsed = parse_servings(item)
            if parsed is not None:
                return parsed
        return None
    if isinstance(value, str):
        match = re.search(r"\d+", value)
        if match:
            return to_int(match.group())
    return None


def parse_servings_from_text(text: str) -> Optional[int]:
    """Extract servings from descriptive text."""
    if not text:
        return None
    patterns = [
        r"serves\s+(\d+)",
        r"serve[s]?:\s*(\d+)",
        r"servings?:?\s*(\d+)",
        r"yield[s]?:\s*(\d+)",
        r"makes\s+(\d+)",
    ]
    lowered = text.lower()
    for pat in patterns:
        m = re.search(pat, lowered)
        if m:
            return to_int(m.group(1))
    return None


def extract_image(value, base_url: Optional[str] = None) -> Optional[str]:
    """Extract image URL from various schema.org image formats."""
    url = None
    if isinstance(value, str):
        url = value
    elif isinstance(value, dict):
        url = value.get("url") or value.get("contentUrl")
    elif isinstance(value, list):
        for item in value:
            url = extract_image(item)
            if url:
                break
    if not url:
        return None
    return absolutize_url(url, base_url)


def absolutize_url(url: str, base_url: Optional[str]) -> str:
    url = url.strip()
    if base_url and not re.match(r"^https?://", url, flags=re.I):
        return urljoin(base_url, url)
    return url


def extract_instruction_text(instructions) -> List[str]:
    """Extract step text from strings, HowToStep objects and HowToSection groups."""
    steps: List[str] = []
    if isinstance(instructions, list):
        for entry in instructions:
            if isinstance(entry, str):
                cleaned = clean_text(entry)
                if cleaned:
                    steps.append(cleaned)
            elif isinstance(entry, dict):
                if entry.get("itemListElement"):
                    steps.extend(extract_instruction_text(entry["itemListElement"]))
                    continue
                text_val = entry.get("text") or entry.get("description") or entry.get("name")
                cleaned = clean_text(text_val or "")
                if cleaned:
                    steps.append(cleaned)
    elif isinstance(instructions, dict):
        steps.extend(extract_instruction_text([instructions]))
    elif isinstance(instructions, str):
        lines = [clean_text(line) for line in re.split(r"\n+", instructions)]
        steps.extend(line for line in lines if line)
    return steps


def coerce_keywords(value) -> List[str]:
    """Flatten keywords/category/cuisine values into a de-duplicated tag list."""
    if not value:
        return []
    raw_tags: List[str] = []
    if isinstance(value, str):
        raw_tags = [kw.strip() for kw in value.split(",") if kw.strip()]
    elif isinstance(value, Sequence):
        for item in value:
            raw_tags.extend(coerce_keywords(item))

    seen = set()
    unique_tags = []
    for tag in raw_tags:
        # Long phrases are usually SEO copies of the title, not categories.
        if len(tag.split()) > 3:
            continue
        tag_lower = tag.lower()
        if tag_lower not in seen:
            seen.add(tag_lower)
            unique_tags.append(tag)
    return unique_tags


def first_text(value) -> Optional[str]:
    """Return the first non-empty string of a schema.org scalar-or-list value."""
    if isinstance(value, str):
        return clean_text(value) or None
    if isinstance(value, list):
        for item in value:
            text = first_text(item)
            if text:
                return text
    return None
