"""LLM-backed recipe structuring and the external video-analysis service."""

import json
import logging
import re
from abc import abstractmethod
from typing import Any, Dict, List, Optional, Tuple

from bs4 import BeautifulSoup

from mealforge_import.app.services.extraction.errors import NoRecipeFound
from mealforge_import.app.services.extraction.extractors.heuristic import (
    _find_ingredient_items,
    _find_instruction_items,
    clean_soup_for_content,
    find_main_node,
)
from mealforge_import.app.services.extraction.html_fetcher import PageLoader
from mealforge_import.app.services.extraction.ingredient_parser import coerce_ingredients
from mealforge_import.app.services.extraction.models import (
    ExtractionResult,
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
    parse_servings,
)
from mealforge_import.app.services.extraction.providers.base import ProviderAdapter

logger = logging.getLogger(__name__)

# provider -> (whole-recipe confidence, ingredient-parsing confidence)
AI_TASK_CONFIDENCE = {
    "openai": (0.98, 0.95),
    "anthropic": (0.95, 0.92),
    "grok": (0.90, 0.92),
    "openrouter": (0.84, 0.85),
    "local": (0.85, 0.85),
}

RECIPE_SCHEMA_HINT = (
    '{"title":string,"description":string,"image_url":string|null,'
    '"prep_time_minutes":number|null,"cook_time_minutes":number|null,"servings":number|null,'
    '"difficulty":"easy"|"medium"|"hard"|null,"cuisine":string|null,"tags":[string],'
    '"ingredients":[{"quantity":number,"unit":string,"name":string,"notes":string}],'
    '"instructions":[string]}'
)
SYSTEM_PROMPT = (
    "You extract cooking recipes from web page text. Return ONLY valid JSON matching the schema. "
    'If the text contains no recipe, return {"error":"no_recipe"}.'
)


def _strip_invalid_control_chars(s: str) -> str:
    """Remove ASCII control chars that frequently break json.loads (except \\n, \\r, \\t)."""
    return re.sub(r"[\x00-\x08\x0B\x0C\x0E-\x1F]", "", s)


def parse_llm_json(raw: str) -> dict:
    """Parse model output into JSON, repairing code fences and surrounding prose."""
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        pass
    cleaned = _strip_invalid_control_chars(raw).strip()
    cleaned = re.sub(r"^```[a-zA-Z0-9_-]*\s*", "", cleaned)
    cleaned = re.sub(r"\s*```$", "", cleaned)
    start = cleaned.find("{")
    end = cleaned.rfind("}")
    if start != -1 and end != -1 and end > start:
        try:
            return json.loads(cleaned[start : end + 1])
        except json.JSONDecodeError:
            pass
    raise ValueError("LLM response was not valid JSON")


def build_llm_content(html: str) -> Tuple[Optional[str], str]:
    """Condense a page into title, ingredient/instruction candidates and JSON-LD."""
    soup = BeautifulSoup(html, "lxml")
    title_tag = soup.find("h1") or soup.title
    title = clean_text(title_tag.get_text()) if title_tag else None

    script_texts: List[str] = []
    for sc in soup.find_all("script", type="application/ld+json"):
        txt = sc.get_text(strip=True)
        if txt:
            script_texts.append(txt[:2000])

    clean_soup_for_content(soup)
    main_node = find_main_node(soup)
    parts: List[str] = []
    if main_node is not None:
        ingredients = _find_ingredient_items(main_node)
        instructions = _find_instruction_items(main_node)
        if ingredients:
            parts.append("Ingredients:\n" + "\n".join(ingredients))
        if instructions:
            parts.append("Instructions:\n" + "\n".join(instructions))
        if len("\n\n".join(parts)) < 500:
            text = re.sub(r"\n{2,}", "\n", main_node.get_text("\n", strip=True))
            parts.append("\n".join(text.splitlines()[:200]))
    if script_texts:
        parts.append("Structured data:\n" + "\n".join(script_texts))

    combined = (title + "\n" if title else "") + "\n\n".join(p for p in parts if p)
    return title, combined[:10000]


def record_from_payload(payload: Dict[str, Any], source_url: Optional[str]) -> RecipeRecord:
    """Map the model's JSON (or a video-analysis recipe) onto a RecipeRecord."""
    if not isinstance(payload, dict):
        raise ValueError("recipe payload is not an object")
    if payload.get("error"):
        raise ValueError(f"model reported: {payload['error']}")
    if isinstance(payload.get("recipe"), dict):
        payload = payload["recipe"]
    difficulty = payload.get("difficulty")
    return RecipeRecord(
        title=clean_text(payload.get("title") or payload.get("name") or ""),
        description=clean_text(payload.get("description") or ""),
        image_url=payload.get("image_url") or payload.get("imageUrl"),
        prep_time_minutes=parse_minutes(payload.get("prep_time_minutes", payload.get("prepTime"))),
        cook_time_minutes=parse_minutes(payload.get("cook_time_minutes", payload.get("cookTime"))),
        servings=parse_servings(payload.get("servings")),
        difficulty=difficulty if difficulty in {"easy", "medium", "hard"} else None,
        cuisine=payload.get("cuisine") or None,
        tags=coerce_keywords(payload.get("tags") or []),
        instructions=extract_instruction_text(payload.get("instructions") or payload.get("steps") or []),
        ingredients=coerce_ingredients(payload.get("ingredients") or []),
        source_url=source_url,
    )


class LlmProvider(ProviderAdapter):
    """Shared prompt building and cost accounting for chat-style LLM APIs."""

    def __init__(self, config: ProviderConfig, page_loader: PageLoader, settings=None):
        super().__init__(config, settings=settings or page_loader.settings, transport=page_loader.transport)
        self.page_loader = page_loader

    def task_confidence(self, ingredient_task: bool) -> float:
        structure, ingredients = AI_TASK_CONFIDENCE.get(self.name, (self.config.confidence, self.config.confidence))
        return ingredients if ingredient_task else structure

    async def build_prompt(self, source: SourceReference) -> Tuple[str, bool]:
        hinted = source.hints.get("ingredient_text")
        if hinted:
            text = "\n".join(hinted) if isinstance(hinted, list) else str(hinted)
            prompt = (
                "Parse these ingredient lines into structured ingredients. Return JSON "
                '{"ingredients":[{"quantity":number,"unit":string,"name":string,"notes":string}]}\n\n'
                f"{text}"
            )
            return prompt, True
        if source.kind == SourceKind.HTML_BLOB:
            html = source.html or ""
        else:
            html = await self.page_loader.load(self.require_url(source))
        title, content = build_llm_content(html)
        prompt = (
            f"URL: {source.url or 'unknown'}\nTitle: {title or 'Unknown'}\nContent:\n{content}\n\n"
            f"Schema:\n{RECIPE_SCHEMA_HINT}\n\n"
            "Rules:\n"
            "- Separate ingredients: 'salt and pepper' = 2 entries\n"
            "- Extract units: '1 cup flour' -> quantity:1, unit:'cup', name:'flour'\n"
            "- Keep instruction order; one step per entry\n"
        )
        return prompt, False

    def token_cost(self, tokens: int) -> float:
        return tokens / 1000.0 * self.config.cost_per_1k_tokens

    @abstractmethod
    async def complete(self, prompt: str) -> Tuple[str, int]:
        """Return (assistant text, total tokens)."""
        raise NotImplementedError

    async def _extract(self, source: SourceReference) -> ExtractionResult:
        prompt, ingredient_task = await self.build_prompt(source)
        content, tokens = await self.complete(prompt)
        cost = self.token_cost(tokens)
        logger.info("%s returned %d tokens (cost %.4f) for %s", self.name, tokens, cost, source.url)
        try:
            record = record_from_payload(parse_llm_json(content), source.url)
        except ValueError as exc:
            logger.error("%s response unusable for %s: %s", self.name, source.url, content[:500])
            raise self.bad_response(str(exc), cost=cost)
        if not record.ingredients and not record.instructions and not record.title:
            raise NoRecipeFound(self.name, "model returned an empty recipe", cost=cost)
        return self.success(record, self.task_confidence(ingredient_task), cost=cost)


class OpenAICompatibleProvider(LlmProvider):
    """``/v1/chat/completions`` for OpenAI, xAI Grok, OpenRouter and local servers."""

    def __init__(self, config: ProviderConfig, page_loader: PageLoader, base_url_setting: str, model_setting: str, settings=None):
        super().__init__(config, page_loader, settings=settings)
        self.base_url_setting = base_url_setting
        self.model_setting = model_setting

    def is_configured(self) -> bool:
        # A local server has no key; its base URL is the credential.
        return super().is_configured() and bool(getattr(self.settings, self.base_url_setting, None))

    async def complete(self, prompt: str) -> Tuple[str, int]:
        base_url = getattr(self.settings, self.base_url_setting).rstrip("/")
        headers = {"Content-Type": "application/json"}
        key = self.credential()
        if key:
            headers["Authorization"] = f"Bearer {key}"
        payload = {
            "model": getattr(self.settings, self.model_setting),
            "temperature": self.settings.llm_temperature,
            "max_tokens": self.settings.llm_max_tokens,
            "response_format": {"type": "json_object"},
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            "stream": False,
        }
        async with self.http_client(timeout=self.settings.ai_parsing_timeout_seconds) as client:
            resp = await client.post(f"{base_url}/v1/chat/completions", json=payload, headers=headers)
        resp.raise_for_status()
        try:
            data = resp.json()
        except ValueError as exc:
            raise self.bad_response(f"non-JSON body: {exc}", cost=0.0)
        if isinstance(data, dict) and "error" in data:
            raise self.bad_response(f"provider error: {data['error']}", cost=0.0)

        content = None
        choices = data.get("choices") if isinstance(data, dict) else None
        if choices and isinstance(choices[0], dict):
            content = (choices[0].get("message") or {}).get("content")
        if not content or not isinstance(content, str):
            raise self.bad_response("response missing assistant content", cost=0.0)
        tokens = int((data.get("usage") or {}).get("total_tokens") or 0)
        return content, tokens


class AnthropicProvider(LlmProvider):
    """Anthropic Messages API."""

    async def complete(self, prompt: str) -> Tuple[str, int]:
        payload = {
            "model": self.settings.anthropic_model_name,
            "max_tokens": self.settings.llm_max_tokens,
            "temperature": self.settings.llm_temperature,
            "system": SYSTEM_PROMPT,
            "messages": [{"role": "user", "content": prompt}],
        }
        headers = {
            "x-api-key": self.credential(),
            "anthropic-version": "2023-06-01",
            "content-type": "application/json",
        }
        async with self.http_client(timeout=self.settings.ai_parsing_timeout_seconds) as client:
            resp = await client.post(
                f"{self.settings.anthropic_base_url.rstrip('/')}/v1/messages", json=payload, headers=headers
            )
        resp.raise_for_status()
        try:
            data = resp.json()
            blocks = data.get("content") or []
            content = "".join(b.get("text", "") for b in blocks if b.get("type") == "text")
        except (ValueError, AttributeError) as exc:
            raise self.bad_response(f"unexpected body: {exc}", cost=0.0)
        if not content:
            raise self.bad_response("response missing text content", cost=0.0)
        usage = data.get("usage") or {}
        tokens = int(usage.get("input_tokens") or 0) + int(usage.get("output_tokens") or 0)
        return content, tokens


class VideoAnalysisProvider(ProviderAdapter):
    """Posts a video file or video URL to the external analysis service."""

    async def _extract(self, source: SourceReference) -> ExtractionResult:
        headers = {}
        if self.settings.video_analysis_api_key:
            headers["Authorization"] = f"Bearer {self.settings.video_analysis_api_key}"
        endpoint = self.settings.video_analysis_url.rstrip("/")
        async with self.http_client(timeout=self.settings.ai_parsing_timeout_seconds, headers=headers) as client:
            if source.kind == SourceKind.VIDEO_FILE:
                files = {"file": (source.filename, source.data, source.content_type or "application/octet-stream")}
                resp = await client.post(f"{endpoint}/analyze", files=files)
            else:
                resp = await client.post(
                    f"{endpoint}/analyze", json={"url": self.require_url(source), "platform": source.platform}
                )
        resp.raise_for_status()
        try:
            data = resp.json()
            record = record_from_payload(data, source.url)
        except (ValueError, AttributeError, TypeError) as exc:
            raise self.bad_response(f"unexpected body: {exc}")
        confidence = data.get("confidence") if isinstance(data.get("confidence"), (int, float)) else None
        return self.success(
            record,
            float(confidence) if confidence is not None else self.config.confidence,
            cost=self.config.cost_per_request,
        )
