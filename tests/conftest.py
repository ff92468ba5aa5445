import asyncio
from typing import List, Optional

import pytest

from mealforge_import.app.core.config import Settings
from mealforge_import.app.services.extraction.models import (
    ExtractionMethod,
    ExtractionResult,
    ParsedIngredient,
    ProviderConfig,
    RecipeRecord,
    SourceKind,
    SourceReference,
)
from mealforge_import.app.services.extraction.providers.base import ProviderAdapter
from mealforge_import.app.services.extraction.providers.registry import ProviderRegistry

ALL_KINDS = [SourceKind.URL, SourceKind.VIDEO_URL, SourceKind.HTML_BLOB, SourceKind.VIDEO_FILE]

# Pinned so credentials in the developer's shell never leak into tests.
CREDENTIAL_SETTINGS = (
    "SPOONACULAR_API_KEY",
    "ZESTFUL_API_KEY",
    "CHEFKOCH_API_KEY",
    "OPENAI_API_KEY",
    "ANTHROPIC_API_KEY",
    "XAI_API_KEY",
    "OPENROUTER_API_KEY",
    "LOCAL_LLM_BASE_URL",
    "VIDEO_ANALYSIS_URL",
    "VIDEO_ANALYSIS_API_KEY",
    "SCRAPER_COOKIES",
)


def make_settings(**overrides) -> Settings:
    values = {name: None for name in CREDENTIAL_SETTINGS}
    values.update(
        RESOLVE_PRINT_URLS=False,
        CONCURRENT_PROVIDER_CALLS=False,
        DISABLED_PROVIDERS="",
        BROWSER_ENGINES="chromium,firefox",
        PROVIDER_EARLY_EXIT_CONFIDENCE=0.9,
        FAMILY_SUFFICIENCY_CONFIDENCE=0.5,
    )
    values.update(overrides)
    return Settings(_env_file=None, **values)


def make_record(
    title: str = "Banana Bread",
    ingredients: int = 3,
    steps: int = 2,
    **fields,
) -> RecipeRecord:
    return RecipeRecord(
        title=title,
        description=fields.pop("description", f"A simple {title.lower()}"),
        ingredients=[
            ParsedIngredient(quantity=i + 1, unit="cup", name=f"ingredient {i + 1}") for i in range(ingredients)
        ],
        instructions=[f"Step {i + 1}" for i in range(steps)],
        **fields,
    )


def make_config(
    name: str,
    family: ExtractionMethod,
    priority: int = 1,
    requests_per_minute: int = 60,
    cost_per_request: float = 0.0,
    enabled: bool = True,
    capabilities: Optional[List[SourceKind]] = None,
    credential_setting: Optional[str] = None,
) -> ProviderConfig:
    return ProviderConfig(
        name=name,
        family=family,
        priority=priority,
        requests_per_minute=requests_per_minute,
        cost_per_request=cost_per_request,
        enabled=enabled,
        capabilities=capabilities if capabilities is not None else list(ALL_KINDS),
        credential_setting=credential_setting,
    )


class FakeAdapter(ProviderAdapter):
    """Scripted provider: returns ``record`` at ``confidence``, or raises ``error``."""

    def __init__(
        self,
        config: ProviderConfig,
        settings: Settings,
        record: Optional[RecipeRecord] = None,
        confidence: float = 0.8,
        error: Optional[Exception] = None,
        delay: float = 0.0,
        configured: bool = True,
    ):
        super().__init__(config, settings=settings)
        self.record = record
        self.confidence = confidence
        self.error = error
        self.delay = delay
        self.configured = configured
        self.sources: List[SourceReference] = []
        self.cancelled = False

    def is_configured(self) -> bool:
        return self.configured

    async def _extract(self, source: SourceReference) -> ExtractionResult:
        self.sources.append(source)
        if self.delay:
            try:
                await asyncio.sleep(self.delay)
            except asyncio.CancelledError:
                self.cancelled = True
                raise
        if self.error is not None:
            raise self.error
        record = self.record
        if record is not None and record.source_url is None:
            record = record.model_copy(update={"source_url": source.url})
        return self.success(record, self.confidence, cost=self.config.cost_per_request)

    @property
    def calls(self) -> int:
        return len(self.sources)


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def url_source():
    return SourceReference.from_url("https://example.com/recipes/banana-bread")


def registry_of(*adapters: ProviderAdapter) -> ProviderRegistry:
    return ProviderRegistry(adapters)
