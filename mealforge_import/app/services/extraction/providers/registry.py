import logging
from typing import Dict, Iterable, List, Optional

from mealforge_import.app.core.config import Settings, get_settings
from mealforge_import.app.services.extraction.html_fetcher import PageLoader
from mealforge_import.app.services.extraction.models import (
    ExtractionMethod,
    ProviderConfig,
    SourceKind,
)
from mealforge_import.app.services.extraction.providers.ai_parsing import (
    AnthropicProvider,
    OpenAICompatibleProvider,
    VideoAnalysisProvider,
)
from mealforge_import.app.services.extraction.providers.base import ProviderAdapter
from mealforge_import.app.services.extraction.providers.browser_automation import PlaywrightProvider
from mealforge_import.app.services.extraction.providers.html_scraping import HtmlScrapingProvider
from mealforge_import.app.services.extraction.providers.professional_api import (
    ChefkochProvider,
    SpoonacularProvider,
    ZestfulProvider,
)

logger = logging.getLogger(__name__)

PAGE_KINDS = [SourceKind.URL, SourceKind.VIDEO_URL, SourceKind.HTML_BLOB]
VIDEO_KINDS = [SourceKind.VIDEO_FILE, SourceKind.VIDEO_URL]

DEFAULT_PROVIDERS: List[ProviderConfig] = [
    ProviderConfig(
        name="html-scraper",
        family=ExtractionMethod.HTML_SCRAPING,
        priority=1,
        requests_per_minute=120,
        capabilities=PAGE_KINDS,
        confidence=0.75,
    ),
    ProviderConfig(
        name="spoonacular",
        family=ExtractionMethod.PROFESSIONAL_API,
        priority=1,
        requests_per_minute=60,
        cost_per_request=0.001,
        capabilities=[SourceKind.URL],
        confidence=0.85,
        credential_setting="SPOONACULAR_API_KEY",
    ),
    ProviderConfig(
        name="zestful",
        family=ExtractionMethod.PROFESSIONAL_API,
        priority=2,
        requests_per_minute=100,
        cost_per_request=0.002,
        capabilities=[SourceKind.URL, SourceKind.HTML_BLOB],
        confidence=0.75,
        credential_setting="ZESTFUL_API_KEY",
    ),
    ProviderConfig(
        name="chefkoch",
        family=ExtractionMethod.PROFESSIONAL_API,
        priority=3,
        requests_per_minute=30,
        cost_per_request=0.0005,
        capabilities=[SourceKind.URL],
        confidence=0.70,
        credential_setting="CHEFKOCH_API_KEY",
    ),
    ProviderConfig(
        name="video-analysis",
        family=ExtractionMethod.AI_PARSING,
        priority=0,
        requests_per_minute=10,
        cost_per_request=0.05,
        capabilities=VIDEO_KINDS,
        confidence=0.91,
        credential_setting="VIDEO_ANALYSIS_URL",
    ),
    ProviderConfig(
        name="openai",
        family=ExtractionMethod.AI_PARSING,
        priority=1,
        requests_per_minute=50,
        cost_per_1k_tokens=0.045,
        capabilities=PAGE_KINDS,
        confidence=0.98,
        credential_setting="OPENAI_API_KEY",
    ),
    ProviderConfig(
        name="anthropic",
        family=ExtractionMethod.AI_PARSING,
        priority=2,
        requests_per_minute=30,
        cost_per_1k_tokens=0.025,
        capabilities=PAGE_KINDS,
        confidence=0.95,
        credential_setting="ANTHROPIC_API_KEY",
    ),
    ProviderConfig(
        name="grok",
        family=ExtractionMethod.AI_PARSING,
        priority=3,
        requests_per_minute=25,
        cost_per_1k_tokens=0.015,
        capabilities=PAGE_KINDS,
        confidence=0.90,
        credential_setting="XAI_API_KEY",
    ),
    ProviderConfig(
        name="openrouter",
        family=ExtractionMethod.AI_PARSING,
        priority=4,
        requests_per_minute=100,
        cost_per_1k_tokens=0.005,
        capabilities=PAGE_KINDS,
        confidence=0.84,
        credential_setting="OPENROUTER_API_KEY",
    ),
    ProviderConfig(
        name="local",
        family=ExtractionMethod.AI_PARSING,
        priority=5,
        requests_per_minute=100,
        enabled=False,
        capabilities=PAGE_KINDS,
        confidence=0.85,
    ),
    ProviderConfig(
        name="playwright-chromium",
        family=ExtractionMethod.BROWSER_AUTOMATION,
        priority=1,
        requests_per_minute=10,
        cost_per_request=0.01,
        capabilities=[SourceKind.URL, SourceKind.HTML_BLOB],
        confidence=0.98,
    ),
    ProviderConfig(
        name="playwright-firefox",
        family=ExtractionMethod.BROWSER_AUTOMATION,
        priority=2,
        requests_per_minute=10,
        cost_per_request=0.01,
        capabilities=[SourceKind.URL, SourceKind.HTML_BLOB],
        confidence=0.95,
    ),
]


class ProviderRegistry:
    """Named adapters plus their configs; ``enabled`` is the only mutable field."""

    def __init__(self, adapters: Iterable[ProviderAdapter]):
        self._adapters: Dict[str, ProviderAdapter] = {}
        for adapter in adapters:
            if adapter.name in self._adapters:
                raise ValueError(f"Duplicate provider name: {adapter.name}")
            self._adapters[adapter.name] = adapter

    def list_configs(self) -> List[ProviderConfig]:
        return [a.config for a in self._adapters.values()]

    def get(self, name: str) -> ProviderConfig:
        return self.adapter(name).config

    def adapter(self, name: str) -> ProviderAdapter:
        try:
            return self._adapters[name]
        except KeyError:
            raise KeyError(f"Unknown provider: {name}") from None

    def set_enabled(self, name: str, enabled: bool) -> ProviderConfig:
        adapter = self.adapter(name)
        adapter.config.enabled = enabled
        logger.info("Provider %s %s", name, "enabled" if enabled else "disabled")
        return adapter.config

    def for_family(self, family: ExtractionMethod) -> List[ProviderAdapter]:
        members = [a for a in self._adapters.values() if a.family == family]
        return sorted(members, key=lambda a: a.config.priority)

    def rate_limits(self) -> Dict[str, int]:
        return {name: a.config.requests_per_minute for name, a in self._adapters.items()}


def build_default_registry(settings: Optional[Settings] = None, page_loader: Optional[PageLoader] = None) -> ProviderRegistry:
    settings = settings or get_settings()
    page_loader = page_loader or PageLoader(settings)
    configs = {c.name: c.model_copy(deep=True) for c in DEFAULT_PROVIDERS}
    for name in settings.disabled_provider_names:
        if name in configs:
            configs[name].enabled = False
    if settings.local_llm_base_url and "local" not in settings.disabled_provider_names:
        configs["local"].enabled = True

    adapters: List[ProviderAdapter] = [
        HtmlScrapingProvider(configs["html-scraper"], page_loader, settings=settings),
        SpoonacularProvider(configs["spoonacular"], settings=settings, transport=page_loader.transport),
        ZestfulProvider(configs["zestful"], page_loader, settings=settings),
        ChefkochProvider(configs["chefkoch"], settings=settings, transport=page_loader.transport),
        VideoAnalysisProvider(configs["video-analysis"], settings=settings, transport=page_loader.transport),
        OpenAICompatibleProvider(configs["openai"], page_loader, "openai_base_url", "openai_model_name", settings=settings),
        AnthropicProvider(configs["anthropic"], page_loader, settings=settings),
        OpenAICompatibleProvider(configs["grok"], page_loader, "xai_base_url", "xai_model_name", settings=settings),
        OpenAICompatibleProvider(
            configs["openrouter"], page_loader, "openrouter_base_url", "openrouter_model_name", settings=settings
        ),
        OpenAICompatibleProvider(
            configs["local"], page_loader, "local_llm_base_url", "local_llm_model_name", settings=settings
        ),
    ]
    for engine in settings.browser_engine_names:
        name = f"playwright-{engine}"
        if name in configs:
            adapters.append(PlaywrightProvider(configs[name], engine, settings=settings))
        else:
            logger.warning("Unknown browser engine %s; skipping", engine)
    return ProviderRegistry(adapters)
