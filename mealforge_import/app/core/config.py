import logging
from functools import lru_cache
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    log_level: str = Field("INFO", alias="LOG_LEVEL")

    # Fetching
    scraper_user_agent: str = Field(
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 13_6) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0 Safari/537.36",
        alias="SCRAPER_USER_AGENT",
    )
    scraper_cookies: str | None = Field(None, alias="SCRAPER_COOKIES")
    html_fetch_timeout_seconds: float = Field(15.0, alias="HTML_FETCH_TIMEOUT_SECONDS")
    print_probe_timeout_seconds: float = Field(3.0, alias="PRINT_PROBE_TIMEOUT_SECONDS")
    resolve_print_urls: bool = Field(True, alias="RESOLVE_PRINT_URLS")
    page_cache_ttl_seconds: int = Field(300, alias="PAGE_CACHE_TTL_SECONDS")
    video_max_bytes: int = Field(100 * 1024 * 1024, alias="VIDEO_MAX_BYTES")

    # Per-family call timeouts
    html_scraping_timeout_seconds: float = Field(15.0, alias="HTML_SCRAPING_TIMEOUT_SECONDS")
    professional_api_timeout_seconds: float = Field(20.0, alias="PROFESSIONAL_API_TIMEOUT_SECONDS")
    ai_parsing_timeout_seconds: float = Field(30.0, alias="AI_PARSING_TIMEOUT_SECONDS")
    browser_automation_timeout_seconds: float = Field(30.0, alias="BROWSER_AUTOMATION_TIMEOUT_SECONDS")

    # Fallback policy
    provider_early_exit_confidence: float = Field(0.9, alias="PROVIDER_EARLY_EXIT_CONFIDENCE")
    family_sufficiency_confidence: float = Field(0.5, alias="FAMILY_SUFFICIENCY_CONFIDENCE")
    concurrent_provider_calls: bool = Field(False, alias="CONCURRENT_PROVIDER_CALLS")
    disabled_providers: str = Field("", alias="DISABLED_PROVIDERS")

    # Professional recipe APIs
    spoonacular_api_key: str | None = Field(None, alias="SPOONACULAR_API_KEY")
    spoonacular_base_url: str = Field("https://api.spoonacular.com", alias="SPOONACULAR_BASE_URL")
    zestful_api_key: str | None = Field(None, alias="ZESTFUL_API_KEY")
    zestful_base_url: str = Field("https://zestful.p.rapidapi.com", alias="ZESTFUL_BASE_URL")
    chefkoch_api_key: str | None = Field(None, alias="CHEFKOCH_API_KEY")
    chefkoch_base_url: str = Field("https://api.chefkoch.de", alias="CHEFKOCH_BASE_URL")

    # LLM providers
    openai_api_key: str | None = Field(None, alias="OPENAI_API_KEY")
    openai_base_url: str = Field("https://api.openai.com", alias="OPENAI_BASE_URL")
    openai_model_name: str = Field("gpt-4o-mini", alias="OPENAI_MODEL_NAME")
    anthropic_api_key: str | None = Field(None, alias="ANTHROPIC_API_KEY")
    anthropic_base_url: str = Field("https://api.anthropic.com", alias="ANTHROPIC_BASE_URL")
    anthropic_model_name: str = Field("claude-3-5-haiku-latest", alias="ANTHROPIC_MODEL_NAME")
    xai_api_key: str | None = Field(None, alias="XAI_API_KEY")
    xai_base_url: str = Field("https://api.x.ai", alias="XAI_BASE_URL")
    xai_model_name: str = Field("grok-2-latest", alias="XAI_MODEL_NAME")
    openrouter_api_key: str | None = Field(None, alias="OPENROUTER_API_KEY")
    openrouter_base_url: str = Field("https://openrouter.ai/api", alias="OPENROUTER_BASE_URL")
    openrouter_model_name: str = Field("meta-llama/llama-3.1-70b-instruct", alias="OPENROUTER_MODEL_NAME")
    local_llm_base_url: str | None = Field(None, alias="LOCAL_LLM_BASE_URL")
    local_llm_model_name: str = Field("full", alias="LOCAL_LLM_MODEL_NAME")
    llm_temperature: float = Field(0.1, alias="LLM_TEMPERATURE")
    llm_max_tokens: int = Field(2000, alias="LLM_MAX_TOKENS")

    # Video analysis service
    video_analysis_url: str | None = Field(None, alias="VIDEO_ANALYSIS_URL")
    video_analysis_api_key: str | None = Field(None, alias="VIDEO_ANALYSIS_API_KEY")

    # Browser automation
    browser_engines: str = Field("chromium,firefox", alias="BROWSER_ENGINES")
    browser_viewport_width: int = Field(1920, alias="BROWSER_VIEWPORT_WIDTH")
    browser_viewport_height: int = Field(1080, alias="BROWSER_VIEWPORT_HEIGHT")

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    @property
    def disabled_provider_names(self) -> List[str]:
        return [name.strip() for name in self.disabled_providers.split(",") if name.strip()]

    @property
    def browser_engine_names(self) -> List[str]:
        return [name.strip() for name in self.browser_engines.split(",") if name.strip()]


logger = logging.getLogger(__name__)


@lru_cache
def get_settings() -> Settings:
    try:
        settings = Settings()
    except PermissionError:
        logger.warning("Unable to read .env; continuing with environment variables only")
        settings = Settings(_env_file=None)
    return settings
