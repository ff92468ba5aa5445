"""Provider adapters for the four extraction families."""

from mealforge_import.app.services.extraction.providers.base import ProviderAdapter
from mealforge_import.app.services.extraction.providers.registry import (
    DEFAULT_PROVIDERS,
    ProviderRegistry,
    build_default_registry,
)

__all__ = [
    "DEFAULT_PROVIDERS",
    "ProviderAdapter",
    "ProviderRegistry",
    "build_default_registry",
]
