"""Error codes and provider exceptions for recipe extraction.

Adapters raise ``ProviderError`` subclasses; the adapter base class and the
family runner turn them into failed ``ExtractionResult`` values so nothing
escapes to the caller of the pipeline.
"""

from enum import Enum
from typing import Optional


class ExtractionErrorCode(str, Enum):
    PROVIDER_UNCONFIGURED = "provider_unconfigured"
    PROVIDER_RATE_LIMITED = "provider_rate_limited"
    PROVIDER_TIMEOUT = "provider_timeout"
    PROVIDER_TRANSPORT_ERROR = "provider_transport_error"
    PROVIDER_BAD_RESPONSE = "provider_bad_response"
    UNSUPPORTED_SOURCE = "unsupported_source"
    NO_RECIPE_FOUND = "no_recipe_found"
    FAMILY_INSUFFICIENT_DATA = "family_insufficient_data"
    ALL_FAMILIES_EXHAUSTED = "all_families_exhausted"
    VALIDATION_FAILED = "validation_failed"


class ProviderError(Exception):
    """Base error for a single provider call."""

    code = ExtractionErrorCode.PROVIDER_BAD_RESPONSE

    def __init__(self, provider_name: str, message: str, cost: float = 0.0):
        self.provider_name = provider_name
        self.message = message
        # Money already spent before the failure (a paid call that returned garbage).
        self.cost = cost
        super().__init__(f"{provider_name}: {message}")


class ProviderUnconfigured(ProviderError):
    code = ExtractionErrorCode.PROVIDER_UNCONFIGURED

    def __init__(self, provider_name: str, setting: Optional[str] = None):
        self.setting = setting
        message = f"{setting} is not configured" if setting else "provider is not configured"
        super().__init__(provider_name, message)


class ProviderRateLimited(ProviderError):
    code = ExtractionErrorCode.PROVIDER_RATE_LIMITED

    def __init__(self, provider_name: str, retry_after: Optional[float] = None):
        self.retry_after = retry_after
        super().__init__(provider_name, "rate limit reached for this window")


class ProviderTimeout(ProviderError):
    code = ExtractionErrorCode.PROVIDER_TIMEOUT

    def __init__(self, provider_name: str, timeout_seconds: float):
        self.timeout_seconds = timeout_seconds
        super().__init__(provider_name, f"timed out after {timeout_seconds:g}s")


class ProviderTransportError(ProviderError):
    code = ExtractionErrorCode.PROVIDER_TRANSPORT_ERROR


class ProviderBadResponse(ProviderError):
    code = ExtractionErrorCode.PROVIDER_BAD_RESPONSE


class UnsupportedSource(ProviderError):
    code = ExtractionErrorCode.UNSUPPORTED_SOURCE


class NoRecipeFound(ProviderError):
    code = ExtractionErrorCode.NO_RECIPE_FOUND
