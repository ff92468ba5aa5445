import logging
from abc import ABC, abstractmethod
from contextvars import ContextVar
from typing import Optional

import httpx

from mealforge_import.app.core.config import Settings, get_settings
from mealforge_import.app.services.extraction.errors import (
    ExtractionErrorCode,
    ProviderBadResponse,
    ProviderError,
    ProviderUnconfigured,
    UnsupportedSource,
)
from mealforge_import.app.services.extraction.models import (
    ExtractionMethod,
    ExtractionResult,
    ProviderConfig,
    RecipeRecord,
    SourceReference,
)

logger = logging.getLogger(__name__)

# Set by the response hook of clients built through ``http_client`` for the running call.
_response_received: ContextVar[bool] = ContextVar("response_received", default=False)


async def _mark_response(response: httpx.Response) -> None:
    _response_received.set(True)


class ProviderAdapter(ABC):
    """One named extraction provider.

    Subclasses implement ``_extract`` and raise ``ProviderError`` subclasses on
    failure. ``extract`` never raises: it converts provider and transport
    errors into a failed ``ExtractionResult``.
    """

    def __init__(
        self,
        config: ProviderConfig,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config
        self.settings = settings or get_settings()
        self.transport = transport

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def family(self) -> ExtractionMethod:
        return self.config.family

    def credential(self) -> Optional[str]:
        if not self.config.credential_setting:
            return None
        return getattr(self.settings, self.config.credential_setting.lower(), None)

    def is_configured(self) -> bool:
        if not self.config.credential_setting:
            return True
        return bool(self.credential())

    def supports(self, source: SourceReference) -> bool:
        return self.config.handles(source.kind)

    def http_client(self, timeout: float = 30.0, **kwargs) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=timeout,
            transport=self.transport,
            event_hooks={"response": [_mark_response]},
            **kwargs,
        )

    def success(self, record: RecipeRecord, confidence: float, cost: float) -> ExtractionResult:
        return ExtractionResult(
            success=True,
            data=record,
            confidence=max(0.0, min(confidence, 1.0)),
            cost=cost,
            provider_name=self.name,
            family=self.family,
        )

    def failure(self, code: ExtractionErrorCode, message: str, cost: float = 0.0) -> ExtractionResult:
        return ExtractionResult.failure(self.name, code, message, family=self.family, cost=cost)

    def bad_response(self, message: str, cost: Optional[float] = None) -> ProviderBadResponse:
        return ProviderBadResponse(
            self.name, message, cost=self.config.cost_per_request if cost is None else cost
        )

    async def extract(self, source: SourceReference) -> ExtractionResult:
        if not self.supports(source):
            return self.failure(
                ExtractionErrorCode.UNSUPPORTED_SOURCE, f"{source.kind.value} sources are not supported"
            )
        if not self.is_configured():
            exc = ProviderUnconfigured(self.name, self.config.credential_setting)
            return self.failure(exc.code, exc.message)
        _response_received.set(False)
        try:
            return await self._extract(source)
        except ProviderError as exc:
            logger.warning("Provider %s failed: %s", self.name, exc.message)
            return self.failure(exc.code, exc.message, cost=exc.cost)
        except httpx.TimeoutException as exc:
            logger.warning("Provider %s timed out: %s", self.name, exc)
            return self.failure(ExtractionErrorCode.PROVIDER_TIMEOUT, f"Timed out: {exc}")
        except httpx.HTTPStatusError as exc:
            # The provider answered, so a paid call was consumed.
            logger.warning("Provider %s returned status %d", self.name, exc.response.status_code)
            return self.failure(
                ExtractionErrorCode.PROVIDER_TRANSPORT_ERROR,
                f"Provider returned status {exc.response.status_code}",
                cost=self.config.cost_per_request,
            )
        except httpx.HTTPError as exc:
            logger.warning("Provider %s transport error: %s", self.name, exc)
            return self.failure(ExtractionErrorCode.PROVIDER_TRANSPORT_ERROR, f"Network error: {exc}")
        except ValueError as exc:
            logger.warning("Provider %s could not use its input: %s", self.name, exc)
            return self.failure(ExtractionErrorCode.NO_RECIPE_FOUND, str(exc))
        except Exception as exc:
            logger.exception("Provider %s crashed on %s", self.name, source.url or source.kind.value)
            return self.failure(
                ExtractionErrorCode.PROVIDER_BAD_RESPONSE,
                f"Unexpected {type(exc).__name__}: {exc}",
                cost=self.config.cost_per_request if _response_received.get() else 0.0,
            )

    @abstractmethod
    async def _extract(self, source: SourceReference) -> ExtractionResult:
        raise NotImplementedError

    def require_url(self, source: SourceReference) -> str:
        url = source.effective_url
        if not url:
            raise UnsupportedSource(self.name, "source has no URL")
        return url
