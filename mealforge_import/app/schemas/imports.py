from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from mealforge_import.app.services.extraction.models import ProviderConfig, RateLimitWindow


class ImportUrlRequest(BaseModel):
    url: str
    hints: Dict[str, Any] = Field(default_factory=dict)


class ImportHtmlRequest(BaseModel):
    html: str = Field(..., min_length=1)
    source_url: Optional[str] = None


class ParseIngredientsRequest(BaseModel):
    lines: List[str]


class ProviderUpdate(BaseModel):
    enabled: bool


class ProviderStatus(BaseModel):
    config: ProviderConfig
    configured: bool
    rate_limit: Optional[RateLimitWindow] = None
