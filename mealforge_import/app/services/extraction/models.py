"""Pydantic models shared by the extraction pipeline."""

import ipaddress
import os
from enum import Enum
from typing import Any, Dict, List, Literal, Optional
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field

from mealforge_import.app.services.extraction.errors import ExtractionErrorCode


class SourceKind(str, Enum):
    URL = "url"
    VIDEO_FILE = "video-file"
    VIDEO_URL = "video-url"
    HTML_BLOB = "html-blob"


class ExtractionMethod(str, Enum):
    HTML_SCRAPING = "html-scraping"
    PROFESSIONAL_API = "professional-api"
    AI_PARSING = "ai-parsing"
    BROWSER_AUTOMATION = "browser-automation"
    FALLBACK = "fallback"


# Fixed fallback order of the four extraction families.
FAMILY_ORDER = (
    ExtractionMethod.HTML_SCRAPING,
    ExtractionMethod.PROFESSIONAL_API,
    ExtractionMethod.AI_PARSING,
    ExtractionMethod.BROWSER_AUTOMATION,
)

VIDEO_HOSTS = {
    "tiktok.com": "tiktok",
    "instagram.com": "instagram",
    "youtube.com": "youtube",
    "youtu.be": "youtube",
    "facebook.com": "facebook",
    "fb.watch": "facebook",
}
VIDEO_EXTENSIONS = {".mp4", ".mov", ".avi", ".mkv", ".webm", ".m4v"}
DEFAULT_VIDEO_MAX_BYTES = 100 * 1024 * 1024


def is_private_host(host: str) -> bool:
    """Check if a host is private/localhost."""
    hostname = host.split(":")[0]
    try:
        ip = ipaddress.ip_address(hostname)
        return ip.is_private or ip.is_loopback
    except ValueError:
        return hostname.lower() in {"localhost"}


def video_platform_for(url: str) -> Optional[str]:
    host = (urlparse(url).hostname or "").lower()
    for suffix, platform in VIDEO_HOSTS.items():
        if host == suffix or host.endswith("." + suffix):
            return platform
    return None


class SourceReference(BaseModel):
    """Immutable identity of the thing being imported."""

    model_config = ConfigDict(frozen=True)

    kind: SourceKind
    url: Optional[str] = None
    fetch_url: Optional[str] = None
    html: Optional[str] = Field(default=None, repr=False)
    filename: Optional[str] = None
    content_type: Optional[str] = None
    data: Optional[bytes] = Field(default=None, repr=False)
    platform: Optional[str] = None
    hints: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_url(cls, url: str, hints: Optional[Dict[str, Any]] = None) -> "SourceReference":
        url = (url or "").strip()
        parsed = urlparse(url)
        if parsed.scheme not in {"http", "https"} or not parsed.netloc:
            raise ValueError("URL must start with http or https.")
        if is_private_host(parsed.hostname or ""):
            raise ValueError("Host is blocked (localhost/private).")
        platform = video_platform_for(url)
        return cls(
            kind=SourceKind.VIDEO_URL if platform else SourceKind.URL,
            url=url,
            fetch_url=url,
            platform=platform,
            hints=hints or {},
        )

    @classmethod
    def from_html(
        cls, html: str, source_url: Optional[str] = None, hints: Optional[Dict[str, Any]] = None
    ) -> "SourceReference":
        if not html or not html.strip():
            raise ValueError("HTML content is empty.")
        return cls(kind=SourceKind.HTML_BLOB, html=html, url=source_url, fetch_url=source_url, hints=hints or {})

    @classmethod
    def from_video_file(
        cls,
        filename: str,
        content_type: Optional[str],
        data: bytes,
        max_bytes: int = DEFAULT_VIDEO_MAX_BYTES,
    ) -> "SourceReference":
        ext = os.path.splitext(filename or "")[1].lower()
        if ext not in VIDEO_EXTENSIONS:
            raise ValueError(f"Unsupported video format: {ext or 'unknown'}")
        if not data:
            raise ValueError("Video file is empty.")
        if len(data) > max_bytes:
            raise ValueError(f"Video file exceeds {max_bytes // (1024 * 1024)}MB limit.")
        return cls(kind=SourceKind.VIDEO_FILE, filename=filename, content_type=content_type, data=data)

    def with_fetch_url(self, fetch_url: str) -> "SourceReference":
        return self.model_copy(update={"fetch_url": fetch_url})

    @property
    def effective_url(self) -> Optional[str]:
        return self.fetch_url or self.url


class ParsedIngredient(BaseModel):
    """A structured ingredient line."""

    quantity: float = Field(1.0, ge=0)
    unit: str = "piece"
    name: str = ""
    notes: str = ""
    display_quantity: str = ""
    original: Optional[str] = None


class RecipeRecord(BaseModel):
    """The canonical extraction target every family produces."""

    title: str = ""
    description: str = ""
    image_url: Optional[str] = None
    prep_time_minutes: Optional[int] = None
    cook_time_minutes: Optional[int] = None
    servings: Optional[int] = None
    difficulty: Optional[str] = None
    cuisine: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    instructions: List[str] = Field(default_factory=list)
    ingredients: List[ParsedIngredient] = Field(default_factory=list)
    source_url: Optional[str] = None

    @property
    def has_core_fields(self) -> bool:
        return bool(self.ingredients) and bool(self.instructions)


class ExtractionResult(BaseModel):
    """Outcome of one adapter call; confidence and cost are always set."""

    success: bool
    data: Optional[RecipeRecord] = None
    confidence: float = Field(0.0, ge=0.0, le=1.0)
    cost: float = Field(0.0, ge=0.0)
    provider_name: str
    family: Optional[ExtractionMethod] = None
    error: Optional[str] = None
    error_code: Optional[ExtractionErrorCode] = None

    @classmethod
    def failure(
        cls,
        provider_name: str,
        code: ExtractionErrorCode,
        message: str,
        family: Optional[ExtractionMethod] = None,
        cost: float = 0.0,
        data: Optional[RecipeRecord] = None,
    ) -> "ExtractionResult":
        return cls(
            success=False,
            data=data,
            confidence=0.0,
            cost=cost,
            provider_name=provider_name,
            family=family,
            error=message,
            error_code=code,
        )

    @property
    def has_core_fields(self) -> bool:
        return self.data is not None and self.data.has_core_fields


class FieldConfidence(BaseModel):
    field: str
    value: Any = None
    confidence: float = 0.0
    source_family: ExtractionMethod
    method: str


class RateLimitWindow(BaseModel):
    provider_key: str
    request_count: int = 0
    window_reset_at: float


class ProviderConfig(BaseModel):
    """Static per-provider metadata; only ``enabled`` changes at run time."""

    name: str
    family: ExtractionMethod
    priority: int
    requests_per_minute: int
    cost_per_request: float = 0.0
    cost_per_1k_tokens: float = 0.0
    enabled: bool = True
    capabilities: List[SourceKind] = Field(default_factory=list)
    confidence: float = 0.0
    credential_setting: Optional[str] = None

    def handles(self, kind: SourceKind) -> bool:
        return kind in self.capabilities


class ValidationIssue(BaseModel):
    field: str
    severity: Literal["error", "warning"]
    message: str
    expected: Optional[str] = None
    actual: Optional[str] = None


class ValidationResult(BaseModel):
    is_valid: bool
    issues: List[ValidationIssue] = Field(default_factory=list)
    suggestions: List[str] = Field(default_factory=list)
    reference: Optional[str] = None


class AggregationResult(BaseModel):
    record: RecipeRecord
    confidence: float
    recommendations: List[str] = Field(default_factory=list)
    field_confidences: Dict[str, FieldConfidence] = Field(default_factory=dict)
    contributing_families: List[ExtractionMethod] = Field(default_factory=list)


class OrchestrationResult(BaseModel):
    """Everything the orchestrator learned for one source."""

    state: Literal["succeeded", "fallback_used"]
    satisfied_by: Optional[ExtractionMethod] = None
    family_results: Dict[ExtractionMethod, ExtractionResult] = Field(default_factory=dict)
    attempts: List[ExtractionResult] = Field(default_factory=list)
    fallback_record: Optional[RecipeRecord] = None
    fallback_confidence: float = 0.0

    @property
    def total_cost(self) -> float:
        return sum(attempt.cost for attempt in self.attempts)


class ImportOutcome(BaseModel):
    recipe: RecipeRecord
    confidence: float
    extraction_method: ExtractionMethod
    validation: ValidationResult
    total_cost: float
    needs_review: bool = False
    recommendations: List[str] = Field(default_factory=list)
    field_confidences: Dict[str, FieldConfidence] = Field(default_factory=dict)
    attempts: List[ExtractionResult] = Field(default_factory=list)
