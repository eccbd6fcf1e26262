"""
Base Generation Provider
========================

Shared functionality for every generation provider (image, video, music,
voice, sound): HTTP client management, retry with backoff, bounded job
polling, quota detection and result normalization.
"""

import asyncio
import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, List, Dict, Any
import httpx

from ..core.exceptions import (
    ProviderError,
    QuotaError,
    RateLimitError,
    TimeoutError,
)
from ..core.security import sanitize_prompt, redact_api_key
from ..project.models import AssetReference, MediaType, Provenance

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================


DEFAULT_MAX_RETRIES = 2
DEFAULT_RETRY_DELAY = 2.0
DEFAULT_RETRY_MULTIPLIER = 2.0
DEFAULT_TIMEOUT = 120
DEFAULT_POLL_INTERVAL = 2.0
DEFAULT_MAX_POLL_ATTEMPTS = 60

QUOTA_MARKERS = (
    "quota",
    "billing",
    "payment",
    "insufficient credits",
    "insufficient_credits",
    "credit balance",
    "exceeded your current",
)


def is_quota_failure(status_code: Optional[int], body: str = "") -> bool:
    """Whether an HTTP failure indicates billing/quota exhaustion."""
    if status_code == 402:
        return True
    text = (body or "").lower()
    return any(marker in text for marker in QUOTA_MARKERS)


# =============================================================================
# Data Classes
# =============================================================================


class AssetKind(Enum):
    """Capability a provider serves."""

    IMAGE = "image"
    VIDEO = "video"
    MUSIC = "music"
    VOICE = "voice"
    SOUND = "sound"

    @property
    def media_type(self) -> MediaType:
        if self == AssetKind.IMAGE:
            return MediaType.IMAGE
        if self == AssetKind.VIDEO:
            return MediaType.VIDEO
        return MediaType.AUDIO


class GenerationStatus(Enum):
    """Status of a generation job."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @classmethod
    def from_provider_status(cls, status: str) -> "GenerationStatus":
        """Normalize provider-specific status strings to GenerationStatus."""
        status_lower = (status or "").lower().strip()

        if status_lower in ("completed", "succeeded", "done", "success", "finished"):
            return cls.COMPLETED

        if status_lower in ("failed", "error", "failure", "errored"):
            return cls.FAILED

        if status_lower in ("cancelled", "canceled", "aborted", "stopped"):
            return cls.CANCELLED

        if status_lower in ("pending", "queued", "in_queue", "waiting", "scheduled"):
            return cls.PENDING

        return cls.PROCESSING


@dataclass
class GenerationRequest:
    """Request parameters shared by every capability."""

    prompt: str
    kind: AssetKind = AssetKind.IMAGE

    # Stock search
    search_query: Optional[str] = None
    fallback_query: Optional[str] = None

    # Output shape
    width: int = 1920
    height: int = 1080
    duration: Optional[float] = None  # seconds, for video/music/sound

    # Style control
    negative_prompt: Optional[str] = None
    style: Optional[str] = None
    mood: Optional[str] = None

    # Voice
    voice_id: Optional[str] = None

    extra_params: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        """Validate and sanitize request."""
        self.prompt = sanitize_prompt(self.prompt)
        if self.negative_prompt:
            self.negative_prompt = sanitize_prompt(self.negative_prompt)

    @property
    def orientation(self) -> str:
        if self.width > self.height:
            return "landscape"
        if self.width < self.height:
            return "portrait"
        return "square"

    def queries(self) -> List[str]:
        """Stock search queries in preference order."""
        seen = []
        for q in (self.search_query, self.fallback_query, self.prompt):
            if q and q not in seen:
                seen.append(q)
        return seen


@dataclass
class GenerationResult:
    """Result of a generation request."""

    kind: AssetKind = AssetKind.IMAGE
    status: GenerationStatus = GenerationStatus.PENDING
    provider: Optional[str] = None
    model: Optional[str] = None
    job_id: Optional[str] = None

    # Output: a URL, or raw bytes the caller must store
    asset_url: Optional[str] = None
    asset_bytes: Optional[bytes] = field(default=None, repr=False)
    content_type: Optional[str] = None
    asset_duration: Optional[float] = None

    # Candidate metadata (stock providers)
    tags: List[str] = field(default_factory=list)
    title: str = ""
    description: str = ""
    uploader: str = ""
    width: Optional[int] = None
    height: Optional[int] = None

    # Further candidates from the same search, in preference order
    alternatives: List["GenerationResult"] = field(default_factory=list, repr=False)

    # Timing
    created_at: datetime = field(default_factory=datetime.now)
    completed_at: Optional[datetime] = None

    # Error handling
    error_message: Optional[str] = None
    error_code: Optional[str] = None

    @property
    def success(self) -> bool:
        """Completed with something usable."""
        return self.status == GenerationStatus.COMPLETED and bool(self.asset_url or self.asset_bytes)

    def is_pending(self) -> bool:
        return self.status in (GenerationStatus.PENDING, GenerationStatus.PROCESSING)

    def candidates(self) -> List["GenerationResult"]:
        """This result followed by its alternatives."""
        return [self] + list(self.alternatives)

    def to_asset_reference(self, provenance: Provenance, url: Optional[str] = None) -> AssetReference:
        """Convert to an AssetReference; ``url`` overrides asset_url (e.g. after upload)."""
        return AssetReference(
            url=url or self.asset_url or "",
            provenance=provenance,
            source=self.provider or "",
            media_type=self.kind.media_type,
            tags=list(self.tags),
            title=self.title,
            description=self.description,
            uploader=self.uploader,
            duration=self.asset_duration,
            width=self.width,
            height=self.height,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "kind": self.kind.value,
            "status": self.status.value,
            "provider": self.provider,
            "model": self.model,
            "job_id": self.job_id,
            "asset_url": self.asset_url,
            "has_bytes": self.asset_bytes is not None,
            "content_type": self.content_type,
            "asset_duration": self.asset_duration,
            "tags": self.tags,
            "title": self.title,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "error_message": self.error_message,
        }


# =============================================================================
# Base Provider Class
# =============================================================================


class BaseGenerationProvider(ABC):
    """
    Abstract base class for generation providers.

    Features:
    - Lock-guarded HTTP client management
    - Retry with exponential backoff for transient errors
    - Quota/billing errors raised as QuotaError and never retried
    - Bounded polling for queued jobs
    """

    # Providers sharing a class share a billing account; a quota failure in
    # one skips the rest of that class in a fallback chain.
    provider_class: str = "generic"
    provenance: Provenance = Provenance.AI
    kind: AssetKind = AssetKind.IMAGE

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: int = DEFAULT_TIMEOUT,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        max_poll_attempts: int = DEFAULT_MAX_POLL_ATTEMPTS,
    ):
        """
        Initialize the provider.

        Args:
            api_key: API key (or read from environment)
            base_url: Base URL for the API
            timeout: Request timeout in seconds
            max_retries: Maximum number of retries on transient failure
            retry_delay: Base delay between retries
            poll_interval: Seconds between job status checks
            max_poll_attempts: Status checks before giving up
        """
        self.api_key = api_key or self._get_api_key_from_env()
        self.base_url = (base_url or self._get_default_base_url()).rstrip("/")
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.poll_interval = poll_interval
        self.max_poll_attempts = max_poll_attempts

        self._client: Optional[httpx.AsyncClient] = None
        self._client_lock = asyncio.Lock()

        self._validate_config()

    # -------------------------------------------------------------------------
    # Abstract Methods (must be implemented by subclasses)
    # -------------------------------------------------------------------------

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider name used in ledgers and logs."""
        pass

    @property
    @abstractmethod
    def env_key_name(self) -> str:
        """Return the environment variable name for the API key."""
        pass

    @abstractmethod
    def _get_default_base_url(self) -> str:
        """Return the default base URL for this provider."""
        pass

    @abstractmethod
    async def _make_generation_request(
        self,
        request: GenerationRequest,
    ) -> Dict[str, Any]:
        """
        Make the provider-specific generation request.

        Returns:
            Raw response data; a queued job must carry a job id
        """
        pass

    @abstractmethod
    def _parse_response(
        self,
        data: Dict[str, Any],
        result: GenerationResult,
    ) -> GenerationResult:
        """Populate ``result`` from a finished response."""
        pass

    async def _check_job_status(self, job_id: str) -> Dict[str, Any]:
        """Fetch job status. Only queue-based providers override this."""
        raise NotImplementedError(f"{self.provider_name} does not queue jobs")

    async def _fetch_job_result(self, job_id: str, status_data: Dict[str, Any]) -> Dict[str, Any]:
        """Fetch the finished payload once a job completes."""
        return status_data

    # -------------------------------------------------------------------------
    # Shared Implementation Methods
    # -------------------------------------------------------------------------

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def _new_result(self, request: GenerationRequest) -> GenerationResult:
        return GenerationResult(kind=request.kind, provider=self.provider_name)

    async def generate(self, request: GenerationRequest) -> GenerationResult:
        """
        Run a generation request with retry logic.

        Transient errors are retried with exponential backoff. QuotaError
        and non-recoverable ProviderError propagate to the caller; anything
        else becomes a FAILED result.

        Args:
            request: Generation request parameters

        Returns:
            GenerationResult
        """
        result = self._new_result(request)

        if not self.is_configured:
            result.status = GenerationStatus.FAILED
            result.error_message = f"{self.provider_name} not configured ({self.env_key_name} unset)"
            result.error_code = "not_configured"
            return result

        last_error = None

        for attempt in range(self.max_retries + 1):
            try:
                if attempt > 0:
                    delay = self.retry_delay * (DEFAULT_RETRY_MULTIPLIER ** (attempt - 1))
                    logger.info(f"{self.provider_name}: retry {attempt}/{self.max_retries} after {delay:.1f}s")
                    await asyncio.sleep(delay)

                logger.info(f"Generating {request.kind.value} with {self.provider_name} (attempt {attempt + 1})")
                data = await self._make_generation_request(request)

                if self._is_async_response(data):
                    job_id = self._extract_job_id(data)
                    data = await self.wait_for_completion(job_id)
                    result.job_id = job_id

                result = self._parse_response(data, result)
                if result.status == GenerationStatus.COMPLETED:
                    result.completed_at = datetime.now()
                return result

            except QuotaError:
                raise

            except RateLimitError as e:
                last_error = e
                logger.warning(f"{self.provider_name} rate limited: {e}")
                continue

            except ProviderError as e:
                last_error = e
                if not e.recoverable:
                    raise
                logger.warning(f"{self.provider_name} recoverable error: {redact_api_key(str(e))}")
                continue

            except Exception as e:
                logger.error(f"{self.provider_name} generation failed: {redact_api_key(str(e))}")
                result.status = GenerationStatus.FAILED
                result.error_message = redact_api_key(str(e)) or e.__class__.__name__
                return result

        result.status = GenerationStatus.FAILED
        result.error_message = f"All retries exhausted. Last error: {redact_api_key(str(last_error))}"
        return result

    async def check_status(self, job_id: str) -> Dict[str, Any]:
        """Return raw job data with a normalized ``_status`` key."""
        data = await self._check_job_status(job_id)
        status = GenerationStatus.from_provider_status(self._extract_status(data))
        if status == GenerationStatus.COMPLETED:
            data = await self._fetch_job_result(job_id, data)
        data["_status"] = status
        return data

    async def wait_for_completion(self, job_id: str) -> Dict[str, Any]:
        """
        Poll a job until it finishes, at most ``max_poll_attempts`` times.

        Raises:
            ProviderError: If the job failed
            TimeoutError: If the attempt budget runs out
        """
        for attempt in range(self.max_poll_attempts):
            data = await self.check_status(job_id)
            status = data["_status"]

            if status == GenerationStatus.COMPLETED:
                return data
            if status in (GenerationStatus.FAILED, GenerationStatus.CANCELLED):
                raise ProviderError(
                    f"Job {job_id} {status.value}: {self._extract_error(data)}",
                    provider=self.provider_name,
                    recoverable=False,
                )

            logger.debug(f"{self.provider_name} job {job_id}: {status.value} ({attempt + 1}/{self.max_poll_attempts})")
            await asyncio.sleep(self.poll_interval)

        ceiling = self.poll_interval * self.max_poll_attempts
        raise TimeoutError(
            f"Job {job_id} timed out after {self.max_poll_attempts} polls",
            operation="wait_for_completion",
            timeout_seconds=ceiling,
        )

    async def download(self, url: str) -> bytes:
        """Download a provider-hosted asset."""
        client = await self._get_client()
        response = await client.get(url, follow_redirects=True)
        self._raise_for_status(response)
        return response.content

    # -------------------------------------------------------------------------
    # Helper Methods
    # -------------------------------------------------------------------------

    def _get_api_key_from_env(self) -> Optional[str]:
        return os.getenv(self.env_key_name)

    def _validate_config(self) -> None:
        if not self.api_key:
            logger.warning(
                f"No API key found for {self.provider_name}. "
                f"Set {self.env_key_name} environment variable or pass api_key parameter."
            )

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        async with self._client_lock:
            if self._client is None:
                self._client = httpx.AsyncClient(
                    timeout=httpx.Timeout(self.timeout),
                    headers=self._get_headers(),
                )
            return self._client

    def _get_headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def _raise_for_status(self, response: httpx.Response) -> None:
        """
        Classify a failed HTTP response.

        Raises:
            QuotaError: billing/quota exhaustion
            RateLimitError: 429 without quota markers
            ProviderError: anything else (recoverable for 5xx)
        """
        if response.status_code < 400:
            return

        body = response.text or ""
        if is_quota_failure(response.status_code, body):
            raise QuotaError(
                f"{self.provider_name} quota or billing error ({response.status_code})",
                provider=self.provider_name,
                provider_class=self.provider_class,
                status_code=response.status_code,
                response_body=body,
            )
        if response.status_code == 429:
            retry_after = response.headers.get("retry-after")
            raise RateLimitError(
                f"{self.provider_name} rate limited",
                retry_after=int(retry_after) if retry_after and retry_after.isdigit() else None,
                provider=self.provider_name,
            )
        raise ProviderError(
            f"{self.provider_name} API error: {response.status_code}",
            provider=self.provider_name,
            status_code=response.status_code,
            response_body=body,
        )

    def _is_async_response(self, data: Dict[str, Any]) -> bool:
        return False

    def _extract_job_id(self, data: Dict[str, Any]) -> str:
        return data.get("request_id") or data.get("job_id") or data.get("task_id") or data.get("id") or ""

    def _extract_status(self, data: Dict[str, Any]) -> str:
        return data.get("status") or data.get("state") or "unknown"

    def _extract_error(self, data: Dict[str, Any]) -> str:
        return (
            data.get("error")
            or data.get("error_message")
            or data.get("message")
            or "Unknown error"
        )

    # -------------------------------------------------------------------------
    # Context Manager Protocol
    # -------------------------------------------------------------------------

    async def close(self) -> None:
        """Close the HTTP client."""
        async with self._client_lock:
            if self._client:
                await self._client.aclose()
                self._client = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
