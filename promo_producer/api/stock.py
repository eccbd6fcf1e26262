"""
Stock Media Providers
=====================

Search-based providers returning licensed stock media:

- pexels-image: Pexels photo search (last-resort image fallback)
- pexels-video: Pexels video search (B-roll)
- pixabay-video: Pixabay video search (B-roll)
- stock-sound: pre-rendered sound effect library

Search providers return the best hit as the result and the remaining hits
as ``alternatives`` so the audience gate can move down the list without a
second request.
"""

import os
import logging
import re
from typing import Optional, List, Dict, Any
from urllib.parse import urlparse

from .base import (
    AssetKind,
    BaseGenerationProvider,
    GenerationRequest,
    GenerationResult,
    GenerationStatus,
)
from .factory import register_provider
from ..project.models import Provenance

logger = logging.getLogger(__name__)


DEFAULT_PER_PAGE = 5


def title_from_page_url(url: Optional[str]) -> str:
    """
    Derive a readable title from a stock page URL slug.

    >>> title_from_page_url("https://www.pexels.com/video/woman-doing-yoga-3327/")
    'woman doing yoga'
    """
    if not url:
        return ""
    path = urlparse(url).path.rstrip("/")
    slug = path.rsplit("/", 1)[-1]
    slug = re.sub(r"-?\d+$", "", slug)
    return slug.replace("-", " ").strip()


class StockSearchProvider(BaseGenerationProvider):
    """Shared search flow: try each query until one returns hits."""

    provenance = Provenance.STOCK
    per_page = DEFAULT_PER_PAGE

    async def _search(self, query: str, request: GenerationRequest) -> List[GenerationResult]:
        raise NotImplementedError

    async def _make_generation_request(self, request: GenerationRequest) -> Dict[str, Any]:
        for query in request.queries():
            hits = await self._search(query, request)
            if hits:
                logger.info(f"{self.provider_name}: {len(hits)} hits for '{query}'")
                return {"hits": hits, "query": query}
            logger.info(f"{self.provider_name}: no hits for '{query}'")
        return {"hits": [], "query": None}

    def _parse_response(
        self,
        data: Dict[str, Any],
        result: GenerationResult,
    ) -> GenerationResult:
        hits = data.get("hits") or []
        if not hits:
            result.status = GenerationStatus.FAILED
            result.error_message = "No stock results"
            result.error_code = "no_results"
            return result

        best = hits[0]
        best.alternatives = hits[1:]
        best.status = GenerationStatus.COMPLETED
        return best

    def _hit(self, request: GenerationRequest, **fields) -> GenerationResult:
        return GenerationResult(
            kind=request.kind,
            provider=self.provider_name,
            status=GenerationStatus.COMPLETED,
            **fields,
        )


# =============================================================================
# Pexels
# =============================================================================


class PexelsProvider(StockSearchProvider):
    provider_class = "pexels"

    @property
    def env_key_name(self) -> str:
        return "PEXELS_API_KEY"

    def _get_default_base_url(self) -> str:
        return "https://api.pexels.com"

    def _get_headers(self) -> Dict[str, str]:
        return {"Authorization": self.api_key or ""}


@register_provider("pexels-image")
class PexelsImageProvider(PexelsProvider):
    """Pexels photo search."""

    kind = AssetKind.IMAGE

    @property
    def provider_name(self) -> str:
        return "pexels-image"

    async def _search(self, query: str, request: GenerationRequest) -> List[GenerationResult]:
        client = await self._get_client()
        response = await client.get(
            f"{self.base_url}/v1/search",
            params={
                "query": query,
                "per_page": self.per_page,
                "orientation": request.orientation,
            },
        )
        self._raise_for_status(response)

        hits = []
        for photo in response.json().get("photos", []):
            src = photo.get("src") or {}
            url = src.get("large2x") or src.get("original")
            if not url:
                continue
            hits.append(self._hit(
                request,
                asset_url=url,
                content_type="image/jpeg",
                title=photo.get("alt") or title_from_page_url(photo.get("url")),
                uploader=photo.get("photographer", ""),
                width=photo.get("width"),
                height=photo.get("height"),
            ))
        return hits


@register_provider("pexels-video")
class PexelsVideoProvider(PexelsProvider):
    """Pexels video search, HD files only."""

    kind = AssetKind.VIDEO

    @property
    def provider_name(self) -> str:
        return "pexels-video"

    @staticmethod
    def _pick_file(video_files: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        hd = [f for f in video_files if f.get("quality") == "hd" and f.get("link")]
        if not hd:
            return None
        # Prefer 1920 wide, then the widest available
        hd.sort(key=lambda f: (f.get("width") == 1920, f.get("width") or 0), reverse=True)
        return hd[0]

    async def _search(self, query: str, request: GenerationRequest) -> List[GenerationResult]:
        client = await self._get_client()
        response = await client.get(
            f"{self.base_url}/videos/search",
            params={
                "query": query,
                "per_page": self.per_page,
                "orientation": request.orientation,
            },
        )
        self._raise_for_status(response)

        hits = []
        for video in response.json().get("videos", []):
            chosen = self._pick_file(video.get("video_files") or [])
            if chosen is None:
                continue
            hits.append(self._hit(
                request,
                asset_url=chosen["link"],
                content_type=chosen.get("file_type", "video/mp4"),
                asset_duration=video.get("duration"),
                tags=[str(t) for t in video.get("tags") or []],
                title=title_from_page_url(video.get("url")),
                uploader=(video.get("user") or {}).get("name", ""),
                width=chosen.get("width"),
                height=chosen.get("height"),
            ))
        return hits


# =============================================================================
# Pixabay
# =============================================================================


@register_provider("pixabay-video")
class PixabayVideoProvider(StockSearchProvider):
    """Pixabay video search."""

    provider_class = "pixabay"
    kind = AssetKind.VIDEO

    @property
    def provider_name(self) -> str:
        return "pixabay-video"

    @property
    def env_key_name(self) -> str:
        return "PIXABAY_API_KEY"

    def _get_default_base_url(self) -> str:
        return "https://pixabay.com/api"

    def _get_headers(self) -> Dict[str, str]:
        return {}

    async def _search(self, query: str, request: GenerationRequest) -> List[GenerationResult]:
        client = await self._get_client()
        response = await client.get(
            f"{self.base_url}/videos/",
            params={"key": self.api_key, "q": query, "per_page": self.per_page},
        )
        self._raise_for_status(response)

        hits = []
        for hit in response.json().get("hits", []):
            videos = hit.get("videos") or {}
            rendition = videos.get("large") or {}
            if not rendition.get("url"):
                rendition = videos.get("medium") or {}
            if not rendition.get("url"):
                continue
            tags = [t.strip() for t in (hit.get("tags") or "").split(",") if t.strip()]
            hits.append(self._hit(
                request,
                asset_url=rendition["url"],
                content_type="video/mp4",
                asset_duration=hit.get("duration"),
                tags=tags,
                title=title_from_page_url(hit.get("pageURL")),
                uploader=hit.get("user", ""),
                width=rendition.get("width"),
                height=rendition.get("height"),
            ))
        return hits


# =============================================================================
# Stock Sound Library
# =============================================================================


@register_provider("stock-sound")
class StockSoundProvider(BaseGenerationProvider):
    """
    Pre-rendered sound effects served from a static library.

    Files are addressed as ``{base_url}/{effect}-{variant}.mp3``. No network
    call is made; the library is assumed complete.
    """

    provider_class = "stock-sound"
    provenance = Provenance.STOCK
    kind = AssetKind.SOUND

    @property
    def provider_name(self) -> str:
        return "stock-sound"

    @property
    def env_key_name(self) -> str:
        return "STOCK_SOUND_BASE_URL"

    def _get_default_base_url(self) -> str:
        return os.getenv(self.env_key_name, "")

    @property
    def is_configured(self) -> bool:
        return bool(self.base_url)

    def _validate_config(self) -> None:
        if not self.base_url:
            logger.warning(f"No stock sound library configured. Set {self.env_key_name} or sound.stock_base_url.")

    async def _make_generation_request(self, request: GenerationRequest) -> Dict[str, Any]:
        effect = request.extra_params.get("effect", "whoosh")
        variant = request.extra_params.get("variant", "soft")
        return {"url": f"{self.base_url}/{effect}-{variant}.mp3", "effect": effect, "variant": variant}

    def _parse_response(
        self,
        data: Dict[str, Any],
        result: GenerationResult,
    ) -> GenerationResult:
        result.asset_url = data["url"]
        result.content_type = "audio/mpeg"
        result.title = f"{data['effect']} {data['variant']}"
        result.status = GenerationStatus.COMPLETED
        return result
