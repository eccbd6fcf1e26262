"""
Jamendo Provider
================

Creative Commons instrumental music search, used when music composition
is unavailable.
"""

import logging
from typing import Optional, List, Dict, Any

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


# Search tags per video style
STYLE_TAGS = {
    "professional": ["ambient", "corporate", "background"],
    "friendly": ["happy", "acoustic", "positive"],
    "energetic": ["upbeat", "energetic", "motivational"],
    "calm": ["relaxing", "meditation", "calm"],
    "documentary": ["cinematic", "emotional", "documentary"],
    "wellness": ["spa", "relaxing", "meditation", "peaceful"],
}

FALLBACK_TAGS = ["ambient", "background", "soft", "calm"]

# A track must cover this fraction of the video to be preferred
MIN_COVERAGE = 0.8


def select_track(tracks: List[Dict[str, Any]], target_duration: float) -> Optional[Dict[str, Any]]:
    """
    Pick the first track long enough for the video, else the longest.

    Only tracks with a streamable ``audio`` URL are considered.
    """
    playable = [t for t in tracks if t.get("audio")]
    if not playable:
        return None

    min_duration = target_duration * MIN_COVERAGE
    for track in playable:
        if (track.get("duration") or 0) >= min_duration:
            return track
    return max(playable, key=lambda t: t.get("duration") or 0)


@register_provider("jamendo")
class JamendoProvider(BaseGenerationProvider):
    """Jamendo v3 track search."""

    provider_class = "jamendo"
    provenance = Provenance.STOCK
    kind = AssetKind.MUSIC

    @property
    def provider_name(self) -> str:
        return "jamendo"

    @property
    def env_key_name(self) -> str:
        return "JAMENDO_CLIENT_ID"

    def _get_default_base_url(self) -> str:
        return "https://api.jamendo.com/v3.0"

    def _get_headers(self) -> Dict[str, str]:
        return {}

    async def _search(self, tag: str) -> List[Dict[str, Any]]:
        client = await self._get_client()
        response = await client.get(
            f"{self.base_url}/tracks/",
            params={
                "client_id": self.api_key,
                "format": "json",
                "limit": 10,
                "tags": tag,
                "audioformat": "mp32",
                "vocalinstrumental": "instrumental",
            },
        )
        self._raise_for_status(response)
        return response.json().get("results", [])

    async def _make_generation_request(self, request: GenerationRequest) -> Dict[str, Any]:
        style = request.style or "professional"
        primary = STYLE_TAGS.get(style, ["ambient"])[0]
        target = request.duration or 30

        tags = [primary] + [t for t in FALLBACK_TAGS if t != primary]
        for tag in tags:
            tracks = await self._search(tag)
            logger.info(f"Jamendo '{tag}': {len(tracks)} tracks")
            track = select_track(tracks, target)
            if track:
                return {"track": track, "tag": tag}

        return {"track": None}

    def _parse_response(
        self,
        data: Dict[str, Any],
        result: GenerationResult,
    ) -> GenerationResult:
        track = data.get("track")
        if not track:
            result.status = GenerationStatus.FAILED
            result.error_message = "No suitable Jamendo track"
            result.error_code = "no_results"
            return result

        result.asset_url = track.get("audiodownload") or track["audio"]
        result.asset_duration = track.get("duration")
        result.content_type = "audio/mpeg"
        result.title = track.get("name", "")
        result.uploader = track.get("artist_name", "")
        result.tags = [data.get("tag", "")]
        result.status = GenerationStatus.COMPLETED
        logger.info(f"Selected Jamendo track: {result.title} by {result.uploader} ({result.asset_duration}s)")
        return result
