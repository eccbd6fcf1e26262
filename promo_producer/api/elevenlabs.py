"""
ElevenLabs Providers
====================

Voiceover (text-to-speech) and instrumental music composition. Both share
one API key and one billing account.
"""

import logging
from typing import Dict, Any

from .base import (
    AssetKind,
    BaseGenerationProvider,
    GenerationRequest,
    GenerationResult,
    GenerationStatus,
)
from .factory import register_provider
from ..core.exceptions import GenerationError
from ..project.models import Provenance

logger = logging.getLogger(__name__)


DEFAULT_VOICE_ID = "21m00Tcm4TlvDq8ikWAM"
DEFAULT_TTS_MODEL = "eleven_multilingual_v2"

VOICE_SETTINGS = {
    "stability": 0.5,
    "similarity_boost": 0.75,
    "style": 0.4,
    "use_speaker_boost": True,
}

# Music API limits
MIN_MUSIC_MS = 10_000
MAX_MUSIC_MS = 300_000


class ElevenLabsProvider(BaseGenerationProvider):
    """Shared ElevenLabs auth and audio-bytes handling."""

    provider_class = "elevenlabs"
    provenance = Provenance.AI

    @property
    def env_key_name(self) -> str:
        return "ELEVENLABS_API_KEY"

    def _get_default_base_url(self) -> str:
        return "https://api.elevenlabs.io/v1"

    def _get_headers(self) -> Dict[str, str]:
        return {
            "xi-api-key": self.api_key or "",
            "Content-Type": "application/json",
            "Accept": "audio/mpeg",
        }

    async def _post_for_audio(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        client = await self._get_client()
        response = await client.post(f"{self.base_url}/{path}", json=payload)
        self._raise_for_status(response)
        return {
            "content": response.content,
            "content_type": response.headers.get("content-type", "audio/mpeg"),
        }

    def _parse_response(
        self,
        data: Dict[str, Any],
        result: GenerationResult,
    ) -> GenerationResult:
        if not data.get("content"):
            raise GenerationError(f"{self.provider_name} returned empty audio")

        result.asset_bytes = data["content"]
        result.content_type = (data.get("content_type") or "audio/mpeg").split(";")[0]
        result.status = GenerationStatus.COMPLETED
        return result


@register_provider("elevenlabs-voice")
class ElevenLabsVoiceProvider(ElevenLabsProvider):
    """Narration voiceover via text-to-speech."""

    kind = AssetKind.VOICE

    @property
    def provider_name(self) -> str:
        return "elevenlabs"

    async def _make_generation_request(self, request: GenerationRequest) -> Dict[str, Any]:
        if not request.prompt:
            raise GenerationError("No narration text for voiceover", stage="voiceover")

        voice_id = request.voice_id or DEFAULT_VOICE_ID
        payload = {
            "text": request.prompt,
            "model_id": request.extra_params.get("model_id", DEFAULT_TTS_MODEL),
            "voice_settings": dict(VOICE_SETTINGS),
        }
        logger.info(f"Generating voiceover: {len(request.prompt.split())} words, voice {voice_id}")
        return await self._post_for_audio(f"text-to-speech/{voice_id}", payload)

    def _parse_response(self, data: Dict[str, Any], result: GenerationResult) -> GenerationResult:
        result = super()._parse_response(data, result)
        result.model = DEFAULT_TTS_MODEL
        return result


@register_provider("elevenlabs-music")
class ElevenLabsMusicProvider(ElevenLabsProvider):
    """Instrumental background music composition."""

    kind = AssetKind.MUSIC

    @property
    def provider_name(self) -> str:
        return "elevenlabs-music"

    async def _make_generation_request(self, request: GenerationRequest) -> Dict[str, Any]:
        duration_ms = int((request.duration or 30) * 1000)
        duration_ms = max(MIN_MUSIC_MS, min(duration_ms, MAX_MUSIC_MS))
        payload = {
            "prompt": request.prompt,
            "duration_ms": duration_ms,
            "instrumental": True,
            "output_format": "mp3_44100_128",
        }
        logger.info(f"Composing music ({duration_ms // 1000}s): {request.prompt[:80]}")
        data = await self._post_for_audio("music/compose", payload)
        data["duration"] = request.duration
        return data

    def _parse_response(self, data: Dict[str, Any], result: GenerationResult) -> GenerationResult:
        result = super()._parse_response(data, result)
        result.asset_duration = data.get("duration")
        return result
