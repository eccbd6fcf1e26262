"""
PiAPI Provider (Sound Effects)
==============================

Text-to-audio sound effects through PiAPI's task API. Tasks are queued and
polled until an audio URL is available.
"""

import logging
from typing import Optional, Dict, Any

from .base import (
    AssetKind,
    BaseGenerationProvider,
    GenerationRequest,
    GenerationResult,
    GenerationStatus,
)
from .factory import register_provider
from ..core.exceptions import GenerationError, ProviderError
from ..project.models import Provenance

logger = logging.getLogger(__name__)


@register_provider("piapi-sound")
class PiAPISoundProvider(BaseGenerationProvider):
    """
    PiAPI text-to-audio provider.

    Generates short transitions, ambiences and emphasis hits from a prompt.
    """

    provider_class = "piapi"
    provenance = Provenance.AI
    kind = AssetKind.SOUND

    MODEL = "kling-sound"

    @property
    def provider_name(self) -> str:
        return "piapi-sound"

    @property
    def env_key_name(self) -> str:
        return "PIAPI_API_KEY"

    def _get_default_base_url(self) -> str:
        return "https://api.piapi.ai/api/v1"

    def _get_headers(self) -> Dict[str, str]:
        return {
            "X-API-Key": self.api_key or "",
            "Content-Type": "application/json",
        }

    def _build_payload(self, request: GenerationRequest) -> Dict[str, Any]:
        """Build PiAPI request payload."""
        return {
            "model": self.MODEL,
            "task_type": "text_to_audio",
            "input": {
                "prompt": request.prompt,
                "duration": request.duration or 1,
                "style": request.mood or "cinematic",
            },
        }

    async def _make_generation_request(self, request: GenerationRequest) -> Dict[str, Any]:
        client = await self._get_client()
        response = await client.post(f"{self.base_url}/task", json=self._build_payload(request))
        self._raise_for_status(response)

        data = response.json()
        task_id = (data.get("data") or {}).get("task_id")
        if not task_id:
            raise ProviderError(
                f"PiAPI did not return a task id: {data.get('message', 'unknown error')}",
                provider=self.provider_name,
                recoverable=False,
            )
        logger.debug(f"PiAPI sound task queued: {task_id}")
        return {"task_id": task_id}

    def _is_async_response(self, data: Dict[str, Any]) -> bool:
        return "task_id" in data

    async def _check_job_status(self, job_id: str) -> Dict[str, Any]:
        client = await self._get_client()
        response = await client.get(f"{self.base_url}/task/{job_id}")
        self._raise_for_status(response)
        return response.json().get("data") or {}

    def _extract_error(self, data: Dict[str, Any]) -> str:
        error = data.get("error")
        if isinstance(error, dict):
            return error.get("message") or "Unknown error"
        return error or "Unknown error"

    @staticmethod
    def _audio_url(data: Dict[str, Any]) -> Optional[str]:
        output = data.get("output") or {}
        return output.get("audio_url") or output.get("audio") or data.get("audio_url")

    def _parse_response(
        self,
        data: Dict[str, Any],
        result: GenerationResult,
    ) -> GenerationResult:
        url = self._audio_url(data)
        if not url:
            raise GenerationError("PiAPI task finished without audio", job_id=result.job_id, stage="sound_design")

        result.model = self.MODEL
        result.asset_url = url
        result.content_type = "audio/mpeg"
        result.status = GenerationStatus.COMPLETED
        return result
