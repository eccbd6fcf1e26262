"""
HuggingFace Inference Provider
==============================

Stable Diffusion XL through the HuggingFace inference router. The API
answers synchronously with raw image bytes, which the caller uploads to
durable storage.
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


DEFAULT_NEGATIVE_PROMPT = "blurry, low quality, distorted, ugly, bad anatomy"


@register_provider("huggingface")
class HuggingFaceProvider(BaseGenerationProvider):
    """SDXL image generation via the HuggingFace router."""

    provider_class = "huggingface"
    provenance = Provenance.AI
    kind = AssetKind.IMAGE

    MODEL = "stabilityai/stable-diffusion-xl-base-1.0"

    @property
    def provider_name(self) -> str:
        return "huggingface"

    @property
    def env_key_name(self) -> str:
        return "HUGGINGFACE_API_TOKEN"

    def _get_default_base_url(self) -> str:
        return "https://router.huggingface.co/hf-inference/models"

    async def _make_generation_request(self, request: GenerationRequest) -> Dict[str, Any]:
        payload = {
            "inputs": request.prompt,
            "parameters": {
                "negative_prompt": request.negative_prompt or DEFAULT_NEGATIVE_PROMPT,
                "num_inference_steps": 25,
                "guidance_scale": 7.5,
            },
        }

        client = await self._get_client()
        response = await client.post(f"{self.base_url}/{self.MODEL}", json=payload)
        self._raise_for_status(response)

        return {
            "content": response.content,
            "content_type": response.headers.get("content-type", "image/png"),
        }

    def _parse_response(
        self,
        data: Dict[str, Any],
        result: GenerationResult,
    ) -> GenerationResult:
        content_type = data.get("content_type") or ""
        if not data.get("content") or not content_type.startswith("image/"):
            raise GenerationError(
                f"HuggingFace returned {content_type or 'nothing'} instead of an image",
                stage="images",
            )

        result.model = self.MODEL
        result.asset_bytes = data["content"]
        result.content_type = content_type.split(";")[0]
        result.status = GenerationStatus.COMPLETED
        return result
