"""
fal.ai Provider
===============

FLUX image generation through the fal.ai queue API. Three models are
registered as separate chain entries, from highest quality to fastest:

- fal-flux-pro (FLUX 1.1 Pro)
- fal-flux-dev (FLUX.1 dev)
- fal-flux-schnell (FLUX.1 schnell)

All three share one billing account, so a quota failure on any of them
skips the others.
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


class FalFluxProvider(BaseGenerationProvider):
    """
    fal.ai FLUX image provider.

    Subclasses pick the model endpoint and inference steps.
    """

    provider_class = "fal"
    provenance = Provenance.AI
    kind = AssetKind.IMAGE

    MODEL_ENDPOINT = "fal-ai/flux/dev"
    INFERENCE_STEPS = 28
    GUIDANCE_SCALE = 3.5

    @property
    def provider_name(self) -> str:
        return "fal.ai"

    @property
    def env_key_name(self) -> str:
        return "FAL_KEY"

    def _get_default_base_url(self) -> str:
        return "https://queue.fal.run"

    def _get_headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Key {self.api_key}",
            "Content-Type": "application/json",
        }

    def _build_payload(self, request: GenerationRequest) -> Dict[str, Any]:
        """Build the API request payload."""
        payload = {
            "prompt": request.prompt,
            "image_size": {"width": request.width, "height": request.height},
            "num_inference_steps": self.INFERENCE_STEPS,
            "num_images": 1,
            "enable_safety_checker": True,
        }
        if self.GUIDANCE_SCALE:
            payload["guidance_scale"] = self.GUIDANCE_SCALE
        payload.update(request.extra_params)
        return payload

    async def _make_generation_request(self, request: GenerationRequest) -> Dict[str, Any]:
        client = await self._get_client()
        logger.debug(f"Submitting to {self.MODEL_ENDPOINT}")
        response = await client.post(
            f"{self.base_url}/{self.MODEL_ENDPOINT}",
            json=self._build_payload(request),
        )
        self._raise_for_status(response)
        return response.json()

    def _is_async_response(self, data: Dict[str, Any]) -> bool:
        return "request_id" in data and "images" not in data

    async def _check_job_status(self, job_id: str) -> Dict[str, Any]:
        client = await self._get_client()
        response = await client.get(
            f"{self.base_url}/{self.MODEL_ENDPOINT}/requests/{job_id}/status"
        )
        self._raise_for_status(response)
        return response.json()

    async def _fetch_job_result(self, job_id: str, status_data: Dict[str, Any]) -> Dict[str, Any]:
        client = await self._get_client()
        response = await client.get(f"{self.base_url}/{self.MODEL_ENDPOINT}/requests/{job_id}")
        self._raise_for_status(response)
        return response.json()

    def _parse_response(
        self,
        data: Dict[str, Any],
        result: GenerationResult,
    ) -> GenerationResult:
        """Parse API response into result."""
        result.model = self.MODEL_ENDPOINT
        images = data.get("images") or []
        if not images or not images[0].get("url"):
            raise GenerationError(
                "fal.ai returned no image",
                job_id=result.job_id,
                stage="images",
            )

        image = images[0]
        result.asset_url = image["url"]
        result.content_type = image.get("content_type", "image/jpeg")
        result.width = image.get("width")
        result.height = image.get("height")
        result.status = GenerationStatus.COMPLETED
        return result


@register_provider("fal-flux-pro")
class FalFluxProProvider(FalFluxProvider):
    MODEL_ENDPOINT = "fal-ai/flux-pro/v1.1"
    INFERENCE_STEPS = 28
    GUIDANCE_SCALE = 3.5

    @property
    def provider_name(self) -> str:
        return "fal-flux-pro"


@register_provider("fal-flux-dev")
class FalFluxDevProvider(FalFluxProvider):
    MODEL_ENDPOINT = "fal-ai/flux/dev"
    INFERENCE_STEPS = 28
    GUIDANCE_SCALE = 3.5

    @property
    def provider_name(self) -> str:
        return "fal-flux-dev"


@register_provider("fal-flux-schnell")
class FalFluxSchnellProvider(FalFluxProvider):
    MODEL_ENDPOINT = "fal-ai/flux/schnell"
    INFERENCE_STEPS = 4
    GUIDANCE_SCALE = None

    @property
    def provider_name(self) -> str:
        return "fal-flux-schnell"
