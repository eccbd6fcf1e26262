"""
Vision Analyzer
===============

Scene analysis through the Anthropic Messages API. One analyzer serves
plain and brand-aware analysis; brand guidance is added to the prompt only
when the request context carries it.

Responses are decoded into the strict SceneAnalysis schema. A response
that cannot be decoded raises AnalysisDecodeError; nothing is guessed.
"""

import asyncio
import logging
import os
from dataclasses import dataclass
from typing import Optional, Dict, Any, List

from anthropic import AsyncAnthropic, APIError, APIConnectionError, RateLimitError

from ..core.config import AnalysisConfig
from ..core.exceptions import ProviderError, ValidationError
from ..core.security import decode_data_uri, is_data_uri, redact_api_key
from .schema import SceneAnalysis, decode_scene_analysis

logger = logging.getLogger(__name__)


SUPPORTED_MEDIA_TYPES = ("image/jpeg", "image/png", "image/webp", "image/gif")


@dataclass
class AnalysisContext:
    """What the scene is supposed to show."""

    scene_type: str
    narration: str = ""
    visual_direction: str = ""
    has_text_overlays: bool = False
    has_product_overlay: bool = False

    # Brand-aware analysis is enabled by supplying guidance
    brand_guidance: Optional[str] = None

    @property
    def brand_context_available(self) -> bool:
        return bool(self.brand_guidance)


ANALYSIS_PROMPT = """Analyze this image as the background of one scene in a marketing video.

CONTEXT:
- Scene type: {scene_type}
- Visual direction: "{visual_direction}"
- Narration: "{narration}"
- Has text overlays: {has_text_overlays}
- Has product overlay: {has_product_overlay}
{brand_section}
Score each dimension from 0 to 100:
- technical_score: sharpness, exposure, resolution, no compression damage
- content_match_score: how well the image shows the visual direction
- brand_compliance_score: warm natural look, no clinical or corporate feel
- composition_score: clear subject, room for text, balanced frame

Respond with ONLY a JSON object in this exact shape:
{{
  "technical_score": 0-100,
  "content_match_score": 0-100,
  "brand_compliance_score": 0-100,
  "composition_score": 0-100,
  "text_overlay_present": true/false,
  "environment_visible": true/false,
  "framing": "extreme_close_up" | "close_up" | "medium" | "wide" | "extreme_wide",
  "ai_artifacts_detected": true/false,
  "content_type": "person" | "product" | "nature" | "abstract" | "mixed",
  "mood": "positive" | "neutral" | "serious" | "dramatic",
  "frame": {{
    "subject_position": "left" | "center" | "right" | "none",
    "face_detected": true/false,
    "busy_regions": ["top" | "center" | "lower-third"],
    "dominant_colors": ["#RRGGBB"],
    "lighting_type": "string",
    "safe_text_zones": ["top" | "center" | "lower-third"]
  }},
  "recommendations": {{
    "text_position": {{"vertical": "top" | "center" | "lower-third", "horizontal": "left" | "center" | "right"}},
    "text_color": "#FFFFFF" or "#000000",
    "needs_text_shadow": true/false,
    "needs_text_background": true/false,
    "product_overlay_position": {{"x": "left" | "center" | "right", "y": "top" | "center" | "bottom"}},
    "product_overlay_safe": true/false
  }},
  "issues": [
    {{"category": "ai_artifacts" | "content_match" | "brand_compliance" | "technical" | "composition",
      "severity": "critical" | "major" | "minor",
      "description": "string",
      "suggestion": "string"}}
  ]
}}

RULES:
1. Garbled text, fake UI elements and distorted anatomy are ai_artifacts
2. A text zone is not safe if a face or the main subject occupies it
3. Use white text on dark backgrounds and black text on light ones
4. "text_overlay_present" means readable text is already baked into the image
"""

BRAND_SECTION = """
BRAND GUIDANCE:
{guidance}
Judge brand_compliance_score against this guidance.
"""


class VisionAnalyzer:
    """
    Anthropic-backed scene analyzer.

    Usage:
        analyzer = VisionAnalyzer(config.analysis)
        if analyzer.available:
            analysis = await analyzer.analyze(url, AnalysisContext(scene_type="hook"))
    """

    def __init__(
        self,
        config: Optional[AnalysisConfig] = None,
        api_key: Optional[str] = None,
        client: Optional[AsyncAnthropic] = None,
        max_retries: int = 3,
        retry_delay: float = 1.0,
    ):
        self.config = config or AnalysisConfig()
        self._api_key = api_key or os.getenv(self.config.api_key_env)
        self._client = client
        if self._client is None and self._api_key and self.config.enabled:
            self._client = AsyncAnthropic(api_key=self._api_key)
        self._max_retries = max_retries
        self._retry_delay = retry_delay

    @property
    def available(self) -> bool:
        return self.config.enabled and self._client is not None

    @property
    def model(self) -> str:
        return self.config.model

    def _image_block(self, image_url: str) -> Dict[str, Any]:
        if is_data_uri(image_url):
            data, mime = decode_data_uri(image_url)
            if mime not in SUPPORTED_MEDIA_TYPES:
                raise ValidationError(
                    f"Unsupported image type for analysis: {mime}",
                    field="image_url",
                    constraint=", ".join(SUPPORTED_MEDIA_TYPES),
                )
            _, _, payload = image_url.partition("base64,")
            return {
                "type": "image",
                "source": {"type": "base64", "media_type": mime, "data": payload},
            }
        return {"type": "image", "source": {"type": "url", "url": image_url}}

    def build_prompt(self, context: AnalysisContext) -> str:
        brand_section = ""
        if context.brand_context_available:
            brand_section = BRAND_SECTION.format(guidance=context.brand_guidance)
        return ANALYSIS_PROMPT.format(
            scene_type=context.scene_type,
            visual_direction=context.visual_direction[:300],
            narration=context.narration[:150],
            has_text_overlays=context.has_text_overlays,
            has_product_overlay=context.has_product_overlay,
            brand_section=brand_section,
        )

    async def _create_message(self, content: List[Dict[str, Any]]) -> str:
        for attempt in range(self._max_retries):
            try:
                logger.debug(f"Sending analysis request (attempt {attempt + 1}/{self._max_retries})")
                response = await self._client.messages.create(
                    model=self.config.model,
                    max_tokens=self.config.max_tokens,
                    messages=[{"role": "user", "content": content}],
                )
                return "".join(
                    block.text for block in response.content if getattr(block, "type", None) == "text"
                )

            except (RateLimitError, APIConnectionError) as e:
                if attempt == self._max_retries - 1:
                    raise ProviderError(
                        f"Vision analysis failed: {redact_api_key(str(e))}",
                        provider="anthropic",
                        recoverable=True,
                    )
                delay = self._retry_delay * (2 ** attempt)
                logger.warning(f"Analysis request failed ({e.__class__.__name__}). Retrying in {delay:.1f}s...")
                await asyncio.sleep(delay)

            except APIError as e:
                logger.error(f"Vision API error: {redact_api_key(str(e))}")
                raise ProviderError(
                    f"Vision analysis failed: {redact_api_key(str(e))}",
                    provider="anthropic",
                    status_code=getattr(e, "status_code", None),
                )

        raise ProviderError("Vision analysis retries exhausted", provider="anthropic")

    async def analyze(self, image_url: str, context: AnalysisContext) -> SceneAnalysis:
        """
        Analyze one scene image.

        Raises:
            ProviderError: If the analyzer is unavailable or the API fails
            AnalysisDecodeError: If the response fails the schema
        """
        if not self.available:
            raise ProviderError("Vision analyzer not configured", provider="anthropic", recoverable=False)

        logger.info(
            f"Analyzing {context.scene_type} scene"
            f"{' with brand context' if context.brand_context_available else ''}"
        )
        content = [
            self._image_block(image_url),
            {"type": "text", "text": self.build_prompt(context)},
        ]
        text = await self._create_message(content)

        analysis = decode_scene_analysis(text)
        analysis.analysis_model = self.config.model
        logger.info(
            f"Analysis complete: content_match={analysis.content_match_score}, "
            f"framing={analysis.framing}, issues={len(analysis.issues)}"
        )
        return analysis
