"""
API Integration Layer
=====================

Unified access to the generation and stock media services used by the
pipeline.

Supported Providers:
- fal.ai FLUX Pro / Dev / Schnell (images)
- HuggingFace SDXL (images)
- Pexels (images, videos) and Pixabay (videos)
- ElevenLabs (voiceover, music)
- Jamendo (music)
- PiAPI (sound effects) and a static stock sound library

Usage:
    from promo_producer.api import get_provider, GenerationRequest, AssetKind

    provider = get_provider("fal-flux-pro")
    result = await provider.generate(
        GenerationRequest(prompt="Sunlit kitchen, fresh herbs", kind=AssetKind.IMAGE)
    )
"""

from .base import (
    AssetKind,
    BaseGenerationProvider,
    GenerationRequest,
    GenerationResult,
    GenerationStatus,
    is_quota_failure,
)
from .factory import build_chain, get_provider, list_providers, register_provider

__all__ = [
    "AssetKind",
    "BaseGenerationProvider",
    "GenerationRequest",
    "GenerationResult",
    "GenerationStatus",
    "is_quota_failure",
    "build_chain",
    "get_provider",
    "list_providers",
    "register_provider",
]
