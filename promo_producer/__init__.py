"""
AI Promo Video Producer
=======================

Turns a narration script into a render-ready marketing video project:
timed scenes, voiceover, images and stock B-roll, music, sound design,
quality scores, composition instructions and durable asset URLs.

Features:
- Provider fallback chains (fal.ai, HuggingFace, Pexels, Pixabay, ElevenLabs, Jamendo, PiAPI)
- Audience and brand-safety gating of stock candidates
- Vision-model scene analysis and quality scoring
- Collision-free logo and product overlay placement
- S3-compatible durable caching and render preparation

Quick Start:
    from promo_producer import Config, PipelineOrchestrator, VideoProject

    project = VideoProject.from_segments(
        "Spring launch",
        segments,
        target_audience="women 50-65",
    )
    async with PipelineOrchestrator(Config.load()) as orchestrator:
        result = await orchestrator.produce(project)
    print(result.project.status)
"""

__version__ = "0.1.0"
__author__ = "AI Promo Video Producer"

# =============================================================================
# Core
# =============================================================================

from .core.config import Config, get_config, set_config, reset_config
from .core.exceptions import (
    VideoProducerError,
    ConfigurationError,
    ProviderError,
    QuotaError,
    StageError,
    ValidationError,
    ValidationRejection,
)

# =============================================================================
# Project Model
# =============================================================================

from .project import ProjectHistory, Scene, SceneType, VideoProject

# =============================================================================
# Pipeline
# =============================================================================

from .api import get_provider, list_providers
from .context import BrandAssetRegistry, ProjectContext
from .workflow import PipelineOrchestrator, ProductionResult, SceneRegenerator

__all__ = [
    "__version__",
    # Core
    "Config",
    "get_config",
    "set_config",
    "reset_config",
    # Exceptions
    "VideoProducerError",
    "ConfigurationError",
    "ProviderError",
    "QuotaError",
    "StageError",
    "ValidationError",
    "ValidationRejection",
    # Project
    "ProjectHistory",
    "Scene",
    "SceneType",
    "VideoProject",
    # Pipeline
    "get_provider",
    "list_providers",
    "BrandAssetRegistry",
    "ProjectContext",
    "PipelineOrchestrator",
    "ProductionResult",
    "SceneRegenerator",
]
