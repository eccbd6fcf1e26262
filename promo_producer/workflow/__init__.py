"""
Workflow Orchestration
======================

Stage-by-stage production of a marketing video project.

Components:
- PipelineOrchestrator: Runs every stage and finalizes the project
- SceneRegenerator: Targeted re-runs and the auto-regeneration loop
- FallbackExecutor: Ordered provider chains with a failure ledger
- AudienceGate: Audience and brand-safety checks for candidates
- QualityScoringEngine: Scene scoring and the project quality report
- CompositionPlanner / PlacementCalculator: Text and overlay layout
- SoundSequencer: Transition, ambience and emphasis cues
"""

from .audience import AudienceGate, GateDecision
from .caching import (
    AssetFetcher,
    CacheSummary,
    DurabilityService,
    RenderReadiness,
    cache_project_assets,
    prepare_assets_for_render,
)
from .composition import CompositionPlanner
from .fallback import FallbackExecutor, FallbackResult
from .orchestrator import PipelineOrchestrator, ProductionResult
from .placement import PlacementCalculator, PlacementRequest
from .prompts import build_image_prompt, build_video_search_query, improve_prompt
from .quality import (
    ContentRequirements,
    ProjectQualityReport,
    QualityScoringEngine,
    build_quality_report,
)
from .regeneration import SceneRegenerator
from .sound import SoundSequencer
from .timing import TimingModel, count_words

__all__ = [
    "AudienceGate",
    "GateDecision",
    "AssetFetcher",
    "CacheSummary",
    "DurabilityService",
    "RenderReadiness",
    "cache_project_assets",
    "prepare_assets_for_render",
    "CompositionPlanner",
    "FallbackExecutor",
    "FallbackResult",
    "PipelineOrchestrator",
    "ProductionResult",
    "PlacementCalculator",
    "PlacementRequest",
    "build_image_prompt",
    "build_video_search_query",
    "improve_prompt",
    "ContentRequirements",
    "ProjectQualityReport",
    "QualityScoringEngine",
    "build_quality_report",
    "SceneRegenerator",
    "SoundSequencer",
    "TimingModel",
    "count_words",
]
