"""
Project Module
==============

Video project, scene and progress data models plus undo/redo history.
"""

from .models import (
    PIPELINE_STAGES,
    AssetReference,
    CompositionInstructions,
    FailureLedger,
    LogoSettings,
    MediaType,
    PlacementRect,
    ProductOverlay,
    ProjectProgress,
    ProjectStatus,
    Provenance,
    QualityIssue,
    QualityScore,
    Recommendation,
    Scene,
    SceneBackground,
    SceneType,
    ScoreBand,
    ServiceFailure,
    SoundCue,
    SoundPlan,
    StageProgress,
    StageStatus,
    TextOverlay,
    VideoProject,
)
from .history import ProjectHistory

__all__ = [
    "PIPELINE_STAGES",
    "AssetReference",
    "CompositionInstructions",
    "FailureLedger",
    "LogoSettings",
    "MediaType",
    "PlacementRect",
    "ProductOverlay",
    "ProjectProgress",
    "ProjectStatus",
    "Provenance",
    "QualityIssue",
    "QualityScore",
    "Recommendation",
    "Scene",
    "SceneBackground",
    "SceneType",
    "ScoreBand",
    "ServiceFailure",
    "SoundCue",
    "SoundPlan",
    "StageProgress",
    "StageStatus",
    "TextOverlay",
    "VideoProject",
    "ProjectHistory",
]
