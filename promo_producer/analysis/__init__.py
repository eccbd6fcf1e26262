"""
Scene Analysis
==============

Vision-model analysis of scene visuals and its validated schema.
"""

from .schema import (
    AnalysisIssue,
    CompositionHints,
    FrameAnalysis,
    SceneAnalysis,
    decode_scene_analysis,
    extract_json_object,
)
from .vision import AnalysisContext, VisionAnalyzer

__all__ = [
    "AnalysisIssue",
    "CompositionHints",
    "FrameAnalysis",
    "SceneAnalysis",
    "decode_scene_analysis",
    "extract_json_object",
    "AnalysisContext",
    "VisionAnalyzer",
]
