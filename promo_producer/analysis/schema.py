"""
Scene Analysis Schema
=====================

Strict pydantic schema for vision-model scene analysis. Every field the
scoring engine and composition planner depend on is required; a response
that omits one is rejected instead of being filled with guessed values.
"""

import json
import logging
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError as PydanticValidationError

from ..core.exceptions import AnalysisDecodeError

logger = logging.getLogger(__name__)


IssueCategory = Literal["ai_artifacts", "content_match", "brand_compliance", "technical", "composition"]
Severity = Literal["critical", "major", "minor"]
Framing = Literal["extreme_close_up", "close_up", "medium", "wide", "extreme_wide"]
VerticalZone = Literal["top", "center", "lower-third"]
HorizontalZone = Literal["left", "center", "right"]


class AnalysisIssue(BaseModel):
    """A problem the vision model detected in a frame."""

    model_config = ConfigDict(extra="ignore")

    category: IssueCategory
    severity: Severity
    description: str
    suggestion: str = ""


class TextPosition(BaseModel):
    model_config = ConfigDict(extra="ignore")

    vertical: VerticalZone
    horizontal: HorizontalZone


class OverlayPosition(BaseModel):
    model_config = ConfigDict(extra="ignore")

    x: HorizontalZone
    y: Literal["top", "center", "bottom"]


class CompositionHints(BaseModel):
    """Text and overlay recommendations for the frame."""

    model_config = ConfigDict(extra="ignore")

    text_position: TextPosition
    text_color: str = Field(pattern=r"^#[0-9A-Fa-f]{6}$")
    needs_text_shadow: bool
    needs_text_background: bool
    product_overlay_position: OverlayPosition
    product_overlay_safe: bool


class FrameAnalysis(BaseModel):
    """Where things are in the frame."""

    model_config = ConfigDict(extra="ignore")

    subject_position: Literal["left", "center", "right", "none"]
    face_detected: bool
    busy_regions: List[str] = Field(default_factory=list)
    dominant_colors: List[str] = Field(default_factory=list)
    lighting_type: str
    safe_text_zones: List[VerticalZone] = Field(default_factory=list)


class SceneAnalysis(BaseModel):
    """Validated vision analysis for one scene visual."""

    model_config = ConfigDict(extra="ignore")

    technical_score: int = Field(ge=0, le=100)
    content_match_score: int = Field(ge=0, le=100)
    brand_compliance_score: int = Field(ge=0, le=100)
    composition_score: int = Field(ge=0, le=100)

    text_overlay_present: bool
    environment_visible: bool
    framing: Framing
    ai_artifacts_detected: bool

    content_type: str
    mood: str
    frame: FrameAnalysis
    recommendations: CompositionHints
    issues: List[AnalysisIssue] = Field(default_factory=list)

    # Filled by the client, not the model
    analysis_model: Optional[str] = None

    @property
    def critical_issues(self) -> List[AnalysisIssue]:
        return [i for i in self.issues if i.severity == "critical"]


# =============================================================================
# Decoding
# =============================================================================


def extract_json_object(text: str) -> Dict[str, Any]:
    """
    Return the first well-formed JSON object embedded in free text.

    Args:
        text: Raw model response (may contain prose or code fences)

    Returns:
        Parsed JSON object

    Raises:
        AnalysisDecodeError: If no JSON object can be decoded
    """
    if not text:
        raise AnalysisDecodeError("Empty analysis response")

    decoder = json.JSONDecoder()
    start = text.find("{")
    while start != -1:
        try:
            obj, _ = decoder.raw_decode(text, start)
        except json.JSONDecodeError:
            start = text.find("{", start + 1)
            continue
        if isinstance(obj, dict):
            return obj
        start = text.find("{", start + 1)

    raise AnalysisDecodeError("No JSON object found in analysis response", raw_response=text)


def decode_scene_analysis(text: str) -> SceneAnalysis:
    """
    Decode and validate a model response into a SceneAnalysis.

    Raises:
        AnalysisDecodeError: If the payload is missing or fails the schema
    """
    payload = extract_json_object(text)
    try:
        return SceneAnalysis.model_validate(payload)
    except PydanticValidationError as e:
        fields = sorted({".".join(str(p) for p in err["loc"]) for err in e.errors()})
        logger.warning(f"Analysis response failed schema validation: {fields}")
        raise AnalysisDecodeError(
            f"Analysis response failed schema validation ({len(fields)} field(s))",
            raw_response=text,
            details={"fields": fields},
        )
