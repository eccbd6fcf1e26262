"""
Quality Scoring Engine
======================

Turns a validated scene analysis into a composite quality score and a
recommendation, and aggregates scene scores into a project quality report.

"Not analyzed" is its own state: every numeric field is None, so a missing
analysis can never be mistaken for a low score.
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, List, Dict, Any, Iterable

from ..analysis.schema import AnalysisIssue, SceneAnalysis
from ..core.config import QualityConfig
from ..project.models import (
    QualityIssue,
    QualityScore,
    Recommendation,
    Scene,
    ScoreBand,
    VideoProject,
)

logger = logging.getLogger(__name__)


TEXT_REQUIRED_PATTERNS = (
    r"\btext (reading|saying|that says)\b",
    r"\bwords? (reading|saying|on (the )?screen)\b",
    r"\bon-?screen (text|words|caption)\b",
    r"\bheadline\b",
    r"\btitle card\b",
    r"\bcaption\b",
    r"\binfographic\b",
    r"\bsign (reading|saying)\b",
    r"[\"“][^\"”]{2,}[\"”]",
)

ENVIRONMENT_TERMS = (
    "kitchen", "living room", "bedroom", "bathroom", "office", "garden", "park",
    "outdoors", "outdoor", "beach", "forest", "store", "shop", "cafe", "studio",
    "home", "room", "environment", "surroundings", "landscape",
)


@dataclass
class ContentRequirements:
    """What a scene's visual direction demands of the image."""

    text_required: bool = False
    environment_required: bool = False

    @classmethod
    def from_scene(cls, scene: Scene) -> "ContentRequirements":
        direction = (scene.visual_direction or "").lower()
        text_required = any(re.search(p, direction) for p in TEXT_REQUIRED_PATTERNS)
        environment_required = any(re.search(r"\b" + re.escape(t) + r"\b", direction) for t in ENVIRONMENT_TERMS)
        return cls(text_required=text_required, environment_required=environment_required)


def _to_quality_issue(issue: AnalysisIssue) -> QualityIssue:
    return QualityIssue(
        category=issue.category,
        severity=issue.severity,
        description=issue.description,
        suggestion=issue.suggestion,
    )


class QualityScoringEngine:
    """
    Scores scene analyses.

    Weighted sum of four sub-scores, then ceilings that only lower the
    result, then threshold-based recommendation.
    """

    def __init__(self, config: Optional[QualityConfig] = None):
        self.config = config or QualityConfig()

    def not_analyzed(self, reason: str) -> QualityScore:
        """Explicit result for a scene that was not analyzed."""
        return QualityScore(analyzed=False, band=ScoreBand.NOT_ANALYZED, reason=reason)

    def weighted_score(self, analysis: SceneAnalysis) -> int:
        weights = self.config.weights
        total = (
            analysis.technical_score * weights["technical"]
            + analysis.content_match_score * weights["content_match"]
            + analysis.brand_compliance_score * weights["brand_compliance"]
            + analysis.composition_score * weights["composition"]
        )
        return int(round(total))

    def recommend(self, score: int, issues: Iterable[QualityIssue] = ()) -> Recommendation:
        """
        Recommendation from the (clamped) composite score.

        Any critical issue forces CRITICAL_FAIL regardless of the score.
        """
        if any(i.severity == "critical" for i in issues):
            return Recommendation.CRITICAL_FAIL
        if score >= self.config.approve_threshold:
            return Recommendation.APPROVED
        if score >= self.config.review_threshold:
            return Recommendation.NEEDS_REVIEW
        if score >= self.config.regenerate_threshold:
            return Recommendation.REGENERATE
        return Recommendation.CRITICAL_FAIL

    def score(
        self,
        analysis: Optional[SceneAnalysis],
        requirements: Optional[ContentRequirements] = None,
    ) -> QualityScore:
        """
        Score one analysis.

        Args:
            analysis: Validated analysis, or None when unavailable
            requirements: Content the scene must show

        Returns:
            QualityScore
        """
        if analysis is None:
            return self.not_analyzed("No analysis available")

        requirements = requirements or ContentRequirements()
        weighted = self.weighted_score(analysis)
        composite = weighted
        overrides = []

        if requirements.text_required and not analysis.text_overlay_present:
            composite = min(composite, self.config.missing_text_ceiling)
            overrides.append("missing_text")

        if requirements.environment_required and (
            analysis.framing == "extreme_close_up" or not analysis.environment_visible
        ):
            composite = min(composite, self.config.framing_ceiling)
            overrides.append("framing")

        issues = [_to_quality_issue(i) for i in analysis.issues]
        recommendation = self.recommend(composite, issues)
        band = ScoreBand.ANALYZED_HIGH if composite >= self.config.approve_threshold else ScoreBand.ANALYZED_LOW

        if overrides:
            logger.info(f"Score clamped {weighted} -> {composite} ({', '.join(overrides)})")

        return QualityScore(
            analyzed=True,
            band=band,
            technical=analysis.technical_score,
            content_match=analysis.content_match_score,
            brand_compliance=analysis.brand_compliance_score,
            composition=analysis.composition_score,
            weighted=weighted,
            composite=composite,
            recommendation=recommendation,
            issues=issues,
            overrides_applied=overrides,
            analyzed_at=datetime.now(),
        )


# =============================================================================
# Project Quality Report
# =============================================================================


@dataclass
class SceneQualityStatus:
    scene_id: str
    order: int
    score: Optional[int]
    status: str  # approved, needs_review, rejected, pending
    issues: List[QualityIssue] = field(default_factory=list)
    user_approved: bool = False
    auto_approved: bool = False
    regeneration_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scene_id": self.scene_id,
            "order": self.order,
            "score": self.score,
            "status": self.status,
            "issues": [i.to_dict() for i in self.issues],
            "user_approved": self.user_approved,
            "auto_approved": self.auto_approved,
            "regeneration_count": self.regeneration_count,
        }


@dataclass
class ProjectQualityReport:
    """Aggregated quality gate for a whole project."""

    project_id: str
    overall_score: Optional[int]
    scene_statuses: List[SceneQualityStatus] = field(default_factory=list)
    critical_issue_count: int = 0
    major_issue_count: int = 0
    minor_issue_count: int = 0
    blocking_reasons: List[str] = field(default_factory=list)
    passes_threshold: bool = False
    can_render: bool = False
    generated_at: datetime = field(default_factory=datetime.now)

    def count(self, status: str) -> int:
        return sum(1 for s in self.scene_statuses if s.status == status)

    @property
    def approved_count(self) -> int:
        return self.count("approved")

    @property
    def needs_review_count(self) -> int:
        return self.count("needs_review")

    @property
    def rejected_count(self) -> int:
        return self.count("rejected")

    @property
    def pending_count(self) -> int:
        return self.count("pending")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "project_id": self.project_id,
            "overall_score": self.overall_score,
            "scene_statuses": [s.to_dict() for s in self.scene_statuses],
            "approved_count": self.approved_count,
            "needs_review_count": self.needs_review_count,
            "rejected_count": self.rejected_count,
            "pending_count": self.pending_count,
            "critical_issue_count": self.critical_issue_count,
            "major_issue_count": self.major_issue_count,
            "minor_issue_count": self.minor_issue_count,
            "blocking_reasons": self.blocking_reasons,
            "passes_threshold": self.passes_threshold,
            "can_render": self.can_render,
            "generated_at": self.generated_at.isoformat(),
        }


REVIEW_REASON_SUFFIX = "need user review"


def _scene_status(
    scene: Scene,
    user_approved: bool,
    thresholds: QualityConfig,
) -> SceneQualityStatus:
    quality = scene.quality
    status = SceneQualityStatus(
        scene_id=scene.id,
        order=scene.order,
        score=None,
        status="pending",
        user_approved=user_approved,
        regeneration_count=scene.regeneration_count,
    )

    if quality is None or not quality.analyzed or quality.stale:
        if user_approved:
            status.status = "approved"
        return status

    status.score = quality.composite
    status.issues = list(quality.issues)
    has_critical = any(i.severity == "critical" for i in quality.issues)
    status.auto_approved = quality.composite >= thresholds.auto_approve_above and not has_critical

    if user_approved or status.auto_approved:
        status.status = "approved"
    elif quality.recommendation in (Recommendation.REGENERATE, Recommendation.CRITICAL_FAIL):
        status.status = "rejected"
    elif quality.composite < thresholds.min_scene_score:
        status.status = "rejected"
    else:
        status.status = "needs_review"
    return status


def build_quality_report(
    project: VideoProject,
    thresholds: Optional[QualityConfig] = None,
    user_approvals: Iterable[str] = (),
) -> ProjectQualityReport:
    """
    Aggregate scene scores into a project-level gate.

    Scenes without a current analysis are "pending" and count as needing
    user review. Only the user-review reason may remain for ``can_render``.

    Args:
        project: Project with scored scenes
        thresholds: Gate thresholds (defaults from QualityConfig)
        user_approvals: Scene ids the user approved manually

    Returns:
        ProjectQualityReport
    """
    thresholds = thresholds or QualityConfig()
    approvals = set(user_approvals)

    statuses = [_scene_status(scene, scene.id in approvals, thresholds) for scene in project.scenes]

    critical = major = minor = 0
    for status in statuses:
        for issue in status.issues:
            if issue.severity == "critical":
                critical += 1
            elif issue.severity == "major":
                major += 1
            else:
                minor += 1

    scored = [s.score for s in statuses if s.score is not None]
    overall = int(round(sum(scored) / len(scored))) if scored else None

    report = ProjectQualityReport(
        project_id=project.id,
        overall_score=overall,
        scene_statuses=statuses,
        critical_issue_count=critical,
        major_issue_count=major,
        minor_issue_count=minor,
    )

    reasons = []
    if overall is not None and overall < thresholds.min_project_score:
        reasons.append(f"Overall score {overall} below minimum {thresholds.min_project_score}")
    if critical > thresholds.max_critical_issues:
        reasons.append(f"{critical} critical issues (max {thresholds.max_critical_issues})")
    if major > thresholds.max_major_issues:
        reasons.append(f"{major} major issues (max {thresholds.max_major_issues})")
    if report.rejected_count > 0:
        reasons.append(f"{report.rejected_count} rejected scenes need regeneration")

    awaiting = report.needs_review_count + report.pending_count
    if thresholds.require_user_approval and awaiting > 0:
        reasons.append(f"{awaiting} scenes {REVIEW_REASON_SUFFIX}")

    report.blocking_reasons = reasons
    report.passes_threshold = not reasons
    report.can_render = not reasons or (len(reasons) == 1 and reasons[0].endswith(REVIEW_REASON_SUFFIX))

    logger.info(
        f"Quality report for {project.id}: score={overall}, approved={report.approved_count}, "
        f"review={report.needs_review_count}, rejected={report.rejected_count}, "
        f"pending={report.pending_count}, can_render={report.can_render}"
    )
    return report
