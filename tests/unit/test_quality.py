"""Unit tests for quality scoring and the project quality report."""

import pytest

from conftest import make_analysis
from promo_producer.project.models import Recommendation, Scene, ScoreBand, SceneType, VideoProject
from promo_producer.workflow.quality import (
    ContentRequirements,
    QualityScoringEngine,
    build_quality_report,
)

pytestmark = pytest.mark.unit


@pytest.fixture
def engine():
    return QualityScoringEngine()


def scores(value):
    return {
        "technical_score": value,
        "content_match_score": value,
        "brand_compliance_score": value,
        "composition_score": value,
    }


class TestContentRequirements:

    def test_text_required_from_visual_direction(self):
        scene = Scene(visual_direction="Title card with text reading 'Sleep better'")
        assert ContentRequirements.from_scene(scene).text_required

    def test_environment_required(self):
        scene = Scene(visual_direction="Woman cooking in a bright kitchen")
        requirements = ContentRequirements.from_scene(scene)
        assert requirements.environment_required
        assert not requirements.text_required

    @pytest.mark.parametrize("direction", [
        "A few words of calm over a sunrise",
        "Product on plain white background",
        "Sun setting behind a bottle",
    ])
    def test_incidental_wording_adds_no_requirements(self, direction):
        requirements = ContentRequirements.from_scene(Scene(visual_direction=direction))
        assert not requirements.text_required
        assert not requirements.environment_required

    def test_on_screen_words_require_text(self):
        scene = Scene(visual_direction="Bold words on screen over a blurred sky")
        assert ContentRequirements.from_scene(scene).text_required

    def test_no_requirements(self):
        scene = Scene(visual_direction="Close up of a tea cup")
        requirements = ContentRequirements.from_scene(scene)
        assert not requirements.text_required
        assert not requirements.environment_required


class TestScoring:

    def test_weighted_sum(self, engine):
        analysis = make_analysis(
            technical_score=50, content_match_score=100, brand_compliance_score=50, composition_score=50,
        )
        # 0.2*50 + 0.4*100 + 0.2*50 + 0.2*50
        assert engine.weighted_score(analysis) == 70

    def test_missing_required_text_clamps_to_ceiling(self, engine):
        analysis = make_analysis(text_overlay_present=False, **scores(95))

        result = engine.score(analysis, ContentRequirements(text_required=True))

        assert result.weighted == 95
        assert result.composite <= 40
        assert "missing_text" in result.overrides_applied
        assert result.recommendation == Recommendation.REGENERATE

    def test_framing_ceiling(self, engine):
        analysis = make_analysis(framing="extreme_close_up", **scores(90))

        result = engine.score(analysis, ContentRequirements(environment_required=True))

        assert result.composite == 50
        assert result.overrides_applied == ["framing"]
        assert result.recommendation == Recommendation.NEEDS_REVIEW

    def test_ceilings_never_raise_a_score(self, engine):
        analysis = make_analysis(text_overlay_present=False, **scores(20))
        result = engine.score(analysis, ContentRequirements(text_required=True))
        assert result.composite == 20

    def test_critical_issue_forces_critical_fail(self, engine):
        analysis = make_analysis(
            issues=[{"category": "ai_artifacts", "severity": "critical", "description": "Garbled text"}],
            **scores(95),
        )
        result = engine.score(analysis)
        assert result.composite == 95
        assert result.recommendation == Recommendation.CRITICAL_FAIL

    @pytest.mark.parametrize("value, expected", [
        (70, Recommendation.APPROVED),
        (69, Recommendation.NEEDS_REVIEW),
        (50, Recommendation.NEEDS_REVIEW),
        (49, Recommendation.REGENERATE),
        (30, Recommendation.REGENERATE),
        (29, Recommendation.CRITICAL_FAIL),
    ])
    def test_thresholds(self, engine, value, expected):
        assert engine.recommend(value) == expected

    def test_no_analysis_is_explicit(self, engine):
        result = engine.score(None)
        assert result.analyzed is False
        assert result.band == ScoreBand.NOT_ANALYZED
        assert result.composite is None
        assert result.reason


def scored_project(values, config=None):
    engine = QualityScoringEngine(config)
    project = VideoProject(scenes=[Scene(order=i, type=SceneType.BENEFIT) for i in range(len(values))])
    for scene, value in zip(project.scenes, values):
        if value is not None:
            scene.quality = engine.score(make_analysis(**scores(value)))
    return project


class TestQualityReport:

    def test_all_high_scores_auto_approved(self):
        report = build_quality_report(scored_project([90, 95]))
        assert report.approved_count == 2
        assert report.blocking_reasons == []
        assert report.passes_threshold
        assert report.can_render

    def test_review_only_still_renders(self):
        report = build_quality_report(scored_project([90, 75]))
        assert report.needs_review_count == 1
        assert report.blocking_reasons == ["1 scenes need user review"]
        assert not report.passes_threshold
        assert report.can_render

    def test_pending_scenes_need_review(self):
        report = build_quality_report(scored_project([90, None]))
        assert report.pending_count == 1
        assert report.can_render

    def test_rejected_scene_blocks_render(self):
        report = build_quality_report(scored_project([90, 40]))
        assert report.rejected_count == 1
        assert not report.can_render

    def test_user_approval(self):
        project = scored_project([90, 75])
        report = build_quality_report(project, user_approvals=[project.scenes[1].id])
        assert report.approved_count == 2
        assert report.can_render

    def test_stale_scores_are_pending(self):
        project = scored_project([90, 90])
        project.scenes[0].mark_derived_stale()
        report = build_quality_report(project)
        assert report.pending_count == 1

    def test_overall_score_is_mean_of_scored_scenes(self):
        report = build_quality_report(scored_project([90, 80, None]))
        assert report.overall_score == 85
