"""Unit tests for provider prompt builders."""

import pytest

from promo_producer.project.models import QualityIssue, Scene, SceneType
from promo_producer.workflow.prompts import (
    AVOID_LIST,
    build_image_prompt,
    build_music_prompt,
    build_video_search_query,
    demographic_prefix,
    improve_prompt,
)

pytestmark = pytest.mark.unit


class TestImagePrompt:

    def test_visual_direction_with_modifiers(self):
        scene = Scene(visual_direction="Herbal tea on a wooden table.")
        prompt = build_image_prompt(scene, ["photorealistic", "warm light"])
        assert prompt == "Herbal tea on a wooden table. photorealistic, warm light"

    def test_falls_back_to_narration(self):
        scene = Scene(narration="Sleep better tonight")
        assert build_image_prompt(scene) == "Sleep better tonight"


class TestVideoQuery:

    @pytest.mark.parametrize("audience, expected", [
        ("women 50-65", "mature middle-aged adult woman female "),
        ("elderly men", "senior elderly older adult man male "),
        ("young professionals", "young adult "),
        ("", ""),
    ])
    def test_demographic_prefix(self, audience, expected):
        assert demographic_prefix(audience) == expected

    def test_explicit_search_query_wins(self):
        scene = Scene(search_query="tea cup steam", narration="Sleep better")
        assert build_video_search_query(scene, "women 50-65") == (
            "mature middle-aged adult woman female tea cup steam"
        )

    def test_narration_keywords(self):
        scene = Scene(narration="Finally sleep through the night")
        assert build_video_search_query(scene) == "peaceful sleep relaxation bedroom"

    def test_scene_type_keywords(self):
        scene = Scene(type=SceneType.TESTIMONIAL, narration="It changed my life")
        assert build_video_search_query(scene) == "satisfied happy smiling portrait"


class TestMusicPrompt:

    def test_known_style(self):
        assert "piano" in build_music_prompt("calm")

    def test_unknown_style_uses_professional(self):
        assert build_music_prompt("polka") == build_music_prompt("professional")


class TestImprovePrompt:

    def test_category_fixes_and_avoid_list(self):
        issues = [QualityIssue("ai_artifacts", "critical", "Garbled text on sign")]
        improved = improve_prompt("Woman reading a book.", issues)

        assert improved.startswith("Woman reading a book. photorealistic, no text overlays")
        assert improved.endswith(f"Avoid: {AVOID_LIST}")

    def test_brand_fixes_match_description(self):
        issues = [QualityIssue("brand_compliance", "major", "Cold clinical lighting")]
        improved = improve_prompt("Kitchen scene", issues)

        assert "warm golden natural lighting" in improved
        assert "cozy home environment" in improved

    def test_later_attempts_simplify(self):
        improved = improve_prompt("Kitchen scene", [], attempt=3)
        assert "simple composition, single clear subject" in improved
        assert "minimalist" in improved

    def test_duplicate_fixes_collapse(self):
        issues = [
            QualityIssue("technical", "minor", "Blurry"),
            QualityIssue("technical", "minor", "Noisy"),
        ]
        improved = improve_prompt("Kitchen scene", issues)
        assert improved.count("sharp focus") == 1
