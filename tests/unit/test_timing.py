"""Unit tests for narration timing and project duration sync."""

import pytest

from promo_producer.core.config import TimingConfig
from promo_producer.core.exceptions import ConfigurationError
from promo_producer.project.models import SceneType, VideoProject
from promo_producer.workflow.timing import TimingModel, count_words

pytestmark = pytest.mark.unit


class TestCountWords:

    def test_counts_whitespace_separated_words(self):
        assert count_words("one two  three\nfour") == 4

    def test_empty_and_none(self):
        assert count_words("") == 0
        assert count_words(None) == 0


class TestSceneDuration:

    @pytest.fixture
    def model(self):
        return TimingModel()

    def test_eight_words_is_five_seconds(self, model):
        narration = "one two three four five six seven eight"
        assert model.scene_duration(narration, SceneType.HOOK) == 5

    def test_empty_narration_uses_minimum(self, model):
        assert model.scene_duration("", SceneType.CTA) == 5

    def test_pacing_multiplier_applies(self, model):
        narration = " ".join(["word"] * 20)
        # (20 / 2.5 + 1.5) = 9.5; hook x1.0 -> 10, cta x1.4 -> 13.3 -> 14
        assert model.scene_duration(narration, SceneType.HOOK) == 10
        assert model.scene_duration(narration, SceneType.CTA) == 14

    def test_clamped_to_maximum(self, model):
        narration = " ".join(["word"] * 200)
        assert model.scene_duration(narration, SceneType.HOOK) == 30

    def test_trailing_buffer_on_last_scene(self, model):
        narration = "one two three four five six seven eight"
        assert model.scene_duration(narration, SceneType.HOOK, is_last=True) == 7

    def test_unknown_type_uses_neutral_pacing(self, model):
        assert model.pacing_for("mystery") == 1.0

    def test_speech_estimate_has_no_buffer(self, model):
        assert model.estimate_speech_seconds("one two three four five") == 2


class TestSync:

    def test_total_equals_sum_of_scene_durations(self):
        project = VideoProject.from_segments("Sync", [
            {"type": "hook", "narration": "one two three four five six seven eight"},
            {"type": "benefit", "narration": " ".join(["word"] * 30)},
            {"type": "cta", "narration": ""},
        ])

        total = TimingModel().sync(project)

        assert total == project.total_duration
        assert sum(s.duration for s in project.scenes) == project.total_duration
        assert project.durations_in_sync()

    def test_resync_after_narration_change(self):
        project = VideoProject.from_segments("Resync", [
            {"type": "hook", "narration": "short line"},
            {"type": "cta", "narration": "call to action now"},
        ])
        model = TimingModel()
        model.sync(project)

        project.scenes[0].narration = " ".join(["word"] * 40)
        model.sync(project)

        assert sum(s.duration for s in project.scenes) == project.total_duration


class TestTimingConfig:

    def test_rejects_non_positive_rate(self):
        with pytest.raises(ConfigurationError):
            TimingConfig(speaking_rate=0)

    def test_rejects_inverted_bounds(self):
        with pytest.raises(ConfigurationError):
            TimingConfig(min_duration=10, max_duration=5)
