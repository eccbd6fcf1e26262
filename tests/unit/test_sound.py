"""Unit tests for sound-design planning."""

import pytest

from promo_producer.core.config import SoundConfig
from promo_producer.project.models import Scene, SceneType
from promo_producer.workflow.sound import SoundSequencer, ambient_variant, transition_intensity

pytestmark = pytest.mark.unit


def make_scenes(*types):
    return [Scene(order=i, type=t, duration=8) for i, t in enumerate(types)]


class TestTransitions:

    def test_first_scene_has_no_transition_in(self):
        plans = SoundSequencer().plan(make_scenes(SceneType.HOOK, SceneType.BENEFIT, SceneType.CTA))

        assert plans[0].transition_in is None
        assert plans[0].transition_out is not None
        assert plans[1].transition_in is not None
        assert plans[2].transition_out is None

    def test_single_scene_has_no_transitions(self):
        plan = SoundSequencer().plan(make_scenes(SceneType.HOOK))[0]
        assert plan.transition_in is None
        assert plan.transition_out is None

    @pytest.mark.parametrize("scene_type, expected", [
        (SceneType.HOOK, "dramatic"),
        (SceneType.CTA, "dramatic"),
        (SceneType.BROLL, "soft"),
        (SceneType.EXPLANATION, "soft"),
        (SceneType.BENEFIT, "medium"),
    ])
    def test_intensity_by_type(self, scene_type, expected):
        assert transition_intensity(scene_type) == expected

    def test_transition_uses_configured_volume(self):
        sequencer = SoundSequencer(SoundConfig(transition_volume=0.3, transition_duration=0.5))
        plan = sequencer.plan(make_scenes(SceneType.HOOK, SceneType.CTA))[1]

        assert plan.transition_in.effect == "whoosh"
        assert plan.transition_in.variant == "dramatic"
        assert plan.transition_in.volume == 0.3
        assert plan.transition_in.duration == 0.5


class TestAmbience:

    def test_ambience_spans_the_scene(self):
        plan = SoundSequencer().plan(make_scenes(SceneType.BENEFIT))[0]
        assert plan.ambience.variant == "nature"
        assert plan.ambience.duration == 8.0

    def test_broll_has_no_ambience(self):
        plan = SoundSequencer().plan(make_scenes(SceneType.BROLL))[0]
        assert plan.ambience is None

    def test_negative_hook_gets_morning_ambience(self):
        assert ambient_variant(SceneType.HOOK, "frustrated") == "morning"
        assert ambient_variant(SceneType.HOOK, None) == "wellness"


class TestEmphasis:

    def test_cta_gets_success_chime(self):
        plan = SoundSequencer().plan(make_scenes(SceneType.CTA))[0]
        assert [c.effect for c in plan.emphasis] == ["success"]

    def test_product_gets_sparkle(self):
        plan = SoundSequencer().plan(make_scenes(SceneType.PRODUCT))[0]
        assert plan.emphasis[0].key == "sparkle-default"

    def test_cues_are_unrealized(self):
        plans = SoundSequencer().plan(make_scenes(SceneType.HOOK, SceneType.CTA))
        assert all(cue.url is None for plan in plans for cue in plan.cues())
