"""
Sound Sequencer
===============

Deterministic sound-design plan per scene: transitions between scenes,
background ambience and emphasis hits. Planning does no I/O; cues are
realized to URLs by the orchestrator through the sound provider chain.
"""

import logging
from typing import Optional, List

from ..core.config import SoundConfig
from ..project.models import Scene, SceneType, SoundCue, SoundPlan

logger = logging.getLogger(__name__)


SOUND_PROMPTS = {
    "whoosh": {
        "soft": "Soft whoosh sound effect, gentle air movement, subtle transition",
        "medium": "Medium whoosh sound effect, smooth transition, cinematic",
        "dramatic": "Dramatic whoosh sound effect, powerful air sweep, impactful",
    },
    "ambient": {
        "nature": "Peaceful nature ambience, gentle breeze, birds distant, wellness spa atmosphere",
        "wellness": "Calm wellness spa ambient sound, soft tones, relaxing atmosphere",
        "morning": "Morning ambience, soft sunlight feeling, peaceful awakening",
        "energy": "Subtle energetic ambient tone, positive vibes, uplifting",
    },
    "emphasis": {
        "sparkle": "Magical sparkle sound effect, twinkling, highlight moment",
        "success": "Success chime, achievement sound, positive confirmation",
        "notification": "Soft notification sound, gentle alert, attention",
    },
}

DRAMATIC_TYPES = {SceneType.HOOK, SceneType.CTA}
SOFT_TYPES = {SceneType.EXPLANATION, SceneType.BROLL}
AMBIENT_TYPES = {SceneType.HOOK, SceneType.TESTIMONIAL, SceneType.STORY, SceneType.BENEFIT, SceneType.CTA}
EMPHASIS_BY_TYPE = {SceneType.CTA: "success", SceneType.PRODUCT: "sparkle"}

NEGATIVE_MOODS = {"negative", "concerned", "frustrated", "sad", "tense"}


def transition_intensity(scene_type: SceneType) -> str:
    if scene_type in DRAMATIC_TYPES:
        return "dramatic"
    if scene_type in SOFT_TYPES:
        return "soft"
    return "medium"


def ambient_variant(scene_type: SceneType, mood: Optional[str] = None) -> str:
    if scene_type == SceneType.HOOK and (mood or "").lower() in NEGATIVE_MOODS:
        return "morning"
    if scene_type in (SceneType.TESTIMONIAL, SceneType.STORY):
        return "wellness"
    if scene_type in (SceneType.BENEFIT, SceneType.EXPLANATION):
        return "nature"
    if scene_type == SceneType.CTA:
        return "energy"
    return "wellness"


class SoundSequencer:
    """
    Plans sound cues for a sequence of scenes.

    Usage:
        sequencer = SoundSequencer(config.sound)
        plans = sequencer.plan(project.scenes)
    """

    def __init__(self, config: Optional[SoundConfig] = None):
        self.config = config or SoundConfig()

    def _transition(self, scene: Scene) -> SoundCue:
        intensity = transition_intensity(scene.type)
        return SoundCue(
            effect="whoosh",
            variant=intensity,
            prompt=SOUND_PROMPTS["whoosh"][intensity],
            duration=self.config.transition_duration,
            volume=self.config.transition_volume,
        )

    def plan_scene(self, scene: Scene, index: int, total: int) -> SoundPlan:
        """
        Plan the cues for one scene.

        Args:
            scene: Scene with type, mood and duration
            index: Position of the scene (0-based)
            total: Number of scenes in the project

        Returns:
            SoundPlan with unrealized cues
        """
        plan = SoundPlan()

        if index > 0:
            plan.transition_in = self._transition(scene)
        if index < total - 1:
            plan.transition_out = self._transition(scene)

        if scene.type in AMBIENT_TYPES:
            variant = ambient_variant(scene.type, scene.mood)
            plan.ambience = SoundCue(
                effect="ambient",
                variant=variant,
                prompt=SOUND_PROMPTS["ambient"][variant],
                duration=float(scene.duration),
                volume=self.config.ambient_volume,
            )

        emphasis = EMPHASIS_BY_TYPE.get(scene.type)
        if emphasis:
            plan.emphasis.append(SoundCue(
                effect=emphasis,
                variant="default",
                prompt=SOUND_PROMPTS["emphasis"][emphasis],
                duration=self.config.emphasis_duration,
                volume=self.config.emphasis_volume,
            ))

        return plan

    def plan(self, scenes: List[Scene]) -> List[SoundPlan]:
        """Plan every scene in order."""
        total = len(scenes)
        plans = [self.plan_scene(scene, i, total) for i, scene in enumerate(scenes)]
        logger.debug(f"Planned {sum(len(list(p.cues())) for p in plans)} sound cues for {total} scenes")
        return plans
