"""
Timing Model
============

Per-scene duration from narration length and scene pacing, plus
project-wide duration sync.
"""

import math
import logging
from typing import Optional, Union

from ..core.config import TimingConfig
from ..project.models import SceneType, VideoProject

logger = logging.getLogger(__name__)


def count_words(text: Optional[str]) -> int:
    """Count whitespace-separated words."""
    if not text:
        return 0
    return len(text.split())


class TimingModel:
    """
    Computes scene durations.

    duration = ceil((words / speaking_rate + buffer) * pacing), clamped to
    [min_duration, max_duration]. The final scene gets a trailing buffer on
    top of the clamped value.
    """

    def __init__(self, config: Optional[TimingConfig] = None):
        self.config = config or TimingConfig()

    def pacing_for(self, scene_type: Union[SceneType, str]) -> float:
        key = scene_type.value if isinstance(scene_type, SceneType) else str(scene_type)
        return self.config.pacing.get(key, 1.0)

    def raw_duration(self, narration: str, scene_type: Union[SceneType, str]) -> float:
        """Unrounded, unclamped duration in seconds."""
        words = count_words(narration)
        base = words / self.config.speaking_rate + self.config.buffer_seconds
        return base * self.pacing_for(scene_type)

    def scene_duration(
        self,
        narration: str,
        scene_type: Union[SceneType, str],
        is_last: bool = False,
    ) -> int:
        """
        Duration for one scene in whole seconds.

        Args:
            narration: Narration text (may be empty)
            scene_type: Scene type for the pacing multiplier
            is_last: Whether this is the final scene

        Returns:
            Duration in seconds, never below min_duration
        """
        if count_words(narration) == 0:
            duration = self.config.min_duration
        else:
            duration = math.ceil(self.raw_duration(narration, scene_type))
            duration = max(self.config.min_duration, min(self.config.max_duration, duration))

        if is_last:
            duration += self.config.trailing_buffer

        return duration

    def estimate_speech_seconds(self, text: str) -> int:
        """Spoken length of narration without buffer or pacing."""
        return math.ceil(count_words(text) / self.config.speaking_rate)

    def sync(self, project: VideoProject) -> int:
        """
        Set every scene's duration and the project's total duration.

        Returns:
            The new total duration
        """
        last_index = len(project.scenes) - 1
        total = 0
        for i, scene in enumerate(project.scenes):
            scene.duration = self.scene_duration(scene.narration, scene.type, is_last=(i == last_index))
            total += scene.duration
            logger.debug(
                f"Scene {i} ({scene.type.value}): {count_words(scene.narration)} words -> "
                f"{scene.duration}s (x{self.pacing_for(scene.type)})"
            )

        project.total_duration = total
        logger.info(f"Timing sync: {len(project.scenes)} scenes, {total}s total")
        return total
