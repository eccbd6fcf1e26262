"""
Scene Regeneration
==================

Targeted re-runs after the main pipeline: a new background for one scene,
new narration and voiceover, or an automatic loop that rewrites prompts
until low-scoring scenes pass.

Every change is recorded in the project history before it is applied, so
it can be undone.
"""

import logging
from typing import Optional, List, Dict, Any, TYPE_CHECKING

from ..context.project_context import ProjectContext
from ..core.exceptions import ResourceNotFoundError, ValidationError
from ..project.models import AssetReference, Recommendation, Scene
from .prompts import build_image_prompt, improve_prompt

if TYPE_CHECKING:
    from .orchestrator import PipelineOrchestrator

logger = logging.getLogger(__name__)


ASSET_KINDS = ("image", "video", "music")

# Scenes in these states are regenerated by auto_regenerate
NEEDS_REGENERATION = (Recommendation.REGENERATE, Recommendation.CRITICAL_FAIL)


class SceneRegenerator:
    """
    Re-runs single generation steps against an already produced project.

    Usage:
        regenerator = SceneRegenerator(orchestrator)
        await regenerator.regenerate_scene_asset(ctx, scene.id, "image")
        ctx.history.undo(ctx.project)
    """

    def __init__(self, orchestrator: "PipelineOrchestrator"):
        self.orchestrator = orchestrator

    def _scene(self, ctx: ProjectContext, scene_id: str) -> Scene:
        scene = ctx.project.get_scene(scene_id)
        if scene is None:
            raise ResourceNotFoundError(f"Scene not found: {scene_id}", resource_type="scene", resource_id=scene_id)
        return scene

    async def _refresh(self, ctx: ProjectContext, scene: Scene) -> None:
        """Recompute analysis-derived data for a scene whose visual changed."""
        scene.mark_derived_stale()
        await self.orchestrator.analyze_scene(ctx, scene)
        self.orchestrator.compose_scene(ctx, scene)

    # -------------------------------------------------------------------------
    # Single Assets
    # -------------------------------------------------------------------------

    async def regenerate_scene_asset(
        self,
        ctx: ProjectContext,
        scene_id: str,
        kind: str = "image",
        prompt: Optional[str] = None,
    ) -> Optional[AssetReference]:
        """
        Replace one asset. The current asset stays until a replacement succeeds.

        Args:
            ctx: Project context
            scene_id: Scene to update (ignored for music)
            kind: "image", "video" or "music"
            prompt: Image prompt override

        Returns:
            The new asset, or None if every provider failed

        Raises:
            ResourceNotFoundError: If the scene does not exist
            ValidationError: If the kind is unknown
        """
        if kind not in ASSET_KINDS:
            raise ValidationError(f"Unknown asset kind: {kind}", field="kind", value=kind)

        project = ctx.project
        orchestrator = self.orchestrator

        if kind == "music":
            reference = await orchestrator.generate_music(ctx)
            if reference is None:
                ctx.notify("warning", "Music", "Music regeneration failed; keeping current track")
                return None
            ctx.history.snapshot(project, "Regenerate music")
            project.assets.music = reference
            project.touch()
            return reference

        scene = self._scene(ctx, scene_id)
        if kind == "image":
            reference = await orchestrator.generate_scene_image(ctx, scene, prompt)
        else:
            reference = await orchestrator.generate_scene_video(ctx, scene)

        if reference is None:
            ctx.notify("warning", kind.capitalize(), f"Regeneration failed for scene {scene.order + 1}; keeping current {kind}")
            return None

        ctx.history.snapshot(project, f"Regenerate {kind} for scene {scene.order + 1}")
        if kind == "image":
            scene.background.image = reference
            if scene.background.active is None:
                scene.background.use_image()
        else:
            scene.background.use_video(reference)

        ctx.mark_used(reference.url)
        scene.regeneration_count += 1
        await self._refresh(ctx, scene)
        project.touch()

        logger.info(f"Scene {scene.order + 1}: new {kind} from {reference.source}")
        return reference

    async def regenerate_voiceover(self, ctx: ProjectContext, scene_id: str, narration: str) -> bool:
        """
        Replace a scene's narration, then re-run timing and the voiceover.

        Returns:
            True if the voiceover stage settled

        Raises:
            ResourceNotFoundError: If the scene does not exist
        """
        project = ctx.project
        scene = self._scene(ctx, scene_id)

        ctx.history.snapshot(project, f"Edit narration for scene {scene.order + 1}")
        scene.narration = narration.strip()
        self.orchestrator.timing.sync(project)
        scene.mark_derived_stale()

        await self.orchestrator.run_stage("voiceover", ctx)
        project.touch()
        return project.progress.stage("voiceover").settled

    # -------------------------------------------------------------------------
    # Automatic Loop
    # -------------------------------------------------------------------------

    @staticmethod
    def needs_regeneration(scene: Scene) -> bool:
        quality = scene.quality
        return (
            quality is not None
            and quality.analyzed
            and not quality.stale
            and quality.recommendation in NEEDS_REGENERATION
        )

    async def auto_regenerate(
        self,
        ctx: ProjectContext,
        max_attempts: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        Regenerate low-scoring scene images with improved prompts.

        Each attempt feeds the latest quality issues into ``improve_prompt``.
        A scene stops once it reaches approved or needs_review, or when its
        attempt budget is spent.

        Returns:
            Per-scene summary keyed by scene id
        """
        orchestrator = self.orchestrator
        if max_attempts is None:
            max_attempts = orchestrator.config.quality.max_regeneration_attempts

        if not orchestrator.analyzer.available:
            logger.info("Auto-regeneration skipped: no vision analyzer")
            return {}

        summary: Dict[str, Any] = {}
        modifiers = orchestrator.config.pipeline.image_style_modifiers

        for scene in ctx.project.scenes:
            if not self.needs_regeneration(scene):
                continue

            prompt = build_image_prompt(scene, modifiers)
            prompts: List[str] = []

            for attempt in range(1, max_attempts + 1):
                prompt = improve_prompt(prompt, scene.quality.issues, attempt)
                prompts.append(prompt)
                logger.info(f"Scene {scene.order + 1}: regeneration attempt {attempt}/{max_attempts}")

                reference = await self.regenerate_scene_asset(ctx, scene.id, "image", prompt)
                if reference is None:
                    continue
                if not self.needs_regeneration(scene):
                    break

            recommendation = scene.quality.recommendation if scene.quality else None
            summary[scene.id] = {
                "attempts": len(prompts),
                "recommendation": recommendation.value if recommendation else None,
                "score": scene.quality.composite if scene.quality else None,
                "passed": recommendation in (Recommendation.APPROVED, Recommendation.NEEDS_REVIEW),
            }

        return summary
