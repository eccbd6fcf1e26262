"""
Pipeline Orchestrator
=====================

Main orchestration class that turns a draft project into a render-ready
project description.

Stages run in a fixed order, each tracked by its own StageProgress:

    timing -> voiceover -> images -> videos -> music -> sound_design
    -> scene_analysis -> composition -> caching -> render_prep

No failure escapes a stage as an exception. The mandatory stages decide
whether the project ends ``ready`` or ``error``; every other stage only
degrades the result.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any, Callable, Awaitable

from ..analysis.vision import AnalysisContext, VisionAnalyzer
from ..api.base import AssetKind, BaseGenerationProvider, GenerationRequest, GenerationResult
from ..api.factory import build_chain, get_provider, provider_kwargs
from ..context.brand_registry import BrandAssetRegistry
from ..context.project_context import ProjectContext
from ..core.config import Config, get_config
from ..core.exceptions import (
    StageError,
    VideoProducerError,
)
from ..core.security import encode_data_uri, redact_api_key
from ..project.history import ProjectHistory
from ..project.models import (
    PIPELINE_STAGES,
    AssetReference,
    MediaType,
    ProjectStatus,
    Provenance,
    Scene,
    StageProgress,
    StageStatus,
    VideoProject,
)
from ..utils.image_utils import detect_mime_type, get_image_dimensions
from ..utils.storage import ObjectStore
from .audience import AudienceGate, scene_context
from .caching import (
    AssetFetcher,
    CacheSummary,
    DurabilityService,
    RenderReadiness,
    cache_project_assets,
    prepare_assets_for_render,
)
from .composition import CompositionPlanner
from .fallback import FallbackExecutor, FallbackResult
from .prompts import (
    DEFAULT_NEGATIVE_PROMPT,
    build_image_prompt,
    build_music_prompt,
    build_video_search_query,
)
from .quality import ContentRequirements, ProjectQualityReport, QualityScoringEngine, build_quality_report
from .sound import SoundSequencer
from .timing import TimingModel

logger = logging.getLogger(__name__)


CHAIN_SETTINGS = {
    "images": "image_chain",
    "videos": "video_chain",
    "music": "music_chain",
    "sound": "sound_chain",
}


@dataclass
class ProductionResult:
    """Outcome of one production run."""

    project: VideoProject
    readiness: Optional[RenderReadiness] = None
    quality_report: Optional[ProjectQualityReport] = None
    cache_summary: Optional[CacheSummary] = None
    notifications: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def ready(self) -> bool:
        return self.project.status == ProjectStatus.READY

    def to_dict(self) -> Dict[str, Any]:
        return {
            "project": self.project.to_dict(),
            "readiness": self.readiness.to_dict() if self.readiness else None,
            "quality_report": self.quality_report.to_dict() if self.quality_report else None,
            "cache_summary": self.cache_summary.to_dict() if self.cache_summary else None,
            "notifications": self.notifications,
        }


class PipelineOrchestrator:
    """
    Production pipeline for marketing video projects.

    Handles:
    - Timing sync and stage sequencing
    - Provider fallback chains per capability
    - Audience/brand gating of stock candidates
    - Quality scoring, composition and sound design
    - Durable caching and render preparation

    Usage:
        orchestrator = PipelineOrchestrator(config, store=S3ObjectStore(config.storage))
        project = VideoProject.from_segments("Spring launch", segments, target_audience="women 50-65")
        result = await orchestrator.produce(project)
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        store: Optional[ObjectStore] = None,
        analyzer: Optional[VisionAnalyzer] = None,
        chains: Optional[Dict[str, List[BaseGenerationProvider]]] = None,
        voice_provider: Optional[BaseGenerationProvider] = None,
        fetcher: Optional[AssetFetcher] = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            config: Configuration (defaults to the global config)
            store: Durable object store; None disables caching
            analyzer: Vision analyzer (built from config when omitted)
            chains: Provider chains keyed by images, videos, music, sound
            voice_provider: Mandatory voiceover provider
            fetcher: Asset downloader used for caching
        """
        self.config = config or get_config()
        self.store = store
        self.analyzer = analyzer if analyzer is not None else VisionAnalyzer(self.config.analysis)

        self._chains: Dict[str, List[BaseGenerationProvider]] = dict(chains or {})
        self._voice_provider = voice_provider

        self.timing = TimingModel(self.config.timing)
        self.scoring = QualityScoringEngine(self.config.quality)
        self.sequencer = SoundSequencer(self.config.sound)
        self.durability = DurabilityService(store, self.config.storage, fetcher)

        logger.info("PipelineOrchestrator initialized")
        logger.info(f"  Object store: {'configured' if store else 'none'}")
        logger.info(f"  Vision analysis: {'available' if self.analyzer.available else 'unavailable'}")

    # -------------------------------------------------------------------------
    # Providers
    # -------------------------------------------------------------------------

    def chain(self, capability: str) -> List[BaseGenerationProvider]:
        """Provider chain for a capability, built from config on first use."""
        if capability not in self._chains:
            names = getattr(self.config.fallback, CHAIN_SETTINGS[capability])
            self._chains[capability] = build_chain(names, self.config)
        return self._chains[capability]

    @property
    def voice_provider(self) -> BaseGenerationProvider:
        if self._voice_provider is None:
            name = self.config.fallback.voice_provider
            self._voice_provider = get_provider(name, **provider_kwargs(name, self.config))
        return self._voice_provider

    @staticmethod
    def _provenance(providers: List[BaseGenerationProvider], source: str) -> Provenance:
        for provider in providers:
            if provider.provider_name == source:
                return provider.provenance
        return Provenance.AI

    def create_context(
        self,
        project: VideoProject,
        brand_registry: Optional[BrandAssetRegistry] = None,
        history: Optional[ProjectHistory] = None,
    ) -> ProjectContext:
        return ProjectContext(project, brand_registry=brand_registry, history=history)

    def _executor(self, ctx: ProjectContext) -> FallbackExecutor:
        return FallbackExecutor(ctx.ledger, notifier=ctx.notify)

    def _used_urls(self, ctx: ProjectContext):
        return ctx.used_urls if self.config.audience.enforce_unique_assets else ()

    def _gate(self, project: VideoProject) -> AudienceGate:
        return AudienceGate(
            project.target_audience,
            project.brand_safety_keywords,
            self.config.audience.extra_negative_keywords,
        )

    async def _asset_url(self, asset: GenerationResult, project: VideoProject, name: str) -> str:
        """URL for a generated asset; inline bytes are uploaded or kept as a data URI."""
        if asset.asset_bytes is None:
            return asset.asset_url or ""

        content_type = asset.content_type or detect_mime_type(asset.asset_bytes)
        if self.store is not None:
            url = await self.store.put(asset.asset_bytes, self.store.key_for(project.id, name, content_type), content_type)
            if url:
                return url
            logger.warning(f"Upload of {name} failed; keeping inline data until render prep")
        return encode_data_uri(asset.asset_bytes, content_type)

    async def _to_reference(
        self,
        result: FallbackResult,
        providers: List[BaseGenerationProvider],
        project: VideoProject,
        name: str,
    ) -> AssetReference:
        url = await self._asset_url(result.asset, project, name)
        reference = result.asset.to_asset_reference(self._provenance(providers, result.source), url=url)
        if result.asset.asset_bytes is not None and reference.media_type == MediaType.IMAGE and reference.width is None:
            size = get_image_dimensions(result.asset.asset_bytes)
            if size:
                reference.width, reference.height = size
        return reference

    # -------------------------------------------------------------------------
    # Per-Scene Operations (shared with regeneration)
    # -------------------------------------------------------------------------

    def image_request(self, scene: Scene, project: VideoProject, prompt: Optional[str] = None) -> GenerationRequest:
        return GenerationRequest(
            prompt=prompt or build_image_prompt(scene, self.config.pipeline.image_style_modifiers),
            kind=AssetKind.IMAGE,
            search_query=scene.search_query or None,
            fallback_query=scene.fallback_query or None,
            width=self.config.placement.canvas_width,
            height=self.config.placement.canvas_height,
            negative_prompt=DEFAULT_NEGATIVE_PROMPT,
            style=project.style,
            mood=scene.mood,
        )

    async def generate_scene_image(
        self,
        ctx: ProjectContext,
        scene: Scene,
        prompt: Optional[str] = None,
    ) -> Optional[AssetReference]:
        """Run the image chain for a scene. The scene is not modified."""
        project = ctx.project
        gate = self._gate(project)
        context = scene_context(scene)
        chain = self.chain("images")

        result = await self._executor(ctx).run(
            "images",
            chain,
            self.image_request(scene, project, prompt),
            accept=lambda c: gate.evaluate(c, context=context, used_urls=self._used_urls(ctx)),
        )
        if not result.success:
            return None
        return await self._to_reference(result, chain, project, f"scene-{scene.order}-image")

    async def generate_scene_video(self, ctx: ProjectContext, scene: Scene) -> Optional[AssetReference]:
        """Run the stock video chain for a scene through the audience gate."""
        project = ctx.project
        gate = self._gate(project)
        context = scene_context(scene)
        chain = self.chain("videos")

        query = build_video_search_query(scene, project.target_audience)
        request = GenerationRequest(
            prompt=query,
            kind=AssetKind.VIDEO,
            search_query=query,
            fallback_query=scene.fallback_query or None,
            duration=scene.duration,
            mood=scene.mood,
        )
        result = await self._executor(ctx).run(
            "videos",
            chain,
            request,
            accept=lambda c: gate.evaluate(c, context=context, used_urls=self._used_urls(ctx)),
        )
        if not result.success:
            return None
        return await self._to_reference(result, chain, project, f"scene-{scene.order}-video")

    async def generate_music(self, ctx: ProjectContext) -> Optional[AssetReference]:
        project = ctx.project
        style = project.style or self.config.pipeline.music_style
        chain = self.chain("music")
        request = GenerationRequest(
            prompt=build_music_prompt(style),
            kind=AssetKind.MUSIC,
            duration=project.total_duration,
            style=style,
        )
        result = await self._executor(ctx).run("music", chain, request)
        if not result.success:
            return None
        return await self._to_reference(result, chain, project, "music")

    async def generate_voiceover(self, ctx: ProjectContext) -> AssetReference:
        """
        Generate the project voiceover from the full narration.

        Raises:
            StageError: If there is no narration or the provider fails
        """
        project = ctx.project
        narration = project.full_narration
        if not narration:
            raise StageError("No narration text for voiceover", stage="voiceover")

        provider = self.voice_provider
        request = GenerationRequest(
            prompt=narration,
            kind=AssetKind.VOICE,
            voice_id=project.voice_id,
            duration=self.timing.estimate_speech_seconds(narration),
        )
        result = await self._executor(ctx).run_single("voiceover", provider, request)
        if not result.success:
            raise StageError(f"Voiceover provider {provider.provider_name} failed", stage="voiceover")

        reference = await self._to_reference(result, [provider], project, "voiceover")
        if reference.duration is None:
            reference.duration = float(self.timing.estimate_speech_seconds(narration))
        return reference

    async def realize_sound(self, ctx: ProjectContext, scene: Scene) -> int:
        """Plan and realize the scene's sound cues. Returns the number realized."""
        index = ctx.project.scenes.index(scene)
        plan = self.sequencer.plan_scene(scene, index, len(ctx.project.scenes))
        executor = self._executor(ctx)
        realized = 0

        for cue in plan.cues():
            request = GenerationRequest(
                prompt=cue.prompt,
                kind=AssetKind.SOUND,
                duration=cue.duration,
                mood=scene.mood,
                extra_params={"effect": cue.effect, "variant": cue.variant},
            )
            result = await executor.run("sound", self.chain("sound"), request)
            if result.success:
                cue.url = result.asset.asset_url
                cue.source = result.source
                realized += 1

        scene.sound = plan
        return realized

    def _brand_guidance(self, ctx: ProjectContext) -> Optional[str]:
        project = ctx.project
        parts = []
        if ctx.brand_registry is not None and ctx.brand_registry.brand_name:
            parts.append(f"Brand: {ctx.brand_registry.brand_name}")
        if project.product_name:
            parts.append(f"Product: {project.product_name}")
        if project.brand_safety_keywords:
            parts.append(f"Must not show: {', '.join(project.brand_safety_keywords)}")
        return "; ".join(parts) or None

    async def analyze_scene(self, ctx: ProjectContext, scene: Scene) -> None:
        """Analyze and score one scene; failures leave a not-analyzed score."""
        if not self.analyzer.available:
            scene.analysis = None
            scene.quality = self.scoring.not_analyzed("Vision analysis unavailable")
            return

        image = scene.background.image
        if image is None or not image.url:
            scene.analysis = None
            scene.quality = self.scoring.not_analyzed("No image to analyze")
            return

        context = AnalysisContext(
            scene_type=scene.type.value,
            narration=scene.narration,
            visual_direction=scene.visual_direction,
            has_text_overlays=bool(scene.text_overlays),
            has_product_overlay=scene.product_overlay.enabled,
            brand_guidance=self._brand_guidance(ctx),
        )

        try:
            analysis = await self.analyzer.analyze(image.url, context)
        except VideoProducerError as e:
            error = redact_api_key(e.message)
            ctx.ledger.record("scene_analysis", f"Scene {scene.order}: {error}")
            scene.analysis = None
            scene.quality = self.scoring.not_analyzed(f"Analysis failed: {error}")
            return

        scene.analysis = analysis
        scene.quality = self.scoring.score(analysis, ContentRequirements.from_scene(scene))
        logger.info(
            f"Scene {scene.order} scored {scene.quality.composite} ({scene.quality.recommendation.value})"
        )

    def _apply_brand_assets(self, ctx: ProjectContext) -> None:
        """Fill logo and product overlay URLs from the brand registry."""
        registry = ctx.brand_registry
        project = ctx.project
        if registry is None:
            return

        if project.logo.url is None:
            logo = registry.get_best_asset("logo-overlay")
            if logo is not None:
                project.logo.url = logo.url
                project.logo.aspect_ratio = logo.aspect_ratio
                project.logo.size = self.config.placement.logo_size
                project.logo.anchor = self.config.placement.logo_anchor
                project.logo.enabled = True

        if project.product_name:
            product = registry.get_best_asset("product-hero", project.product_name)
            if product is not None:
                for scene in project.scenes:
                    if scene.product_overlay.enabled and not scene.product_overlay.url:
                        scene.product_overlay.url = product.url
                        scene.product_overlay.aspect_ratio = product.aspect_ratio
                        scene.product_overlay.size = self.config.placement.product_size

    def compose_scene(self, ctx: ProjectContext, scene: Scene) -> None:
        planner = CompositionPlanner(self.config.placement, ctx.project.logo)
        scene.composition = planner.build(scene, scene.analysis)

    # -------------------------------------------------------------------------
    # Stages
    # -------------------------------------------------------------------------

    async def _stage_timing(self, ctx: ProjectContext, stage: StageProgress) -> int:
        project = ctx.project
        if not project.scenes:
            raise StageError("Project has no scenes", stage="timing")
        total = self.timing.sync(project)
        if not project.full_narration:
            stage.complete(f"No narration; {len(project.scenes)} scenes at minimum duration ({total}s)")
        else:
            stage.complete(f"{len(project.scenes)} scenes, {total}s")
        return total

    async def _stage_voiceover(self, ctx: ProjectContext, stage: StageProgress) -> None:
        ctx.project.assets.voiceover = await self.generate_voiceover(ctx)
        stage.complete(f"Voiceover by {ctx.project.assets.voiceover.source}")

    async def _stage_images(self, ctx: ProjectContext, stage: StageProgress) -> None:
        scenes = ctx.project.scenes
        produced = 0

        for scene in scenes:
            if scene.background.image is not None:
                produced += 1
                continue

            logger.info(f"Generating image {scene.order + 1}/{len(scenes)}")
            reference = await self.generate_scene_image(ctx, scene)
            if reference is None:
                ctx.notify("warning", "Images", f"No image for scene {scene.order + 1}")
                continue

            scene.background.image = reference
            if scene.background.active is None:
                scene.background.use_image()
            ctx.mark_used(reference.url)
            produced += 1

        if produced == 0:
            raise StageError("No images generated", stage="images")
        if produced < len(scenes):
            stage.complete(f"Degraded: {produced}/{len(scenes)} images")
        else:
            stage.complete(f"{produced} images")

    async def _stage_videos(self, ctx: ProjectContext, stage: StageProgress) -> None:
        if not self.config.pipeline.enable_videos:
            stage.skip("Video backgrounds disabled")
            return

        broll = [s for s in ctx.project.scenes if s.type.value in self.config.pipeline.broll_scene_types]
        if not broll:
            stage.skip("No B-roll scenes")
            return

        accepted = 0
        for scene in broll:
            reference = await self.generate_scene_video(ctx, scene)
            if reference is None:
                continue
            scene.background.use_video(reference)
            ctx.mark_used(reference.url)
            accepted += 1

        stage.complete(f"{accepted}/{len(broll)} B-roll videos")

    async def _stage_music(self, ctx: ProjectContext, stage: StageProgress) -> None:
        if not self.config.pipeline.enable_music:
            stage.skip("Background music disabled")
            return

        reference = await self.generate_music(ctx)
        if reference is None:
            ctx.notify("warning", "Music", "No music provider succeeded; continuing without music")
            stage.skip("All music providers failed")
            return

        ctx.project.assets.music = reference
        ctx.project.assets.music_volume = self.config.pipeline.music_volume
        stage.complete(f"Music by {reference.source}")

    async def _stage_sound_design(self, ctx: ProjectContext, stage: StageProgress) -> None:
        if not self.config.sound.enabled:
            stage.skip("Sound design disabled")
            return

        realized = planned = 0
        for scene in ctx.project.scenes:
            realized += await self.realize_sound(ctx, scene)
            planned += len(list(scene.sound.cues()))

        stage.complete(f"{realized}/{planned} sound cues")

    async def _stage_scene_analysis(self, ctx: ProjectContext, stage: StageProgress) -> None:
        scenes = ctx.project.scenes
        if not self.analyzer.available:
            for scene in scenes:
                scene.quality = self.scoring.not_analyzed("Vision analysis unavailable")
            stage.skip("No vision analyzer configured")
            return

        for scene in scenes:
            await self.analyze_scene(ctx, scene)

        analyzed = sum(1 for s in scenes if s.quality is not None and s.quality.analyzed)
        stage.complete(f"{analyzed}/{len(scenes)} scenes analyzed")

    async def _stage_composition(self, ctx: ProjectContext, stage: StageProgress) -> None:
        self._apply_brand_assets(ctx)
        for scene in ctx.project.scenes:
            self.compose_scene(ctx, scene)
        from_analysis = sum(1 for s in ctx.project.scenes if s.composition.from_analysis)
        stage.complete(f"{len(ctx.project.scenes)} scenes ({from_analysis} from analysis)")

    async def _stage_caching(self, ctx: ProjectContext, stage: StageProgress) -> Optional[CacheSummary]:
        if self.store is None:
            ctx.notify("warning", "Caching", "No object store configured; assets stay at provider URLs")
            stage.skip("No object store configured")
            return None

        summary = await cache_project_assets(ctx.project, self.durability)
        if summary.issues:
            stage.complete(f"{summary.cached} cached, {len(summary.issues)} kept ephemeral")
        else:
            stage.complete(f"{summary.cached} cached")
        return summary

    async def _stage_render_prep(self, ctx: ProjectContext, stage: StageProgress) -> RenderReadiness:
        readiness = await prepare_assets_for_render(ctx.project, self.durability)
        for issue in readiness.issues:
            ctx.notify("warning", "Render", issue)
        if not readiness.valid:
            stage.fail("No scene has a durable background")
            ctx.project.progress.errors.append("render_prep: no scene has a durable background")
        else:
            stage.complete(f"Ready with {len(readiness.issues)} issue(s)")
        return readiness

    def _handler(self, name: str) -> Callable[[ProjectContext, StageProgress], Awaitable[Any]]:
        return getattr(self, f"_stage_{name}")

    async def run_stage(self, name: str, ctx: ProjectContext) -> Any:
        """
        Run one stage with its progress tracking.

        Returns:
            The stage's own return value, or None when it failed
        """
        progress = ctx.project.progress
        stage = progress.stage(name)
        progress.current_stage = name
        stage.start()
        logger.info(f"Stage {name}: started")

        value = None
        try:
            value = await self._handler(name)(ctx, stage)
        except StageError as e:
            stage.fail(e.message)
            progress.errors.append(f"{name}: {e.message}")
            ctx.notify("error", name, e.message)
        except VideoProducerError as e:
            stage.fail(e.message)
            progress.errors.append(f"{name}: {e.message}")
        except Exception as e:
            logger.exception(f"Stage {name} raised unexpectedly")
            message = redact_api_key(f"{e.__class__.__name__}: {e}")
            stage.fail(message)
            progress.errors.append(f"{name}: {message}")

        if stage.status == StageStatus.IN_PROGRESS:
            stage.complete()

        logger.info(f"Stage {name}: {stage.status.value} {stage.message}".rstrip())
        return value

    def _finalize(self, project: VideoProject) -> None:
        mandatory = self.config.pipeline.mandatory_stages
        failed = [name for name in mandatory if not project.progress.stage(name).settled]
        project.status = ProjectStatus.ERROR if failed else ProjectStatus.READY
        project.progress.current_stage = None
        project.touch()

        if failed:
            logger.warning(f"Project {project.id} ended in error; mandatory stages not settled: {failed}")
        else:
            logger.info(f"Project {project.id} ready ({len(project.progress.service_failures)} service failures)")

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    async def produce(
        self,
        project: VideoProject,
        ctx: Optional[ProjectContext] = None,
    ) -> ProductionResult:
        """
        Run every stage on a project.

        Args:
            project: Draft project built from script segments
            ctx: Project context (created when omitted)

        Returns:
            ProductionResult; the project is always returned, ready or error
        """
        ctx = ctx or self.create_context(project)
        project.status = ProjectStatus.GENERATING
        project.touch()
        logger.info(f"Producing project {project.id}: {len(project.scenes)} scenes")

        values: Dict[str, Any] = {}
        for name in PIPELINE_STAGES:
            values[name] = await self.run_stage(name, ctx)

        self._finalize(project)

        return ProductionResult(
            project=project,
            readiness=values.get("render_prep"),
            quality_report=build_quality_report(project, self.config.quality),
            cache_summary=values.get("caching"),
            notifications=[n.to_dict() for n in ctx.notifications],
        )

    async def close(self) -> None:
        """Close all provider connections."""
        providers = [p for chain in self._chains.values() for p in chain]
        if self._voice_provider is not None:
            providers.append(self._voice_provider)
        for provider in providers:
            await provider.close()
        await self.durability.fetcher.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
