"""End-to-end pipeline runs against in-memory providers and storage."""

import pytest

from conftest import FakeProvider, make_analysis, make_analyzer
from promo_producer.core.exceptions import ResourceNotFoundError, ValidationError
from promo_producer.project.models import PIPELINE_STAGES, ProjectStatus, Provenance, StageStatus
from promo_producer.workflow.orchestrator import PipelineOrchestrator
from promo_producer.workflow.regeneration import SceneRegenerator

pytestmark = pytest.mark.integration

LOW_SCORES = {
    "technical_score": 20,
    "content_match_score": 20,
    "brand_compliance_score": 20,
    "composition_score": 20,
}


@pytest.fixture
def orchestrator(config, store, analyzer, chains, voice_provider, fetcher):
    return PipelineOrchestrator(
        config,
        store=store,
        analyzer=analyzer,
        chains=chains,
        voice_provider=voice_provider,
        fetcher=fetcher,
    )


def stage_status(project, name):
    return project.progress.stage(name).status


class TestHappyPath:

    @pytest.mark.asyncio
    async def test_project_is_ready(self, orchestrator, project):
        result = await orchestrator.produce(project)

        assert result.ready
        assert project.status == ProjectStatus.READY
        assert all(project.progress.stage(name).settled for name in PIPELINE_STAGES)
        assert project.progress.current_stage is None
        assert len(project.progress.service_failures) == 0

    @pytest.mark.asyncio
    async def test_durations_match_total(self, orchestrator, project):
        await orchestrator.produce(project)

        assert project.durations_in_sync()
        assert all(5 <= s.duration for s in project.scenes)
        assert project.total_duration == sum(s.duration for s in project.scenes)

    @pytest.mark.asyncio
    async def test_assets_are_durable(self, orchestrator, project, store):
        result = await orchestrator.produce(project)

        assert project.assets.voiceover.url.startswith("https://assets.example.com/")
        assert project.assets.voiceover.duration is not None
        for scene in project.scenes:
            assert scene.background.image.url.startswith("https://assets.example.com/")
            assert scene.background.image.cached
        assert result.cache_summary.cached == len(project.scenes)
        assert result.readiness.valid
        assert result.readiness.issues == ["Scene 2: product overlay disabled"]

    @pytest.mark.asyncio
    async def test_broll_scenes_use_stock_video(self, orchestrator, project):
        await orchestrator.produce(project)

        hook, benefit, cta = project.scenes
        assert hook.background.active == "video"
        assert hook.background.video.provenance == Provenance.STOCK
        assert benefit.background.active == "video"
        assert cta.background.active == "image"
        assert hook.composition.camera_motion == "static"

    @pytest.mark.asyncio
    async def test_scenes_are_scored_and_composed(self, orchestrator, project, analyzer):
        result = await orchestrator.produce(project)

        assert analyzer.analyze.await_count == len(project.scenes)
        for scene in project.scenes:
            assert scene.quality.analyzed
            assert scene.composition.from_analysis
            assert scene.sound is not None
        assert result.quality_report.approved_count == len(project.scenes)
        assert result.quality_report.can_render

    @pytest.mark.asyncio
    async def test_music_and_sound(self, orchestrator, project):
        await orchestrator.produce(project)

        assert project.assets.music.source == "elevenlabs-music"
        cues = [cue for scene in project.scenes for cue in scene.sound.cues()]
        assert cues
        assert all(cue.url for cue in cues)

    @pytest.mark.asyncio
    async def test_result_serializes(self, orchestrator, project):
        result = await orchestrator.produce(project)
        data = result.to_dict()

        assert data["project"]["status"] == "ready"
        assert data["readiness"]["valid"] is True
        assert data["quality_report"]["can_render"] is True


class TestDegradedRuns:

    @pytest.mark.asyncio
    async def test_all_image_providers_fail(self, config, store, analyzer, chains, voice_provider, fetcher, project):
        chains["images"] = [
            FakeProvider("fal-flux-pro", provider_class="fal", fail=True),
            FakeProvider("pexels-image", provenance=Provenance.STOCK, fail=True),
        ]
        orchestrator = PipelineOrchestrator(
            config, store=store, analyzer=analyzer, chains=chains, voice_provider=voice_provider, fetcher=fetcher,
        )

        result = await orchestrator.produce(project)

        assert not result.ready
        assert project.status == ProjectStatus.ERROR
        assert stage_status(project, "images") == StageStatus.ERROR
        assert stage_status(project, "voiceover") == StageStatus.COMPLETE
        assert stage_status(project, "music") == StageStatus.COMPLETE
        assert len(project.progress.service_failures.for_service("fal-flux-pro")) == len(project.scenes)
        assert any(error.startswith("images:") for error in project.progress.errors)

    @pytest.mark.asyncio
    async def test_voiceover_failure_is_an_error(self, config, store, analyzer, chains, fetcher, project):
        voice = FakeProvider("elevenlabs-voice", provider_class="elevenlabs", fail=True)
        orchestrator = PipelineOrchestrator(
            config, store=store, analyzer=analyzer, chains=chains, voice_provider=voice, fetcher=fetcher,
        )

        result = await orchestrator.produce(project)

        assert project.status == ProjectStatus.ERROR
        assert stage_status(project, "voiceover") == StageStatus.ERROR
        assert stage_status(project, "images") == StageStatus.COMPLETE
        assert all(scene.background.image is not None for scene in project.scenes)
        assert any(n["level"] == "error" for n in result.notifications)

    @pytest.mark.asyncio
    async def test_music_failure_is_skipped(self, config, store, analyzer, chains, voice_provider, fetcher, project):
        chains["music"] = [FakeProvider("elevenlabs-music", provider_class="elevenlabs", fail=True)]
        orchestrator = PipelineOrchestrator(
            config, store=store, analyzer=analyzer, chains=chains, voice_provider=voice_provider, fetcher=fetcher,
        )

        result = await orchestrator.produce(project)

        assert project.status == ProjectStatus.READY
        assert stage_status(project, "music") == StageStatus.SKIPPED
        assert project.assets.music is None
        assert any(n["service"] == "Music" for n in result.notifications)

    @pytest.mark.asyncio
    async def test_gate_rejects_youth_stock_video(self, config, store, analyzer, chains, voice_provider, fetcher, project):
        chains["videos"] = [FakeProvider("pexels-video", provenance=Provenance.STOCK, tags=["teenager", "running"])]
        orchestrator = PipelineOrchestrator(
            config, store=store, analyzer=analyzer, chains=chains, voice_provider=voice_provider, fetcher=fetcher,
        )

        await orchestrator.produce(project)

        assert all(scene.background.active == "image" for scene in project.scenes)
        assert project.progress.service_failures.for_service("pexels-video") == []
        assert project.status == ProjectStatus.READY

    @pytest.mark.asyncio
    async def test_without_store_inline_voiceover_is_dropped_for_render(
        self, config, analyzer, chains, voice_provider, fetcher, project,
    ):
        orchestrator = PipelineOrchestrator(
            config, store=None, analyzer=analyzer, chains=chains, voice_provider=voice_provider, fetcher=fetcher,
        )

        result = await orchestrator.produce(project)

        assert stage_status(project, "caching") == StageStatus.SKIPPED
        assert project.assets.voiceover.url.startswith("data:audio/mpeg;base64,")
        assert result.readiness.prepared_project.assets.voiceover is None
        assert "Voiceover cleared: not durable" in result.readiness.issues
        assert result.readiness.valid

    @pytest.mark.asyncio
    async def test_analysis_unavailable(self, config, store, chains, voice_provider, fetcher, project):
        orchestrator = PipelineOrchestrator(
            config,
            store=store,
            analyzer=make_analyzer(available=False),
            chains=chains,
            voice_provider=voice_provider,
            fetcher=fetcher,
        )

        result = await orchestrator.produce(project)

        assert stage_status(project, "scene_analysis") == StageStatus.SKIPPED
        assert all(not scene.quality.analyzed for scene in project.scenes)
        assert all(not scene.composition.from_analysis for scene in project.scenes)
        assert result.quality_report.pending_count == len(project.scenes)
        assert result.quality_report.can_render
        assert project.status == ProjectStatus.READY


    @pytest.mark.asyncio
    async def test_bad_scene_image_does_not_stop_analysis(self, orchestrator, project, analyzer):
        analyzer.analyze.side_effect = [
            ValidationError("Unsupported image type for analysis: image/bmp"),
            make_analysis(),
            make_analysis(),
        ]

        result = await orchestrator.produce(project)

        assert stage_status(project, "scene_analysis") == StageStatus.COMPLETE
        first, *rest = project.scenes
        assert not first.quality.analyzed
        assert "image/bmp" in first.quality.reason
        assert all(scene.quality.analyzed for scene in rest)
        failures = project.progress.service_failures.for_service("scene_analysis")
        assert len(failures) == 1
        assert failures[0].error.startswith("Scene 0:")
        assert result.quality_report.pending_count == 1
        assert project.status == ProjectStatus.READY


class TestRegeneration:

    @pytest.mark.asyncio
    async def test_regenerate_image_and_undo(self, orchestrator, project):
        ctx = orchestrator.create_context(project)
        await orchestrator.produce(project, ctx)
        scene = project.scenes[2]
        original_url = scene.background.image.url

        reference = await SceneRegenerator(orchestrator).regenerate_scene_asset(ctx, scene.id, "image")

        assert reference is not None
        assert scene.background.image.url == reference.url != original_url
        assert scene.regeneration_count == 1
        assert scene.quality.analyzed and not scene.quality.stale

        assert ctx.history.undo(project) == "Regenerate image for scene 3"
        restored = project.get_scene(scene.id)
        assert restored.background.image.url == original_url
        assert restored.regeneration_count == 0

    @pytest.mark.asyncio
    async def test_regeneration_survives_analysis_error(self, orchestrator, project, analyzer):
        ctx = orchestrator.create_context(project)
        await orchestrator.produce(project, ctx)
        scene = project.scenes[1]
        analyzer.analyze.side_effect = ValidationError("Malformed data URI")

        reference = await SceneRegenerator(orchestrator).regenerate_scene_asset(ctx, scene.id, "image")

        assert reference is not None
        assert scene.background.image.url == reference.url
        assert not scene.quality.analyzed
        assert scene.composition is not None
        assert not scene.composition.from_analysis

    @pytest.mark.asyncio
    async def test_failed_regeneration_keeps_asset(self, orchestrator, project, chains):
        ctx = orchestrator.create_context(project)
        await orchestrator.produce(project, ctx)
        scene = project.scenes[0]
        original_url = scene.background.image.url
        for provider in chains["images"]:
            provider.fail = True

        reference = await SceneRegenerator(orchestrator).regenerate_scene_asset(ctx, scene.id, "image")

        assert reference is None
        assert scene.background.image.url == original_url
        assert not ctx.history.can_undo

    @pytest.mark.asyncio
    async def test_unknown_scene_and_kind(self, orchestrator, project):
        ctx = orchestrator.create_context(project)
        regenerator = SceneRegenerator(orchestrator)

        with pytest.raises(ResourceNotFoundError):
            await regenerator.regenerate_scene_asset(ctx, "missing", "image")
        with pytest.raises(ValidationError):
            await regenerator.regenerate_scene_asset(ctx, project.scenes[0].id, "hologram")

    @pytest.mark.asyncio
    async def test_narration_edit_resyncs_timing(self, orchestrator, project, voice_provider):
        ctx = orchestrator.create_context(project)
        await orchestrator.produce(project, ctx)
        scene = project.scenes[1]
        long_narration = " ".join(["word"] * 40)

        settled = await SceneRegenerator(orchestrator).regenerate_voiceover(ctx, scene.id, long_narration)

        assert settled
        assert scene.narration == long_narration
        assert project.durations_in_sync()
        assert voice_provider.requests[-1].prompt == project.full_narration
        assert ctx.history.can_undo

    @pytest.mark.asyncio
    async def test_auto_regenerate_until_passing(self, orchestrator, project, analyzer):
        analyzer.analyze.return_value = make_analysis(**LOW_SCORES)
        ctx = orchestrator.create_context(project)
        await orchestrator.produce(project, ctx)
        assert all(SceneRegenerator.needs_regeneration(s) for s in project.scenes)

        analyzer.analyze.return_value = make_analysis()
        summary = await SceneRegenerator(orchestrator).auto_regenerate(ctx, max_attempts=3)

        assert set(summary) == {s.id for s in project.scenes}
        assert all(entry["attempts"] == 1 and entry["passed"] for entry in summary.values())
        assert all(s.regeneration_count == 1 for s in project.scenes)
