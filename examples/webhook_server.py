#!/usr/bin/env python3
"""
Production Webhook Server
=========================

FastAPI server that accepts production requests (for example from an
automation workflow) and runs the pipeline in the background.

Usage:
    uvicorn examples.webhook_server:app --reload --port 8000
"""

import os
from datetime import datetime
from pathlib import Path
from typing import Optional, List, Dict, Any

from fastapi import FastAPI, BackgroundTasks, HTTPException
from pydantic import BaseModel, Field

from promo_producer import (
    BrandAssetRegistry,
    Config,
    PipelineOrchestrator,
    SceneRegenerator,
    VideoProducerError,
    VideoProject,
)
from promo_producer.context import ProjectContext
from promo_producer.utils import S3ObjectStore

app = FastAPI(
    title="AI Promo Video Producer API",
    description="REST API for producing render-ready marketing video projects",
    version="0.1.0",
)

# Global orchestrator instance
orchestrator: Optional[PipelineOrchestrator] = None
registry: Optional[BrandAssetRegistry] = None

# Job tracking
jobs: Dict[str, Dict[str, Any]] = {}
contexts: Dict[str, ProjectContext] = {}


class Segment(BaseModel):
    """One narration segment from the script parser."""
    type: str = "broll"
    narration: str = ""
    visual_direction: str = ""
    search_query: str = ""
    fallback_query: str = ""
    mood: Optional[str] = None
    text_overlays: List[Any] = Field(default_factory=list)
    show_product: bool = False
    show_logo: bool = True


class ProductionRequest(BaseModel):
    """Request model for a production run."""
    title: str
    segments: List[Segment]
    target_audience: str = ""
    brand_safety_keywords: List[str] = Field(default_factory=list)
    product_name: Optional[str] = None
    style: str = "professional"
    voice_id: Optional[str] = None


class RegenerateRequest(BaseModel):
    """Request model for regenerating one scene asset."""
    kind: str = "image"
    prompt: Optional[str] = None


class NarrationRequest(BaseModel):
    narration: str


@app.on_event("startup")
async def startup():
    """Initialize the orchestrator on startup."""
    global orchestrator, registry

    project_root = Path(__file__).parent.parent
    config = Config.load(project_root / "config" / "defaults.yaml")
    store = S3ObjectStore(config.storage) if config.storage.enabled else None
    orchestrator = PipelineOrchestrator(config, store=store)

    brand_path = project_root / "context" / "brand.yaml"
    if brand_path.exists():
        registry = BrandAssetRegistry.from_yaml(brand_path)

    print("Pipeline orchestrator initialized")


@app.on_event("shutdown")
async def shutdown():
    """Cleanup on shutdown."""
    if orchestrator:
        await orchestrator.close()


def _require_orchestrator() -> PipelineOrchestrator:
    if not orchestrator:
        raise HTTPException(status_code=503, detail="Orchestrator not initialized")
    return orchestrator


def _require_context(job_id: str) -> ProjectContext:
    ctx = contexts.get(job_id)
    if ctx is None:
        raise HTTPException(status_code=404, detail="Project not found or still queued")
    return ctx


@app.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "name": "AI Promo Video Producer API",
        "version": "0.1.0",
        "endpoints": {
            "produce": "POST /produce",
            "status": "GET /status/{job_id}",
            "project": "GET /projects/{job_id}",
            "regenerate": "POST /projects/{job_id}/scenes/{scene_id}/regenerate",
            "narration": "POST /projects/{job_id}/scenes/{scene_id}/narration",
            "undo": "POST /projects/{job_id}/undo",
        },
    }


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "orchestrator_ready": orchestrator is not None,
        "vision_available": bool(orchestrator and orchestrator.analyzer.available),
        "images_configured": bool(os.getenv("FAL_KEY") or os.getenv("PEXELS_API_KEY")),
    }


@app.post("/produce")
async def produce(
    request: ProductionRequest,
    background_tasks: BackgroundTasks,
):
    """
    Produce a project.

    Production runs in the background. Use /status/{job_id} to check progress.
    """
    _require_orchestrator()

    job_id = f"job_{datetime.now().strftime('%Y%m%d_%H%M%S_%f')}"
    jobs[job_id] = {
        "status": "queued",
        "created_at": datetime.now().isoformat(),
        "title": request.title,
        "total_scenes": len(request.segments),
    }

    background_tasks.add_task(run_production, job_id, request)

    return {
        "job_id": job_id,
        "status": "queued",
        "message": "Production started. Check /status/{job_id} for progress.",
    }


async def run_production(job_id: str, request: ProductionRequest):
    """Background task for a production run."""
    jobs[job_id]["status"] = "generating"

    try:
        project = VideoProject.from_segments(
            request.title,
            [segment.model_dump() for segment in request.segments],
            target_audience=request.target_audience,
            brand_safety_keywords=request.brand_safety_keywords,
            product_name=request.product_name,
            style=request.style,
            voice_id=request.voice_id,
        )
    except VideoProducerError as e:
        jobs[job_id].update({
            "status": "failed",
            "error": e.message,
            "completed_at": datetime.now().isoformat(),
        })
        return

    ctx = orchestrator.create_context(project, brand_registry=registry)
    contexts[job_id] = ctx
    result = await orchestrator.produce(project, ctx)

    jobs[job_id].update({
        "status": project.status.value,
        "project_id": project.id,
        "total_duration": project.total_duration,
        "can_render": bool(result.readiness and result.readiness.valid),
        "quality_score": result.quality_report.overall_score if result.quality_report else None,
        "service_failures": len(project.progress.service_failures),
        "errors": list(project.progress.errors),
        "completed_at": datetime.now().isoformat(),
    })


@app.get("/status/{job_id}")
async def get_status(job_id: str):
    """Get the status of a production job."""
    if job_id not in jobs:
        raise HTTPException(status_code=404, detail="Job not found")

    job = dict(jobs[job_id])
    ctx = contexts.get(job_id)
    if ctx is not None:
        job["current_stage"] = ctx.project.progress.current_stage
        job["stages"] = {
            name: stage.status.value for name, stage in ctx.project.progress.stages.items()
        }
    return job


@app.get("/projects/{job_id}")
async def get_project(job_id: str):
    """Full project description with notifications and ledger."""
    ctx = _require_context(job_id)
    return {"project": ctx.project.to_dict(), "context": ctx.to_dict()}


@app.post("/projects/{job_id}/scenes/{scene_id}/regenerate")
async def regenerate_scene(job_id: str, scene_id: str, request: RegenerateRequest):
    """Regenerate one scene asset; the current asset stays if every provider fails."""
    ctx = _require_context(job_id)
    regenerator = SceneRegenerator(_require_orchestrator())

    try:
        reference = await regenerator.regenerate_scene_asset(ctx, scene_id, request.kind, request.prompt)
    except VideoProducerError as e:
        raise HTTPException(status_code=404 if e.code == "ResourceNotFoundError" else 400, detail=e.message)

    return {
        "regenerated": reference is not None,
        "asset": reference.to_dict() if reference else None,
        "notifications": [n.to_dict() for n in ctx.notifications[-3:]],
    }


@app.post("/projects/{job_id}/scenes/{scene_id}/narration")
async def update_narration(job_id: str, scene_id: str, request: NarrationRequest):
    """Replace a scene's narration and regenerate the voiceover."""
    ctx = _require_context(job_id)
    regenerator = SceneRegenerator(_require_orchestrator())

    try:
        settled = await regenerator.regenerate_voiceover(ctx, scene_id, request.narration)
    except VideoProducerError as e:
        raise HTTPException(status_code=404, detail=e.message)

    return {"voiceover_ready": settled, "total_duration": ctx.project.total_duration}


@app.post("/projects/{job_id}/undo")
async def undo(job_id: str):
    """Undo the most recent change to a project."""
    ctx = _require_context(job_id)
    if not ctx.history.can_undo:
        raise HTTPException(status_code=409, detail="Nothing to undo")

    label = ctx.history.undo(ctx.project)
    return {"undone": label, "can_redo": ctx.history.can_redo}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
