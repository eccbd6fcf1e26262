#!/usr/bin/env python3
"""
Simple Production Example
=========================

Basic example of producing a render-ready project with the AI Promo
Video Producer.
"""

import asyncio
import logging
import os
from pathlib import Path

from promo_producer import Config, PipelineOrchestrator, VideoProject
from promo_producer.utils import S3ObjectStore, save_metadata


SEGMENTS = [
    {
        "type": "hook",
        "narration": "Tired of tossing and turning every single night?",
        "visual_direction": "Woman in her fifties awake in bed at night, soft moonlight",
        "search_query": "woman awake bed night",
    },
    {
        "type": "benefit",
        "narration": "Our calming herbal blend helps you unwind naturally before bed.",
        "visual_direction": "Steaming mug of herbal tea on a wooden kitchen table, morning light",
    },
    {
        "type": "cta",
        "narration": "Try it tonight and wake up refreshed.",
        "visual_direction": "Title card with text reading 'Sleep better tonight'",
        "text_overlays": [{"text": "Sleep better tonight", "style": "headline"}],
        "show_product": True,
    },
]


async def main():
    """Simple production example."""
    logging.basicConfig(level=logging.INFO)

    if not os.getenv("ELEVENLABS_API_KEY"):
        print("Please set ELEVENLABS_API_KEY environment variable (voiceover is mandatory)")
        return

    config = Config.load()
    store = S3ObjectStore(config.storage) if config.storage.enabled else None

    project = VideoProject.from_segments(
        "Calm Nights",
        SEGMENTS,
        target_audience="women 50-65 with trouble sleeping",
        brand_safety_keywords=["alcohol", "competitor"],
        product_name="Calm Tincture",
        style="calm",
    )

    print("=== Simple Production ===")
    print(f"Scenes: {len(project.scenes)}")
    print(f"Audience: {project.target_audience}")
    print("\nProducing...")

    async with PipelineOrchestrator(config, store=store) as orchestrator:
        result = await orchestrator.produce(project)

    print(f"\nStatus: {project.status.value}")
    print(f"Total duration: {project.total_duration}s")
    for scene in project.scenes:
        asset = scene.background.active_asset
        print(f"  Scene {scene.order + 1} ({scene.type.value}, {scene.duration}s): "
              f"{asset.source if asset else 'no background'}")

    for failure in project.progress.service_failures:
        print(f"  Failure: {failure.service}: {failure.error}")

    output_path = Path("output") / f"{project.id}.json"
    await save_metadata(result.to_dict(), output_path)
    print(f"\nSaved: {output_path}")


if __name__ == "__main__":
    asyncio.run(main())
