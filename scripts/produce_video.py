#!/usr/bin/env python3
"""
CLI Script: Produce Video
=========================

Command-line tool that runs the full production pipeline on a narration
script and writes the render-ready project description.

The script file is YAML or JSON: either a list of segments or a mapping
with a ``segments`` list plus optional ``title``, ``target_audience``,
``product_name`` and ``brand_safety_keywords``.

Usage:
    python scripts/produce_video.py script.yaml --audience "women 50-65"
    python scripts/produce_video.py script.json -k competitor -k alcohol -o output/spring.json
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from promo_producer import (
    BrandAssetRegistry,
    Config,
    PipelineOrchestrator,
    VideoProducerError,
    VideoProject,
)
from promo_producer.utils import S3ObjectStore, generate_filename, load_metadata, save_metadata


def parse_args():
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Produce a render-ready marketing video project",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s script.yaml --audience "women 50-65 going through menopause"
  %(prog)s script.json --title "Spring launch" --product "Calm Tincture" --brand brand.yaml
  %(prog)s script.yaml -k competitor -k alcohol --no-videos -v
        """,
    )

    parser.add_argument(
        "script",
        help="Script file with narration segments (YAML or JSON)",
    )
    parser.add_argument(
        "--title",
        help="Project title (default: from script file or file name)",
    )

    # Audience and brand
    parser.add_argument(
        "-a", "--audience",
        help="Target audience description",
    )
    parser.add_argument(
        "-k", "--keyword",
        action="append",
        default=[],
        help="Brand-safety keyword to exclude (can be specified multiple times)",
    )
    parser.add_argument(
        "--product",
        help="Product name for product overlays",
    )
    parser.add_argument(
        "--brand",
        help="Path to brand asset registry YAML",
    )
    parser.add_argument(
        "--style",
        help="Music style (professional, friendly, energetic, calm, documentary, wellness)",
    )

    # Stage toggles
    parser.add_argument(
        "--no-videos",
        action="store_true",
        help="Skip stock B-roll videos",
    )
    parser.add_argument(
        "--no-music",
        action="store_true",
        help="Skip background music",
    )

    # Output
    parser.add_argument(
        "-o", "--output",
        help="Output JSON path (default: auto-generated under the configured output path)",
    )
    parser.add_argument(
        "--config",
        help="Path to config file",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    return parser.parse_args()


async def main():
    """Main CLI entry point."""
    args = parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
    )

    script_path = Path(args.script)
    data = await load_metadata(script_path)
    if data is None:
        print(f"Error: script file not found: {script_path}")
        sys.exit(1)

    if isinstance(data, list):
        data = {"segments": data}

    try:
        config = Config.load(args.config)
        if args.no_videos:
            config.pipeline.enable_videos = False
        if args.no_music:
            config.pipeline.enable_music = False

        project = VideoProject.from_segments(
            args.title or data.get("title") or script_path.stem,
            data.get("segments", []),
            target_audience=args.audience or data.get("target_audience", ""),
            brand_safety_keywords=args.keyword or data.get("brand_safety_keywords", []),
            product_name=args.product or data.get("product_name"),
            style=args.style or data.get("style", config.pipeline.music_style),
        )
        registry = BrandAssetRegistry.from_yaml(args.brand) if args.brand else None
    except VideoProducerError as e:
        print(f"Error: {e}")
        sys.exit(1)

    store = S3ObjectStore(config.storage) if config.storage.enabled else None
    output = Path(args.output) if args.output else Path(config.pipeline.output_path) / generate_filename(project.id)

    print("=" * 50)
    print("AI Promo Video Producer")
    print("=" * 50)
    print(f"\nProject: {project.title} ({len(project.scenes)} scenes)")
    if project.target_audience:
        print(f"Audience: {project.target_audience}")
    print(f"Object store: {config.storage.bucket if store else 'none'}")

    try:
        async with PipelineOrchestrator(config, store=store) as orchestrator:
            ctx = orchestrator.create_context(project, brand_registry=registry)
            result = await orchestrator.produce(project, ctx)

        await save_metadata(result.to_dict(), output)

        print("\n" + "-" * 50)
        print(f"Status: {project.status.value}")
        print(f"Duration: {project.total_duration}s")
        for name, stage in project.progress.stages.items():
            print(f"  {name:<15} {stage.status.value:<12} {stage.message}")
        if result.quality_report:
            print(f"Quality: {result.quality_report.overall_score} (can render: {result.quality_report.can_render})")
        print(f"Service failures: {len(project.progress.service_failures)}")
        print(f"Saved: {output}")
        print("=" * 50)

        sys.exit(0 if result.ready else 1)

    except KeyboardInterrupt:
        print("\nCancelled")
        sys.exit(130)


if __name__ == "__main__":
    asyncio.run(main())
