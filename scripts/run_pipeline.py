#!/usr/bin/env python3
"""
CLI Script: Run Pipeline
========================

Command-line tool that runs the whole lookbook pipeline for one model and
one product image and writes every artifact to an output directory.

Usage:
    python scripts/run_pipeline.py --model-image model.png --product-image dress.png
    python scripts/run_pipeline.py -m model.png -p dress.png --neon-text AURA --video 0 --video 4
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from lookbook.api import get_provider
from lookbook.context import CustomizationOptions, DEFAULT_MOTION_PROMPT, SCENE_COUNT
from lookbook.core.config import Config
from lookbook.core.exceptions import LookbookError, MissingCredentialError, SceneTaskError
from lookbook.utils import (
    ensure_dir,
    extension_for,
    load_image_artifact,
    save_bytes,
    save_metadata,
)
from lookbook.workflow import StageOrchestrator


def parse_args(argv=None):
    """Parse command line arguments."""
    defaults = CustomizationOptions()
    parser = argparse.ArgumentParser(
        description="Generate a branded 9-scene lookbook from a model and a product photo",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s -m model.png -p dress.png
  %(prog)s -m model.png -p dress.png --neon-text AURA --font-style Bold --video 2
  %(prog)s -m model.png -p dress.png --skip-refine --upscale 0 --upscale 8
        """,
    )

    # Inputs
    parser.add_argument("-m", "--model-image", required=True, help="Photo of the model")
    parser.add_argument("-p", "--product-image", required=True, help="Photo of the product")
    parser.add_argument("--instruction", help="Extra direction for the compositing step")

    # Styling
    parser.add_argument("--background", default=defaults.background, help="Background description")
    parser.add_argument("--background-ref", default="", help="Background reference description")
    parser.add_argument("--lighting", default=defaults.lighting_ref, help="Lighting reference")
    parser.add_argument("--neon-text", default=defaults.neon_text, help="Neon sign branding text")
    parser.add_argument("--font-style", default=defaults.font_style, help="Neon sign font style")
    parser.add_argument("--skip-refine", action="store_true", help="Go straight from combine to storyboard")

    # Scene tasks
    parser.add_argument(
        "--video",
        type=int,
        action="append",
        default=[],
        choices=range(SCENE_COUNT),
        metavar="SCENE_ID",
        help="Animate a scene (0-8, can be specified multiple times)",
    )
    parser.add_argument(
        "--upscale",
        type=int,
        action="append",
        default=[],
        choices=range(SCENE_COUNT),
        metavar="SCENE_ID",
        help="Upscale a scene (0-8, can be specified multiple times)",
    )
    parser.add_argument("--motion", default=DEFAULT_MOTION_PROMPT, help="Motion prompt for videos")

    # Output / config
    parser.add_argument("-o", "--output", default="./output", help="Output directory (default: ./output)")
    parser.add_argument("--config", help="Path to config file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    return parser.parse_args(argv)


async def save_artifact(provider, artifact, path_stem: Path) -> str:
    data = await provider.download(artifact)
    return save_bytes(data, path_stem.with_suffix(extension_for(artifact.mime_type)))


async def run(args) -> int:
    config = Config.load(args.config)
    output_dir = ensure_dir(args.output)

    options = CustomizationOptions(
        background=args.background,
        background_ref=args.background_ref,
        lighting_ref=args.lighting,
        neon_text=args.neon_text,
        font_style=args.font_style,
    )

    provider = get_provider(
        config.provider.name,
        base_url=config.provider.base_url,
        timeout=config.provider.timeout,
        env_key_name=config.provider.api_key_env,
    )

    async with provider:
        studio = StageOrchestrator(provider, config=config)
        studio.set_model_image(load_image_artifact(args.model_image))
        studio.set_product_image(load_image_artifact(args.product_image))
        files = {}

        print("=" * 50)
        print("Lookbook Pipeline")
        print("=" * 50)

        print("\n[1/4] Combining model and product...")
        combined = await studio.combine(args.instruction)
        files["combined"] = await save_artifact(provider, combined, output_dir / "combined")

        if not args.skip_refine:
            print("[2/4] Refining background and branding...")
            refined = await studio.refine(options)
            files["refined"] = await save_artifact(provider, refined, output_dir / "refined")

        print("[3/4] Building storyboard grid...")
        grid = await studio.generate_storyboard(options.neon_text)
        files["storyboard"] = await save_artifact(provider, grid, output_dir / "storyboard")

        print("[4/4] Extracting scenes...")
        report = await studio.extract_scenes()
        for scene_id in report.completed:
            scene = studio.session.scene(scene_id)
            files[f"scene_{scene_id}"] = await save_artifact(
                provider, scene.image, output_dir / f"scene_{scene_id}"
            )
        for scene_id, error in sorted(report.failures.items()):
            print(f"  Scene {scene_id} failed: {error}")

        tasks = [studio.upscale_scene(i) for i in args.upscale]
        tasks += [studio.generate_scene_video(i, args.motion) for i in args.video]
        results = await asyncio.gather(*tasks, return_exceptions=True)
        task_failures = [r for r in results if isinstance(r, SceneTaskError)]
        for failure in task_failures:
            print(f"  Scene {failure.scene_id} {failure.operation} failed: {failure}")
        unexpected = [r for r in results if isinstance(r, BaseException) and not isinstance(r, SceneTaskError)]
        if unexpected:
            raise unexpected[0]

        for scene_id in sorted(set(args.upscale)):
            scene = studio.session.scene(scene_id)
            if scene.image is not None:
                files[f"scene_{scene_id}_upscaled"] = await save_artifact(
                    provider, scene.image, output_dir / f"scene_{scene_id}_upscaled"
                )
        for scene_id in sorted(set(args.video)):
            scene = studio.session.scene(scene_id)
            if scene.video_url is not None:
                files[f"scene_{scene_id}_video"] = await save_artifact(
                    provider, scene.video_url, output_dir / f"scene_{scene_id}_video"
                )

        summary = studio.session.to_dict()
        summary["files"] = files
        summary["failures"] = {str(k): str(v) for k, v in report.failures.items()}
        save_metadata(summary, output_dir / "session.json")

        print("\n" + "-" * 50)
        print(f"Scenes extracted: {len(report.completed)}/{SCENE_COUNT}")
        print(f"Output: {output_dir}")
        print("=" * 50)

        return 0 if report.succeeded and not task_failures else 1


def main():
    """Main CLI entry point."""
    args = parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        sys.exit(asyncio.run(run(args)))
    except KeyboardInterrupt:
        print("\nCancelled")
        sys.exit(130)
    except MissingCredentialError as e:
        print(f"\nError: {e}")
        print("Set GEMINI_API_KEY (or the variable named in provider.api_key_env) and retry.")
        sys.exit(2)
    except LookbookError as e:
        print(f"\nError: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
