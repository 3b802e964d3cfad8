#!/usr/bin/env python3
"""
Simple Lookbook Example
=======================

Basic example of turning a model photo and a product photo into a
storyboard, then animating one of its scenes.
"""

import asyncio
import os
from pathlib import Path

# Add project root to path
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from lookbook import (
    CustomizationOptions,
    StageOrchestrator,
    get_provider,
    load_image_artifact,
)
from lookbook.utils import save_bytes


async def main():
    """Simple lookbook example."""

    # Check for API key
    if not os.getenv("GEMINI_API_KEY"):
        print("Please set GEMINI_API_KEY environment variable")
        print("Get your key at: https://aistudio.google.com/apikey")
        return

    provider = get_provider("gemini")
    studio = StageOrchestrator(provider)
    studio.progress.add_listener(
        lambda state: print(f"\r{state.message}: {state.percentage:5.1f}%", end="", flush=True)
    )

    studio.set_model_image(load_image_artifact("input/model.png"))
    studio.set_product_image(load_image_artifact("input/dress.png"))

    print("=== Simple Lookbook ===")
    print(f"Provider: {provider.provider_name}")

    try:
        await studio.combine()
        await studio.refine(CustomizationOptions(neon_text="LUXE", lighting_ref="Soft daylight"))
        await studio.generate_storyboard(neon_text="LUXE")
        print()

        report = await studio.extract_scenes()
        print(f"\nExtracted {len(report.completed)} scenes")

        if 0 in report.completed:
            video = await studio.generate_scene_video(0, "Slow dolly in, hair moving in the breeze")
            if video:
                path = save_bytes(await provider.download(video), Path("output") / "scene_0.mp4")
                print(f"Video saved: {path}")

    finally:
        await provider.close()


if __name__ == "__main__":
    asyncio.run(main())
