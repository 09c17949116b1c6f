#!/usr/bin/env python3
"""Render a preset scene with the spectral path tracer.

The image is rendered progressively and rewritten after every batch, so an
interrupted render still leaves a valid image of the samples done so far.
The output is written to a temporary file and renamed into place.

Usage:
    python examples/render_scene.py --output out.png [options]

Options:
    --scene NAME        Preset scene (default: many_spheres)
    --width WIDTH       Image width in pixels (default: 800)
    --height HEIGHT     Image height in pixels (default: derived at 4:3)
    --samples SAMPLES   Samples per pixel (default: 100)
    --max-depth DEPTH   Maximum bounces per path (default: 50)
    --seed SEED         Seed of the random streams (default: 0)
    --threads N         Worker threads (default: all cores)
    --output OUTPUT     Output file (.png, .jpg, .jpeg or .ppm)
    --batch-size SIZE   Samples between saves (default: 10)
    --quiet             Suppress progress output

Example:
    python examples/render_scene.py --scene cornell --width 400 --samples 64 --output cornell.png
"""

import argparse
import logging
import sys
import time
from pathlib import Path

DEFAULT_WIDTH = 800
DEFAULT_HEIGHT = 600

logger = logging.getLogger("prism.examples.render_scene")


def resolve_dimensions(width: int | None, height: int | None) -> tuple[int, int]:
    """Fill in a missing dimension from the default 4:3 aspect ratio."""
    if width is None and height is None:
        return DEFAULT_WIDTH, DEFAULT_HEIGHT
    if height is None:
        return width, max(1, width * DEFAULT_HEIGHT // DEFAULT_WIDTH)
    if width is None:
        return max(1, height * DEFAULT_WIDTH // DEFAULT_HEIGHT), height
    return width, height


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Render a preset scene with the spectral path tracer.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--scene",
        type=str,
        default="many_spheres",
        help="Preset scene name (default: many_spheres)",
    )
    parser.add_argument("--width", type=int, default=None, help="Image width in pixels")
    parser.add_argument("--height", type=int, default=None, help="Image height in pixels")
    parser.add_argument(
        "--samples",
        type=int,
        default=100,
        help="Number of samples per pixel (default: 100)",
    )
    parser.add_argument(
        "--max-depth",
        type=int,
        default=50,
        help="Maximum bounces per path (default: 50)",
    )
    parser.add_argument("--seed", type=int, default=0, help="Render seed (default: 0)")
    parser.add_argument(
        "--threads",
        type=int,
        default=None,
        help="Worker thread count (default: all cores)",
    )
    parser.add_argument(
        "--output",
        type=str,
        required=True,
        help="Output file path; the extension selects the format",
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=10,
        help="Samples rendered between saves (default: 10)",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress progress output",
    )
    return parser.parse_args(argv)


def render_scene(
    scene_name: str,
    width: int,
    height: int,
    num_samples: int,
    output_path: str,
    max_depth: int = 50,
    seed: int = 0,
    batch_size: int = 10,
    quiet: bool = False,
) -> Path:
    """Render a preset and save it after every batch.

    Returns:
        Path to the saved image file.
    """
    # Imported here so that Taichi is initialised first
    from prism.core.progressive import ProgressiveRenderer
    from prism.preview.export import image_format_for
    from prism.scene.presets import build_scene

    output_file = Path(output_path)
    # Raises ValueError for unsupported extensions
    image_format_for(output_file)

    scene, camera = build_scene(scene_name)
    logger.info("Scene %r (%dx%d, %d spp)", scene_name, width, height, num_samples)

    renderer = ProgressiveRenderer(scene, camera, width, height, seed=seed, max_depth=max_depth)
    start_time = time.time()

    for current, target in renderer.render_progressive(num_samples, batch_size=batch_size):
        renderer.save_image(str(output_file))
        if not quiet:
            elapsed = time.time() - start_time
            progress_pct = (current / target) * 100 if target > 0 else 0
            samples_per_sec = current / elapsed if elapsed > 0 else 0
            print(
                f"\r  Progress: {current}/{target} samples "
                f"({progress_pct:.1f}%) - {samples_per_sec:.1f} spp/s",
                end="",
                flush=True,
            )

    if num_samples <= 0:
        renderer.save_image(str(output_file))
    if not quiet:
        print()

    logger.info("Saved %s in %.2fs", output_file.absolute(), time.time() - start_time)
    return output_file


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    from prism.runtime import init_runtime, setup_logging

    setup_logging("WARNING" if args.quiet else "INFO")

    try:
        width, height = resolve_dimensions(args.width, args.height)
        init_runtime(num_threads=args.threads)
        render_scene(
            scene_name=args.scene,
            width=width,
            height=height,
            num_samples=args.samples,
            output_path=args.output,
            max_depth=args.max_depth,
            seed=args.seed,
            batch_size=args.batch_size,
            quiet=args.quiet,
        )
        return 0
    except (KeyError, ValueError, RuntimeError) as e:
        logger.error("%s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
