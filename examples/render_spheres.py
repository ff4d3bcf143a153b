#!/usr/bin/env python3
"""Render a sphere scene to an image file.

This script renders one of the built-in demo scenes, or a scene saved as
JSON with Scene.save(), and writes the result as PPM or PNG depending on the
output suffix.

Usage:
    python examples/render_spheres.py [options]

Options:
    --scene {three,random}  Built-in scene to render (default: random)
    --scene-file PATH       JSON scene file (overrides --scene)
    --width WIDTH           Image width in pixels (default: 400)
    --aspect RATIO          Width divided by height (default: 1.7778)
    --samples SAMPLES       Samples per pixel (default: 50)
    --bounces BOUNCES       Maximum bounces per path (default: 10)
    --seed SEED             Seed for the random scene and Taichi RNG (default: 0)
    --arch {auto,cpu,gpu}   Taichi backend (default: auto)
    --batch-size SIZE       Samples per progress update (default: 10)
    --output OUTPUT         Output file path, .ppm or .png (default: image.ppm)
    --quiet                 Suppress progress output

Example:
    python examples/render_spheres.py --scene three --width 200 --samples 20 --output three.png
"""

from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path

from pathtracer.errors import ConfigurationError
from pathtracer.runtime import init_taichi


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Render a sphere scene with the Monte Carlo path tracer.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--scene",
        choices=("three", "random"),
        default="random",
        help="Built-in scene to render (default: random)",
    )
    parser.add_argument(
        "--scene-file",
        type=Path,
        default=None,
        help="JSON scene file to render instead of a built-in scene",
    )
    parser.add_argument(
        "--width",
        type=int,
        default=400,
        help="Image width in pixels (default: 400)",
    )
    parser.add_argument(
        "--aspect",
        type=float,
        default=16.0 / 9.0,
        help="Aspect ratio, width / height (default: 16/9)",
    )
    parser.add_argument(
        "--samples",
        type=int,
        default=50,
        help="Number of samples per pixel (default: 50)",
    )
    parser.add_argument(
        "--bounces",
        type=int,
        default=10,
        help="Maximum bounces per path (default: 10)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=0,
        help="Seed for the random scene and the Taichi RNG (default: 0)",
    )
    parser.add_argument(
        "--arch",
        choices=("auto", "cpu", "gpu"),
        default="auto",
        help="Taichi backend (default: auto)",
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=10,
        help="Samples per progress update (default: 10)",
    )
    parser.add_argument(
        "--output",
        type=str,
        default="image.ppm",
        help="Output file path, .ppm or .png (default: image.ppm)",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress progress output",
    )
    return parser.parse_args(argv)


def render_spheres(
    scene_name: str = "random",
    scene_file: Path | None = None,
    width: int = 400,
    aspect_ratio: float = 16.0 / 9.0,
    num_samples: int = 50,
    max_bounces: int = 10,
    seed: int = 0,
    output_path: str = "image.ppm",
    batch_size: int = 10,
    quiet: bool = False,
) -> Path:
    """Render a scene and save it to file.

    Args:
        scene_name: "three" or "random"; ignored when scene_file is given.
        scene_file: Optional JSON scene file.
        width: Image width in pixels.
        aspect_ratio: Image width divided by height.
        num_samples: Number of samples per pixel.
        max_bounces: Maximum bounces per path.
        seed: Seed for the random scene layout.
        output_path: Output file path (.ppm or .png).
        batch_size: Number of samples to render between progress updates.
        quiet: If True, suppress progress output.

    Returns:
        Path to the saved image file.
    """
    # Lazy imports to allow Taichi initialization first
    from pathtracer.core.renderer import Renderer
    from pathtracer.output.export import save_image
    from pathtracer.scene.manager import Scene
    from pathtracer.scene.presets import (
        random_spheres_camera,
        random_spheres_scene,
        three_spheres_camera,
        three_spheres_scene,
    )

    if scene_name == "three":
        camera = three_spheres_camera(width, num_samples, max_bounces)
    else:
        camera = random_spheres_camera(width, num_samples, max_bounces)
    camera.aspect_ratio = aspect_ratio

    if scene_file is not None:
        scene = Scene.load(scene_file)
        label = str(scene_file)
    elif scene_name == "three":
        scene = three_spheres_scene()
        label = "three spheres"
    else:
        scene = random_spheres_scene(seed=seed)
        label = f"random spheres (seed {seed})"

    renderer = Renderer(camera)

    if not quiet:
        print(f"Scene: {label}, {len(scene)} spheres")
        print(f"Rendering {renderer.width}x{renderer.height} at {num_samples} samples per pixel...")

    start_time = time.time()

    def progress_callback(current: int, target: int) -> None:
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

    pixels = renderer.render(scene, batch_size=batch_size, callback=progress_callback)

    if not quiet:
        print()  # Newline after progress

    output_file = Path(output_path)
    save_image(pixels, output_file)

    total_time = time.time() - start_time
    if not quiet:
        print(f"Saved to: {output_file.absolute()}")
        print(f"Total time: {total_time:.2f}s")

    return output_file


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    logging.basicConfig(
        level=logging.WARNING if args.quiet else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    backend = init_taichi(args.arch, random_seed=args.seed)
    if not args.quiet:
        print(f"Using {backend.upper()} backend")

    try:
        render_spheres(
            scene_name=args.scene,
            scene_file=args.scene_file,
            width=args.width,
            aspect_ratio=args.aspect,
            num_samples=args.samples,
            max_bounces=args.bounces,
            seed=args.seed,
            output_path=args.output,
            batch_size=args.batch_size,
            quiet=args.quiet,
        )
        return 0
    except (ConfigurationError, ValueError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
