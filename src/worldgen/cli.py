"""CLI entry point for terrain generation."""

import argparse
import logging
import sys
import time
from pathlib import Path

import numpy as np
import structlog
from pydantic import ValidationError

from .config import TerrainConfig, load_config
from .events import structlog_sink
from .exceptions import TerrainError
from .generator import generate_terrain
from .persistence import save_map
from .render import save_preview
from .validation import validate_terrain


def configure_logging(verbose: bool = False) -> None:
    """Configure structlog for console output."""
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.DEBUG if verbose else logging.INFO
        ),
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="worldgen",
        description="Generate a heightmap and river-fed lakes from a seed",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to terrain TOML config file",
    )
    parser.add_argument("--seed", type=str, default=None, help="World seed (overrides config)")
    parser.add_argument("--width", type=int, default=None, help="Map width in tiles")
    parser.add_argument("--height", type=int, default=None, help="Map height in tiles")
    parser.add_argument(
        "--land-ratio",
        type=float,
        default=None,
        help="Target fraction of cells above sea level",
    )
    parser.add_argument(
        "--ridges",
        type=int,
        default=None,
        help="Number of mountain ridges to add (0 = disabled)",
    )
    parser.add_argument(
        "--rivers",
        type=Path,
        default=None,
        help="River mask .npy file, shape (height, width); lakes are skipped without one",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=Path("world.npz"),
        help="Output map path (default: world.npz)",
    )
    parser.add_argument(
        "--preview",
        type=Path,
        default=None,
        help="Write a PNG preview to this path",
    )
    parser.add_argument("--verbose", action="store_true", help="Log debug events")
    return parser


def resolve_config(args: argparse.Namespace) -> TerrainConfig:
    """Load the base config and apply command-line overrides."""
    config = load_config(args.config) if args.config else TerrainConfig()
    data = config.model_dump()

    if args.seed is not None:
        data["seed"] = args.seed
    if args.width is not None:
        data["width"] = args.width
    if args.height is not None:
        data["height"] = args.height
    if args.land_ratio is not None:
        data["heightmap"]["land_ratio"] = args.land_ratio
    if args.ridges is not None:
        data["ridges"]["count"] = args.ridges

    return TerrainConfig.model_validate(data)


def main(argv: list[str] | None = None) -> int:
    """Generate a map and write it to disk.

    Returns:
        Process exit code: 0 on success, 1 if generation failed.
    """
    args = build_parser().parse_args(argv)

    configure_logging(args.verbose)
    logger = structlog.get_logger()

    try:
        config = resolve_config(args)
    except FileNotFoundError:
        logger.error("config_not_found", path=str(args.config))
        return 1
    except ValidationError as e:
        logger.error("config_invalid", errors=e.error_count(), detail=str(e))
        return 1

    river_mask = None
    if args.rivers is not None:
        if not args.rivers.exists():
            logger.error("river_mask_not_found", path=str(args.rivers))
            return 1
        river_mask = np.load(args.rivers)

    logger.info(
        "generation_starting",
        seed=config.seed,
        width=config.width,
        height=config.height,
    )

    start_time = time.time()
    try:
        result = generate_terrain(config, river_mask, on_event=structlog_sink(logger))
    except TerrainError as e:
        logger.error("generation_failed", error=str(e))
        return 1

    gen_time = time.time() - start_time

    validation = validate_terrain(result.heightmap, result.lakes, config)

    args.output.parent.mkdir(parents=True, exist_ok=True)
    save_map(args.output, result.heightmap, result.lakes, config)

    if args.preview is not None:
        args.preview.parent.mkdir(parents=True, exist_ok=True)
        save_preview(args.preview, result.heightmap, result.lakes, river_mask)

    print(f"Generation complete in {gen_time:.1f}s")
    print(f"Map: {args.output}")
    print(f"  Size: {config.width}x{config.height}, seed {config.seed!r}")
    print(f"  Land: {result.heightmap.land_fraction():.1%}")
    print(f"  Lakes: {result.lakes.lake_count}, spillways: {len(result.lakes.spillways)}")
    if not validation.passed:
        print(f"  Validation: {len(validation.errors)} errors")

    return 0


if __name__ == "__main__":
    sys.exit(main())
