"""Main terrain generation orchestration."""

import numpy as np
import structlog
from numpy.typing import NDArray

from .config import TerrainConfig
from .events import EventSink
from .hydrology import generate_lakes
from .noise import fbm_noise
from .normalize import normalize_heightmap
from .ridges import add_ridges
from .rng import derive_seed, make_rng
from .smoothing import smooth_heightmap
from .types import SEA_LEVEL, Heightmap, LakeResult

logger = structlog.get_logger()


class GenerationResult:
    """Result of terrain generation: heightmap plus lakes."""

    def __init__(
        self,
        heightmap: Heightmap,
        lakes: LakeResult,
        config: TerrainConfig,
    ):
        self.heightmap = heightmap
        self.lakes = lakes
        self.config = config


def generate_heightmap(config: TerrainConfig) -> Heightmap:
    """Generate a heightmap from configuration.

    Stages: fBm noise, land-ratio normalization, box smoothing and,
    when enabled, ridge injection.

    Args:
        config: Terrain generation configuration.

    Returns:
        Heightmap with elevations in [0, 100].
    """
    width, height = config.width, config.height

    logger.info("heightmap_generating", width=width, height=height, seed=config.seed)

    raw = fbm_noise(
        width,
        height,
        derive_seed(config.seed, "noise"),
        octaves=config.noise.octaves,
        persistence=config.noise.persistence,
        lacunarity=config.noise.lacunarity,
    )

    elevation = normalize_heightmap(raw, config.heightmap.land_ratio, SEA_LEVEL)
    # Land fraction is exact here; smoothing and ridges move the coastline after
    elevation = smooth_heightmap(elevation, config.heightmap.smooth_iterations)

    if config.ridges.count > 0:
        elevation = add_ridges(
            elevation, make_rng(config.seed, "ridges"), config.ridges.count
        )

    heightmap = Heightmap(elevation=elevation, sea_level=SEA_LEVEL)
    logger.info("heightmap_generated", land_fraction=round(heightmap.land_fraction(), 4))
    return heightmap


def generate_terrain(
    config: TerrainConfig,
    river_mask: NDArray | None = None,
    on_event: EventSink | None = None,
) -> GenerationResult:
    """Generate the heightmap and, given a river mask, its lakes.

    Args:
        config: Terrain generation configuration.
        river_mask: Nonzero where rivers flow, shape (height, width). Without
            one no lake seeds exist and the lake grid is empty.
        on_event: Optional sink for lake generation events.

    Returns:
        GenerationResult with heightmap and lakes.
    """
    heightmap = generate_heightmap(config)

    if river_mask is None:
        lakes = LakeResult.empty(heightmap.height, heightmap.width)
    else:
        lakes = generate_lakes(heightmap, river_mask, config.lakes, on_event)

    _log_terrain_stats(heightmap, lakes)

    return GenerationResult(heightmap=heightmap, lakes=lakes, config=config)


def _log_terrain_stats(heightmap: Heightmap, lakes: LakeResult) -> None:
    """Log terrain generation statistics."""
    elevation = heightmap.elevation
    land = elevation >= heightmap.sea_level

    logger.info(
        "terrain_stats",
        tiles=int(elevation.size),
        land_fraction=round(float(np.mean(land)), 4),
        mean_land_elevation=round(float(elevation[land].mean()), 2) if land.any() else 0.0,
        max_elevation=int(elevation.max()),
        lake_count=lakes.lake_count,
        lake_tiles=int(lakes.lake_map.sum()),
        spillways=len(lakes.spillways),
    )
