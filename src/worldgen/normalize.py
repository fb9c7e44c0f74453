"""Elevation remapping: percentile sea level and two-piece linear remap."""

import numpy as np
import structlog
from numpy.typing import NDArray

from .exceptions import ConfigurationError
from .types import MAX_ELEVATION, SEA_LEVEL

logger = structlog.get_logger()


def compute_sea_level_value(
    raw: NDArray[np.float32],
    land_ratio: float,
) -> float:
    """Find the raw value that should land exactly on sea level.

    Args:
        raw: Raw field in [0, 1].
        land_ratio: Desired fraction of cells above water (0-1, exclusive).

    Returns:
        Raw value at sorted index floor((1 - land_ratio) * (N - 1)).
    """
    if not 0.0 < land_ratio < 1.0:
        raise ConfigurationError(f"land_ratio must be in (0, 1), got {land_ratio}")

    values = raw.ravel()
    index = int(np.floor((1.0 - land_ratio) * (values.size - 1)))
    # partition is enough, only the k-th order statistic matters
    return float(np.partition(values, index)[index])


def normalize_heightmap(
    raw: NDArray[np.float32],
    land_ratio: float,
    sea_level: int = SEA_LEVEL,
) -> NDArray[np.uint8]:
    """Remap a [0, 1] field to integer elevation hitting a target land ratio.

    Values at or below the sea level value map linearly onto
    [0, sea_level]; values above it map onto [sea_level, 100]. Using two
    pieces instead of one global rescale makes the land fraction independent
    of the noise distribution's shape.

    Args:
        raw: Raw field in [0, 1], shape (height, width).
        land_ratio: Target fraction of cells at or above sea level.
        sea_level: Elevation of the water line.

    Returns:
        uint8 elevation array in [0, 100].
    """
    sea_level_value = compute_sea_level_value(raw, land_ratio)
    values = raw.astype(np.float64)

    below = values <= sea_level_value
    if sea_level_value > 0:
        water = values / sea_level_value * sea_level
    else:
        water = np.zeros_like(values)

    land_range = 1.0 - sea_level_value
    if land_range > 0:
        land = sea_level + (values - sea_level_value) / land_range * (
            MAX_ELEVATION - sea_level
        )
    else:
        land = np.full_like(values, float(sea_level))

    remapped = np.where(below, water, land)
    elevation = np.clip(np.floor(remapped + 0.5), 0, MAX_ELEVATION)

    # Rounding must not lift a sub-threshold cell onto land
    strictly_below = values < sea_level_value
    elevation[strictly_below] = np.minimum(elevation[strictly_below], sea_level - 1)
    elevation = np.clip(elevation, 0, MAX_ELEVATION)

    logger.debug(
        "heightmap_normalized",
        sea_level_value=sea_level_value,
        land_ratio=land_ratio,
        land_fraction=float(np.mean(elevation >= sea_level)),
    )
    return elevation.astype(np.uint8)
