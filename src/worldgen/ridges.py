"""Mountain ridges: additive line-shaped elevation features."""

import math

import numpy as np
import structlog
from numpy.typing import NDArray

from .types import MAX_ELEVATION

logger = structlog.get_logger()


def _falloff_stamp(ridge_width: int, ridge_height: float) -> NDArray[np.float64]:
    """Elevation bonus for a (2w+1) x (2w+1) window centred on the ridge line."""
    offsets = np.arange(-ridge_width, ridge_width + 1, dtype=np.float64)
    dx, dy = np.meshgrid(offsets, offsets)
    distance = np.sqrt(dx * dx + dy * dy)
    falloff = np.maximum(0.0, 1.0 - distance / ridge_width)
    return ridge_height * falloff


def add_ridges(
    elevation: NDArray[np.uint8],
    rng: np.random.Generator,
    count: int = 3,
) -> NDArray[np.uint8]:
    """Stamp randomized ridge lines onto a heightmap.

    For each ridge the generator draws a start cell, direction, length,
    peak height and half-width. The line is walked in unit steps and every
    step adds a radially falling bonus around it, clamped at 100. Ridges
    never lower existing terrain.

    Args:
        elevation: Integer elevation grid.
        rng: Random number generator.
        count: Number of ridges.

    Returns:
        New elevation grid with ridges added.
    """
    height, width = elevation.shape
    result = elevation.astype(np.int32)

    for _ in range(count):
        start_x = math.floor(rng.random() * width)
        start_y = math.floor(rng.random() * height)
        angle = rng.random() * math.pi * 2

        length = math.floor(width * 0.3 + rng.random() * width * 0.4)
        ridge_height = 40 + rng.random() * 30
        ridge_width = 3 + math.floor(rng.random() * 5)

        stamp = _falloff_stamp(ridge_width, ridge_height)
        cos_a, sin_a = math.cos(angle), math.sin(angle)

        for step in range(length):
            x = math.floor(start_x + cos_a * step)
            y = math.floor(start_y + sin_a * step)
            if not (0 <= x < width and 0 <= y < height):
                continue

            # Clip the stamp window to the grid
            x0, x1 = max(0, x - ridge_width), min(width, x + ridge_width + 1)
            y0, y1 = max(0, y - ridge_width), min(height, y + ridge_width + 1)
            sx, sy = x - ridge_width, y - ridge_width
            window = stamp[y0 - sy : y1 - sy, x0 - sx : x1 - sx]
            region = result[y0:y1, x0:x1]
            result[y0:y1, x0:x1] = np.minimum(
                MAX_ELEVATION, np.floor(region + window)
            ).astype(np.int32)

        logger.debug(
            "ridge_added",
            start=(start_x, start_y),
            length=length,
            peak=round(ridge_height, 2),
            half_width=ridge_width,
        )

    return result.astype(np.uint8)
