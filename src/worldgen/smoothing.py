"""Heightmap smoothing with a 3x3 box filter."""

import numpy as np
from numpy.typing import NDArray
from scipy import ndimage

from .exceptions import ConfigurationError

BOX_KERNEL = np.ones((3, 3), dtype=np.int32)


def smooth_heightmap(
    elevation: NDArray[np.uint8],
    iterations: int = 2,
) -> NDArray[np.uint8]:
    """Apply a 3x3 box average to interior cells.

    Each pass reads a snapshot of the previous pass, so there is no
    directional bias. Border cells keep their values.

    Args:
        elevation: Integer elevation grid.
        iterations: Number of smoothing passes (0 returns a copy).

    Returns:
        Smoothed elevation grid, same dtype and shape.
    """
    if iterations < 0:
        raise ConfigurationError(f"iterations must be >= 0, got {iterations}")

    result = elevation.copy()
    height, width = result.shape
    if height < 3 or width < 3:
        return result

    for _ in range(iterations):
        snapshot = result.astype(np.int32)
        sums = ndimage.convolve(snapshot, BOX_KERNEL, mode="constant", cval=0)
        # Round to nearest: sum / 9 is never exactly half way
        averaged = (sums + 4) // 9

        result = snapshot.copy()
        result[1:-1, 1:-1] = averaged[1:-1, 1:-1]
        result = result.astype(elevation.dtype)

    return result
