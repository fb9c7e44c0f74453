"""Noise generation for terrain.

Provides seeded multi-octave (fBm) OpenSimplex noise sampled over a grid.
"""

import numpy as np
import structlog
from numpy.typing import NDArray
from opensimplex import OpenSimplex

from .exceptions import ConfigurationError

logger = structlog.get_logger()


def fbm_noise(
    width: int,
    height: int,
    seed: int,
    octaves: int = 6,
    persistence: float = 0.5,
    lacunarity: float = 2.0,
) -> NDArray[np.float32]:
    """Generate fractal Brownian motion noise normalized to [0, 1].

    Octave ``o`` samples the noise at grid coordinates scaled by
    ``lacunarity**o`` and weights it by ``persistence**o``. The grid spans
    one noise unit at the base octave, so the base octave sets continent-scale
    shapes and later octaves add detail.

    Every sample is a pure function of (seed, coordinate).

    Args:
        width: Output width in tiles.
        height: Output height in tiles.
        seed: Integer noise seed.
        octaves: Number of noise layers to sum.
        persistence: Amplitude multiplier between octaves.
        lacunarity: Frequency multiplier between octaves.

    Returns:
        2D array of shape (height, width) with values in [0, 1].

    Raises:
        ConfigurationError: If width, height or octaves is not positive.
    """
    if width <= 0 or height <= 0:
        raise ConfigurationError(
            f"width and height must be positive, got {width}x{height}"
        )
    if octaves <= 0:
        raise ConfigurationError(f"octaves must be positive, got {octaves}")

    simplex = OpenSimplex(seed=seed)
    result = np.zeros((height, width), dtype=np.float64)

    xs = np.arange(width, dtype=np.float64) / width
    ys = np.arange(height, dtype=np.float64) / height
    max_amplitude = 0.0

    for octave in range(octaves):
        frequency = lacunarity**octave
        amplitude = persistence**octave
        # noise2array returns shape (len(ys), len(xs))
        result += amplitude * simplex.noise2array(xs * frequency, ys * frequency)
        max_amplitude += amplitude

    # Noise is in [-max_amplitude, max_amplitude]
    result = (result + max_amplitude) / (2.0 * max_amplitude)

    logger.debug(
        "noise_generated",
        width=width,
        height=height,
        octaves=octaves,
        max_amplitude=max_amplitude,
    )
    return np.clip(result, 0.0, 1.0).astype(np.float32)
