"""Shared test fixtures for terrain tests."""

import numpy as np
import pytest
from numpy.typing import NDArray

from worldgen.config import TerrainConfig
from worldgen.types import Heightmap

BOWL_CENTER = (25, 25)


def stamp_bowl(
    elevation: NDArray[np.uint8],
    center: tuple[int, int] = BOWL_CENTER,
    notch: int = 36,
    channel: int = 34,
) -> NDArray[np.uint8]:
    """Cut a square bowl into a grid, in place.

    Chebyshev distance d from the center:
        d = 0      -> 30 (seed)
        d = 1..2   -> 31 (basin floor, 25 tiles in total)
        d = 3..4   -> 40 (rim), except the notch 3 cells east of the center
    One cell east of the notch is a lower channel cell where the lake
    spills out. Everything within d = 4 is overwritten, so the bowl holds
    water whatever terrain surrounds it.
    """
    cx, cy = center
    elevation[cy - 4 : cy + 5, cx - 4 : cx + 5] = 40
    elevation[cy - 2 : cy + 3, cx - 2 : cx + 3] = 31
    elevation[cy, cx] = 30
    elevation[cy, cx + 3] = notch
    elevation[cy, cx + 4] = channel
    return elevation


def make_bowl(size: int = 50, notch: int = 36, channel: int = 34) -> NDArray[np.uint8]:
    """Plateau at 40 with a bowl at (25, 25), notch (28, 25), channel (29, 25)."""
    elevation = np.full((size, size), 40, dtype=np.uint8)
    return stamp_bowl(elevation, BOWL_CENTER, notch, channel)


def diagonal_rivers(size: int = 50) -> NDArray[np.uint8]:
    """River mask along the main diagonal, passing through the bowl seed."""
    return np.eye(size, dtype=np.uint8)


@pytest.fixture
def bowl_factory():
    """Build bowl elevation grids with a custom notch or channel."""
    return make_bowl


@pytest.fixture
def bowl_heightmap() -> Heightmap:
    """50x50 plateau with one river-fed bowl that spills east."""
    return Heightmap(elevation=make_bowl())


@pytest.fixture
def river_mask() -> NDArray[np.uint8]:
    """Diagonal river mask for the 50x50 fixtures."""
    return diagonal_rivers()


@pytest.fixture
def small_config() -> TerrainConfig:
    """Small map config for fast end-to-end runs."""
    return TerrainConfig(seed="test-seed", width=64, height=48)


@pytest.fixture
def bowl_stamper():
    """Cut bowls into existing elevation grids."""
    return stamp_bowl
