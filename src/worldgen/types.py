"""Core types for terrain and lake generation."""

from dataclasses import dataclass, field

import numpy as np
from numpy.typing import NDArray

# Fixed elevation scale
SEA_LEVEL = 20
MAX_ELEVATION = 100


@dataclass(frozen=True)
class Heightmap:
    """Integer elevation grid (0-100) with its sea level."""

    elevation: NDArray[np.uint8]  # shape (height, width)
    sea_level: int = SEA_LEVEL

    @property
    def width(self) -> int:
        return int(self.elevation.shape[1])

    @property
    def height(self) -> int:
        return int(self.elevation.shape[0])

    @property
    def land_mask(self) -> NDArray[np.bool_]:
        """Boolean mask where True = at or above sea level."""
        return self.elevation >= self.sea_level

    def land_fraction(self) -> float:
        """Fraction of cells at or above sea level."""
        return float(np.mean(self.land_mask))


@dataclass(frozen=True)
class Basin:
    """A closed depression traced from a seed up to its pour point."""

    seed: int
    pour_point: int
    pour_point_elevation: int
    tiles: list[int]  # flat indices, seed first


@dataclass(frozen=True)
class Spillway:
    """Outflow connecting a lake back into the river network."""

    lake_cell: tuple[int, int]  # (x, y) on the lake shore
    outflow_cell: tuple[int, int]  # (x, y) where a new river segment starts
    elevation: int  # pour point elevation


@dataclass
class Lake:
    """An accepted lake and the basin it filled."""

    lake_id: int
    seed: int
    seed_elevation: int
    tiles: list[int]  # flat indices
    level: int
    pour_point: int
    pour_point_elevation: int
    spillway: Spillway | None = None

    @property
    def size(self) -> int:
        return len(self.tiles)

    @property
    def depth(self) -> int:
        """Pour point height above the seed cell."""
        return self.pour_point_elevation - self.seed_elevation


@dataclass
class LakeResult:
    """Lake membership grid plus the lakes and spillways that produced it."""

    lake_map: NDArray[np.uint8]  # 1 = lake, shape (height, width)
    lakes: list[Lake] = field(default_factory=list)

    @property
    def lake_count(self) -> int:
        return len(self.lakes)

    @property
    def spillways(self) -> list[Spillway]:
        return [lake.spillway for lake in self.lakes if lake.spillway is not None]

    @classmethod
    def empty(cls, height: int, width: int) -> "LakeResult":
        return cls(lake_map=np.zeros((height, width), dtype=np.uint8))
