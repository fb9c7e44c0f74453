"""Hydrology: depression seeds, pour-point basin tracing, lake filling, spillways.

Lakes form where a river runs into a closed depression. Each candidate basin
is traced outward to its lowest rim cell (the pour point), filled to just
below it, and reconnected to the terrain through a spillway where a new river
segment can start.
"""

from collections import deque

import numpy as np
import structlog
from numpy.typing import NDArray

from .config import LakeConfig
from .events import EventSink, emit
from .exceptions import ConfigurationError
from .grid import NEIGHBORS_4, NEIGHBORS_8, from_index, neighbors, to_index
from .types import Basin, Heightmap, Lake, LakeResult, Spillway

logger = structlog.get_logger()

# Fraction of in-bounds neighbours that must be strictly higher than a seed
DEPRESSION_THRESHOLD = 0.75


class VisitMarks:
    """Visited set for one trace at a time, backed by a stamped array.

    ``reset`` starts a new trace by bumping the stamp, so a single buffer
    serves every trace of a generation call without clearing.
    """

    def __init__(self, size: int) -> None:
        self._marks = np.zeros(size, dtype=np.uint32)
        self._stamp = 0

    def reset(self) -> None:
        self._stamp += 1

    def visit(self, index: int) -> bool:
        """Mark a cell. Returns False if it was already marked this trace."""
        if self._marks[index] == self._stamp:
            return False
        self._marks[index] = self._stamp
        return True


def find_depression_seeds(
    elevation: NDArray[np.uint8],
    river_mask: NDArray,
    sea_level: int,
    max_lake_elevation: int,
) -> list[int]:
    """Find river cells sitting at the bottom of a true depression.

    A cell qualifies when it carries river flow, lies between sea level and
    ``max_lake_elevation``, has no lower 8-neighbour, touches no below-sea
    cell, and at least 75% of its in-bounds 8-neighbours are strictly higher.
    The 75% rule keeps shallow dips along a river's downhill path from
    flooding.

    Args:
        elevation: Elevation grid, shape (height, width).
        river_mask: Nonzero where a river flows, same shape.
        sea_level: Water line elevation.
        max_lake_elevation: Highest elevation a lake may start at.

    Returns:
        Flat indices of seed cells in row-major scan order.
    """
    height, width = elevation.shape
    flat = elevation.ravel()

    candidates = (
        (river_mask != 0)
        & (elevation >= sea_level)
        & (elevation <= max_lake_elevation)
    )

    seeds: list[int] = []
    for idx in np.flatnonzero(candidates):
        idx = int(idx)
        elev = int(flat[idx])

        neighbor_count = 0
        higher = 0
        is_local_min = True
        near_ocean = False

        for n in neighbors(idx, width, height, NEIGHBORS_8):
            n_elev = int(flat[n])
            neighbor_count += 1
            if n_elev < sea_level:
                near_ocean = True
                break
            if n_elev < elev:
                is_local_min = False
            elif n_elev > elev:
                higher += 1

        # Adjacent to ocean: it drains to sea
        if near_ocean or not is_local_min or neighbor_count == 0:
            continue
        if higher >= neighbor_count * DEPRESSION_THRESHOLD:
            seeds.append(idx)

    return seeds


def trace_basin(
    seed: int,
    elevation: NDArray[np.uint8],
    width: int,
    height: int,
    sea_level: int,
    processed: NDArray[np.bool_],
    marks: VisitMarks,
    search_limit: int,
    on_event: EventSink | None = None,
) -> Basin | None:
    """Expand a basin breadth-first from a seed to find its pour point.

    Cells no higher than ``seed + 1`` are basin interior and keep expanding.
    Higher neighbours form the rim; the first lowest rim cell found is the
    pour point. Touching a below-sea cell means the basin is open to the
    ocean and disqualifies it.

    Args:
        seed: Flat index of the seed cell.
        elevation: Flat elevation array.
        width: Grid width.
        height: Grid height.
        sea_level: Water line elevation.
        processed: Flat markers of cells claimed by earlier basins.
        marks: Visit marks reused across traces.
        search_limit: Maximum number of basin tiles to record.
        on_event: Optional event sink.

    Returns:
        The traced Basin, or None when no closed basin exists.
    """
    seed_elev = int(elevation[seed])
    marks.reset()
    marks.visit(seed)

    queue: deque[int] = deque([seed])
    tiles: list[int] = []
    pour_point = -1
    pour_elev = 0

    while queue and len(tiles) < search_limit:
        idx = queue.popleft()
        if int(elevation[idx]) < sea_level:
            emit(on_event, "basin_rejected", seed=seed, reason="drains_to_ocean")
            return None

        # Claimed by another lake
        if processed[idx]:
            continue

        tiles.append(idx)

        for n in neighbors(idx, width, height, NEIGHBORS_4):
            if not marks.visit(n):
                continue

            n_elev = int(elevation[n])
            if n_elev < sea_level:
                emit(on_event, "basin_rejected", seed=seed, reason="drains_to_ocean")
                return None

            if n_elev > seed_elev + 1:
                # Rim candidate
                if pour_point == -1 or n_elev < pour_elev:
                    pour_point = n
                    pour_elev = n_elev
            else:
                queue.append(n)

    if pour_point == -1 or pour_elev <= seed_elev:
        emit(on_event, "basin_rejected", seed=seed, reason="no_rim")
        return None

    return Basin(
        seed=seed,
        pour_point=pour_point,
        pour_point_elevation=pour_elev,
        tiles=tiles,
    )


def fill_basin(
    seed: int,
    lake_level: int,
    elevation: NDArray[np.uint8],
    width: int,
    height: int,
    sea_level: int,
    processed: NDArray[np.bool_],
    marks: VisitMarks,
    max_tiles: int,
) -> list[int]:
    """Flood a basin from its seed up to the lake level.

    Args:
        seed: Flat index of the seed cell.
        lake_level: Highest elevation that floods.
        elevation: Flat elevation array.
        width: Grid width.
        height: Grid height.
        sea_level: Water line elevation; lower cells never flood.
        processed: Flat markers of cells claimed by earlier basins.
        marks: Visit marks reused across traces.
        max_tiles: Stop once this many tiles have flooded.

    Returns:
        Flat indices of flooded tiles, seed first.
    """
    marks.reset()
    marks.visit(seed)

    queue: deque[int] = deque([seed])
    tiles: list[int] = []

    while queue and len(tiles) < max_tiles:
        idx = queue.popleft()
        elev = int(elevation[idx])

        if elev > lake_level or elev < sea_level:
            continue
        if processed[idx]:
            continue

        tiles.append(idx)

        for n in neighbors(idx, width, height, NEIGHBORS_4):
            if marks.visit(n):
                queue.append(n)

    return tiles


def build_spillway(
    pour_point: int,
    lake_tiles: set[int],
    lake_map: NDArray[np.uint8],
    elevation: NDArray[np.uint8],
    width: int,
    height: int,
    sea_level: int,
) -> Spillway | None:
    """Locate where a lake overflows back into the terrain.

    The lake side of the spillway is the lake tile 4-adjacent to the pour
    point. The outflow is the lowest 8-neighbour of the pour point that is
    strictly below it and is neither lake nor ocean.

    Args:
        pour_point: Flat index of the basin's pour point.
        lake_tiles: Tiles of the lake being connected.
        lake_map: Flat lake membership of all lakes so far.
        elevation: Flat elevation array.
        width: Grid width.
        height: Grid height.
        sea_level: Water line elevation.

    Returns:
        Spillway, or None if either end cannot be found.
    """
    lake_cell = -1
    for n in neighbors(pour_point, width, height, NEIGHBORS_4):
        if n in lake_tiles:
            lake_cell = n
            break

    if lake_cell == -1:
        return None

    pour_elev = int(elevation[pour_point])
    outflow = -1
    lowest = pour_elev

    for n in neighbors(pour_point, width, height, NEIGHBORS_8):
        if n in lake_tiles or lake_map[n]:
            continue
        n_elev = int(elevation[n])
        # Ocean outflow: the lake would already drain there
        if n_elev < sea_level:
            continue
        if n_elev < lowest:
            lowest = n_elev
            outflow = n

    if outflow == -1:
        return None

    return Spillway(
        lake_cell=from_index(lake_cell, width),
        outflow_cell=from_index(outflow, width),
        elevation=pour_elev,
    )


def generate_lakes(
    heightmap: Heightmap,
    river_mask: NDArray,
    config: LakeConfig | None = None,
    on_event: EventSink | None = None,
) -> LakeResult:
    """Generate lakes by filling closed depressions along rivers.

    Seeds are processed lowest first so a shallow seed cannot claim tiles
    belonging to a deeper neighbouring basin. Every rejected candidate is a
    normal outcome reported through ``on_event``.

    Args:
        heightmap: Finished heightmap.
        river_mask: Nonzero where rivers flow, same shape as the heightmap.
        config: Lake parameters.
        on_event: Optional event sink.

    Returns:
        LakeResult with the lake grid, lakes and spillways.

    Raises:
        ConfigurationError: If the river mask shape does not match.
    """
    if config is None:
        config = LakeConfig()

    if river_mask.shape != heightmap.elevation.shape:
        raise ConfigurationError(
            f"river mask shape {river_mask.shape} does not match "
            f"heightmap shape {heightmap.elevation.shape}"
        )

    height, width = heightmap.elevation.shape
    size = width * height
    sea_level = config.sea_level
    elevation = heightmap.elevation.ravel()

    lake_map = np.zeros(size, dtype=np.uint8)
    processed = np.zeros(size, dtype=bool)
    marks = VisitMarks(size)

    seeds = find_depression_seeds(
        heightmap.elevation, river_mask, sea_level, config.max_lake_elevation
    )
    emit(on_event, "seeds_found", count=len(seeds))

    # Deepest depressions first
    seeds.sort(key=lambda idx: (int(elevation[idx]), idx))

    lakes: list[Lake] = []

    for seed in seeds:
        if processed[seed]:
            continue

        seed_elev = int(elevation[seed])
        basin = trace_basin(
            seed,
            elevation,
            width,
            height,
            sea_level,
            processed,
            marks,
            config.search_limit,
            on_event,
        )
        if basin is None:
            continue

        depth = basin.pour_point_elevation - seed_elev
        if depth < config.min_depth:
            processed[basin.tiles] = True
            emit(on_event, "basin_rejected", seed=seed, reason="too_shallow", depth=depth)
            continue

        lake_level = min(
            basin.pour_point_elevation - 1, seed_elev + config.max_fill_depth
        )

        # One tile past the cap tells an oversized basin from a full one
        tiles = fill_basin(
            seed,
            lake_level,
            elevation,
            width,
            height,
            sea_level,
            processed,
            marks,
            config.max_lake_size + 1,
        )

        if not config.min_lake_size <= len(tiles) <= config.max_lake_size:
            processed[basin.tiles] = True
            reason = "too_small" if len(tiles) < config.min_lake_size else "too_large"
            emit(on_event, "basin_rejected", seed=seed, reason=reason, size=len(tiles))
            continue

        lake_map[tiles] = 1
        processed[tiles] = True

        lake = Lake(
            lake_id=len(lakes) + 1,
            seed=seed,
            seed_elevation=seed_elev,
            tiles=tiles,
            level=lake_level,
            pour_point=basin.pour_point,
            pour_point_elevation=basin.pour_point_elevation,
        )

        lake.spillway = build_spillway(
            basin.pour_point,
            set(tiles),
            lake_map,
            elevation,
            width,
            height,
            sea_level,
        )
        if lake.spillway is None:
            emit(on_event, "spillway_missing", lake_id=lake.lake_id)
        else:
            # Reserve the river start so later lakes cannot flood it
            processed[to_index(*lake.spillway.outflow_cell, width)] = True

        lakes.append(lake)
        emit(
            on_event,
            "lake_accepted",
            lake_id=lake.lake_id,
            size=lake.size,
            depth=lake.depth,
            level=lake_level,
        )

    logger.debug("lakes_generated", seeds=len(seeds), lakes=len(lakes))
    return LakeResult(lake_map=lake_map.reshape(height, width), lakes=lakes)
