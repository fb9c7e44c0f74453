"""Tests for lake generation."""

import numpy as np
import pytest

from worldgen.config import LakeConfig
from worldgen.events import EventRecorder
from worldgen.exceptions import ConfigurationError
from worldgen.grid import to_index
from worldgen.hydrology import (
    VisitMarks,
    build_spillway,
    fill_basin,
    find_depression_seeds,
    generate_lakes,
    trace_basin,
)
from worldgen.types import Heightmap

W = 50


def idx(x: int, y: int) -> int:
    return to_index(x, y, W)


class TestVisitMarks:
    """Tests for the stamped visited set."""

    def test_visit_once_per_trace(self) -> None:
        marks = VisitMarks(10)
        marks.reset()
        assert marks.visit(3)
        assert not marks.visit(3)

    def test_reset_clears_visits(self) -> None:
        marks = VisitMarks(10)
        marks.reset()
        marks.visit(3)
        marks.reset()
        assert marks.visit(3)


class TestFindDepressionSeeds:
    """Tests for depression seed detection."""

    def test_bowl_center_is_only_seed(self, bowl_heightmap, river_mask) -> None:
        seeds = find_depression_seeds(bowl_heightmap.elevation, river_mask, 20, 55)
        assert seeds == [idx(25, 25)]

    def test_requires_river(self, bowl_heightmap) -> None:
        """No river flow, no seeds."""
        no_rivers = np.zeros((W, W), dtype=np.uint8)
        assert find_depression_seeds(bowl_heightmap.elevation, no_rivers, 20, 55) == []

    def test_rejects_above_max_elevation(self, bowl_heightmap, river_mask) -> None:
        seeds = find_depression_seeds(bowl_heightmap.elevation, river_mask, 20, 29)
        assert seeds == []

    def test_rejects_below_sea_level(self, river_mask) -> None:
        elevation = np.full((W, W), 40, dtype=np.uint8)
        elevation[25, 25] = 10
        assert find_depression_seeds(elevation, river_mask, 20, 55) == []

    def test_rejects_ocean_neighbor(self, bowl_factory, river_mask) -> None:
        """A depression touching ocean drains to sea."""
        elevation = bowl_factory()
        elevation[24, 25] = 5
        assert find_depression_seeds(elevation, river_mask, 20, 55) == []

    def test_rejects_cell_with_lower_neighbor(self, river_mask) -> None:
        elevation = np.full((W, W), 40, dtype=np.uint8)
        elevation[25, 25] = 30
        elevation[25, 26] = 29
        assert idx(25, 25) not in find_depression_seeds(elevation, river_mask, 20, 55)

    def test_requires_mostly_higher_neighbors(self, river_mask) -> None:
        """Fewer than 75% strictly higher neighbours is not a depression."""
        elevation = np.full((W, W), 40, dtype=np.uint8)
        # Trough along a row plus a northern notch: 3 of 8 neighbours are level
        elevation[25, 23:28] = 30
        elevation[24, 25] = 30
        assert find_depression_seeds(elevation, river_mask, 20, 55) == []

    def test_exactly_75_percent_qualifies(self, river_mask) -> None:
        elevation = np.full((W, W), 40, dtype=np.uint8)
        elevation[25, 25] = 30
        elevation[25, 24] = 30  # W neighbour level
        elevation[25, 26] = 30  # E neighbour level
        # 6 of 8 higher
        assert idx(25, 25) in find_depression_seeds(elevation, river_mask, 20, 55)

    def test_corner_cell_uses_in_bounds_neighbors(self) -> None:
        elevation = np.full((W, W), 40, dtype=np.uint8)
        elevation[0, 0] = 30
        rivers = np.zeros((W, W), dtype=np.uint8)
        rivers[0, 0] = 1
        assert find_depression_seeds(elevation, rivers, 20, 55) == [0]


class TestTraceBasin:
    """Tests for pour point tracing."""

    def _trace(self, elevation: np.ndarray, seed: int, events=None):
        flat = elevation.ravel()
        return trace_basin(
            seed,
            flat,
            W,
            W,
            20,
            np.zeros(flat.size, dtype=bool),
            VisitMarks(flat.size),
            180,
            events,
        )

    def test_finds_notch_as_pour_point(self, bowl_heightmap) -> None:
        basin = self._trace(bowl_heightmap.elevation, idx(25, 25))
        assert basin is not None
        assert basin.pour_point == idx(28, 25)
        assert basin.pour_point_elevation == 36

    def test_basin_tiles_are_bowl_floor(self, bowl_heightmap) -> None:
        basin = self._trace(bowl_heightmap.elevation, idx(25, 25))
        assert basin.tiles[0] == idx(25, 25)
        assert len(basin.tiles) == 25

    def test_ocean_inside_basin_rejects(self, bowl_factory) -> None:
        elevation = bowl_factory()
        elevation[25, 27] = 10
        events = EventRecorder()
        assert self._trace(elevation, idx(25, 25), events) is None
        rejected = events.named("basin_rejected")
        assert rejected[0].data["reason"] == "drains_to_ocean"

    def test_no_rim_rejects(self) -> None:
        """A flat plain has no rim to pour over."""
        elevation = np.full((W, W), 30, dtype=np.uint8)
        events = EventRecorder()
        assert self._trace(elevation, idx(25, 25), events) is None
        assert events.named("basin_rejected")[0].data["reason"] == "no_rim"

    def test_first_lowest_rim_cell_wins(self, bowl_factory) -> None:
        """Ties keep the rim cell discovered first."""
        elevation = bowl_factory(notch=40)
        basin = self._trace(elevation, idx(25, 25))
        assert basin.pour_point_elevation == 40
        # BFS from the seed reaches the north rim first
        assert basin.pour_point == idx(25, 22)

    def test_skips_processed_cells(self, bowl_heightmap) -> None:
        flat = bowl_heightmap.elevation.ravel()
        processed = np.zeros(flat.size, dtype=bool)
        processed[idx(24, 25)] = True
        basin = trace_basin(
            idx(25, 25), flat, W, W, 20, processed, VisitMarks(flat.size), 180
        )
        assert idx(24, 25) not in basin.tiles


class TestFillBasin:
    """Tests for flood filling to lake level."""

    def test_fills_bowl_below_level(self, bowl_heightmap) -> None:
        flat = bowl_heightmap.elevation.ravel()
        tiles = fill_basin(
            idx(25, 25),
            35,
            flat,
            W,
            W,
            20,
            np.zeros(flat.size, dtype=bool),
            VisitMarks(flat.size),
            61,
        )
        assert len(tiles) == 25
        assert tiles[0] == idx(25, 25)
        assert idx(28, 25) not in tiles

    def test_respects_tile_cap(self, bowl_heightmap) -> None:
        flat = bowl_heightmap.elevation.ravel()
        tiles = fill_basin(
            idx(25, 25),
            35,
            flat,
            W,
            W,
            20,
            np.zeros(flat.size, dtype=bool),
            VisitMarks(flat.size),
            10,
        )
        assert len(tiles) == 10

    def test_level_at_seed_fills_only_seed_height(self, bowl_heightmap) -> None:
        flat = bowl_heightmap.elevation.ravel()
        tiles = fill_basin(
            idx(25, 25),
            30,
            flat,
            W,
            W,
            20,
            np.zeros(flat.size, dtype=bool),
            VisitMarks(flat.size),
            61,
        )
        assert tiles == [idx(25, 25)]


class TestBuildSpillway:
    """Tests for spillway placement."""

    def test_spillway_through_notch(self, bowl_heightmap) -> None:
        flat = bowl_heightmap.elevation.ravel()
        lake_tiles = {
            idx(x, y) for y in range(23, 28) for x in range(23, 28)
        }
        lake_map = np.zeros(flat.size, dtype=np.uint8)
        lake_map[list(lake_tiles)] = 1

        spillway = build_spillway(idx(28, 25), lake_tiles, lake_map, flat, W, W, 20)

        assert spillway is not None
        assert spillway.lake_cell == (27, 25)
        assert spillway.outflow_cell == (29, 25)
        assert spillway.elevation == 36

    def test_no_lower_outflow(self, bowl_factory) -> None:
        """Outflow must be strictly below the pour point."""
        elevation = bowl_factory(channel=40)
        flat = elevation.ravel()
        lake_tiles = {
            idx(x, y) for y in range(23, 28) for x in range(23, 28)
        }
        lake_map = np.zeros(flat.size, dtype=np.uint8)
        lake_map[list(lake_tiles)] = 1

        assert build_spillway(idx(28, 25), lake_tiles, lake_map, flat, W, W, 20) is None

    def test_pour_point_not_adjacent_to_lake(self, bowl_heightmap) -> None:
        flat = bowl_heightmap.elevation.ravel()
        lake_map = np.zeros(flat.size, dtype=np.uint8)
        assert build_spillway(idx(40, 40), {idx(25, 25)}, lake_map, flat, W, W, 20) is None


class TestGenerateLakes:
    """Tests for the full lake stage."""

    def test_bowl_produces_one_lake(self, bowl_heightmap, river_mask) -> None:
        result = generate_lakes(bowl_heightmap, river_mask)

        assert result.lake_count == 1
        lake = result.lakes[0]
        assert lake.lake_id == 1
        assert lake.size == 25
        assert lake.level == 35
        assert lake.pour_point_elevation == 36
        assert lake.depth == 6
        assert result.lake_map[25, 25] == 1
        assert int(result.lake_map.sum()) == 25

    def test_lake_map_shape_and_dtype(self, bowl_heightmap, river_mask) -> None:
        result = generate_lakes(bowl_heightmap, river_mask)
        assert result.lake_map.shape == (W, W)
        assert result.lake_map.dtype == np.uint8

    def test_bowl_spillway(self, bowl_heightmap, river_mask) -> None:
        result = generate_lakes(bowl_heightmap, river_mask)

        assert len(result.spillways) == 1
        spillway = result.spillways[0]
        assert spillway.lake_cell == (27, 25)
        assert spillway.outflow_cell == (29, 25)
        assert spillway.elevation == 36

        ox, oy = spillway.outflow_cell
        assert result.lake_map[oy, ox] == 0
        assert bowl_heightmap.elevation[oy, ox] < spillway.elevation
        assert bowl_heightmap.elevation[oy, ox] < result.lakes[0].level

    def test_lake_tiles_within_level(self, bowl_heightmap, river_mask) -> None:
        result = generate_lakes(bowl_heightmap, river_mask)
        lake_elev = bowl_heightmap.elevation[result.lake_map == 1]
        assert lake_elev.min() >= 20
        assert lake_elev.max() <= result.lakes[0].level

    def test_ocean_in_bowl_no_lake(self, bowl_factory, river_mask) -> None:
        elevation = bowl_factory()
        elevation[25, 27] = 10
        events = EventRecorder()

        result = generate_lakes(Heightmap(elevation=elevation), river_mask, on_event=events)

        assert result.lake_count == 0
        assert not result.lake_map.any()
        reasons = [e.data["reason"] for e in events.named("basin_rejected")]
        assert "drains_to_ocean" in reasons

    def test_shallow_bowl_rejected(self, bowl_factory, river_mask) -> None:
        """Pour point 3 above the seed is below min_depth 4."""
        elevation = bowl_factory(notch=33, channel=32)
        events = EventRecorder()

        result = generate_lakes(Heightmap(elevation=elevation), river_mask, on_event=events)

        assert result.lake_count == 0
        rejected = events.named("basin_rejected")
        assert rejected[0].data["reason"] == "too_shallow"
        assert rejected[0].data["depth"] == 3

    def test_too_small_rejected(self, bowl_heightmap, river_mask) -> None:
        config = LakeConfig(min_lake_size=30, max_lake_size=60)
        events = EventRecorder()
        result = generate_lakes(bowl_heightmap, river_mask, config, events)
        assert result.lake_count == 0
        assert events.named("basin_rejected")[0].data["reason"] == "too_small"

    def test_too_large_rejected(self, bowl_heightmap, river_mask) -> None:
        config = LakeConfig(min_lake_size=6, max_lake_size=20)
        events = EventRecorder()
        result = generate_lakes(bowl_heightmap, river_mask, config, events)
        assert result.lake_count == 0
        rejected = events.named("basin_rejected")[0]
        assert rejected.data["reason"] == "too_large"
        assert rejected.data["size"] == 21

    def test_fill_depth_caps_level(self, bowl_heightmap, river_mask) -> None:
        """Lake level is at most seed + max_fill_depth."""
        config = LakeConfig(max_fill_depth=0, min_lake_size=1)
        result = generate_lakes(bowl_heightmap, river_mask, config)
        assert result.lake_count == 1
        assert result.lakes[0].level == 30
        assert result.lakes[0].size == 1

    def test_missing_spillway_keeps_lake(self, bowl_factory, river_mask) -> None:
        elevation = bowl_factory(channel=40)
        events = EventRecorder()

        result = generate_lakes(Heightmap(elevation=elevation), river_mask, on_event=events)

        assert result.lake_count == 1
        assert result.lakes[0].spillway is None
        assert result.spillways == []
        assert len(events.named("spillway_missing")) == 1

    def test_events_reported(self, bowl_heightmap, river_mask) -> None:
        events = EventRecorder()
        generate_lakes(bowl_heightmap, river_mask, on_event=events)

        assert events.named("seeds_found")[0].data["count"] == 1
        accepted = events.named("lake_accepted")
        assert len(accepted) == 1
        assert accepted[0].data == {"lake_id": 1, "size": 25, "depth": 6, "level": 35}

    def test_two_bowls_two_lakes(self, river_mask) -> None:
        """Separate depressions become separate, sequentially numbered lakes."""
        elevation = np.full((W, W), 40, dtype=np.uint8)
        for cx, seed_elev in ((10, 25), (35, 30)):
            elevation[cx - 2 : cx + 3, cx - 2 : cx + 3] = seed_elev + 1
            elevation[cx, cx] = seed_elev
            elevation[cx, cx + 3] = seed_elev + 6
            elevation[cx, cx + 4] = seed_elev + 4

        result = generate_lakes(Heightmap(elevation=elevation), river_mask)

        assert result.lake_count == 2
        # Lowest seed first
        assert result.lakes[0].seed == idx(10, 10)
        assert [lake.lake_id for lake in result.lakes] == [1, 2]
        assert set(result.lakes[0].tiles).isdisjoint(result.lakes[1].tiles)

    def test_outflow_reserved_from_later_lakes(self) -> None:
        """A later lake never floods an earlier lake's outflow cell.

        Bowl A (seed 25, floor 26) spills through a notch at (18, 25) into
        bowl B (seed 27, floor 28) directly to the east. B's level of 30 would
        cover A's outflow at (19, 24) if it were not reserved.
        """
        elevation = np.full((W, W), 40, dtype=np.uint8)
        elevation[23:28, 13:18] = 26
        elevation[25, 15] = 25
        elevation[25, 18] = 31
        elevation[23:28, 19:24] = 28
        elevation[25, 21] = 27
        rivers = np.zeros((W, W), dtype=np.uint8)
        rivers[25, 15] = 1
        rivers[25, 21] = 1

        result = generate_lakes(Heightmap(elevation=elevation), rivers)

        assert result.lake_count == 2
        first, second = result.lakes
        assert first.seed == idx(15, 25)
        assert first.spillway.outflow_cell == (19, 24)
        assert result.lake_map[24, 19] == 0
        assert idx(19, 24) not in second.tiles
        assert second.level == 30
        assert second.size == 24

    def test_no_rivers_no_lakes(self, bowl_heightmap) -> None:
        result = generate_lakes(bowl_heightmap, np.zeros((W, W), dtype=np.uint8))
        assert result.lake_count == 0
        assert result.lake_map.shape == (W, W)

    def test_deterministic(self, bowl_heightmap, river_mask) -> None:
        a = generate_lakes(bowl_heightmap, river_mask)
        b = generate_lakes(bowl_heightmap, river_mask)
        np.testing.assert_array_equal(a.lake_map, b.lake_map)
        assert a.lakes == b.lakes

    def test_shape_mismatch_raises(self, bowl_heightmap) -> None:
        with pytest.raises(ConfigurationError):
            generate_lakes(bowl_heightmap, np.zeros((10, 10), dtype=np.uint8))

    def test_does_not_modify_input(self, bowl_heightmap, river_mask) -> None:
        before = bowl_heightmap.elevation.copy()
        generate_lakes(bowl_heightmap, river_mask)
        np.testing.assert_array_equal(bowl_heightmap.elevation, before)
