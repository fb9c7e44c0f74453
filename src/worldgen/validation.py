"""Post-generation validation of heightmaps and lakes."""

import numpy as np
import structlog
from scipy import ndimage

from .config import TerrainConfig
from .grid import to_index
from .types import MAX_ELEVATION, Heightmap, LakeResult

logger = structlog.get_logger()

LAND_FRACTION_TOLERANCE = 0.08


class ValidationResult:
    """Result of terrain validation."""

    def __init__(self) -> None:
        self.errors: list[str] = []
        self.warnings: list[str] = []
        self.passed = True

    def add_error(self, message: str) -> None:
        """Add validation error."""
        self.errors.append(message)
        self.passed = False

    def add_warning(self, message: str) -> None:
        """Add validation warning."""
        self.warnings.append(message)


def validate_terrain(
    heightmap: Heightmap,
    lakes: LakeResult,
    config: TerrainConfig,
) -> ValidationResult:
    """Validate generated terrain against its invariants.

    Args:
        heightmap: Generated heightmap.
        lakes: Generated lakes.
        config: Generation configuration.

    Returns:
        ValidationResult with any errors/warnings.
    """
    result = ValidationResult()

    # Check 1: Elevation range
    _check_elevation_bounds(heightmap, result)

    # Check 2: Land fraction near target
    _check_land_fraction(heightmap, config.heightmap.land_ratio, result)

    # Check 3: Lake tiles, sizes and levels
    _check_lakes(heightmap, lakes, config, result)

    # Check 4: Spillways lead out of the lake onto dry land
    _check_spillways(heightmap, lakes, result)

    # Check 5: Touching lakes
    _check_lake_components(lakes, result)

    if result.passed:
        logger.info("terrain_validation_passed", warnings=len(result.warnings))
    else:
        logger.warning("terrain_validation_failed", errors=len(result.errors))
        for error in result.errors:
            logger.error("terrain_validation_error", message=error)

    for warning in result.warnings:
        logger.warning("terrain_validation_warning", message=warning)

    return result


def _check_elevation_bounds(heightmap: Heightmap, result: ValidationResult) -> None:
    """Check every cell is within [0, 100]."""
    out_of_range = int(np.sum(heightmap.elevation > MAX_ELEVATION))
    if out_of_range > 0:
        result.add_error(f"{out_of_range} cells above elevation {MAX_ELEVATION}")


def _check_land_fraction(
    heightmap: Heightmap,
    target_fraction: float,
    result: ValidationResult,
) -> None:
    """Check land fraction is reasonable."""
    actual_fraction = heightmap.land_fraction()
    if abs(actual_fraction - target_fraction) > LAND_FRACTION_TOLERANCE:
        result.add_warning(
            f"Land fraction {actual_fraction:.1%} differs from target {target_fraction:.1%}"
        )


def _check_lakes(
    heightmap: Heightmap,
    lakes: LakeResult,
    config: TerrainConfig,
    result: ValidationResult,
) -> None:
    """Check lake sizes, tile elevations and fill levels."""
    elevation = heightmap.elevation.ravel()
    lake_map = lakes.lake_map.ravel()
    lake_config = config.lakes

    for lake in lakes.lakes:
        if not lake_config.min_lake_size <= lake.size <= lake_config.max_lake_size:
            result.add_error(
                f"Lake {lake.lake_id} has {lake.size} tiles, outside "
                f"[{lake_config.min_lake_size}, {lake_config.max_lake_size}]"
            )

        if lake.level >= lake.pour_point_elevation:
            result.add_error(
                f"Lake {lake.lake_id} level {lake.level} reaches its pour point "
                f"({lake.pour_point_elevation})"
            )

        tile_elevations = elevation[lake.tiles]
        if np.any(tile_elevations < lake_config.sea_level):
            result.add_error(f"Lake {lake.lake_id} has tiles below sea level")
        if np.any(tile_elevations > lake.level):
            result.add_error(f"Lake {lake.lake_id} has tiles above its level")
        if not np.all(lake_map[lake.tiles] == 1):
            result.add_error(f"Lake {lake.lake_id} tiles missing from lake grid")

    expected_tiles = sum(lake.size for lake in lakes.lakes)
    actual_tiles = int(np.sum(lake_map))
    if expected_tiles != actual_tiles:
        result.add_error(
            f"Lake grid has {actual_tiles} tiles, lakes account for {expected_tiles}"
        )


def _check_spillways(
    heightmap: Heightmap,
    lakes: LakeResult,
    result: ValidationResult,
) -> None:
    """Check spillway outflows are dry land and match their pour points."""
    elevation = heightmap.elevation
    width = heightmap.width

    invalid_count = 0
    for lake in lakes.lakes:
        spillway = lake.spillway
        if spillway is None:
            continue

        ox, oy = spillway.outflow_cell
        if not (0 <= ox < width and 0 <= oy < heightmap.height):
            invalid_count += 1
            continue

        if lakes.lake_map[oy, ox] or elevation[oy, ox] < heightmap.sea_level:
            invalid_count += 1
        elif spillway.elevation != lake.pour_point_elevation:
            invalid_count += 1
        elif to_index(*spillway.lake_cell, width) not in lake.tiles:
            invalid_count += 1

    if invalid_count > 0:
        result.add_error(f"{invalid_count} spillways are inconsistent with their lakes")


def _check_lake_components(lakes: LakeResult, result: ValidationResult) -> None:
    """Warn when separate lakes touch and read as one body of water."""
    if lakes.lake_count == 0:
        return

    structure = ndimage.generate_binary_structure(2, 1)  # 4-connected
    _, num_features = ndimage.label(lakes.lake_map, structure=structure)

    if num_features != lakes.lake_count:
        result.add_warning(
            f"{lakes.lake_count} lakes form {num_features} connected water bodies"
        )
