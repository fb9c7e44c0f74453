"""Map persistence: save and load generated heightmaps and lakes."""

import json
from datetime import datetime, timezone
from pathlib import Path

import numpy as np
import structlog

from .config import TerrainConfig
from .types import SEA_LEVEL, Heightmap, Lake, LakeResult, Spillway

logger = structlog.get_logger()

FORMAT_VERSION = 1


def _lake_to_dict(lake: Lake) -> dict:
    spillway = None
    if lake.spillway is not None:
        spillway = {
            "lake_cell": list(lake.spillway.lake_cell),
            "outflow_cell": list(lake.spillway.outflow_cell),
            "elevation": lake.spillway.elevation,
        }
    return {
        "lake_id": lake.lake_id,
        "seed": lake.seed,
        "seed_elevation": lake.seed_elevation,
        "tiles": lake.tiles,
        "level": lake.level,
        "pour_point": lake.pour_point,
        "pour_point_elevation": lake.pour_point_elevation,
        "spillway": spillway,
    }


def _lake_from_dict(data: dict) -> Lake:
    spillway = None
    if data.get("spillway") is not None:
        s = data["spillway"]
        spillway = Spillway(
            lake_cell=tuple(s["lake_cell"]),
            outflow_cell=tuple(s["outflow_cell"]),
            elevation=s["elevation"],
        )
    return Lake(
        lake_id=data["lake_id"],
        seed=data["seed"],
        seed_elevation=data["seed_elevation"],
        tiles=list(data["tiles"]),
        level=data["level"],
        pour_point=data["pour_point"],
        pour_point_elevation=data["pour_point_elevation"],
        spillway=spillway,
    )


def save_map(
    path: Path,
    heightmap: Heightmap,
    lakes: LakeResult,
    config: TerrainConfig,
) -> None:
    """Save a generated map to disk.

    Uses numpy's compressed .npz format. Elevation and lake grids are stored
    as uint8 arrays; lake records and metadata as JSON blobs.

    Args:
        path: Output path (should end with .npz).
        heightmap: Generated heightmap.
        lakes: Generated lakes.
        config: Generation configuration used.
    """
    metadata = {
        "version": FORMAT_VERSION,
        "seed": config.seed,
        "width": heightmap.width,
        "height": heightmap.height,
        "sea_level": heightmap.sea_level,
        "lake_count": lakes.lake_count,
        "config": config.model_dump(),
        "generated_at": datetime.now(timezone.utc).isoformat(),
    }
    lakes_data = [_lake_to_dict(lake) for lake in lakes.lakes]

    np.savez_compressed(
        path,
        elevation=heightmap.elevation,
        lakes=lakes.lake_map,
        lake_records=np.frombuffer(json.dumps(lakes_data).encode("utf-8"), dtype=np.uint8),
        metadata=np.frombuffer(json.dumps(metadata).encode("utf-8"), dtype=np.uint8),
    )

    file_size = path.stat().st_size / 1024
    logger.info("map_saved", path=str(path), size_kb=round(file_size, 1))


def load_map(path: Path) -> tuple[Heightmap, LakeResult, dict]:
    """Load a map from disk.

    Args:
        path: Path to .npz file.

    Returns:
        Tuple of (Heightmap, LakeResult, metadata dict).

    Raises:
        FileNotFoundError: If file doesn't exist.
        ValueError: If file format is invalid.
    """
    if not path.exists():
        raise FileNotFoundError(f"Map file not found: {path}")

    with np.load(path) as data:
        if "elevation" not in data:
            raise ValueError("Invalid map file: missing 'elevation' array")
        elevation = data["elevation"].astype(np.uint8)

        if "lakes" in data:
            lake_map = data["lakes"].astype(np.uint8)
        else:
            lake_map = np.zeros_like(elevation)

        if "lake_records" in data:
            records = json.loads(data["lake_records"].tobytes().decode("utf-8"))
        else:
            records = []

        if "metadata" in data:
            metadata = json.loads(data["metadata"].tobytes().decode("utf-8"))
        else:
            metadata = {}

    if lake_map.shape != elevation.shape:
        raise ValueError(
            f"Invalid map file: lake grid {lake_map.shape} does not match "
            f"elevation {elevation.shape}"
        )

    heightmap = Heightmap(elevation=elevation, sea_level=metadata.get("sea_level", SEA_LEVEL))
    lakes = LakeResult(lake_map=lake_map, lakes=[_lake_from_dict(r) for r in records])

    logger.info(
        "map_loaded",
        path=str(path),
        width=heightmap.width,
        height=heightmap.height,
        lake_count=lakes.lake_count,
    )
    return heightmap, lakes, metadata
