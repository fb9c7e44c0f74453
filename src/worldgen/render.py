"""Preview rendering: a 1-pixel-per-tile image of a generated map."""

from pathlib import Path

import numpy as np
import structlog
from numpy.typing import NDArray
from PIL import Image

from .types import MAX_ELEVATION, Heightmap, LakeResult

logger = structlog.get_logger()

# Colors (RGB)
DEEP_WATER_COLOR = (20, 60, 140)  # Dark blue
SHALLOW_WATER_COLOR = (60, 130, 180)  # Light blue
LOWLAND_COLOR = (60, 150, 60)  # Green
HIGHLAND_COLOR = (140, 100, 60)  # Brown
PEAK_COLOR = (235, 235, 235)  # Near white
LAKE_COLOR = (40, 110, 220)  # Bright blue
RIVER_COLOR = (90, 160, 230)
OUTFLOW_COLOR = (220, 30, 30)  # Red


def _elevation_colors(heightmap: Heightmap) -> NDArray[np.uint8]:
    """Shade each cell by elevation: blues below sea level, a land ramp above."""
    elevation = heightmap.elevation.astype(np.float32)
    sea_level = heightmap.sea_level
    rgb = np.zeros(elevation.shape + (3,), dtype=np.float32)

    water = elevation < sea_level
    if sea_level > 0:
        t = (elevation / sea_level)[..., None]
        water_rgb = (1 - t) * np.array(DEEP_WATER_COLOR) + t * np.array(SHALLOW_WATER_COLOR)
        rgb[water] = water_rgb[water]

    land_span = max(MAX_ELEVATION - sea_level, 1)
    t = np.clip((elevation - sea_level) / land_span, 0.0, 1.0)[..., None]
    # Two-segment ramp: lowland to highland, highland to peak
    low = np.clip(t * 2, 0.0, 1.0)
    high = np.clip(t * 2 - 1, 0.0, 1.0)
    land_rgb = np.where(
        t < 0.5,
        (1 - low) * np.array(LOWLAND_COLOR) + low * np.array(HIGHLAND_COLOR),
        (1 - high) * np.array(HIGHLAND_COLOR) + high * np.array(PEAK_COLOR),
    )
    rgb[~water] = land_rgb[~water]

    return np.round(rgb).astype(np.uint8)


def render_preview(
    heightmap: Heightmap,
    lakes: LakeResult | None = None,
    river_mask: NDArray | None = None,
) -> Image.Image:
    """Generate a 1-pixel-per-tile image of the terrain.

    Args:
        heightmap: Generated heightmap.
        lakes: Optional lakes to overlay, with spillway outflows in red.
        river_mask: Optional river mask to overlay.

    Returns:
        PIL Image of shape (width, height).
    """
    rgb = _elevation_colors(heightmap)

    if river_mask is not None:
        rgb[(river_mask != 0) & heightmap.land_mask] = RIVER_COLOR

    if lakes is not None:
        rgb[lakes.lake_map != 0] = LAKE_COLOR
        for spillway in lakes.spillways:
            x, y = spillway.outflow_cell
            if 0 <= x < heightmap.width and 0 <= y < heightmap.height:
                rgb[y, x] = OUTFLOW_COLOR

    return Image.fromarray(rgb)


def save_preview(
    path: Path,
    heightmap: Heightmap,
    lakes: LakeResult | None = None,
    river_mask: NDArray | None = None,
    scale: int = 1,
) -> None:
    """Render a preview and write it as an image file.

    Args:
        path: Output path; format follows the extension.
        heightmap: Generated heightmap.
        lakes: Optional lakes to overlay.
        river_mask: Optional river mask to overlay.
        scale: Integer upscaling factor (nearest neighbour).
    """
    if scale < 1:
        raise ValueError(f"scale must be >= 1, got {scale}")

    img = render_preview(heightmap, lakes, river_mask)
    if scale > 1:
        img = img.resize((img.width * scale, img.height * scale), Image.Resampling.NEAREST)

    img.save(path)
    logger.info("preview_saved", path=str(path), width=img.width, height=img.height)
