"""Terrain generation configuration models."""

import tomllib
from pathlib import Path

from pydantic import BaseModel, Field, field_validator, model_validator


class NoiseConfig(BaseModel):
    """Multi-octave noise parameters."""

    octaves: int = Field(default=6, gt=0, description="Number of noise octaves")
    persistence: float = Field(
        default=0.5, gt=0, description="Amplitude multiplier per octave"
    )
    lacunarity: float = Field(
        default=2.0, gt=0, description="Frequency multiplier per octave"
    )


class HeightmapConfig(BaseModel):
    """Elevation remapping and smoothing parameters."""

    land_ratio: float = Field(
        default=0.3, gt=0, lt=1, description="Target fraction of cells above sea level"
    )
    smooth_iterations: int = Field(
        default=2, ge=0, description="Box filter passes after normalization"
    )


class RidgeConfig(BaseModel):
    """Mountain ridge injection parameters."""

    count: int = Field(default=0, ge=0, description="Number of ridges (0 = disabled)")


class LakeConfig(BaseModel):
    """Lake detection and filling parameters."""

    sea_level: int = Field(
        default=20, ge=0, le=100, description="Elevation separating water from land"
    )
    min_lake_size: int = Field(default=6, gt=0, description="Minimum lake size in tiles")
    max_lake_size: int = Field(default=60, gt=0, description="Maximum lake size in tiles")
    min_depth: int = Field(
        default=4, ge=0, description="Minimum pour point height above the seed"
    )
    max_fill_depth: int = Field(
        default=12, ge=0, description="Maximum lake level above the seed"
    )
    max_lake_elevation: int = Field(
        default=55, ge=0, le=100, description="Lakes do not form above this elevation"
    )
    basin_search_factor: int = Field(
        default=3, gt=0, description="Basin trace limit as a multiple of max_lake_size"
    )

    @model_validator(mode="after")
    def _check_size_bounds(self) -> "LakeConfig":
        if self.min_lake_size > self.max_lake_size:
            raise ValueError(
                f"min_lake_size ({self.min_lake_size}) exceeds "
                f"max_lake_size ({self.max_lake_size})"
            )
        return self

    @property
    def search_limit(self) -> int:
        """Maximum number of tiles a basin trace may record."""
        return self.max_lake_size * self.basin_search_factor


class TerrainConfig(BaseModel):
    """Complete terrain generation configuration."""

    seed: str = Field(default="default", description="Seed for reproducibility")
    width: int = Field(default=256, gt=0, description="Map width in tiles")
    height: int = Field(default=256, gt=0, description="Map height in tiles")

    noise: NoiseConfig = Field(default_factory=NoiseConfig)
    heightmap: HeightmapConfig = Field(default_factory=HeightmapConfig)
    ridges: RidgeConfig = Field(default_factory=RidgeConfig)
    lakes: LakeConfig = Field(default_factory=LakeConfig)

    @field_validator("seed", mode="before")
    @classmethod
    def _seed_to_str(cls, value: object) -> object:
        # TOML and argparse may hand over integer seeds
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value


def load_config(config_path: Path) -> TerrainConfig:
    """Load configuration from a TOML file.

    Args:
        config_path: Path to the TOML config file.

    Returns:
        Parsed TerrainConfig.

    Raises:
        FileNotFoundError: If config file doesn't exist.
        tomllib.TOMLDecodeError: If TOML is malformed.
        pydantic.ValidationError: If values are out of range.
    """
    with open(config_path, "rb") as f:
        data = tomllib.load(f)
    return TerrainConfig.model_validate(data)
