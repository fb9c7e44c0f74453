"""Seeded heightmap and lake generation.

This package builds integer elevation grids from layered simplex noise,
normalizes them to a target land ratio, and fills river-fed depressions into
lakes with spillways that reconnect them to the river network.
"""

from .config import LakeConfig, TerrainConfig, load_config
from .events import EventRecorder, GenerationEvent, structlog_sink
from .exceptions import ConfigurationError, TerrainError
from .generator import GenerationResult, generate_heightmap, generate_terrain
from .hydrology import generate_lakes
from .persistence import load_map, save_map
from .types import Heightmap, Lake, LakeResult, Spillway
from .validation import ValidationResult, validate_terrain

__all__ = [
    "ConfigurationError",
    "EventRecorder",
    "GenerationEvent",
    "GenerationResult",
    "Heightmap",
    "Lake",
    "LakeConfig",
    "LakeResult",
    "Spillway",
    "TerrainConfig",
    "TerrainError",
    "ValidationResult",
    "generate_heightmap",
    "generate_lakes",
    "generate_terrain",
    "load_config",
    "load_map",
    "save_map",
    "structlog_sink",
    "validate_terrain",
]
