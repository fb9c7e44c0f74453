"""Custom exceptions for terrain generation."""


class TerrainError(Exception):
    """Base exception for terrain generation errors."""

    pass


class ConfigurationError(TerrainError, ValueError):
    """Raised when generation inputs are rejected before generation starts."""

    pass
