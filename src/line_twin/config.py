"""Configuration schemas - re-exports from loader for convenience."""

# Re-export config types from loader
from line_twin.loader import (
    ConfigError,
    ConfigLoader,
    DefaultsConfig,
    LineConfig,
    ResolvedConfig,
)
from line_twin.models import SimulationParams, StationSpec

__all__ = [
    "ConfigError",
    "ConfigLoader",
    "DefaultsConfig",
    "LineConfig",
    "ResolvedConfig",
    "SimulationParams",
    "StationSpec",
]
