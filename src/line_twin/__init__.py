"""Tick-based production line simulator with OEE tracking."""

from line_twin.cli import history, seed, seed_stations, status
from line_twin.config import (
    ConfigError,
    ConfigLoader,
    DefaultsConfig,
    LineConfig,
    ResolvedConfig,
)
from line_twin.engine import SimulationEngine
from line_twin.models import (
    SimulationParams,
    StationEvent,
    StationHistory,
    StationRecord,
    StationSpec,
    StationStatus,
)
from line_twin.oee import calculate_oee
from line_twin.reporting import StatusReporter, render_status_table
from line_twin.run import run_line
from line_twin.simulator import (
    INFINITE_SUPPLY,
    RAW_MATERIAL,
    LineSimulator,
    StationSnapshot,
    StepResult,
)
from line_twin.storage import (
    DuckDBStationStore,
    InMemoryStationStore,
    StationStore,
    StorageError,
    open_store,
)

__all__ = [
    # Models
    "StationStatus",
    "StationRecord",
    "StationEvent",
    "StationHistory",
    "StationSpec",
    "SimulationParams",
    # Config
    "ConfigError",
    "ConfigLoader",
    "DefaultsConfig",
    "LineConfig",
    "ResolvedConfig",
    # Simulation
    "LineSimulator",
    "StationSnapshot",
    "StepResult",
    "RAW_MATERIAL",
    "INFINITE_SUPPLY",
    "calculate_oee",
    "SimulationEngine",
    # Reporting
    "StatusReporter",
    "render_status_table",
    # Storage
    "StationStore",
    "StorageError",
    "InMemoryStationStore",
    "DuckDBStationStore",
    "open_store",
    # CLI
    "seed",
    "seed_stations",
    "status",
    "history",
    # Entry point
    "run_line",
]
