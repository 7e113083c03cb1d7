"""Pydantic schemas for stations, fault events and simulation parameters."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, model_validator


class StationStatus(str, Enum):
    """Operating states a station can be in."""

    RUNNING = "RUNNING"
    STOPPED = "STOPPED"
    ERROR = "ERROR"
    MAINTENANCE = "MAINTENANCE"

    @property
    def is_fault(self) -> bool:
        """True for the states that hold a station until recovery."""
        return self in (StationStatus.ERROR, StationStatus.MAINTENANCE)


class StationRecord(BaseModel):
    """Persisted state of a single station."""

    station_id: str
    type: str = ""
    status: StationStatus = StationStatus.STOPPED
    production_count: int = Field(default=0, ge=0)
    target_count: int = Field(default=0, ge=0)
    cycle_time: float = 0.0  # Nominal seconds per unit
    oee: float = 0.0  # Derived, 0-99
    operator: str = ""
    updated_at: Optional[datetime] = None


class StationEvent(BaseModel):
    """An active fault window held in simulator memory."""

    status: StationStatus
    start_time: float  # Clock milliseconds


class StationHistory(BaseModel):
    """Append-only audit row."""

    station_id: str
    status: StationStatus
    oee: float
    production_count: int
    timestamp: datetime


# --- Configuration sub-models ---


class StationSpec(BaseModel):
    """Configured parameters for one station in the line."""

    station_id: str = Field(min_length=1)
    type: str = "GENERIC"
    cycle_time_sec: float = Field(gt=0)
    target_count: int = Field(default=500, ge=0)
    operator: str = ""

    @property
    def cycle_time_ms(self) -> float:
        """Nominal cycle time in milliseconds."""
        return self.cycle_time_sec * 1000.0


class SimulationParams(BaseModel):
    """Global simulation knobs shared by every station."""

    update_interval_ms: float = Field(default=2000.0, gt=0)
    error_probability: float = Field(default=0.015, ge=0.0, le=1.0)
    maintenance_probability: float = Field(default=0.01, ge=0.0, le=1.0)
    recovery_time_ms: float = Field(default=20000.0, ge=0)
    cycle_time_variation: float = Field(default=0.2, ge=0.0, lt=1.0)
    report_every_ticks: int = Field(default=5, ge=1)
    random_seed: Optional[int] = None

    @model_validator(mode="after")
    def _check_fault_budget(self) -> "SimulationParams":
        total = self.error_probability + self.maintenance_probability
        if total > 1.0:
            raise ValueError(
                f"error_probability + maintenance_probability must be <= 1 (got {total})"
            )
        return self

    @property
    def update_interval_sec(self) -> float:
        """Tick interval in seconds (SimPy time unit)."""
        return self.update_interval_ms / 1000.0
