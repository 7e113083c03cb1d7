"""YAML configuration loader with name-based resolution."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import ValidationError

from line_twin.models import SimulationParams, StationSpec


class ConfigError(ValueError):
    """Raised when configuration cannot be loaded or fails validation."""


@dataclass
class DefaultsConfig:
    """Global defaults loaded from config/defaults.yaml."""

    simulation: Dict[str, Any] = field(default_factory=dict)
    storage: Dict[str, Any] = field(default_factory=dict)


@dataclass
class LineConfig:
    """An ordered production line."""

    name: str
    description: str = ""
    stations: List[StationSpec] = field(default_factory=list)
    simulation: Dict[str, Any] = field(default_factory=dict)  # Overrides

    @property
    def station_ids(self) -> List[str]:
        return [s.station_id for s in self.stations]

    def get_station(self, station_id: str) -> Optional[StationSpec]:
        return next((s for s in self.stations if s.station_id == station_id), None)


@dataclass
class ResolvedConfig:
    """Fully resolved configuration ready for simulation."""

    line: LineConfig
    simulation: SimulationParams
    db_path: Optional[str] = None


class ConfigLoader:
    """Loads and resolves YAML configuration files."""

    def __init__(self, config_dir: Path | str = "config"):
        self.config_dir = Path(config_dir)
        self.defaults = self.load_defaults()

    def load_defaults(self) -> DefaultsConfig:
        """Load global defaults from config/defaults.yaml."""
        path = self.config_dir / "defaults.yaml"
        if not path.exists():
            return DefaultsConfig()
        data = self._load_yaml(path)
        return DefaultsConfig(
            simulation=data.get("simulation") or {},
            storage=data.get("storage") or {},
        )

    def load_line(self, name: str) -> LineConfig:
        """Load a line configuration by name."""
        path = self.config_dir / "lines" / f"{name}.yaml"
        data = self._load_yaml(path)

        raw_stations = data.get("stations") or []
        if not raw_stations:
            raise ConfigError(f"Line '{name}' defines no stations")

        try:
            stations = [StationSpec(**s) for s in raw_stations]
        except (TypeError, ValidationError) as e:
            raise ConfigError(f"Invalid station in line '{name}': {e}") from e

        seen = set()
        for spec in stations:
            if spec.station_id in seen:
                raise ConfigError(
                    f"Duplicate station id '{spec.station_id}' in line '{name}'"
                )
            seen.add(spec.station_id)

        return LineConfig(
            name=data.get("name", name),
            description=data.get("description", ""),
            stations=stations,
            simulation=data.get("simulation") or {},
        )

    def list_lines(self) -> List[str]:
        """Names of all line configs in the config directory."""
        lines_dir = self.config_dir / "lines"
        if not lines_dir.exists():
            return []
        return sorted(p.stem for p in lines_dir.glob("*.yaml"))

    def resolve_line(self, name: str) -> ResolvedConfig:
        """Resolve a line config and merge its simulation overrides over defaults."""
        line = self.load_line(name)
        merged = {**self.defaults.simulation, **line.simulation}
        try:
            params = SimulationParams(**merged)
        except (TypeError, ValidationError) as e:
            raise ConfigError(f"Invalid simulation parameters for '{name}': {e}") from e

        return ResolvedConfig(
            line=line,
            simulation=params,
            db_path=self.defaults.storage.get("db_path"),
        )

    def _load_yaml(self, path: Path) -> Dict[str, Any]:
        """Load a YAML file."""
        if not path.exists():
            raise ConfigError(f"Config file not found: {path}")
        try:
            with open(path) as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Malformed YAML in {path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"Expected a mapping at top level of {path}")
        return data
