"""Shared test fixtures for line-twin tests."""

from pathlib import Path
from typing import Callable, Iterable, List, Optional

import pytest

from line_twin import (
    ConfigLoader,
    InMemoryStationStore,
    LineConfig,
    LineSimulator,
    SimulationParams,
    StationSpec,
    seed_stations,
)


class ScriptedRandom:
    """Random source that replays a fixed sequence, then a default value."""

    def __init__(self, values: Iterable[float] = (), default: float = 0.5):
        self.values: List[float] = list(values)
        self.default = default
        self.draws = 0

    def random(self) -> float:
        self.draws += 1
        if self.values:
            return self.values.pop(0)
        return self.default


class ManualClock:
    """Millisecond clock advanced explicitly by the test."""

    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> float:
        self.now += ms
        return self.now


def make_line(*cycle_times_sec: float, target_count: int = 3600) -> LineConfig:
    """Line with stations ST01..STnn and the given cycle times."""
    stations = [
        StationSpec(
            station_id=f"ST{i:02d}",
            type=f"TYPE{i}",
            cycle_time_sec=ct,
            target_count=target_count,
            operator=f"OP-{i}",
        )
        for i, ct in enumerate(cycle_times_sec, start=1)
    ]
    return LineConfig(name="test_line", stations=stations)


def quiet_params(**overrides) -> SimulationParams:
    """Parameters with faults and jitter disabled unless overridden."""
    base = dict(
        update_interval_ms=1000,
        error_probability=0.0,
        maintenance_probability=0.0,
        recovery_time_ms=5000,
        cycle_time_variation=0.0,
    )
    base.update(overrides)
    return SimulationParams(**base)


@pytest.fixture
def config_dir() -> Path:
    """Path to the shipped config directory."""
    return Path(__file__).parent.parent / "config"


@pytest.fixture
def loader(config_dir: Path) -> ConfigLoader:
    """ConfigLoader instance."""
    return ConfigLoader(config_dir)


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def store() -> InMemoryStationStore:
    return InMemoryStationStore()


@pytest.fixture
def build_simulator(
    store: InMemoryStationStore, clock: ManualClock
) -> Callable[..., LineSimulator]:
    """Factory: seeded store, initialized simulator on the manual clock."""

    def _build(
        line: LineConfig,
        params: Optional[SimulationParams] = None,
        rng=None,
        seed: bool = True,
    ) -> LineSimulator:
        if seed:
            seed_stations(store, line)
        sim = LineSimulator(
            line,
            params or quiet_params(),
            store,
            clock=clock,
            rng=rng or ScriptedRandom(),
        )
        sim.initialize()
        return sim

    return _build
