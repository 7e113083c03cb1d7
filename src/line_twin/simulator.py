"""Tick-based production line simulator.

One ``LineSimulator`` owns all runtime state for one line: inter-station
buffers, active fault windows and last-production times. Every tick walks
the stations in line order, so a unit finished upstream earlier in a tick
is visible to the next station within the same tick.

Per-station update:
1. Load record (missing record = configuration error, skipped for the run)
2. RECOVERY: clear an expired fault window and go back to RUNNING
3. HOLD: stay put while in ERROR / MAINTENANCE
4. STARVATION: empty upstream buffer -> STOPPED
5. CYCLE GATE: wait until the (jittered) cycle time has elapsed
6. RESUME: back to RUNNING if needed
7. FAULT: Bernoulli draw for ERROR / MAINTENANCE
8. PRODUCE: move one unit from upstream buffer to own buffer
9. OEE: recompute and persist, append history
"""

import logging
import random
import time
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, Dict, List, Optional, Protocol, Set

from line_twin.loader import LineConfig
from line_twin.models import (
    SimulationParams,
    StationEvent,
    StationRecord,
    StationSpec,
    StationStatus,
)
from line_twin.oee import calculate_oee
from line_twin.storage.base import StationStore, StorageError

logger = logging.getLogger(__name__)

# Virtual upstream of the first station
RAW_MATERIAL = "RAW_MATERIAL"

# Sentinel level for the raw material buffer; it is never decremented
INFINITE_SUPPLY = 999_999


class RandomSource(Protocol):
    """Anything with a ``random()`` returning floats in [0, 1)."""

    def random(self) -> float: ...


class StepResult(str, Enum):
    """What a station did during one tick."""

    MISSING = "MISSING"  # No backing record
    FAILED = "FAILED"  # Storage error, tick abandoned
    RECOVERED = "RECOVERED"
    HELD = "HELD"
    STARVED = "STARVED"
    WAITING = "WAITING"  # Cycle not complete
    FAULTED = "FAULTED"
    PRODUCED = "PRODUCED"


@dataclass
class StationSnapshot:
    """Station record plus its in-memory output buffer."""

    record: StationRecord
    buffer: Optional[int]


def wall_clock_ms() -> float:
    """Monotonic wall clock in milliseconds."""
    return time.monotonic() * 1000.0


class LineSimulator:
    """Simulation context for one production line."""

    def __init__(
        self,
        line: LineConfig,
        params: SimulationParams,
        store: StationStore,
        clock: Optional[Callable[[], float]] = None,
        rng: Optional[RandomSource] = None,
        start_datetime: Optional[datetime] = None,
    ):
        """Initialize the simulator.

        Args:
            line: Ordered line configuration
            params: Global simulation parameters
            store: Persistence collaborator
            clock: Returns current time in milliseconds (default: monotonic wall clock)
            rng: Random source (default: random.Random seeded from params.random_seed)
            start_datetime: Wall time matching the simulation start, used for
                history timestamps (default: datetime.now() at initialize)
        """
        self.line = line
        self.params = params
        self.store = store
        self._clock = clock or wall_clock_ms
        self.rng: RandomSource = rng or random.Random(params.random_seed)
        self._start_datetime = start_datetime

        self._specs: Dict[str, StationSpec] = {s.station_id: s for s in line.stations}
        self._order: List[str] = line.station_ids

        # Runtime state (never persisted)
        self.buffers: Dict[str, int] = {}
        self.events: Dict[str, StationEvent] = {}
        self.last_production_time: Dict[str, float] = {}
        self.misconfigured: Set[str] = set()

        self.simulation_start_time: Optional[float] = None
        self.tick_count = 0

    # --- lifecycle ---

    def initialize(self) -> None:
        """Reset every station, buffer and timer for a fresh run.

        Raises:
            StorageError: if the store cannot be reached
        """
        now = self._clock()
        self.buffers.clear()
        self.events.clear()
        self.last_production_time.clear()
        self.misconfigured.clear()
        self.tick_count = 0

        for index, station_id in enumerate(self._order):
            spec = self._specs[station_id]
            self.buffers[station_id] = 0
            self.last_production_time[station_id] = now

            if self.store.get_station(station_id) is None:
                self._mark_misconfigured(station_id)
                continue

            status = StationStatus.RUNNING if index == 0 else StationStatus.STOPPED
            self.store.upsert_station(
                station_id,
                status=status,
                production_count=0,
                oee=0.0,
                cycle_time=spec.cycle_time_sec,
                target_count=spec.target_count,
            )
            logger.info(
                "%s reset to %s (target %d)", station_id, status.value, spec.target_count
            )

        self.buffers[RAW_MATERIAL] = INFINITE_SUPPLY
        self.simulation_start_time = now
        if self._start_datetime is None:
            self._start_datetime = datetime.now()

    def tick(self) -> Dict[str, StepResult]:
        """Advance every station once, strictly in line order.

        Storage failures are contained per station; the remaining stations
        still run.
        """
        if self.simulation_start_time is None:
            raise RuntimeError("initialize() must be called before tick()")

        self.tick_count += 1
        results: Dict[str, StepResult] = {}
        for station_id in self._order:
            try:
                results[station_id] = self.update_station(station_id)
            except StorageError as e:
                logger.warning("%s tick abandoned: %s", station_id, e)
                results[station_id] = StepResult.FAILED
        return results

    # --- per-station update ---

    def upstream_of(self, station_id: str) -> str:
        """Buffer key feeding the given station."""
        index = self._order.index(station_id)
        return RAW_MATERIAL if index == 0 else self._order[index - 1]

    def update_station(self, station_id: str) -> StepResult:
        """Run one tick for a single station.

        Raises:
            StorageError: on a failed read or write; in-memory state is only
                mutated after the corresponding write succeeded
        """
        if station_id in self.misconfigured:
            return StepResult.MISSING

        station = self.store.get_station(station_id)
        if station is None:
            self._mark_misconfigured(station_id)
            return StepResult.MISSING

        spec = self._specs[station_id]
        now = self._clock()
        upstream = self.upstream_of(station_id)
        upstream_level = self.buffers.get(upstream, 0)

        # Recovery consumes the tick
        event = self.events.get(station_id)
        if event is not None and now - event.start_time >= self.params.recovery_time_ms:
            self.store.upsert_station(station_id, status=StationStatus.RUNNING)
            del self.events[station_id]
            logger.info(
                "%s recovered: %s -> RUNNING", station_id, event.status.value
            )
            self._append_history(station, StationStatus.RUNNING, now)
            return StepResult.RECOVERED

        if station.status.is_fault:
            return StepResult.HELD

        if upstream != RAW_MATERIAL and upstream_level <= 0:
            if station.status != StationStatus.STOPPED:
                self.store.upsert_station(station_id, status=StationStatus.STOPPED)
                logger.info("%s starved, waiting for %s", station_id, upstream)
                self._append_history(station, StationStatus.STOPPED, now)
            return StepResult.STARVED

        last = self.last_production_time.get(station_id, now)
        if now - last < self._actual_cycle_time(spec):
            return StepResult.WAITING

        if station.status != StationStatus.RUNNING:
            self.store.upsert_station(station_id, status=StationStatus.RUNNING)
            logger.info("%s started", station_id)

        fault = self._draw_fault()
        if fault is not None:
            self.store.upsert_station(station_id, status=fault, oee=0.0)
            self.events[station_id] = StationEvent(status=fault, start_time=now)
            logger.info("%s entered %s", station_id, fault.value)
            station.oee = 0.0
            self._append_history(station, fault, now)
            return StepResult.FAULTED

        return self._produce(station, spec, upstream, upstream_level, now)

    # --- helpers ---

    def _produce(
        self,
        station: StationRecord,
        spec: StationSpec,
        upstream: str,
        upstream_level: int,
        now: float,
    ) -> StepResult:
        count = station.production_count + 1
        oee = self._compute_oee(station.station_id, count, spec.target_count, now)

        self.store.upsert_station(station.station_id, production_count=count, oee=oee)

        if upstream != RAW_MATERIAL:
            self.buffers[upstream] = upstream_level - 1
        self.buffers[station.station_id] = self.buffers.get(station.station_id, 0) + 1
        self.last_production_time[station.station_id] = now

        station.production_count = count
        station.oee = oee
        self._append_history(station, StationStatus.RUNNING, now)
        logger.debug("%s produced unit %d (OEE %.1f%%)", station.station_id, count, oee)
        return StepResult.PRODUCED

    def _compute_oee(
        self, station_id: str, count: int, target_count: int, now: float
    ) -> float:
        total = now - (self.simulation_start_time or now)
        # Subtracts a flat recovery window whenever a fault event is on record,
        # not the measured downtime.
        penalty = self.params.recovery_time_ms if station_id in self.events else 0.0
        return calculate_oee(count, target_count, total - penalty, total)

    def _actual_cycle_time(self, spec: StationSpec) -> float:
        jitter = (self.rng.random() - 0.5) * self.params.cycle_time_variation
        return spec.cycle_time_ms * (1.0 + jitter)

    def _draw_fault(self) -> Optional[StationStatus]:
        r = self.rng.random()
        if r < self.params.error_probability:
            return StationStatus.ERROR
        if r < self.params.error_probability + self.params.maintenance_probability:
            return StationStatus.MAINTENANCE
        return None

    def _append_history(
        self, station: StationRecord, status: StationStatus, now: float
    ) -> None:
        self.store.append_history(
            station.station_id,
            status,
            station.oee,
            station.production_count,
            self.timestamp_for(now),
        )

    def _mark_misconfigured(self, station_id: str) -> None:
        self.misconfigured.add(station_id)
        logger.error(
            "Station %s has no record in the store; skipping it for this run "
            "(run 'seed' to create it)",
            station_id,
        )

    # --- queries ---

    def timestamp_for(self, now: float) -> datetime:
        """Wall time for a clock reading, anchored at the simulation start."""
        start = self._start_datetime or datetime.now()
        elapsed = now - (self.simulation_start_time or now)
        return start + timedelta(milliseconds=elapsed)

    @property
    def completed_units(self) -> int:
        """Units sitting in the last station's output buffer (line throughput)."""
        return self.buffers.get(self._order[-1], 0) if self._order else 0

    def buffer_level(self, station_id: str) -> int:
        return self.buffers.get(station_id, 0)

    def snapshot(self) -> List[StationSnapshot]:
        """Current records (ordered by station id) with buffer levels."""
        return [
            StationSnapshot(record=r, buffer=self.buffers.get(r.station_id))
            for r in self.store.list_stations()
        ]
