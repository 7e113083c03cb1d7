"""SimPy tick driver for the line simulator."""

import logging
import signal
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

import simpy
import simpy.rt

from line_twin.loader import ConfigLoader, ResolvedConfig
from line_twin.reporting import StatusReporter
from line_twin.simulator import LineSimulator, RandomSource
from line_twin.storage import open_store
from line_twin.storage.base import StationStore, StorageError

logger = logging.getLogger(__name__)


class SimulationEngine:
    """Drives a LineSimulator on a fixed-interval SimPy timer.

    Each tick is a single step of one SimPy process, so ticks run back to
    back and never overlap. With ``realtime=True`` the environment is paced
    against the wall clock (a slow tick delays the next one instead of
    raising); otherwise time is virtual and runs as fast as possible.
    """

    def __init__(
        self,
        resolved: ResolvedConfig,
        store: StationStore,
        realtime: bool = True,
        rng: Optional[RandomSource] = None,
        reporter: Optional[StatusReporter] = None,
        start_datetime: Optional[datetime] = None,
    ):
        """Initialize the engine.

        Args:
            resolved: Resolved line and simulation config
            store: Persistence collaborator (closed on shutdown)
            realtime: Pace ticks against the wall clock
            rng: Random source override (deterministic tests)
            reporter: Status reporter (default prints to stdout)
            start_datetime: Wall time of simulation start for history rows
        """
        self.resolved = resolved
        self.params = resolved.simulation
        self.store = store
        self.realtime = realtime

        if realtime:
            self.env = simpy.rt.RealtimeEnvironment(factor=1.0, strict=False)
        else:
            self.env = simpy.Environment()

        self.simulator = LineSimulator(
            resolved.line,
            self.params,
            store,
            clock=self._clock_ms,
            rng=rng,
            start_datetime=start_datetime,
        )
        self.reporter = reporter or StatusReporter()

        self._stop_requested = False
        self._stopped: Optional[simpy.Event] = None
        self._closed = False

    @classmethod
    def from_config(
        cls,
        line_name: str,
        config_dir: Path | str = "config",
        db_path: Optional[Path | str] = None,
        **kwargs: Any,
    ) -> "SimulationEngine":
        """Build an engine from YAML config and a DuckDB store.

        Raises:
            ConfigError: if configuration is missing or invalid
            StorageError: if the database cannot be opened
        """
        resolved = ConfigLoader(config_dir).resolve_line(line_name)
        store = open_store(db_path or resolved.db_path)
        return cls(resolved, store, **kwargs)

    def _clock_ms(self) -> float:
        return self.env.now * 1000.0

    @property
    def tick_count(self) -> int:
        return self.simulator.tick_count

    def request_stop(self, signum: Optional[int] = None, frame: Any = None) -> None:
        """Ask the engine to stop after the in-flight tick (signal-handler safe)."""
        if signum is not None:
            logger.info("Received signal %s, stopping after current tick", signum)
        self._stop_requested = True

    def run(
        self,
        max_ticks: Optional[int] = None,
        handle_signals: bool = False,
    ) -> int:
        """Initialize the line, tick until stopped, then shut down.

        Args:
            max_ticks: Stop after this many ticks (None = until signalled)
            handle_signals: Install SIGINT/SIGTERM handlers for graceful stop

        Returns:
            Process exit code (0 on graceful stop)

        Raises:
            StorageError: if initialization cannot reach the store
        """
        self.simulator.initialize()
        self._report()

        previous: Dict[int, Any] = {}
        if handle_signals:
            for sig in (signal.SIGINT, signal.SIGTERM):
                previous[sig] = signal.signal(sig, self.request_stop)

        try:
            self._stopped = self.env.event()
            self.env.process(self._tick_process(max_ticks))
            self.env.run(until=self._stopped)
        finally:
            for sig, handler in previous.items():
                signal.signal(sig, handler)
            self.shutdown()

        logger.info("Simulation stopped after %d ticks", self.tick_count)
        return 0

    def _tick_process(self, max_ticks: Optional[int]):
        """Fixed-interval timer: one tick per interval, reports every Nth tick."""
        interval = self.params.update_interval_sec
        every = self.params.report_every_ticks

        while not self._stop_requested:
            if max_ticks is not None and self.tick_count >= max_ticks:
                break

            yield self.env.timeout(interval)
            if self._stop_requested:
                break

            self.simulator.tick()

            if self.tick_count % every == 0:
                self._report()

        self._stopped.succeed()

    def _report(self) -> None:
        try:
            self.reporter.report(
                self.simulator, at=self.simulator.timestamp_for(self._clock_ms())
            )
        except StorageError as e:
            logger.warning("Status report skipped: %s", e)

    def shutdown(self) -> None:
        """Print the final snapshot and close the store (idempotent)."""
        if self._closed:
            return
        self._closed = True
        if self.simulator.simulation_start_time is not None:
            self._report()
        self.store.close()
