"""Tests for the SimPy tick driver."""

import os
import signal
from datetime import datetime
from pathlib import Path

import pytest
import yaml

from line_twin import (
    ConfigLoader,
    InMemoryStationStore,
    SimulationEngine,
    StationStatus,
    StatusReporter,
    StorageError,
    seed_stations,
)

START = datetime(2026, 1, 5, 8, 0, 0)


class BrokenStore(InMemoryStationStore):
    """Store whose reads always fail."""

    def get_station(self, station_id):
        raise StorageError("database is locked")


class SignallingStore(InMemoryStationStore):
    """Sends a signal to this process on the Nth history append."""

    def __init__(self, signum: int, on_append: int):
        super().__init__()
        self.signum = signum
        self.on_append = on_append
        self.appends = 0

    def append_history(self, *args, **kwargs):
        super().append_history(*args, **kwargs)
        self.appends += 1
        if self.appends == self.on_append:
            os.kill(os.getpid(), self.signum)


@pytest.fixture
def resolved(loader: ConfigLoader):
    return loader.resolve_line("two_station")


@pytest.fixture
def reports():
    return []


@pytest.fixture
def make_engine(resolved, store: InMemoryStationStore, reports):
    def _make(**kwargs):
        seed_stations(store, resolved.line)
        kwargs.setdefault("realtime", False)
        return SimulationEngine(
            resolved,
            store,
            reporter=StatusReporter(sink=reports.append),
            start_datetime=START,
            **kwargs,
        )

    return _make


class TestVirtualTime:
    def test_runs_requested_ticks(self, make_engine, store: InMemoryStationStore):
        engine = make_engine()

        assert engine.run(max_ticks=5) == 0

        assert engine.tick_count == 5
        assert engine.env.now == pytest.approx(5.0)
        assert store.get_station("ST01").production_count == 5
        assert store.get_station("ST02").production_count == 5
        assert engine.simulator.completed_units == 5

    def test_reports_initial_periodic_and_final(self, make_engine, reports):
        engine = make_engine()
        engine.run(max_ticks=5)

        # initial, every 5th tick, final
        assert len(reports) == 3
        assert engine.reporter.reports_emitted == 3

    def test_store_closed_on_shutdown(self, make_engine, store: InMemoryStationStore):
        engine = make_engine()
        engine.run(max_ticks=1)
        assert store.closed

    def test_shutdown_is_idempotent(self, make_engine, reports):
        engine = make_engine()
        engine.run(max_ticks=1)
        emitted = len(reports)

        engine.shutdown()

        assert len(reports) == emitted

    def test_history_timestamps_follow_virtual_clock(
        self, make_engine, store: InMemoryStationStore
    ):
        engine = make_engine()
        engine.run(max_ticks=2)

        stamps = [h.timestamp for h in store.list_history("ST01")]
        assert stamps == [
            datetime(2026, 1, 5, 8, 0, 1),
            datetime(2026, 1, 5, 8, 0, 2),
        ]

    def test_line_is_reset_at_start(self, make_engine, store: InMemoryStationStore):
        engine = make_engine()
        store.upsert_station("ST02", production_count=99, status=StationStatus.ERROR)

        engine.run(max_ticks=0)

        assert store.get_station("ST01").status == StationStatus.RUNNING
        assert store.get_station("ST02").status == StationStatus.STOPPED
        assert store.get_station("ST02").production_count == 0


class TestStopping:
    def test_stop_between_ticks(self, make_engine):
        engine = make_engine()

        def stopper(env):
            yield env.timeout(2.5)
            engine.request_stop()

        engine.env.process(stopper(engine.env))
        engine.run()

        assert engine.tick_count == 2

    def test_stop_before_run(self, make_engine, store: InMemoryStationStore):
        engine = make_engine()
        engine.request_stop()

        assert engine.run() == 0

        assert engine.tick_count == 0
        assert store.closed

    def test_init_failure_propagates(self, resolved):
        engine = SimulationEngine(
            resolved, BrokenStore(), realtime=False, reporter=StatusReporter(sink=lambda _: None)
        )

        with pytest.raises(StorageError):
            engine.run(max_ticks=1)


class TestSignals:
    """Graceful shutdown on SIGINT / SIGTERM."""

    @pytest.mark.parametrize("signum", [signal.SIGINT, signal.SIGTERM])
    def test_signal_stops_after_in_flight_tick(self, resolved, signum):
        # Third append is ST01 in tick 2; ST02 must still run in that tick
        store = SignallingStore(signum, on_append=3)
        seed_stations(store, resolved.line)
        reports = []
        engine = SimulationEngine(
            resolved,
            store,
            realtime=False,
            reporter=StatusReporter(sink=reports.append),
            start_datetime=START,
        )

        def previous_handler(sig, frame):
            raise AssertionError("signal reached the previous handler")

        original = signal.signal(signum, previous_handler)
        try:
            code = engine.run(handle_signals=True)
            restored = signal.getsignal(signum)
        finally:
            signal.signal(signum, original)

        assert code == 0
        assert engine.tick_count == 2
        assert store.get_station("ST01").production_count == 2
        assert store.get_station("ST02").production_count == 2
        # initial and final snapshots
        assert len(reports) == 2
        assert "Completed units: 2" in reports[-1]
        assert store.closed
        assert restored is previous_handler


class TestRealtime:
    def test_paced_run(self, tmp_path: Path):
        (tmp_path / "lines").mkdir()
        (tmp_path / "defaults.yaml").write_text(
            yaml.safe_dump(
                {
                    "simulation": {
                        "update_interval_ms": 20,
                        "error_probability": 0.0,
                        "maintenance_probability": 0.0,
                        "cycle_time_variation": 0.0,
                    }
                }
            )
        )
        (tmp_path / "lines" / "tiny.yaml").write_text(
            yaml.safe_dump(
                {
                    "name": "tiny",
                    "stations": [
                        {"station_id": "ST01", "type": "WELDING", "cycle_time_sec": 0.01}
                    ],
                }
            )
        )
        resolved = ConfigLoader(tmp_path).resolve_line("tiny")
        store = InMemoryStationStore()
        seed_stations(store, resolved.line)

        engine = SimulationEngine(
            resolved, store, realtime=True, reporter=StatusReporter(sink=lambda _: None)
        )
        engine.run(max_ticks=3)

        assert engine.tick_count == 3
        assert engine.env.now == pytest.approx(0.06)
        assert store.get_station("ST01").production_count == 3
