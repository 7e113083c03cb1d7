"""Station persistence: the store contract and its backends.

The simulator only talks to a ``StationStore``. DuckDB is the default
backend; ``InMemoryStationStore`` is used in tests.

Example usage:
    from line_twin.storage import open_store

    store = open_store("./line_twin.duckdb")
    store.upsert_station("ST01", status="RUNNING")

    # Newest audit row per station (v_latest_history view)
    for row in store.latest_history():
        print(row.station_id, row.status, row.production_count)
"""

from pathlib import Path

from line_twin.storage.base import InMemoryStationStore, StationStore, StorageError
from line_twin.storage.duckdb_store import DuckDBStationStore

DEFAULT_DB_PATH = Path("./line_twin.duckdb")


def open_store(db_path: Path | str | None = None) -> DuckDBStationStore:
    """Open (and create if needed) the DuckDB station store.

    Raises:
        StorageError: if the database cannot be opened
    """
    path = db_path if db_path else DEFAULT_DB_PATH
    return DuckDBStationStore(path)


__all__ = [
    "StationStore",
    "StorageError",
    "InMemoryStationStore",
    "DuckDBStationStore",
    "open_store",
    "DEFAULT_DB_PATH",
]
