"""Status command: print the persisted state of every station."""

from typing import Optional

from line_twin.reporting import render_status_table
from line_twin.simulator import StationSnapshot
from line_twin.storage import open_store


def status(db_path: Optional[str] = None) -> str:
    """Print the station table from the store.

    Buffers live only in a running simulator's memory, so they render as "-".

    Args:
        db_path: DuckDB file (default: ./line_twin.duckdb)

    Returns:
        The rendered table
    """
    store = open_store(db_path)
    try:
        snapshots = [StationSnapshot(record=r, buffer=None) for r in store.list_stations()]
    finally:
        store.close()

    if not snapshots:
        text = "No stations found. Run 'seed' first."
    else:
        text = render_status_table(snapshots)
    print(text)
    return text
