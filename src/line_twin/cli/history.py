"""History command: show or export the station audit trail."""

from pathlib import Path
from typing import Optional

import pandas as pd

from line_twin.storage import open_store


def history(
    db_path: Optional[str] = None,
    station_id: Optional[str] = None,
    limit: Optional[int] = 20,
    export: Optional[str] = None,
) -> pd.DataFrame:
    """Print (or export to CSV) the newest history rows.

    Args:
        db_path: DuckDB file (default: ./line_twin.duckdb)
        station_id: Restrict to one station
        limit: Newest N rows (None = all)
        export: CSV path to write instead of printing the rows

    Returns:
        History DataFrame, oldest row first
    """
    store = open_store(db_path)
    try:
        df = store.history_df(station_id=station_id, limit=limit)
        latest = [
            row
            for row in store.latest_history()
            if station_id is None or row.station_id == station_id
        ]
    finally:
        store.close()

    if export:
        path = Path(export)
        path.parent.mkdir(parents=True, exist_ok=True)
        df.to_csv(path, index=False)
        print(f"Exported: {path} ({len(df)} rows)")
    elif df.empty:
        print("No history recorded.")
    else:
        print(df.to_string(index=False))

    if latest:
        print("\n--- Latest by station ---")
        for row in latest:
            print(
                f"  {row.station_id:<8} {row.status.value:<12} "
                f"count {row.production_count:>6}  OEE {row.oee:5.1f}%"
            )
    return df
