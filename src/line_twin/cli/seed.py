"""Seed command: create or reset the station records for a line."""

import logging
from pathlib import Path
from typing import List, Optional

from line_twin.loader import ConfigLoader, LineConfig
from line_twin.models import StationRecord, StationStatus
from line_twin.storage import open_store
from line_twin.storage.base import StationStore

logger = logging.getLogger(__name__)


def seed_stations(
    store: StationStore, line: LineConfig, only_missing: bool = False
) -> List[StationRecord]:
    """Write one record per configured station.

    Args:
        store: Target station store
        line: Line whose stations are seeded
        only_missing: If True, leave existing records untouched

    Returns:
        Records that were created or reset
    """
    seeded = []
    for spec in line.stations:
        if only_missing and store.get_station(spec.station_id) is not None:
            continue
        record = store.upsert_station(
            spec.station_id,
            type=spec.type,
            status=StationStatus.STOPPED,
            production_count=0,
            target_count=spec.target_count,
            cycle_time=spec.cycle_time_sec,
            oee=0.0,
            operator=spec.operator,
        )
        logger.info("Seeded station %s (%s)", spec.station_id, spec.type)
        seeded.append(record)
    return seeded


def seed(
    line_name: str,
    config_dir: str = "config",
    db_path: Optional[str] = None,
    only_missing: bool = False,
) -> List[StationRecord]:
    """Seed the station records for a configured line.

    Args:
        line_name: Name of the line config (without .yaml extension)
        config_dir: Path to config directory
        db_path: DuckDB file (default: storage.db_path from defaults.yaml)
        only_missing: If True, only create stations that do not exist yet

    Returns:
        Records that were created or reset
    """
    resolved = ConfigLoader(config_dir).resolve_line(line_name)
    store = open_store(db_path or resolved.db_path)
    try:
        seeded = seed_stations(store, resolved.line, only_missing=only_missing)
    finally:
        store.close()

    target = Path(db_path or resolved.db_path or "line_twin.duckdb")
    print(f"Seeded {len(seeded)} station(s) for line '{resolved.line.name}' in {target}")
    for record in seeded:
        print(f"  {record.station_id}  {record.type:<12} target {record.target_count}")
    return seeded
