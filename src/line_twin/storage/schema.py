"""DuckDB schema definitions for station state and history."""

SCHEMA_DDL = """
-- 1. STATIONS: Current state of each station (one row per station)
CREATE TABLE IF NOT EXISTS stations (
    station_id VARCHAR PRIMARY KEY,
    type VARCHAR NOT NULL DEFAULT '',
    status VARCHAR NOT NULL DEFAULT 'STOPPED',
    production_count INTEGER NOT NULL DEFAULT 0,
    target_count INTEGER NOT NULL DEFAULT 0,
    cycle_time DOUBLE NOT NULL DEFAULT 0.0,
    oee DOUBLE NOT NULL DEFAULT 0.0,
    operator VARCHAR NOT NULL DEFAULT '',
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

-- 2. STATION_HISTORY: Append-only audit trail
CREATE TABLE IF NOT EXISTS station_history (
    id INTEGER PRIMARY KEY,
    station_id VARCHAR NOT NULL,
    status VARCHAR NOT NULL,
    oee DOUBLE NOT NULL,
    production_count INTEGER NOT NULL,
    ts TIMESTAMP NOT NULL
);

-- Sequences for auto-increment IDs
CREATE SEQUENCE IF NOT EXISTS seq_station_history_id START 1;
"""

INDEX_DDL = """
-- Indexes for query performance
CREATE INDEX IF NOT EXISTS idx_history_station_ts ON station_history(station_id, ts);
"""

VIEW_DDL = """
-- Latest history row per station
CREATE OR REPLACE VIEW v_latest_history AS
SELECT * FROM (
    SELECT h.*,
           ROW_NUMBER() OVER (PARTITION BY station_id ORDER BY ts DESC, id DESC) AS rn
    FROM station_history h
) WHERE rn = 1;
"""

# Columns of the stations table, in SELECT order
STATION_COLUMNS = [
    "station_id",
    "type",
    "status",
    "production_count",
    "target_count",
    "cycle_time",
    "oee",
    "operator",
    "updated_at",
]


def create_tables(conn) -> None:
    """Create all tables, indexes, and views in the database.

    Args:
        conn: DuckDB connection
    """
    conn.execute(SCHEMA_DDL)
    conn.execute(INDEX_DDL)
    conn.execute(VIEW_DDL)
