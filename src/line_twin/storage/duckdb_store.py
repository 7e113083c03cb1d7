"""DuckDB-backed station store."""

from datetime import datetime
from pathlib import Path
from typing import Any, List, Optional, Tuple

import duckdb
import pandas as pd
from pydantic import ValidationError

from line_twin.models import StationHistory, StationRecord, StationStatus
from line_twin.storage.base import StationStore, StorageError, _validate_fields
from line_twin.storage.schema import STATION_COLUMNS, create_tables


class DuckDBStationStore(StationStore):
    """Reads and writes station state and history in a DuckDB database."""

    def __init__(self, db_path: Path | str = ":memory:"):
        """Open the database and ensure the schema exists.

        Args:
            db_path: Path to DuckDB database file, or ":memory:"

        Raises:
            StorageError: if the database cannot be opened
        """
        self.db_path = str(db_path)
        try:
            self.conn = duckdb.connect(self.db_path)
            create_tables(self.conn)
        except duckdb.Error as e:
            raise StorageError(f"Cannot open station store at {self.db_path}: {e}") from e

    def get_station(self, station_id: str) -> Optional[StationRecord]:
        row = self._fetchone(
            f"SELECT {', '.join(STATION_COLUMNS)} FROM stations WHERE station_id = ?",
            [station_id],
        )
        return self._row_to_record(row) if row else None

    def upsert_station(self, station_id: str, **fields: Any) -> StationRecord:
        _validate_fields(fields)
        fields.pop("updated_at", None)
        if "status" in fields:
            fields["status"] = StationStatus(fields["status"]).value
        now = datetime.now()

        exists = self._fetchone(
            "SELECT 1 FROM stations WHERE station_id = ?", [station_id]
        )
        if exists:
            assignments = ", ".join(f"{col} = ?" for col in fields)
            assignments = f"{assignments}, updated_at = ?" if assignments else "updated_at = ?"
            self._execute(
                f"UPDATE stations SET {assignments} WHERE station_id = ?",
                [*fields.values(), now, station_id],
            )
        else:
            defaults = StationRecord(station_id=station_id).model_dump()
            defaults["status"] = StationStatus(defaults["status"]).value
            values = {**defaults, **fields, "updated_at": now}
            self._execute(
                f"INSERT INTO stations ({', '.join(STATION_COLUMNS)}) "
                f"VALUES ({', '.join('?' for _ in STATION_COLUMNS)})",
                [values[col] for col in STATION_COLUMNS],
            )

        record = self.get_station(station_id)
        if record is None:
            raise StorageError(f"Station {station_id} vanished after upsert")
        return record

    def append_history(
        self,
        station_id: str,
        status: StationStatus,
        oee: float,
        production_count: int,
        timestamp: datetime,
    ) -> None:
        self._execute(
            """
            INSERT INTO station_history (id, station_id, status, oee, production_count, ts)
            VALUES (nextval('seq_station_history_id'), ?, ?, ?, ?, ?)
            """,
            [station_id, StationStatus(status).value, oee, production_count, timestamp],
        )

    def list_stations(self) -> List[StationRecord]:
        rows = self._fetchall(
            f"SELECT {', '.join(STATION_COLUMNS)} FROM stations ORDER BY station_id"
        )
        return [self._row_to_record(r) for r in rows]

    def list_history(
        self, station_id: Optional[str] = None, limit: Optional[int] = None
    ) -> List[StationHistory]:
        sql, params = self._history_query(station_id, limit)
        return [self._row_to_history(r) for r in self._fetchall(sql, params)]

    def latest_history(self) -> List[StationHistory]:
        rows = self._fetchall(
            "SELECT station_id, status, oee, production_count, ts "
            "FROM v_latest_history ORDER BY station_id"
        )
        return [self._row_to_history(r) for r in rows]

    def history_df(
        self, station_id: Optional[str] = None, limit: Optional[int] = None
    ) -> pd.DataFrame:
        sql, params = self._history_query(station_id, limit)
        try:
            return self.conn.execute(sql, params).df()
        except duckdb.Error as e:
            raise StorageError(f"History query failed: {e}") from e

    def close(self) -> None:
        """Close the database connection."""
        self.conn.close()

    # --- helpers ---

    def _history_query(
        self, station_id: Optional[str], limit: Optional[int]
    ) -> Tuple[str, list]:
        where = "WHERE station_id = ?" if station_id else ""
        params: list = [station_id] if station_id else []
        inner = (
            "SELECT id, station_id, status, oee, production_count, ts AS \"timestamp\" "
            f"FROM station_history {where}"
        )
        if limit is not None:
            inner = f"{inner} ORDER BY ts DESC, id DESC LIMIT ?"
            params.append(max(limit, 0))
        sql = (
            "SELECT station_id, status, oee, production_count, \"timestamp\" "
            f"FROM ({inner}) ORDER BY \"timestamp\", id"
        )
        return sql, params

    def _row_to_record(self, row: tuple) -> StationRecord:
        data = dict(zip(STATION_COLUMNS, row))
        try:
            data["status"] = StationStatus(data["status"])
            return StationRecord(**data)
        except (ValueError, ValidationError) as e:
            raise StorageError(f"Undecodable station row {data['station_id']}: {e}") from e

    def _row_to_history(self, row: tuple) -> StationHistory:
        try:
            return StationHistory(
                station_id=row[0],
                status=StationStatus(row[1]),
                oee=row[2],
                production_count=row[3],
                timestamp=row[4],
            )
        except (ValueError, ValidationError) as e:
            raise StorageError(f"Undecodable history row for {row[0]}: {e}") from e

    def _execute(self, sql: str, params: Optional[list] = None) -> None:
        try:
            self.conn.execute(sql, params or [])
        except duckdb.Error as e:
            raise StorageError(f"Station store write failed: {e}") from e

    def _fetchone(self, sql: str, params: Optional[list] = None):
        try:
            return self.conn.execute(sql, params or []).fetchone()
        except duckdb.Error as e:
            raise StorageError(f"Station store read failed: {e}") from e

    def _fetchall(self, sql: str, params: Optional[list] = None) -> list:
        try:
            return self.conn.execute(sql, params or []).fetchall()
        except duckdb.Error as e:
            raise StorageError(f"Station store read failed: {e}") from e
