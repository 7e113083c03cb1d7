"""Persistence contract used by the simulator, plus an in-memory backend."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional

import pandas as pd

from line_twin.models import StationHistory, StationRecord, StationStatus


class StorageError(RuntimeError):
    """A read or write against the station store failed."""


class StationStore(ABC):
    """Storage collaborator for station records and the history log.

    Each call is its own unit of work: nothing here spans stations.
    """

    @abstractmethod
    def get_station(self, station_id: str) -> Optional[StationRecord]:
        """Return the station record or None if it does not exist."""

    @abstractmethod
    def upsert_station(self, station_id: str, **fields: Any) -> StationRecord:
        """Update the given fields, inserting the record if it is missing."""

    @abstractmethod
    def append_history(
        self,
        station_id: str,
        status: StationStatus,
        oee: float,
        production_count: int,
        timestamp: datetime,
    ) -> None:
        """Append one audit row."""

    @abstractmethod
    def list_stations(self) -> List[StationRecord]:
        """All station records ordered by station id."""

    @abstractmethod
    def list_history(
        self, station_id: Optional[str] = None, limit: Optional[int] = None
    ) -> List[StationHistory]:
        """History rows oldest first, optionally filtered and capped to the newest N."""

    def latest_history(self) -> List[StationHistory]:
        """Newest history row per station, ordered by station id."""
        latest: Dict[str, StationHistory] = {}
        for row in self.list_history():
            latest[row.station_id] = row
        return [latest[k] for k in sorted(latest)]

    def history_df(
        self, station_id: Optional[str] = None, limit: Optional[int] = None
    ) -> pd.DataFrame:
        """History as a DataFrame (for export and analysis)."""
        rows = [h.model_dump() for h in self.list_history(station_id, limit)]
        df = pd.DataFrame(
            rows,
            columns=["station_id", "status", "oee", "production_count", "timestamp"],
        )
        if not df.empty:
            df["status"] = df["status"].map(
                lambda s: s.value if isinstance(s, StationStatus) else s
            )
        return df

    def close(self) -> None:
        """Release backend resources."""


def _validate_fields(fields: Dict[str, Any]) -> None:
    unknown = set(fields) - set(StationRecord.model_fields) - {"station_id"}
    if unknown:
        raise StorageError(f"Unknown station fields: {sorted(unknown)}")


class InMemoryStationStore(StationStore):
    """Dict-backed store. Useful for tests and dry runs."""

    def __init__(self):
        self._stations: Dict[str, StationRecord] = {}
        self._history: List[StationHistory] = []
        self.closed = False

    def get_station(self, station_id: str) -> Optional[StationRecord]:
        record = self._stations.get(station_id)
        return record.model_copy() if record else None

    def upsert_station(self, station_id: str, **fields: Any) -> StationRecord:
        _validate_fields(fields)
        fields["updated_at"] = datetime.now()
        current = self._stations.get(station_id)
        if current is None:
            record = StationRecord(station_id=station_id, **fields)
        else:
            record = current.model_copy(update=fields)
            # model_copy skips validation; coerce the enum explicitly
            record.status = StationStatus(record.status)
        self._stations[station_id] = record
        return record.model_copy()

    def append_history(
        self,
        station_id: str,
        status: StationStatus,
        oee: float,
        production_count: int,
        timestamp: datetime,
    ) -> None:
        self._history.append(
            StationHistory(
                station_id=station_id,
                status=status,
                oee=oee,
                production_count=production_count,
                timestamp=timestamp,
            )
        )

    def list_stations(self) -> List[StationRecord]:
        return [self._stations[k].model_copy() for k in sorted(self._stations)]

    def list_history(
        self, station_id: Optional[str] = None, limit: Optional[int] = None
    ) -> List[StationHistory]:
        rows = [
            h for h in self._history if station_id is None or h.station_id == station_id
        ]
        if limit is not None:
            rows = rows[-limit:] if limit > 0 else []
        return list(rows)

    def close(self) -> None:
        self.closed = True
