"""Human-readable status table for the production line."""

from datetime import datetime
from typing import Callable, List, Optional

from line_twin.models import StationStatus
from line_twin.simulator import LineSimulator, StationSnapshot

STATUS_ICONS = {
    StationStatus.RUNNING: "🟢",
    StationStatus.STOPPED: "🔴",
    StationStatus.ERROR: "❌",
    StationStatus.MAINTENANCE: "🔧",
}

RULE_WIDTH = 80


def render_status_table(
    snapshots: List[StationSnapshot],
    completed_units: Optional[int] = None,
    last_station_id: Optional[str] = None,
    at: Optional[datetime] = None,
) -> str:
    """Format station snapshots as a fixed-width table.

    Args:
        snapshots: Records with buffer levels (buffer None renders as "-")
        completed_units: Line throughput for the footer (omitted if None)
        last_station_id: Station whose buffer is the finished-goods buffer
        at: Time shown in the header (default: now)
    """
    at = at or datetime.now()
    lines = [
        f"\n📊 [{at.strftime('%H:%M:%S')}] Production line status:",
        "─" * RULE_WIDTH,
        "Station   | Type         | Status      | OEE     | Produced     | Buffer",
        "─" * RULE_WIDTH,
    ]

    for snap in snapshots:
        rec = snap.record
        icon = STATUS_ICONS.get(rec.status, "⚪")
        oee = f"{rec.oee:.1f}".rjust(5)
        progress = f"{rec.production_count}/{rec.target_count}".rjust(12)
        buffer = "-" if snap.buffer is None else str(snap.buffer)
        if rec.station_id == last_station_id:
            buffer = f"📦 {buffer}"
        lines.append(
            f"{icon} {rec.station_id.ljust(7)} | {rec.type.ljust(12)} | "
            f"{rec.status.value.ljust(11)} | {oee}%  | {progress} | {buffer}"
        )

    lines.append("─" * RULE_WIDTH)
    if completed_units is not None:
        lines.append(f"📦 Completed units: {completed_units}")
    return "\n".join(lines)


class StatusReporter:
    """Renders simulator snapshots to a sink (stdout by default)."""

    def __init__(self, sink: Optional[Callable[[str], None]] = None):
        self.sink = sink or print
        self.reports_emitted = 0

    def report(self, simulator: LineSimulator, at: Optional[datetime] = None) -> str:
        """Render the current line state and send it to the sink."""
        station_ids = simulator.line.station_ids
        text = render_status_table(
            simulator.snapshot(),
            completed_units=simulator.completed_units,
            last_station_id=station_ids[-1] if station_ids else None,
            at=at,
        )
        self.sink(text)
        self.reports_emitted += 1
        return text
