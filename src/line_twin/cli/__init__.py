"""CLI commands for line-twin."""

from line_twin.cli.history import history
from line_twin.cli.seed import seed, seed_stations
from line_twin.cli.status import status

__all__ = [
    "history",
    "seed",
    "seed_stations",
    "status",
]
