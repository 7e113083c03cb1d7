"""Entry point for running the line simulator."""

import argparse
import logging
import sys
from typing import List, Optional

from line_twin.cli.history import history as history_func
from line_twin.cli.seed import seed as seed_func
from line_twin.cli.seed import seed_stations
from line_twin.cli.status import status as status_func
from line_twin.engine import SimulationEngine
from line_twin.loader import ConfigError, ConfigLoader
from line_twin.storage import open_store
from line_twin.storage.base import StorageError

logger = logging.getLogger(__name__)


def run_line(
    line_name: str = "body_shop",
    config_dir: str = "config",
    db_path: Optional[str] = None,
    max_ticks: Optional[int] = None,
    fast: bool = False,
    random_seed: Optional[int] = None,
    seed_missing: bool = True,
) -> int:
    """Run a line until signalled (or for max_ticks) and return an exit code.

    Args:
        line_name: Name of the line config (without .yaml extension)
        config_dir: Path to config directory
        db_path: DuckDB file (default: storage.db_path from defaults.yaml)
        max_ticks: Stop after this many ticks
        fast: Use virtual time instead of pacing against the wall clock
        random_seed: Override the configured random seed
        seed_missing: Create station records that do not exist yet

    Returns:
        0 on graceful stop, 1 if startup failed
    """
    try:
        resolved = ConfigLoader(config_dir).resolve_line(line_name)
        if random_seed is not None:
            resolved.simulation = resolved.simulation.model_copy(
                update={"random_seed": random_seed}
            )
        store = open_store(db_path or resolved.db_path)
    except (ConfigError, StorageError) as e:
        logger.error("Startup failed: %s", e)
        return 1

    params = resolved.simulation
    print("═" * 80)
    print(f"🏭 PRODUCTION LINE SIMULATION: {resolved.line.name}")
    print("═" * 80)
    print(f"📋 Flow: {' → '.join(resolved.line.station_ids)} → 📦")
    print(f"⚙️  Update interval: {params.update_interval_ms / 1000:g} s")
    print(f"⚙️  Error probability: {params.error_probability * 100:.1f}%")
    print(f"⚙️  Maintenance probability: {params.maintenance_probability * 100:.1f}%")
    print("═" * 80)

    engine = SimulationEngine(resolved, store, realtime=not fast)
    try:
        if seed_missing:
            seed_stations(store, resolved.line, only_missing=True)
        if max_ticks is None:
            print("\n💡 Press Ctrl+C to stop the simulation\n")
        code = engine.run(max_ticks=max_ticks, handle_signals=True)
    except StorageError as e:
        logger.error("Startup failed: %s", e)
        store.close()
        return 1

    print(f"\n🛑 Simulation stopped after {engine.tick_count} ticks")
    print(f"📦 Completed units: {engine.simulator.completed_units}")
    return code


def _run_command(args: argparse.Namespace) -> int:
    """Handle 'run' subcommand."""
    return run_line(
        line_name=args.line,
        config_dir=args.config,
        db_path=args.db_path,
        max_ticks=args.ticks,
        fast=args.fast,
        random_seed=args.seed,
        seed_missing=not args.no_seed,
    )


def _seed_command(args: argparse.Namespace) -> int:
    """Handle 'seed' subcommand."""
    try:
        seed_func(
            line_name=args.line,
            config_dir=args.config,
            db_path=args.db_path,
            only_missing=args.only_missing,
        )
    except (ConfigError, StorageError) as e:
        logger.error("Seeding failed: %s", e)
        return 1
    return 0


def _status_command(args: argparse.Namespace) -> int:
    """Handle 'status' subcommand."""
    try:
        status_func(db_path=args.db_path)
    except StorageError as e:
        logger.error("Cannot read station status: %s", e)
        return 1
    return 0


def _history_command(args: argparse.Namespace) -> int:
    """Handle 'history' subcommand."""
    try:
        history_func(
            db_path=args.db_path,
            station_id=args.station,
            limit=None if args.limit <= 0 else args.limit,
            export=args.export,
        )
    except StorageError as e:
        logger.error("Cannot read history: %s", e)
        return 1
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with all subcommands."""
    parser = argparse.ArgumentParser(
        prog="line-twin",
        description="Tick-based production line simulator",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands:
  run       Run the simulator against the station store
  seed      Create or reset station records for a line
  status    Print the persisted station table
  history   Show or export the station history log

Examples:
  python -m line_twin seed --line body_shop
  python -m line_twin run --line body_shop
  python -m line_twin run --line two_station --fast --ticks 100
  python -m line_twin history --station ST03 --export output/st03.csv
        """,
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # === 'run' subcommand ===
    run_parser = subparsers.add_parser(
        "run",
        help="Run the simulator",
        description="Run the line simulator until Ctrl+C (or --ticks).",
    )
    run_parser.add_argument(
        "--line", default="body_shop", help="Line config name (default: body_shop)"
    )
    run_parser.add_argument(
        "--config", default="config", help="Config directory path (default: config)"
    )
    run_parser.add_argument(
        "--db-path", default=None, help="DuckDB file (default: from defaults.yaml)"
    )
    run_parser.add_argument(
        "--ticks", type=int, default=None, help="Stop after N ticks"
    )
    run_parser.add_argument(
        "--fast",
        action="store_true",
        help="Run in virtual time instead of real time",
    )
    run_parser.add_argument(
        "--seed", type=int, default=None, help="Random seed override"
    )
    run_parser.add_argument(
        "--no-seed",
        action="store_true",
        help="Do not create missing station records before running",
    )
    run_parser.set_defaults(func=_run_command)

    # === 'seed' subcommand ===
    seed_parser = subparsers.add_parser(
        "seed",
        help="Create or reset station records",
        description="Write one station record per configured station.",
    )
    seed_parser.add_argument(
        "--line", default="body_shop", help="Line config name (default: body_shop)"
    )
    seed_parser.add_argument(
        "--config", default="config", help="Config directory path (default: config)"
    )
    seed_parser.add_argument(
        "--db-path", default=None, help="DuckDB file (default: from defaults.yaml)"
    )
    seed_parser.add_argument(
        "--only-missing",
        action="store_true",
        help="Leave existing station records untouched",
    )
    seed_parser.set_defaults(func=_seed_command)

    # === 'status' subcommand ===
    status_parser = subparsers.add_parser(
        "status",
        help="Print station table",
        description="Print the persisted state of every station.",
    )
    status_parser.add_argument(
        "--db-path", default=None, help="DuckDB file (default: ./line_twin.duckdb)"
    )
    status_parser.set_defaults(func=_status_command)

    # === 'history' subcommand ===
    history_parser = subparsers.add_parser(
        "history",
        help="Show station history",
        description="Show or export the station history log.",
    )
    history_parser.add_argument(
        "--db-path", default=None, help="DuckDB file (default: ./line_twin.duckdb)"
    )
    history_parser.add_argument("--station", default=None, help="Station id filter")
    history_parser.add_argument(
        "--limit", type=int, default=20, help="Newest N rows, 0 for all (default: 20)"
    )
    history_parser.add_argument(
        "--export", default=None, help="Write rows to this CSV file"
    )
    history_parser.set_defaults(func=_history_command)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point with subcommands."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        return 2
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
