"""
hwdiag Command Line Interface

Usage:
    hwdiag run [--no-upload] [--delay SECONDS]
    hwdiag health
    hwdiag list [--serial SERIAL] [--limit N]
    hwdiag stats

Global options: --config PATH, --verbose, --json
"""

import sys
import json
import signal
import argparse
import logging
from typing import List, Optional

from . import __version__
from .api_client import DiagnosticsAPIClient
from .collector import CollectionCancelled, DiagnosticCollector, DiagnosticStatus, collect_and_upload
from .errors import APIError
from .models import HardwareSnapshot, RemoteRecord
from .utils import load_config, setup_logging

logger = logging.getLogger("hwdiag.cli")

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_CANCELLED = 130


def _print_snapshot(snapshot: HardwareSnapshot) -> None:
    print("\nDiagnostic Results:")
    print(f"  Machine:   {snapshot.machine_name}")
    print(f"  Serial:    {snapshot.serial_number}")
    print(f"  CPU:       {snapshot.cpu_model} ({snapshot.cpu_cores} cores)")
    print(f"  RAM:       {snapshot.ram_used_gb:.1f} / {snapshot.ram_total_gb:.1f} GB")
    print(f"  Storage:   {snapshot.storage_used_gb:.1f} / {snapshot.storage_total_gb:.1f} GB")
    print(
        f"  Battery:   {snapshot.battery_health}, {snapshot.battery_percentage}% "
        f"({snapshot.battery_cycle_count} cycles)"
    )
    print(f"  Duration:  {snapshot.test_duration_seconds}s")


def _print_records(records: List[RemoteRecord]) -> None:
    if not records:
        print("No diagnostics found.")
        return
    for record in records:
        print(
            f"#{record.id:<6} {record.timestamp:<26} {record.serial_number:<16} "
            f"{record.cpu_model} | {record.battery_health} | {record.status}"
        )


def _progress_printer(status: DiagnosticStatus) -> None:
    if status.is_running:
        print(f"[{status.progress * 100:5.1f}%] {status.current_step.label}", flush=True)


def cmd_run(args: argparse.Namespace, config: dict) -> int:
    collector = DiagnosticCollector(config=config, step_delay=args.delay)
    if not args.json:
        collector.state.subscribe(_progress_printer)

    def on_sigint(signum, frame):
        collector.cancel()
        # Outside hardware reads, interrupt the blocking upload request
        if not collector.is_collecting:
            raise KeyboardInterrupt

    previous_handler = signal.signal(signal.SIGINT, on_sigint)

    try:
        if args.no_upload:
            snapshot = collector.run()
            outcome = None
        else:
            with DiagnosticsAPIClient(config=config) as client:
                outcome = collect_and_upload(collector, client)
            snapshot = outcome.snapshot
    except (CollectionCancelled, KeyboardInterrupt):
        print("\nDiagnostic cancelled.", file=sys.stderr)
        return EXIT_CANCELLED
    finally:
        signal.signal(signal.SIGINT, previous_handler)
        collector.close()

    if args.json:
        payload = {"snapshot": snapshot.to_dict()}
        if outcome is not None:
            payload["upload"] = outcome.upload.to_dict() if outcome.upload else None
            payload["upload_error"] = outcome.upload_error
        print(json.dumps(payload, indent=2))
    else:
        _print_snapshot(snapshot)
        if outcome is not None and outcome.upload:
            print(f"\nDiagnostic stored - ID: {outcome.upload.id}")

    if outcome is not None and outcome.upload_error:
        print(f"\n{outcome.upload_error}", file=sys.stderr)
        return EXIT_ERROR
    return EXIT_OK


def cmd_health(args: argparse.Namespace, config: dict) -> int:
    with DiagnosticsAPIClient(config=config) as client:
        healthy = client.health_check()
        base_url = client.base_url

    if args.json:
        print(json.dumps({"healthy": healthy, "base_url": base_url}))
    else:
        print(f"Backend {base_url}: {'connected' if healthy else 'unavailable'}")
    return EXIT_OK if healthy else EXIT_ERROR


def cmd_list(args: argparse.Namespace, config: dict) -> int:
    with DiagnosticsAPIClient(config=config) as client:
        if args.serial:
            records = client.list_by_serial(args.serial)
        else:
            records = client.list_all(limit=args.limit)

    if args.json:
        print(json.dumps([record.to_dict() for record in records], indent=2))
    else:
        _print_records(records)
    return EXIT_OK


def cmd_stats(args: argparse.Namespace, config: dict) -> int:
    with DiagnosticsAPIClient(config=config) as client:
        stats = client.get_statistics()

    if args.json:
        print(json.dumps(stats.to_dict(), indent=2))
    else:
        print("Statistics:")
        print(f"  Total tests:      {stats.total_tests}")
        print(f"  Completed:        {stats.completed_tests}")
        print(f"  Failed:           {stats.failed_tests}")
        print(f"  Average duration: {stats.average_test_duration:.1f}s")
        print(f"  Unique machines:  {stats.unique_machines}")
    return EXIT_OK


def _positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {number}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="hwdiag",
        description="hwdiag - Collect a hardware diagnostic and send it to the diagnostics backend"
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--config",
        type=str,
        help="Path to configuration file",
        default=None
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose output"
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print machine-readable JSON"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Run a diagnostic and upload it")
    run_parser.add_argument(
        "--no-upload",
        action="store_true",
        help="Collect only, do not contact the backend"
    )
    run_parser.add_argument(
        "--delay",
        type=float,
        default=None,
        help="Seconds to pause between steps (default from config)"
    )
    run_parser.set_defaults(handler=cmd_run)

    health_parser = subparsers.add_parser("health", help="Check backend availability")
    health_parser.set_defaults(handler=cmd_health)

    list_parser = subparsers.add_parser("list", help="List stored diagnostics")
    list_parser.add_argument("--serial", type=str, default=None, help="Only this serial number")
    list_parser.add_argument("--limit", type=_positive_int, default=None, help="Maximum number of records")
    list_parser.set_defaults(handler=cmd_list)

    stats_parser = subparsers.add_parser("stats", help="Show backend statistics")
    stats_parser.set_defaults(handler=cmd_stats)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the hwdiag command."""
    parser = build_parser()
    args = parser.parse_args(argv)

    config = load_config(args.config)
    if args.verbose:
        config["debug"]["verbose"] = True
        config["debug"]["log_level"] = "DEBUG"
    setup_logging(config)

    try:
        return args.handler(args, config)
    except APIError as e:
        logger.debug("Command failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())
