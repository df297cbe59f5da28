"""CLI entry point for rcsvlog."""

import argparse
import asyncio
import json
import logging
import sys
import traceback
from datetime import datetime
from pathlib import Path
from typing import Any

from .config import load_config
from .exceptions import LocalWriteFailure
from .logger import CSVLogger
from .sync import SyncStatus


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "component": record.name,
            "message": record.getMessage(),
        }

        # Add exception info if present
        if record.exc_info:
            log_data["exception"] = "".join(traceback.format_exception(*record.exc_info))

        try:
            return json.dumps(log_data)
        except (TypeError, ValueError):
            log_data["message"] = str(log_data["message"])
            return json.dumps(log_data)


def setup_logging(verbose: bool = False, log_level: str | None = None, json_output: bool = False) -> None:
    """Configure logging.

    Args:
        verbose: Enable debug logging (ignored if log_level is set).
        log_level: Explicit log level (warning, info, debug).
        json_output: Output logs as JSON lines for machine parsing.
    """
    if log_level:
        level_map = {
            "warning": logging.WARNING,
            "info": logging.INFO,
            "debug": logging.DEBUG,
        }
        level = level_map.get(log_level, logging.INFO)
    else:
        level = logging.DEBUG if verbose else logging.WARNING

    handler = logging.StreamHandler()
    if json_output:
        handler.setFormatter(JSONFormatter())
    else:
        formatter = logging.Formatter(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        handler.setFormatter(formatter)

    logging.basicConfig(
        level=level,
        handlers=[handler],
    )


def parse_value(text: str) -> Any:
    """Turn a command line token into a bool, int, float or str."""
    lowered = text.lower()
    if lowered in ("true", "false"):
        return lowered == "true"
    for kind in (int, float):
        try:
            return kind(text)
        except ValueError:
            pass
    return text


def _print_result(result) -> None:
    if result.status == SyncStatus.SUCCESS:
        print(f"{result.log_name}: pushed {result.rows_pushed} rows")
    else:
        print(f"{result.log_name}: {result.status.value} ({result.error})")


async def cmd_log(args: argparse.Namespace) -> int:
    """Log one row."""
    config = load_config(args.config)
    csv_logger = CSVLogger.from_config(config)

    try:
        written = await csv_logger.log([parse_value(v) for v in args.values])
        print(f"Wrote {written} bytes to {csv_logger.filename}")
        if csv_logger.syncer.transport is not None:
            _print_result(await csv_logger.sync())
    except LocalWriteFailure as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        await csv_logger.aclose()

    return 0


async def cmd_stdin(args: argparse.Namespace) -> int:
    """Log comma-separated rows read from standard input."""
    config = load_config(args.config)
    csv_logger = CSVLogger.from_config(config)
    await csv_logger.start()

    loop = asyncio.get_running_loop()
    failures = 0
    try:
        while True:
            line = await loop.run_in_executor(None, sys.stdin.readline)
            if not line:
                break
            line = line.rstrip("\n")
            if not line:
                continue
            try:
                await csv_logger.log([parse_value(v) for v in line.split(",")])
            except LocalWriteFailure as e:
                failures += 1
                print(f"Error: {e}", file=sys.stderr)

        if csv_logger.syncer.transport is not None:
            _print_result(await csv_logger.sync())
    except KeyboardInterrupt:
        print("\nShutting down...")
    finally:
        await csv_logger.aclose()

    return 1 if failures else 0


async def cmd_sync(args: argparse.Namespace) -> int:
    """Push pending rows of every tracked log."""
    config = load_config(args.config)
    csv_logger = CSVLogger.from_config(config)

    if csv_logger.syncer.transport is None:
        print("Error: no server URL configured", file=sys.stderr)
        return 1

    try:
        extra = [csv_logger.filename] if csv_logger.filename else []
        results = await csv_logger.syncer.sync_all(extra)
    finally:
        await csv_logger.aclose()

    reported = [
        r for r in results if r.status != SyncStatus.SUCCESS or r.rows_pushed
    ]
    if not reported:
        print("Nothing to sync")
    for result in reported:
        _print_result(result)

    return 0 if all(r.status == SyncStatus.SUCCESS for r in results) else 1


def cmd_status(args: argparse.Namespace) -> int:
    """Show ledger and sync configuration."""
    config = load_config(args.config)
    csv_logger = CSVLogger.from_config(config)
    status = csv_logger.get_status()
    status["timestamp"] = datetime.now().isoformat()

    if args.json:
        print(json.dumps(status, indent=2))
        return 0

    print("rcsvlog Status")
    print("==============")
    print(f"Log file: {status['filename']}")
    print(f"Header: {', '.join(status['header']) or '(none)'}")
    print(f"Timestamp: {'on' if status['log_time'] else 'off'}", end="")
    print(" (with milliseconds)" if status["log_millis"] else "")
    print(f"Precision: {status['precision']}")
    print()
    print(f"Remote: {status['server_url'] or 'not configured'}")
    print(f"Ledger: {csv_logger.ledger.path}")
    logs = status["sync"]["logs"]
    if not logs:
        print("  No logs tracked yet")
    for name, entry in logs.items():
        print(
            f"  - {name}: local={entry['local_count']} "
            f"remote={entry['remote_count']} pending={entry['pending']}"
        )

    return 0


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        prog="rcsvlog",
        description="Offline-first CSV logger with remote sync",
    )
    parser.add_argument(
        "-c", "--config",
        type=Path,
        default=None,
        help="Path to config file (default: built-in defaults)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["warning", "info", "debug"],
        default=None,
        help="Set log level explicitly (overrides -v/--verbose)",
    )
    parser.add_argument(
        "--log-json",
        action="store_true",
        help="Output logs as JSON for machine parsing",
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Log command
    log_parser = subparsers.add_parser("log", help="Log one row")
    log_parser.add_argument("values", nargs="*", help="Row values")
    log_parser.set_defaults(func=cmd_log)

    # Stdin command
    stdin_parser = subparsers.add_parser(
        "stdin", help="Log comma-separated rows read from stdin"
    )
    stdin_parser.set_defaults(func=cmd_stdin)

    # Sync command
    sync_parser = subparsers.add_parser("sync", help="Push pending rows of all logs")
    sync_parser.set_defaults(func=cmd_sync)

    # Status command
    status_parser = subparsers.add_parser("status", help="Show ledger status")
    status_parser.add_argument(
        "--json",
        action="store_true",
        help="Output status as JSON",
    )
    status_parser.set_defaults(func=cmd_status)

    args = parser.parse_args()
    setup_logging(args.verbose, args.log_level, args.log_json)

    if not args.command:
        parser.print_help()
        return 1

    func = args.func
    if asyncio.iscoroutinefunction(func):
        return asyncio.run(func(args))
    else:
        return func(args)


if __name__ == "__main__":
    sys.exit(main())
