#!/usr/bin/env python3
"""
CLI for watching directories for changes.

Usage:
    python -m src.cli watch /path/to/folder1 /path/to/folder2
    python -m src.cli watch --json --latency 0.2 ./documents
"""

import argparse
import json
import logging
import queue
import signal
import sys
import threading
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from src.watch import (
    FileEvent,
    QueueClosedError,
    WatcherConfig,
    WatcherError,
    new_watcher,
)


logger = logging.getLogger("cli")

PROJECT_ENV_FILE = Path(__file__).parent.parent / ".env"


class GracefulShutdown:
    """Handle graceful shutdown on SIGINT/SIGTERM."""

    def __init__(self):
        self.should_exit = threading.Event()
        signal.signal(signal.SIGINT, self._handler)
        signal.signal(signal.SIGTERM, self._handler)

    def _handler(self, signum, frame):
        logger.info("Received shutdown signal, stopping...")
        self.should_exit.set()


def load_env(env_file: Path = PROJECT_ENV_FILE) -> None:
    """Load .env from the project root, falling back to a search from the cwd."""
    if env_file.exists():
        load_dotenv(env_file)
    else:
        load_dotenv()


def format_event(event: FileEvent, as_json: bool = False) -> str:
    """Render one event as a line of output."""
    if as_json:
        return json.dumps(event.to_dict())
    flags = "|".join(event.to_dict()["flags"]) or "NONE"
    return f"{flags}\t{event.path}"


def build_config(args) -> WatcherConfig:
    """Start from WATCH_* environment settings and apply command line overrides."""
    config = WatcherConfig.from_env()
    if args.latency is not None:
        config.latency = args.latency
    if args.polling:
        config.backend = "polling"
    if args.ignore:
        config.ignore_patterns = list(config.ignore_patterns) + args.ignore
    return config


def _log_errors(errors) -> None:
    for error in errors:
        logger.error(f"Watcher error: {error}")


def cmd_watch(args) -> int:
    """Watch the given roots and print events until interrupted."""
    roots: List[Path] = [Path(r).resolve() for r in args.roots]

    for root in roots:
        if not root.exists():
            logger.error(f"Root path does not exist: {root}")
            return 1
        if not root.is_dir():
            logger.error(f"Root path is not a directory: {root}")
            return 1

    try:
        watcher = new_watcher(build_config(args))
    except WatcherError as e:
        logger.error(f"Invalid configuration: {e}")
        return 1

    shutdown = GracefulShutdown()

    with watcher:
        error_thread = threading.Thread(
            target=_log_errors, args=(watcher.errors(),), name="ErrorLogger", daemon=True
        )
        error_thread.start()

        try:
            for root in roots:
                watcher.add(root)
        except WatcherError as e:
            logger.error(f"Failed to watch: {e}")
            return 1

        logger.info(f"Watching {len(roots)} root(s)")
        for root in roots:
            logger.info(f"  - {root}")
        logger.info("Press Ctrl+C to stop")

        events = watcher.events()
        while not shutdown.should_exit.is_set():
            try:
                event = events.get(timeout=0.5)
            except queue.Empty:
                continue
            except QueueClosedError:
                break
            print(format_event(event, args.json), flush=True)

    logger.info("Watcher stopped")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Recursive filesystem change watcher",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Print changes under two folders
  python -m src.cli watch ./documents ./notes

  # JSON lines, polling backend, ignore editor swap files
  python -m src.cli watch --json --polling --ignore "*.swp" ./documents
        """,
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    watch_parser = subparsers.add_parser("watch", help="Watch directories and print changes")
    watch_parser.add_argument("roots", nargs="+", help="Directories to watch")
    watch_parser.add_argument("--latency", type=float, default=None, help="Backend batching latency in seconds")
    watch_parser.add_argument("--polling", action="store_true", help="Use the polling backend")
    watch_parser.add_argument("--ignore", action="append", default=[], help="Glob pattern to ignore (repeatable)")
    watch_parser.add_argument("--json", action="store_true", help="Print one JSON object per event")
    watch_parser.set_defaults(func=cmd_watch)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    load_env()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    args = build_parser().parse_args(argv)

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
