#!/usr/bin/env python3
"""Main entry point for nodepulse."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from .config import HOST_KEY_POLICIES, Settings, load_settings
from .exceptions import ConfigError
from .executor import RemoteExecutor
from .hosts import HostResolver
from .orchestrator import Orchestrator
from .poller import local_now, utc_now
from .status import NodeSnapshot, StatusBoard
from .targets import Roster

logger = logging.getLogger("nodepulse")

# ANSI colors for different nodes
COLORS = [
    "\033[36m",  # Cyan
    "\033[33m",  # Yellow
    "\033[35m",  # Magenta
    "\033[32m",  # Green
    "\033[34m",  # Blue
    "\033[91m",  # Light Red
    "\033[96m",  # Light Cyan
    "\033[93m",  # Light Yellow
]
RESET = "\033[0m"


def setup_logging(verbose: bool = False, log_file: Path | None = None) -> None:
    """Configure the nodepulse logger."""
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    if log_file:
        handler: logging.Handler = logging.FileHandler(log_file)
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(message)s")
        )
    else:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    logger.addHandler(handler)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="nodepulse",
        description="Periodically run a command on SSH nodes and show the latest output",
    )
    parser.add_argument("command", nargs="?", help="Command to execute on every node")
    parser.add_argument(
        "-s",
        "--ssh-config",
        type=Path,
        help='Path to ssh config file. Defaults to "~/.ssh/config"',
    )
    parser.add_argument(
        "-n",
        "--nodes",
        help='Comma separated list of nodes, each given as "node1" or "1" (default: every node in the roster)',
    )
    parser.add_argument(
        "-i", "--interval", type=float, help="Seconds between runs on a node (default: 10)"
    )
    parser.add_argument(
        "-t",
        "--timeout",
        type=float,
        help="Seconds allowed for connecting and for reading output (default: 10)",
    )
    parser.add_argument("-c", "--config", type=Path, help="Path to YAML settings file")
    parser.add_argument(
        "--roster",
        help="Comma separated node names that numeric selectors refer to "
        "(default: node1,node2,node3,node4)",
    )
    parser.add_argument(
        "--host-key-policy",
        choices=HOST_KEY_POLICIES,
        help="Host key verification (default: ignore)",
    )
    parser.add_argument("--known-hosts", type=Path, help="known_hosts file to verify against")
    parser.add_argument(
        "--count", type=int, help="Stop after this many runs per node (default: run forever)"
    )
    parser.add_argument(
        "--utc", action="store_true", default=None, help="Stamp output in UTC instead of local time"
    )
    parser.add_argument("--dashboard", action="store_true", help="Run with the TUI dashboard")
    parser.add_argument("--log-file", type=Path, help="Write logs to this file instead of stderr")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser


def resolve_settings(args: argparse.Namespace) -> Settings:
    """Combine defaults, the settings file and command line flags."""
    settings = load_settings(args.config) if args.config else Settings()
    settings = settings.merged(
        command=args.command,
        nodes=args.nodes.split(",") if args.nodes else None,
        roster=args.roster.split(",") if args.roster else None,
        interval=args.interval,
        timeout=args.timeout,
        ssh_config=args.ssh_config,
        host_key_policy=args.host_key_policy,
        known_hosts=args.known_hosts,
        utc=args.utc,
        log_file=args.log_file,
    )
    settings.validate()
    return settings


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    if args.count is not None and args.count < 1:
        print("Configuration error: --count must be at least 1", file=sys.stderr)
        return 1

    try:
        settings = resolve_settings(args)
        setup_logging(args.verbose, settings.log_file)
        roster = Roster(settings.roster)
        targets = roster.select(settings.nodes) if settings.nodes else roster.all()
        resolver = HostResolver(settings.ssh_config)
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    if settings.host_key_policy == "ignore":
        logger.warning("Host keys are not verified (host_key_policy: ignore)")

    board = StatusBoard(targets)
    orchestrator = Orchestrator(
        settings.command,
        targets,
        resolver.resolve,
        board,
        executor=RemoteExecutor(settings.host_key_policy, settings.known_hosts),
        interval=settings.interval,
        timeout=settings.timeout,
        clock=utc_now if settings.utc else local_now,
    )

    try:
        orchestrator.prepare()
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1
    for name, message in orchestrator.errors.items():
        print(f"Skipping {name}: {message}", file=sys.stderr)

    if not args.dashboard:
        # Run without TUI dashboard (default)
        return _run_headless(orchestrator, board, args.count)

    # Deferred so headless runs do not pay for importing textual
    from .dashboard import Dashboard

    app = Dashboard(orchestrator, board, max_ticks=args.count)
    app.run()
    return 0


def _run_headless(orchestrator: Orchestrator, board: StatusBoard, count: int | None) -> int:
    """Print every status update to stdout."""
    node_colors = {
        snapshot.name: COLORS[i % len(COLORS)] for i, snapshot in enumerate(board.snapshot())
    }

    def on_update(snapshot: NodeSnapshot) -> None:
        if snapshot.error or not snapshot.ticks:
            return
        color = node_colors.get(snapshot.name, "")
        for line in snapshot.display_lines():
            print(f"{color}[{snapshot.name}]{RESET} {line}", flush=True)

    board.subscribe(on_update)

    try:
        asyncio.run(orchestrator.run(count))
    except KeyboardInterrupt:
        pass

    return 0


if __name__ == "__main__":
    sys.exit(main())
