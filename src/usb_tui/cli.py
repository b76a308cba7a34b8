"""Command line entry point for usb-tui."""

from __future__ import annotations

import argparse
import logging
import shlex
import sys
from pathlib import Path
from typing import Sequence

from textual.logging import TextualHandler

from .app import DEFAULT_INTERVAL, run
from .osutils import DEFAULT_COMMAND, DEFAULT_TIMEOUT
from .persistence import DEFAULT_CONFIG_PATH

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _positive_float(value: str) -> float:
    try:
        parsed = float(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"expected a number, got {value!r}") from exc
    if parsed <= 0:
        raise argparse.ArgumentTypeError(f"expected a positive number, got {value!r}")
    return parsed


def _command(value: str) -> list[str]:
    argv = shlex.split(value)
    if not argv:
        raise argparse.ArgumentTypeError("enumeration command must not be empty")
    return argv


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="usb-tui",
        description="Live terminal view of attached USB devices, highlighting DFU/bootloader mode.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help=f"configuration file (default: {DEFAULT_CONFIG_PATH})",
    )
    parser.add_argument(
        "--interval",
        type=_positive_float,
        default=DEFAULT_INTERVAL,
        help=f"seconds between scans (default: {DEFAULT_INTERVAL})",
    )
    parser.add_argument(
        "--timeout",
        type=_positive_float,
        default=DEFAULT_TIMEOUT,
        help=f"seconds before a scan is abandoned (default: {DEFAULT_TIMEOUT})",
    )
    parser.add_argument(
        "--command",
        type=_command,
        default=list(DEFAULT_COMMAND),
        help="enumeration command to run (default: %(default)s)",
    )
    parser.add_argument("--log-file", type=Path, default=None, help="write log records to this file")
    parser.add_argument("-v", "--verbose", action="store_true", help="log debug messages")
    return parser


def configure_logging(log_file: Path | None, verbose: bool) -> None:
    """Send log records to *log_file*, or to the Textual devtools console."""

    level = logging.DEBUG if verbose else logging.INFO
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handler: logging.Handler = logging.FileHandler(log_file, encoding="utf-8")
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
    else:
        handler = TextualHandler()
    logging.basicConfig(level=level, handlers=[handler], force=True)


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        configure_logging(args.log_file, args.verbose)
        return run(
            args.config,
            command=args.command,
            interval=args.interval,
            timeout=args.timeout,
        )
    except Exception as exc:
        print(f"usb-tui: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
