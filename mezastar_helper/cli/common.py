from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path


LOG_LEVELS: dict[str, int] = {
    "critical": logging.CRITICAL,
    "error": logging.ERROR,
    "warning": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
}


def add_common_cli_arguments(parser: argparse.ArgumentParser) -> None:
    """Options shared by every sub-command.

    Defaults are None so values from ``config.txt`` apply unless the flag is
    given explicitly.
    """
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Configuration file (default: config.txt in the project root)",
    )

    parser.add_argument(
        "--db",
        dest="db_path",
        type=Path,
        default=None,
        help="SQLite file holding trainer identities",
    )

    parser.add_argument(
        "--log-level",
        choices=sorted(LOG_LEVELS.keys()),
        default=None,
        help="Logging verbosity (default: from config, else info)",
    )

    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Optional path to write rotating logs",
    )


def camera_device(value: str) -> int | str:
    """Accept an index (``0``) or a device path (``/dev/video2``)."""
    text = value.strip()
    if not text:
        raise argparse.ArgumentTypeError("Camera device must not be empty")
    if text.isdigit():
        return int(text)
    return text


def _positive_number(value: str, typ: type, name: str):
    try:
        parsed = typ(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Value must be a {name}") from exc
    if parsed <= 0:
        raise argparse.ArgumentTypeError("Value must be positive")
    return parsed


def positive_int(value: str) -> int:
    return _positive_number(value, int, "integer")


async def prompt(message: str) -> str:
    """Read a line from stdin without blocking the event loop.

    Raises EOFError when stdin is closed.
    """
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, lambda: input(message))


def echo(message: str = "") -> None:
    print(message, flush=True)


def echo_error(message: str) -> None:
    print(f"Error: {message}", file=sys.stderr, flush=True)


def install_exception_handlers(logger: logging.Logger) -> None:
    """Route uncaught exceptions to the log instead of a bare traceback."""

    def handle_exception(exc_type, exc_value, exc_traceback):
        if issubclass(exc_type, KeyboardInterrupt):
            sys.__excepthook__(exc_type, exc_value, exc_traceback)
            return
        logger.critical(
            "Uncaught exception",
            exc_info=(exc_type, exc_value, exc_traceback)
        )

    sys.excepthook = handle_exception


__all__ = [
    "LOG_LEVELS",
    "add_common_cli_arguments",
    "camera_device",
    "echo",
    "echo_error",
    "install_exception_handlers",
    "positive_int",
    "prompt",
]
