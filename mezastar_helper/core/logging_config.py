"""Root logging setup for one helper invocation.

stdout carries command output, so console records always go to stderr.
"""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Union

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"
LOG_FILE_MAX_BYTES = 500 * 1024
LOG_FILE_BACKUPS = 2

# Third-party loggers that are chatty at DEBUG while decoding images.
QUIET_LOGGERS = ("PIL",)


def _level(level: Union[int, str]) -> int:
    if isinstance(level, int):
        return level
    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        raise ValueError(f"Unknown log level '{level}'")
    return numeric


def _build_handlers(log_file: Optional[Path]) -> list[logging.Handler]:
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            RotatingFileHandler(
                log_file,
                maxBytes=LOG_FILE_MAX_BYTES,
                backupCount=LOG_FILE_BACKUPS,
                encoding="utf-8",
            )
        )
    return handlers


def configure_logging(
    level: Union[int, str] = "warning",
    *,
    force: bool = False,
    log_file: Optional[Union[str, Path]] = None,
) -> None:
    """Install the helper's handlers on the root logger.

    Without ``force`` an already configured root logger only has its level
    changed; with it, existing handlers are closed and replaced.
    """
    numeric_level = _level(level)
    root = logging.getLogger()

    if root.handlers and not force:
        root.setLevel(numeric_level)
        return

    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT)
    for handler in _build_handlers(Path(log_file) if log_file else None):
        handler.setFormatter(formatter)
        root.addHandler(handler)
    root.setLevel(numeric_level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.INFO))


__all__ = ["configure_logging", "LOG_FORMAT", "LOG_DATEFMT"]
