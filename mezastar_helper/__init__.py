"""Capture, confirm and keep Mezastar trainer IDs."""

from __future__ import annotations

from importlib import metadata
from typing import Optional, Sequence

from .app.main import main, run as _run

try:
    __version__ = metadata.version("mezastar-helper")
except metadata.PackageNotFoundError:  # pragma: no cover - local dev
    __version__ = "0.0.0"


def run(argv: Optional[Sequence[str]] = None) -> int:
    """Synchronous entry point used by the console script."""
    return _run(list(argv) if argv is not None else None)


__all__ = ["__version__", "main", "run"]
