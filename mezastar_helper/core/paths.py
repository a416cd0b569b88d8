"""Centralized path constants for the helper."""

from __future__ import annotations

import os
from pathlib import Path

# Project root (holds config.txt and the sample support registry)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

# Configuration
CONFIG_PATH = PROJECT_ROOT / "config.txt"

# User-specific state (allows running from read-only project directories)
_USER_STATE_ENV = os.environ.get("MEZASTAR_HELPER_STATE_DIR")
USER_STATE_DIR = Path(_USER_STATE_ENV).expanduser() if _USER_STATE_ENV else (Path.home() / ".mezastar_helper")
USER_CONFIG_OVERRIDES_DIR = USER_STATE_DIR / "config_overrides"
DEFAULT_DB_PATH = USER_STATE_DIR / "mezastar_helper.sqlite3"

# Support metadata document shipped next to the package
DEFAULT_SUPPORT_REGISTRY = PROJECT_ROOT / "supports.registry.json"


__all__ = [
    "PROJECT_ROOT",
    "CONFIG_PATH",
    "USER_STATE_DIR",
    "USER_CONFIG_OVERRIDES_DIR",
    "DEFAULT_DB_PATH",
    "DEFAULT_SUPPORT_REGISTRY",
]
