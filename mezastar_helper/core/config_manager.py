"""Reads and updates the helper's ``key = value`` config file.

The project copy of ``config.txt`` may sit in a read-only checkout. Values
that cannot be written there are kept in a per-user override file named
after the config's resolved path, and overrides win when reading.
"""

from __future__ import annotations

import asyncio
import errno
import hashlib
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional

import aiofiles

from .logging_utils import get_module_logger
from .paths import USER_CONFIG_OVERRIDES_DIR

logger = get_module_logger("ConfigManager")

CONFIG_KEYS = (
    "db_path",
    "log_level",
    "log_file",
    "camera_device",
    "camera_width",
    "camera_height",
    "camera_fps",
    "support_registry",
)


def parse_config_lines(lines: Iterable[str]) -> Dict[str, str]:
    """``#`` starts a comment anywhere; one level of quotes is stripped."""
    config: Dict[str, str] = {}
    for raw in lines:
        line = raw.split("#", 1)[0].strip()
        key, sep, value = line.partition("=")
        if not sep:
            continue
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
            value = value[1:-1]
        config[key.strip()] = value
    return config


def _format_line(key: str, value: Any) -> str:
    return f"{key} = {value}\n"


def _apply_updates(lines: list[str], updates: Mapping[str, Any]) -> list[str]:
    """Rewrite existing assignments in place and append new keys at the end."""
    pending = dict(updates)
    result: list[str] = []
    for line in lines:
        key = line.split("#", 1)[0].partition("=")[0].strip()
        if "=" in line and key in pending:
            result.append(_format_line(key, pending.pop(key)))
        else:
            result.append(line)
    if pending and result and not result[-1].endswith("\n"):
        result[-1] += "\n"
    result.extend(_format_line(key, value) for key, value in pending.items())
    return result


def _is_read_only(exc: OSError) -> bool:
    return isinstance(exc, PermissionError) or exc.errno == errno.EROFS


class ConfigManager:
    """Config access shared by settings loading and the ``config`` command."""

    def override_path(self, config_path: Path) -> Path:
        resolved = str(config_path.expanduser().resolve())
        digest = hashlib.sha1(resolved.encode("utf-8")).hexdigest()[:10]
        return USER_CONFIG_OVERRIDES_DIR / f"{config_path.stem or 'config'}-{digest}.txt"

    # ================================================================
    # READING
    # ================================================================

    def _read_file(self, path: Path) -> Dict[str, str]:
        if not path.exists():
            return {}
        try:
            with open(path, "r", encoding="utf-8") as fh:
                return parse_config_lines(fh)
        except OSError as exc:
            logger.error("Failed to read config %s: %s", path, exc)
            return {}

    def read_config(self, config_path: Path) -> Dict[str, str]:
        config = self._read_file(config_path)
        config.update(self._read_file(self.override_path(config_path)))
        return config

    async def read_config_async(self, config_path: Path) -> Dict[str, str]:
        config: Dict[str, str] = {}
        if await asyncio.to_thread(config_path.exists):
            try:
                async with aiofiles.open(config_path, "r", encoding="utf-8") as fh:
                    config = parse_config_lines(await fh.readlines())
            except OSError as exc:
                logger.error("Failed to read config %s: %s", config_path, exc)
        config.update(await asyncio.to_thread(self._read_file, self.override_path(config_path)))
        return config

    # ================================================================
    # WRITING
    # ================================================================

    def write_config(self, config_path: Path, updates: Mapping[str, Any]) -> bool:
        """Persist ``updates``; returns False when neither target is writable.

        Raises:
            ValueError: a key is not one the helper reads.
        """
        unknown = sorted(set(updates) - set(CONFIG_KEYS))
        if unknown:
            raise ValueError(f"Unknown config keys: {', '.join(unknown)}")
        if not updates:
            return True

        if not config_path.exists():
            logger.info("Config %s does not exist; storing override instead", config_path)
            return self._write_override(config_path, updates)

        try:
            with open(config_path, "r", encoding="utf-8") as fh:
                lines = fh.readlines()
            with open(config_path, "w", encoding="utf-8") as fh:
                fh.writelines(_apply_updates(lines, updates))
        except OSError as exc:
            if not _is_read_only(exc):
                logger.error("Failed to write config %s: %s", config_path, exc)
                return False
            logger.warning("Config %s is read-only (%s); storing override instead", config_path, exc)
            return self._write_override(config_path, updates)

        logger.debug("Updated %s in %s", ", ".join(updates), config_path)
        self.override_path(config_path).unlink(missing_ok=True)
        return True

    def _write_override(self, config_path: Path, updates: Mapping[str, Any]) -> bool:
        path = self.override_path(config_path)
        merged = self._read_file(path)
        merged.update({key: str(value) for key, value in updates.items()})
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "w", encoding="utf-8") as fh:
                fh.writelines(_format_line(key, merged[key]) for key in sorted(merged))
        except OSError as exc:
            logger.error("Failed to write config override %s: %s", path, exc)
            return False
        logger.debug("Stored config override %s", path)
        return True

    # ================================================================
    # TYPED GETTERS
    # ================================================================

    def get_str(self, config: Mapping[str, str], key: str, default: str = "") -> str:
        return config.get(key, default)

    def get_int(self, config: Mapping[str, str], key: str, default: int = 0) -> int:
        try:
            return int(config[key]) if key in config else default
        except ValueError:
            logger.warning("Invalid int value for %s: %s, using default %d", key, config[key], default)
            return default

    def get_float(self, config: Mapping[str, str], key: str, default: float = 0.0) -> float:
        try:
            return float(config[key]) if key in config else default
        except ValueError:
            logger.warning("Invalid float value for %s: %s, using default %s", key, config[key], default)
            return default

    def get_path(
        self,
        config: Mapping[str, str],
        key: str,
        default: Optional[Path],
        base_dir: Optional[Path] = None,
    ) -> Optional[Path]:
        """Relative values resolve against ``base_dir``; defaults are used as given."""
        raw = config.get(key, "")
        if not raw:
            return default
        path = Path(raw).expanduser()
        if base_dir is not None and not path.is_absolute():
            path = base_dir / path
        return path


_config_manager = ConfigManager()


def get_config_manager() -> ConfigManager:
    return _config_manager


__all__ = ["CONFIG_KEYS", "ConfigManager", "get_config_manager", "parse_config_lines"]
