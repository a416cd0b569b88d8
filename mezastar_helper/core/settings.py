"""Typed view over ``config.txt``."""

from __future__ import annotations

from dataclasses import dataclass, replace
from pathlib import Path
from typing import Dict, Optional

from .config_manager import CONFIG_KEYS, ConfigManager, get_config_manager
from .paths import DEFAULT_DB_PATH, DEFAULT_SUPPORT_REGISTRY


@dataclass(frozen=True)
class CameraSettings:
    device: int | str = 0
    resolution: tuple[int, int] = (640, 480)
    fps: float = 30.0


@dataclass(frozen=True)
class HelperSettings:
    db_path: Path = DEFAULT_DB_PATH
    log_level: str = "warning"
    log_file: Optional[Path] = None
    camera: CameraSettings = CameraSettings()
    support_registry: Path = DEFAULT_SUPPORT_REGISTRY

    @classmethod
    def from_config(
        cls,
        config: Dict[str, str],
        manager: Optional[ConfigManager] = None,
        base_dir: Optional[Path] = None,
    ) -> "HelperSettings":
        """Build settings from parsed config values.

        Relative paths are resolved against ``base_dir`` (the directory of the
        config file) so the helper behaves the same from any working directory.
        """
        manager = manager or get_config_manager()

        device_raw = manager.get_str(config, "camera_device", "0")
        device: int | str = int(device_raw) if device_raw.isdigit() else device_raw

        camera = CameraSettings(
            device=device,
            resolution=(
                manager.get_int(config, "camera_width", 640),
                manager.get_int(config, "camera_height", 480),
            ),
            fps=manager.get_float(config, "camera_fps", 30.0),
        )

        return cls(
            db_path=manager.get_path(config, "db_path", DEFAULT_DB_PATH, base_dir),
            log_level=manager.get_str(config, "log_level", "warning").lower(),
            log_file=manager.get_path(config, "log_file", None, base_dir),
            camera=camera,
            support_registry=manager.get_path(config, "support_registry", DEFAULT_SUPPORT_REGISTRY, base_dir),
        )

    def with_camera_device(self, device: int | str) -> "HelperSettings":
        return replace(self, camera=replace(self.camera, device=device))


def load_settings(config_path: Path, manager: Optional[ConfigManager] = None) -> HelperSettings:
    manager = manager or get_config_manager()
    return HelperSettings.from_config(manager.read_config(config_path), manager, config_path.parent)


async def load_settings_async(config_path: Path, manager: Optional[ConfigManager] = None) -> HelperSettings:
    manager = manager or get_config_manager()
    return HelperSettings.from_config(await manager.read_config_async(config_path), manager, config_path.parent)


__all__ = ["CONFIG_KEYS", "CameraSettings", "HelperSettings", "load_settings", "load_settings_async"]
