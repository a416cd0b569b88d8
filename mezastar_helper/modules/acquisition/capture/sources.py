"""Capability interfaces for the capture devices the pipeline consumes.

Real implementations live in :mod:`.camera_source` and :mod:`.image_source`;
tests inject deterministic fakes with the same shape.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Protocol, Union

import numpy as np

PixelGrid = np.ndarray
FileRef = Union[str, Path]

ResultCallback = Callable[[str], None]
ErrorCallback = Callable[[Exception], None]


class SourceError(Exception):
    """Base class for failures reported by a capture boundary."""


class ReadError(SourceError):
    """The selected file could not be read."""


class ImageError(SourceError):
    """The loaded bytes are not a decodable raster image."""


class NotFound(SourceError):
    """No optical code was found in a pixel grid."""


class FrameMiss(SourceError):
    """A single camera frame held no recognizable code (transient)."""


class Subscription(Protocol):
    def stop(self) -> None:
        """Release the device. Must be safe to call more than once."""


class CameraSource(Protocol):
    def start(self, on_result: ResultCallback, on_error: ErrorCallback) -> Subscription:
        """Begin decoding frames.

        ``on_result`` receives decoded text, ``on_error`` receives
        :class:`FrameMiss` for transient misses or a ``CaptureError`` when the
        stream dies. Raises ``CaptureError`` if the device cannot be opened.
        """


class FileLoader(Protocol):
    async def load(self, file: Any) -> bytes:
        """Read ``file`` into memory or raise :class:`ReadError`."""


class ImageDecoder(Protocol):
    async def rasterize(self, data: bytes) -> PixelGrid:
        """Decode image bytes into a pixel grid or raise :class:`ImageError`."""

    async def detect_code(self, grid: PixelGrid) -> str:
        """Return the text of the first code in ``grid`` or raise :class:`NotFound`."""


__all__ = [
    "PixelGrid",
    "FileRef",
    "ResultCallback",
    "ErrorCallback",
    "SourceError",
    "ReadError",
    "ImageError",
    "NotFound",
    "FrameMiss",
    "Subscription",
    "CameraSource",
    "FileLoader",
    "ImageDecoder",
]
