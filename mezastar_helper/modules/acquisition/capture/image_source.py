"""File and image decoding for the uploaded-image modality."""

from __future__ import annotations

import asyncio
import io
from pathlib import Path
from typing import Any

import aiofiles
import numpy as np
from PIL import Image, UnidentifiedImageError

from ....core.logging_utils import get_module_logger
from .qr import detect_qr_text
from .sources import ImageError, NotFound, PixelGrid, ReadError

logger = get_module_logger("ImageSource")

# Matches the upload hint shown to operators ("PNG, JPG, or GIF up to 10MB")
MAX_UPLOAD_BYTES = 10 * 1024 * 1024


class AiofilesFileLoader:
    """Reads a selected file from disk without blocking the event loop."""

    def __init__(self, max_bytes: int = MAX_UPLOAD_BYTES):
        self._max_bytes = max_bytes

    async def load(self, file: Any) -> bytes:
        path = Path(file)
        try:
            async with aiofiles.open(path, "rb") as fh:
                data = await fh.read(self._max_bytes + 1)
        except OSError as exc:
            logger.warning("Failed to read %s: %s", path, exc)
            raise ReadError(str(exc)) from exc

        if len(data) > self._max_bytes:
            raise ReadError(f"{path.name} is larger than {self._max_bytes} bytes")
        logger.debug("Loaded %d bytes from %s", len(data), path)
        return data


class PillowImageDecoder:
    """Rasterizes with Pillow and detects codes with OpenCV."""

    @staticmethod
    def _rasterize_sync(data: bytes) -> PixelGrid:
        try:
            with Image.open(io.BytesIO(data)) as image:
                image.load()
                grid = np.asarray(image.convert("L"))
        except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as exc:
            raise ImageError(str(exc)) from exc
        return grid

    async def rasterize(self, data: bytes) -> PixelGrid:
        grid = await asyncio.to_thread(self._rasterize_sync, data)
        logger.debug("Rasterized image to %dx%d", grid.shape[1], grid.shape[0])
        return grid

    async def detect_code(self, grid: PixelGrid) -> str:
        text = await asyncio.to_thread(detect_qr_text, grid)
        if text is None:
            raise NotFound("No QR code detected")
        return text


__all__ = ["AiofilesFileLoader", "PillowImageDecoder", "MAX_UPLOAD_BYTES"]
