"""QR rendering for trainer tokens and support codes."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Union

import cv2
import numpy as np

from ...core.errors import MezastarError
from ...core.logging_utils import get_module_logger

logger = get_module_logger("QRDisplay")

DEFAULT_SCALE = 8
DEFAULT_BORDER = 4


class RenderError(MezastarError):
    default_message = "Failed to render QR code"


def render_code(text: str, *, scale: int = DEFAULT_SCALE, border: int = DEFAULT_BORDER) -> np.ndarray:
    """Encode ``text`` at error-correction level H as a grayscale image.

    Each module becomes a ``scale`` x ``scale`` block, surrounded by a white
    quiet zone of ``border`` modules.
    """
    if not text:
        raise RenderError("Nothing to encode")
    params = cv2.QRCodeEncoder_Params()
    params.correction_level = cv2.QRCodeEncoder_CORRECT_LEVEL_H
    encoder = cv2.QRCodeEncoder_create(params)
    try:
        modules = encoder.encode(text)
    except cv2.error as exc:
        raise RenderError() from exc
    if modules is None or modules.size == 0:
        raise RenderError()

    if modules.ndim == 3:
        modules = cv2.cvtColor(modules, cv2.COLOR_BGR2GRAY)
    if border:
        modules = cv2.copyMakeBorder(
            modules, border, border, border, border, cv2.BORDER_CONSTANT, value=255
        )
    height, width = modules.shape[:2]
    return cv2.resize(modules, (width * scale, height * scale), interpolation=cv2.INTER_NEAREST)


def _write_sync(image: np.ndarray, path: Path) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        written = cv2.imwrite(str(path), image)
    except (cv2.error, OSError) as exc:
        raise RenderError(f"Could not write QR image to {path}") from exc
    if not written:
        raise RenderError(f"Could not write QR image to {path}")


async def write_code_image(text: str, path: Union[str, Path], *, scale: int = DEFAULT_SCALE) -> Path:
    target = Path(path)
    image = render_code(text, scale=scale)
    await asyncio.to_thread(_write_sync, image, target)
    logger.info("Wrote QR image %s (%dx%d)", target, image.shape[1], image.shape[0])
    return target


__all__ = ["RenderError", "render_code", "write_code_image", "DEFAULT_SCALE", "DEFAULT_BORDER"]
