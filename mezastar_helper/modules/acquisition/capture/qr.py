"""OpenCV QR detection shared by the camera and still-image sources."""

from __future__ import annotations

from typing import Optional

import cv2
import numpy as np


def to_grayscale(image: np.ndarray) -> np.ndarray:
    if image.ndim == 2:
        return image
    if image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2GRAY)
    return cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)


def detect_qr_text(image: np.ndarray, detector: Optional[cv2.QRCodeDetector] = None) -> Optional[str]:
    """Decode the first QR code in ``image``; None when nothing decodes."""
    if image is None or image.size == 0:
        return None
    detector = detector or cv2.QRCodeDetector()
    try:
        text, points, _ = detector.detectAndDecode(to_grayscale(image))
    except cv2.error:
        return None
    if points is None or not text:
        return None
    return text


__all__ = ["detect_qr_text", "to_grayscale"]
