import asyncio
import threading
import time
from typing import Callable

import cv2

from ....core.errors import CaptureError
from ....core.logging_utils import get_module_logger
from .qr import detect_qr_text
from .sources import ErrorCallback, FrameMiss, ResultCallback

logger = get_module_logger("CameraSource")

# Consecutive failed reads before the stream is declared dead
_MAX_READ_FAILURES = 200


class CameraSubscription:
    """Owns one opened ``cv2.VideoCapture`` and its decode thread."""

    def __init__(
        self,
        cap,
        loop: asyncio.AbstractEventLoop,
        on_result: ResultCallback,
        on_error: ErrorCallback,
        miss_interval: float,
    ):
        self._cap = cap
        self._loop = loop
        self._on_result = on_result
        self._on_error = on_error
        self._miss_interval = miss_interval
        self._running = True
        self._stop_lock = threading.Lock()
        self._stopped = False
        self._frame_number = 0
        self._thread = threading.Thread(target=self._capture_loop, name="qr-capture", daemon=True)

    def _begin(self) -> None:
        self._thread.start()

    def stop(self) -> None:
        with self._stop_lock:
            if self._stopped:
                return
            self._stopped = True
        self._running = False
        if self._thread.is_alive() and threading.current_thread() is not self._thread:
            self._thread.join(timeout=2.0)
        if self._cap is not None:
            self._cap.release()
            self._cap = None
        logger.debug("Camera released after %d frames", self._frame_number)

    def _post(self, callback: Callable, arg) -> None:
        if not self._running:
            return
        try:
            self._loop.call_soon_threadsafe(callback, arg)
        except RuntimeError:
            # Loop already closed; nobody is listening any more.
            self._running = False

    def _capture_loop(self) -> None:
        detector = cv2.QRCodeDetector()
        failures = 0
        last_miss = 0.0

        while self._running and self._cap is not None and self._cap.isOpened():
            ret, frame_data = self._cap.read()
            if not ret or frame_data is None:
                failures += 1
                if failures >= _MAX_READ_FAILURES:
                    self._post(self._on_error, CaptureError("Camera stream stopped delivering frames"))
                    break
                time.sleep(0.005)
                continue

            failures = 0
            self._frame_number += 1

            text = detect_qr_text(frame_data, detector)
            if text:
                self._post(self._on_result, text)
                # One result per subscription; the owner stops us.
                break

            now = time.monotonic()
            if now - last_miss >= self._miss_interval:
                last_miss = now
                self._post(self._on_error, FrameMiss("No QR code in view"))

        self._running = False


class OpenCVCameraSource:
    """:class:`CameraSource` that reads frames from an OpenCV capture device."""

    def __init__(
        self,
        device: int | str = 0,
        resolution: tuple[int, int] = (640, 480),
        fps: float = 30.0,
        miss_interval: float = 0.5,
    ):
        self._device = device
        self._resolution = resolution
        self._fps = fps
        self._miss_interval = miss_interval

    @property
    def device(self) -> int | str:
        return self._device

    def _open(self) -> cv2.VideoCapture:
        cap = cv2.VideoCapture(self._device)
        if not cap.isOpened():
            cap.release()
            raise CaptureError(f"Failed to open camera {self._device}")

        cap.set(cv2.CAP_PROP_FRAME_WIDTH, self._resolution[0])
        cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self._resolution[1])
        cap.set(cv2.CAP_PROP_FPS, self._fps)

        actual_w = int(cap.get(cv2.CAP_PROP_FRAME_WIDTH))
        actual_h = int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT))
        logger.info("Opened camera %s at %dx%d", self._device, actual_w, actual_h)
        return cap

    def start(self, on_result: ResultCallback, on_error: ErrorCallback) -> CameraSubscription:
        loop = asyncio.get_running_loop()
        cap = self._open()
        subscription = CameraSubscription(cap, loop, on_result, on_error, self._miss_interval)
        subscription._begin()
        return subscription


__all__ = ["OpenCVCameraSource", "CameraSubscription"]
