"""Live camera capture session.

IDLE → (start) → ACTIVE → (decode | stop | teardown) → STOPPED

A session owns at most one camera subscription. It is released exactly once
per active period; stop() on a session that is not active does nothing.
Callbacks from an earlier subscription are recognised by generation number
and dropped.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum, auto
from functools import partial
from typing import Callable, Optional

from ...core.errors import CaptureError, MezastarError
from ...core.logging_utils import get_module_logger
from .capture.sources import CameraSource, FrameMiss, Subscription

logger = get_module_logger("CaptureSession")


class ScanPhase(Enum):
    IDLE = auto()
    ACTIVE = auto()
    STOPPED = auto()


@dataclass(frozen=True)
class ScanState:
    phase: ScanPhase = ScanPhase.IDLE
    status: str = ""
    error_message: str = ""
    candidate: Optional[str] = None
    generation: int = 0

    @property
    def scanning(self) -> bool:
        return self.phase == ScanPhase.ACTIVE

    @property
    def has_error(self) -> bool:
        return bool(self.error_message)


class CaptureSession:
    def __init__(
        self,
        source: CameraSource,
        on_candidate: Optional[Callable[[str], None]] = None,
        on_failure: Optional[Callable[[MezastarError], None]] = None,
    ):
        self._source = source
        self._on_candidate = on_candidate
        self._on_failure = on_failure
        self._state = ScanState()
        self._subscription: Optional[Subscription] = None
        self._subscribers: list[Callable[[ScanState], None]] = []

    @property
    def state(self) -> ScanState:
        return self._state

    def subscribe(self, callback: Callable[[ScanState], None]) -> Callable[[], None]:
        self._subscribers.append(callback)
        callback(self._state)
        return lambda: self._subscribers.remove(callback)

    def _set_state(self, **changes) -> None:
        self._state = replace(self._state, **changes)
        for sub in list(self._subscribers):
            try:
                sub(self._state)
            except Exception as e:
                logger.warning("Subscriber error: %s", e)

    # ================================================================
    # START / STOP
    # ================================================================

    def start(self) -> bool:
        """Open the camera and begin decoding. Returns False on setup failure."""
        if self._state.phase == ScanPhase.ACTIVE:
            return True

        generation = self._state.generation + 1
        # Mark active before the source starts so a synchronous first result
        # is not mistaken for a stale one; observers are told afterwards.
        self._state = replace(
            self._state,
            phase=ScanPhase.ACTIVE,
            generation=generation,
            status="",
            error_message="",
            candidate=None,
        )

        try:
            subscription = self._source.start(
                partial(self._handle_result, generation),
                partial(self._handle_error, generation),
            )
        except Exception as exc:
            failure = exc if isinstance(exc, MezastarError) else CaptureError(str(exc))
            logger.error("Camera setup failed: %s", failure)
            self._set_state(phase=ScanPhase.IDLE, status="", error_message=str(failure))
            if self._on_failure:
                self._on_failure(failure)
            return False

        if self._state.phase != ScanPhase.ACTIVE or self._state.generation != generation:
            # Finished while starting; nothing may keep the device open.
            subscription.stop()
            return True

        self._subscription = subscription
        logger.info("Live scan started (session %d)", generation)
        self._set_state(status="Scanning...")
        return True

    def stop(self) -> None:
        """Release the camera. Safe to call repeatedly."""
        if self._state.phase != ScanPhase.ACTIVE:
            return

        subscription = self._subscription
        self._subscription = None
        self._state = replace(self._state, phase=ScanPhase.STOPPED, status="")
        if subscription is not None:
            subscription.stop()
        logger.debug("Live scan stopped (session %d)", self._state.generation)
        self._set_state()

    def close(self) -> None:
        self.stop()
        self._subscribers.clear()

    # ================================================================
    # SOURCE CALLBACKS
    # ================================================================

    def _is_current(self, generation: int) -> bool:
        return self._state.phase == ScanPhase.ACTIVE and generation == self._state.generation

    def _handle_result(self, generation: int, text: str) -> None:
        if not self._is_current(generation):
            logger.debug("Ignoring decode result from inactive session %d", generation)
            return

        self._state = replace(self._state, candidate=text)
        self.stop()
        if self._on_candidate:
            self._on_candidate(text)

    def _handle_error(self, generation: int, error: Exception) -> None:
        if not self._is_current(generation):
            return

        if isinstance(error, FrameMiss):
            self._set_state(status=str(error))
            return

        failure = error if isinstance(error, MezastarError) else CaptureError(str(error))
        logger.error("Live scan failed: %s", failure)
        self._state = replace(self._state, error_message=str(failure))
        self.stop()
        if self._on_failure:
            self._on_failure(failure)


__all__ = ["CaptureSession", "ScanPhase", "ScanState"]
