"""Uploaded-image scanning: read → rasterize → detect → parse.

Each stage runs strictly after the previous one and can fail on its own,
producing a :class:`StageOutcome` tagged with the stage. Every call to
:meth:`StillImageScanner.scan` is a new attempt; results of an attempt that
has been superseded or cancelled come back marked ``stale``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from ...core.errors import DecodeFailure, DecodeStage
from ...core.logging_utils import get_module_logger
from .capture.sources import FileLoader, ImageDecoder, SourceError
from .pipeline import AcquisitionResult, Modality, interpret_payload

logger = get_module_logger("StillImageScanner")

STAGE_PROGRESS = {
    DecodeStage.READ: "Reading file...",
    DecodeStage.IMAGE: "Decoding image...",
    DecodeStage.DETECT: "Scanning for QR code...",
}

StageCallback = Callable[[int, DecodeStage], None]


@dataclass(frozen=True)
class StageOutcome:
    stage: DecodeStage
    value: Any = None
    error: Optional[DecodeFailure] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class UploadResult:
    result: AcquisitionResult
    stale: bool = False
    failed_stage: Optional[DecodeStage] = None

    @property
    def attempt(self) -> int:
        return self.result.attempt


async def run_stage(stage: DecodeStage, operation: Callable[[Any], Awaitable[Any]], value: Any) -> StageOutcome:
    try:
        produced = await operation(value)
    except SourceError as exc:
        logger.warning("Upload stage %s failed: %s", stage.value, exc)
        return StageOutcome(stage, error=DecodeFailure(stage))
    return StageOutcome(stage, value=produced)


class StillImageScanner:
    def __init__(self, loader: FileLoader, decoder: ImageDecoder):
        self._loader = loader
        self._decoder = decoder
        self._attempt = 0

    @property
    def current_attempt(self) -> int:
        return self._attempt

    def begin_attempt(self) -> int:
        """Reserve a new attempt number, superseding any in-flight one."""
        self._attempt += 1
        return self._attempt

    def cancel(self) -> None:
        """Discard whatever attempt is in flight."""
        self._attempt += 1

    def is_current(self, attempt: int) -> bool:
        return attempt == self._attempt

    async def scan(
        self,
        file: Any,
        *,
        attempt: Optional[int] = None,
        on_stage: Optional[StageCallback] = None,
    ) -> UploadResult:
        if attempt is None:
            attempt = self.begin_attempt()
        else:
            # The caller numbers attempts; adopting its number supersedes ours.
            self._attempt = attempt

        stages = (
            (DecodeStage.READ, self._loader.load),
            (DecodeStage.IMAGE, self._decoder.rasterize),
            (DecodeStage.DETECT, self._decoder.detect_code),
        )

        value: Any = file
        for stage, operation in stages:
            if not self.is_current(attempt):
                return self._stale(attempt)
            if on_stage:
                on_stage(attempt, stage)
            outcome = await run_stage(stage, operation, value)
            if not outcome.ok:
                return UploadResult(
                    AcquisitionResult(Modality.UPLOAD, attempt, error=outcome.error),
                    stale=not self.is_current(attempt),
                    failed_stage=stage,
                )
            value = outcome.value

        result = interpret_payload(value, modality=Modality.UPLOAD, attempt=attempt)
        return UploadResult(result, stale=not self.is_current(attempt))

    @staticmethod
    def _stale(attempt: int) -> UploadResult:
        logger.debug("Upload attempt %d superseded", attempt)
        return UploadResult(AcquisitionResult(Modality.UPLOAD, attempt), stale=True)


__all__ = [
    "STAGE_PROGRESS",
    "StageOutcome",
    "UploadResult",
    "StillImageScanner",
    "run_stage",
]
