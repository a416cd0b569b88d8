"""Effect executor for the confirmation flow.

Handles side effects requested by the reducer:
- Live camera session start/stop
- Uploaded-image scanning
- Writing confirmed identities to the store
- Telling the owning view that it should refresh or close
"""

from typing import Awaitable, Callable, Optional

from ....core.errors import MezastarError, StoreError
from ....core.logging_utils import get_module_logger, redact_token
from ....storage.identity_store import IdentityStore, TrainerIdentity
from ...acquisition.capture.sources import CameraSource
from ...acquisition.pipeline import AcquisitionResult, Modality, interpret_payload
from ...acquisition.session import CaptureSession, ScanState
from ...acquisition.upload import StillImageScanner
from ..core.actions import (
    Action,
    AcquisitionCompleted, ScanStatusChanged, SubmitFailed, SubmitSucceeded, UploadProgress,
)
from ..core.effects import (
    Effect,
    StartLiveScan, StopLiveScan,
    RunUpload, CancelUpload,
    AddIdentity,
    NotifySaved, CloseDialog,
)

logger = get_module_logger("ConfirmationFlow.effects")

ADD_FAILED_MESSAGE = "Failed to add trainer ID"
UPLOAD_FAILED_MESSAGE = "Failed to process image"

Dispatch = Callable[[Action], Awaitable[None]]
Post = Callable[[Action], None]


class EffectExecutor:
    """Executes side effects for the confirmation flow."""

    def __init__(
        self,
        store: IdentityStore,
        camera: Optional[CameraSource] = None,
        scanner: Optional[StillImageScanner] = None,
        on_saved: Optional[Callable[[TrainerIdentity], None]] = None,
        on_close: Optional[Callable[[], None]] = None,
    ):
        self._store = store
        self._scanner = scanner
        self._on_saved = on_saved
        self._on_close = on_close
        self._post: Optional[Post] = None
        self._live_attempt = 0
        self._session: Optional[CaptureSession] = None
        if camera is not None:
            self._session = CaptureSession(
                camera,
                on_candidate=self._on_candidate,
                on_failure=self._on_scan_failure,
            )

    @property
    def session(self) -> Optional[CaptureSession]:
        return self._session

    def bind(self, post: Post) -> None:
        """Connect callbacks that arrive outside an effect (camera events)."""
        self._post = post
        if self._session is not None:
            self._session.subscribe(self._on_scan_state)

    def close(self) -> None:
        if self._session is not None:
            self._session.close()
        if self._scanner is not None:
            self._scanner.cancel()

    async def __call__(self, effect: Effect, dispatch: Dispatch) -> None:
        """Execute an effect."""
        match effect:
            case StartLiveScan(attempt):
                self._start_live(attempt)

            case StopLiveScan():
                if self._session is not None:
                    self._session.stop()

            case RunUpload(file, attempt):
                await self._run_upload(file, attempt, dispatch)

            case CancelUpload():
                if self._scanner is not None:
                    self._scanner.cancel()

            case AddIdentity(trainer_id, alias):
                await self._add_identity(trainer_id, alias, dispatch)

            case NotifySaved(identity):
                if self._on_saved:
                    self._on_saved(identity)

            case CloseDialog():
                if self._on_close:
                    self._on_close()

    # ================================================================
    # LIVE SCAN
    # ================================================================

    def _start_live(self, attempt: int) -> None:
        if self._session is None:
            logger.error("Live scan requested but no camera source is configured")
            self._emit(AcquisitionCompleted(
                AcquisitionResult(Modality.LIVE, attempt, error=MezastarError("No camera available"))
            ))
            return
        self._live_attempt = attempt
        self._session.start()

    def _emit(self, action: Action) -> None:
        if self._post is None:
            logger.warning("Dropping %s; executor is not bound to a flow", type(action).__name__)
            return
        self._post(action)

    def _on_scan_state(self, state: ScanState) -> None:
        self._emit(ScanStatusChanged(scanning=state.scanning, status=state.status))

    def _on_candidate(self, payload: str) -> None:
        result = interpret_payload(payload, modality=Modality.LIVE, attempt=self._live_attempt)
        self._emit(AcquisitionCompleted(result))

    def _on_scan_failure(self, error: MezastarError) -> None:
        self._emit(AcquisitionCompleted(
            AcquisitionResult(Modality.LIVE, self._live_attempt, error=error)
        ))

    # ================================================================
    # UPLOAD
    # ================================================================

    async def _run_upload(self, file, attempt: int, dispatch: Dispatch) -> None:
        if self._scanner is None:
            await dispatch(AcquisitionCompleted(
                AcquisitionResult(Modality.UPLOAD, attempt, error=MezastarError(UPLOAD_FAILED_MESSAGE))
            ))
            return

        def on_stage(stage_attempt, stage) -> None:
            self._emit(UploadProgress(stage_attempt, stage))

        try:
            upload = await self._scanner.scan(file, attempt=attempt, on_stage=on_stage)
        except Exception:
            logger.exception("Upload attempt %d crashed", attempt)
            await dispatch(AcquisitionCompleted(
                AcquisitionResult(Modality.UPLOAD, attempt, error=MezastarError(UPLOAD_FAILED_MESSAGE))
            ))
            return

        if upload.stale:
            logger.debug("Discarding result of superseded upload attempt %d", attempt)
            return
        await dispatch(AcquisitionCompleted(upload.result))

    # ================================================================
    # STORE
    # ================================================================

    async def _add_identity(self, trainer_id: str, alias: str, dispatch: Dispatch) -> None:
        try:
            identity = await self._store.add(trainer_id, alias)
        except StoreError as exc:
            logger.error("Failed to add trainer %s: %s", redact_token(trainer_id.strip()), exc)
            await dispatch(SubmitFailed(ADD_FAILED_MESSAGE))
            return
        except MezastarError as exc:
            await dispatch(SubmitFailed(str(exc)))
            return
        await dispatch(SubmitSucceeded(identity))
