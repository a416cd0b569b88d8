"""State reducer for the confirmation flow.

  METHOD_SELECT → (ChooseMethod) → MANUAL_ENTRY | LIVE_SCAN | UPLOAD_SCAN
  LIVE_SCAN | UPLOAD_SCAN → (AcquisitionCompleted ok) → MANUAL_ENTRY
  any → (GoBack) → METHOD_SELECT
  any → (Dismiss | SubmitSucceeded) → fresh METHOD_SELECT
"""

from dataclasses import replace

from ....core.errors import DecodeStage, ValidationError
from ...acquisition.pipeline import Modality
from ...acquisition.upload import STAGE_PROGRESS
from .state import FlowState, FlowStep
from .actions import (
    Action,
    ChooseMethod, GoBack, Dismiss,
    EditTrainerId, EditAlias, SubmitRequested, SubmitSucceeded, SubmitFailed,
    StartScan, StopScan, ScanStatusChanged,
    FileSelected, UploadProgress,
    AcquisitionCompleted,
)
from .effects import (
    Effect,
    StartLiveScan, StopLiveScan,
    RunUpload, CancelUpload,
    AddIdentity,
    NotifySaved, CloseDialog,
)

_MODALITY_STEPS = {
    Modality.LIVE: FlowStep.LIVE_SCAN,
    Modality.UPLOAD: FlowStep.UPLOAD_SCAN,
}


def _teardown_effects(state: FlowState) -> list[Effect]:
    if state.step == FlowStep.LIVE_SCAN:
        return [StopLiveScan()]
    if state.step == FlowStep.UPLOAD_SCAN:
        return [CancelUpload()]
    return []


def update(state: FlowState, action: Action) -> tuple[FlowState, list[Effect]]:
    """Pure reducer function: (state, action) -> (new_state, effects)"""

    match action:
        # ================================================================
        # Navigation
        # ================================================================

        case ChooseMethod(step):
            if state.step != FlowStep.METHOD_SELECT or step == FlowStep.METHOD_SELECT:
                return state, []
            return replace(state, step=step, error=None, progress=None), []

        case GoBack():
            if state.step == FlowStep.METHOD_SELECT:
                return state, []
            return (
                replace(
                    state,
                    step=FlowStep.METHOD_SELECT,
                    error=None,
                    busy=False,
                    progress=None,
                    scanning=False,
                    scan_status="",
                    attempt=state.attempt + 1,
                ),
                _teardown_effects(state),
            )

        case Dismiss():
            return FlowState(attempt=state.attempt + 1), _teardown_effects(state)

        # ================================================================
        # Manual entry
        # ================================================================

        case EditTrainerId(value):
            if state.step != FlowStep.MANUAL_ENTRY:
                return state, []
            return replace(state, trainer_id=value), []

        case EditAlias(value):
            if state.step != FlowStep.MANUAL_ENTRY:
                return state, []
            return replace(state, alias=value), []

        case SubmitRequested():
            if not state.can_submit:
                return state, []
            if not state.trainer_id.strip() or not state.alias.strip():
                return replace(state, error=ValidationError().message), []
            return (
                replace(state, busy=True, error=None),
                [AddIdentity(state.trainer_id, state.alias)],
            )

        case SubmitSucceeded(identity):
            return (
                FlowState(attempt=state.attempt + 1),
                [NotifySaved(identity), CloseDialog()],
            )

        case SubmitFailed(message):
            if state.step != FlowStep.MANUAL_ENTRY:
                return replace(state, busy=False), []
            return replace(state, busy=False, error=message), []

        # ================================================================
        # Live scan
        # ================================================================

        case StartScan():
            if not state.can_start_scan:
                return state, []
            attempt = state.attempt + 1
            return (
                replace(state, attempt=attempt, error=None, scan_status=""),
                [StartLiveScan(attempt)],
            )

        case StopScan():
            if state.step != FlowStep.LIVE_SCAN:
                return state, []
            return replace(state, attempt=state.attempt + 1), [StopLiveScan()]

        case ScanStatusChanged(scanning, status):
            if state.step != FlowStep.LIVE_SCAN:
                return state, []
            return replace(state, scanning=scanning, scan_status=status), []

        # ================================================================
        # Upload
        # ================================================================

        case FileSelected(file):
            if state.step != FlowStep.UPLOAD_SCAN:
                return state, []
            attempt = state.attempt + 1
            return (
                replace(
                    state,
                    attempt=attempt,
                    busy=True,
                    error=None,
                    progress=STAGE_PROGRESS[DecodeStage.READ],
                ),
                [RunUpload(file, attempt)],
            )

        case UploadProgress(attempt, stage):
            if state.step != FlowStep.UPLOAD_SCAN or attempt != state.attempt:
                return state, []
            return replace(state, progress=STAGE_PROGRESS[stage]), []

        # ================================================================
        # Acquisition outcome
        # ================================================================

        case AcquisitionCompleted(result):
            expected_step = _MODALITY_STEPS.get(result.modality)
            if result.attempt != state.attempt or state.step != expected_step:
                return state, []

            if result.ok:
                return (
                    replace(
                        state,
                        step=FlowStep.MANUAL_ENTRY,
                        trainer_id=result.token,
                        error=None,
                        busy=False,
                        progress=None,
                        scanning=False,
                        scan_status="",
                    ),
                    [],
                )

            return (
                replace(
                    state,
                    error=str(result.error),
                    busy=False,
                    progress=None,
                ),
                [],
            )

    return state, []
