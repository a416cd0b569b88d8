"""Actions for the confirmation flow state machine."""

from dataclasses import dataclass
from typing import Any

from ....core.errors import DecodeStage
from ....storage.identity_store import TrainerIdentity
from ...acquisition.pipeline import AcquisitionResult
from .state import FlowStep


# Navigation

@dataclass(frozen=True)
class ChooseMethod:
    """Operator picked a modality on the method screen."""
    step: FlowStep


@dataclass(frozen=True)
class GoBack:
    """Return to the method screen."""
    pass


@dataclass(frozen=True)
class Dismiss:
    """Owning dialog was closed; forget everything."""
    pass


# Manual entry

@dataclass(frozen=True)
class EditTrainerId:
    value: str


@dataclass(frozen=True)
class EditAlias:
    value: str


@dataclass(frozen=True)
class SubmitRequested:
    """Operator pressed Add."""
    pass


@dataclass(frozen=True)
class SubmitSucceeded:
    identity: TrainerIdentity


@dataclass(frozen=True)
class SubmitFailed:
    message: str


# Live scan

@dataclass(frozen=True)
class StartScan:
    """Open the camera and begin decoding."""
    pass


@dataclass(frozen=True)
class StopScan:
    """Operator stopped the camera."""
    pass


@dataclass(frozen=True)
class ScanStatusChanged:
    scanning: bool
    status: str


# Upload

@dataclass(frozen=True)
class FileSelected:
    """A file was picked; starts a fresh upload attempt."""
    file: Any


@dataclass(frozen=True)
class UploadProgress:
    attempt: int
    stage: DecodeStage


# Acquisition outcome (both scan modalities)

@dataclass(frozen=True)
class AcquisitionCompleted:
    result: AcquisitionResult


Action = (
    ChooseMethod | GoBack | Dismiss |
    EditTrainerId | EditAlias | SubmitRequested | SubmitSucceeded | SubmitFailed |
    StartScan | StopScan | ScanStatusChanged |
    FileSelected | UploadProgress |
    AcquisitionCompleted
)
