from .payload import extract_token
from .pipeline import AcquisitionResult, Modality, interpret_payload
from .session import CaptureSession, ScanPhase, ScanState
from .upload import STAGE_PROGRESS, StageOutcome, StillImageScanner, UploadResult

__all__ = [
    "AcquisitionResult",
    "CaptureSession",
    "Modality",
    "STAGE_PROGRESS",
    "ScanPhase",
    "ScanState",
    "StageOutcome",
    "StillImageScanner",
    "UploadResult",
    "extract_token",
    "interpret_payload",
]
