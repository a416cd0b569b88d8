"""Error taxonomy shared by the store, acquisition and confirmation layers.

Every exception carries the operator-facing message shown inline next to the
step that produced it, so ``str(exc)`` is always safe to render.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional


class MezastarError(Exception):
    """Base class for every error surfaced to the operator."""

    default_message = "Unexpected error"

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self)


class ValidationError(MezastarError):
    default_message = "Both trainer ID and alias are required"


class DuplicateIdentity(MezastarError):
    default_message = "This trainer ID already exists"

    def __init__(self, trainer_id: str, message: Optional[str] = None) -> None:
        super().__init__(message)
        self.trainer_id = trainer_id


class IdentityNotFound(MezastarError):
    default_message = "Trainer ID not found"

    def __init__(self, trainer_id: str, message: Optional[str] = None) -> None:
        super().__init__(message)
        self.trainer_id = trainer_id


class StoreError(MezastarError):
    default_message = "Storage operation failed"


class InvalidFormat(MezastarError):
    default_message = "Invalid QR code format"


class DecodeStage(Enum):
    READ = "read"
    IMAGE = "image"
    DETECT = "detect"


_STAGE_MESSAGES = {
    DecodeStage.READ: "Failed to read file",
    DecodeStage.IMAGE: "Failed to process image",
    DecodeStage.DETECT: "No QR code found in the uploaded image",
}


class DecodeFailure(MezastarError):
    """One of the uploaded-image stages failed."""

    def __init__(self, stage: DecodeStage, message: Optional[str] = None) -> None:
        super().__init__(message or _STAGE_MESSAGES[stage])
        self.stage = stage

    def __repr__(self) -> str:
        return f"DecodeFailure(stage={self.stage.value!r})"


class CaptureError(MezastarError):
    default_message = "Camera could not be started"


class ConfirmationMismatch(MezastarError):
    def __init__(self, alias: str) -> None:
        super().__init__(f'Please enter "{alias}" to confirm deletion')
        self.alias = alias


class RegistryLoadError(MezastarError):
    default_message = "Failed to load support pokemon registry"


__all__ = [
    "MezastarError",
    "ValidationError",
    "DuplicateIdentity",
    "IdentityNotFound",
    "StoreError",
    "InvalidFormat",
    "DecodeStage",
    "DecodeFailure",
    "CaptureError",
    "ConfirmationMismatch",
    "RegistryLoadError",
]
