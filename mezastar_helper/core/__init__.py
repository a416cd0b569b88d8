from .errors import (
    CaptureError,
    ConfirmationMismatch,
    DecodeFailure,
    DecodeStage,
    DuplicateIdentity,
    IdentityNotFound,
    InvalidFormat,
    MezastarError,
    RegistryLoadError,
    StoreError,
    ValidationError,
)
from .logging_config import configure_logging
from .logging_utils import get_module_logger

__all__ = [
    "CaptureError",
    "ConfirmationMismatch",
    "DecodeFailure",
    "DecodeStage",
    "DuplicateIdentity",
    "IdentityNotFound",
    "InvalidFormat",
    "MezastarError",
    "RegistryLoadError",
    "StoreError",
    "ValidationError",
    "configure_logging",
    "get_module_logger",
]
