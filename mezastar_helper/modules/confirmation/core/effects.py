"""Effects for the confirmation flow.

Effects are side-effects that the reducer requests to be performed.
The effect executor handles these asynchronously.
"""

from dataclasses import dataclass
from typing import Any

from ....storage.identity_store import TrainerIdentity


# Live scan effects

@dataclass(frozen=True)
class StartLiveScan:
    """Open the camera session for this attempt."""
    attempt: int


@dataclass(frozen=True)
class StopLiveScan:
    """Release the camera."""
    pass


# Upload effects

@dataclass(frozen=True)
class RunUpload:
    """Run the read/rasterize/detect stages on a file."""
    file: Any
    attempt: int


@dataclass(frozen=True)
class CancelUpload:
    """Discard the in-flight upload attempt."""
    pass


# Store effects

@dataclass(frozen=True)
class AddIdentity:
    """Persist the confirmed identity."""
    trainer_id: str
    alias: str


# Caller notifications

@dataclass(frozen=True)
class NotifySaved:
    """Tell the owner a new identity exists so it can refresh its list."""
    identity: TrainerIdentity


@dataclass(frozen=True)
class CloseDialog:
    """Ask the owner to close the dialog hosting the flow."""
    pass


Effect = (
    StartLiveScan | StopLiveScan |
    RunUpload | CancelUpload |
    AddIdentity |
    NotifySaved | CloseDialog
)
