"""Shared result type for the acquisition modalities.

Every modality ends in an :class:`AcquisitionResult`; nothing here writes to
the identity store. Results flow back to the confirmation flow, which decides
what to show.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ...core.errors import InvalidFormat, MezastarError
from ...core.logging_utils import get_module_logger
from .payload import extract_token

logger = get_module_logger("Acquisition")


class Modality(Enum):
    MANUAL = "manual"
    LIVE = "live"
    UPLOAD = "upload"


@dataclass(frozen=True)
class AcquisitionResult:
    modality: Modality
    attempt: int
    token: Optional[str] = None
    error: Optional[MezastarError] = None
    payload: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.token is not None


def interpret_payload(payload: str, *, modality: Modality, attempt: int) -> AcquisitionResult:
    """Run a scanned payload through the token parser."""
    try:
        token = extract_token(payload)
    except InvalidFormat as exc:
        logger.warning("Scanned payload is not a trainer URL (%d chars)", len(payload))
        return AcquisitionResult(modality, attempt, error=exc, payload=payload)
    logger.debug("Extracted token from %s scan (attempt %d)", modality.value, attempt)
    return AcquisitionResult(modality, attempt, token=token, payload=payload)


__all__ = ["Modality", "AcquisitionResult", "interpret_payload"]
