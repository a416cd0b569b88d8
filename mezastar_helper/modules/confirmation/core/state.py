from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional


class FlowStep(Enum):
    METHOD_SELECT = auto()
    MANUAL_ENTRY = auto()
    LIVE_SCAN = auto()
    UPLOAD_SCAN = auto()


@dataclass(frozen=True)
class FlowState:
    step: FlowStep = FlowStep.METHOD_SELECT
    trainer_id: str = ""
    alias: str = ""
    error: Optional[str] = None
    busy: bool = False
    progress: Optional[str] = None

    scanning: bool = False
    scan_status: str = ""

    # Bumped whenever an acquisition starts or is abandoned; results carrying
    # an older number are stale.
    attempt: int = 0

    @property
    def can_submit(self) -> bool:
        return self.step == FlowStep.MANUAL_ENTRY and not self.busy

    @property
    def can_start_scan(self) -> bool:
        return self.step == FlowStep.LIVE_SCAN and not self.scanning
