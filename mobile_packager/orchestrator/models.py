"""Orchestrator data models."""
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional

from ..models import Build


class PipelineStage(Enum):
    """Stage of a packaging run, in execution order."""
    IDLE = "idle"
    EXPORTING = "exporting"
    COMPRESSING = "compressing"
    UPLOADING = "uploading"
    AWAITING_BUILD = "awaiting-build"
    BUILDING = "building"

    @property
    def order(self) -> int:
        return STAGE_ORDER.index(self)


STAGE_ORDER = list(PipelineStage)


@dataclass(frozen=True)
class PipelineRun:
    """Immutable snapshot of one packaging run. Replaced on every transition."""
    run_id: int = 0
    stage: PipelineStage = PipelineStage.IDLE
    build: Optional[Build] = None
    upload_progress: int = 0
    upload_total: int = 0
    failed: bool = False

    @property
    def in_flight(self) -> bool:
        """Run is making progress toward a submitted build."""
        return not self.failed and self.stage not in (PipelineStage.IDLE, PipelineStage.BUILDING)

    @property
    def upload_percent(self) -> float:
        if self.upload_total <= 0:
            return 0.0
        return min(100.0, self.upload_progress * 100.0 / self.upload_total)

    def advance(self, stage: PipelineStage, **changes) -> "PipelineRun":
        """Snapshot moved to the next stage. Stages never regress or skip."""
        if stage.order != self.stage.order + 1:
            raise ValueError(f"Invalid stage transition {self.stage.value} -> {stage.value}")
        return replace(self, stage=stage, **changes)

    @classmethod
    def begin(cls, run_id: int) -> "PipelineRun":
        return cls(run_id=run_id, stage=PipelineStage.EXPORTING)
