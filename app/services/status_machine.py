import logging
from typing import Dict, FrozenSet, List

from app.models import AnalysisStatus

logger = logging.getLogger(__name__)

TRANSITIONS: Dict[AnalysisStatus, FrozenSet[AnalysisStatus]] = {
    AnalysisStatus.PENDING: frozenset({AnalysisStatus.PROCESSING}),
    AnalysisStatus.PROCESSING: frozenset({AnalysisStatus.COMPLETED, AnalysisStatus.FAILED}),
    AnalysisStatus.COMPLETED: frozenset(),
    AnalysisStatus.FAILED: frozenset(),
}


class InvalidStatusTransition(RuntimeError):
    def __init__(self, current: AnalysisStatus, target: AnalysisStatus):
        super().__init__(f"Cannot move analysis from {current.value} to {target.value}")
        self.current = current
        self.target = target


class StatusStateMachine:
    """pending -> processing -> completed | failed. Terminal states are final; nothing is retried here."""

    def __init__(self, image_id: str, status: AnalysisStatus = AnalysisStatus.PENDING):
        self.image_id = image_id
        self.status = status
        self.history: List[AnalysisStatus] = [status]

    @property
    def is_terminal(self) -> bool:
        return not TRANSITIONS[self.status]

    def can_transition(self, target: AnalysisStatus) -> bool:
        return target in TRANSITIONS[self.status]

    def transition(self, target: AnalysisStatus) -> AnalysisStatus:
        if not self.can_transition(target):
            raise InvalidStatusTransition(self.status, target)
        logger.info(f"Image {self.image_id}: {self.status.value} -> {target.value}")
        self.status = target
        self.history.append(target)
        return target
