import logging
from typing import Callable, List, NamedTuple, Optional

from app.config import (
    DICOM_EXTENSIONS,
    PHASE1_ACCEPT_CONFIDENCE,
    PHASE1_WARNING_CONFIDENCE,
    PHASE2_ACCEPT_CONFIDENCE,
)
from app.models import Phase1Result, Phase2Result, ValidationResult, WarningType

logger = logging.getLogger(__name__)

YELLOW_WARNING_MESSAGE = "We are not fully confident this is a medical image, please verify."
RED_WARNING_MESSAGE = (
    "Warning: This image may be medical, but uncertainty remains. "
    "Please be cautious when interpreting results."
)
REJECTED_MESSAGE = (
    "Only medical imaging files are accepted (X-ray, MRI, CT, Ultrasound). "
    "This image does not appear to contain human anatomy."
)


class DecisionInput(NamedTuple):
    extension: str
    phase1: Optional[Phase1Result]
    phase2: Optional[Phase2Result]


class DecisionRule(NamedTuple):
    name: str
    matches: Callable[[DecisionInput], bool]
    decide: Callable[[DecisionInput], ValidationResult]


def _is_dicom(d: DecisionInput) -> bool:
    return d.extension in DICOM_EXTENSIONS


def _p1(d: DecisionInput) -> int:
    return d.phase1.confidence if d.phase1 is not None else 0


def _p2(d: DecisionInput) -> int:
    return d.phase2.confidence if d.phase2 is not None else 0


def _dicom(d: DecisionInput) -> ValidationResult:
    return ValidationResult(is_valid=True, message="DICOM medical file detected", detected_type="DICOM")


def _accepted(d: DecisionInput) -> ValidationResult:
    return ValidationResult(
        is_valid=True,
        message=d.phase1.message,
        detected_type=d.phase1.type_label.value,
        confidence=d.phase1.confidence,
        requires_confirmation=d.phase1.needs_confirmation,
    )


def _yellow(d: DecisionInput) -> ValidationResult:
    return ValidationResult(
        is_valid=True,
        message=YELLOW_WARNING_MESSAGE,
        detected_type=d.phase1.type_label.value,
        confidence=d.phase1.confidence,
        warning_type=WarningType.YELLOW,
    )


def _red(d: DecisionInput) -> ValidationResult:
    return ValidationResult(
        is_valid=True,
        message=RED_WARNING_MESSAGE,
        detected_type=d.phase1.type_label.value,
        confidence=d.phase1.confidence,
        phase2_confidence=d.phase2.confidence,
        warning_type=WarningType.RED,
    )


def _rejected(d: DecisionInput) -> ValidationResult:
    return ValidationResult(is_valid=False, message=REJECTED_MESSAGE, confidence=_p1(d))


# First match wins
DECISION_TABLE: List[DecisionRule] = [
    DecisionRule("dicom", _is_dicom, _dicom),
    DecisionRule("accept", lambda d: _p1(d) >= PHASE1_ACCEPT_CONFIDENCE, _accepted),
    DecisionRule("yellow_warning", lambda d: _p1(d) >= PHASE1_WARNING_CONFIDENCE, _yellow),
    DecisionRule(
        "red_warning",
        lambda d: d.phase1 is not None and d.phase2 is not None and _p2(d) >= PHASE2_ACCEPT_CONFIDENCE,
        _red,
    ),
    DecisionRule("reject", lambda d: True, _rejected),
]


def needs_phase2(phase1: Phase1Result) -> bool:
    return phase1.confidence < PHASE1_WARNING_CONFIDENCE


def decide_validation(
    extension: str,
    phase1: Optional[Phase1Result],
    phase2: Optional[Phase2Result] = None,
) -> ValidationResult:
    """
    Maps the Phase 1 confidence and, when it was computed, the Phase 2
    confidence to the final upload verdict.
    """
    d = DecisionInput(extension.lower(), phase1, phase2)
    for rule in DECISION_TABLE:
        if rule.matches(d):
            logger.info(f"Validation decision: {rule.name} (p1={_p1(d)}, p2={_p2(d) if phase2 else None})")
            return rule.decide(d)
    return _rejected(d)
