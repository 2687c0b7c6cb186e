import pytest

from app.models import ImageTypeLabel, Phase1Result, Phase2Result, WarningType
from app.services.validation_policy import (
    REJECTED_MESSAGE,
    RED_WARNING_MESSAGE,
    YELLOW_WARNING_MESSAGE,
    decide_validation,
    needs_phase2,
)


def phase1(confidence, needs_confirmation=False):
    return Phase1Result(
        accepted=True,
        type_label=ImageTypeLabel.XRAY,
        confidence=confidence,
        needs_confirmation=needs_confirmation,
        message="X-ray detected",
    )


def phase2(confidence):
    return Phase2Result(confidence=confidence)


def test_dicom_always_valid():
    for ext in (".dcm", ".dicom", ".DCM"):
        res = decide_validation(ext, None)
        assert res.is_valid
        assert res.detected_type == "DICOM"
        assert res.message == "DICOM medical file detected"


@pytest.mark.parametrize("confidence", [60, 75, 100])
def test_accept_tier(confidence):
    res = decide_validation(".png", phase1(confidence, needs_confirmation=True))
    assert res.is_valid
    assert res.warning_type is None
    assert res.confidence == confidence
    assert res.detected_type == "X-ray"
    assert res.message == "X-ray detected"
    assert res.requires_confirmation


@pytest.mark.parametrize("confidence", [50, 59])
def test_yellow_tier(confidence):
    res = decide_validation(".jpg", phase1(confidence))
    assert res.is_valid
    assert res.warning_type == WarningType.YELLOW
    assert res.message == YELLOW_WARNING_MESSAGE


def test_red_tier():
    res = decide_validation(".png", phase1(49), phase2(65))
    assert res.is_valid
    assert res.warning_type == WarningType.RED
    assert res.message == RED_WARNING_MESSAGE
    assert res.confidence == 49
    assert res.phase2_confidence == 65


def test_rejected_below_phase2_cutoff():
    res = decide_validation(".png", phase1(49), phase2(64))
    assert not res.is_valid
    assert res.message == REJECTED_MESSAGE
    assert res.confidence == 49


def test_rejected_without_phase2():
    res = decide_validation(".png", phase1(20))
    assert not res.is_valid
    assert res.confidence == 20


def test_needs_phase2():
    assert needs_phase2(phase1(49))
    assert needs_phase2(phase1(0))
    assert not needs_phase2(phase1(50))
