import pytest

from app.models import Finding, PrimaryModelOutput, RegionOfInterest, round_half_up


@pytest.mark.parametrize("value,expected", [
    (64.5, 65),
    (12.5, 13),
    (0.5, 1),
    (64.49, 64),
    (0.0, 0),
    (100.0, 100),
])
def test_round_half_up(value, expected):
    assert round_half_up(value) == expected


def test_confidences_are_stored_as_given():
    # Percent in, percent out: no guessing of the scale at the model boundary
    assert PrimaryModelOutput(confidence=0.8).confidence == 0.8
    assert PrimaryModelOutput(confidence=1.0).confidence == 1.0
    assert Finding(description="x", confidence=0.3, region="r").confidence == 0.3
    roi = RegionOfInterest(id="r", x=0, y=0, width=1, height=1, confidence=75)
    assert roi.confidence == 75
