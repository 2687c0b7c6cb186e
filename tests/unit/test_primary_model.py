import asyncio
from unittest.mock import MagicMock

import numpy as np
import pytest

from app.models import QualityMetrics, Severity
from app.radiology_data import RADIOLOGY_FINDING_LABELS
from app.services.primary_model import ZeroShotPrimaryModel, build_output, estimate_quality_metrics


def fake_service(first="Normal Study", second="Fracture"):
    """MedSigLIP stand-in scoring two labels high and spreading the rest."""
    service = MagicMock()
    service.model_name = "test/medsiglip"
    descriptions = {RADIOLOGY_FINDING_LABELS[first]: 0.7, RADIOLOGY_FINDING_LABELS[second]: 0.2}

    def get_predictions(image, texts):
        rest = 0.1 / (len(texts) - 2)
        scored = []
        for t in texts:
            score = next((v for k, v in descriptions.items() if k in t), rest)
            scored.append({"label": t, "score": score})
        return sorted(scored, key=lambda r: r["score"], reverse=True)

    service.get_predictions.side_effect = get_predictions
    return service


def test_zero_shot_output(xray_png):
    model = ZeroShotPrimaryModel(fake_service())
    output = model.predict(xray_png)

    assert output.confidence == pytest.approx(70.0)
    assert output.findings[0].description == RADIOLOGY_FINDING_LABELS["Normal Study"]
    assert output.findings[0].severity == Severity.NORMAL
    assert len(output.findings) == 3
    assert output.severity_assessment.urgency_level == "routine"
    assert len(output.differential_diagnosis) == len(RADIOLOGY_FINDING_LABELS)
    assert output.differential_diagnosis[0].condition == "Normal Study"
    assert output.differential_diagnosis[0].probability == pytest.approx(0.7)
    # Abnormal findings among the top three get a region of interest
    assert len(output.regions_of_interest) == 2
    assert output.regions_of_interest[0].confidence == pytest.approx(20.0)


def test_prompts_use_modality_template(xray_png):
    service = fake_service()
    ZeroShotPrimaryModel(service, modality="ultrasound").predict(xray_png)

    image, texts = service.get_predictions.call_args[0]
    assert image.size == (448, 448)
    assert all(t.startswith("An ultrasound image showing") for t in texts)


def test_severe_top_finding(xray_png):
    output = ZeroShotPrimaryModel(fake_service("Fracture", "Normal Study")).predict(xray_png)
    assert output.severity_assessment.overall_severity == Severity.SEVERE
    assert output.severity_assessment.urgency_level == "urgent"
    assert output.severity_assessment.affected_regions == ["Skeletal", "Thoracic"]
    assert "Prompt specialist review recommended" in output.recommendations


def test_analyze_runs_off_loop(xray_png):
    model = ZeroShotPrimaryModel(fake_service())
    output = asyncio.run(model.analyze(xray_png))
    assert output.confidence == pytest.approx(70.0)
    assert model.name == "test/medsiglip (radiograph)"


def test_build_output_requires_predictions():
    with pytest.raises(ValueError):
        build_output([], QualityMetrics())


def test_quality_metrics():
    flat = np.full((300, 300, 3), 128, dtype=np.uint8)
    q = estimate_quality_metrics(flat)
    assert q.clarity == 0.0
    assert q.completeness == 1.0
    assert q.artifact_level == "none"

    burned = np.full((300, 300, 3), 255, dtype=np.uint8)
    q = estimate_quality_metrics(burned)
    assert q.completeness == 0.0
    assert q.artifact_level == "significant"

    noisy = np.random.default_rng(0).integers(0, 200, (300, 300, 3), dtype=np.uint8)
    assert estimate_quality_metrics(noisy).clarity == 1.0
