import asyncio
import logging
import uuid
from typing import Any, Dict, List, Optional, Protocol

import cv2
import numpy as np

from app.config import MODEL_IMAGE_SIZE
from app.models import (
    DifferentialDiagnosis,
    Finding,
    PrimaryModelOutput,
    QualityMetrics,
    RegionOfInterest,
    SeverityAssessment,
)
from app.radiology_data import (
    FINDING_REGIONS,
    FINDING_SEVERITY,
    MODALITY_TEMPLATES,
    RADIOLOGY_FINDING_LABELS,
    SEVERITY_RECOMMENDATIONS,
    SEVERITY_URGENCY,
)
from app.services.image_preprocess_service import ImagePreprocessService, image_preprocess_service

logger = logging.getLogger(__name__)


class PrimaryModel(Protocol):
    """The external model boundary: produces a confidence and a finding set for an image."""

    name: str

    async def analyze(self, image_bytes: bytes) -> PrimaryModelOutput:
        ...


def laplacian_var(gray: np.ndarray) -> float:
    return float(cv2.Laplacian(gray, cv2.CV_64F).var())


def estimate_quality_metrics(pixels: np.ndarray) -> QualityMetrics:
    """
    Rough acquisition quality from pixel statistics: sharpness (Laplacian variance),
    exposure (distance of mean brightness from mid-gray) and burned-out highlights.
    """
    gray = cv2.cvtColor(np.ascontiguousarray(pixels[..., :3]), cv2.COLOR_RGB2GRAY)
    clarity = min(1.0, laplacian_var(gray) / 500.0)
    exposure = 1.0 - abs(float(gray.mean()) / 255.0 - 0.5) * 2
    saturated = np.count_nonzero(gray >= 255) / gray.size
    completeness = 1.0 - saturated

    if saturated < 0.01:
        artifact_level = "none"
    elif saturated < 0.05:
        artifact_level = "minimal"
    elif saturated < 0.15:
        artifact_level = "moderate"
    else:
        artifact_level = "significant"

    return QualityMetrics(
        image_quality=round(0.5 * clarity + 0.3 * exposure + 0.2 * completeness, 4),
        completeness=round(completeness, 4),
        clarity=round(clarity, 4),
        artifact_level=artifact_level,
    )


def build_output(results: List[Dict[str, Any]], quality: QualityMetrics, top_k: int = 3) -> PrimaryModelOutput:
    """
    Turns a sorted zero-shot distribution [{"label", "score"}] into the structured
    analysis output. Scores are softmax fractions; confidences are converted to percent here.
    """
    if not results:
        raise ValueError("Primary model returned no predictions")

    top = results[0]
    top_severity = FINDING_SEVERITY.get(top["label"], "normal")

    findings = []
    regions = []
    for rank, r in enumerate(results[:top_k]):
        label = r["label"]
        region = FINDING_REGIONS.get(label, "Primary" if rank == 0 else "Secondary")
        findings.append(Finding(
            description=RADIOLOGY_FINDING_LABELS.get(label, label),
            confidence=r["score"] * 100,
            region=region,
            severity=FINDING_SEVERITY.get(label, "normal"),
        ))
        if FINDING_SEVERITY.get(label, "normal") != "normal":
            # Zero-shot models do not localize; the whole frame is the region of interest
            regions.append(RegionOfInterest(
                id=str(uuid.uuid4()),
                x=0.0, y=0.0, width=1.0, height=1.0,
                confidence=r["score"] * 100,
                description=f"{label} attention area",
            ))

    affected = sorted({f.region for f in findings if f.severity.value != "normal"})
    severity = SeverityAssessment(
        overall_severity=top_severity,
        affected_regions=affected,
        urgency_level=SEVERITY_URGENCY[top_severity],
        recommended_actions=list(SEVERITY_RECOMMENDATIONS[top_severity][:1]),
    )

    return PrimaryModelOutput(
        confidence=top["score"] * 100,
        findings=findings,
        recommendations=list(SEVERITY_RECOMMENDATIONS[top_severity]),
        differential_diagnosis=[
            DifferentialDiagnosis(condition=r["label"], probability=r["score"]) for r in results
        ],
        severity_assessment=severity,
        regions_of_interest=regions,
        quality_metrics=quality,
    )


class ZeroShotPrimaryModel:
    """
    Vision-language primary model: scores the radiology label map (values wrapped
    in a modality template) against the image and maps results back to short labels.
    """

    def __init__(
        self,
        service: Any,
        modality: str = "radiograph",
        labels_map: Optional[Dict[str, str]] = None,
        preprocess: Optional[ImagePreprocessService] = None,
    ):
        self.service = service
        self.modality = modality
        self.labels_map = labels_map or RADIOLOGY_FINDING_LABELS
        self.preprocess = preprocess or image_preprocess_service

    @property
    def name(self) -> str:
        return f"{self.service.model_name} ({self.modality})"

    def _get_template(self) -> str:
        return MODALITY_TEMPLATES.get(self.modality, MODALITY_TEMPLATES["radiograph"])

    def score_labels(self, image_bytes: bytes) -> List[Dict[str, Any]]:
        template = self._get_template()
        labels = list(self.labels_map.keys())
        prompts = [template.format(desc) for desc in self.labels_map.values()]
        prompt_to_label = dict(zip(prompts, labels))

        image = self.preprocess.prepare_image_bytes(image_bytes, MODEL_IMAGE_SIZE)
        raw_results = self.service.get_predictions(image, prompts)

        return [
            {"label": prompt_to_label.get(r["label"], r["label"]), "description": r["label"], "score": r["score"]}
            for r in raw_results
        ]

    def predict(self, image_bytes: bytes) -> PrimaryModelOutput:
        results = self.score_labels(image_bytes)
        quality = estimate_quality_metrics(self.preprocess.decode(image_bytes))
        output = build_output(results, quality)
        logger.info(f"{self.name} top result: {results[0]['label']} ({results[0]['score']:.2f})")
        return output

    async def analyze(self, image_bytes: bytes) -> PrimaryModelOutput:
        # Inference is blocking; keep it off the event loop
        return await asyncio.to_thread(self.predict, image_bytes)
