import asyncio
import logging
import time
import uuid
from typing import Optional

from app.config import (
    ALGORITHM_VERSION,
    CONFIDENCE_THRESHOLDS,
    FAILED_QUALITY_PENALTY,
    PRIMARY_BLEND_WEIGHT,
    PRIMARY_MODEL_NAME,
    PROCESSING_NODE,
    SECONDARY_BLEND_WEIGHT,
    SECONDARY_VERIFIER_TIMEOUT,
)
from app.models import (
    AnalysisMetadata,
    AnalysisResult,
    AnalysisStatus,
    ConfidenceLevel,
    PrimaryModelOutput,
    ThresholdTrace,
)
from app.services.secondary_verifier import SecondaryVerifier

logger = logging.getLogger(__name__)


def get_confidence_level(score: float) -> ConfidenceLevel:
    if score < CONFIDENCE_THRESHOLDS["LOW"]:
        return ConfidenceLevel.LOW
    if score < CONFIDENCE_THRESHOLDS["MEDIUM"]:
        return ConfidenceLevel.MEDIUM
    if score < CONFIDENCE_THRESHOLDS["HIGH"]:
        return ConfidenceLevel.HIGH
    return ConfidenceLevel.VERY_HIGH


def blend_confidence(primary: float, secondary: float) -> float:
    return round(PRIMARY_BLEND_WEIGHT * primary + SECONDARY_BLEND_WEIGHT * secondary, 2)


def heatmap_url_for(image_id: str) -> str:
    return f"/api/analyses/{image_id}/heatmap"


class ConfidenceGate:
    """
    Multi-stage confidence decision applied to the primary model output.

    - below 50: high uncertainty, the analysis fails with degraded image quality.
    - 50 to 70: secondary verification, final = 0.4 * primary + 0.6 * secondary.
    - 70 to 85: accepted as is (yellow).
    - 85 and above: accepted as is (green).

    The secondary verifier is only ever called in the 50-70 band. Exceptions
    from it propagate to the caller, which owns failure handling.
    """

    def __init__(
        self,
        secondary_verifier: SecondaryVerifier,
        model_used: str = PRIMARY_MODEL_NAME,
        processing_node: str = PROCESSING_NODE,
        secondary_timeout: Optional[float] = SECONDARY_VERIFIER_TIMEOUT,
    ):
        self.secondary_verifier = secondary_verifier
        self.model_used = model_used
        self.processing_node = processing_node
        self.secondary_timeout = secondary_timeout

    def _metadata(self, batch_id: str, primary: float, secondary: float, final: float) -> AnalysisMetadata:
        return AnalysisMetadata(
            algorithm_version=ALGORITHM_VERSION,
            model_used=self.model_used,
            processing_node=self.processing_node,
            batch_id=batch_id,
            confidence_thresholds=ThresholdTrace(primary=primary, secondary=secondary, final=final),
        )

    async def gate(
        self,
        image_id: str,
        image_bytes: bytes,
        primary: PrimaryModelOutput,
        batch_id: Optional[str] = None,
        start_time: Optional[float] = None,
        secondary_timeout: Optional[float] = None,
    ) -> AnalysisResult:
        start_time = start_time if start_time is not None else time.perf_counter()
        batch_id = batch_id or str(uuid.uuid4())
        if secondary_timeout is None:
            secondary_timeout = self.secondary_timeout
        score = primary.confidence

        base = dict(
            id=str(uuid.uuid4()),
            image_id=image_id,
            findings=primary.findings,
            recommendations=primary.recommendations,
            differential_diagnosis=primary.differential_diagnosis,
            severity_assessment=primary.severity_assessment,
            regions_of_interest=primary.regions_of_interest,
        )

        if score < CONFIDENCE_THRESHOLDS["LOW"]:
            logger.info(f"Image {image_id}: primary confidence {score:.2f} below {CONFIDENCE_THRESHOLDS['LOW']}, failing")
            quality = primary.quality_metrics.model_copy(
                update={"image_quality": max(0.0, primary.quality_metrics.image_quality - FAILED_QUALITY_PENALTY)}
            )
            return AnalysisResult(
                **base,
                status=AnalysisStatus.FAILED,
                confidence_score=score,
                confidence_level=get_confidence_level(score),
                quality_metrics=quality,
                processing_time_seconds=round(time.perf_counter() - start_time, 3),
                metadata=self._metadata(batch_id, score, 0.0, 0.0),
            )

        secondary_verification = None
        secondary_score = 0.0
        final = score

        if score < CONFIDENCE_THRESHOLDS["MEDIUM"]:
            logger.info(f"Image {image_id}: primary confidence {score:.2f}, running secondary verification")
            verification = await asyncio.wait_for(
                self.secondary_verifier.verify(image_bytes), timeout=secondary_timeout
            )
            secondary_score = verification.secondary_confidence
            final = blend_confidence(score, secondary_score)
            secondary_verification = verification.model_copy(
                update={"original_confidence": score, "final_confidence": final}
            )
        elif score < CONFIDENCE_THRESHOLDS["HIGH"]:
            logger.info(f"Image {image_id}: primary confidence {score:.2f}, accepted (yellow)")
        else:
            logger.info(f"Image {image_id}: primary confidence {score:.2f}, accepted (green)")

        return AnalysisResult(
            **base,
            status=AnalysisStatus.COMPLETED,
            confidence_score=final,
            confidence_level=get_confidence_level(final),
            quality_metrics=primary.quality_metrics,
            secondary_verification=secondary_verification,
            heatmap_url=heatmap_url_for(image_id),
            processing_time_seconds=round(time.perf_counter() - start_time, 3),
            metadata=self._metadata(batch_id, score, secondary_score, final),
        )
