import asyncio
import logging
import time
import uuid
from typing import Optional

from app.config import ALGORITHM_VERSION, PRIMARY_MODEL_TIMEOUT
from app.models import (
    AnalysisMetadata,
    AnalysisResult,
    AnalysisStatus,
    ConfidenceLevel,
    QualityMetrics,
    SeverityAssessment,
)
from app.services.confidence_gate import ConfidenceGate
from app.services.status_machine import StatusStateMachine

logger = logging.getLogger(__name__)


def failure_result(
    image_id: str,
    batch_id: str,
    start_time: float,
    model_used: str,
    processing_node: str = "",
) -> AnalysisResult:
    """Terminal result for an analysis that could not be carried out."""
    return AnalysisResult(
        id=str(uuid.uuid4()),
        image_id=image_id,
        status=AnalysisStatus.FAILED,
        confidence_score=0.0,
        confidence_level=ConfidenceLevel.LOW,
        recommendations=["Please retry with a clearer image"],
        severity_assessment=SeverityAssessment(recommended_actions=["Retry analysis"]),
        quality_metrics=QualityMetrics(artifact_level="significant"),
        processing_time_seconds=round(time.perf_counter() - start_time, 3),
        metadata=AnalysisMetadata(
            algorithm_version=ALGORITHM_VERSION,
            model_used=model_used,
            processing_node=processing_node,
            batch_id=batch_id,
        ),
    )


class AnalysisPipeline:
    """
    Runs one analysis job: pending -> processing -> primary model -> confidence
    gate -> completed | failed, persisting through the injected repository.

    Errors and timeouts of the external model calls end the job as failed with
    confidence 0. They are logged and never re-raised; retries belong to the caller.
    A result that cannot be stored marks the image failed and the storage error propagates.
    """

    def __init__(
        self,
        repository,
        primary_model,
        gate: ConfidenceGate,
        primary_timeout: Optional[float] = PRIMARY_MODEL_TIMEOUT,
        secondary_timeout: Optional[float] = None,
    ):
        self.repository = repository
        self.primary_model = primary_model
        self.gate = gate
        self.primary_timeout = primary_timeout
        # None defers to the gate's own timeout
        self.secondary_timeout = secondary_timeout

    async def run(self, image_id: str) -> AnalysisResult:
        start_time = time.perf_counter()
        batch_id = str(uuid.uuid4())

        image = self.repository.get_image(image_id)
        if image is None:
            raise LookupError(f"Image {image_id} not found")

        machine = StatusStateMachine(image_id, image["status"])
        self.repository.update_status(image_id, machine.transition(AnalysisStatus.PROCESSING))

        try:
            primary = await asyncio.wait_for(
                self.primary_model.analyze(image["content"]), timeout=self.primary_timeout
            )
            result = await self.gate.gate(
                image_id, image["content"], primary, batch_id=batch_id, start_time=start_time,
                secondary_timeout=self.secondary_timeout,
            )
        except asyncio.TimeoutError:
            logger.error(f"Analysis timed out for image {image_id}")
            result = failure_result(image_id, batch_id, start_time, self.gate.model_used, self.gate.processing_node)
        except Exception as e:
            logger.error(f"Analysis failed for image {image_id}: {e}")
            result = failure_result(image_id, batch_id, start_time, self.gate.model_used, self.gate.processing_node)

        try:
            self.repository.save_result(image_id, result)
        except Exception as e:
            logger.error(f"Could not store analysis for image {image_id}: {e}")
            self.repository.update_status(image_id, machine.transition(AnalysisStatus.FAILED))
            raise
        self.repository.update_status(image_id, machine.transition(result.status))
        logger.info(
            f"Image {image_id}: {result.status.value} at {result.confidence_score:.2f}% "
            f"({result.processing_time_seconds:.2f}s)"
        )
        return result
