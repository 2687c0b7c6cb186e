import logging
from datetime import datetime
from typing import Dict, List, Optional, Protocol

from app.models import AnalysisResult, AnalysisStatus, AnalysisSummary, ValidationResult

logger = logging.getLogger(__name__)


class AnalysisRepository(Protocol):
    """Storage boundary of the analysis pipeline. The pipeline never owns storage."""

    def create_image(self, image_id: str, filename: str, content: bytes, validation: Optional[ValidationResult] = None): ...

    def get_image(self, image_id: str) -> Optional[dict]: ...

    def update_status(self, image_id: str, status: AnalysisStatus): ...

    def save_result(self, image_id: str, result: AnalysisResult): ...

    def get_result(self, image_id: str) -> Optional[AnalysisResult]: ...

    def list_results(
        self,
        status: Optional[AnalysisStatus] = None,
        min_confidence: Optional[float] = None,
        max_confidence: Optional[float] = None,
    ) -> List[AnalysisResult]: ...

    def delete_image(self, image_id: str): ...


def filter_results(
    results: List[AnalysisResult],
    status: Optional[AnalysisStatus] = None,
    min_confidence: Optional[float] = None,
    max_confidence: Optional[float] = None,
) -> List[AnalysisResult]:
    out = []
    for r in results:
        if status is not None and r.status != status:
            continue
        if min_confidence is not None and r.confidence_score < min_confidence:
            continue
        if max_confidence is not None and r.confidence_score > max_confidence:
            continue
        out.append(r)
    return out


def summarize(results: List[AnalysisResult]) -> AnalysisSummary:
    """Success rate (% completed) and mean confidence of the completed analyses."""
    completed = [r for r in results if r.status == AnalysisStatus.COMPLETED]
    success_rate = (len(completed) / len(results)) * 100 if results else 0.0
    avg_confidence = sum(r.confidence_score for r in completed) / len(completed) if completed else 0.0
    return AnalysisSummary(
        total=len(results),
        completed=len(completed),
        success_rate=round(success_rate, 2),
        average_confidence=round(avg_confidence, 2),
    )


class InMemoryAnalysisRepository:
    def __init__(self):
        # key: image_id, value: image record / latest analysis result
        self._images: Dict[str, dict] = {}
        self._results: Dict[str, AnalysisResult] = {}

    def create_image(self, image_id: str, filename: str, content: bytes, validation: Optional[ValidationResult] = None):
        self._images[image_id] = {
            "id": image_id,
            "filename": filename,
            "content": content,
            "status": AnalysisStatus.PENDING,
            "uploaded_at": datetime.now().isoformat(timespec="seconds"),
            "validation": validation,
        }

    def get_image(self, image_id: str) -> Optional[dict]:
        return self._images.get(image_id)

    def update_status(self, image_id: str, status: AnalysisStatus):
        image = self._images.get(image_id)
        if image is None:
            logger.error(f"Cannot update status: image {image_id} not found")
            return
        image["status"] = status

    def save_result(self, image_id: str, result: AnalysisResult):
        if image_id not in self._images:
            logger.error(f"Image {image_id} not found - cannot save analysis result")
            return
        self._results[image_id] = result

    def get_result(self, image_id: str) -> Optional[AnalysisResult]:
        return self._results.get(image_id)

    def list_results(self, status=None, min_confidence=None, max_confidence=None) -> List[AnalysisResult]:
        return filter_results(list(self._results.values()), status, min_confidence, max_confidence)

    def delete_image(self, image_id: str):
        self._images.pop(image_id, None)
        self._results.pop(image_id, None)
