import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from app.dal.analysis_repo import summarize
from app.dependencies import get_repository
from app.models import AnalysisListResponse, AnalysisResult, AnalysisStatus
from app.services.heatmap_service import heatmap_service

router = APIRouter(prefix="/api/analyses", tags=["analyses"])

logger = logging.getLogger(__name__)


@router.get("", response_model=AnalysisListResponse)
async def list_analyses(
    status: Optional[AnalysisStatus] = None,
    min_confidence: Optional[float] = Query(None, ge=0, le=100),
    max_confidence: Optional[float] = Query(None, ge=0, le=100),
    repository=Depends(get_repository),
):
    if min_confidence is not None and max_confidence is not None and min_confidence > max_confidence:
        logger.error(f"Invalid confidence range {min_confidence}-{max_confidence}")
        raise HTTPException(status_code=400, detail="min_confidence must not exceed max_confidence")

    results = repository.list_results(status, min_confidence, max_confidence)
    return AnalysisListResponse(analyses=results, summary=summarize(results))


@router.get("/{image_id}", response_model=AnalysisResult)
async def get_analysis(image_id: str, repository=Depends(get_repository)):
    result = repository.get_result(image_id)
    if result is None:
        logger.error(f"No analysis for image {image_id}")
        raise HTTPException(status_code=404, detail="Analysis not found")
    return result


@router.get("/{image_id}/heatmap")
async def get_heatmap(image_id: str, repository=Depends(get_repository)):
    result = repository.get_result(image_id)
    image = repository.get_image(image_id)
    if result is None or image is None or result.heatmap_url is None:
        logger.error(f"No heatmap available for image {image_id}")
        raise HTTPException(status_code=404, detail="Heatmap not found")

    content = heatmap_service.get_heatmap(image["content"], result.regions_of_interest)
    return Response(content=content, media_type="image/jpeg")
