from fastapi import APIRouter

from app.models import HealthCheckResponse
from app.services.medsiglip_service import medsiglip_service

router = APIRouter(prefix="/api")


@router.get("/health", response_model=HealthCheckResponse)
async def health_check():
    """Health check endpoint."""
    return HealthCheckResponse(
        status="OK",
        primary_model_loaded=medsiglip_service.is_loaded,
    )
