import logging
import uuid
from typing import List

from fastapi import APIRouter, BackgroundTasks, Depends, File, HTTPException, UploadFile

from app.dependencies import get_pipeline, get_repository, get_validator
from app.models import ImageStatusResponse, UploadedFileResult, UploadResponse, ValidationResult

router = APIRouter(prefix="/api/images", tags=["images"])

logger = logging.getLogger(__name__)


@router.post("/validate", response_model=List[ValidationResult])
async def validate_images(
    files: List[UploadFile] = File(...),
    validator=Depends(get_validator),
):
    """Runs the two-phase plausibility check without storing anything."""
    results = []
    for file in files:
        content = await file.read()
        results.append(validator.validate(file.filename or "", content))
    return results


@router.post("/upload", response_model=UploadResponse)
async def upload_images(
    background_tasks: BackgroundTasks,
    files: List[UploadFile] = File(...),
    validator=Depends(get_validator),
    repository=Depends(get_repository),
    pipeline=Depends(get_pipeline),
):
    uploaded_ids = []
    file_results = []

    try:
        for file in files:
            filename = file.filename or ""
            content = await file.read()
            validation = validator.validate(filename, content)

            if not validation.is_valid:
                logger.info(f"Rejected upload {filename}: {validation.message}")
                file_results.append(UploadedFileResult(filename=filename, validation=validation))
                continue

            image_id = str(uuid.uuid4())
            repository.create_image(image_id, filename, content, validation)
            background_tasks.add_task(pipeline.run, image_id)
            uploaded_ids.append(image_id)
            file_results.append(UploadedFileResult(filename=filename, image_id=image_id, validation=validation))
    except Exception as e:
        logger.error(f"Upload failed: {e}")
        raise HTTPException(status_code=500, detail=str(e))

    rejected = len(file_results) - len(uploaded_ids)
    return UploadResponse(
        uploaded=len(uploaded_ids),
        rejected=rejected,
        ids=uploaded_ids,
        files=file_results,
        message=f"{len(uploaded_ids)} image(s) queued for analysis, {rejected} rejected",
    )


@router.get("/{image_id}/status", response_model=ImageStatusResponse)
async def get_image_status(image_id: str, repository=Depends(get_repository)):
    image = repository.get_image(image_id)
    if image is None:
        logger.error(f"Status requested for unknown image {image_id}")
        raise HTTPException(status_code=404, detail="Image not found")
    return ImageStatusResponse(image_id=image_id, status=image["status"])
