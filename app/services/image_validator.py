import logging
from typing import Optional

from app.config import DICOM_EXTENSIONS, MIN_IMAGE_DIMENSION, VALID_EXTENSIONS
from app.models import ValidationResult
from app.services.feature_extractor import DimensionError, extract_features
from app.services.image_preprocess_service import (
    ImageDecodeError,
    ImagePreprocessService,
    get_extension,
    image_preprocess_service,
)
from app.services.phase1_classifier import Phase1Classifier, phase1_classifier
from app.services.phase2_analyzer import Phase2DeepAnalyzer, phase2_analyzer
from app.services.validation_policy import decide_validation, needs_phase2

logger = logging.getLogger(__name__)


class ImageValidator:
    """
    Two-phase medical image plausibility check run on every upload.

    Phase 1 is a quick classification from aggregate pixel statistics.
    Phase 2 runs the deep pattern detectors, only for images Phase 1 scored below 50.
    Never raises: every failure becomes an invalid ValidationResult.
    """

    def __init__(
        self,
        preprocess: Optional[ImagePreprocessService] = None,
        phase1: Optional[Phase1Classifier] = None,
        phase2: Optional[Phase2DeepAnalyzer] = None,
    ):
        self.preprocess = preprocess or image_preprocess_service
        self.phase1 = phase1 or phase1_classifier
        self.phase2 = phase2 or phase2_analyzer

    def validate(self, filename: str, content: bytes) -> ValidationResult:
        ext = get_extension(filename)

        if ext not in VALID_EXTENSIONS:
            return ValidationResult(
                is_valid=False,
                message="Invalid file format. Please upload DICOM, JPG, PNG, or TIFF.",
            )

        # DICOM files are always medical
        if ext in DICOM_EXTENSIONS:
            return decide_validation(ext, None)

        try:
            pixels = self.preprocess.decode(content)
            features = extract_features(pixels)
        except ImageDecodeError:
            return ValidationResult(is_valid=False, message="Invalid image file", confidence=0)
        except DimensionError as e:
            logger.info(f"Rejected {filename}: {e}")
            return ValidationResult(
                is_valid=False,
                message=(
                    "Image too small. Medical images should be at least "
                    f"{MIN_IMAGE_DIMENSION}x{MIN_IMAGE_DIMENSION} pixels."
                ),
                confidence=0,
            )

        phase1_result = self.phase1.classify(features)
        phase2_result = None
        if needs_phase2(phase1_result):
            phase2_result = self.phase2.analyze(pixels)

        result = decide_validation(ext, phase1_result, phase2_result)
        logger.info(
            f"Validated {filename}: valid={result.is_valid} type={result.detected_type} "
            f"confidence={result.confidence} warning={result.warning_type}"
        )
        return result


image_validator = ImageValidator()
