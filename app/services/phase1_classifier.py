import logging

from app.models import FeatureVector, ImageTypeLabel, Phase1Result, round_half_up

logger = logging.getLogger(__name__)

NOT_ANATOMY_MESSAGE = (
    "This image does not appear to contain human anatomy. "
    "Please upload an X-ray, MRI, CT, or Ultrasound."
)


class Phase1Classifier:
    """
    Quick heuristic classification of an upload from its aggregate pixel statistics.

    Rules, first match wins:
    1. Very colorful images, or flat grayscale images without anatomy, are rejected.
    2. Anatomy-like or high-contrast grayscale patterns are accepted and typed.
    3. Everything else is accepted with a weak confidence so that the
       decision policy can escalate it to the deep analysis.
    """

    def detects_human_anatomy(self, f: FeatureVector) -> bool:
        """X-ray like pattern: dark background, some bone-bright pixels, strong combined contrast."""
        return (
            f.very_dark_ratio > 0.15
            and 0.02 < f.bright_ratio < 0.4
            and (f.bright_ratio + f.very_dark_ratio) > 0.3
        )

    def classify(self, f: FeatureVector) -> Phase1Result:
        anatomy = self.detects_human_anatomy(f)

        is_definitely_not_medical = (
            f.grayscale_ratio < 0.2
            or (f.grayscale_ratio > 0.8 and not anatomy and f.contrast_ratio < 0.1)
        )
        if is_definitely_not_medical:
            return Phase1Result(
                accepted=False,
                type_label=ImageTypeLabel.UNKNOWN,
                confidence=20,
                message=NOT_ANATOMY_MESSAGE,
            )

        has_possible_medical_pattern = f.grayscale_ratio > 0.6 and anatomy
        has_high_contrast_medical_pattern = (
            f.grayscale_ratio > 0.7 and f.contrast_ratio > 0.15 and f.dark_ratio > 0.15
        )

        if has_possible_medical_pattern or has_high_contrast_medical_pattern:
            return self._refine_type(f)

        # Not medical enough, but not rejected either
        return Phase1Result(
            accepted=True,
            type_label=ImageTypeLabel.UNKNOWN,
            confidence=round_half_up(f.grayscale_ratio * 50),
            needs_confirmation=True,
            message="Possible medical image detected - low confidence",
        )

    def _refine_type(self, f: FeatureVector) -> Phase1Result:
        type_label = ImageTypeLabel.MEDICAL_SCAN
        confidence = round_half_up(f.grayscale_ratio * 100)

        if f.grayscale_ratio > 0.8 and f.dark_ratio > 0.2:
            type_label = ImageTypeLabel.XRAY
            confidence = max(confidence, 75)
        elif f.grayscale_ratio > 0.7 and f.contrast_ratio > 0.1:
            type_label = ImageTypeLabel.MRI_OR_CT
            confidence = max(confidence, 70)
        elif f.grayscale_ratio > 0.6:
            type_label = ImageTypeLabel.ULTRASOUND
            confidence = max(confidence, 60)

        needs_confirmation = 0.6 < f.grayscale_ratio < 0.8 or confidence < 70
        message = f"{type_label.value} detected"
        if needs_confirmation:
            message += " (low confidence anatomy detection)"

        logger.debug(f"Phase 1: {type_label.value} at {confidence}% (confirm={needs_confirmation})")
        return Phase1Result(
            accepted=True,
            type_label=type_label,
            confidence=confidence,
            needs_confirmation=needs_confirmation,
            message=message,
        )


phase1_classifier = Phase1Classifier()
