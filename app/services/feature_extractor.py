import logging

import numpy as np

from app.config import MIN_IMAGE_DIMENSION
from app.models import FeatureVector

logger = logging.getLogger(__name__)


class DimensionError(ValueError):
    """Raised when an image is smaller than the minimum scan resolution."""

    def __init__(self, width: int, height: int):
        super().__init__(
            f"Image is {width}x{height}, minimum is {MIN_IMAGE_DIMENSION}x{MIN_IMAGE_DIMENSION}"
        )
        self.width = width
        self.height = height


def brightness_map(pixels: np.ndarray) -> np.ndarray:
    """Per-pixel brightness (R+G+B)/3 as float64. Alpha is ignored."""
    rgb = pixels[..., :3].astype(np.float64)
    return rgb.sum(axis=2) / 3.0


def extract_features(pixels: np.ndarray) -> FeatureVector:
    """
    Computes the aggregate pixel statistics used by the Phase 1 classifier.

    A pixel is grayscale when its channels differ pairwise by less than 10.
    Brightness buckets: dark < 60, very dark < 30, bright > 200,
    mid-tone in (100, 180), high contrast < 30 or > 225.
    """
    height, width = pixels.shape[:2]
    if width < MIN_IMAGE_DIMENSION or height < MIN_IMAGE_DIMENSION:
        raise DimensionError(width, height)

    rgb = pixels[..., :3].astype(np.int16)
    r, g, b = rgb[..., 0], rgb[..., 1], rgb[..., 2]
    grayscale = (np.abs(r - g) < 10) & (np.abs(g - b) < 10) & (np.abs(r - b) < 10)

    brightness = brightness_map(pixels)
    total = float(width * height)

    features = FeatureVector(
        grayscale_ratio=np.count_nonzero(grayscale) / total,
        dark_ratio=np.count_nonzero(brightness < 60) / total,
        contrast_ratio=np.count_nonzero((brightness < 30) | (brightness > 225)) / total,
        bright_ratio=np.count_nonzero(brightness > 200) / total,
        very_dark_ratio=np.count_nonzero(brightness < 30) / total,
        mid_tone_ratio=np.count_nonzero((brightness > 100) & (brightness < 180)) / total,
        width=width,
        height=height,
    )
    logger.debug(f"Extracted features: {features}")
    return features
