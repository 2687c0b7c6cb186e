import io
import logging
import os
from enum import Enum

import numpy as np
from PIL import Image

logger = logging.getLogger(__name__)


class ImageDecodeError(ValueError):
    """Raised when uploaded bytes cannot be decoded into a raster image."""


class PreprocessStrategy(str, Enum):
    PAD = "pad"
    NONE = "none"


def get_extension(filename: str) -> str:
    return os.path.splitext(filename or "")[1].lower()


class ImagePreprocessService:
    """
    Decodes uploads into raw pixel buffers and prepares images for the
    vision-language models.
    """

    def decode(self, content: bytes) -> np.ndarray:
        """
        Decodes image bytes into an (H, W, 3|4) uint8 RGB(A) array.
        Modes other than RGB/RGBA (grayscale, palette, 16-bit TIFF) are converted to RGB.
        """
        try:
            with Image.open(io.BytesIO(content)) as img:
                if img.mode not in ("RGB", "RGBA"):
                    img = img.convert("RGB")
                pixels = np.asarray(img, dtype=np.uint8)
        except Exception as e:
            logger.error(f"Image decode failed: {e}")
            raise ImageDecodeError(str(e)) from e

        if pixels.ndim != 3 or pixels.shape[2] not in (3, 4):
            raise ImageDecodeError(f"Unexpected pixel buffer shape {pixels.shape}")
        return pixels

    def recommend_prep_strategy(self, width: int, height: int) -> dict:
        """
        Scans are padded rather than cropped: anatomy frequently reaches the
        image border and a center crop would cut it.
        """
        if width == height:
            return {"strategy": PreprocessStrategy.NONE, "reason": "Already square"}
        return {
            "strategy": PreprocessStrategy.PAD,
            "reason": "Padding to square to keep peripheral anatomy",
        }

    def prepare_image(self, image: Image.Image, target_size: tuple = (448, 448)) -> Image.Image:
        """
        Pads an image to a square on a black background, then resizes to target_size.
        """
        if image.mode != "RGB":
            image = image.convert("RGB")
        width, height = image.size
        strategy = self.recommend_prep_strategy(width, height)["strategy"]

        if strategy == PreprocessStrategy.PAD:
            new_dim = max(width, height)
            # Black matches the background of most radiographs
            new_image = Image.new("RGB", (new_dim, new_dim), (0, 0, 0))
            if width > height:
                new_image.paste(image, (0, (new_dim - height) // 2))
            else:
                new_image.paste(image, ((new_dim - width) // 2, 0))
            image = new_image

        if image.size != target_size:
            logger.debug(f"Resizing image to {target_size}")
            image = image.resize(target_size, Image.Resampling.LANCZOS)

        return image

    def prepare_image_bytes(self, image_bytes: bytes, target_size: tuple = (448, 448)) -> Image.Image:
        """Helper to open raw bytes and prepare them for inference."""
        try:
            image = Image.open(io.BytesIO(image_bytes)).convert("RGB")
        except Exception as e:
            logger.error(f"Failed to open image for preparation: {e}")
            raise ImageDecodeError(str(e)) from e
        return self.prepare_image(image, target_size)


image_preprocess_service = ImagePreprocessService()
