import io
import logging
from typing import List

import cv2
import numpy as np
from PIL import Image

from app.models import RegionOfInterest

logger = logging.getLogger(__name__)


class HeatmapService:
    def attention_map(self, width: int, height: int, regions: List[RegionOfInterest]) -> np.ndarray:
        """
        Gaussian attention map in [0, 1] built from normalized regions of interest,
        each weighted by its confidence.
        """
        yy, xx = np.mgrid[0:height, 0:width].astype(np.float64)
        cam = np.zeros((height, width), dtype=np.float64)
        for roi in regions:
            cx = (roi.x + roi.width / 2) * width
            cy = (roi.y + roi.height / 2) * height
            sx = max(roi.width * width / 2, 1.0)
            sy = max(roi.height * height / 2, 1.0)
            blob = np.exp(-(((xx - cx) ** 2) / (2 * sx ** 2) + ((yy - cy) ** 2) / (2 * sy ** 2)))
            cam += blob * (roi.confidence / 100.0)

        if cam.max() > 0:
            cam = cam - cam.min()
            cam = cam / cam.max()
        return cam

    def get_heatmap(self, image_content: bytes, regions: List[RegionOfInterest]) -> bytes:
        """
        Renders the attention map over the image. Returns the overlay as JPEG bytes,
        or the original bytes when the image cannot be rendered.
        """
        try:
            image = Image.open(io.BytesIO(image_content)).convert("RGB")
            img_np = np.array(image)

            cam = self.attention_map(img_np.shape[1], img_np.shape[0], regions)
            heatmap = np.uint8(255 * cam)
            heatmap_color = cv2.applyColorMap(heatmap, cv2.COLORMAP_JET)
            heatmap_color = cv2.cvtColor(heatmap_color, cv2.COLOR_BGR2RGB)

            overlay = cv2.addWeighted(img_np, 0.6, heatmap_color, 0.4, 0)

            buf = io.BytesIO()
            Image.fromarray(overlay).save(buf, format="JPEG")
            return buf.getvalue()
        except Exception as e:
            logger.error(f"Heatmap rendering error: {e}")
            return image_content


heatmap_service = HeatmapService()
