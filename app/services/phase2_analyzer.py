import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

import numpy as np

from app.config import PHASE2_POSITIVE_WEIGHTS, PHASE2_REJECTION_WEIGHTS
from app.models import Phase2Result, round_half_up
from app.services.feature_extractor import brightness_map

logger = logging.getLogger(__name__)


# --- Rejection detectors ---

def detect_text_icons(b: np.ndarray) -> float:
    """Density of hard edges (brightness jump > 100) typical of text and icons."""
    height, width = b.shape
    ys = np.arange(1, height - 1, 2)
    xs = np.arange(1, width - 1, 2)
    if ys.size == 0 or xs.size == 0:
        return 0.0
    center = b[np.ix_(ys, xs)]
    right = b[np.ix_(ys, xs + 1)]
    down = b[np.ix_(ys + 1, xs)]
    edges = (np.abs(center - right) > 100) | (np.abs(center - down) > 100)
    return min(1.0, np.count_nonzero(edges) / (width * height * 0.01))


def detect_screenshots(b: np.ndarray, block: int = 8) -> float:
    """Share of flat 8x8 blocks, as found in UI screenshots and graphics."""
    height, width = b.shape
    ny = len(range(0, height - block, block))
    nx = len(range(0, width - block, block))
    if ny == 0 or nx == 0:
        return 0.0
    blocks = b[: ny * block, : nx * block].reshape(ny, block, nx, block).swapaxes(1, 2)
    blocks = blocks.reshape(ny, nx, block * block)
    mean = blocks.mean(axis=2, keepdims=True)
    deviation = np.abs(blocks - mean).mean(axis=2)
    ui_elements = np.count_nonzero(deviation < 5)
    return min(1.0, ui_elements / (width * height / (block * block * 100)))


def detect_uniform_brightness(b: np.ndarray) -> float:
    samples = b.reshape(-1)[::4]
    return 1.0 if float(np.var(samples)) < 100 else 0.0


# --- Positive detectors ---

def detect_bone_structures(b: np.ndarray) -> float:
    """Very bright (>200) pixels, with a bonus when their share looks like a skull or rib cage."""
    bone_ratio = np.count_nonzero(b > 200) / b.size
    skull_like = 1.0 if 0.02 < bone_ratio < 0.3 else 0.0
    return min(1.0, bone_ratio * 5 + skull_like)


def detect_cross_sectional_patterns(b: np.ndarray) -> float:
    """Scanlines dense in soft-tissue range transitions, as in CT/MRI slices."""
    height, width = b.shape
    xs = np.arange(1, width, 5)
    rows = b[::10]
    left = rows[:, xs - 1]
    here = rows[:, xs]
    transitions = (
        (np.abs(left - here) > 20)
        & (left > 50) & (left < 180)
        & (here > 50) & (here < 180)
    )
    per_row = np.count_nonzero(transitions, axis=1)
    soft_tissue_rows = np.count_nonzero(per_row > width * 0.1)
    return min(1.0, soft_tissue_rows / (height / 10))


def detect_ultrasound_patterns(b: np.ndarray) -> float:
    """Speckle grain: moderate local variation between neighbouring pixels."""
    height, width = b.shape
    ys = np.arange(1, height - 1, 3)
    xs = np.arange(1, width - 1, 3)
    if ys.size == 0 or xs.size == 0:
        return 0.0
    center = b[np.ix_(ys, xs)]
    variation = np.abs(center - b[np.ix_(ys, xs + 1)]) + np.abs(center - b[np.ix_(ys + 1, xs)])
    grain_ratio = np.count_nonzero((variation > 15) & (variation < 50)) / center.size
    return min(1.0, grain_ratio * 3)


def detect_grid_artifacts(b: np.ndarray) -> float:
    """Regular flat scanlines, as left by anti-scatter grids and measurement overlays."""
    horizontal_lines = np.count_nonzero(b[::20, ::2].var(axis=1) < 20)
    vertical_lines = np.count_nonzero(b[::2, ::20].var(axis=0) < 20)
    if horizontal_lines > 2 or vertical_lines > 2:
        return 0.5
    return 0.0


_NEIGHBOUR_OFFSETS = [(dy, dx) for dy in range(-2, 3) for dx in range(-2, 3) if (dy, dx) != (0, 0)]


def detect_soft_tissue_gradients(b: np.ndarray) -> float:
    """Regions whose interior varies smoothly, counted up to four."""
    height, width = b.shape
    region = min(50, min(width, height) // 4)
    if region <= 0:
        return 0.0

    gradient_regions = 0
    for region_y in range(0, height - region, region):
        for region_x in range(0, width - region, region):
            ys = np.arange(region_y + 5, region_y + region - 5, 5)
            xs = np.arange(region_x + 5, region_x + region - 5, 5)
            if ys.size == 0 or xs.size == 0:
                continue
            center = b[np.ix_(ys, xs)]
            similar = np.zeros(center.shape, dtype=np.int32)
            for dy, dx in _NEIGHBOUR_OFFSETS:
                similar += np.abs(center - b[np.ix_(ys + dy, xs + dx)]) < 30
            if np.count_nonzero(similar > 15) > 20:
                gradient_regions += 1

    return min(1.0, gradient_regions / 4)


@dataclass(frozen=True)
class Detector:
    name: str
    weight: float
    rejects: bool
    fn: Callable[[np.ndarray], float]


def default_detectors() -> List[Detector]:
    """Detectors in evaluation order. Weights come from config."""
    return [
        Detector("text_icon", PHASE2_REJECTION_WEIGHTS["text_icon"], True, detect_text_icons),
        Detector("screenshot", PHASE2_REJECTION_WEIGHTS["screenshot"], True, detect_screenshots),
        Detector("uniform_brightness", PHASE2_REJECTION_WEIGHTS["uniform_brightness"], True, detect_uniform_brightness),
        Detector("bone_structure", PHASE2_POSITIVE_WEIGHTS["bone_structure"], False, detect_bone_structures),
        Detector("cross_section", PHASE2_POSITIVE_WEIGHTS["cross_section"], False, detect_cross_sectional_patterns),
        Detector("ultrasound_grain", PHASE2_POSITIVE_WEIGHTS["ultrasound_grain"], False, detect_ultrasound_patterns),
        Detector("grid_artifact", PHASE2_POSITIVE_WEIGHTS["grid_artifact"], False, detect_grid_artifacts),
        Detector("soft_tissue_gradient", PHASE2_POSITIVE_WEIGHTS["soft_tissue_gradient"], False, detect_soft_tissue_gradients),
    ]


class Phase2DeepAnalyzer:
    """
    Deep pattern analysis for uploads that Phase 1 could not place.

    Each detector returns a score in [0, 1]. Rejection detectors (text, screenshots,
    flat images) and positive detectors (bone, cross-sections, ultrasound grain,
    grid artifacts, soft tissue) are combined as weighted sums and the final
    confidence is positive - rejection, clamped to 0-100.
    """

    def __init__(self, detectors: Optional[List[Detector]] = None):
        self.detectors = detectors if detectors is not None else default_detectors()

    def analyze(self, pixels: np.ndarray) -> Phase2Result:
        b = brightness_map(pixels)
        scores = {d.name: float(d.fn(b)) for d in self.detectors}
        result = self.combine(scores)
        logger.info(
            f"Phase 2: confidence {result.confidence} "
            f"(positive {result.positive_score:.1f}, rejection {result.rejection_score:.1f})"
        )
        return result

    def combine(self, scores: Dict[str, float]) -> Phase2Result:
        rejection = 0.0
        positive = 0.0
        for d in self.detectors:
            weighted = scores.get(d.name, 0.0) * d.weight
            if d.rejects:
                rejection += weighted
            else:
                positive += weighted
        confidence = round_half_up(max(0.0, min(100.0, positive - rejection)))
        return Phase2Result(
            confidence=confidence,
            rejection_score=rejection,
            positive_score=positive,
            detector_scores=scores,
        )


phase2_analyzer = Phase2DeepAnalyzer()
