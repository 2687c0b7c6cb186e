import io
import os
import sys

# Ensure project root is in path
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
sys.path.insert(0, PROJECT_ROOT)

import numpy as np
import pytest
from fastapi.testclient import TestClient
from PIL import Image

from app.main import app


def encode_image(pixels: np.ndarray, fmt: str = "PNG") -> bytes:
    buf = io.BytesIO()
    Image.fromarray(pixels.astype(np.uint8)).save(buf, format=fmt)
    return buf.getvalue()


def radiograph_pixels(size: int = 512) -> np.ndarray:
    """
    Synthetic chest film: dark background band, bright bone band, a colored
    annotation strip and soft tissue. Classified as an X-ray at 90%.
    """
    pixels = np.full((size, size, 3), 128, dtype=np.uint8)
    dark = size // 4
    bone = round(size * 0.2)
    strip = size // 10
    pixels[:dark] = 10
    pixels[dark:dark + bone] = 230
    pixels[dark + bone:dark + bone + strip] = (255, 0, 0)
    return pixels


@pytest.fixture
def client():
    """
    Test client for the FastAPI app.
    """
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_png():
    """Factory turning an (H, W, 3) array into PNG bytes."""
    return encode_image


@pytest.fixture
def xray_pixels():
    return radiograph_pixels()


@pytest.fixture
def xray_png(xray_pixels):
    return encode_image(xray_pixels)
