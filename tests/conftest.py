"""
Shared fixtures for PhotoEdit tests.
"""

from io import BytesIO

import numpy as np
import pytest
from PIL import Image


@pytest.fixture
def gradient_image():
    """64x48 RGB image with distinct values in every channel."""
    height, width = 48, 64
    y, x = np.mgrid[0:height, 0:width]
    r = (x * 4) % 256
    g = (y * 5) % 256
    b = ((x + y) * 3) % 256
    return np.stack([r, g, b], axis=-1).astype(np.uint8)


@pytest.fixture
def noisy_image():
    """Random RGB image, seeded."""
    rng = np.random.default_rng(1234)
    return rng.integers(0, 256, size=(40, 50, 3), dtype=np.uint8)


@pytest.fixture
def rgba_image(gradient_image):
    """Gradient image with a varying alpha channel."""
    height, width = gradient_image.shape[:2]
    alpha = np.linspace(0, 255, width, dtype=np.uint8)[None, :].repeat(height, axis=0)
    return np.dstack([gradient_image, alpha])


def encode_png(buffer: np.ndarray) -> bytes:
    output = BytesIO()
    Image.fromarray(np.ascontiguousarray(buffer)).save(output, format='PNG')
    return output.getvalue()


@pytest.fixture
def png_encoder():
    """The PNG encoding helper, for tests that build their own files."""
    return encode_png


@pytest.fixture
def png_bytes(gradient_image):
    return encode_png(gradient_image)


@pytest.fixture
def image_file(tmp_path, gradient_image):
    """Gradient image saved as a PNG file."""
    path = tmp_path / "source.png"
    path.write_bytes(encode_png(gradient_image))
    return path
