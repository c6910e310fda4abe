"""
Sharpening pass for PhotoEdit.

A 3x3 convolution sharpen blended with the unsharpened image. Runs after the
adjustment pipeline and only when the sharpen amount is positive.
"""

import numpy as np
from scipy import ndimage

SHARPEN_KERNEL = np.array([
    [0, -1, 0],
    [-1, 5, -1],
    [0, -1, 0],
], dtype=np.float64)


def apply_sharpen(buffer: np.ndarray, amount: float) -> np.ndarray:
    """
    Sharpen a uint8 RGB/RGBA buffer.

    Args:
        buffer: Input buffer, not modified
        amount: Strength 0-100; the convolved result is blended in by amount/100

    Returns:
        New buffer. Border pixels and alpha are copied unchanged.
    """
    result = buffer.copy()
    if amount <= 0:
        return result

    height, width = buffer.shape[:2]
    if height < 3 or width < 3:
        return result

    factor = min(amount, 100.0) / 100.0
    inner = (slice(1, -1), slice(1, -1))

    for c in range(3):
        original = buffer[:, :, c].astype(np.float64)
        convolved = ndimage.correlate(original, SHARPEN_KERNEL, mode='nearest')
        blended = original[inner] * (1.0 - factor) + convolved[inner] * factor
        result[1:-1, 1:-1, c] = np.clip(np.floor(blended + 0.5), 0, 255).astype(np.uint8)

    return result
