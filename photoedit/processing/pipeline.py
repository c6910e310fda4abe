"""
Pixel pipeline for global tone and color adjustments.

Operates on uint8 RGB/RGBA buffers and always returns a new buffer. The stage
order is fixed and every stage clamps and rounds to the 0-255 byte range
before the next one runs; the highlight and shadow rolloff depends on it.
"""

import logging
import time

import numpy as np
from scipy import ndimage

from .adjustments import AdjustmentModel
from .sharpening import apply_sharpen

logger = logging.getLogger(__name__)

LUMA_WEIGHTS = (0.2126, 0.7152, 0.0722)
HIGHLIGHT_THRESHOLD = 200.0
SHADOW_THRESHOLD = 55.0

# 4-neighbour sum used as the low-frequency estimate for clarity
_CROSS_KERNEL = np.array([
    [0, 1, 0],
    [1, 0, 1],
    [0, 1, 0],
], dtype=np.float64)


def clamp_byte(values: np.ndarray) -> np.ndarray:
    """Round half-up and clamp to [0, 255], keeping float64 for the next stage."""
    return np.clip(np.floor(values + 0.5), 0.0, 255.0)


def split_channels(buffer: np.ndarray):
    """Return float64 R, G, B planes and the untouched alpha plane (or None)."""
    if buffer.ndim != 3 or buffer.shape[2] not in (3, 4):
        raise ValueError(f"Expected an RGB or RGBA buffer, got shape {buffer.shape}")

    rgb = buffer[:, :, :3].astype(np.float64)
    alpha = buffer[:, :, 3].copy() if buffer.shape[2] == 4 else None
    return rgb[:, :, 0], rgb[:, :, 1], rgb[:, :, 2], alpha


def merge_channels(r: np.ndarray, g: np.ndarray, b: np.ndarray,
                   alpha: np.ndarray = None) -> np.ndarray:
    planes = [r, g, b]
    if alpha is not None:
        planes.append(alpha)
    return np.stack(planes, axis=-1).astype(np.uint8)


def apply_adjustments(buffer: np.ndarray, adjustments: AdjustmentModel) -> np.ndarray:
    """
    Apply all global adjustments to a pixel buffer.

    Args:
        buffer: uint8 array of shape (H, W, 3) or (H, W, 4)
        adjustments: Adjustment values to apply

    Returns:
        New uint8 buffer with the same shape; alpha is copied unchanged
    """
    r, g, b, alpha = split_channels(buffer)
    a = adjustments

    # RGB channel offsets
    r = clamp_byte(r + a.red_channel * 2.55)
    g = clamp_byte(g + a.green_channel * 2.55)
    b = clamp_byte(b + a.blue_channel * 2.55)

    # Exposure
    exposure_factor = 2.0 ** (a.exposure / 100.0)
    r = clamp_byte(r * exposure_factor)
    g = clamp_byte(g * exposure_factor)
    b = clamp_byte(b * exposure_factor)

    # Gamma
    gamma_correction = 1.0 / a.gamma
    r = clamp_byte(255.0 * np.power(r / 255.0, gamma_correction))
    g = clamp_byte(255.0 * np.power(g / 255.0, gamma_correction))
    b = clamp_byte(255.0 * np.power(b / 255.0, gamma_correction))

    # Brightness
    brightness_offset = a.brightness * 2.55
    r = clamp_byte(r + brightness_offset)
    g = clamp_byte(g + brightness_offset)
    b = clamp_byte(b + brightness_offset)

    # Contrast, pivoting on 128
    contrast_factor = (259.0 * (a.contrast + 255.0)) / (255.0 * (259.0 - a.contrast))
    r = clamp_byte(contrast_factor * (r - 128.0) + 128.0)
    g = clamp_byte(contrast_factor * (g - 128.0) + 128.0)
    b = clamp_byte(contrast_factor * (b - 128.0) + 128.0)

    if a.temperature != 0:
        temp_shift = a.temperature / 100.0 * 30.0
        r = clamp_byte(r + temp_shift)
        b = clamp_byte(b - temp_shift)

    if a.tint != 0:
        g = clamp_byte(g + a.tint / 100.0 * 30.0)

    # Saturation. Vibrance below reuses this luma on purpose.
    gray = LUMA_WEIGHTS[0] * r + LUMA_WEIGHTS[1] * g + LUMA_WEIGHTS[2] * b
    sat_factor = 1.0 + a.saturation / 100.0
    r = clamp_byte(gray + sat_factor * (r - gray))
    g = clamp_byte(gray + sat_factor * (g - gray))
    b = clamp_byte(gray + sat_factor * (b - gray))

    if a.vibrance != 0:
        saturation_level = (np.maximum(np.maximum(r, g), b) - np.minimum(np.minimum(r, g), b)) / 255.0
        vib_factor = 1.0 + (1.0 - saturation_level) * (a.vibrance / 100.0)
        r = clamp_byte(gray + vib_factor * (r - gray))
        g = clamp_byte(gray + vib_factor * (g - gray))
        b = clamp_byte(gray + vib_factor * (b - gray))

    if a.highlights != 0:
        push = a.highlights / 100.0 * 0.5
        r, g, b = (
            np.where(c > HIGHLIGHT_THRESHOLD, clamp_byte(c + (c - HIGHLIGHT_THRESHOLD) * push), c)
            for c in (r, g, b)
        )

    if a.shadows != 0:
        push = a.shadows / 100.0 * 0.5
        r, g, b = (
            np.where(c < SHADOW_THRESHOLD, clamp_byte(c + (SHADOW_THRESHOLD - c) * push), c)
            for c in (r, g, b)
        )

    if a.clarity != 0:
        r, g, b = (_apply_clarity(c, a.clarity) for c in (r, g, b))

    return merge_channels(r, g, b, alpha)


def _apply_clarity(channel: np.ndarray, clarity: float) -> np.ndarray:
    """Local contrast: push each interior pixel away from its 4-neighbour mean."""
    height, width = channel.shape
    if height < 3 or width < 3:
        return channel

    factor = clarity / 200.0
    blur = ndimage.correlate(channel, _CROSS_KERNEL, mode='nearest') / 4.0

    result = channel.copy()
    inner = (slice(1, -1), slice(1, -1))
    center = channel[inner]
    result[inner] = clamp_byte(center + (center - blur[inner]) * factor)
    return result


def process(buffer: np.ndarray, adjustments: AdjustmentModel) -> np.ndarray:
    """Run the adjustment pipeline followed by the optional sharpening pass."""
    start_time = time.time()

    result = apply_adjustments(buffer, adjustments)
    if adjustments.sharpen > 0:
        result = apply_sharpen(result, adjustments.sharpen)

    logger.debug(
        f"Processed {buffer.shape[1]}x{buffer.shape[0]} buffer "
        f"in {time.time() - start_time:.3f}s"
    )
    return result
