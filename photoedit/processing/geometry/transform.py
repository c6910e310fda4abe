"""
Crop, rotate and flip a pixel buffer into an output frame.

The cropped source region is drawn into the output frame after translating to
the frame centre, rotating by the crop's total rotation and applying flips.
Pixels the rotated region does not cover stay black (RGB) or transparent (RGBA).
"""

import logging
import math
from typing import Optional, Tuple

import cv2
import numpy as np

from .crop import CropBox

logger = logging.getLogger(__name__)

PREVIEW_MAX_DIMENSION = 1200


def preview_dimensions(width: int, height: int,
                       max_dimension: int = PREVIEW_MAX_DIMENSION) -> Tuple[int, int]:
    """Size of the downsampled preview buffer; never upscales."""
    scale = min(max_dimension / width, max_dimension / height, 1.0)
    return max(1, int(width * scale)), max(1, int(height * scale))


def fit_within(width: int, height: int, max_dimension: int) -> Tuple[int, int]:
    """Cap the longer side at max_dimension, preserving aspect ratio."""
    if width > height and width > max_dimension:
        return max_dimension, max(1, round(height / width * max_dimension))
    if height >= width and height > max_dimension:
        return max(1, round(width / height * max_dimension)), max_dimension
    return width, height


def output_size_for_crop(source_size: Tuple[int, int], crop: CropBox,
                         max_dimension: Optional[int] = None) -> Tuple[int, int]:
    """
    Output frame for a crop: crop size in source pixels, swapped for odd
    quarter turns, optionally capped on the longer side.
    """
    _, _, crop_w, crop_h = crop.to_pixels(*source_size)
    width, height = max(1, round(crop_w)), max(1, round(crop_h))
    if crop.quarter_turns % 2:
        width, height = height, width
    if max_dimension:
        width, height = fit_within(width, height, max_dimension)
    return width, height


def _source_region(source: np.ndarray, crop: CropBox) -> np.ndarray:
    """Slice the crop rectangle out of the source, snapped to whole pixels."""
    src_h, src_w = source.shape[:2]
    cx, cy, cw, ch = crop.to_pixels(src_w, src_h)

    x0 = min(src_w - 1, max(0, int(round(cx))))
    y0 = min(src_h - 1, max(0, int(round(cy))))
    x1 = min(src_w, max(x0 + 1, int(round(cx + cw))))
    y1 = min(src_h, max(y0 + 1, int(round(cy + ch))))
    return source[y0:y1, x0:x1]


def build_affine_matrix(region_size: Tuple[int, int], output_size: Tuple[int, int],
                        rotation: float, flip_horizontal: bool,
                        flip_vertical: bool, swap_axes: bool = False) -> np.ndarray:
    """
    2x3 matrix mapping region pixel coordinates to output pixel coordinates.

    The region is scaled into a draw rectangle the size of the output frame
    (swapped for odd quarter turns when swap_axes is set), centred on
    the origin, flipped, rotated and translated to the frame centre.
    """
    region_w, region_h = region_size
    out_w, out_h = output_size

    draw_w, draw_h = out_w, out_h
    if swap_axes:
        draw_w, draw_h = out_h, out_w

    # Work in edge coordinates (pixel (0,0) spans [0,1)), convert at the end
    scale = np.array([
        [draw_w / region_w, 0.0, -draw_w / 2.0],
        [0.0, draw_h / region_h, -draw_h / 2.0],
        [0.0, 0.0, 1.0],
    ])
    flip = np.diag([-1.0 if flip_horizontal else 1.0, -1.0 if flip_vertical else 1.0, 1.0])

    theta = math.radians(rotation)
    cos_t, sin_t = math.cos(theta), math.sin(theta)
    rotate = np.array([
        [cos_t, -sin_t, 0.0],
        [sin_t, cos_t, 0.0],
        [0.0, 0.0, 1.0],
    ])
    translate = np.array([
        [1.0, 0.0, out_w / 2.0],
        [0.0, 1.0, out_h / 2.0],
        [0.0, 0.0, 1.0],
    ])
    to_edge = np.array([[1.0, 0.0, 0.5], [0.0, 1.0, 0.5], [0.0, 0.0, 1.0]])
    to_center = np.array([[1.0, 0.0, -0.5], [0.0, 1.0, -0.5], [0.0, 0.0, 1.0]])

    matrix = to_center @ translate @ rotate @ flip @ scale @ to_edge
    return matrix[:2]


def apply_crop_transform(source: np.ndarray, crop: CropBox,
                         output_width: int, output_height: int) -> np.ndarray:
    """
    Render the crop of ``source`` into a new buffer of the requested size.

    Args:
        source: uint8 RGB or RGBA buffer, not modified
        crop: Crop rectangle, rotation and flips
        output_width: Output frame width in pixels
        output_height: Output frame height in pixels

    Returns:
        New uint8 buffer of shape (output_height, output_width, channels)
    """
    output_width, output_height = max(1, int(output_width)), max(1, int(output_height))
    region = _source_region(source, crop)
    region_h, region_w = region.shape[:2]
    rotation = crop.total_rotation

    if rotation % 90 == 0:
        # Axis-aligned: exact slicing, flips and a plain resize
        turns = int(rotation // 90)
        flip_h, flip_v = crop.flip_horizontal, crop.flip_vertical
        if flip_h:
            region = region[:, ::-1]
        if flip_v:
            region = region[::-1, :]
        # np.rot90 turns counter-clockwise; canvas rotation is clockwise
        region = np.rot90(region, k=-turns)
        return _resize(region, output_width, output_height)

    matrix = build_affine_matrix(
        (region_w, region_h), (output_width, output_height),
        rotation, crop.flip_horizontal, crop.flip_vertical,
        swap_axes=bool(crop.quarter_turns % 2),
    )
    channels = source.shape[2]
    result = cv2.warpAffine(
        np.ascontiguousarray(region), matrix, (output_width, output_height),
        flags=cv2.INTER_LINEAR,
        borderMode=cv2.BORDER_CONSTANT,
        borderValue=(0,) * channels,
    )
    logger.debug(f"Rotated crop {region_w}x{region_h} by {rotation:.1f} into {output_width}x{output_height}")
    return result


def _resize(buffer: np.ndarray, width: int, height: int) -> np.ndarray:
    src_h, src_w = buffer.shape[:2]
    if (src_w, src_h) == (width, height):
        return np.ascontiguousarray(buffer).copy()

    interpolation = cv2.INTER_AREA if width < src_w and height < src_h else cv2.INTER_LINEAR
    return cv2.resize(np.ascontiguousarray(buffer), (width, height), interpolation=interpolation)


def downsample(buffer: np.ndarray, max_dimension: int = PREVIEW_MAX_DIMENSION) -> np.ndarray:
    """Downsampled working copy for interactive preview."""
    height, width = buffer.shape[:2]
    target_w, target_h = preview_dimensions(width, height, max_dimension)
    return _resize(buffer, target_w, target_h)
