"""
Full-resolution export for PhotoEdit.

Export re-runs the pixel pipeline and the crop transform against the original
buffer (never the preview buffer), caps the longer side and encodes with
Pillow. WebP is preferred; if the encoder is unavailable or fails, JPEG is
tried once.
"""

import logging
import time
from dataclasses import dataclass
from io import BytesIO
from typing import Any, Dict, Optional

import cv2
import numpy as np
from PIL import Image, features

from ..config import get_config_value, get_default_config
from ..errors import EncodeFailure, RenderFailure
from ..processing.adjustments import AdjustmentModel
from ..processing.geometry.crop import CropBox
from ..processing.geometry.transform import apply_crop_transform, fit_within, output_size_for_crop
from ..processing.pipeline import process

logger = logging.getLogger(__name__)

MIME_TYPES = {
    'webp': 'image/webp',
    'jpeg': 'image/jpeg',
    'png': 'image/png',
}

_PIL_FORMATS = {
    'webp': 'WEBP',
    'jpeg': 'JPEG',
    'png': 'PNG',
}


@dataclass
class ExportSettings:
    """Export encoding settings."""
    max_dimension: int = 1920          # longer side of the exported image
    quality: float = 0.92              # 0.0 - 1.0
    format: str = 'webp'
    fallback_format: Optional[str] = 'jpeg'

    @classmethod
    def from_config(cls, config: Optional[Dict[str, Any]] = None) -> 'ExportSettings':
        config = config or get_default_config()
        defaults = cls()
        return cls(
            max_dimension=int(get_config_value(config, 'export.max_dimension', defaults.max_dimension)),
            quality=float(get_config_value(config, 'export.quality', defaults.quality)),
            format=str(get_config_value(config, 'export.format', defaults.format)).lower(),
            fallback_format=get_config_value(config, 'export.fallback_format', defaults.fallback_format),
        )


@dataclass(frozen=True)
class ExportedImage:
    """An encoded export."""
    data: bytes
    width: int
    height: int
    format: str
    mime_type: str


def _normalize_format(fmt: str) -> str:
    fmt = fmt.lower()
    return 'jpeg' if fmt == 'jpg' else fmt


def _flatten_alpha(buffer: np.ndarray) -> np.ndarray:
    """Composite RGBA onto black for formats without alpha."""
    alpha = buffer[..., 3:4].astype(np.float32) / 255.0
    rgb = buffer[..., :3].astype(np.float32) * alpha
    return np.clip(np.floor(rgb + 0.5), 0, 255).astype(np.uint8)


def encode_image(buffer: np.ndarray, fmt: str = 'webp', quality: float = 0.92) -> bytes:
    """
    Encode a uint8 RGB/RGBA buffer.

    Args:
        buffer: Pixel buffer
        fmt: 'webp', 'jpeg' or 'png'
        quality: 0.0 - 1.0, ignored for PNG

    Returns:
        Encoded bytes

    Raises:
        EncodeFailure: if the format is unsupported or encoding fails
    """
    fmt = _normalize_format(fmt)
    if fmt not in _PIL_FORMATS:
        raise EncodeFailure(f"Unsupported export format: {fmt}", format=fmt)
    if fmt == 'webp' and not features.check('webp'):
        raise EncodeFailure("WebP encoder is not available", format=fmt)

    if fmt == 'jpeg' and buffer.shape[2] == 4:
        buffer = _flatten_alpha(buffer)

    save_kwargs = {}
    if fmt != 'png':
        save_kwargs['quality'] = int(round(min(max(quality, 0.0), 1.0) * 100))

    output = BytesIO()
    try:
        Image.fromarray(np.ascontiguousarray(buffer)).save(
            output, format=_PIL_FORMATS[fmt], **save_kwargs
        )
    except (OSError, ValueError, KeyError) as e:
        raise EncodeFailure(f"Failed to encode {fmt}: {e}", format=fmt) from e
    return output.getvalue()


def encode_with_fallback(buffer: np.ndarray, settings: ExportSettings) -> ExportedImage:
    """Encode in the preferred format, retrying once with the fallback format."""
    height, width = buffer.shape[:2]
    fmt = _normalize_format(settings.format)
    try:
        data = encode_image(buffer, fmt, settings.quality)
    except EncodeFailure as e:
        if not settings.fallback_format:
            raise
        fallback = _normalize_format(settings.fallback_format)
        logger.warning(f"{e}; falling back to {fallback}")
        fmt = fallback
        data = encode_image(buffer, fmt, settings.quality)

    return ExportedImage(data=data, width=width, height=height, format=fmt, mime_type=MIME_TYPES[fmt])


def render_export(buffer: np.ndarray, adjustments: AdjustmentModel, crop: CropBox,
                  max_dimension: int) -> np.ndarray:
    """
    Full-resolution render, downscaled so the longer side fits max_dimension.

    Raises:
        RenderFailure: if the pipeline or an OpenCV transform fails
    """
    height, width = buffer.shape[:2]
    try:
        adjusted = process(buffer, adjustments)

        out_w, out_h = output_size_for_crop((width, height), crop)
        transformed = apply_crop_transform(adjusted, crop, out_w, out_h)

        target_w, target_h = fit_within(out_w, out_h, max_dimension)
        if (target_w, target_h) != (out_w, out_h):
            transformed = cv2.resize(transformed, (target_w, target_h), interpolation=cv2.INTER_AREA)
    except (cv2.error, ValueError, MemoryError) as e:
        raise RenderFailure(f"Failed to render {width}x{height} export: {e}") from e
    return transformed


def export_image(buffer: np.ndarray, adjustments: AdjustmentModel, crop: CropBox,
                 settings: Optional[ExportSettings] = None) -> ExportedImage:
    """
    Render and encode an edited image at full resolution.

    Args:
        buffer: Original full-resolution buffer, not modified
        adjustments: Effective adjustments (preset blend already applied)
        crop: Crop box to apply
        settings: Export settings, defaults to 1920px WebP at 0.92

    Returns:
        ExportedImage

    Raises:
        RenderFailure: if rendering the edit fails
        EncodeFailure: if both the preferred and fallback encoders fail
    """
    settings = settings or ExportSettings()
    start_time = time.time()

    rendered = render_export(buffer, adjustments, crop, settings.max_dimension)
    exported = encode_with_fallback(rendered, settings)

    logger.info(
        f"Exported {exported.width}x{exported.height} {exported.format} "
        f"({len(exported.data)} bytes) in {time.time() - start_time:.2f}s"
    )
    return exported


def encode_thumbnail(buffer: np.ndarray, max_dimension: int = 800, quality: float = 0.85) -> bytes:
    """Small JPEG snapshot of a rendered buffer for a live-preview panel."""
    height, width = buffer.shape[:2]
    target_w, target_h = fit_within(width, height, max_dimension)
    if (target_w, target_h) != (width, height):
        buffer = cv2.resize(buffer, (target_w, target_h), interpolation=cv2.INTER_AREA)
    return encode_image(buffer, 'jpeg', quality)
