"""
Preview rendering on the downsampled working buffer.

The preview runs the same pipeline and transform as export, but always on the
downsampled copy so per-frame cost does not depend on the source size.
"""

import logging
import time
from typing import Optional

import numpy as np

from .models import EditState, EditorTool, PreviewConfig
from ..processing.geometry.crop import CropBox
from ..processing.geometry.transform import apply_crop_transform, downsample, output_size_for_crop
from ..processing.pipeline import process
from ..processing.presets import get_preset_by_id, resolve_effective_adjustments

logger = logging.getLogger(__name__)


def effective_adjustments(state: EditState):
    """Preset blended at its intensity with manual edits on top."""
    preset = get_preset_by_id(state.preset_id) if state.preset_id else None
    return resolve_effective_adjustments(state.adjustments, preset, state.preset_intensity)


def render_state(buffer: np.ndarray, state: EditState, crop: Optional[CropBox] = None,
                 max_dimension: Optional[int] = None) -> np.ndarray:
    """
    Apply an edit state to a buffer: pixel pipeline, then crop transform.

    Args:
        buffer: Source buffer (preview or full resolution), not modified
        state: Edit state to render
        crop: Crop to apply instead of ``state.crop``
        max_dimension: Optional cap on the output's longer side

    Returns:
        New uint8 buffer
    """
    crop = crop or state.crop
    adjusted = process(buffer, effective_adjustments(state))
    height, width = buffer.shape[:2]
    out_w, out_h = output_size_for_crop((width, height), crop, max_dimension)
    return apply_crop_transform(adjusted, crop, out_w, out_h)


class PreviewProcessor:
    """Renders edit states against a cached downsampled copy of the original."""

    def __init__(self, original: np.ndarray, config: Optional[PreviewConfig] = None):
        self.config = config or PreviewConfig()
        self.preview_buffer = downsample(original, self.config.max_dimension)
        self.preview_buffer.flags.writeable = False
        logger.info(
            f"PreviewProcessor initialized: {original.shape[1]}x{original.shape[0]} -> "
            f"{self.preview_buffer.shape[1]}x{self.preview_buffer.shape[0]}"
        )

    def render(self, state: EditState) -> np.ndarray:
        """Render a state for display."""
        start_time = time.time()

        crop = state.crop
        if state.tool is EditorTool.CROP:
            # Show the whole frame so the crop overlay can be drawn over it
            crop = crop.with_rect(0.0, 0.0, 100.0, 100.0)

        result = render_state(self.preview_buffer, state, crop=crop)
        logger.debug(f"Preview rendered in {time.time() - start_time:.3f}s")
        return result
