"""
Processing modules for PhotoEdit

Adjustment model, pixel pipeline, sharpening, presets and geometry.
"""

from .adjustments import AdjustmentModel, DEFAULT_ADJUSTMENTS, ADJUSTMENT_RANGES
from .pipeline import apply_adjustments, process
from .sharpening import apply_sharpen
from .presets import (
    Preset, PresetCategory, PRESETS, blend_with_preset,
    resolve_effective_adjustments, get_preset_by_id
)

__all__ = [
    "AdjustmentModel",
    "DEFAULT_ADJUSTMENTS",
    "ADJUSTMENT_RANGES",
    "apply_adjustments",
    "process",
    "apply_sharpen",
    "Preset",
    "PresetCategory",
    "PRESETS",
    "blend_with_preset",
    "resolve_effective_adjustments",
    "get_preset_by_id",
]
