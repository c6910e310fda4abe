"""
PhotoEdit: Non-destructive photo editing engine

Parametric colour and tone adjustments, crop/rotate/flip, named look presets,
coalesced interactive previews and full-resolution export.
"""

__version__ = "0.1.0"

# Core imports for easy access
from .config import load_config
from .errors import (
    PhotoEditError, DecodeFailure, EncodeFailure, RenderFailure, InvalidAdjustment, InvalidCrop,
    LoadResult, ExportResult
)
from .processing.adjustments import AdjustmentModel, DEFAULT_ADJUSTMENTS
from .processing.geometry.crop import CropBox, DEFAULT_CROP
from .processing.presets import PRESETS, get_preset_by_id
from .session import EditingSession, SessionStatus

__all__ = [
    "load_config",
    "PhotoEditError",
    "DecodeFailure",
    "EncodeFailure",
    "RenderFailure",
    "InvalidAdjustment",
    "InvalidCrop",
    "LoadResult",
    "ExportResult",
    "AdjustmentModel",
    "DEFAULT_ADJUSTMENTS",
    "CropBox",
    "DEFAULT_CROP",
    "PRESETS",
    "get_preset_by_id",
    "EditingSession",
    "SessionStatus",
]
