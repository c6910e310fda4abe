"""
Data models for the PhotoEdit preview system.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional
import time

import numpy as np

from ..config import get_config_value, get_default_config
from ..processing.adjustments import AdjustmentModel, DEFAULT_ADJUSTMENTS
from ..processing.geometry.crop import CropBox, DEFAULT_CROP


class EditorTool(Enum):
    """Editor panels; the crop tool previews the uncropped frame."""
    ADJUST = "adjust"
    CROP = "crop"
    PRESETS = "presets"


@dataclass(frozen=True)
class EditState:
    """Everything that affects rendered pixels, captured at one instant."""
    adjustments: AdjustmentModel = DEFAULT_ADJUSTMENTS
    crop: CropBox = DEFAULT_CROP
    preset_id: Optional[str] = None
    preset_intensity: float = 100.0
    tool: EditorTool = EditorTool.ADJUST


@dataclass
class PreviewFrame:
    """A rendered preview."""
    request_id: int
    image: np.ndarray
    state: EditState
    render_time: float = 0.0
    created_at: float = field(default_factory=time.time)

    @property
    def size(self):
        return self.image.shape[1], self.image.shape[0]


@dataclass
class PreviewConfig:
    """Configuration for preview processing."""
    max_dimension: int = 1200          # longer side of the preview buffer
    thumbnail_dimension: int = 800     # live-preview snapshot size
    thumbnail_quality: float = 0.85
    max_worker_threads: int = 2        # off-thread renderer pool size

    @classmethod
    def from_config(cls, config: Optional[Dict[str, Any]] = None) -> 'PreviewConfig':
        config = config or get_default_config()
        defaults = cls()
        return cls(
            max_dimension=int(get_config_value(config, 'preview.max_dimension', defaults.max_dimension)),
            thumbnail_dimension=int(get_config_value(
                config, 'preview.thumbnail_dimension', defaults.thumbnail_dimension)),
            thumbnail_quality=float(get_config_value(
                config, 'preview.thumbnail_quality', defaults.thumbnail_quality)),
            max_worker_threads=int(get_config_value(
                config, 'preview.max_worker_threads', defaults.max_worker_threads)),
        )


@dataclass
class SchedulerStats:
    """Counters for the coalescing scheduler."""
    requests: int = 0
    renders: int = 0
    dropped: int = 0
    failures: int = 0
    total_render_time: float = 0.0

    @property
    def average_render_time(self) -> float:
        return self.total_render_time / self.renders if self.renders else 0.0
