"""
PhotoEdit Interactive Preview System

Downsampled rendering with latest-wins scheduling for responsive editing.
"""

from .models import EditState, EditorTool, PreviewFrame, PreviewConfig, SchedulerStats
from .preview_processor import PreviewProcessor, render_state, effective_adjustments
from .scheduler import PreviewScheduler
from .threading_manager import LatestWinsRenderer

__all__ = [
    'EditState',
    'EditorTool',
    'PreviewFrame',
    'PreviewConfig',
    'SchedulerStats',
    'PreviewProcessor',
    'render_state',
    'effective_adjustments',
    'PreviewScheduler',
    'LatestWinsRenderer',
]
